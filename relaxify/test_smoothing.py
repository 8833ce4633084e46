"""
Tests for the signal smoother, geometry helpers and baseline calibrator.
"""

import math
import random

import pytest

from relaxify.calibration import BaselineCalibrator
from relaxify.landmarks import Landmark
from relaxify.smoothing import SignalSmoother, line_angle_deg, safe_ratio


def test_window_never_exceeds_capacity():
    smoother = SignalSmoother(window_size=5)
    for i in range(20):
        smoother.push(float(i))
        assert len(smoother) <= 5
    assert list(smoother.window) == [15.0, 16.0, 17.0, 18.0, 19.0]
    assert smoother.is_full()


def test_mean_stays_within_window_range():
    rng = random.Random(7)
    for size in (5, 6, 8):
        smoother = SignalSmoother(window_size=size)
        for _ in range(500):
            mean = smoother.push(rng.uniform(-50.0, 50.0))
            assert min(smoother.window) <= mean <= max(smoother.window)


def test_value_matches_last_push():
    rng = random.Random(11)
    smoother = SignalSmoother(window_size=6)
    for _ in range(200):
        pushed = smoother.push(rng.uniform(-1e6, 1e6))
        assert smoother.value == pushed
        assert min(smoother.window) <= smoother.value <= max(smoother.window)


def test_identical_values_return_the_value():
    smoother = SignalSmoother(window_size=3)
    for _ in range(3):
        assert smoother.push(0.1) == 0.1


def test_push_returns_running_mean():
    smoother = SignalSmoother(window_size=4)
    assert smoother.push(2.0) == 2.0
    assert smoother.push(4.0) == 3.0
    smoother.push(6.0)
    smoother.push(8.0)
    assert smoother.push(10.0) == pytest.approx(7.0)


def test_reset_and_value():
    smoother = SignalSmoother(window_size=3)
    assert smoother.value is None
    smoother.push(1.0)
    smoother.reset()
    assert len(smoother) == 0


def test_invalid_window_size():
    with pytest.raises(ValueError):
        SignalSmoother(window_size=0)


def test_safe_ratio_rejects_collapsed_denominator():
    assert safe_ratio(1.0, 0.0) is None
    assert safe_ratio(1.0, 1e-9) is None
    assert safe_ratio(1.0, 4.0) == 0.25


def test_line_angle_is_independent_of_ear_order():
    a = Landmark(0.4, 0.5)
    b = Landmark(0.6, 0.6)
    angle = line_angle_deg(a, b)
    assert angle == pytest.approx(math.degrees(math.atan2(0.1, 0.2)))
    assert line_angle_deg(b, a) == pytest.approx(angle)


def test_line_angle_degenerate_span():
    assert line_angle_deg(Landmark(0.5, 0.4), Landmark(0.5, 0.6)) is None


# ========================================
# BASELINE CALIBRATOR
# ========================================

def test_calibrator_reports_calibrating_until_kth_frame():
    cal = BaselineCalibrator(frames=3)
    assert cal.observe(1.0) == (True, None)
    assert cal.observe(2.0) == (True, None)
    calibrating, baseline = cal.observe(3.0)
    assert calibrating is False
    assert baseline == pytest.approx(2.0)
    assert cal.progress == 1.0


def test_baseline_never_changes_after_calibration():
    cal = BaselineCalibrator(frames=30)
    for i in range(30):
        cal.observe(1.0 + i * 0.01)
    frozen = cal.baseline
    for value in (100.0, -100.0, 0.0, 1e6):
        assert cal.observe(value) == (False, frozen)
    assert cal.baseline == frozen


def test_zero_frames_uses_default():
    cal = BaselineCalibrator(frames=0, default=0.5)
    assert not cal.is_calibrating
    assert cal.observe(0.9) == (False, 0.5)
