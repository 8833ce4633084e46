"""
SMOOTHING MODULE
================
Geometry helpers and the moving-window smoother shared by every detector.
"""

import math
from collections import deque

import numpy as np

# ========================================
# CONSTANTS
# ========================================

MIN_DENOMINATOR = 1e-6         # Ratios with a smaller divisor are treated as invalid

# ========================================
# HELPER FUNCTIONS: Geometry
# ========================================

def safe_ratio(a, b, eps=MIN_DENOMINATOR):
    """
    Divide a by b, or return None if b is too close to zero.

    Unlike a plain `a / (b + eps)` this never produces a huge value from a
    collapsed landmark span; the caller skips the frame instead.
    """
    if abs(b) < eps:
        return None
    return finite_or_none(a / b)


def finite_or_none(value):
    """Return value as float, or None if it is NaN / infinite / missing."""
    if value is None:
        return None
    value = float(value)
    return value if math.isfinite(value) else None


def line_angle_deg(p1, p2):
    """
    Angle of the line p1 -> p2 against the image horizontal, in (-90, 90].

    Left/right keypoints swap sides between mirrored and raw camera images,
    so the line is oriented left-to-right in image space first. Positive
    angles mean the point on the image right sits lower (y grows downward).

    RETURNS:
        Degrees, or None if both points share the same x (degenerate span)
    """
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    if abs(dx) < MIN_DENOMINATOR:
        return None
    if dx < 0:
        dx, dy = -dx, -dy
    return finite_or_none(math.degrees(math.atan2(dy, dx)))


# ========================================
# SIGNAL SMOOTHER
# ========================================

class SignalSmoother:
    """
    Moving average over the last `window_size` measurements.

    Raw landmark positions jitter frame-to-frame; every detector averages its
    scalar signal over a short window before comparing it to thresholds.

    INVARIANTS:
        - len(window) <= window_size
        - returned mean lies within [min(window), max(window)]
    """

    def __init__(self, window_size=5):
        if window_size < 1:
            raise ValueError("window_size must be >= 1")
        self.window_size = window_size
        self.window = deque(maxlen=window_size)

    def push(self, value):
        """
        Add a measurement and return the smoothed value.

        PARAMETERS:
            value: A finite float. Callers drop NaN / missing values beforehand.

        RETURNS:
            Mean of the current window
        """
        self.window.append(float(value))
        return self._mean()

    @property
    def value(self):
        """Current smoothed value, or None before the first push."""
        if not self.window:
            return None
        return self._mean()

    def is_full(self):
        return len(self.window) == self.window_size

    def reset(self):
        self.window.clear()

    def __len__(self):
        return len(self.window)

    def _mean(self):
        mean = float(np.mean(self.window))
        # Float summation can drift one ulp outside the window range
        return min(max(mean, min(self.window)), max(self.window))
