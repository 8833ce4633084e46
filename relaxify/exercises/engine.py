"""
GESTURE ENGINE
==============
One two-state machine shared by every repetition exercise.

Each exercise module only supplies a GestureConfig: how to turn a landmark
frame into a scalar signal, where the engage / reset thresholds sit, and what
to say. The engine does the smoothing, calibration, hysteresis and crediting.

STATE MACHINE:
    Neutral --[signal crosses engage bound for direction D]--> Engaged(D)
    Engaged(D) --[signal enters the reset band]--> Neutral
    Engaged(D) --[engage bound for another direction]--> ignored

    A repetition is credited on entry to Engaged (tilt, rotation) or on the
    return to Neutral (shrug), exactly once per cycle.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from relaxify.calibration import BaselineCalibrator
from relaxify.landmarks import LandmarkFrame
from relaxify.smoothing import SignalSmoother, finite_or_none

logger = logging.getLogger(__name__)

# ========================================
# STATES, EVENTS & MODES
# ========================================

NEUTRAL = "neutral"
ENGAGED = "engaged"
CALIBRATING = "calibrating"

# Event kinds emitted by GestureDetector.update()
EVENT_CALIBRATING = "calibrating"
EVENT_CALIBRATED = "calibrated"
EVENT_ENGAGED = "engaged"
EVENT_RELEASED = "released"
EVENT_REPETITION = "repetition"

CREDIT_ON_ENGAGE = "engage"
CREDIT_ON_RELEASE = "release"

# How threshold bounds relate to the calibrated baseline
ABSOLUTE = "absolute"   # bounds used as written
RELATIVE = "relative"   # bounds are multiples of the baseline
OFFSET = "offset"       # bounds shifted by (baseline - neutral)


# ========================================
# CONFIGURATION RECORDS
# ========================================

@dataclass(frozen=True)
class EngageRule:
    """Engage in `direction` once the signal goes above / below `bound`."""
    direction: str
    bound: float
    above: bool

    def fires(self, value, bound):
        return value > bound if self.above else value < bound


@dataclass(frozen=True)
class FeedbackMessages:
    """Coaching lines for one exercise."""
    engaged: Dict[str, str] = field(default_factory=dict)
    released: str = "Back to center."
    ready: str = "Get ready."
    calibrating: str = "Calibrating sensors..."
    calibrated: str = "Calibrated. Let's begin."
    complete: str = "Session complete."
    vocalize_release: bool = False


@dataclass(frozen=True)
class GestureConfig:
    """
    Everything that differs between two repetition exercises.

    ATTRIBUTES:
        exercise: Exercise id ("neck_tilt", "head_movement", ...)
        signal_fn: LandmarkFrame -> float, or None when landmarks are missing
        window_size: Smoothing window length (frames)
        engage_rules: One EngageRule per direction
        reset_low / reset_high: Open interval that returns the machine to Neutral
        reward_per_rep: Points credited with each repetition
        credit_on: CREDIT_ON_ENGAGE or CREDIT_ON_RELEASE
        calibration_frames: Baseline frames (0 = no calibration)
        threshold_mode: ABSOLUTE, RELATIVE or OFFSET
        neutral: Nominal rest value of the signal, in the same units as the
                 bounds (1.0 for RELATIVE: the baseline itself)
        goal: Repetitions that complete a session
        vocal_cooldown: Minimum seconds between spoken prompts
    """
    exercise: str
    signal_fn: Callable[[LandmarkFrame], Optional[float]]
    window_size: int
    engage_rules: Tuple[EngageRule, ...]
    reset_low: float = -math.inf
    reset_high: float = math.inf
    reward_per_rep: int = 10
    credit_on: str = CREDIT_ON_ENGAGE
    calibration_frames: int = 0
    threshold_mode: str = ABSOLUTE
    neutral: float = 0.0
    goal: int = 10
    vocal_cooldown: float = 2.5
    messages: FeedbackMessages = field(default_factory=FeedbackMessages)

    def __post_init__(self):
        if self.credit_on not in (CREDIT_ON_ENGAGE, CREDIT_ON_RELEASE):
            raise ValueError(f"Unknown credit_on: {self.credit_on}")
        if self.threshold_mode not in (ABSOLUTE, RELATIVE, OFFSET):
            raise ValueError(f"Unknown threshold_mode: {self.threshold_mode}")
        if self.goal <= 0:
            raise ValueError("goal must be > 0")

    def resolve(self, bound, baseline):
        """Turn a configured bound into a signal value for this baseline."""
        if not math.isfinite(bound) or baseline is None:
            return bound
        if self.threshold_mode == RELATIVE:
            return bound * baseline
        if self.threshold_mode == OFFSET:
            return bound + (baseline - self.neutral)
        return bound


@dataclass
class GestureEvent:
    kind: str
    direction: Optional[str] = None
    value: Optional[float] = None
    reward: int = 0


# ========================================
# GESTURE DETECTOR
# ========================================

class GestureDetector:
    """
    Smoothing + calibration + hysteresis state machine for one exercise.

    One instance per session; nothing is shared between instances.
    """

    def __init__(self, config: GestureConfig):
        self.config = config
        self.smoother = SignalSmoother(config.window_size)
        self.calibrator = BaselineCalibrator(config.calibration_frames, default=config.neutral)
        self.state = NEUTRAL
        self.last_direction = None
        self.value = None
        self.tension_level = 0.0
        self.frames_processed = 0
        self.frames_skipped = 0
        self.closed = False

    @property
    def phase(self):
        """NEUTRAL, ENGAGED or CALIBRATING."""
        if self.calibrator.is_calibrating:
            return CALIBRATING
        return self.state

    @property
    def baseline(self):
        return self.calibrator.baseline

    def close(self):
        self.closed = True

    def process(self, frame: LandmarkFrame) -> Optional[List[GestureEvent]]:
        """
        Run one landmark frame through the detector.

        RETURNS:
            List of events, or None if the frame was skipped (closed detector,
            missing landmark, or a non-finite signal)
        """
        if self.closed:
            return None

        signal = finite_or_none(self.config.signal_fn(frame)) if frame is not None else None
        if signal is None:
            self.frames_skipped += 1
            logger.debug("%s: frame skipped (landmarks missing)", self.config.exercise)
            return None

        return self.update(signal)

    def update(self, raw_value) -> List[GestureEvent]:
        """
        Advance the state machine with one finite measurement.

        PARAMETERS:
            raw_value: Unsmoothed signal for this frame

        RETURNS:
            Events produced by this measurement (possibly empty)
        """
        cfg = self.config
        self.frames_processed += 1
        s = self.smoother.push(raw_value)
        self.value = s

        was_calibrating = self.calibrator.is_calibrating
        calibrating, baseline = self.calibrator.observe(s)
        if calibrating:
            return [GestureEvent(EVENT_CALIBRATING, value=s)]

        events = []
        if was_calibrating:
            events.append(GestureEvent(EVENT_CALIBRATED, value=baseline))

        self.tension_level = self._tension(s, baseline)

        if self.state == NEUTRAL:
            for rule in cfg.engage_rules:
                if rule.direction == self.last_direction:
                    continue
                if rule.fires(s, cfg.resolve(rule.bound, baseline)):
                    self.state = ENGAGED
                    self.last_direction = rule.direction
                    events.append(GestureEvent(EVENT_ENGAGED, rule.direction, s))
                    if cfg.credit_on == CREDIT_ON_ENGAGE:
                        events.append(GestureEvent(EVENT_REPETITION, rule.direction, s, cfg.reward_per_rep))
                    break

        elif self.state == ENGAGED:
            low = cfg.resolve(cfg.reset_low, baseline)
            high = cfg.resolve(cfg.reset_high, baseline)
            if low < s < high:
                direction = self.last_direction
                self.state = NEUTRAL
                self.last_direction = None
                events.append(GestureEvent(EVENT_RELEASED, direction, s))
                if cfg.credit_on == CREDIT_ON_RELEASE:
                    events.append(GestureEvent(EVENT_REPETITION, direction, s, cfg.reward_per_rep))

        return events

    def _tension(self, s, baseline):
        """
        How far the signal has travelled from rest toward the nearest engage
        bound, as a percentage clamped to [0, 100].
        """
        cfg = self.config
        ref = cfg.resolve(cfg.neutral, baseline)
        level = 0.0
        for rule in cfg.engage_rules:
            span = cfg.resolve(rule.bound, baseline) - ref
            if span == 0:
                continue
            level = max(level, (s - ref) / span * 100.0)
        return min(max(level, 0.0), 100.0)
