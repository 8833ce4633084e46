"""
NECK TILT MODULE
================
Lateral neck tilt (ear toward shoulder), counted once per side.

- Signal: angle of the ear-to-ear line in degrees (0 = level head)
- Right tilt above +16°, left tilt below -16°
- Back to center inside ±10°; the 6° gap between the two keeps the count
  from flickering at the boundary
"""

from dataclasses import replace

from relaxify.calibration import CALIBRATION_FRAMES
from relaxify.exercises.engine import (
    CREDIT_ON_ENGAGE, OFFSET, EngageRule, FeedbackMessages, GestureConfig,
)
from relaxify.smoothing import line_angle_deg

# ========================================
# NECK TILT THRESHOLDS & CONSTANTS
# ========================================

EXERCISE = "neck_tilt"

TILT_ANGLE = 16.0              # Degrees past level that count as a tilt
RESET_ANGLE = 10.0             # Back within this many degrees = centered
SMOOTHING_WINDOW = 8           # Frames averaged
REWARD_PER_REP = 10
REP_GOAL = 10
VOCAL_COOLDOWN = 2.5           # Seconds between spoken prompts


def ear_tilt_angle(frame):
    """
    Tilt of the head from the two ear landmarks.

    RETURNS:
        Degrees (positive = tilted toward image right), or None if either ear
        is missing or the ears are vertically stacked
    """
    left_ear = frame.pose_point("left_ear")
    right_ear = frame.pose_point("right_ear")
    if left_ear is None or right_ear is None:
        return None
    return line_angle_deg(left_ear, right_ear)


MESSAGES = FeedbackMessages(
    engaged={
        "right": "Tilted right. Good stretch!",
        "left": "Tilted left. Keep going!",
    },
    released="Back to center. Get ready for the next one.",
    ready="Ready? Let's begin the Neck Tilt Flow.",
    calibrating="Hold your head level. Calibrating...",
    calibrated="Align your head in the center.",
    complete="Great job! Your neck flexibility is improving.",
)

NECK_TILT = GestureConfig(
    exercise=EXERCISE,
    signal_fn=ear_tilt_angle,
    window_size=SMOOTHING_WINDOW,
    engage_rules=(
        EngageRule("right", TILT_ANGLE, above=True),
        EngageRule("left", -TILT_ANGLE, above=False),
    ),
    reset_low=-RESET_ANGLE,
    reset_high=RESET_ANGLE,
    reward_per_rep=REWARD_PER_REP,
    credit_on=CREDIT_ON_ENGAGE,
    neutral=0.0,
    goal=REP_GOAL,
    vocal_cooldown=VOCAL_COOLDOWN,
    messages=MESSAGES,
)


def make_config(calibrated=False, goal=REP_GOAL):
    """
    Neck tilt configuration.

    PARAMETERS:
        calibrated: Measure the user's resting head angle first and tilt
                    relative to it (helps when the camera is not level)
        goal: Repetitions that complete the session
    """
    config = replace(NECK_TILT, goal=goal)
    if calibrated:
        config = replace(config, calibration_frames=CALIBRATION_FRAMES, threshold_mode=OFFSET)
    return config
