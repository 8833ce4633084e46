"""
HEAD ROTATION MODULE
====================
Turning the head left and right, counted once per side.

The nose position between the two ears gives a ratio that is 0.5 when facing
the camera and moves toward 0 or 1 as the head turns.
"""

from dataclasses import replace

from relaxify.calibration import CALIBRATION_FRAMES
from relaxify.exercises.engine import (
    CREDIT_ON_ENGAGE, OFFSET, EngageRule, FeedbackMessages, GestureConfig,
)
from relaxify.smoothing import safe_ratio

# ========================================
# HEAD ROTATION THRESHOLDS & CONSTANTS
# ========================================

EXERCISE = "head_movement"

LEFT_TURN_BOUND = 0.35         # Ratio below this = turned left
RIGHT_TURN_BOUND = 0.65        # Ratio above this = turned right
CENTER_LOW = 0.42              # Centered band (exclusive)
CENTER_HIGH = 0.58
SMOOTHING_WINDOW = 6
REWARD_PER_REP = 15
REP_GOAL = 10
VOCAL_COOLDOWN = 3.0


def nose_position_ratio(frame):
    """
    (nose.x - leftEar.x) / (rightEar.x - leftEar.x)

    RETURNS:
        Ratio (0.5 = facing forward), or None if a point is missing or the
        ear span has collapsed
    """
    nose = frame.pose_point("nose")
    left_ear = frame.pose_point("left_ear")
    right_ear = frame.pose_point("right_ear")
    if nose is None or left_ear is None or right_ear is None:
        return None
    return safe_ratio(nose.x - left_ear.x, right_ear.x - left_ear.x)


MESSAGES = FeedbackMessages(
    engaged={
        "left": "Turned left. Excellent range.",
        "right": "Turned right. Keep it smooth.",
    },
    released="Center reached.",
    ready="Slowly turn your head left, then right.",
    calibrating="Calibrating face...",
    calibrated="Face the camera, then turn.",
    complete="Smooth rotations. Your mobility is much better now.",
)

HEAD_ROTATION = GestureConfig(
    exercise=EXERCISE,
    signal_fn=nose_position_ratio,
    window_size=SMOOTHING_WINDOW,
    engage_rules=(
        EngageRule("left", LEFT_TURN_BOUND, above=False),
        EngageRule("right", RIGHT_TURN_BOUND, above=True),
    ),
    reset_low=CENTER_LOW,
    reset_high=CENTER_HIGH,
    reward_per_rep=REWARD_PER_REP,
    credit_on=CREDIT_ON_ENGAGE,
    neutral=0.5,
    goal=REP_GOAL,
    vocal_cooldown=VOCAL_COOLDOWN,
    messages=MESSAGES,
)


def make_config(calibrated=False, goal=REP_GOAL):
    """Head rotation configuration; `calibrated` centers on the user's rest ratio."""
    config = replace(HEAD_ROTATION, goal=goal)
    if calibrated:
        config = replace(config, calibration_frames=CALIBRATION_FRAMES, threshold_mode=OFFSET)
    return config
