"""
SHOULDER SHRUG MODULE
=====================
Raise the shoulders toward the ears, hold, release.

- Signal: vertical nose-to-shoulder distance divided by shoulder width. It
  shrinks as the shoulders rise (image y grows downward).
- Always calibrated: the first 30 frames set the user's resting ratio.
- Shrugging below 80% of the baseline, released above 95%.
- The rep is credited on the release, so only a completed shrug counts.
"""

from dataclasses import replace

from relaxify.calibration import CALIBRATION_FRAMES
from relaxify.exercises.engine import (
    CREDIT_ON_RELEASE, RELATIVE, EngageRule, FeedbackMessages, GestureConfig,
)
from relaxify.smoothing import safe_ratio

# ========================================
# SHOULDER SHRUG THRESHOLDS & CONSTANTS
# ========================================

EXERCISE = "shoulder_shrug"

SHRUG_FACTOR = 0.80            # Ratio below baseline * this = shrugging
RELEASE_FACTOR = 0.95          # Ratio above baseline * this = released
SMOOTHING_WINDOW = 5
REWARD_PER_REP = 15
REP_GOAL = 20
VOCAL_COOLDOWN = 2.5


def shoulder_lift_ratio(frame):
    """
    (avg shoulder y - nose y) / |rightShoulder.x - leftShoulder.x|

    RETURNS:
        Ratio, or None if a point is missing or the shoulders overlap
    """
    nose = frame.pose_point("nose")
    left = frame.pose_point("left_shoulder")
    right = frame.pose_point("right_shoulder")
    if nose is None or left is None or right is None:
        return None
    shoulder_y = (left.y + right.y) / 2.0
    return safe_ratio(shoulder_y - nose.y, abs(right.x - left.x))


MESSAGES = FeedbackMessages(
    engaged={"up": "Hold that tension. Now drop slowly."},
    released="Perfect release.",
    ready="Relax your shoulders and look at the camera.",
    calibrating="Calibrating sensors...",
    calibrated="Lift your shoulders toward your ears.",
    complete="Shoulders released. Session complete.",
    vocalize_release=True,
)

SHOULDER_SHRUG = GestureConfig(
    exercise=EXERCISE,
    signal_fn=shoulder_lift_ratio,
    window_size=SMOOTHING_WINDOW,
    engage_rules=(EngageRule("up", SHRUG_FACTOR, above=False),),
    reset_low=RELEASE_FACTOR,
    reward_per_rep=REWARD_PER_REP,
    credit_on=CREDIT_ON_RELEASE,
    calibration_frames=CALIBRATION_FRAMES,
    threshold_mode=RELATIVE,
    neutral=1.0,
    goal=REP_GOAL,
    vocal_cooldown=VOCAL_COOLDOWN,
    messages=MESSAGES,
)


def make_config(calibrated=True, goal=REP_GOAL):
    """Shoulder shrug configuration. The shrug is always baseline-relative."""
    return replace(SHOULDER_SHRUG, goal=goal)
