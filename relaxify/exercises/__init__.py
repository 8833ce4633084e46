"""
Exercise registry: exercise id -> configuration factory.
"""

from relaxify.exercises import head_rotation, neck_tilt, shoulder_shrug

EXERCISES = {
    neck_tilt.EXERCISE: neck_tilt.make_config,
    head_rotation.EXERCISE: head_rotation.make_config,
    shoulder_shrug.EXERCISE: shoulder_shrug.make_config,
}

# Order used when the user presses "Next" after finishing an exercise
EXERCISE_CYCLE = [neck_tilt.EXERCISE, head_rotation.EXERCISE, shoulder_shrug.EXERCISE]


def get_exercise(name, calibrated=False, goal=None):
    """
    Build the GestureConfig for an exercise id.

    RAISES:
        ValueError: unknown exercise id
    """
    try:
        factory = EXERCISES[name]
    except KeyError:
        raise ValueError(f"Unknown exercise: {name!r}. Choose one of {sorted(EXERCISES)}") from None
    if goal is None:
        return factory(calibrated=calibrated)
    return factory(calibrated=calibrated, goal=goal)


def next_exercise(current=None):
    """Exercise that follows `current` in the cycle (wraps around)."""
    if current not in EXERCISE_CYCLE:
        return EXERCISE_CYCLE[0]
    idx = EXERCISE_CYCLE.index(current)
    return EXERCISE_CYCLE[(idx + 1) % len(EXERCISE_CYCLE)]
