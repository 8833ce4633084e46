"""
RELAXIFY COACH
==============
Repetition counting and eye-strain monitoring for desk-wellness exercises.

The package turns a stream of pose / face landmarks (produced by an external
detector) into de-duplicated rep counts, session progress and coaching
feedback.
"""

import logging

__version__ = "0.3.0"


def configure_logging(level=logging.INFO):
    """Basic console logging for the command-line and server entry points."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
    )
