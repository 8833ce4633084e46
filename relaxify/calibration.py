"""
CALIBRATION MODULE
==================
Personal neutral reference for a signal, learned at the start of a session.

Camera distance and angle differ per user, so a detector can compare against
the user's own resting value instead of a fixed constant.
"""

import logging

logger = logging.getLogger(__name__)

# Frames averaged before detection starts (~1 second at 30 fps)
CALIBRATION_FRAMES = 30


class BaselineCalibrator:
    """
    Running mean over the first `frames` observations, then frozen.

    HOW IT WORKS:
        1. observe() updates an incremental mean for the first K calls
        2. The K-th call freezes the mean
        3. Every later call returns the same frozen baseline

    With frames=0 there is nothing to learn: the calibrator reports
    `default` as its baseline from the start.
    """

    def __init__(self, frames=CALIBRATION_FRAMES, default=None):
        if frames < 0:
            raise ValueError("frames must be >= 0")
        self.frames = frames
        self.count = 0
        self._mean = 0.0
        self._baseline = default if frames == 0 else None

    @property
    def is_calibrating(self):
        return self.count < self.frames

    @property
    def baseline(self):
        return self._baseline

    @property
    def progress(self):
        """Fraction of calibration frames collected (1.0 once frozen)."""
        if self.frames == 0:
            return 1.0
        return min(self.count / self.frames, 1.0)

    def observe(self, value):
        """
        Feed one smoothed measurement.

        RETURNS:
            (is_calibrating, baseline)
                - (True, None) while still collecting
                - (False, baseline) on and after the K-th observation
        """
        if not self.is_calibrating:
            return False, self._baseline

        self.count += 1
        self._mean += (float(value) - self._mean) / self.count

        if self.count < self.frames:
            return True, None

        self._baseline = self._mean
        logger.info("✓ Baseline calibrated: %.4f over %d frames", self._baseline, self.count)
        return False, self._baseline
