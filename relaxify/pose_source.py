"""
POSE SOURCE
===========
YOLOv8 pose model -> LandmarkFrame.

YOLOv8 detects 17 keypoints in COCO format, which covers everything the neck,
head and shoulder exercises need (nose, ears, shoulders).
"""

import logging
import os
import time

from ultralytics import YOLO

from relaxify.landmarks import frame_from_coco

logger = logging.getLogger(__name__)

# Weights file; ultralytics downloads the nano model on first use if missing
MODEL_PATH = os.environ.get("RELAXIFY_POSE_MODEL", "yolov8n-pose.pt")


class PoseSource:
    """
    Runs the pose model on BGR frames (OpenCV images).

    The model is loaded on first use so importing this module stays cheap.
    """

    def __init__(self, model_path=MODEL_PATH):
        self.model_path = model_path
        self._model = None

    @property
    def model(self):
        if self._model is None:
            logger.info("✓ Loading pose model from: %s", self.model_path)
            self._model = YOLO(self.model_path)
        return self._model

    def detect(self, image, timestamp=None):
        """
        Detect the first person in `image`.

        RETURNS:
            LandmarkFrame with named pose points, or None if nobody is visible
        """
        results = self.model(image, verbose=False)
        if not results or results[0].keypoints is None or len(results[0].keypoints) == 0:
            return None

        keypoints = results[0].keypoints
        xyn = keypoints.xyn[0].cpu().numpy()
        confs = keypoints.conf[0].cpu().numpy() if keypoints.conf is not None else None
        return frame_from_coco(xyn, confs, timestamp=timestamp if timestamp is not None else time.time())
