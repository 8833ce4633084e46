"""
LANDMARK MODULE
===============
Named keypoints for one camera frame.

Detectors hand us landmarks as index-ordered arrays (MediaPipe Pose: 33 points,
MediaPipe FaceMesh: 468/478 points, YOLOv8 pose: 17 COCO points). Everything
downstream works with names instead, so the index tables live here and nowhere
else.
"""

import math
import time
from dataclasses import dataclass, field
from typing import Dict, Optional

# ========================================
# LANDMARK CONSTANTS
# ========================================

MIN_VISIBILITY = 0.2           # Below this confidence a point counts as missing

POSE = "pose"
FACE = "face"

# MediaPipe Pose (BlazePose, 33 points). Only the upper body is named.
MEDIAPIPE_POSE_NAMES = {
    0: "nose",
    1: "left_eye_inner", 2: "left_eye", 3: "left_eye_outer",
    4: "right_eye_inner", 5: "right_eye", 6: "right_eye_outer",
    7: "left_ear", 8: "right_ear",
    9: "mouth_left", 10: "mouth_right",
    11: "left_shoulder", 12: "right_shoulder",
    13: "left_elbow", 14: "right_elbow",
    15: "left_wrist", 16: "right_wrist",
    23: "left_hip", 24: "right_hip",
}

# YOLOv8 pose, COCO-17 format:
#   0: nose, 1-2: eyes, 3-4: ears, 5-6: shoulders,
#   7-8: elbows, 9-10: wrists, 11-12: hips,
#   13-14: knees, 15-16: ankles
COCO_POSE_NAMES = {
    0: "nose",
    1: "left_eye", 2: "right_eye",
    3: "left_ear", 4: "right_ear",
    5: "left_shoulder", 6: "right_shoulder",
    7: "left_elbow", 8: "right_elbow",
    9: "left_wrist", 10: "right_wrist",
    11: "left_hip", 12: "right_hip",
    13: "left_knee", 14: "right_knee",
    15: "left_ankle", 16: "right_ankle",
}

# MediaPipe FaceMesh points used by the blink / mood monitor
FACE_MESH_NAMES = {
    1: "nose_tip",
    14: "lower_lip",
    33: "left_eye_outer",
    55: "left_brow_inner",
    61: "mouth_left",
    133: "left_eye_inner",
    145: "left_eye_bottom",
    159: "left_eye_top",
    263: "right_eye_outer",
    285: "right_brow_inner",
    291: "mouth_right",
    362: "right_eye_inner",
    374: "right_eye_bottom",
    386: "right_eye_top",
}


# ========================================
# DATA TYPES
# ========================================

@dataclass(frozen=True)
class Landmark:
    """One normalized keypoint (0-1 relative to frame width / height)."""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


@dataclass
class LandmarkFrame:
    """
    Timestamped set of named keypoints.

    ATTRIBUTES:
        timestamp: Seconds (same clock as time.time())
        pose: name -> Landmark for body keypoints
        face: name -> Landmark for face-mesh keypoints
    """
    timestamp: float = field(default_factory=time.time)
    pose: Dict[str, Landmark] = field(default_factory=dict)
    face: Dict[str, Landmark] = field(default_factory=dict)

    def point(self, group: str, name: str) -> Optional[Landmark]:
        """Return the named landmark, or None if missing or barely visible."""
        points = self.pose if group == POSE else self.face
        lm = points.get(name)
        if lm is None or lm.visibility < MIN_VISIBILITY:
            return None
        return lm

    def pose_point(self, name):
        return self.point(POSE, name)

    def face_point(self, name):
        return self.point(FACE, name)

    @property
    def is_empty(self):
        return not self.pose and not self.face


# ========================================
# PARSING HELPERS
# ========================================

def _to_float(value, default=None):
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(number):
        return default
    return number


def landmark_from_dict(raw) -> Optional[Landmark]:
    """
    Build a Landmark from a {"x", "y", "z", "visibility"} mapping.

    RETURNS:
        Landmark, or None when x / y are absent or not finite numbers
    """
    if not isinstance(raw, dict):
        return None
    x = _to_float(raw.get("x"))
    y = _to_float(raw.get("y"))
    if x is None or y is None:
        return None
    return Landmark(
        x=x,
        y=y,
        z=_to_float(raw.get("z"), 0.0),
        visibility=_to_float(raw.get("visibility"), 1.0),
    )


def name_points(points, names) -> Dict[str, Landmark]:
    """
    Convert an index-ordered landmark list into a name -> Landmark map.

    PARAMETERS:
        points: Sequence of dicts or Landmark objects (None entries allowed)
        names: Index -> name table (e.g. MEDIAPIPE_POSE_NAMES)
    """
    named = {}
    for idx, name in names.items():
        if idx >= len(points):
            continue
        raw = points[idx]
        lm = raw if isinstance(raw, Landmark) else landmark_from_dict(raw)
        if lm is not None:
            named[name] = lm
    return named


def _parse_group(raw, names):
    if not raw:
        return {}
    if isinstance(raw, dict):
        # Already keyed by name
        parsed = {}
        for name, value in raw.items():
            lm = landmark_from_dict(value)
            if lm is not None:
                parsed[str(name)] = lm
        return parsed
    if isinstance(raw, (list, tuple)):
        return name_points(raw, names)
    return {}


def frame_from_payload(payload, timestamp=None) -> LandmarkFrame:
    """
    Build a LandmarkFrame from a client message.

    Accepts either raw MediaPipe arrays or name-keyed mappings:
        {"pose": [ {x, y, z, visibility}, ... 33 ],
         "face": [ {x, y, z}, ... 468 ],
         "timestamp": 1712345678.25}

    A "timestamp" field in milliseconds (browser Date.now()) is converted to
    seconds. Timestamps must be epoch based: a performance.now() value is
    read as seconds since 1970. Consumers that time events across frames
    (the blink monitor) use the receiver's clock instead.
    """
    payload = payload or {}
    ts = _to_float(payload.get("timestamp"))
    if ts is None:
        ts = timestamp if timestamp is not None else time.time()
    elif ts > 1e11:
        ts = ts / 1000.0

    return LandmarkFrame(
        timestamp=ts,
        pose=_parse_group(payload.get("pose"), MEDIAPIPE_POSE_NAMES),
        face=_parse_group(payload.get("face"), FACE_MESH_NAMES),
    )


def frame_from_coco(keypoints_xyn, confidences, timestamp=None) -> LandmarkFrame:
    """
    Build a LandmarkFrame from YOLOv8 pose output for one person.

    PARAMETERS:
        keypoints_xyn: (17, 2) array of normalized x, y
        confidences: (17,) array of keypoint confidences
    """
    pose = {}
    for idx, name in COCO_POSE_NAMES.items():
        if idx >= len(keypoints_xyn):
            continue
        x, y = float(keypoints_xyn[idx][0]), float(keypoints_xyn[idx][1])
        conf = float(confidences[idx]) if confidences is not None else 1.0
        # YOLO reports undetected points at (0, 0)
        if x == 0.0 and y == 0.0:
            continue
        pose[name] = Landmark(x=x, y=y, visibility=conf)
    return LandmarkFrame(
        timestamp=timestamp if timestamp is not None else time.time(),
        pose=pose,
    )
