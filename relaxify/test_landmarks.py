"""
Tests for landmark parsing.
"""

import numpy as np

from relaxify.landmarks import (
    FACE_MESH_NAMES, Landmark, LandmarkFrame, frame_from_coco, frame_from_payload,
)


def _mediapipe_pose(n=33):
    return [{"x": i / 100.0, "y": 0.5, "z": 0.0, "visibility": 0.9} for i in range(n)]


def test_mediapipe_pose_array_is_named():
    frame = frame_from_payload({"pose": _mediapipe_pose(), "timestamp": 12.5})
    assert frame.timestamp == 12.5
    assert frame.pose_point("nose").x == 0.0
    assert frame.pose_point("left_ear").x == 0.07
    assert frame.pose_point("right_shoulder").x == 0.12


def test_millisecond_timestamp_converted():
    frame = frame_from_payload({"pose": [], "timestamp": 1712345678250})
    assert frame.timestamp == 1712345678.25


def test_named_mapping_and_bad_points():
    frame = frame_from_payload({
        "pose": {
            "nose": {"x": 0.5, "y": 0.3},
            "left_ear": {"x": "nan", "y": 0.3},
            "right_ear": None,
        },
    })
    assert frame.pose_point("nose") == Landmark(0.5, 0.3)
    assert frame.pose_point("left_ear") is None
    assert frame.pose_point("right_ear") is None


def test_low_visibility_counts_as_missing():
    frame = LandmarkFrame(pose={"nose": Landmark(0.5, 0.5, visibility=0.1)})
    assert frame.pose_point("nose") is None


def test_face_mesh_array():
    points = [{"x": 0.0, "y": 0.0, "z": 0.0}] * 468
    frame = frame_from_payload({"face": points})
    assert set(frame.face) == set(FACE_MESH_NAMES.values())
    assert frame.face_point("left_eye_top") is not None


def test_empty_payload():
    frame = frame_from_payload(None)
    assert frame.is_empty


def test_coco_keypoints_skip_undetected():
    xyn = np.zeros((17, 2))
    xyn[0] = (0.5, 0.3)
    xyn[3] = (0.55, 0.3)
    conf = np.full(17, 0.8)
    frame = frame_from_coco(xyn, conf, timestamp=1.0)
    assert frame.pose_point("nose") == Landmark(0.5, 0.3, visibility=0.8)
    assert frame.pose_point("left_ear") is not None
    assert frame.pose_point("right_ear") is None
