"""
Backend tests: REST endpoints and the WebSocket session flow
"""

import math
import time

import pytest

import website.backend.app as backend
from relaxify.history import SessionHistory


@pytest.fixture
def history(tmp_path, monkeypatch):
    store = SessionHistory(str(tmp_path / "history.json"))
    monkeypatch.setattr(backend, "history", store)
    return store


@pytest.fixture
def client(history):
    client = backend.socketio.test_client(backend.app)
    client.get_received()  # drop 'connected'
    yield client
    if client.is_connected():
        client.disconnect()


def events(client, name):
    return [msg["args"][0] for msg in client.get_received() if msg["name"] == name]


def tilt_payload(angle_deg):
    rad = math.radians(angle_deg)
    return {
        "pose": {
            "left_ear": {"x": 0.4, "y": 0.5},
            "right_ear": {"x": 0.4 + 0.2 * math.cos(rad), "y": 0.5 + 0.2 * math.sin(rad)},
        },
    }


def face_payload(gap, timestamp=None):
    face = {}
    for side, x0 in (("left", 0.3), ("right", 0.6)):
        face[f"{side}_eye_outer"] = {"x": x0, "y": 0.45}
        face[f"{side}_eye_inner"] = {"x": x0 + 0.1, "y": 0.45}
        face[f"{side}_eye_top"] = {"x": x0 + 0.05, "y": 0.45 - gap / 2}
        face[f"{side}_eye_bottom"] = {"x": x0 + 0.05, "y": 0.45 + gap / 2}
    return {"face": face, "timestamp": timestamp}


# ========================================
# REST
# ========================================

def test_health(history):
    response = backend.app.test_client().get('/health')
    assert response.status_code == 200
    assert response.get_json()["status"] == "healthy"


def test_history_endpoint(history):
    history.save({"exercise": "neck_tilt", "counter": 10, "reward": 100})
    data = backend.app.test_client().get('/history').get_json()
    assert len(data["sessions"]) == 1
    assert data["totals"]["neck_tilt"]["reward"] == 100


# ========================================
# WEBSOCKET
# ========================================

def test_connect_greets_client(history):
    client = backend.socketio.test_client(backend.app)
    assert "connected" in [msg["name"] for msg in client.get_received()]
    client.disconnect()


def test_unknown_exercise_is_an_error(client):
    client.emit('start_session', {'exercise_type': 'yoga'})
    errors = events(client, 'error')
    assert errors and 'yoga' in errors[0]['message']


def test_landmarks_without_session(client):
    client.emit('landmarks', tilt_payload(0.0))
    assert events(client, 'error')


def test_neck_tilt_session_completes_and_is_saved(client, history):
    client.emit('start_session', {'exercise_type': 'neck_tilt', 'goal': 2})
    started = events(client, 'session_started')
    assert started[0]['goal'] == 2

    for angle in [20.0] * 8 + [0.0] * 8 + [-20.0] * 8:
        client.emit('landmarks', tilt_payload(angle))

    received = client.get_received()
    names = [msg["name"] for msg in received]
    assert names.count('rep_event') == 2
    assert names.count('session_complete') == 1

    complete = next(m["args"][0] for m in received if m["name"] == 'session_complete')
    assert complete['repCount'] == 2
    assert complete['rewardPoints'] == 20
    assert complete['next_exercise'] == 'head_movement'

    saved = history.load()
    assert len(saved) == 1
    assert saved[0]['id'] == complete['id']

    # Frames after completion are rejected
    client.emit('landmarks', tilt_payload(20.0))
    late = events(client, 'frame_result')
    assert late[0]['success'] is False


def test_incomplete_landmarks_reported(client):
    client.emit('start_session', {'exercise_type': 'head_movement'})
    client.get_received()
    client.emit('landmarks', {'pose': {'nose': {'x': 0.5, 'y': 0.4}}})
    result = events(client, 'frame_result')[0]
    assert result['success'] is False
    assert result['rep_count'] == 0


def test_end_session_discards_by_default(client, history):
    client.emit('start_session', {'exercise_type': 'neck_tilt'})
    client.emit('landmarks', tilt_payload(20.0))
    client.get_received()

    client.emit('end_session')
    ended = events(client, 'session_ended')[0]
    assert ended['final_reps'] == 1
    assert ended['saved'] is False
    assert history.load() == []


def test_end_session_force_complete_saves(client, history):
    client.emit('start_session', {'exercise_type': 'neck_tilt'})
    client.emit('landmarks', tilt_payload(20.0))
    client.get_received()

    client.emit('end_session', {'force_complete': True})
    received = client.get_received()
    names = [msg["name"] for msg in received]
    assert 'session_complete' in names
    ended = next(m["args"][0] for m in received if m["name"] == 'session_ended')
    assert ended['saved'] is True
    assert history.load()[0]['counter'] == 1


def test_end_without_session(client):
    client.emit('end_session')
    assert events(client, 'error')


def test_monitoring_flow(client):
    client.emit('poll_monitoring')
    assert events(client, 'error')

    for i in range(30):
        client.emit('monitor_frame', face_payload(0.005 if i == 10 else 0.03))
    updates = events(client, 'monitoring_update')
    assert len(updates) == 1
    assert updates[0]['sessionBlinks'] == 1

    client.emit('poll_monitoring')
    polled = events(client, 'monitoring_update')[0]
    assert polled['sessionBlinks'] == 1


@pytest.mark.parametrize("client_clock", [
    lambda: time.time() + 30.0,          # browser clock running ahead
    lambda: 1234.5,                      # performance.now() style value
])
def test_monitor_uses_server_receive_time(client, client_clock):
    before = time.time()
    client.emit('monitor_frame', face_payload(0.03, timestamp=client_clock()))
    client.emit('monitor_frame', face_payload(0.005, timestamp=client_clock()))
    after = time.time()

    client.emit('poll_monitoring')
    polled = events(client, 'monitoring_update')[0]
    assert polled['sessionBlinks'] == 1
    assert before <= polled['lastBlinkTimestamp'] <= after
    assert polled['isStrained'] is False

    monitor = list(backend.monitors.values())[0]
    # No blink for 20 s of server time with a low rate: strained
    assert monitor.snapshot(after + 20.0).isStrained is True
