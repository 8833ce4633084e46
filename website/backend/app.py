"""
Flask Backend Server for Relaxify
Handles per-client exercise sessions and blink monitoring via WebSocket
"""

import base64
import logging
import os
import time

import cv2
import numpy as np
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_socketio import SocketIO, emit

from relaxify import configure_logging
from relaxify.blink_monitor import BlinkMonitor
from relaxify.exercises import get_exercise, next_exercise
from relaxify.history import SessionHistory
from relaxify.landmarks import frame_from_payload
from relaxify.session import ExerciseSession

logger = logging.getLogger(__name__)

HOST = os.environ.get("RELAXIFY_HOST", "0.0.0.0")
PORT = int(os.environ.get("RELAXIFY_PORT", "5000"))

# Initialize Flask app
app = Flask(__name__)
app.config['SECRET_KEY'] = os.environ.get("RELAXIFY_SECRET_KEY", "relaxify-dev")

# Enable CORS for frontend communication
CORS(app)

# Initialize SocketIO with CORS support
socketio = SocketIO(app, cors_allowed_origins="*", async_mode='threading')

# Client sid -> ExerciseSession / BlinkMonitor
active_sessions = {}
monitors = {}

history = SessionHistory()

_pose_source = None


def get_pose_source():
    """Server-side pose model, only needed for raw image frames."""
    global _pose_source
    if _pose_source is None:
        # Imported here: ultralytics is an optional extra and slow to import
        from relaxify.pose_source import PoseSource
        _pose_source = PoseSource()
    return _pose_source


def decode_frame(data_url):
    """Decode a 'data:image/jpeg;base64,...' string into a BGR image."""
    encoded = data_url.split(',', 1)[1] if ',' in data_url else data_url
    img_data = base64.b64decode(encoded)
    nparr = np.frombuffer(img_data, np.uint8)
    frame = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    if frame is None:
        raise ValueError("Could not decode image")
    return frame


def _close_session(sid):
    session = active_sessions.pop(sid, None)
    if session is not None:
        session.close()
    return session


def _emit_result(session, landmarks):
    result = session.process_frame(landmarks)
    if result is None:
        emit('frame_result', {
            'success': False,
            'error': 'Session finished',
            'rep_count': session.rep_count,
        })
        return
    payload = result.to_dict()
    payload['success'] = result.processed
    if not result.processed:
        payload['error'] = 'Landmarks incomplete - reposition'
    emit('frame_result', payload)


# ========================================
# REST API ENDPOINTS
# ========================================

@app.route('/health')
def health():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'active_sessions': len(active_sessions),
        'monitors': len(monitors),
    })


@app.route('/history')
def get_history():
    """Saved sessions (newest first) and per-exercise totals"""
    return jsonify({'sessions': history.load(), 'totals': history.totals()})


# ========================================
# WEBSOCKET EVENTS
# ========================================

@socketio.on('connect')
def handle_connect():
    """Handle client connection"""
    logger.info("Client connected: %s", request.sid)
    emit('connected', {'message': 'Connected to Relaxify backend'})


@socketio.on('disconnect')
def handle_disconnect(*args):
    """Handle client disconnection"""
    logger.info("Client disconnected: %s", request.sid)
    _close_session(request.sid)
    monitor = monitors.pop(request.sid, None)
    if monitor is not None:
        monitor.close()


@socketio.on('start_session')
def handle_start_session(data=None):
    """
    Initialize a new exercise session

    Expected data:
        {
            'exercise_type': 'neck_tilt' | 'head_movement' | 'shoulder_shrug',
            'calibrated': bool (optional),
            'goal': int (optional)
        }
    """
    data = data or {}
    exercise_type = data.get('exercise_type', 'neck_tilt')
    sid = request.sid

    try:
        config = get_exercise(exercise_type,
                              calibrated=bool(data.get('calibrated', False)),
                              goal=data.get('goal'))
    except (TypeError, ValueError) as e:
        emit('error', {'message': str(e)})
        return

    logger.info("Starting session for %s: %s", sid, exercise_type)

    # Switching exercise discards whatever was running
    _close_session(sid)

    def speak(text, interrupt=False):
        emit('speak', {'text': text, 'interrupt': interrupt})

    def on_repetition(exercise, direction, value):
        emit('rep_event', {'exercise': exercise, 'direction': direction, 'value': value})

    def on_complete(record):
        entry = history.save(record)
        emit('session_complete', {
            'exercise': record.exercise,
            'repCount': record.counter,
            'rewardPoints': record.reward,
            'id': entry['id'],
            'next_exercise': next_exercise(record.exercise),
        })

    active_sessions[sid] = ExerciseSession(
        config, speak=speak, on_repetition=on_repetition, on_complete=on_complete)

    emit('session_started', {
        'exercise_type': exercise_type,
        'goal': config.goal,
        'message': config.messages.ready,
    })


@socketio.on('landmarks')
def handle_landmarks(data=None):
    """
    Process landmarks detected in the browser (MediaPipe)

    Expected data:
        {
            'pose': [ {x, y, z, visibility}, ... ] or {name: {x, y, ...}},
            'timestamp': epoch ms (Date.now()) or s (optional, informational)
        }

    Counting is frame-driven, so the timestamp does not affect reps.
    performance.now() values are not epoch based and must not be sent.
    """
    session = active_sessions.get(request.sid)
    if session is None:
        emit('error', {'message': 'No active session. Please start a session first.'})
        return
    _emit_result(session, frame_from_payload(data))


@socketio.on('process_frame')
def handle_process_frame(data=None):
    """
    Process a video frame from the client with the server-side pose model

    Expected data:
        {
            'frame': base64 encoded image string
        }
    """
    session = active_sessions.get(request.sid)
    if session is None:
        emit('error', {'message': 'No active session. Please start a session first.'})
        return

    try:
        frame = decode_frame((data or {})['frame'])
        landmarks = get_pose_source().detect(frame)
    except Exception as e:
        logger.warning("Error processing frame: %s", e)
        emit('error', {'message': f'Error processing frame: {str(e)}'})
        return

    _emit_result(session, landmarks)


@socketio.on('end_session')
def handle_end_session(data=None):
    """
    End the current exercise session

    Expected data:
        {
            'force_complete': bool (optional) - save current totals
        }
    """
    session = active_sessions.pop(request.sid, None)
    if session is None:
        emit('error', {'message': 'No active session to end'})
        return

    record = session.end(force_complete=bool((data or {}).get('force_complete', False)))

    emit('session_ended', {
        'exercise': session.exercise,
        'final_reps': session.rep_count,
        'reward': session.reward,
        'saved': record is not None or session.counter.complete,
        'next_exercise': next_exercise(session.exercise),
        'message': 'Session ended successfully',
    })
    logger.info("Session ended for %s. Final reps: %d", request.sid, session.rep_count)


@socketio.on('monitor_frame')
def handle_monitor_frame(data=None):
    """
    Feed face-mesh landmarks to the background blink / mood monitor

    Expected data:
        {
            'face': [ {x, y, z}, ... 468 ]
        }

    Blink timing uses the server receive time: a client 'timestamp' is
    ignored so the monitor, the stale timer and poll_monitoring share one
    clock.
    """
    now = time.time()
    monitor = monitors.get(request.sid)
    if monitor is None:
        monitor = monitors[request.sid] = BlinkMonitor(start_time=now)
    update = monitor.process(frame_from_payload(data), now=now)
    if update is not None:
        emit('monitoring_update', update.to_dict())


@socketio.on('poll_monitoring')
def handle_poll_monitoring(data=None):
    """Current monitoring stats for the dashboard (about once a second)"""
    monitor = monitors.get(request.sid)
    if monitor is None:
        emit('error', {'message': 'Monitoring not started'})
        return
    emit('monitoring_update', monitor.snapshot().to_dict())


# ========================================
# RUN SERVER
# ========================================

def main():
    configure_logging()
    print("\n" + "=" * 60)
    print("RELAXIFY BACKEND SERVER")
    print("=" * 60)
    print(f"Server starting on http://localhost:{PORT}")
    print("Press Ctrl+C to stop")
    print("=" * 60 + "\n")

    socketio.run(app, host=HOST, port=PORT, allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    main()
