"""
REAL-TIME WEBCAM RUNNER
=======================
Pick an exercise, follow it on the webcam, hear the coach.

Controls:
    'q' - Quit (discard)
    'e' - End session and save current totals
    'p' - Pause/Resume
"""

import argparse
import logging
import time

import cv2

from relaxify import configure_logging
from relaxify.exercises import EXERCISE_CYCLE, get_exercise, next_exercise
from relaxify.history import SessionHistory
from relaxify.pose_source import PoseSource
from relaxify.session import ExerciseSession
from relaxify.voice_feedback import VoiceCoach

logger = logging.getLogger(__name__)

# ========================================
# CONFIGURATION PARAMETERS
# ========================================

VIDEO_SOURCE = 0               # 0 = default webcam, or path to a video file
WINDOW_NAME = "Relaxify Coach"
FRAME_SKIP = 1                 # Process every N-th frame

LABELS = {
    "neck_tilt": "Neck Tilt",
    "head_movement": "Head Rotation",
    "shoulder_shrug": "Shoulder Shrug",
}


def current_session():
    """
    Prompt user to select an exercise.

    RETURNS:
        Exercise id
    """
    print("\n" + "=" * 60)
    print("SELECT EXERCISE")
    print("=" * 60)
    for i, name in enumerate(EXERCISE_CYCLE, start=1):
        print(f"{i}. {LABELS[name]}")
    print("=" * 60)

    while True:
        choice = input(f"Enter your choice (1-{len(EXERCISE_CYCLE)}): ").strip()
        if choice.isdigit() and 1 <= int(choice) <= len(EXERCISE_CYCLE):
            return EXERCISE_CYCLE[int(choice) - 1]
        print("Invalid choice.")


def draw_overlay(frame, result, label):
    """Rep count, status line and tension bar."""
    cv2.putText(frame, f"{label}: {result.rep_count}/{result.goal}  +{result.reward}",
                (20, 40), cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 255, 0), 2)
    cv2.putText(frame, result.feedback, (20, frame.shape[0] - 30),
                cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2, cv2.LINE_AA)
    if result.tension_level > 0:
        width = int(2 * result.tension_level)
        cv2.rectangle(frame, (20, 60), (20 + width, 75), (0, 200, 255), -1)


def run(exercise, calibrated=False, video_source=VIDEO_SOURCE, history=None):
    """
    Main webcam loop for one exercise.

    RETURNS:
        CompletionRecord, or None if the user quit early
    """
    history = history or SessionHistory()
    voice = VoiceCoach()
    pose = PoseSource()
    completed = []

    session = ExerciseSession(
        get_exercise(exercise, calibrated=calibrated),
        speak=voice.speak,
        on_complete=completed.append,
    )
    label = LABELS[exercise]
    voice.speak(session.config.messages.ready, interrupt=True)

    cap = cv2.VideoCapture(video_source)
    cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
    paused = False
    frame_idx = 0
    record = None

    try:
        while cap.isOpened():
            ret, frame = cap.read()
            if not ret:
                break

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                session.end()
                break
            if key == ord("e"):
                record = session.end(force_complete=True)
                break
            if key == ord("p"):
                paused = not paused

            if paused:
                cv2.putText(frame, "PAUSED (press 'p' to resume)", (20, 40),
                            cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 200, 255), 2)
                cv2.imshow(WINDOW_NAME, frame)
                continue

            frame_idx += 1
            if frame_idx % FRAME_SKIP:
                continue

            landmarks = pose.detect(frame, timestamp=time.time())
            result = session.process_frame(landmarks)
            if result is None:
                break
            if not result.processed:
                cv2.putText(frame, "Person not detected", (20, 70),
                            cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 255), 2)
            draw_overlay(frame, result, label)
            cv2.imshow(WINDOW_NAME, frame)

            if result.complete:
                break
    finally:
        cap.release()
        cv2.destroyAllWindows()

    if completed:
        record = completed[0]
    if record is not None:
        history.save(record)

    # Give the celebration line a moment before the worker is stopped
    time.sleep(1.0)
    voice.stop()
    return record


def main(argv=None):
    parser = argparse.ArgumentParser(description="Relaxify webcam coach")
    parser.add_argument("--exercise", choices=EXERCISE_CYCLE)
    parser.add_argument("--calibrated", action="store_true",
                        help="calibrate tilt/rotation thresholds to your resting pose")
    parser.add_argument("--source", default=VIDEO_SOURCE,
                        help="webcam index or video file")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    source = int(args.source) if str(args.source).isdigit() else args.source
    exercise = args.exercise or current_session()

    print("\n" + "=" * 60)
    print(f"STARTING {LABELS[exercise].upper()}")
    print("=" * 60)
    print("  'q' - Quit   'e' - End & save   'p' - Pause/Resume")
    print("=" * 60 + "\n")

    record = run(exercise, calibrated=args.calibrated, video_source=source)

    print("\n" + "=" * 60)
    print("SESSION ENDED")
    print("=" * 60)
    if record is not None:
        print(f"  {LABELS[exercise]}: {record.counter} reps, {record.reward} points")
        print(f"  Up next: {LABELS[next_exercise(exercise)]}")
    else:
        print("  Session discarded")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
