"""
SESSION MODULE
==============
Rep counter and the per-exercise session that wires a detector to it.

An ExerciseSession is created when the user starts an exercise and thrown
away when they leave it; switching exercise means a brand new session, so no
smoothing or calibration carries over.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Optional

from relaxify.exercises.engine import (
    EVENT_CALIBRATED, EVENT_CALIBRATING, EVENT_ENGAGED, EVENT_RELEASED,
    EVENT_REPETITION, GestureConfig, GestureDetector,
)
from relaxify.voice_feedback import FeedbackEmitter

logger = logging.getLogger(__name__)


# ========================================
# SESSION COUNTER
# ========================================

@dataclass
class CompletionRecord:
    """What gets persisted once a session finishes."""
    exercise: str
    counter: int
    reward: int

    def to_dict(self):
        return asdict(self)


class SessionCounter:
    """
    Running rep count and reward toward a goal.

    RULES:
        - Only counts up; never resets mid-session
        - Completes exactly once, when rep_count reaches goal
        - After completion (or discard) further credits are ignored
    """

    def __init__(self, exercise, goal, on_complete=None):
        if goal <= 0:
            raise ValueError("goal must be > 0")
        self.exercise = exercise
        self.goal = goal
        self.on_complete = on_complete
        self.rep_count = 0
        self.reward_points = 0
        self.complete = False
        self.discarded = False
        self.record = None

    @property
    def frozen(self):
        return self.complete or self.discarded

    @property
    def progress(self):
        """Percent of the goal reached, capped at 100."""
        return min(self.rep_count / self.goal * 100.0, 100.0)

    def on_repetition_credited(self, reward_delta):
        """
        Count one validated repetition.

        RETURNS:
            CompletionRecord if this credit completed the session, else None
        """
        if self.frozen:
            return None
        self.rep_count += 1
        self.reward_points += int(reward_delta)
        if self.rep_count >= self.goal:
            return self._finish()
        return None

    def force_complete(self):
        """End now with the current totals (the user pressed "End Session")."""
        if self.frozen:
            return None
        return self._finish()

    def discard(self):
        """Abandon the session without reporting anything."""
        if not self.complete:
            self.discarded = True

    def _finish(self):
        self.complete = True
        self.record = CompletionRecord(self.exercise, self.rep_count, self.reward_points)
        logger.info("✓ %s complete: %d reps, %d points",
                    self.exercise, self.rep_count, self.reward_points)
        if self.on_complete is not None:
            self.on_complete(self.record)
        return self.record


# ========================================
# EXERCISE SESSION
# ========================================

@dataclass
class FrameResult:
    """Per-frame snapshot handed to the UI layer."""
    exercise: str
    processed: bool
    rep_count: int
    reward: int
    goal: int
    state: str
    feedback: str
    value: Optional[float] = None
    baseline: Optional[float] = None
    tension_level: float = 0.0
    rep_completed: bool = False
    direction: Optional[str] = None
    complete: bool = False

    def to_dict(self):
        return asdict(self)


class ExerciseSession:
    """
    One exercise from start to finish.

    PARAMETERS:
        config: GestureConfig of the exercise
        speak: Callable(text, interrupt=False) for spoken prompts
        on_repetition: Callable(exercise, direction, value) per credited rep
        on_complete: Callable(CompletionRecord) when the session completes
        clock: Time source for the speech cooldown
    """

    def __init__(self, config: GestureConfig, speak=None, on_repetition=None,
                 on_complete=None, clock=time.time):
        self.config = config
        self.exercise = config.exercise
        self.detector = GestureDetector(config)
        self.counter = SessionCounter(config.exercise, config.goal, on_complete=self._handle_complete)
        self.emitter = FeedbackEmitter(
            speak=speak,
            cooldown=config.vocal_cooldown,
            clock=clock,
            status_text=config.messages.ready,
        )
        self._speak = speak
        self._on_repetition = on_repetition
        self._on_complete = on_complete
        self.closed = False

    @property
    def rep_count(self):
        return self.counter.rep_count

    @property
    def reward(self):
        return self.counter.reward_points

    def process_frame(self, frame):
        """
        Feed one LandmarkFrame.

        RETURNS:
            FrameResult, or None once the session is closed or complete
        """
        if self.closed or self.counter.frozen:
            return None

        events = self.detector.process(frame)
        if events is None:
            return self._result(processed=False)

        rep_completed = False
        direction = None
        msgs = self.config.messages

        for event in events:
            if event.kind == EVENT_CALIBRATING:
                self.emitter.notify(msgs.calibrating)
            elif event.kind == EVENT_CALIBRATED:
                self.emitter.notify(msgs.calibrated)
            elif event.kind == EVENT_ENGAGED:
                self.emitter.notify(msgs.engaged.get(event.direction, msgs.released), vocalize=True)
            elif event.kind == EVENT_RELEASED:
                self.emitter.notify(msgs.released, vocalize=msgs.vocalize_release)
            elif event.kind == EVENT_REPETITION:
                rep_completed = True
                direction = event.direction
                logger.info("✓ %s rep (%s)! Total: %d",
                            self.exercise, event.direction or "-", self.counter.rep_count + 1)
                if self._on_repetition is not None:
                    self._on_repetition(self.exercise, event.direction, event.value)
                self.counter.on_repetition_credited(event.reward)
                if self.counter.complete:
                    break

        return self._result(processed=True, rep_completed=rep_completed, direction=direction)

    def end(self, force_complete=False):
        """
        Leave the exercise.

        PARAMETERS:
            force_complete: Report the current totals as a finished session
                            instead of discarding them

        RETURNS:
            CompletionRecord if one was produced by this call
        """
        record = None
        if force_complete:
            record = self.counter.force_complete()
        else:
            self.counter.discard()
        self.close()
        return record

    def close(self):
        """Stop reacting to frames; late arrivals are ignored."""
        self.closed = True
        self.detector.close()

    def _handle_complete(self, record):
        self.emitter.status_text = self.config.messages.complete
        if self._speak is not None:
            self._speak(self.config.messages.complete, interrupt=True)
        if self._on_complete is not None:
            self._on_complete(record)

    def _result(self, processed, rep_completed=False, direction=None):
        det = self.detector
        return FrameResult(
            exercise=self.exercise,
            processed=processed,
            rep_count=self.counter.rep_count,
            reward=self.counter.reward_points,
            goal=self.counter.goal,
            state=det.phase,
            feedback=self.emitter.status_text,
            value=det.value,
            baseline=det.baseline,
            tension_level=round(det.tension_level, 1),
            rep_completed=rep_completed,
            direction=direction,
            complete=self.counter.complete,
        )
