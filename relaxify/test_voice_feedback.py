"""
Tests for the feedback emitter cooldown and the speech queue.
"""

from relaxify.voice_feedback import FeedbackEmitter, VoiceCoach


class FakeClock:
    def __init__(self, t=0.0):
        self.t = t

    def __call__(self):
        return self.t


def test_first_message_is_spoken_immediately():
    spoken = []
    emitter = FeedbackEmitter(speak=spoken.append, cooldown=2.5, clock=FakeClock(0.0))
    assert emitter.notify("Tilted right.", vocalize=True)
    assert spoken == ["Tilted right."]


def test_cooldown_suppresses_speech_but_not_status():
    spoken = []
    clock = FakeClock(10.0)
    emitter = FeedbackEmitter(speak=spoken.append, cooldown=2.5, clock=clock)
    emitter.notify("one", vocalize=True)

    clock.t = 11.0
    assert not emitter.notify("two", vocalize=True)
    assert emitter.status_text == "two"

    clock.t = 12.5
    assert emitter.notify("three", vocalize=True)
    assert spoken == ["one", "three"]


def test_silent_messages_only_update_status():
    spoken = []
    emitter = FeedbackEmitter(speak=spoken.append, clock=FakeClock())
    assert not emitter.notify("Calibrating...")
    assert emitter.status_text == "Calibrating..."
    assert spoken == []
    # A silent message does not start the cooldown
    assert emitter.notify("Go", vocalize=True)


def test_no_speaker_configured():
    emitter = FeedbackEmitter(speak=None)
    assert not emitter.notify("hello", vocalize=True)
    assert emitter.status_text == "hello"


# ========================================
# VOICE COACH QUEUE
# ========================================

def _offline_coach(monkeypatch):
    coach = VoiceCoach()
    monkeypatch.setattr(coach, "start", lambda: None)
    return coach


def test_duplicate_text_is_not_queued_twice(monkeypatch):
    coach = _offline_coach(monkeypatch)
    coach.speak("Drop slowly.")
    coach.speak("Drop slowly.")
    assert coach.pending() == 1
    coach.speak("Lift again.")
    assert coach.pending() == 2


def test_interrupt_drops_waiting_prompts(monkeypatch):
    coach = _offline_coach(monkeypatch)
    coach.speak("one")
    coach.speak("two")
    coach.speak("Session complete.", interrupt=True)
    assert coach.pending() == 1


def test_empty_text_ignored(monkeypatch):
    coach = _offline_coach(monkeypatch)
    coach.speak("")
    assert coach.pending() == 0
