"""
VOICE FEEDBACK MODULE
=====================
Status text + rate-limited spoken prompts.

- FeedbackEmitter decides *whether* a message should be spoken now
  (per-detector cooldown) and always updates the on-screen status.
- VoiceCoach does the speaking on a background thread so the video loop
  never blocks on text-to-speech.
"""

import logging
import platform
import queue
import subprocess
import threading
import time

import pyttsx3

logger = logging.getLogger(__name__)

# ========================================
# CONSTANTS
# ========================================

DEFAULT_COOLDOWN = 2.5         # Seconds between spoken prompts from one detector
SPEECH_RATE = 160              # pyttsx3 words per minute
IS_MACOS = platform.system() == "Darwin"


# ========================================
# FEEDBACK EMITTER
# ========================================

class FeedbackEmitter:
    """
    Visible status text plus a debounced hand-off to a speech callable.

    The cooldown is a plain "last spoken" timestamp, not a queue: a message
    arriving during the cooldown is shown but not spoken. Queueing is the
    speech collaborator's job.

    PARAMETERS:
        speak: Callable taking the text to say (None = silent)
        cooldown: Minimum seconds between two vocalizations of this emitter
        clock: Time source, time.time by default
    """

    def __init__(self, speak=None, cooldown=DEFAULT_COOLDOWN, clock=time.time, status_text=""):
        self.speak = speak
        self.cooldown = cooldown
        self.clock = clock
        self.status_text = status_text
        self.last_vocal_time = None

    def notify(self, message, vocalize=False):
        """
        Show `message` and, if asked and allowed, speak it.

        RETURNS:
            True if the message was forwarded to the speech callable
        """
        self.status_text = message
        if not vocalize or self.speak is None:
            return False

        now = self.clock()
        if self.last_vocal_time is not None and now - self.last_vocal_time < self.cooldown:
            logger.debug("Speech suppressed (cooldown): %s", message)
            return False

        self.last_vocal_time = now
        self.speak(message)
        return True


# ========================================
# TEXT-TO-SPEECH WORKER (Thread-Safe)
# ========================================

class VoiceCoach:
    """
    Queue text to be spoken on a daemon thread.

    HOW IT WORKS:
        - speak() returns immediately; the worker drains the queue in order
        - None in the queue = shutdown signal
        - On macOS the native 'say' command is used (pyttsx3's
          NSSpeechSynthesizer driver misbehaves off the main thread)
        - pyttsx3 is initialized inside the worker thread
    """

    def __init__(self, rate=SPEECH_RATE):
        self.rate = rate
        self._queue = queue.Queue()
        self._thread = None
        self._last_queued = None
        self._lock = threading.Lock()

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._thread = threading.Thread(target=self._worker, daemon=True)
        self._thread.start()

    def speak(self, text, interrupt=False):
        """
        Queue `text` (non-blocking).

        PARAMETERS:
            interrupt: Drop everything still waiting before queueing this one
        """
        if not text:
            return
        with self._lock:
            if interrupt:
                self._drain()
                self._last_queued = None
            elif text == self._last_queued and not self._queue.empty():
                return
            self._last_queued = text
            self._queue.put(text)
        self.start()

    def pending(self):
        return self._queue.qsize()

    def stop(self, timeout=2.0):
        """Stop the worker thread."""
        self._queue.put(None)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _drain(self):
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                return
            self._queue.task_done()

    def _worker(self):
        engine = None
        if not IS_MACOS:
            try:
                engine = pyttsx3.init()
                engine.setProperty("rate", self.rate)
            except Exception as e:
                logger.warning("⚠️  Could not initialize speech engine: %s", e)

        while True:
            text = self._queue.get()
            if text is None:
                self._queue.task_done()
                break
            try:
                logger.info("🔊 TTS: %s", text)
                if IS_MACOS:
                    subprocess.run(["say", text], check=False, timeout=10)
                elif engine is not None:
                    engine.say(text)
                    engine.runAndWait()
                else:
                    logger.info("[VOICE DISABLED - would say: %s]", text)
            except Exception as e:
                logger.warning("⚠️  Speech error: %s", e)
            finally:
                self._queue.task_done()
