"""
BLINK & MOOD MONITOR
====================
Background face monitor: blink rate, eye strain and a coarse mood label.

Runs on every face-mesh frame while the app is open (it is not an exercise
and never completes). Stats are published every STATS_EVERY_FRAMES frames and
can be polled at any time with snapshot().
"""

import logging
import time
from collections import deque
from dataclasses import asdict, dataclass

from relaxify.smoothing import safe_ratio

logger = logging.getLogger(__name__)

# ========================================
# BLINK / STRAIN THRESHOLDS & CONSTANTS
# ========================================

BLINK_EAR_THRESHOLD = 0.12     # Eye aspect ratio below this = eyes closed
BLINK_REFRACTORY = 0.3         # Seconds after a counted blink before another counts
BLINK_WINDOW = 60.0            # Rolling window (seconds) => count is blinks/minute
STRAIN_BLINK_RATE = 8          # Fewer blinks per minute than this is low
STRAIN_STALE_SECONDS = 8.0     # ...and no blink for this long => strained
STATS_EVERY_FRAMES = 30        # Mood / stats refresh cadence (~1 s at 30 fps)

# Mood thresholds (normalized face-mesh units)
STRESSED_BROW_DIST = 0.042     # Brows pulled down toward the nose
HAPPY_LIP_CURVATURE = -0.012   # Mouth corners above the lower lip

MOOD_NEUTRAL = "neutral"
MOOD_STRESSED = "stressed"
MOOD_HAPPY = "happy"

EYE_POINTS = {
    "left": ("left_eye_top", "left_eye_bottom", "left_eye_outer", "left_eye_inner"),
    "right": ("right_eye_top", "right_eye_bottom", "right_eye_outer", "right_eye_inner"),
}


# ========================================
# SIGNALS
# ========================================

def _single_eye_ratio(frame, side):
    top, bottom, outer, inner = (frame.face_point(n) for n in EYE_POINTS[side])
    if top is None or bottom is None or outer is None or inner is None:
        return None
    return safe_ratio(abs(top.y - bottom.y), abs(outer.x - inner.x))


def eye_aspect_ratio(frame):
    """
    Vertical eyelid gap over horizontal eye width, averaged over both eyes.

    RETURNS:
        Ratio (~0.25-0.35 open, < 0.12 closed), or None if points are missing
    """
    left = _single_eye_ratio(frame, "left")
    right = _single_eye_ratio(frame, "right")
    if left is None or right is None:
        return None
    return (left + right) / 2.0


def classify_mood(frame):
    """
    Coarse mood from brow and mouth geometry.

    RETURNS:
        "stressed", "happy", "neutral", or None if the points are missing
    """
    nose = frame.face_point("nose_tip")
    brow_l = frame.face_point("left_brow_inner")
    brow_r = frame.face_point("right_brow_inner")
    lip = frame.face_point("lower_lip")
    mouth_l = frame.face_point("mouth_left")
    mouth_r = frame.face_point("mouth_right")
    if None in (nose, brow_l, brow_r, lip, mouth_l, mouth_r):
        return None

    brow_dist = abs(brow_l.y - nose.y) + abs(brow_r.y - nose.y)
    lip_curvature = lip.y - (mouth_l.y + mouth_r.y) / 2.0

    if brow_dist < STRESSED_BROW_DIST:
        return MOOD_STRESSED
    if lip_curvature < HAPPY_LIP_CURVATURE:
        return MOOD_HAPPY
    return MOOD_NEUTRAL


# ========================================
# MONITOR
# ========================================

@dataclass
class MonitoringUpdate:
    mood: str
    blinkRate: int
    isStrained: bool
    lastBlinkTimestamp: float
    sessionBlinks: int
    eyeClosureScore: int

    def to_dict(self):
        return asdict(self)


class BlinkMonitor:
    """
    Blink counter with a refractory period and a 60 s rolling rate.

    HOW IT WORKS:
        1. Eye aspect ratio per face frame
        2. Open -> closed crossing counts as a blink, unless the last counted
           blink was less than BLINK_REFRACTORY seconds ago
        3. Blink timestamps older than BLINK_WINDOW are dropped
        4. Strained = rate < STRAIN_BLINK_RATE AND no blink for
           STRAIN_STALE_SECONDS (both must hold)

    PARAMETERS:
        on_update: Callable(MonitoringUpdate), called every stats refresh
        start_time: Monitoring start; the stale timer counts from here until
                    the first blink

    Every `now` passed in (start_time, process, snapshot) must come from the
    same clock. The server uses its own receive time, never client stamps.
    """

    def __init__(self, on_update=None, start_time=None, stats_every=STATS_EVERY_FRAMES):
        now = time.time() if start_time is None else start_time
        self.on_update = on_update
        self.stats_every = stats_every
        self.last_blink_time = now
        self.last_counted_blink = None
        self.blink_times = deque()
        self.session_blinks = 0
        self.eyes_closed = False
        self.last_ear = None
        self.mood = MOOD_NEUTRAL
        self.frame_count = 0
        self.closed = False

    @property
    def blink_rate(self):
        return len(self.blink_times)

    def close(self):
        self.closed = True

    def process(self, frame, now=None):
        """
        Feed one LandmarkFrame with face points.

        RETURNS:
            MonitoringUpdate on a stats refresh frame, otherwise None
        """
        if self.closed or frame is None:
            return None
        now = frame.timestamp if now is None else now

        ear = eye_aspect_ratio(frame)
        if ear is None:
            logger.debug("Blink monitor: face frame skipped")
            return None

        self.observe_ear(ear, now)

        self.frame_count += 1
        if self.frame_count < self.stats_every:
            return None
        self.frame_count = 0

        # Re-evaluated from scratch; missing mood points read as neutral
        self.mood = classify_mood(frame) or MOOD_NEUTRAL
        update = self.snapshot(now)
        if self.on_update is not None:
            self.on_update(update)
        return update

    def observe_ear(self, ear, now):
        """
        Blink bookkeeping for one eye-aspect-ratio sample.

        RETURNS:
            True if this sample counted a new blink
        """
        self.last_ear = ear
        counted = False
        closed = ear < BLINK_EAR_THRESHOLD
        refractory = (self.last_counted_blink is not None
                      and now - self.last_counted_blink <= BLINK_REFRACTORY)
        if closed and not self.eyes_closed and not refractory:
            self.session_blinks += 1
            self.blink_times.append(now)
            self.last_blink_time = now
            self.last_counted_blink = now
            counted = True
        self.eyes_closed = closed
        self._expire(now)
        return counted

    def is_strained(self, now):
        self._expire(now)
        return (self.blink_rate < STRAIN_BLINK_RATE
                and now - self.last_blink_time > STRAIN_STALE_SECONDS)

    def snapshot(self, now=None):
        """Current monitoring stats (safe to poll at any rate)."""
        now = time.time() if now is None else now
        strained = self.is_strained(now)
        return MonitoringUpdate(
            mood=self.mood,
            blinkRate=self.blink_rate,
            isStrained=strained,
            lastBlinkTimestamp=self.last_blink_time,
            sessionBlinks=self.session_blinks,
            eyeClosureScore=round(self.last_ear * 100) if self.last_ear is not None else 0,
        )

    def _expire(self, now):
        while self.blink_times and now - self.blink_times[0] >= BLINK_WINDOW:
            self.blink_times.popleft()
