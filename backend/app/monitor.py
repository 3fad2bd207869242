from __future__ import annotations

import logging
import math
import random
import threading
import uuid
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .models import Capacities, MonitorInterval

logger = logging.getLogger(__name__)

HISTORY_SIZE = 20
ALERT_MIN_LEVEL = 3
# Demo speeds instead of wall-clock intervals.
DEMO_INTERVAL_S: dict[MonitorInterval, float] = {
    MonitorInterval.one_minute: 3.0,
    MonitorInterval.ten_minutes: 5.0,
    MonitorInterval.one_hour: 10.0,
}

LEVEL_LABELS = {
    1: "comfortable",
    2: "relaxed",
    3: "crowded",
    4: "very crowded",
    5: "dangerous",
}

ALERT_MESSAGES = {
    3: "Crowded. Please slow down admissions.",
    4: "Very crowded! Please restrict entry.",
    5: "Dangerous level! Immediate crowd control is required.",
}


def congestion_level(count: int, capacities: Capacities) -> int:
    for level, limit in enumerate(capacities.as_list(), start=1):
        if count <= limit:
            return level
    return 5


def initial_count(capacities: Capacities) -> int:
    # Starts between level 2 and 3 so alerts show up early in a demo.
    return math.floor((capacities.level2 + capacities.level3) / 2)


def next_count(count: int, capacities: Capacities, rng: random.Random) -> int:
    # Drift between -15% and +20% of the current value.
    variation = count * (rng.random() * 0.35 - 0.15)
    new = math.floor(count + variation + 0.5)
    ceiling = math.floor(capacities.level5 * 1.1)
    return max(0, min(new, ceiling))


@dataclass(frozen=True)
class Reading:
    time: str
    count: int
    level: int

    def to_dict(self) -> dict:
        return {"time": self.time, "count": self.count, "level": self.level, "label": LEVEL_LABELS[self.level]}


class CrowdSimulator:
    """
    Simulated headcount feed for one venue.
    Not thread-safe on its own; MonitorSession serializes access.
    """

    def __init__(
        self,
        capacities: Capacities,
        *,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.capacities = capacities
        self.count = initial_count(capacities)
        self.history: deque[Reading] = deque(maxlen=HISTORY_SIZE)
        self.alert_level = 0
        self.alert_active = False
        self._rng = rng or random.Random()
        self._clock = clock

    @property
    def level(self) -> int:
        return congestion_level(self.count, self.capacities)

    def tick(self) -> Reading:
        self.count = next_count(self.count, self.capacities, self._rng)
        level = self.level
        reading = Reading(time=self._clock().strftime("%H:%M:%S"), count=self.count, level=level)
        self.history.append(reading)
        if level >= ALERT_MIN_LEVEL:
            self.alert_level = level
            self.alert_active = True
        return reading

    def dismiss_alert(self) -> None:
        self.alert_active = False

    def reset_history(self) -> None:
        self.history.clear()

    def alert(self) -> Optional[dict]:
        if not self.alert_active:
            return None
        return {
            "level": self.alert_level,
            "label": LEVEL_LABELS[self.alert_level],
            "threshold": self.capacities.as_list()[self.alert_level - 1],
            "message": ALERT_MESSAGES[self.alert_level],
        }


class MonitorSession:
    def __init__(
        self,
        capacities: Capacities,
        interval: MonitorInterval = MonitorInterval.one_minute,
        *,
        rng: Optional[random.Random] = None,
        period_s: Optional[float] = None,
    ):
        self.id = uuid.uuid4().hex
        self.interval = interval
        self.period_s = DEMO_INTERVAL_S[interval] if period_s is None else period_s
        self.simulator = CrowdSimulator(capacities, rng=rng)
        self._lock = threading.RLock()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self.simulator.reset_history()
            self.simulator.tick()
            self._thread = threading.Thread(target=self._run, name=f"monitor-{self.id[:8]}", daemon=True)
            self._thread.start()
        logger.info("monitor session %s started (period %.1fs)", self.id, self.period_s)

    def _run(self) -> None:
        while not self._stop.wait(self.period_s):
            self.tick()

    def tick(self) -> Reading:
        with self._lock:
            return self.simulator.tick()

    def stop(self, timeout: float = 1.0) -> None:
        self._stop.set()
        t = self._thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout)
        logger.info("monitor session %s stopped", self.id)

    def dismiss_alert(self) -> None:
        with self._lock:
            self.simulator.dismiss_alert()

    def snapshot(self) -> dict:
        with self._lock:
            sim = self.simulator
            return {
                "id": self.id,
                "interval": self.interval.value,
                "periodSeconds": self.period_s,
                "running": self.running,
                "capacities": sim.capacities.to_dict(),
                "currentCount": sim.count,
                "currentLevel": sim.level,
                "currentLabel": LEVEL_LABELS[sim.level],
                "alert": sim.alert(),
                "history": [r.to_dict() for r in sim.history],
            }


DEFAULT_MAX_SESSIONS = 32


class MonitorRegistry:
    """
    Live monitor sessions, oldest first.
    At most `max_sessions` run at once; creating one more stops and drops the oldest.
    """

    def __init__(self, max_sessions: int = DEFAULT_MAX_SESSIONS) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be >= 1")
        self.max_sessions = max_sessions
        self._lock = threading.RLock()
        self._sessions: dict[str, MonitorSession] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def create(self, capacities: Capacities, interval: MonitorInterval) -> MonitorSession:
        s = MonitorSession(capacities, interval)
        evicted: list[MonitorSession] = []
        with self._lock:
            while len(self._sessions) >= self.max_sessions:
                oldest = next(iter(self._sessions))
                evicted.append(self._sessions.pop(oldest))
            self._sessions[s.id] = s
        for old in evicted:
            logger.info("monitor session %s evicted (limit %d)", old.id, self.max_sessions)
            old.stop()
        s.start()
        return s

    def get(self, session_id: str) -> Optional[MonitorSession]:
        with self._lock:
            return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[MonitorSession]:
        with self._lock:
            s = self._sessions.pop(session_id, None)
        if s is not None:
            s.stop()
        return s

    def stop_all(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for s in sessions:
            s.stop()
