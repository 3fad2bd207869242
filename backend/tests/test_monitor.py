import random
import time
import unittest
from datetime import datetime

from backend.app.models import Capacities, MonitorInterval
from backend.app.monitor import (
    HISTORY_SIZE,
    CrowdSimulator,
    MonitorRegistry,
    MonitorSession,
    congestion_level,
    initial_count,
    next_count,
)


CAPS = Capacities(100, 200, 300, 400, 500)


class _FixedRandom:
    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


class TestLevels(unittest.TestCase):
    def test_congestion_level_boundaries(self):
        cases = [(0, 1), (100, 1), (101, 2), (200, 2), (300, 3), (301, 4), (400, 4), (500, 5), (9999, 5)]
        for count, level in cases:
            with self.subTest(count=count):
                self.assertEqual(congestion_level(count, CAPS), level)

    def test_initial_count(self):
        self.assertEqual(initial_count(CAPS), 250)
        self.assertEqual(initial_count(Capacities(1, 2, 3, 4, 5)), 2)


class TestNextCount(unittest.TestCase):
    def test_drift_down(self):
        self.assertEqual(next_count(1000, Capacities(0, 0, 0, 0, 10000), _FixedRandom(0.0)), 850)

    def test_drift_up_clamped(self):
        # +20% of 500 would be 600, ceiling is floor(500 * 1.1) = 550.
        self.assertEqual(next_count(500, CAPS, _FixedRandom(1.0)), 550)

    def test_never_negative(self):
        self.assertEqual(next_count(0, CAPS, _FixedRandom(0.0)), 0)

    def test_stays_in_bounds(self):
        rng = random.Random(7)
        count = 250
        for _ in range(500):
            count = next_count(count, CAPS, rng)
            self.assertGreaterEqual(count, 0)
            self.assertLessEqual(count, 550)


class TestCrowdSimulator(unittest.TestCase):
    def _sim(self, value=0.5):
        return CrowdSimulator(CAPS, rng=_FixedRandom(value), clock=lambda: datetime(2024, 5, 1, 13, 5, 9))

    def test_tick_records_reading(self):
        sim = self._sim()
        reading = sim.tick()
        # 250 + 250 * (0.5 * 0.35 - 0.15) = 256.25
        self.assertEqual(reading.count, 256)
        self.assertEqual(reading.level, 3)
        self.assertEqual(reading.time, "13:05:09")
        self.assertEqual(reading.to_dict()["label"], "crowded")
        self.assertEqual(list(sim.history), [reading])

    def test_history_is_bounded(self):
        sim = self._sim()
        for _ in range(HISTORY_SIZE + 5):
            sim.tick()
        self.assertEqual(len(sim.history), HISTORY_SIZE)

    def test_alert_raised_and_dismissed(self):
        sim = self._sim()
        self.assertIsNone(sim.alert())
        sim.tick()
        alert = sim.alert()
        self.assertEqual(alert["level"], 3)
        self.assertEqual(alert["threshold"], 300)
        sim.dismiss_alert()
        self.assertIsNone(sim.alert())

    def test_no_alert_below_level_three(self):
        # Starts at 1050, drops 15% to 893.
        sim = CrowdSimulator(Capacities(100, 1000, 1100, 1200, 1300), rng=_FixedRandom(0.0))
        sim.tick()
        self.assertLess(sim.level, 3)
        self.assertIsNone(sim.alert())


class TestMonitorSession(unittest.TestCase):
    def test_periodic_ticks_until_stopped(self):
        s = MonitorSession(CAPS, MonitorInterval.one_minute, rng=random.Random(1), period_s=0.01)
        s.start()
        try:
            self.assertTrue(s.running)
            time.sleep(0.2)
        finally:
            s.stop()
        self.assertFalse(s.running)
        ticks = len(s.snapshot()["history"])
        self.assertGreater(ticks, 1)
        time.sleep(0.05)
        self.assertEqual(len(s.snapshot()["history"]), ticks)

    def test_demo_period_from_interval(self):
        s = MonitorSession(CAPS, MonitorInterval.ten_minutes)
        self.assertEqual(s.period_s, 5.0)
        self.assertFalse(s.running)

    def test_registry(self):
        reg = MonitorRegistry()
        s = reg.create(CAPS, MonitorInterval.one_hour)
        self.assertIs(reg.get(s.id), s)
        self.assertTrue(s.running)
        self.assertIs(reg.remove(s.id), s)
        self.assertFalse(s.running)
        self.assertIsNone(reg.get(s.id))
        self.assertIsNone(reg.remove(s.id))

    def test_registry_is_bounded(self):
        reg = MonitorRegistry(max_sessions=3)
        sessions = [reg.create(CAPS, MonitorInterval.one_hour) for _ in range(5)]
        try:
            self.assertEqual(len(reg), 3)
            for old in sessions[:2]:
                self.assertIsNone(reg.get(old.id))
                self.assertFalse(old.running)
            for live in sessions[2:]:
                self.assertIs(reg.get(live.id), live)
                self.assertTrue(live.running)
        finally:
            reg.stop_all()

    def test_registry_rejects_zero_cap(self):
        with self.assertRaises(ValueError):
            MonitorRegistry(max_sessions=0)

    def test_stop_all(self):
        reg = MonitorRegistry()
        sessions = [reg.create(CAPS, MonitorInterval.one_hour) for _ in range(3)]
        reg.stop_all()
        self.assertTrue(all(not s.running for s in sessions))


if __name__ == "__main__":
    unittest.main()
