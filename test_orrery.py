import unittest
from datetime import datetime, timedelta, timezone

import numpy as np

from api_client import LiveFeed, LivePosition
from catalogue import BodyKind, build_catalogue, SPACECRAFT, COMETS
from config import SIMULATION_MAX_INSTANT
from orrery import Orrery
from starfield import AsteroidBelt
from time_controller import TimeController

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_orrery(mapping=None, belt=None):
    feed = LiveFeed(fetcher=lambda: mapping or {})
    time = TimeController(start=NOW, scale=1, clock=lambda: NOW)
    return Orrery(store=build_catalogue(), time_controller=time, feed=feed, belt=belt)


class TestUpdate(unittest.TestCase):

    def setUp(self):
        self.orrery = make_orrery()

    def test_frame_has_every_body(self):
        frame = self.orrery.update(1.0)
        self.assertEqual(set(frame.bodies), {e.name for e in self.orrery.store})
        self.assertEqual(frame.instant, NOW + timedelta(days=1))
        np.testing.assert_array_almost_equal(frame.bodies["Sun"].position, [0, 0, 0])

    def test_moons_stay_with_their_planet(self):
        for _ in range(5):
            frame = self.orrery.update(10.0)
            offset = frame.bodies["Titan"].position - frame.bodies["Saturn"].position
            self.assertAlmostEqual(np.linalg.norm(offset), self.orrery.store.get("Titan").semi_major_axis)

    def test_moons_hidden_with_planets(self):
        self.orrery.flags.show_planets = False
        frame = self.orrery.update(0.0)
        self.assertTrue(frame.bodies["Sun"].visible)
        self.assertFalse(frame.bodies["Earth"].visible)
        self.assertFalse(frame.bodies["Moon"].visible)
        self.assertFalse(frame.bodies["Moon"].orbit_visible)

    def test_orbit_lines_follow_toggle(self):
        frame = self.orrery.update(0.0)
        self.assertTrue(frame.bodies["Mars"].orbit_visible)
        self.assertFalse(frame.bodies["Sun"].orbit_visible)
        self.orrery.flags.show_orbits = False
        frame = self.orrery.update(0.0)
        self.assertFalse(frame.bodies["Mars"].orbit_visible)

    def test_comets_off_by_default_but_have_tails(self):
        frame = self.orrery.update(0.0)
        state = frame.bodies["Halley's Comet"]
        self.assertFalse(state.visible)
        self.assertIsNotNone(state.tail_opacity)
        self.assertIsNone(frame.bodies["Earth"].tail_opacity)

    def test_labels_only_when_switched_on(self):
        frame = self.orrery.update(0.0)
        self.assertFalse(any(s.label_visible for s in frame.bodies.values()))

        self.orrery.flags.show_labels = True
        frame = self.orrery.update(0.0)
        self.assertTrue(any(s.label_visible for s in frame.bodies.values()))
        # Hidden bodies never get a label.
        self.assertFalse(any(s.label_visible for s in frame.bodies.values() if not s.visible))

    def test_belt_positions_come_with_frame(self):
        orrery = make_orrery(belt=AsteroidBelt(count=100, seed=1))
        frame = orrery.update(0.0)
        self.assertEqual(frame.belt_positions.shape, (100, 3))
        self.assertIsNone(self.orrery.update(0.0).belt_positions)

    def test_top_scale_keeps_running_at_calendar_end(self):
        time = TimeController(start=datetime(9995, 1, 1, tzinfo=timezone.utc), scale=36500, clock=lambda: NOW)
        orrery = Orrery(store=build_catalogue(), time_controller=time, feed=LiveFeed())
        with self.assertLogs('time_controller', level='WARNING'):
            for _ in range(60):
                frame = orrery.update(1 / 60)
        self.assertEqual(frame.instant, SIMULATION_MAX_INSTANT)
        self.assertTrue(orrery.time.paused)


class TestLiveOverrides(unittest.TestCase):

    def test_override_used_in_live_only(self):
        orrery = make_orrery({"Earth": LivePosition(123.0, -45.0, 0.0)})
        orrery.time.enter_live()
        orrery.feed.refresh()
        frame = orrery.update(1.0)
        np.testing.assert_array_almost_equal(frame.bodies["Earth"].position, [123.0, 0.0, -45.0])
        moon_offset = frame.bodies["Moon"].position - frame.bodies["Earth"].position
        self.assertAlmostEqual(np.linalg.norm(moon_offset), orrery.store.get("Moon").semi_major_axis)

        orrery.time.enter_simulated()
        frame = orrery.update(0.0)
        self.assertFalse(np.allclose(frame.bodies["Earth"].position, [123.0, 0.0, -45.0]))


class TestSpacecraftAndQueries(unittest.TestCase):

    def setUp(self):
        self.orrery = make_orrery()

    def test_missing_data_gives_placeholders(self):
        with self.assertLogs('orrery', level='ERROR'):
            added = self.orrery.load_spacecraft("/no/such/spacecraft.json")
        self.assertEqual(len(added), len(SPACECRAFT))
        frame = self.orrery.update(1.0)
        self.assertEqual(frame.bodies["Voyager 1"].display_name, "Voyager 1 (Placeholder)")

    def test_bundled_data_loads(self):
        added = self.orrery.load_spacecraft("spacecraft.json")
        self.assertFalse(any(e.placeholder for e in added))
        frame = self.orrery.update(1.0)
        self.assertEqual(frame.bodies["ISS"].kind, BodyKind.SPACECRAFT)

    def test_background_load(self):
        self.orrery.start_spacecraft_load("spacecraft.json").join(5)
        self.assertIn("Hubble", self.orrery.store)

    def test_mission_status(self):
        self.orrery.load_spacecraft("spacecraft.json")
        status = self.orrery.mission_status()
        self.assertEqual(status["spacecraft"], len(SPACECRAFT))
        self.assertEqual(status["comets"], len(COMETS))
        self.assertEqual(status["objects"], len(self.orrery.store))
        self.assertEqual(status["data_source"], "Simulation")
        self.assertEqual(status["api_status"], "Offline")

    def test_search(self):
        self.assertEqual(self.orrery.search("SATURN"), ["Saturn"])
        self.assertIn("Comet Encke", self.orrery.search("comet"))
        self.assertEqual(self.orrery.search("   "), [])
        self.assertEqual(self.orrery.search("Vulcan"), [])


if __name__ == '__main__':
    unittest.main()
