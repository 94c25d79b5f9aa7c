import json
import math
import os
import tempfile
import threading
import unittest
from datetime import datetime, timezone
from unittest import mock

import requests

from api_client import (
    ConnectionFailure, LiveFeed, LivePosition, REFERENCE_PLANETS,
    check_connection, fetch_live_positions, fetch_spacecraft_orbits, reference_positions,
)
from catalogue import DataUnavailable
from config import AU_IN_UNITS, EPOCH

NOW = datetime(2024, 6, 1, tzinfo=timezone.utc)


def ok_session(payload=None):
    session = mock.Mock()
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload if payload is not None else {}
    session.get.return_value = response
    return session


class TestCheckConnection(unittest.TestCase):

    def test_no_key(self):
        with self.assertRaises(ConnectionFailure):
            check_connection(None, session=ok_session())

    def test_key_accepted(self):
        session = ok_session()
        check_connection("KEY", session=session)
        _, kwargs = session.get.call_args
        self.assertEqual(kwargs['params'], {'api_key': 'KEY'})
        self.assertIn('timeout', kwargs)

    def test_http_error(self):
        session = ok_session()
        session.get.return_value.raise_for_status.side_effect = requests.exceptions.HTTPError("403")
        with self.assertRaises(ConnectionFailure):
            check_connection("BAD", session=session)

    def test_unreachable(self):
        for error in (requests.exceptions.ConnectionError("down"), requests.exceptions.Timeout("slow")):
            session = mock.Mock()
            session.get.side_effect = error
            with self.assertRaises(ConnectionFailure):
                check_connection("KEY", session=session)

    def test_any_requests_error(self):
        for error in (requests.exceptions.TooManyRedirects("loop"), requests.exceptions.InvalidURL("bad"),
                      requests.exceptions.ChunkedEncodingError("cut off")):
            session = mock.Mock()
            session.get.side_effect = error
            with self.assertRaises(ConnectionFailure):
                check_connection("KEY", session=session)


class TestReferencePositions(unittest.TestCase):

    def test_all_planets_at_mean_distance(self):
        positions = reference_positions(NOW)
        self.assertEqual(set(positions), {name for name, *_ in REFERENCE_PLANETS})
        for name, _, distance_au, _ in REFERENCE_PLANETS:
            x, z, _ = positions[name]
            self.assertAlmostEqual(math.hypot(x, z), distance_au * AU_IN_UNITS, places=6)

    def test_epoch_alignment(self):
        x, z, angle = reference_positions(EPOCH)["Mars"]
        self.assertAlmostEqual(angle, 0.0)
        self.assertAlmostEqual(z, 0.0)
        self.assertGreater(x, 0)

    def test_fetch_uses_wall_clock(self):
        positions = fetch_live_positions("KEY", session=ok_session(), clock=lambda: NOW)
        self.assertEqual(positions, reference_positions(NOW))


class TestFetchSpacecraftOrbits(unittest.TestCase):

    DOCUMENT = {"spacecraft": [
        {"name": "Voyager 1", "distance_au": 150, "period_years": 17000},
        {"name": "ISS", "parent": "Earth", "altitude_km": 408, "orbital_period_days": 0.0625},
        {"distance_au": 3},
    ]}

    def test_from_url(self):
        session = ok_session(self.DOCUMENT)
        records = fetch_spacecraft_orbits("https://example.org/craft.json", session=session)
        self.assertEqual(set(records), {"Voyager 1", "ISS"})

    def test_from_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "craft.json")
            with open(path, 'w', encoding='utf-8') as f:
                json.dump(self.DOCUMENT, f)
            records = fetch_spacecraft_orbits(path)
        self.assertEqual(records["ISS"]["altitude_km"], 408)

    def test_bundled_file_loads(self):
        records = fetch_spacecraft_orbits("spacecraft.json")
        self.assertIn("Voyager 1", records)

    def test_failures_are_data_unavailable(self):
        session = mock.Mock()
        session.get.side_effect = requests.exceptions.ConnectionError("down")
        with self.assertRaises(DataUnavailable):
            fetch_spacecraft_orbits("https://example.org/craft.json", session=session)
        with self.assertRaises(DataUnavailable):
            fetch_spacecraft_orbits("/no/such/file.json")
        with self.assertRaises(DataUnavailable):
            fetch_spacecraft_orbits("https://example.org/x.json", session=ok_session({"probes": []}))
        with self.assertRaises(DataUnavailable):
            fetch_spacecraft_orbits("")


class TestLiveFeed(unittest.TestCase):

    MAPPING = {"Earth": LivePosition(1.0, 2.0, 0.3)}

    def test_refresh_replaces_mapping(self):
        feed = LiveFeed(fetcher=lambda: self.MAPPING, is_live=lambda: True)
        before = feed.overrides
        feed.refresh()
        self.assertEqual(dict(feed.overrides), self.MAPPING)
        self.assertEqual(dict(before), {})
        self.assertIsNotNone(feed.last_update)

    def test_mapping_is_read_only(self):
        feed = LiveFeed(fetcher=lambda: self.MAPPING, is_live=lambda: True)
        feed.refresh()
        with self.assertRaises(TypeError):
            feed.overrides["Mars"] = LivePosition(0, 0, 0)

    def test_failure_keeps_previous_mapping(self):
        fetcher = mock.Mock(side_effect=[self.MAPPING, ConnectionFailure("gone")])
        feed = LiveFeed(fetcher=fetcher, is_live=lambda: True)
        feed.refresh()
        with self.assertLogs('api_client', level='ERROR'):
            with self.assertRaises(ConnectionFailure):
                feed.refresh()
        self.assertEqual(dict(feed.overrides), self.MAPPING)
        self.assertEqual(feed.status_text, "Connection Failed")

    def test_connect(self):
        feed = LiveFeed(fetcher=lambda: self.MAPPING, is_live=lambda: True)
        self.assertTrue(feed.connect())
        self.assertTrue(feed.connected)
        self.assertEqual(feed.status_text, "NASA API: Connected")
        self.assertEqual(feed.data_source, "NASA/JPL (Live)")

    def test_connect_failure(self):
        feed = LiveFeed(fetcher=mock.Mock(side_effect=ConnectionFailure("no key")))
        with self.assertLogs('api_client', level='ERROR'):
            self.assertFalse(feed.connect())
        self.assertFalse(feed.connected)
        self.assertEqual(feed.data_source, "Simulation")

    def test_background_connect_reports_redirect_loop(self):
        session = mock.Mock()
        session.get.side_effect = requests.exceptions.TooManyRedirects("loop")
        feed = LiveFeed(api_key="KEY", fetcher=lambda: fetch_live_positions("KEY", session=session))
        with self.assertLogs('api_client', level='ERROR'):
            feed.request_connect().join(5)
        self.assertFalse(feed.connected)
        self.assertIsInstance(feed.last_error, ConnectionFailure)
        self.assertEqual(feed.status_text, "Connection Failed")

    def test_result_discarded_outside_live(self):
        feed = LiveFeed(fetcher=lambda: self.MAPPING, is_live=lambda: False)
        self.assertIsNone(feed.refresh())
        self.assertEqual(dict(feed.overrides), {})

    def test_result_discarded_after_invalidate(self):
        started = threading.Event()
        release = threading.Event()

        def slow_fetch():
            started.set()
            release.wait(5)
            return self.MAPPING

        feed = LiveFeed(fetcher=slow_fetch, is_live=lambda: True)
        thread = feed.request_refresh()
        started.wait(5)
        feed.invalidate()  # e.g. user left Live mode while the fetch was out
        release.set()
        thread.join(5)
        self.assertEqual(dict(feed.overrides), {})

    def test_background_refresh_lands(self):
        feed = LiveFeed(fetcher=lambda: self.MAPPING, is_live=lambda: True)
        feed.request_refresh().join(5)
        self.assertEqual(dict(feed.overrides), self.MAPPING)

    def test_offline_by_default(self):
        self.assertEqual(LiveFeed().status_text, "Offline")


if __name__ == '__main__':
    unittest.main()
