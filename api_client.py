import json
import logging
import math
import threading
from datetime import datetime
from types import MappingProxyType
from typing import NamedTuple

import requests

from catalogue import DataUnavailable
from config import (
    NASA_API_URL, API_TIMEOUT_SECONDS, USER_AGENT, AU_IN_UNITS, EPOCH,
    SPACECRAFT_DATA_SOURCE, resource_path,
)
from physics import days_since_epoch, true_anomaly, utc_now

logger = logging.getLogger(__name__)

HEADERS = {'User-Agent': USER_AGENT}

# Mean elements the live positions are computed from: (name, period days, distance AU, eccentricity)
REFERENCE_PLANETS = [
    ("Mercury", 87.97, 0.387, 0.205),
    ("Venus", 224.7, 0.723, 0.007),
    ("Earth", 365.25, 1.0, 0.017),
    ("Mars", 687, 1.52, 0.094),
    ("Jupiter", 4331, 5.20, 0.049),
    ("Saturn", 10747, 9.58, 0.057),
    ("Uranus", 30589, 19.22, 0.046),
    ("Neptune", 59800, 30.05, 0.011),
]


class ConnectionFailure(Exception):
    """The live feed is unreachable or rejected us."""


class LivePosition(NamedTuple):
    x: float
    z: float
    angle: float


def check_connection(api_key, session=requests):
    """
    Checks the NASA API key by hitting the APOD endpoint with it.
    Raises ConnectionFailure if there's no key, the key is refused, or NASA can't be reached.
    """
    if not api_key:
        raise ConnectionFailure("No NASA API key configured.")

    try:
        response = session.get(NASA_API_URL, params={'api_key': api_key}, headers=HEADERS,
                               timeout=API_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.HTTPError as e:
        raise ConnectionFailure(f"NASA API rejected the request: {e}") from e
    except requests.exceptions.ConnectionError as e:
        raise ConnectionFailure(f"Could not connect to NASA API. Check internet. Details: {e}") from e
    except requests.exceptions.Timeout as e:
        raise ConnectionFailure(f"NASA API request timed out. Details: {e}") from e
    except requests.exceptions.RequestException as e:
        raise ConnectionFailure(f"An unexpected error occurred with the NASA API request: {e}") from e


def reference_positions(instant):
    """
    Positions for the major planets at `instant`, keyed by name.
    Radius is the mean distance (no ellipse here), angle from the equation of centre.
    """
    elapsed = days_since_epoch(instant, EPOCH)
    positions = {}
    for name, period, distance_au, eccentricity in REFERENCE_PLANETS:
        mean = 2 * math.pi * elapsed / period
        nu = true_anomaly(mean, eccentricity)
        distance = distance_au * AU_IN_UNITS
        positions[name] = LivePosition(math.cos(nu) * distance, math.sin(nu) * distance, nu)
    return positions


def fetch_live_positions(api_key, session=requests, clock=utc_now):
    """
    The live ephemeris fetch.

    1.  **Connection check**: make sure NASA still takes our key.
    2.  **Positions**: compute where the planets are right now (wall clock, not simulated time).
    """
    check_connection(api_key, session=session)
    return reference_positions(clock())


def fetch_spacecraft_orbits(source=SPACECRAFT_DATA_SOURCE, session=requests):
    """
    Loads spacecraft orbit records, keyed by craft name.

    `source` is an http(s) URL (fetched with requests) or a path to a local JSON file.
    The document is {"spacecraft": [{"name": ..., <descriptor keys>}, ...]}.
    Any failure comes out as DataUnavailable.
    """
    if not source:
        raise DataUnavailable("No spacecraft data source configured.")

    try:
        if source.startswith(("http://", "https://")):
            response = session.get(source, headers=HEADERS, timeout=API_TIMEOUT_SECONDS)
            response.raise_for_status()
            document = response.json()
        else:
            with open(resource_path(source), mode='r', encoding='utf-8') as f:
                document = json.load(f)
    except requests.exceptions.RequestException as e:
        raise DataUnavailable(f"Spacecraft data request failed: {e}") from e
    except (OSError, ValueError) as e:
        raise DataUnavailable(f"Spacecraft data could not be read from {source}: {e}") from e

    records = document.get('spacecraft') if isinstance(document, dict) else None
    if not isinstance(records, list):
        raise DataUnavailable("Spacecraft data does not contain expected 'spacecraft' list.")

    return {record['name']: record for record in records if isinstance(record, dict) and record.get('name')}


class LiveFeed:
    """
    Holds the live override mapping and keeps it fresh.

    The mapping is only ever swapped whole: readers grab `overrides` and get a read-only snapshot,
    a successful refresh replaces it in one assignment, a failed one leaves it alone.

    Every refresh is stamped with a sequence number. A result only lands if its stamp is still the
    newest and (when an `is_live` check was given) the clock is still Live. `invalidate()` bumps the
    sequence so whatever is in flight gets dropped.
    """

    def __init__(self, api_key=None, fetcher=None, is_live=None):
        self.api_key = api_key
        self._fetcher = fetcher or (lambda: fetch_live_positions(self.api_key))
        self._is_live = is_live
        self._overrides = MappingProxyType({})
        self._sequence = 0
        self._lock = threading.Lock()
        self.connected = False
        self.last_update = None
        self.last_error = None

    @property
    def overrides(self):
        return self._overrides

    @property
    def status_text(self):
        if self.last_error is not None:
            return "Connection Failed"
        if self.connected:
            return "NASA API: Connected"
        return "Offline"

    @property
    def data_source(self):
        return "NASA/JPL (Live)" if self.connected else "Simulation"

    def set_live_check(self, is_live):
        self._is_live = is_live

    def connect(self):
        """First refresh doubles as the connection check. Returns True if connected."""
        try:
            self.refresh()
        except ConnectionFailure:
            self.connected = False
            return False

        self.connected = True
        logger.info("NASA API: Connected")
        return True

    def invalidate(self):
        with self._lock:
            self._sequence += 1

    def refresh(self):
        """
        Fetches a fresh mapping and swaps it in.
        Returns the new mapping, or None if it went stale while in flight.
        Raises ConnectionFailure (after recording it) if the fetch failed; the old mapping stays.
        """
        with self._lock:
            self._sequence += 1
            stamp = self._sequence

        try:
            mapping = self._fetcher()
        except ConnectionFailure as e:
            self.last_error = e
            logger.error(f"Failed to fetch real-time data: {e}")
            raise

        return self._apply(stamp, mapping)

    def _apply(self, stamp, mapping):
        with self._lock:
            if stamp != self._sequence:
                logger.debug(f"Discarding superseded live refresh #{stamp}")
                return None
            if self._is_live is not None and not self._is_live():
                logger.debug(f"Discarding live refresh #{stamp}, no longer in Live mode")
                return None
            self._overrides = MappingProxyType(dict(mapping))
            self.last_update = datetime.now()
            self.last_error = None
        logger.info(f"Live positions updated for {len(mapping)} bodies.")
        return self._overrides

    def _refresh_quietly(self):
        try:
            self.refresh()
        except ConnectionFailure:
            pass  # recorded on the feed, status shows it

    def request_refresh(self):
        """Runs refresh() on a background thread, the frame loop never waits for it."""
        thread = threading.Thread(target=self._refresh_quietly, name="live-refresh", daemon=True)
        thread.start()
        return thread

    def request_connect(self):
        thread = threading.Thread(target=self.connect, name="live-connect", daemon=True)
        thread.start()
        return thread
