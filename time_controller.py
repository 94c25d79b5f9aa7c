"""
TimeController - owns the current instant of the simulation.

Two modes:
    LIVE       - the instant is the wall clock, every tick.
    SIMULATED  - the instant moves by (real seconds x scale) days per tick.
                 Scale 0 is pause, there is no separate paused state.

Controls:
    tc.enter_live()         - snap to now, refresh the live feed if it's connected
    tc.enter_simulated()    - carry on from wherever simulated time was
    tc.set_scale(days_per_second)
    tc.speed_up() / tc.speed_down() / tc.toggle_pause()
    tc.tick(dt_real_seconds)   - called every frame, returns the instant
"""
import logging
from datetime import timedelta
from enum import Enum

from config import TIME_SCALES, DEFAULT_TIME_SCALE_INDEX, SIMULATION_MIN_INSTANT, SIMULATION_MAX_INSTANT
from physics import days_since_epoch, utc_now

logger = logging.getLogger(__name__)


class TimeMode(Enum):
    LIVE = "live"
    SIMULATED = "simulated"


class TimeControlError(RuntimeError):
    """Raised for a control that makes no sense in the current mode."""


class TimeController:
    """
    Parameters
    ----------
    start : UTC datetime to start from (default: now)
    scale : simulated days per real second (default: the default entry of TIME_SCALES)
    clock : callable returning the current UTC datetime, swapped out in tests
    feed  : optional LiveFeed, refreshed on entering Live and invalidated on leaving it
    """

    def __init__(self, start=None, scale=None, clock=utc_now, feed=None):
        self._clock = clock
        self._feed = feed
        self._instant = start if start is not None else clock()
        self._mode = TimeMode.SIMULATED
        self._scale = float(TIME_SCALES[DEFAULT_TIME_SCALE_INDEX][0] if scale is None else scale)
        self._resume_scale = self._scale or float(TIME_SCALES[DEFAULT_TIME_SCALE_INDEX][0])

    # -- Properties --

    @property
    def instant(self):
        return self._instant

    @property
    def mode(self):
        return self._mode

    @property
    def is_live(self):
        return self._mode is TimeMode.LIVE

    @property
    def scale(self):
        return self._scale

    @property
    def paused(self):
        return self._mode is TimeMode.SIMULATED and self._scale == 0

    @property
    def scale_label(self):
        if self.is_live:
            return "Real Time"
        for scale, label in TIME_SCALES:
            if scale == self._scale:
                return label
        return f"{self._scale:g} Days/sec"

    def attach_feed(self, feed):
        self._feed = feed

    # -- Mode transitions --

    def enter_live(self):
        self._mode = TimeMode.LIVE
        self._instant = self._clock()
        logger.info("Time mode: LIVE")
        if self._feed is not None and self._feed.connected:
            self._feed.request_refresh()

    def enter_simulated(self, scale=None):
        self._mode = TimeMode.SIMULATED
        if scale is not None:
            self.set_scale(scale)
        if self._feed is not None:
            # Anything still in flight belongs to the Live session we just left.
            self._feed.invalidate()
        logger.info(f"Time mode: SIMULATION ({self.scale_label})")

    # -- Controls --

    def set_scale(self, scale):
        """Days of simulated time per real second. 0 pauses, negative runs backwards."""
        if self.is_live:
            raise TimeControlError("Time scale can only be set in simulation mode")
        self._scale = float(scale)
        if self._scale != 0:
            self._resume_scale = self._scale

    def _scale_index(self):
        scales = [s for s, _ in TIME_SCALES]
        # Nearest catalogue entry at or below the current magnitude.
        below = [i for i, s in enumerate(scales) if s <= abs(self._scale)]
        return below[-1] if below else 0

    def speed_up(self):
        idx = self._scale_index()
        if idx < len(TIME_SCALES) - 1:
            self.set_scale(TIME_SCALES[idx + 1][0])

    def speed_down(self):
        idx = self._scale_index()
        if idx > 0:
            self.set_scale(TIME_SCALES[idx - 1][0])

    def toggle_pause(self):
        if self._scale == 0:
            self.set_scale(self._resume_scale)
        else:
            self.set_scale(0)

    def reset(self):
        """Jump the instant back to now, mode and scale stay as they are."""
        self._instant = self._clock()

    # -- Frame update --

    def tick(self, real_delta_seconds):
        """
        Advance by `real_delta_seconds` of real time and return the instant.
        Live ignores the delta entirely and just reads the clock.
        Simulated time that would run off either end of the calendar stops at the bound and pauses.
        """
        if self.is_live:
            self._instant = self._clock()
        elif self._scale != 0:
            days = real_delta_seconds * self._scale
            elapsed = days_since_epoch(self._instant)
            if days > 0 and elapsed + days >= days_since_epoch(SIMULATION_MAX_INSTANT):
                self._hold_at(SIMULATION_MAX_INSTANT)
            elif days < 0 and elapsed + days <= days_since_epoch(SIMULATION_MIN_INSTANT):
                self._hold_at(SIMULATION_MIN_INSTANT)
            else:
                self._instant += timedelta(days=days)
        return self._instant

    def _hold_at(self, bound):
        self._instant = bound
        self._scale = 0.0  # _resume_scale still remembers the speed for toggle_pause
        logger.warning(f"Simulated time reached the limit {bound.isoformat()}, pausing.")
