import logging
import threading
from dataclasses import dataclass, field
from typing import Optional

import numpy as np

from api_client import LiveFeed, fetch_spacecraft_orbits
from catalogue import BodyKind, DataUnavailable, build_catalogue, merge_spacecraft
from config import NASA_API_KEY, SPACECRAFT_DATA_SOURCE
from frames import FrameComposer
from labels import Camera, LabelAnchor, VisibilityFlags, declutter
from physics import comet_tail_opacity, days_since_epoch, pivot_angle, solve
from starfield import AsteroidBelt
from time_controller import TimeController

logger = logging.getLogger(__name__)


@dataclass
class BodyState:
    key: str
    display_name: str
    kind: BodyKind
    position: np.ndarray
    rotation: float
    visible: bool
    orbit_visible: bool
    label_visible: bool = False
    tail_opacity: Optional[float] = None


@dataclass
class FrameState:
    instant: object
    mode: str
    scale_label: str
    bodies: dict = field(default_factory=dict)
    belt_positions: Optional[np.ndarray] = None


class Orrery:
    """
    The main simulation class.

    One call to `update()` per rendered frame:
    1.  **Time**: the TimeController advances (or snaps to now when Live).
    2.  **Solve**: every body gets its local position and spin, live overrides first.
    3.  **Compose**: the FrameComposer turns local positions into world positions through the pivots.
    4.  **Visibility**: category toggles decide which bodies and orbit lines show.
    5.  **Labels**: if labels are on, the declutter pass decides which ones get drawn.
    Out comes a FrameState the renderer draws from, it never has to touch the physics.
    """

    def __init__(self, store=None, time_controller=None, feed=None, camera=None, flags=None, belt=None):
        self.store = store if store is not None else build_catalogue()
        self.feed = feed if feed is not None else LiveFeed()
        self.time = time_controller if time_controller is not None else TimeController()
        self.time.attach_feed(self.feed)
        self.feed.set_live_check(lambda: self.time.is_live)
        self.camera = camera if camera is not None else Camera()
        self.flags = flags if flags is not None else VisibilityFlags()
        self.belt = belt
        self.composer = FrameComposer()
        for element in self.store.all():
            self.composer.add(element)

    # -- Spacecraft --

    def load_spacecraft(self, source=SPACECRAFT_DATA_SOURCE):
        """
        Fetches spacecraft orbit data and merges it into the store.
        If the whole fetch fails every craft still goes in, as a placeholder.
        """
        try:
            records = fetch_spacecraft_orbits(source)
        except DataUnavailable as e:
            logger.error(f"Spacecraft data unavailable, using placeholders: {e}")
            records = {}
        added = merge_spacecraft(self.store, records)
        logger.info(f"Loaded {len(added)} spacecraft "
                    f"({sum(1 for e in added if e.placeholder)} placeholders).")
        return added

    def start_spacecraft_load(self, source=SPACECRAFT_DATA_SOURCE):
        thread = threading.Thread(target=self.load_spacecraft, args=(source,), name="spacecraft-load", daemon=True)
        thread.start()
        return thread

    # -- Visibility --

    def body_visible(self, element):
        """A satellite also needs its planet showing, it hangs off it."""
        if not self.flags.shows(element.kind):
            return False
        if element.parent is not None:
            return self.body_visible(self.store.get(element.parent))
        return True

    def orbit_visible(self, element):
        return (self.flags.show_orbits and element.semi_major_axis > 0
                and self.body_visible(element))

    # -- Frame update --

    def update(self, real_delta_seconds):
        instant = self.time.tick(real_delta_seconds)
        live = self.time.is_live
        overrides = self.feed.overrides
        elapsed = days_since_epoch(instant)

        elements = self.store.all()
        for element in elements:
            if element.name not in self.composer:
                # Merged in since the last frame (spacecraft).
                self.composer.add(element)
            solution = solve(element, instant, overrides, live)
            self.composer.update(element.name, solution, pivot_angle(element, elapsed))

        frame = FrameState(instant=instant, mode=self.time.mode.value, scale_label=self.time.scale_label)
        for element in elements:
            position = self.composer.world_position(element.name)
            state = BodyState(
                key=element.name,
                display_name=element.display_name,
                kind=element.kind,
                position=position,
                rotation=self.composer.node(element.name).spin,
                visible=self.body_visible(element),
                orbit_visible=self.orbit_visible(element),
            )
            if element.kind is BodyKind.COMET:
                state.tail_opacity = comet_tail_opacity(float(np.linalg.norm(position)))
            frame.bodies[element.name] = state

        if self.flags.show_labels:
            anchors = [LabelAnchor(key=s.key, world_position=s.position, order=self.store.order(s.key))
                       for s in frame.bodies.values() if s.visible]
            for key, visible in declutter(anchors, self.camera):
                frame.bodies[key].label_visible = visible

        if self.belt is not None:
            frame.belt_positions = self.belt.positions(instant)
        return frame

    # -- Queries --

    def search(self, query):
        """Case-insensitive substring match over every body name."""
        query = query.strip().lower()
        if not query:
            return []
        return [e.name for e in self.store.all() if query in e.name.lower()]

    def mission_status(self):
        elements = self.store.all()
        return {
            "objects": len(elements),
            "spacecraft": sum(1 for e in elements if e.kind is BodyKind.SPACECRAFT),
            "comets": sum(1 for e in elements if e.kind is BodyKind.COMET),
            "data_source": self.feed.data_source,
            "api_status": self.feed.status_text,
        }

    def orbit_frame(self, key):
        return self.composer.orbit_frame(key)


def build_orrery(seed=None):
    """Orrery with the default catalogue, NASA feed from config and the asteroid belt."""
    return Orrery(feed=LiveFeed(api_key=NASA_API_KEY), belt=AsteroidBelt(seed=seed))
