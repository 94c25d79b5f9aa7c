"""
CATALOGUE MODULE
----------------
Holds the static description of every simulated body and the store they live in.

Key Concepts:
1.  **OrbitalElement**: One immutable record per body (planet, moon, spacecraft, comet...).
    Distances are already in scene units, periods in days, angles in degrees.
2.  **ElementStore**: Append-only, insertion-ordered lookup of elements by name.
    Nothing is ever updated or removed once it is in.
3.  **Descriptors**: The catalogue tables below are written in physical units (km, AU, days, years)
    and converted into elements by `element_from_descriptor`.
4.  **Spacecraft**: Their orbit data arrives after start-up. A craft whose data can't be had still
    gets simulated, as a placeholder built from rough estimates.
"""
import logging
import math
import random
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from config import (
    AU_IN_UNITS, PLANET_SIZE_SCALE, SUN_VISUAL_SCALE, MOON_DISTANCE_SCALE,
    EARTH_RADIUS_KM, DAYS_PER_YEAR, COMET_SCALE, PLACEHOLDER_RADIUS,
)

logger = logging.getLogger(__name__)


class BodyKind(Enum):
    STAR = "star"
    PLANET = "planet"
    MOON = "moon"
    SPACECRAFT = "spacecraft"
    COMET = "comet"
    BELT_PARTICLE = "belt_particle"


class CatalogueError(Exception):
    """Base class for problems with catalogue data."""


class InvalidElement(CatalogueError):
    """A catalogue entry that can't be simulated. Only that one entry is dropped."""


class BodyNotFound(CatalogueError, KeyError):
    """No body with that name in the store."""


class DataUnavailable(CatalogueError):
    """Asynchronous orbit data (spacecraft) could not be obtained."""


@dataclass(frozen=True)
class RingSpec:
    inner: float
    outer: float
    color: tuple = (1.0, 1.0, 1.0)
    opacity: float = 0.7
    particle_count: int = 8000


@dataclass(frozen=True)
class OrbitalElement:
    name: str
    kind: BodyKind
    semi_major_axis: float = 0.0
    eccentricity: float = 0.0
    inclination_deg: float = 0.0
    axial_tilt_deg: float = 0.0
    orbital_period_days: float = 0.0
    rotation_period_days: float = 0.0
    parent: Optional[str] = None
    phase_seed: float = 0.0
    radius: float = 0.0
    orbit_color: Optional[tuple] = None
    rings: Optional[RingSpec] = None
    placeholder: bool = False

    @property
    def display_name(self):
        if self.placeholder:
            return f"{self.name} (Placeholder)"
        return self.name


def validate_element(element, store=None):
    """
    Rejects anything the solver or the frame composer can't handle.
    Raises InvalidElement with the reason.
    """
    if not element.name:
        raise InvalidElement("Body has no name")

    numbers = (element.semi_major_axis, element.eccentricity, element.inclination_deg,
               element.axial_tilt_deg, element.orbital_period_days,
               element.rotation_period_days, element.phase_seed, element.radius)
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in numbers):
        raise InvalidElement(f"{element.name}: non-numeric or non-finite orbital element")

    if not 0.0 <= element.eccentricity < 1.0:
        raise InvalidElement(f"{element.name}: eccentricity {element.eccentricity} outside [0, 1)")
    if element.semi_major_axis < 0:
        raise InvalidElement(f"{element.name}: negative semi-major axis")
    if element.orbital_period_days < 0:
        raise InvalidElement(f"{element.name}: negative orbital period")

    if element.parent is None:
        # Pivot bodies may sit still (period 0), top level orbits may not.
        if element.semi_major_axis > 0 and element.orbital_period_days <= 0:
            raise InvalidElement(f"{element.name}: non-positive period with non-zero semi-major axis")
        return

    if element.parent == element.name:
        raise InvalidElement(f"{element.name}: body cannot orbit itself")
    if store is not None:
        try:
            parent = store.get(element.parent)
        except BodyNotFound:
            raise InvalidElement(f"{element.name}: unknown parent '{element.parent}'") from None
        if parent.parent is not None:
            raise InvalidElement(f"{element.name}: parent '{parent.name}' is itself a satellite")


class ElementStore:
    """
    Insertion ordered, append-only store of OrbitalElements keyed by name.

    Spacecraft are appended from a loader thread while the frame loop reads,
    so appends take a lock and `all()` hands out a snapshot.
    """

    def __init__(self, elements=None):
        self._elements = {}
        self._order = {}
        self._lock = threading.Lock()
        if elements:
            self.extend(elements)

    def add(self, element):
        with self._lock:
            if element.name in self._elements:
                raise InvalidElement(f"Duplicate body name '{element.name}'")
            validate_element(element, self)
            self._order[element.name] = len(self._order)
            self._elements[element.name] = element
        return element

    def extend(self, elements):
        """Adds each element, logging and omitting the ones that are invalid."""
        accepted = []
        for element in elements:
            try:
                accepted.append(self.add(element))
            except InvalidElement as e:
                logger.warning(f"Skipping catalogue entry: {e}")
        return accepted

    def get(self, key):
        try:
            return self._elements[key]
        except KeyError:
            raise BodyNotFound(key) from None

    def all(self):
        with self._lock:
            return tuple(self._elements.values())

    def order(self, key):
        try:
            return self._order[key]
        except KeyError:
            raise BodyNotFound(key) from None

    def children(self, key):
        return [e for e in self.all() if e.parent == key]

    def __contains__(self, key):
        return key in self._elements

    def __len__(self):
        return len(self._elements)

    def __iter__(self):
        return iter(self.all())


# --- Static catalogue tables (physical units) ---

SOLAR_SYSTEM = [
    {"name": "Sun", "kind": "star", "radius_km": 695700, "rotation_period_days": 27},
    {"name": "Mercury", "kind": "planet", "radius_km": 2439.7, "distance_au": 0.387, "orbital_period_days": 88,
     "rotation_period_days": 58.6, "tilt": 0.03, "ecc": 0.205, "incl": 7.0, "orbit_color": (0x8c, 0x8c, 0x8c)},
    {"name": "Venus", "kind": "planet", "radius_km": 6051.8, "distance_au": 0.723, "orbital_period_days": 224.7,
     "rotation_period_days": -243, "tilt": 177.4, "ecc": 0.007, "incl": 3.4, "orbit_color": (0xd9, 0xa6, 0x48)},
    {"name": "Earth", "kind": "planet", "radius_km": 6371, "distance_au": 1, "orbital_period_days": 365.2,
     "rotation_period_days": 1, "tilt": 23.44, "ecc": 0.017, "incl": 0.0, "orbit_color": (0x4b, 0x71, 0xd9)},
    {"name": "Mars", "kind": "planet", "radius_km": 3389.5, "distance_au": 1.52, "orbital_period_days": 687,
     "rotation_period_days": 1.03, "tilt": 25.19, "ecc": 0.094, "incl": 1.8, "orbit_color": (0xd9, 0x5b, 0x43)},
    {"name": "Jupiter", "kind": "planet", "radius_km": 69911, "distance_au": 5.20, "orbital_period_days": 4331,
     "rotation_period_days": 0.41, "tilt": 3.13, "ecc": 0.049, "incl": 1.3, "orbit_color": (0xc7, 0x89, 0x4f),
     "rings": {"inner_km": 92000, "outer_km": 129000, "color": (0.5, 0.4, 0.3), "opacity": 0.3, "particle_count": 2000}},
    {"name": "Saturn", "kind": "planet", "radius_km": 58232, "distance_au": 9.58, "orbital_period_days": 10747,
     "rotation_period_days": 0.44, "tilt": 26.73, "ecc": 0.057, "incl": 2.5, "orbit_color": (0xba, 0xb1, 0x78),
     "rings": {"inner_km": 74500, "outer_km": 140220, "color": (0.8, 0.7, 0.6)}},
    {"name": "Uranus", "kind": "planet", "radius_km": 25362, "distance_au": 19.22, "orbital_period_days": 30589,
     "rotation_period_days": -0.72, "tilt": 97.77, "ecc": 0.046, "incl": 0.8, "orbit_color": (0x82, 0xa6, 0xb3),
     "rings": {"inner_km": 38000, "outer_km": 98000, "color": (0.6, 0.7, 0.8), "opacity": 0.4, "particle_count": 3000}},
    {"name": "Neptune", "kind": "planet", "radius_km": 24622, "distance_au": 30.05, "orbital_period_days": 59800,
     "rotation_period_days": 0.67, "tilt": 28.32, "ecc": 0.011, "incl": 1.8, "orbit_color": (0x56, 0x6c, 0xb3),
     "rings": {"inner_km": 41900, "outer_km": 62900, "color": (0.5, 0.6, 0.9), "opacity": 0.5, "particle_count": 1000}},
]

# Moons orbit a pivot on their planet, distances in km from the planet centre.
MOONS = {
    "Earth": [
        {"name": "Moon", "radius_km": 1737, "distance_km": 384400, "orbital_period_days": 27.3},
    ],
    "Mars": [
        {"name": "Phobos", "radius_km": 11.2, "distance_km": 9376, "orbital_period_days": 0.3},
        {"name": "Deimos", "radius_km": 6.2, "distance_km": 23463, "orbital_period_days": 1.26},
    ],
    "Jupiter": [
        {"name": "Io", "radius_km": 1821, "distance_km": 421700, "orbital_period_days": 1.77},
        {"name": "Europa", "radius_km": 1560, "distance_km": 671034, "orbital_period_days": 3.55},
        {"name": "Ganymede", "radius_km": 2634, "distance_km": 1070412, "orbital_period_days": 7.15},
        {"name": "Callisto", "radius_km": 2410, "distance_km": 1882709, "orbital_period_days": 16.69},
    ],
    "Saturn": [
        {"name": "Mimas", "radius_km": 198, "distance_km": 185520, "orbital_period_days": 0.9},
        {"name": "Enceladus", "radius_km": 252, "distance_km": 238020, "orbital_period_days": 1.4},
        {"name": "Tethys", "radius_km": 533, "distance_km": 294660, "orbital_period_days": 1.9},
        {"name": "Dione", "radius_km": 561, "distance_km": 377400, "orbital_period_days": 2.7},
        {"name": "Rhea", "radius_km": 764, "distance_km": 527040, "orbital_period_days": 4.5},
        {"name": "Titan", "radius_km": 2575, "distance_km": 1221870, "orbital_period_days": 15.9},
        {"name": "Iapetus", "radius_km": 735, "distance_km": 3561300, "orbital_period_days": 79.3},
    ],
    "Uranus": [
        {"name": "Miranda", "radius_km": 235, "distance_km": 129900, "orbital_period_days": 1.4},
        {"name": "Ariel", "radius_km": 578, "distance_km": 190900, "orbital_period_days": 2.5},
        {"name": "Umbriel", "radius_km": 584, "distance_km": 266000, "orbital_period_days": 4.1},
        {"name": "Titania", "radius_km": 788, "distance_km": 436300, "orbital_period_days": 8.7},
        {"name": "Oberon", "radius_km": 761, "distance_km": 583500, "orbital_period_days": 13.4},
    ],
    "Neptune": [
        {"name": "Triton", "radius_km": 1353, "distance_km": 354759, "orbital_period_days": 5.8},
        {"name": "Nereid", "radius_km": 170, "distance_km": 5513818, "orbital_period_days": 360},
    ],
}

COMETS = [
    {"name": "Halley's Comet", "distance_au": 17.8, "ecc": 0.967, "incl": 162, "period_years": 76},
    {"name": "Comet Hale-Bopp", "distance_au": 186, "ecc": 0.995, "incl": 89, "period_years": 2533},
    {"name": "Comet Encke", "distance_au": 2.2, "ecc": 0.848, "incl": 12, "period_years": 3.3},
    {"name": "Comet Swift-Tuttle", "distance_au": 26, "ecc": 0.963, "incl": 113, "period_years": 133},
    {"name": "Comet Hyakutake", "distance_au": 34, "ecc": 0.999, "incl": 124, "period_years": 15000},
]

# Rough spacecraft orbits. Good enough to keep a craft on screen when its real data is missing.
SPACECRAFT = [
    {"name": "OSIRIS-REx", "distance_au": 1.1, "period_years": 1.2},
    {"name": "Parker Solar Probe", "distance_au": 0.6, "period_years": 0.3},
    {"name": "New Horizons", "distance_au": 39.5, "period_years": 248},
    {"name": "Voyager 1", "distance_au": 150, "period_years": 17000},
    {"name": "Voyager 2", "distance_au": 120, "period_years": 15000},
    {"name": "James Webb", "distance_au": 1.01, "period_years": 1.02},
    {"name": "Hubble", "parent": "Earth", "altitude_km": 540, "orbital_period_days": 1.6 / 24},
    {"name": "ISS", "parent": "Earth", "altitude_km": 408, "orbital_period_days": 1.5 / 24},
]


def _seeded_phase(name):
    # Fixed per name, so a body lands in the same spot every run.
    return random.Random(name).uniform(0, 2 * math.pi)


def _period_days(descriptor):
    if descriptor.get("period_years") is not None:
        return float(descriptor["period_years"]) * DAYS_PER_YEAR
    return float(descriptor.get("orbital_period_days") or 0.0)


def _distance_units(descriptor, kind):
    if descriptor.get("distance_au") is not None:
        return float(descriptor["distance_au"]) * AU_IN_UNITS
    if descriptor.get("altitude_km") is not None:
        # Spacecraft around a planet: altitude above Earth's surface, planet-size scale.
        return (EARTH_RADIUS_KM + float(descriptor["altitude_km"])) * PLANET_SIZE_SCALE
    if descriptor.get("distance_km") is not None:
        scale = MOON_DISTANCE_SCALE if kind is BodyKind.MOON else PLANET_SIZE_SCALE
        return float(descriptor["distance_km"]) * scale
    return 0.0


def _radius_units(descriptor, kind):
    if kind is BodyKind.COMET:
        return COMET_SCALE * 2
    radius_km = descriptor.get("radius_km")
    if radius_km is None:
        return PLACEHOLDER_RADIUS
    scale = PLANET_SIZE_SCALE * SUN_VISUAL_SCALE if kind is BodyKind.STAR else PLANET_SIZE_SCALE
    return float(radius_km) * scale


def element_from_descriptor(descriptor, kind=None, parent=None, placeholder=False):
    """
    Converts a descriptor dict (physical units) into an OrbitalElement (scene units).

    Recognised keys: name, kind, radius_km, distance_au | distance_km | altitude_km,
    orbital_period_days | period_years, rotation_period_days, tilt, ecc, incl,
    parent, phase_seed, orbit_color, rings.
    Raises InvalidElement if the descriptor can't be read at all.
    """
    try:
        kind = kind or BodyKind(descriptor.get("kind", "planet"))
        parent = parent or descriptor.get("parent")
        period = _period_days(descriptor)

        rotation = descriptor.get("rotation_period_days")
        if rotation is None:
            # Moons are tidally locked unless told otherwise.
            rotation = period if kind is BodyKind.MOON else 0.0

        phase_seed = descriptor.get("phase_seed")
        if phase_seed is None:
            # Planets and comets start from the epoch alignment, satellites and craft get a fixed scatter.
            spread = kind in (BodyKind.MOON, BodyKind.SPACECRAFT) or placeholder
            phase_seed = _seeded_phase(descriptor["name"]) if spread else 0.0

        rings = None
        ring_data = descriptor.get("rings")
        if ring_data:
            rings = RingSpec(
                inner=float(ring_data["inner_km"]) * PLANET_SIZE_SCALE,
                outer=float(ring_data["outer_km"]) * PLANET_SIZE_SCALE,
                color=tuple(ring_data.get("color", (1.0, 1.0, 1.0))),
                opacity=float(ring_data.get("opacity", 0.7)),
                particle_count=int(ring_data.get("particle_count", 8000)),
            )

        orbit_color = descriptor.get("orbit_color")
        return OrbitalElement(
            name=descriptor["name"],
            kind=kind,
            semi_major_axis=_distance_units(descriptor, kind),
            eccentricity=float(descriptor.get("ecc", descriptor.get("eccentricity", 0.0)) or 0.0),
            inclination_deg=float(descriptor.get("incl", descriptor.get("inclination", 0.0)) or 0.0),
            axial_tilt_deg=float(descriptor.get("tilt", 0.0) or 0.0),
            orbital_period_days=period,
            rotation_period_days=float(rotation),
            parent=parent,
            phase_seed=float(phase_seed),
            radius=_radius_units(descriptor, kind),
            orbit_color=tuple(orbit_color) if orbit_color else None,
            rings=rings,
            placeholder=placeholder,
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidElement(f"Unreadable descriptor {descriptor.get('name', '?')!r}: {e}") from e


def _convert_all(descriptors, **kwargs):
    elements = []
    for descriptor in descriptors:
        try:
            elements.append(element_from_descriptor(descriptor, **kwargs))
        except InvalidElement as e:
            logger.warning(f"Skipping catalogue entry: {e}")
    return elements


def build_catalogue(planets=None, moons=None, comets=None):
    """
    Builds the start-up store: Sun and planets first, then moons (they need their planet in place),
    then comets. Bad entries are logged and left out, the rest carries on.
    """
    store = ElementStore()
    store.extend(_convert_all(SOLAR_SYSTEM if planets is None else planets))

    moon_table = MOONS if moons is None else moons
    for parent_name, moon_list in moon_table.items():
        if parent_name not in store:
            logger.warning(f"No parent '{parent_name}' in catalogue, skipping its moons.")
            continue
        store.extend(_convert_all(moon_list, kind=BodyKind.MOON, parent=parent_name))

    store.extend(_convert_all(COMETS if comets is None else comets, kind=BodyKind.COMET))
    logger.info(f"Catalogue loaded with {len(store)} bodies.")
    return store


def placeholder_element(estimate):
    """An approximate but still simulated stand-in for a craft whose data didn't arrive."""
    return element_from_descriptor(estimate, kind=BodyKind.SPACECRAFT, placeholder=True)


def merge_spacecraft(store, records, estimates=None):
    """
    Appends one element per known spacecraft to the store.

    `records` maps craft name -> orbit record (descriptor keys). For each estimate:
    1.  **Record present**: the record is laid over the estimate and converted.
    2.  **Record missing or unusable**: DataUnavailable is logged and a placeholder goes in instead.
    Returns the list of elements added.
    """
    added = []
    for estimate in (SPACECRAFT if estimates is None else estimates):
        name = estimate["name"]
        if name in store:
            continue
        record = records.get(name) if records else None
        element = None
        if record is not None:
            try:
                element = store.add(element_from_descriptor({**estimate, **record}, kind=BodyKind.SPACECRAFT))
            except InvalidElement as e:
                logger.warning(f"Failed to load data for {name}: {e}")
        else:
            logger.warning(f"Failed to load data for {name}: {DataUnavailable('no orbit record')}")

        if element is None:
            try:
                element = store.add(placeholder_element(estimate))
            except InvalidElement as e:
                logger.error(f"Placeholder for {name} rejected too: {e}")
                continue
        added.append(element)
    return added
