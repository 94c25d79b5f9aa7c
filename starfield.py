import numpy as np

from config import (
    STARFIELD_STARS, STARFIELD_SPREAD, AU_IN_UNITS,
    ASTEROID_BELT_PARTICLES, ASTEROID_BELT_INNER_AU, ASTEROID_BELT_OUTER_AU,
    ASTEROID_BELT_THICKNESS, ASTEROID_BELT_SPEED_FACTOR,
)
from physics import days_since_epoch


class Starfield:
    """Background stars, scattered at random in a big cube around the Sun. Purely decorative."""

    def __init__(self, count=STARFIELD_STARS, spread=STARFIELD_SPREAD, seed=None):
        rng = np.random.default_rng(seed)
        self.positions = rng.uniform(-spread / 2, spread / 2, size=(count, 3))

    def __len__(self):
        return len(self.positions)


class AsteroidBelt:
    """
    Main belt between Mars and Jupiter, as a cloud of particles on circular orbits.

    Each particle keeps its radius, starting angle, height above the plane and angular speed.
    Inner particles go faster (speed scales with inner/r). Positions come straight from the instant,
    the same as the bodies, so jumping around in time just works.
    """

    def __init__(self, count=ASTEROID_BELT_PARTICLES, inner_au=ASTEROID_BELT_INNER_AU,
                 outer_au=ASTEROID_BELT_OUTER_AU, thickness=ASTEROID_BELT_THICKNESS, seed=None):
        rng = np.random.default_rng(seed)
        self.inner = inner_au * AU_IN_UNITS
        self.outer = outer_au * AU_IN_UNITS
        self.radii = rng.uniform(self.inner, self.outer, size=count)
        self.start_angles = rng.uniform(0, 2 * np.pi, size=count)
        self.heights = rng.uniform(-thickness / 2, thickness / 2, size=count)
        # radians per day
        self.speeds = (rng.random(count) * 0.05 + 0.01) * (self.inner / self.radii)

    def __len__(self):
        return len(self.radii)

    def angles(self, instant):
        elapsed = days_since_epoch(instant)
        return self.start_angles + self.speeds * elapsed * ASTEROID_BELT_SPEED_FACTOR

    def positions(self, instant):
        """(N, 3) array of particle positions at `instant`."""
        angles = self.angles(instant)
        return np.column_stack([
            np.cos(angles) * self.radii,
            self.heights,
            np.sin(angles) * self.radii,
        ])
