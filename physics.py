import math
from datetime import datetime, timezone
from typing import NamedTuple

import numpy as np

from catalogue import BodyKind
from config import (
    EPOCH, SECONDS_PER_DAY, AU_IN_UNITS,
    COMET_TAIL_MAX_OPACITY, COMET_TAIL_FULL_AU, COMET_TAIL_FADE_AU,
)

"""
PHYSICS MODULE
--------------
This module turns an orbital element and an instant into a position on the orbit.

Key Concepts:
1.  **Epoch**: A fixed "day zero" (J2000, 2000-01-01 12:00 UTC). Elapsed time is always measured from it,
    so the same instant gives the same position no matter how we got there.

2.  **Mean Anomaly (M)**: An angle that grows linearly with time.
    M = phase_seed + 2*pi * elapsed_days / period

3.  **True Anomaly (nu)**: Where the body actually is on its ellipse.
    We do NOT iterate Kepler's equation here. A first order equation of centre is plenty for a picture:
    nu ~= M + 2 * e * sin(M)

4.  **Focus Convention**: The parent sits at a focus, not at the centre of the ellipse.
    b = a * sqrt(1 - e^2)      (semi-minor axis)
    c = a * e                  (centre to focus)
    x = cos(nu) * a + c
    z = sin(nu) * b

Moons and planet-bound spacecraft don't use the ellipse at all. They sit at a fixed offset on a pivot
that turns around their planet (see frames.py), so here they only get their spin.
"""


class Solution(NamedTuple):
    x: float
    z: float
    rotation: float


def utc_now():
    return datetime.now(timezone.utc)


def format_instant(instant):
    return instant.strftime('%d-%m-%Y %H:%M:%S UTC')


def days_since_epoch(instant, epoch=EPOCH):
    """Elapsed days (fractional, signed) between the epoch and `instant`."""
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return (instant - epoch).total_seconds() / SECONDS_PER_DAY


def mean_anomaly(element, elapsed_days):
    if element.orbital_period_days == 0:
        return element.phase_seed
    return element.phase_seed + 2 * math.pi * elapsed_days / element.orbital_period_days


def true_anomaly(mean_anomaly_rad, eccentricity):
    """First order equation of centre. Bounded error, fine for visualisation."""
    return mean_anomaly_rad + 2 * eccentricity * math.sin(mean_anomaly_rad)


def ellipse_position(semi_major_axis, eccentricity, true_anomaly_rad):
    """(x, z) on the ellipse, with the focus (the parent) at the origin."""
    b = semi_major_axis * math.sqrt(1 - eccentricity ** 2)
    c = semi_major_axis * eccentricity
    x = math.cos(true_anomaly_rad) * semi_major_axis + c
    z = math.sin(true_anomaly_rad) * b
    return x, z


def rotation_angle(element, elapsed_days):
    """Spin angle in radians. Negative rotation period spins the other way (Venus, Uranus)."""
    if element.rotation_period_days == 0:
        return 0.0
    return 2 * math.pi * elapsed_days / element.rotation_period_days


def pivot_angle(element, elapsed_days):
    """Angle of the pivot a satellite hangs from. Advances at 1/period turns per day."""
    return mean_anomaly(element, elapsed_days)


def solve(element, instant, overrides=None, live=False):
    """
    Position (x, z) in the body's orbital plane frame plus its spin, at `instant`.

    Steps:
    1.  Work out elapsed days since the epoch and the spin angle (spin is never overridden).
    2.  If we're live and the feed has this body, its position wins.
    3.  Otherwise dispatch on the body:
        - the star, or anything with a = 0, sits on the origin
        - satellites (have a parent) sit at a fixed offset, their pivot does the moving
        - period 0 means the body doesn't translate
        - everything else runs round its ellipse
    """
    elapsed = days_since_epoch(instant)
    rotation = rotation_angle(element, elapsed)

    if live and overrides:
        fix = overrides.get(element.name)
        if fix is not None:
            return Solution(float(fix.x), float(fix.z), rotation)

    a = element.semi_major_axis
    if element.kind is BodyKind.STAR or a == 0:
        return Solution(0.0, 0.0, rotation)
    if element.parent is not None:
        return Solution(a, 0.0, rotation)
    if element.orbital_period_days == 0:
        x, z = ellipse_position(a, element.eccentricity, element.phase_seed)
        return Solution(x, z, rotation)

    nu = true_anomaly(mean_anomaly(element, elapsed), element.eccentricity)
    x, z = ellipse_position(a, element.eccentricity, nu)
    return Solution(x, z, rotation)


def orbit_path(element, num_points=200):
    """
    Points along the whole orbit, in the same frame `solve` works in (y is 0, the plane is x/z).
    Used for drawing the orbit lines.

    Satellites trace a circle around their pivot, everything else the focus-centred ellipse.
    """
    a = element.semi_major_axis
    if a <= 0:
        return np.empty((0, 3))

    angles = np.linspace(0, 2 * np.pi, num_points)
    if element.parent is not None:
        xs = a * np.cos(angles)
        zs = a * np.sin(angles)
    else:
        e = element.eccentricity
        b = a * np.sqrt(1 - e ** 2)
        xs = a * np.cos(angles) + a * e
        zs = b * np.sin(angles)
    return np.column_stack([xs, np.zeros_like(xs), zs])


def comet_tail_opacity(distance_from_sun):
    """
    Tail fades out as the comet heads away from the Sun.
    Full strength inside COMET_TAIL_FULL_AU, gone past COMET_TAIL_FADE_AU.
    """
    near = COMET_TAIL_FULL_AU * AU_IN_UNITS
    far = COMET_TAIL_FADE_AU * AU_IN_UNITS
    opacity = COMET_TAIL_MAX_OPACITY * max(0.0, (far - distance_from_sun) / (far - near))
    return min(COMET_TAIL_MAX_OPACITY, opacity)
