"""
FRAMES MODULE
-------------
Composes local orbital positions into world transforms.

Every body gets a FrameNode holding only its own local state. World transforms are worked out on demand
by walking up to the parent, which is at most one level (moons and planet-bound spacecraft hang off a planet,
planets hang off nothing).

Conventions (y is up, orbits live in the x/z plane):
    root body frame  = Rx(inclination) . T(x, 0, z) . Rz(axial tilt)
    child body frame = parent body frame . Rx(inclination) . Ry(pivot angle) . T(a, 0, 0) . Rz(axial tilt)
    world transform  = body frame . Ry(spin)

Spin only enters world_transform. Satellites hang off the unspun body frame of their planet.
"""
import math
from dataclasses import dataclass, field

import numpy as np

from catalogue import BodyNotFound


def translation(x, y, z):
    m = np.identity(4)
    m[:3, 3] = (x, y, z)
    return m


def rotation_x(angle):
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [1, 0, 0, 0],
        [0, c, -s, 0],
        [0, s, c, 0],
        [0, 0, 0, 1],
    ], dtype=float)


def rotation_y(angle):
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [c, 0, s, 0],
        [0, 1, 0, 0],
        [-s, 0, c, 0],
        [0, 0, 0, 1],
    ], dtype=float)


def rotation_z(angle):
    c, s = math.cos(angle), math.sin(angle)
    return np.array([
        [c, -s, 0, 0],
        [s, c, 0, 0],
        [0, 0, 1, 0],
        [0, 0, 0, 1],
    ], dtype=float)


@dataclass
class FrameNode:
    key: str
    parent: str = None
    plane_tilt: float = 0.0     # radians, fixed at construction
    axial_tilt: float = 0.0     # radians, fixed at construction
    local_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    pivot_angle: float = 0.0
    spin: float = 0.0


class FrameComposer:
    """Arena of FrameNodes indexed by body name."""

    def __init__(self):
        self._nodes = {}

    def add(self, element):
        """
        Registers a body. The orbital plane tilt and axial tilt are applied here, once.
        A satellite's offset from its pivot is fixed for good at this point too.
        """
        if element.parent is not None and element.parent not in self._nodes:
            raise BodyNotFound(element.parent)

        node = FrameNode(
            key=element.name,
            parent=element.parent,
            plane_tilt=math.radians(element.inclination_deg),
            axial_tilt=math.radians(element.axial_tilt_deg),
        )
        if element.parent is not None:
            node.local_offset = np.array([element.semi_major_axis, 0.0, 0.0])
        self._nodes[element.name] = node
        return node

    def __contains__(self, key):
        return key in self._nodes

    def node(self, key):
        try:
            return self._nodes[key]
        except KeyError:
            raise BodyNotFound(key) from None

    def update(self, key, solution, pivot_angle=0.0):
        """
        Feeds this frame's solver output in.
        Root bodies move their offset, satellites only turn their pivot.
        """
        node = self.node(key)
        node.spin = solution.rotation
        if node.parent is None:
            node.local_offset = np.array([solution.x, 0.0, solution.z])
        else:
            node.pivot_angle = pivot_angle

    def orbit_frame(self, key):
        """The frame the body's orbit line lives in (orbit points from physics.orbit_path go through this)."""
        node = self.node(key)
        if node.parent is None:
            return rotation_x(node.plane_tilt)
        return self.body_frame(node.parent) @ rotation_x(node.plane_tilt)

    def body_frame(self, key):
        node = self.node(key)
        if node.parent is None:
            frame = rotation_x(node.plane_tilt) @ translation(*node.local_offset)
        else:
            frame = (self.orbit_frame(key)
                     @ rotation_y(node.pivot_angle)
                     @ translation(*node.local_offset))
        return frame @ rotation_z(node.axial_tilt)

    def world_transform(self, key):
        return self.body_frame(key) @ rotation_y(self.node(key).spin)

    def world_position(self, key):
        return self.body_frame(key)[:3, 3].copy()
