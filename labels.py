"""
LABELS MODULE
-------------
Decides, every frame, which body labels get drawn.

The process:
1.  **Eligibility**: a label is only a candidate if its body's category is switched on (VisibilityFlags).
2.  **Projection**: each candidate anchor goes through the camera into normalized screen space (-1..1).
    Anything behind the camera or past the far plane is dropped.
3.  **Declutter**: any two labels closer on screen than the threshold fight it out.
    The one nearer the camera stays, the farther one is hidden. Equal distance goes to the earlier body
    in the catalogue, so nothing flickers.

This is O(n^2) in labeled bodies, fine for the few dozen we have. Belt particles and background stars
never carry labels and never come through here.
"""
import math
from dataclasses import dataclass

import numpy as np

from catalogue import BodyKind
from config import (
    CAMERA_FOV_DEG, CAMERA_NEAR, CAMERA_FAR, CAMERA_START_POSITION,
    SCREEN_WIDTH, SCREEN_HEIGHT, LABEL_SCREEN_DISTANCE_THRESHOLD,
)


@dataclass
class VisibilityFlags:
    show_labels: bool = False
    show_orbits: bool = True
    show_planets: bool = True
    show_moons: bool = True
    show_spacecraft: bool = True
    show_comets: bool = False

    def shows(self, kind):
        """Whether bodies of this kind are switched on. The star always is."""
        if kind is BodyKind.STAR:
            return True
        if kind is BodyKind.PLANET:
            return self.show_planets
        if kind is BodyKind.MOON:
            return self.show_moons
        if kind is BodyKind.SPACECRAFT:
            return self.show_spacecraft
        if kind is BodyKind.COMET:
            return self.show_comets
        return False


class Camera:
    """
    A perspective camera looking from `position` at `target`.
    Same conventions as OpenGL: right handed, camera looks down its own -z, NDC cube is -1..1.
    """

    def __init__(self, position=CAMERA_START_POSITION, target=(0, 0, 0), up=(0, 1, 0),
                 fov_deg=CAMERA_FOV_DEG, aspect=SCREEN_WIDTH / SCREEN_HEIGHT,
                 near=CAMERA_NEAR, far=CAMERA_FAR):
        self.position = np.array(position, dtype=float)
        self.target = np.array(target, dtype=float)
        self.up = np.array(up, dtype=float)
        self.fov_deg = fov_deg
        self.aspect = aspect
        self.near = near
        self.far = far

    def view_matrix(self):
        forward = self.target - self.position
        forward /= np.linalg.norm(forward)
        right = np.cross(forward, self.up)
        if np.linalg.norm(right) < 1e-12:
            # Looking straight along `up`, pick any perpendicular.
            right = np.cross(forward, np.array([0.0, 0.0, 1.0]))
        right /= np.linalg.norm(right)
        true_up = np.cross(right, forward)

        view = np.identity(4)
        view[0, :3] = right
        view[1, :3] = true_up
        view[2, :3] = -forward
        view[:3, 3] = -view[:3, :3] @ self.position
        return view

    def projection_matrix(self):
        f = 1.0 / math.tan(math.radians(self.fov_deg) / 2)
        n, fa = self.near, self.far
        return np.array([
            [f / self.aspect, 0, 0, 0],
            [0, f, 0, 0],
            [0, 0, (fa + n) / (n - fa), 2 * fa * n / (n - fa)],
            [0, 0, -1, 0],
        ], dtype=float)

    def view_projection(self):
        return self.projection_matrix() @ self.view_matrix()

    def project(self, point, view_projection=None):
        """
        World point -> (ndc x, ndc y, ndc z, clip w).
        w <= 0 means the point is behind the camera, ndc z > 1 means past the far plane.
        """
        vp = self.view_projection() if view_projection is None else view_projection
        clip = vp @ np.append(np.asarray(point, dtype=float), 1.0)
        w = clip[3]
        if abs(w) < 1e-12:
            return math.inf, math.inf, math.inf, w
        return clip[0] / w, clip[1] / w, clip[2] / w, w

    def distance_to(self, point):
        return float(np.linalg.norm(np.asarray(point, dtype=float) - self.position))

    def orbit(self, yaw_deg, pitch_deg, distance):
        """Puts the camera on a sphere of `distance` around its target."""
        yaw = math.radians(yaw_deg)
        pitch = math.radians(pitch_deg)
        offset = np.array([
            distance * math.cos(pitch) * math.sin(yaw),
            distance * math.sin(pitch),
            distance * math.cos(pitch) * math.cos(yaw),
        ])
        self.position = self.target + offset


@dataclass
class LabelAnchor:
    key: str
    world_position: np.ndarray
    order: int = 0
    screen_position: tuple = None
    distance: float = 0.0
    visible: bool = False


def _wins(a, b):
    # Strictly nearer wins, ties go to catalogue order.
    return (a.distance, a.order) < (b.distance, b.order)


def project_anchors(anchors, camera):
    """
    Fills in screen position and distance for every anchor and returns the ones in front of the camera.
    Anchors that fail projection are left not visible.
    """
    vp = camera.view_projection()
    candidates = []
    for anchor in anchors:
        anchor.distance = camera.distance_to(anchor.world_position)
        x, y, z, w = camera.project(anchor.world_position, vp)
        anchor.screen_position = (x, y)
        if w <= 0 or z > 1:
            anchor.visible = False
            continue
        anchor.visible = True
        candidates.append(anchor)
    return candidates


def declutter(anchors, camera, threshold=LABEL_SCREEN_DISTANCE_THRESHOLD):
    """
    Returns [(key, visible), ...] in the order the anchors came in.

    Greedy pass in catalogue order. A hidden label stops competing straight away,
    so it can't knock out anything else.
    """
    anchors = list(anchors)
    candidates = sorted(project_anchors(anchors, camera), key=lambda a: a.order)

    for i, first in enumerate(candidates):
        if not first.visible:
            continue
        for second in candidates[i + 1:]:
            if not second.visible:
                continue
            dx = first.screen_position[0] - second.screen_position[0]
            dy = first.screen_position[1] - second.screen_position[1]
            if math.hypot(dx, dy) < threshold:
                if _wins(first, second):
                    second.visible = False
                else:
                    first.visible = False
                    break

    return [(anchor.key, anchor.visible) for anchor in anchors]
