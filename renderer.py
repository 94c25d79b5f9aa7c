import math

import numpy as np
import pygame

from config import (
    SCREEN_WIDTH, SCREEN_HEIGHT, BLACK, WHITE, LIGHT_GREY, DARK_GREY, ORBIT_GREY, BELT_GREY,
    GREEN, DUSTY_RED, BODY_KIND_COLORS, MIN_BODY_RADIUS_PIXELS, MAX_BODY_RADIUS_PIXELS,
    CAMERA_START_POSITION, CAMERA_MAX_DISTANCE,
)
from physics import format_instant, orbit_path


# --- Pygame Specific Helper Functions ---
def ndc_to_screen(x_ndc, y_ndc):
    """
    Normalized device coordinates (-1..1, y up) to pixel coordinates (y down).
    Huge values get clamped so pygame doesn't fall over on points right at the camera.
    """
    sx = (x_ndc + 1) * 0.5 * SCREEN_WIDTH
    sy = (1 - y_ndc) * 0.5 * SCREEN_HEIGHT
    limit = 32760
    if not math.isfinite(sx):
        sx = limit if sx > 0 else -limit
    if not math.isfinite(sy):
        sy = limit if sy > 0 else -limit
    return int(max(-limit, min(sx, limit))), int(max(-limit, min(sy, limit)))


def project_points(points, view_projection):
    """
    Projects an (N, 3) array in one go.
    Returns (screen xy as (N, 2) ints, clip w, ndc z). Points with w <= 0 are behind the camera.
    """
    if len(points) == 0:
        return np.empty((0, 2), dtype=int), np.empty(0), np.empty(0)
    homogeneous = np.column_stack([points, np.ones(len(points))])
    clip = homogeneous @ view_projection.T
    w = clip[:, 3]
    safe_w = np.where(np.abs(w) < 1e-12, 1e-12, w)
    ndc = clip[:, :3] / safe_w[:, None]
    sx = (ndc[:, 0] + 1) * 0.5 * SCREEN_WIDTH
    sy = (1 - ndc[:, 1]) * 0.5 * SCREEN_HEIGHT
    screen = np.clip(np.column_stack([sx, sy]), -32760, 32760).astype(int)
    return screen, w, ndc[:, 2]


class OrreryView:
    """
    Draws FrameStates from an Orrery with pygame. Holds nothing but view state (camera angles, zoom).

    Drawing order:
    1.  Starfield and asteroid belt (dots, never labeled).
    2.  Orbit lines for bodies that have them switched on.
    3.  Bodies, far ones first (painter's algorithm) so near ones sit on top.
    4.  Labels the declutter pass left visible.
    5.  HUD: date, time mode, scale, API status, object counts.
    """

    def __init__(self, orrery, starfield=None):
        self.orrery = orrery
        self.starfield = starfield
        self.camera_yaw = 0.0
        self.camera_pitch = math.degrees(math.atan2(CAMERA_START_POSITION[1], CAMERA_START_POSITION[2]))
        self.camera_distance = float(np.linalg.norm(CAMERA_START_POSITION))
        self.main_font = pygame.font.Font(None, 16)
        self.ui_font = pygame.font.Font(None, 28)
        self.orbit_cache = {}
        self.apply_camera()

    def reset_view(self):
        """This bit resets the camera view to the default state."""
        self.camera_yaw = 0.0
        self.camera_pitch = math.degrees(math.atan2(CAMERA_START_POSITION[1], CAMERA_START_POSITION[2]))
        self.camera_distance = float(np.linalg.norm(CAMERA_START_POSITION))
        self.apply_camera()

    def rotate(self, dx, dy):
        self.camera_yaw -= dx * 0.5
        self.camera_pitch = max(-89, min(89, self.camera_pitch + dy * 0.5))
        self.apply_camera()

    def zoom(self, factor):
        self.camera_distance = max(1.0, min(CAMERA_MAX_DISTANCE, self.camera_distance * factor))
        self.apply_camera()

    def apply_camera(self):
        self.orrery.camera.orbit(self.camera_yaw, self.camera_pitch, self.camera_distance)

    def _orbit_points(self, element):
        # Orbit shapes never change, only the frame they sit in does.
        if element.name not in self.orbit_cache:
            num_points = 500 if element.eccentricity > 0.8 else 200
            self.orbit_cache[element.name] = orbit_path(element, num_points)
        return self.orbit_cache[element.name]

    def _draw_dots(self, screen, points, vp, color):
        screen_xy, w, ndc_z = project_points(points, vp)
        in_view = (w > 0) & (ndc_z <= 1)
        for sx, sy in screen_xy[in_view]:
            if 0 <= sx < SCREEN_WIDTH and 0 <= sy < SCREEN_HEIGHT:
                screen.set_at((sx, sy), color)

    def _draw_orbit(self, screen, element, vp):
        local = self._orbit_points(element)
        if local.size == 0:
            return
        frame = self.orrery.orbit_frame(element.name)
        world = (np.column_stack([local, np.ones(len(local))]) @ frame.T)[:, :3]
        screen_xy, w, _ = project_points(world, vp)
        if np.any(w <= 0):
            return  # crosses behind the camera, skip rather than smear it across the screen
        color = element.orbit_color or ORBIT_GREY
        pygame.draw.lines(screen, color, False, [tuple(p) for p in screen_xy], 1)

    def draw(self, screen, frame):
        screen.fill(BLACK)
        camera = self.orrery.camera
        vp = camera.view_projection()

        if self.starfield is not None:
            self._draw_dots(screen, self.starfield.positions, vp, DARK_GREY)
        if frame.belt_positions is not None:
            self._draw_dots(screen, frame.belt_positions, vp, BELT_GREY)

        for state in frame.bodies.values():
            if state.orbit_visible:
                self._draw_orbit(screen, self.orrery.store.get(state.key), vp)

        drawable = []
        for state in frame.bodies.values():
            if not state.visible:
                continue
            x, y, z, w = camera.project(state.position, vp)
            if w <= 0 or z > 1:
                continue
            drawable.append((camera.distance_to(state.position), state, x, y))
        drawable.sort(key=lambda item: item[0], reverse=True)

        for distance, state, x, y in drawable:
            element = self.orrery.store.get(state.key)
            sx, sy = ndc_to_screen(x, y)
            # Apparent size: physical radius over distance, scaled by the projection, then clamped.
            focal = SCREEN_HEIGHT / (2 * math.tan(math.radians(camera.fov_deg) / 2))
            radius_pixels = element.radius * focal / max(distance, 1e-6)
            radius_pixels = int(max(MIN_BODY_RADIUS_PIXELS, min(MAX_BODY_RADIUS_PIXELS, radius_pixels)))
            color = element.orbit_color or BODY_KIND_COLORS.get(state.kind.value, BODY_KIND_COLORS["Default"])
            pygame.draw.circle(screen, color, (sx, sy), radius_pixels)

            if state.tail_opacity:
                # Tail points straight away from the Sun.
                sun_x, sun_y = ndc_to_screen(*camera.project((0, 0, 0), vp)[:2])
                dx, dy = sx - sun_x, sy - sun_y
                length = math.hypot(dx, dy) or 1.0
                tail_len = 40 * state.tail_opacity / 0.4
                end = (sx + dx / length * tail_len, sy + dy / length * tail_len)
                pygame.draw.line(screen, color, (sx, sy), end, 1)

            if state.label_visible:
                name_surface = self.main_font.render(state.display_name, True, LIGHT_GREY)
                name_rect = name_surface.get_rect(center=(sx, sy - radius_pixels - 8))
                screen.blit(name_surface, name_rect)

        self._draw_hud(screen, frame)
        pygame.display.flip()

    def _draw_hud(self, screen, frame):
        time = self.orrery.time
        status = self.orrery.mission_status()
        mode_color = GREEN if time.is_live else DUSTY_RED
        mode_text = "LIVE" if time.is_live else "SIMULATION"

        lines = [
            (f"{format_instant(frame.instant)}", WHITE),
            (f"{mode_text} | {frame.scale_label}", mode_color),
            (f"{status['api_status']} | Data: {status['data_source']}", WHITE),
            (f"Objects: {status['objects']} | Spacecraft: {status['spacecraft']} | Comets: {status['comets']}", WHITE),
        ]
        y = 25
        for text, color in lines:
            surface = self.ui_font.render(text, True, color)
            screen.blit(surface, (25, y))
            y += 30

        flags = self.orrery.flags
        toggles = (f"[T]labels:{'on' if flags.show_labels else 'off'}  [O]rbits:{'on' if flags.show_orbits else 'off'}  "
                   f"[P]lanets:{'on' if flags.show_planets else 'off'}  [M]oons:{'on' if flags.show_moons else 'off'}  "
                   f"[C]raft:{'on' if flags.show_spacecraft else 'off'}  [K]omets:{'on' if flags.show_comets else 'off'}  "
                   f"[L]ive [S]im [Up/Down]speed [Space]pause [R]eset")
        surface = self.main_font.render(toggles, True, LIGHT_GREY)
        screen.blit(surface, (25, SCREEN_HEIGHT - 25))
