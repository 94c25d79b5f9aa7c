import logging
import sys

import pygame

from config import SCREEN_WIDTH, SCREEN_HEIGHT, FPS, LIVE_REFRESH_SECONDS
from orrery import build_orrery
from physics import format_instant
from renderer import OrreryView
from starfield import Starfield

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(module)s - %(message)s')
logger = logging.getLogger(__name__)


def handle_key(key, orrery, view):
    """Keyboard controls. Returns False when the app should quit."""
    time = orrery.time
    flags = orrery.flags
    if key == pygame.K_ESCAPE:
        return False
    elif key == pygame.K_l:
        time.enter_live()
    elif key == pygame.K_s:
        time.enter_simulated()
    elif key == pygame.K_UP:
        if time.is_live:
            time.enter_simulated()
        time.speed_up()
    elif key == pygame.K_DOWN:
        if time.is_live:
            time.enter_simulated()
        time.speed_down()
    elif key == pygame.K_SPACE:
        if time.is_live:
            time.enter_simulated()
        time.toggle_pause()
    elif key == pygame.K_r:
        time.reset()
        view.reset_view()
    elif key == pygame.K_t:
        flags.show_labels = not flags.show_labels
    elif key == pygame.K_o:
        flags.show_orbits = not flags.show_orbits
    elif key == pygame.K_p:
        flags.show_planets = not flags.show_planets
    elif key == pygame.K_m:
        flags.show_moons = not flags.show_moons
    elif key == pygame.K_c:
        flags.show_spacecraft = not flags.show_spacecraft
    elif key == pygame.K_k:
        flags.show_comets = not flags.show_comets
    return True


def main():
    """
    The Main Entry Point.

    Sets up the Pygame window, builds the orrery, and runs the main loop.

    The Loop:
    1.  **Event Handling**: keys switch time modes, speeds and visibility; mouse drag rotates, wheel zooms.
    2.  **Live Refresh**: while Live, ask the feed for new positions every so often (in the background).
    3.  **Update**: `orrery.update()` advances time and works out where everything is.
    4.  **Draw**: the view draws the resulting frame.
    """
    orrery = build_orrery()
    logger.info(f"Starting at {format_instant(orrery.time.instant)} with {len(orrery.store)} bodies.")

    orrery.start_spacecraft_load()
    if orrery.feed.api_key:
        orrery.feed.request_connect()
    else:
        logger.warning("NASA_API_KEY not set, running on the simulation only.")

    pygame.init()
    screen = pygame.display.set_mode((SCREEN_WIDTH, SCREEN_HEIGHT))
    pygame.display.set_caption("Orrery | Solar System |")

    clock = pygame.time.Clock()
    view = OrreryView(orrery, Starfield())

    running = True
    dragging = False
    last_mouse_pos = None
    since_refresh = 0.0

    while running:
        dt_seconds = clock.tick(FPS) / 1000.0

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                running = handle_key(event.key, orrery, view)
            elif event.type == pygame.MOUSEBUTTONDOWN:
                if event.button == 1:
                    dragging = True
                    last_mouse_pos = event.pos
                elif event.button == 4:
                    view.zoom(1 / 1.1)
                elif event.button == 5:
                    view.zoom(1.1)
            elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
                dragging = False
                last_mouse_pos = None
            elif event.type == pygame.MOUSEMOTION and dragging and last_mouse_pos:
                dx = event.pos[0] - last_mouse_pos[0]
                dy = event.pos[1] - last_mouse_pos[1]
                view.rotate(dx, dy)
                last_mouse_pos = event.pos

        if orrery.time.is_live and orrery.feed.connected:
            since_refresh += dt_seconds
            if since_refresh >= LIVE_REFRESH_SECONDS:
                since_refresh = 0.0
                orrery.feed.request_refresh()

        frame = orrery.update(dt_seconds)
        view.draw(screen, frame)

    pygame.quit()
    sys.exit()


if __name__ == '__main__':
    main()
