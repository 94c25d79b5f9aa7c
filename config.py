"""
General config file for the Orrery
Contains constants and global variables which can be altered.
Scales, periods and the epoch all feed straight into the orbit maths, so...  careful :)
"""
import os
import sys
from datetime import datetime, timezone

# --- Display ---
SCREEN_WIDTH = 1400
SCREEN_HEIGHT = 800
FPS = 60

# Colors
BLACK = (0, 0, 0)
WHITE = (255, 255, 255)
LIGHT_GREY = (135, 135, 135)
ORBIT_GREY = (40, 40, 40)
DARK_GREY = (50, 50, 50)
BELT_GREY = (160, 160, 160)
YELLOW = (255, 255, 0)
GREEN = (120, 138, 48)
DUSTY_RED = (180, 80, 80)
COMET_BLUE = (102, 170, 255)

# Body kind colors (orbit_color on the element wins when present)
BODY_KIND_COLORS = {
    "star": YELLOW,
    "planet": (170, 170, 170),
    "moon": (120, 120, 120),
    "spacecraft": (136, 136, 136),
    "comet": COMET_BLUE,
    "belt_particle": BELT_GREY,
    "Default": WHITE
}

# --- Scaling (scene units) ---
AU_IN_UNITS = 500
PLANET_SIZE_SCALE = 1 / 5000
SUN_VISUAL_SCALE = 0.05
MOON_DISTANCE_SCALE = PLANET_SIZE_SCALE * 0.3
EARTH_RADIUS_KM = 6371
COMET_SCALE = 0.5
PLACEHOLDER_RADIUS = 2
MIN_BODY_RADIUS_PIXELS = 1
MAX_BODY_RADIUS_PIXELS = 12

# --- Time ---
# "Day zero" of the ephemeris, J2000.
EPOCH = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
SECONDS_PER_DAY = 24 * 60 * 60
DAYS_PER_YEAR = 365.25

# Simulated time stops (and pauses) at these, datetime can't go past year 1 or 9999.
SIMULATION_MIN_INSTANT = datetime(1, 1, 2, tzinfo=timezone.utc)
SIMULATION_MAX_INSTANT = datetime(9999, 12, 30, tzinfo=timezone.utc)

# Selectable time scales, simulated days per real second.
TIME_SCALES = [
    (0, "Paused"),
    (1, "1 Day/sec"),
    (7, "1 Week/sec"),
    (30, "1 Month/sec"),
    (365, "1 Year/sec"),
    (3650, "10 Years/sec"),
    (36500, "100 Years/sec"),
]
DEFAULT_TIME_SCALE_INDEX = 1

# --- Labels ---
# Minimum distance between two labels in normalized device coordinates.
LABEL_SCREEN_DISTANCE_THRESHOLD = 0.08

# --- Camera ---
CAMERA_FOV_DEG = 45
CAMERA_NEAR = 0.1
CAMERA_FAR = 1000000
CAMERA_START_POSITION = (0, 2500, 9000)
CAMERA_MAX_DISTANCE = 500000

# --- Live feed (NASA) ---
NASA_API_KEY = os.environ.get("NASA_API_KEY")
NASA_API_URL = "https://api.nasa.gov/planetary/apod"
API_TIMEOUT_SECONDS = 10
USER_AGENT = "Orrery-Python-Client/1.0"
LIVE_REFRESH_SECONDS = 60  # how often Live mode re-fetches positions

# Spacecraft orbit data, merged after start-up. Local JSON path or http(s) URL.
SPACECRAFT_DATA_SOURCE = os.environ.get("ORRERY_SPACECRAFT_DATA", "spacecraft.json")

# --- Bulk populations (never labeled) ---
STARFIELD_STARS = 20000
STARFIELD_SPREAD = 500000
ASTEROID_BELT_PARTICLES = 25000
ASTEROID_BELT_INNER_AU = 2.2
ASTEROID_BELT_OUTER_AU = 3.2
ASTEROID_BELT_THICKNESS = 25
ASTEROID_BELT_SPEED_FACTOR = 0.1

# --- Comet tails ---
COMET_TAIL_MAX_OPACITY = 0.4
COMET_TAIL_FULL_AU = 1
COMET_TAIL_FADE_AU = 10


def resource_path(relative_path):
    """ Get absolute path to resource, works for dev and for PyInstaller """
    base_path = getattr(sys, "_MEIPASS", os.path.dirname(os.path.abspath(__file__)))
    path = os.path.join(base_path, relative_path)
    if not os.path.exists(path):
        # pip installs the bundled data under <prefix>/share/solar-orrery
        shared = os.path.join(sys.prefix, "share", "solar-orrery", relative_path)
        if os.path.exists(shared):
            return shared
    return path
