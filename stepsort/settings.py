import json
import os

from .errors import ConfigurationError

# ============================================================
# ===================== USER SETTINGS ========================
# ============================================================

DEFAULT_SPEED       = None     # 1..100, None runs unthrottled
MIN_DELAY_MS        = 10.0     # floor for the inter-operation delay
MAX_DELAY_MS        = 1000.0   # ceiling, speed 1 would otherwise wait 100 s
OPERATIONS_PER_STEP = 1
DEFAULT_UNITS       = 1
MAX_UNITS           = 16
ARRAY_SIZE          = 32
DISTRIBUTION        = "random"
LOG_LEVEL           = "WARNING"

# ============================================================
# ====================== VIEWER SETTINGS =====================
# ============================================================

WINDOW_WIDTH     = 1100
WINDOW_HEIGHT    = 680
FPS              = 60
BACKGROUND_COLOR = (5, 5, 10)
ACTIVE_COLOR     = (255, 60, 60)
SORTED_COLOR     = (60, 200, 100)
BAR_SPACING      = 1

# JSON file picked up from the working directory when no path is given
SETTINGS_JSON = "stepsort.json"

DEFAULTS = {
    "speed":               DEFAULT_SPEED,
    "min_delay_ms":        MIN_DELAY_MS,
    "max_delay_ms":        MAX_DELAY_MS,
    "operations_per_step": OPERATIONS_PER_STEP,
    "units":               DEFAULT_UNITS,
    "max_units":           MAX_UNITS,
    "size":                ARRAY_SIZE,
    "distribution":        DISTRIBUTION,
    "log_level":           LOG_LEVEL,
    "custom_sorters":      [],        # .py files loaded on startup
}


def load_settings(path: str | None = None, **overrides) -> dict:
    """
    Return DEFAULTS overlaid with the JSON settings file and then ``overrides``.

    With no ``path`` the file is ``stepsort.json`` in the working directory
    and is optional; an explicit path must exist. Unknown keys and unreadable
    JSON raise ConfigurationError.
    """
    settings = dict(DEFAULTS)
    explicit = path is not None
    path = path or SETTINGS_JSON

    if os.path.exists(path):
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(f"cannot read settings file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"settings file {path} must hold a JSON object")
        _merge(settings, data, path)
    elif explicit:
        raise ConfigurationError(f"settings file not found: {path}")

    _merge(settings, {k: v for k, v in overrides.items() if v is not None}, "overrides")
    _validate(settings)
    return settings


def _merge(settings, data, source):
    unknown = sorted(set(data) - set(DEFAULTS))
    if unknown:
        raise ConfigurationError(f"unknown settings in {source}: {', '.join(unknown)}")
    settings.update(data)


def _validate(settings):
    if settings["operations_per_step"] < 1:
        raise ConfigurationError("operations_per_step must be >= 1")
    if settings["min_delay_ms"] < 10:
        raise ConfigurationError("min_delay_ms must be >= 10")
    if settings["max_delay_ms"] < settings["min_delay_ms"]:
        raise ConfigurationError("max_delay_ms must be >= min_delay_ms")
    if not 1 <= settings["units"] <= settings["max_units"]:
        raise ConfigurationError(f"units must be between 1 and {settings['max_units']}")
