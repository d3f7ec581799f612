"""Environment variable configuration for the overlay viewer.

Settings are loaded in priority order:
  1. Shell environment variables (highest priority)
  2. .env file in current directory
  3. ~/.pageoverlay/.env (persistent config, set via `overlay env set`)

Run `overlay env` to see which settings are configured.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv, set_key

from pageoverlay.surface import DEFAULT_SCALE

CONFIG_DIR = Path.home() / ".pageoverlay"
PERSISTENT_ENV = CONFIG_DIR / ".env"

# Later loads don't overwrite earlier ones, so shell vars always win.
load_dotenv()
if PERSISTENT_ENV.exists():
    load_dotenv(PERSISTENT_ENV)


# --- Persistent config ---

def save_setting(name: str, value: str) -> Path:
    """Save a setting to ~/.pageoverlay/.env for persistent use."""
    if name not in VALID_SETTINGS:
        raise ValueError(f"Unknown setting {name}. Valid settings: {', '.join(sorted(VALID_SETTINGS))}")
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    PERSISTENT_ENV.touch()
    # set_key rewrites an existing entry in place and appends new ones.
    set_key(PERSISTENT_ENV, name, value, quote_mode="never")
    os.environ[name] = value
    return PERSISTENT_ENV


# --- Accessors ---

def get_render_scale() -> float:
    raw = os.getenv("PAGEOVERLAY_RENDER_SCALE", "")
    if not raw:
        return DEFAULT_SCALE
    try:
        scale = float(raw)
    except ValueError:
        raise ValueError(f"PAGEOVERLAY_RENDER_SCALE must be a number, got {raw!r}")
    if scale <= 0:
        raise ValueError(f"PAGEOVERLAY_RENDER_SCALE must be positive, got {raw!r}")
    return scale


def previews_enabled() -> bool:
    """Hover previews are on unless PAGEOVERLAY_PREVIEWS is 0/false/no/off."""
    raw = os.getenv("PAGEOVERLAY_PREVIEWS", "1").strip().lower()
    return raw not in {"0", "false", "no", "off"}


# --- Status check ---

ENV_VARS = {
    "PAGEOVERLAY_RENDER_SCALE": {
        "default": str(DEFAULT_SCALE),
        "description": "Zoom used to render PDF pages",
    },
    "PAGEOVERLAY_PREVIEWS": {
        "default": "1",
        "description": "Set to 0 to skip cropping hover previews for markers",
    },
}

VALID_SETTINGS = set(ENV_VARS)


def check_env() -> list[tuple[str, bool, dict]]:
    """Return list of (var_name, is_set, info) for all known settings."""
    return [(var, bool(os.getenv(var)), info) for var, info in ENV_VARS.items()]
