import json
import os
from typing import Any

PROFILE_BATCH_SIZE = int(os.getenv("PROFILE_BATCH_SIZE", "20"))
MIN_PROFILES_THRESHOLD = int(os.getenv("MIN_PROFILES_THRESHOLD", "5"))
REFRESH_COOLDOWN_SECONDS = float(os.getenv("REFRESH_COOLDOWN_SECONDS", "60"))
UNDO_BUFFER_SIZE = int(os.getenv("UNDO_BUFFER_SIZE", "10"))
SESSION_IDLE_SECONDS = float(os.getenv("SESSION_IDLE_SECONDS", "1800"))

MATCH_THRESHOLD = float(os.getenv("MATCH_THRESHOLD", "0.70"))
HIGH_COMPATIBILITY_THRESHOLD = float(os.getenv("HIGH_COMPATIBILITY_THRESHOLD", "0.80"))
PERFECT_MATCH_THRESHOLD = float(os.getenv("PERFECT_MATCH_THRESHOLD", "0.95"))
NEARBY_DISTANCE_KM = float(os.getenv("NEARBY_DISTANCE_KM", "10"))
CLOSE_AGE_YEARS = int(os.getenv("CLOSE_AGE_YEARS", "2"))
EARTH_RADIUS_KM = 6371.0

MATCH_EXPIRY_DAYS = int(os.getenv("MATCH_EXPIRY_DAYS", "7"))

DEFAULT_SCORING_CONFIG: dict[str, Any] = {
    "ENERGY_W": float(os.getenv("ENERGY_W", "0.30")),
    "SIZE_W": float(os.getenv("SIZE_W", "0.20")),
    "AGE_W": float(os.getenv("AGE_W", "0.20")),
    "LOCATION_W": float(os.getenv("LOCATION_W", "0.30")),
}

if os.getenv("SCORING_CONFIG_JSON"):
    try:
        DEFAULT_SCORING_CONFIG.update(json.loads(os.getenv("SCORING_CONFIG_JSON", "{}")))
    except json.JSONDecodeError:
        pass

DEFAULT_MAX_DISTANCE_KM = float(os.getenv("DEFAULT_MAX_DISTANCE_KM", "50"))
DEFAULT_MIN_AGE = int(os.getenv("DEFAULT_MIN_AGE", "0"))
DEFAULT_MAX_AGE = int(os.getenv("DEFAULT_MAX_AGE", "20"))

RL_SWIPE_LIMIT = int(os.getenv("RL_SWIPE_LIMIT", "120"))
RL_UNDO_LIMIT = int(os.getenv("RL_UNDO_LIMIT", "30"))
RL_MATCH_ACTION_LIMIT = int(os.getenv("RL_MATCH_ACTION_LIMIT", "100"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))
