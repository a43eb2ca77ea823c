"""Application configuration and constants."""
import os
from pathlib import Path


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _parse_float_env(name: str, default: float) -> float:
    """Parse float from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# Content store: one JSON file per test under DATA_DIR/<category>/<test_id>.json
DATA_DIR = Path(os.environ.get("TEST_DATA_DIR", Path.cwd() / "data" / "tests"))
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'sessions.db'}"
)

# Rewards
DEFAULT_REWARD_RATE = _parse_float_env("DEFAULT_REWARD_RATE", 10.0)
COINS_PER_CORRECT = _parse_int_env("COINS_PER_CORRECT", 5)

# Entitlements
FREE_QUESTION_LIMIT = _parse_int_env("FREE_QUESTION_LIMIT", 100)

# Sessions
DEFAULT_TEST_LENGTH = _parse_int_env("DEFAULT_TEST_LENGTH", 100)

# Clients
API_BASE_URL = os.environ.get("API_BASE_URL", "http://127.0.0.1:8000")
SYNC_TIMEOUT_SECONDS = _parse_int_env("SYNC_TIMEOUT_SECONDS", 10)

# Achievements evaluated on finish
ACCURACY_KING_PERCENT = 90
PERFECT_PERCENT = 100
