"""Path utilities for the content store."""
from pathlib import Path

from api.config import DATA_DIR


def category_dir(category: str) -> Path:
    """Get directory holding a category's tests."""
    return DATA_DIR / category


def payload_path(category: str, test_id: str) -> Path:
    """Get path to test payload JSON."""
    return category_dir(category) / f"{test_id}.json"
