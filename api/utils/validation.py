"""Validation utilities."""
from pathlib import Path

from fastapi import HTTPException

from api.utils.paths import payload_path


def validate_id(name: str, value: str) -> str:
    """Validate ID string (no path traversal)."""
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{name} is required")
    cleaned = value.strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    if Path(cleaned).name != cleaned or "/" in cleaned or "\\" in cleaned or cleaned in {".", ".."}:
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return cleaned

RESERVED_TEST_IDS = frozenset({"list"})


def validate_test_id(value: str) -> str:
    """Validate a test ID, rejecting names that collide with attempt routes."""
    cleaned = validate_id("testId", value)
    if cleaned in RESERVED_TEST_IDS:
        raise HTTPException(status_code=400, detail=f"testId '{cleaned}' is reserved")
    return cleaned


def validate_test_exists(category: str, test_id: str) -> None:
    """Validate that test exists in the content store."""
    if not payload_path(category, test_id).exists():
        raise HTTPException(status_code=404, detail="Test not found")
