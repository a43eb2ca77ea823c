"""Service layer for the read-only content store."""
from fastapi import HTTPException
from pydantic import ValidationError

from api.models.tests import TestMetadata, TestPayload
from api.utils import category_dir, json_load, payload_path, write_json_file


def load_test_payload(category: str, test_id: str) -> TestPayload:
    """Load and validate a test payload from file."""
    path = payload_path(category, test_id)
    if not path.exists():
        raise HTTPException(status_code=404, detail="Test not found")
    try:
        return TestPayload.model_validate(json_load(path.read_text(encoding="utf-8")))
    except (ValueError, ValidationError) as exc:
        raise HTTPException(status_code=500, detail=f"Invalid test payload: {exc}") from exc


def save_test_payload(payload: TestPayload) -> None:
    """Save test payload to file."""
    write_json_file(payload_path(payload.category, payload.id), payload.model_dump())


def serialize_metadata(payload: TestPayload) -> TestMetadata:
    """Build the listing entry for a test."""
    return TestMetadata(
        id=payload.id,
        category=payload.category,
        name=payload.name or payload.id,
        questionCount=len(payload.questions),
    )


def list_tests(category: str) -> list[TestMetadata]:
    """List metadata for every test in a category."""
    directory = category_dir(category)
    if not directory.is_dir():
        return []
    tests = []
    for test_file in sorted(directory.glob("*.json")):
        tests.append(serialize_metadata(load_test_payload(category, test_file.stem)))
    return tests
