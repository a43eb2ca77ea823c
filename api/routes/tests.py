"""Read-only test content endpoints."""
from fastapi import APIRouter

from api.models import TestMetadata, TestPayload
from api.services.content_service import list_tests as list_category_tests
from api.services.content_service import load_test_payload
from api.utils import validate_id, validate_test_id

router = APIRouter(prefix="/api/tests", tags=["tests"])


@router.get("/{category}", response_model=list[TestMetadata])
def list_tests(category: str) -> list[TestMetadata]:
    """List tests in a category."""
    category = validate_id("category", category)
    return list_category_tests(category)


@router.get("/{category}/{test_id}", response_model=TestPayload)
def get_test(category: str, test_id: str) -> TestPayload:
    """Get a test with its questions in natural order."""
    category = validate_id("category", category)
    test_id = validate_test_id(test_id)
    return load_test_payload(category, test_id)
