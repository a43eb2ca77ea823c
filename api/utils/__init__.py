"""Utility modules."""
from api.utils.json_utils import (
    json_dump,
    json_load,
    write_json_file,
)
from api.utils.paths import category_dir, payload_path
from api.utils.time_utils import isoformat_or_none, utc_now
from api.utils.validation import validate_id, validate_test_exists, validate_test_id

__all__ = [
    "json_dump",
    "json_load",
    "write_json_file",
    "category_dir",
    "payload_path",
    "isoformat_or_none",
    "utc_now",
    "validate_id",
    "validate_test_exists",
    "validate_test_id",
]
