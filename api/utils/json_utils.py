"""JSON serialization utilities."""
import json
from pathlib import Path


def json_dump(payload: object) -> str:
    """Serialize object to pretty JSON string."""
    return json.dumps(payload, ensure_ascii=False, indent=2)


def json_load(data: str) -> object:
    """Deserialize JSON string to object."""
    return json.loads(data)


def write_json_file(path: Path, payload: object) -> None:
    """Write object as JSON file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json_dump(payload), encoding="utf-8")
