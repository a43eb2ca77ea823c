import json
from pathlib import Path

import pytest

import cli


def _write_test_file(path: Path, **overrides) -> Path:
    payload = {
        "id": "t9",
        "category": "cissp",
        "name": "Imported",
        "questions": [
            {"id": "q1", "prompt": "?", "options": ["a", "b"], "correctOptionIndex": 1},
        ],
    }
    payload.update(overrides)
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_import_and_list(tmp_path: Path, content_dir: Path, capsys: pytest.CaptureFixture) -> None:
    source = _write_test_file(tmp_path / "source.json")

    assert cli.main(["import", str(source), "--category", "security"]) == 0
    assert (content_dir / "security" / "t9.json").exists()

    assert cli.main(["list", "security"]) == 0
    out = capsys.readouterr().out
    assert "Saved security/t9 (1 questions)" in out
    assert "t9\t1\tImported" in out


def test_import_rejects_invalid_file(tmp_path: Path, content_dir: Path) -> None:
    source = _write_test_file(
        tmp_path / "bad.json",
        questions=[{"id": "q1", "prompt": "?", "options": ["a"], "correctOptionIndex": 3}],
    )
    assert cli.main(["import", str(source)]) == 1
    assert not (content_dir / "cissp" / "t9.json").exists()


def test_import_rejects_unsafe_ids(tmp_path: Path, content_dir: Path) -> None:
    source = _write_test_file(tmp_path / "bad.json", id="../escape")
    assert cli.main(["import", str(source)]) == 1


def test_subscription(db_session_factory, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture) -> None:
    monkeypatch.setattr(cli, "SessionLocal", db_session_factory)
    monkeypatch.setattr(cli, "init_db", lambda: None)

    assert cli.main(["subscription", "u1"]) == 0
    assert "subscriptionActive=True" in capsys.readouterr().out
    assert cli.main(["subscription", "u1", "--off"]) == 0
    assert "subscriptionActive=False" in capsys.readouterr().out


def test_import_rejects_reserved_id(tmp_path: Path, content_dir: Path) -> None:
    source = _write_test_file(tmp_path / "reserved.json", id="list")
    assert cli.main(["import", str(source)]) == 1
    assert not (content_dir / "cissp" / "list.json").exists()


def test_subscription_rejects_invalid_user_id(db_session_factory, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "SessionLocal", db_session_factory)
    monkeypatch.setattr(cli, "init_db", lambda: None)

    assert cli.main(["subscription", "../escape"]) == 1
    assert cli.main(["subscription", "  "]) == 1
