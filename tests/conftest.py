import os
import random
import tempfile
from pathlib import Path

# Keep config-created directories out of the working tree
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="test-session-engine-"))
os.environ.setdefault("TEST_DATA_DIR", str(_TMP_ROOT / "tests"))
os.environ.setdefault("DB_DIR", str(_TMP_ROOT))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api.database import Base, get_db
from api.models import TestPayload
from api.services.content_service import save_test_payload
from api.utils import paths
from engine.errors import SyncError
from engine.ledger import AccountLedger
from engine.models import (
    AnswerAward,
    Attempt,
    FinishAward,
    Question,
    TestContent,
    UsageLimits,
)
from engine.sync import InlineDispatcher, ProgressSynchronizer


def make_test(question_count: int = 4, option_count: int = 4, test_id: str = "t1") -> TestContent:
    questions = tuple(
        Question(
            id=f"q{i + 1}",
            prompt=f"Question {i + 1}?",
            options=tuple(f"Q{i + 1} option {chr(65 + j)}" for j in range(option_count)),
            correct_option_index=i % option_count,
            explanation=f"Because {i + 1}",
        )
        for i in range(question_count)
    )
    return TestContent(id=test_id, category="cissp", questions=questions, name="Sample")


class FakeSynchronizer(ProgressSynchronizer):
    """In-memory attempt store and ledger recording every call."""

    def __init__(self, test: TestContent | None = None) -> None:
        self.test = test
        self.attempts: dict[tuple[str, str], Attempt] = {}
        self.calls: list[tuple[str, tuple]] = []
        self.failing: set[str] = set()
        self.limits = UsageLimits(subscription_active=False, remaining_free_questions=100)
        self.correct: set[tuple[str, str, str]] = set()
        self.xp = 0
        self.coins = 0

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if name in self.failing:
            raise SyncError(f"{name} unavailable")

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def fetch_test(self, category, test_id):
        self._record("fetch_test", category, test_id)
        return self.test

    def fetch_attempt(self, user_id, test_id, status=None):
        self._record("fetch_attempt", user_id, test_id, status)
        attempt = self.attempts.get((user_id, test_id))
        if attempt is None:
            return None
        if status == "finished" and not attempt.finished:
            return None
        if status == "unfinished" and attempt.finished:
            return None
        return attempt.copy()

    def upsert_attempt(self, user_id, test_id, attempt):
        self._record("upsert_attempt", user_id, test_id, attempt)
        self.attempts[(user_id, test_id)] = attempt.copy()

    def submit_answer(self, user_id, submission):
        self._record("submit_answer", user_id, submission)
        if submission.exam_mode:
            return AnswerAward(is_correct=False, exam_mode=True, new_xp=self.xp, new_coins=self.coins)
        is_correct = submission.chosen_option_index == submission.correct_option_index
        key = (user_id, submission.test_id, submission.question_id)
        if is_correct and key in self.correct:
            return AnswerAward(is_correct=True, already_correct=True, new_xp=self.xp, new_coins=self.coins)
        if is_correct:
            self.correct.add(key)
            self.xp += int(round(submission.reward_rate))
            self.coins += submission.coins_per_correct
        return AnswerAward(is_correct=is_correct, new_xp=self.xp, new_coins=self.coins)

    def update_position(self, user_id, test_id, current_position, finished):
        self._record("update_position", user_id, test_id, current_position, finished)

    def finish_attempt(self, user_id, test_id, score, total, category=None):
        self._record("finish_attempt", user_id, test_id, score, total)
        return FinishAward(new_xp=self.xp, new_coins=self.coins, newly_unlocked=("test_rookie",))

    def fetch_usage_limits(self, user_id):
        self._record("fetch_usage_limits", user_id)
        return self.limits

    def consume_question(self, user_id):
        self._record("consume_question", user_id)
        return self.limits

    def fetch_account(self, user_id):
        self._record("fetch_account", user_id)
        return AccountLedger(user_id, xp=self.xp, coins=self.coins)


@pytest.fixture
def sample_test() -> TestContent:
    return make_test()


@pytest.fixture
def fake_sync(sample_test: TestContent) -> FakeSynchronizer:
    return FakeSynchronizer(sample_test)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def dispatcher() -> InlineDispatcher:
    return InlineDispatcher()


@pytest.fixture
def content_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setattr(paths, "DATA_DIR", tmp_path)
    return tmp_path


@pytest.fixture
def stored_test(content_dir: Path) -> TestPayload:
    payload = TestPayload.model_validate(
        {
            "id": "t1",
            "category": "cissp",
            "name": "Security Basics",
            "rewardRatePerCorrect": 10,
            "questions": [
                {
                    "id": f"q{i + 1}",
                    "prompt": f"Question {i + 1}?",
                    "options": ["A", "B", "C", "D"],
                    "correctOptionIndex": i % 4,
                    "explanation": "",
                    "examTip": "",
                }
                for i in range(4)
            ],
        }
    )
    save_test_payload(payload)
    return payload


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def client(db_session_factory, content_dir: Path):
    from api.app import app

    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: startup would create tables in the file database
    yield TestClient(app)
    app.dependency_overrides.clear()
