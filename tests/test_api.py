import random

import pytest

from api import config
from api.models import SubmitAnswerRequest
from api.services import ledger_service
from engine.local_sync import LocalProgressSynchronizer
from engine.session import AttemptSession, SessionState
from engine.sync import InlineDispatcher


def _attempt_body(**overrides) -> dict:
    body = {
        "category": "cissp",
        "selectedLength": 4,
        "totalQuestions": 4,
        "presentationOrder": [2, 0, 3, 1],
        "optionOrder": [[0, 1, 2, 3], [1, 0, 2, 3], [3, 2, 1, 0], [0, 1, 2, 3]],
        "answers": [],
        "currentPosition": 0,
        "score": 0,
        "finished": False,
        "examMode": False,
    }
    body.update(overrides)
    return body


def _submit(client, question_id: str, chosen, correct: int, exam_mode: bool = False):
    return client.post(
        "/api/users/u1/submit-answer",
        json={
            "testId": "t1",
            "questionId": question_id,
            "correctOptionIndex": correct,
            "chosenOptionIndex": chosen,
            "rewardRate": 10,
            "coinsPerCorrect": 5,
            "examMode": exam_mode,
        },
    )


def test_health(client) -> None:
    assert client.get("/api/health").json() == {"status": "ok"}


def test_list_and_get_tests(client, stored_test) -> None:
    listing = client.get("/api/tests/cissp")
    assert listing.status_code == 200
    assert listing.json() == [
        {"id": "t1", "category": "cissp", "name": "Security Basics", "questionCount": 4}
    ]

    response = client.get("/api/tests/cissp/t1")
    assert response.status_code == 200
    assert [q["id"] for q in response.json()["questions"]] == ["q1", "q2", "q3", "q4"]

    assert client.get("/api/tests/cissp/missing").status_code == 404
    assert client.get("/api/tests/empty").json() == []


def test_invalid_test_file_is_server_error(client, content_dir) -> None:
    (content_dir / "cissp").mkdir()
    (content_dir / "cissp" / "broken.json").write_text('{"id": "broken"}', encoding="utf-8")
    assert client.get("/api/tests/cissp/broken").status_code == 500


def test_fetch_missing_attempt_is_null(client) -> None:
    response = client.get("/api/attempts/u1/t1")
    assert response.status_code == 200
    assert response.json() == {"attempt": None}


def test_upsert_and_fetch_attempt(client, stored_test) -> None:
    response = client.post("/api/attempts/u1/t1", json=_attempt_body())
    assert response.status_code == 200
    assert response.json()["presentationOrder"] == [2, 0, 3, 1]

    fetched = client.get("/api/attempts/u1/t1", params={"status": "unfinished"}).json()["attempt"]
    assert fetched["optionOrder"][2] == [3, 2, 1, 0]
    assert fetched["startedAt"] is not None
    assert client.get("/api/attempts/u1/t1", params={"status": "finished"}).json() == {"attempt": None}


def test_upsert_replaces_answers(client, stored_test) -> None:
    answers = [
        {"questionId": "q1", "chosenOptionIndex": 1, "correctOptionIndex": 0},
        {"questionId": "q2", "chosenOptionIndex": None, "correctOptionIndex": 1},
    ]
    client.post("/api/attempts/u1/t1", json=_attempt_body(answers=answers))
    client.post("/api/attempts/u1/t1", json=_attempt_body(answers=answers[1:], currentPosition=2))

    attempt = client.get("/api/attempts/u1/t1").json()["attempt"]
    assert attempt["answers"] == answers[1:]
    assert attempt["currentPosition"] == 2


def test_upsert_validation(client, stored_test) -> None:
    short = client.post("/api/attempts/u1/t1", json=_attempt_body(presentationOrder=[0, 1]))
    assert short.status_code == 400
    missing = client.post("/api/attempts/u1/nope", json=_attempt_body())
    assert missing.status_code == 404
    negative = client.post("/api/attempts/u1/t1", json=_attempt_body(currentPosition=-1))
    assert negative.status_code == 422


def test_update_position(client, stored_test) -> None:
    assert client.post("/api/attempts/u1/t1/position", json={"currentPosition": 1}).status_code == 404

    client.post("/api/attempts/u1/t1", json=_attempt_body())
    response = client.post("/api/attempts/u1/t1/position", json={"currentPosition": 3, "finished": True})
    assert response.status_code == 200
    assert response.json()["currentPosition"] == 3
    assert response.json()["finished"] is True
    assert response.json()["finishedAt"] is not None

    out_of_range = client.post("/api/attempts/u1/t1/position", json={"currentPosition": 4})
    assert out_of_range.status_code == 400


def test_submit_answer_awards_first_correct_answer_once(client, stored_test) -> None:
    client.post("/api/attempts/u1/t1", json=_attempt_body())

    first = _submit(client, "q2", 1, 1).json()
    assert first["isCorrect"] is True
    assert first["awardedXP"] == 10
    assert (first["newXP"], first["newCoins"]) == (10, 5)

    again = _submit(client, "q2", 1, 1).json()
    assert again["alreadyCorrect"] is True
    assert again["awardedXP"] == 0
    assert (again["newXP"], again["newCoins"]) == (10, 5)

    wrong = _submit(client, "q3", 0, 2).json()
    assert wrong["isCorrect"] is False
    assert wrong["newXP"] == 10

    attempt = client.get("/api/attempts/u1/t1").json()["attempt"]
    assert {a["questionId"] for a in attempt["answers"]} == {"q2", "q3"}


def test_submit_answer_exam_mode_hides_correctness(client, stored_test) -> None:
    client.post("/api/attempts/u1/t1", json=_attempt_body(examMode=True))
    response = _submit(client, "q1", 0, 0, exam_mode=True).json()
    assert response["examMode"] is True
    assert response["isCorrect"] is None
    assert response["newXP"] == 0

    attempt = client.get("/api/attempts/u1/t1").json()["attempt"]
    assert attempt["answers"] == [{"questionId": "q1", "chosenOptionIndex": 0, "correctOptionIndex": 0}]


def test_finish_unlocks_achievements_once(client, stored_test) -> None:
    client.post("/api/attempts/u1/t1", json=_attempt_body())
    first = client.post("/api/attempts/u1/t1/finish", json={"score": 4, "totalQuestions": 4})
    assert first.status_code == 200
    assert first.json()["newlyUnlocked"] == ["test_rookie", "accuracy_king", "perfectionist_1"]

    second = client.post("/api/attempts/u1/t1/finish", json={"score": 4, "totalQuestions": 4})
    assert second.json()["newlyUnlocked"] == []

    attempt = client.get("/api/attempts/u1/t1", params={"status": "finished"}).json()["attempt"]
    assert attempt["score"] == 4
    assert client.get("/api/users/u1/account").json()["achievements"] == [
        "test_rookie",
        "accuracy_king",
        "perfectionist_1",
    ]


def test_finish_awards_exam_answers_once(client, stored_test) -> None:
    answers = [
        {"questionId": f"q{i + 1}", "chosenOptionIndex": i % 4, "correctOptionIndex": i % 4}
        for i in range(4)
    ]
    answers[3]["chosenOptionIndex"] = 0
    client.post("/api/attempts/u1/t1", json=_attempt_body(examMode=True, answers=answers))

    first = client.post("/api/attempts/u1/t1/finish", json={"score": 3, "totalQuestions": 4}).json()
    assert (first["newXP"], first["newCoins"]) == (30, 15)

    second = client.post("/api/attempts/u1/t1/finish", json={"score": 3, "totalQuestions": 4}).json()
    assert (second["newXP"], second["newCoins"]) == (30, 15)
    account = client.get("/api/users/u1/account").json()
    assert (account["xp"], account["coins"]) == (30, 15)


def test_exam_finish_without_content_uses_default_rate(client, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ledger_service, "DEFAULT_REWARD_RATE", 7.0)
    answers = [{"questionId": "q1", "chosenOptionIndex": 2, "correctOptionIndex": 2}]
    client.post("/api/attempts/u1/t1", json=_attempt_body(category="", examMode=True, answers=answers))

    finished = client.post("/api/attempts/u1/t1/finish", json={"score": 1, "totalQuestions": 4}).json()
    assert finished["newXP"] == 7


def test_finish_rejects_impossible_score(client, stored_test) -> None:
    client.post("/api/attempts/u1/t1", json=_attempt_body())
    response = client.post("/api/attempts/u1/t1/finish", json={"score": 5, "totalQuestions": 4})
    assert response.status_code == 400


def test_restart_overwrites_finished_attempt(client, stored_test) -> None:
    client.post("/api/attempts/u1/t1", json=_attempt_body(finished=True, score=2))
    client.post("/api/attempts/u1/t1", json=_attempt_body(presentationOrder=[0, 1, 2, 3]))

    attempt = client.get("/api/attempts/u1/t1").json()["attempt"]
    assert attempt["finished"] is False
    assert attempt["finishedAt"] is None
    assert attempt["presentationOrder"] == [0, 1, 2, 3]


def test_usage_limits(client, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(ledger_service, "FREE_QUESTION_LIMIT", 1)

    limits = client.get("/api/users/u1/usage-limits").json()
    assert limits == {"subscriptionActive": False, "remainingFreeQuestions": 1}
    assert client.post("/api/users/u1/usage-limits/consume").json()["remainingFreeQuestions"] == 0
    assert client.post("/api/users/u1/usage-limits/consume").json()["remainingFreeQuestions"] == 0

    client.post("/api/users/u2/subscription", json={"active": True})
    consumed = client.post("/api/users/u2/usage-limits/consume").json()
    assert consumed == {"subscriptionActive": True, "remainingFreeQuestions": 1}


def test_list_attempts(client, stored_test) -> None:
    client.post("/api/attempts/u1/t1", json=_attempt_body())
    response = client.get("/api/attempts/u1/list", params={"page": 1, "page_size": 10}).json()
    assert response["total"] == 1
    assert response["attempts"][0]["testId"] == "t1"
    assert "presentationOrder" not in response["attempts"][0]


def test_list_is_not_a_test_id(client) -> None:
    response = client.post("/api/attempts/u1/list", json=_attempt_body(category=""))
    assert response.status_code == 400
    assert client.get("/api/attempts/u1/list").json()["total"] == 0


def test_invalid_user_id(client) -> None:
    assert client.get("/api/users/%20/account").status_code == 400


def test_session_over_local_synchronizer(db_session_factory, stored_test) -> None:
    synchronizer = LocalProgressSynchronizer(db_session_factory)
    session = AttemptSession(
        "u1",
        "cissp",
        "t1",
        synchronizer,
        dispatcher=InlineDispatcher(),
        ledger=synchronizer.fetch_account("u1"),
        rng=random.Random(5),
    )
    session.load(restart=True)

    for _ in range(session.selected_length):
        question = session.current_question
        display = session.current_option_order.index(question.correct_option_index)
        assert session.select_option(display).is_correct
        result = session.next()
    assert result.finished
    assert result.summary.score == 4
    assert session.ledger.xp == 40
    assert session.ledger.coins == 20
    assert "perfectionist_1" in session.ledger.achievements

    stored = synchronizer.fetch_attempt("u1", "t1", "finished")
    assert stored.score == 4
    assert stored.presentation_order == session.attempt.presentation_order
    assert len(stored.answers) == 4

    resumed = AttemptSession("u1", "cissp", "t1", synchronizer, dispatcher=InlineDispatcher())
    assert resumed.load(review=True) is SessionState.REVIEWING
    assert resumed.summary().percentage == 100


def test_local_synchronizer_missing_test(db_session_factory, content_dir) -> None:
    synchronizer = LocalProgressSynchronizer(db_session_factory)
    assert synchronizer.fetch_test("cissp", "missing") is None
    assert synchronizer.fetch_attempt("u1", "missing") is None


def test_exam_session_over_local_synchronizer(db_session_factory, stored_test) -> None:
    synchronizer = LocalProgressSynchronizer(db_session_factory)
    session = AttemptSession(
        "u1",
        "cissp",
        "t1",
        synchronizer,
        dispatcher=InlineDispatcher(),
        ledger=synchronizer.fetch_account("u1"),
        rng=random.Random(5),
    )
    session.load(restart=True, exam_mode=True)

    for _ in range(session.selected_length):
        question = session.current_question
        display = session.current_option_order.index(question.correct_option_index)
        assert session.select_option(display).is_correct is None
        result = session.next()
    assert result.finished
    assert result.summary.score == 4
    assert session.ledger.xp == 40
    assert session.ledger.coins == 20
    assert synchronizer.fetch_account("u1").xp == 40


def test_reward_defaults_follow_config() -> None:
    request = SubmitAnswerRequest(testId="t1", questionId="q1", correctOptionIndex=0)
    assert request.rewardRate == config.DEFAULT_REWARD_RATE
    assert request.coinsPerCorrect == config.COINS_PER_CORRECT
