import pytest

from conftest import make_test
from engine.models import AnswerRecord
from engine.scoring import (
    AnswerStatus,
    Grade,
    GradeBands,
    ReviewFilter,
    classify,
    compute_score,
    filter_for_review,
    percentage,
    summarize_finish,
    summarize_review,
)


def _answers(test, chosen: dict[str, int | None]) -> list[AnswerRecord]:
    by_id = {q.id: q for q in test.questions}
    return [
        AnswerRecord(question_id=qid, chosen_option_index=index, correct_option_index=by_id[qid].correct_option_index)
        for qid, index in chosen.items()
    ]


def test_compute_score_counts_only_correct() -> None:
    test = make_test()
    answers = _answers(test, {"q1": None, "q2": 1, "q3": 0, "q4": None})
    assert compute_score(answers) == 1


@pytest.mark.parametrize(
    ("score", "total", "expected"),
    [(0, 0, 0), (1, 4, 25), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 200, 1), (4, 4, 100)],
)
def test_percentage_rounds_half_up(score: int, total: int, expected: int) -> None:
    assert percentage(score, total) == expected


@pytest.mark.parametrize(
    ("percent", "grade"),
    [
        (100, Grade.OUTSTANDING),
        (90, Grade.OUTSTANDING),
        (89, Grade.EXCELLENT),
        (80, Grade.EXCELLENT),
        (70, Grade.GREAT),
        (60, Grade.GOOD),
        (59, Grade.KEEP_PRACTICING),
        (0, Grade.KEEP_PRACTICING),
    ],
)
def test_grade_bands(percent: int, grade: Grade) -> None:
    assert GradeBands().grade_for(percent) is grade


def test_custom_grade_bands() -> None:
    bands = GradeBands(outstanding=95, excellent=85, great=75, good=50)
    assert bands.grade_for(90) is Grade.EXCELLENT
    assert bands.grade_for(50) is Grade.GOOD


def test_summarize_finish() -> None:
    summary = summarize_finish(1, 4)
    assert summary.percentage == 25
    assert summary.grade is Grade.KEEP_PRACTICING
    assert summary.grade.label == "Keep Practicing!"


def test_classify() -> None:
    test = make_test()
    answers = _answers(test, {"q1": None, "q2": 1, "q3": 0})
    q1, q2, q3, q4 = test.questions
    assert classify(q1, answers) is AnswerStatus.SKIPPED
    assert classify(q2, answers) is AnswerStatus.CORRECT
    assert classify(q3, answers) is AnswerStatus.INCORRECT
    assert classify(q4, answers) is AnswerStatus.UNANSWERED


def test_filter_for_review_four_question_scenario() -> None:
    test = make_test()
    answers = _answers(test, {"q1": None, "q2": 1, "q3": 0, "q4": None})

    def ids(kind):
        return [q.id for q in filter_for_review(test.questions, 4, answers, {"q3"}, kind)]

    assert ids(ReviewFilter.SKIPPED) == ["q1", "q4"]
    assert ids(ReviewFilter.INCORRECT) == ["q3"]
    assert ids(ReviewFilter.CORRECT) == ["q2"]
    assert ids(ReviewFilter.FLAGGED) == ["q3"]
    assert ids("all") == ["q1", "q2", "q3", "q4"]


def test_filter_for_review_treats_missing_answer_as_skipped() -> None:
    test = make_test()
    answers = _answers(test, {"q2": 1})
    skipped = filter_for_review(test.questions, 4, answers, set(), ReviewFilter.SKIPPED)
    assert [q.id for q in skipped] == ["q1", "q3", "q4"]


def test_filter_for_review_only_considers_selected_length() -> None:
    test = make_test(question_count=6)
    skipped = filter_for_review(test.questions, 3, [], set(), ReviewFilter.SKIPPED)
    assert [q.id for q in skipped] == ["q1", "q2", "q3"]


def test_filter_for_review_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError):
        filter_for_review(make_test().questions, 4, [], set(), "bookmarked")


def test_summarize_review() -> None:
    test = make_test()
    answers = _answers(test, {"q1": None, "q2": 1, "q3": 0})
    summary = summarize_review(test.questions, 4, answers, {"q1", "q2"})
    assert (summary.total, summary.correct, summary.incorrect, summary.skipped, summary.flagged) == (4, 1, 1, 2, 2)
