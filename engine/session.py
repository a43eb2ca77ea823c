"""
Attempt state machine.

One ``AttemptSession`` owns the working copy of a single (user, test) attempt.
Transitions mutate that copy first and then hand a snapshot to the
synchronizer through a dispatcher; remote failures never roll back local state.
"""
from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass, field

from engine.errors import (
    InvalidTransitionError,
    SessionError,
    SessionLoadError,
    SessionNotFoundError,
)
from engine.ledger import AccountLedger
from engine.models import AnswerAward, AnswerRecord, AnswerSubmission, Attempt, Question, TestContent
from engine.scoring import (
    AnswerStatus,
    FinishSummary,
    GradeBands,
    ReviewFilter,
    ReviewSummary,
    classify,
    compute_score,
    filter_for_review,
    percentage,
    summarize_finish,
    summarize_review,
)
from engine.shuffle import generate_option_orders, generate_permutation, is_permutation
from engine.sync import (
    STATUS_FINISHED,
    STATUS_UNFINISHED,
    BackgroundDispatcher,
    Dispatcher,
    ProgressSynchronizer,
)

logger = logging.getLogger(__name__)


class SessionState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    ACTIVE = "active"
    FINISHED = "finished"
    REVIEWING = "reviewing"
    ERROR = "error"


class ActionStatus(str, enum.Enum):
    OK = "ok"
    ALREADY_ANSWERED = "already_answered"
    ANSWER_REQUIRED = "answer_required"
    ATTEMPT_FINISHED = "attempt_finished"
    AT_START = "at_start"
    LIMIT_REACHED = "limit_reached"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a user action. Rejections leave the attempt untouched."""

    status: ActionStatus
    message: str = ""
    is_correct: bool | None = None
    summary: FinishSummary | None = None

    @property
    def ok(self) -> bool:
        return self.status is ActionStatus.OK

    @property
    def finished(self) -> bool:
        return self.summary is not None

    @classmethod
    def accepted(
        cls, is_correct: bool | None = None, summary: FinishSummary | None = None
    ) -> ActionResult:
        return cls(ActionStatus.OK, is_correct=is_correct, summary=summary)

    @classmethod
    def rejected(cls, status: ActionStatus, message: str) -> ActionResult:
        return cls(status, message=message)


@dataclass(frozen=True)
class SessionSettings:
    default_length: int = 100
    coins_per_correct: int = 5
    grade_bands: GradeBands = field(default_factory=GradeBands)

    @classmethod
    def from_config(cls) -> SessionSettings:
        """Settings from the environment-backed application config."""
        from api.config import COINS_PER_CORRECT, DEFAULT_TEST_LENGTH

        return cls(default_length=DEFAULT_TEST_LENGTH, coins_per_correct=COINS_PER_CORRECT)


@dataclass(frozen=True)
class PositionStatus:
    position: int
    question_id: str
    status: AnswerStatus
    flagged: bool


_LOADED_STATES = (SessionState.ACTIVE, SessionState.FINISHED, SessionState.REVIEWING)


class AttemptSession:
    def __init__(
        self,
        user_id: str,
        category: str,
        test_id: str,
        synchronizer: ProgressSynchronizer,
        dispatcher: Dispatcher | None = None,
        ledger: AccountLedger | None = None,
        settings: SessionSettings | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.user_id = user_id
        self.category = category
        self.test_id = test_id
        self.synchronizer = synchronizer
        self._owns_dispatcher = dispatcher is None
        self.dispatcher = dispatcher or BackgroundDispatcher()
        self.ledger = ledger or AccountLedger(user_id)
        self.settings = settings or SessionSettings()
        self._rng = rng

        self.state = SessionState.UNINITIALIZED
        self.error: SessionError | None = None
        self.test: TestContent | None = None
        self.attempt: Attempt | None = None
        self.flagged: set[str] = set()
        # Incremental practice-mode score; finish recomputes from answers.
        self.score = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(
        self,
        *,
        restart: bool = False,
        review: bool = False,
        selected_length: int | None = None,
        exam_mode: bool | None = None,
    ) -> SessionState:
        """
        Load the attempt and test, reconciling persisted orderings.

        Raises:
            SessionNotFoundError: No attempt to resume and not restarting,
                or the test has no questions.
            SessionLoadError: Content or store unreachable.
        """
        if self.state is SessionState.LOADING:
            raise InvalidTransitionError("Session is already loading")
        if selected_length is not None and selected_length < 1:
            raise ValueError("selected_length must be positive")

        self.state = SessionState.LOADING
        self.error = None
        try:
            self._load(restart, review, selected_length, exam_mode)
        except SessionError as exc:
            self._fail(exc)
            raise
        except Exception as exc:
            error = SessionLoadError(f"Failed to load test session: {exc}")
            self._fail(error)
            raise error from exc
        return self.state

    def _fail(self, error: SessionError) -> None:
        logger.error(f"Session {self.user_id}/{self.test_id} failed to load: {error}")
        self.error = error
        self.state = SessionState.ERROR

    def _load(
        self,
        restart: bool,
        review: bool,
        selected_length: int | None,
        exam_mode: bool | None,
    ) -> None:
        attempt = None
        if not restart:
            attempt = self._fetch_existing(review)

        test = self.synchronizer.fetch_test(self.category, self.test_id)
        if test is None or not test.questions:
            raise SessionNotFoundError(f"Test {self.test_id} has no questions")
        self.test = test

        if restart:
            attempt = self._new_attempt(selected_length, exam_mode)
            self.synchronizer.upsert_attempt(self.user_id, self.test_id, attempt.copy())
        elif attempt is None:
            raise SessionNotFoundError("No test attempt found. Please create a new attempt.")
        elif self._reconcile(attempt):
            # Write-through so a second load sees the same orderings.
            self.synchronizer.upsert_attempt(self.user_id, self.test_id, attempt.copy())

        self.attempt = attempt
        self.flagged = set()
        self.score = compute_score(attempt.answers) if attempt.finished else attempt.score

        if not attempt.finished:
            self.state = SessionState.ACTIVE
        elif review:
            self.state = SessionState.REVIEWING
        else:
            self.state = SessionState.FINISHED
        logger.debug(f"Session {self.user_id}/{self.test_id} loaded as {self.state.value}")

    def _fetch_existing(self, review: bool) -> Attempt | None:
        if review:
            return self.synchronizer.fetch_attempt(self.user_id, self.test_id, STATUS_FINISHED)
        attempt = self.synchronizer.fetch_attempt(self.user_id, self.test_id, STATUS_UNFINISHED)
        if attempt is None:
            attempt = self.synchronizer.fetch_attempt(self.user_id, self.test_id)
        return attempt

    def _reconcile(self, attempt: Attempt) -> bool:
        """Repair the attempt's shape against the test. Returns True if anything changed.

        Existing answers are kept as they are even when orderings are regenerated.
        """
        questions = self.test.questions
        total = len(questions)
        changed = False

        if attempt.total_questions != total:
            attempt.total_questions = total
            changed = True
        if not 0 < attempt.selected_length <= total:
            attempt.selected_length = total
            changed = True
        length = attempt.selected_length

        if not is_permutation(attempt.presentation_order, length):
            logger.warning(
                f"Stale presentation order for {self.user_id}/{self.test_id}; regenerating"
            )
            attempt.presentation_order = generate_permutation(length, self._rng)
            changed = True

        option_orders_valid = len(attempt.option_order) == length and all(
            is_permutation(order, len(questions[index].options))
            for index, order in enumerate(attempt.option_order)
        )
        if not option_orders_valid:
            logger.warning(
                f"Stale option order for {self.user_id}/{self.test_id}; regenerating"
            )
            attempt.option_order = generate_option_orders(questions, length, self._rng)
            changed = True

        if not 0 <= attempt.current_position < length:
            attempt.current_position = max(0, min(attempt.current_position, length - 1))
            changed = True
        return changed

    def _new_attempt(self, selected_length: int | None, exam_mode: bool | None) -> Attempt:
        questions = self.test.questions
        previous = self.attempt
        if selected_length is None:
            selected_length = (
                previous.selected_length if previous else self.settings.default_length
            )
        length = min(selected_length, len(questions))
        if exam_mode is None:
            exam_mode = previous.exam_mode if previous else False

        return Attempt(
            user_id=self.user_id,
            test_id=self.test_id,
            category=self.category,
            selected_length=length,
            total_questions=len(questions),
            presentation_order=generate_permutation(length, self._rng),
            option_order=generate_option_orders(questions, length, self._rng),
            exam_mode=exam_mode,
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def _require_loaded(self) -> Attempt:
        if self.state not in _LOADED_STATES or self.attempt is None:
            raise InvalidTransitionError(f"Session is {self.state.value}, not loaded")
        return self.attempt

    @property
    def exam_mode(self) -> bool:
        return self._require_loaded().exam_mode

    @property
    def selected_length(self) -> int:
        return self._require_loaded().selected_length

    @property
    def current_position(self) -> int:
        return self._require_loaded().current_position

    def question_index_at(self, position: int) -> int:
        """Natural-order index of the question displayed at ``position``."""
        return self._require_loaded().presentation_order[position]

    def question_at(self, position: int) -> Question:
        return self.test.questions[self.question_index_at(position)]

    @property
    def current_question(self) -> Question:
        return self.question_at(self.current_position)

    @property
    def current_option_order(self) -> list[int]:
        attempt = self._require_loaded()
        return attempt.option_order[self.question_index_at(attempt.current_position)]

    @property
    def current_options(self) -> list[str]:
        """Options of the current question in display order."""
        question = self.current_question
        return [question.options[index] for index in self.current_option_order]

    @property
    def current_answer(self) -> AnswerRecord | None:
        return self._require_loaded().find_answer(self.current_question.id)

    @property
    def is_answered(self) -> bool:
        answer = self.current_answer
        return answer is not None and answer.chosen_option_index is not None

    @property
    def selected_display_index(self) -> int | None:
        answer = self.current_answer
        if answer is None or answer.chosen_option_index is None:
            return None
        order = self.current_option_order
        if answer.chosen_option_index not in order:
            return None
        return order.index(answer.chosen_option_index)

    @property
    def progress_percentage(self) -> int:
        attempt = self._require_loaded()
        return percentage(attempt.current_position + 1, attempt.selected_length)

    def position_statuses(self) -> list[PositionStatus]:
        attempt = self._require_loaded()
        by_question = {answer.question_id: answer for answer in attempt.answers}
        statuses = []
        for position in range(attempt.selected_length):
            question = self.question_at(position)
            statuses.append(
                PositionStatus(
                    position=position,
                    question_id=question.id,
                    status=classify(question, by_question),
                    flagged=question.id in self.flagged,
                )
            )
        return statuses

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _check_active(self) -> ActionResult | None:
        self._require_loaded()
        if self.state is not SessionState.ACTIVE:
            return ActionResult.rejected(
                ActionStatus.ATTEMPT_FINISHED, "This test attempt is already finished"
            )
        return None

    def select_option(self, display_index: int) -> ActionResult:
        rejection = self._check_active()
        if rejection:
            return rejection
        attempt = self.attempt
        if not attempt.exam_mode and self.is_answered:
            return ActionResult.rejected(
                ActionStatus.ALREADY_ANSWERED,
                "Question already answered; skip or move to the next question",
            )

        order = self.current_option_order
        if not 0 <= display_index < len(order):
            raise ValueError(f"Option index {display_index} out of range")

        question = self.current_question
        record = AnswerRecord(
            question_id=question.id,
            chosen_option_index=order[display_index],
            correct_option_index=question.correct_option_index,
        )
        attempt.upsert_answer(record)

        if attempt.exam_mode:
            self._dispatch_answer(record)
            self._dispatch_attempt()
            return ActionResult.accepted()

        self._refresh_score()
        self._dispatch_answer(record)
        return ActionResult.accepted(is_correct=record.is_correct)

    def _refresh_score(self) -> None:
        # answers hold at most one entry per question
        self.score = compute_score(self.attempt.answers)
        self.attempt.score = self.score

    def skip(self) -> ActionResult:
        rejection = self._check_active()
        if rejection:
            return rejection
        attempt = self.attempt
        question = self.current_question
        record = AnswerRecord(
            question_id=question.id,
            chosen_option_index=None,
            correct_option_index=question.correct_option_index,
        )
        attempt.upsert_answer(record)
        if not attempt.exam_mode:
            self._refresh_score()
        self._dispatch_answer(record)
        if attempt.exam_mode:
            self._dispatch_attempt()
        return self._advance()

    def next(self) -> ActionResult:
        rejection = self._check_active()
        if rejection:
            return rejection
        if not self.attempt.exam_mode and not self.is_answered:
            return ActionResult.rejected(
                ActionStatus.ANSWER_REQUIRED, "Please answer or skip the question"
            )
        return self._advance()

    def previous(self) -> ActionResult:
        rejection = self._check_active()
        if rejection:
            return rejection
        attempt = self.attempt
        if attempt.current_position == 0:
            return ActionResult.rejected(ActionStatus.AT_START, "Already at the first question")
        attempt.current_position -= 1
        self._dispatch_position()
        return ActionResult.accepted()

    def go_to(self, position: int) -> ActionResult:
        rejection = self._check_active()
        if rejection:
            return rejection
        attempt = self.attempt
        if not 0 <= position < attempt.selected_length:
            raise ValueError(f"Position {position} out of range")
        attempt.current_position = position
        self._dispatch_position()
        return ActionResult.accepted()

    def toggle_flag(self) -> bool:
        """Flag or unflag the current question. Returns whether it is now flagged."""
        self._require_loaded()
        question_id = self.current_question.id
        if question_id in self.flagged:
            self.flagged.discard(question_id)
            return False
        self.flagged.add(question_id)
        return True

    def _advance(self) -> ActionResult:
        attempt = self.attempt
        if attempt.current_position >= attempt.selected_length - 1:
            return ActionResult.accepted(summary=self.finish())
        attempt.current_position += 1
        self._dispatch_position()
        return ActionResult.accepted()

    def finish(self) -> FinishSummary:
        """Finish the attempt with a score recomputed from its answers.

        The session is finished locally even if the remote finish call fails;
        ledger awards may then be missing.
        """
        attempt = self._require_loaded()
        if attempt.finished:
            return self.summary()

        score = compute_score(attempt.answers)
        self.score = score
        attempt.score = score
        attempt.finished = True
        self.state = SessionState.FINISHED

        self._dispatch_attempt()
        self.dispatcher.submit(
            "update position",
            self.synchronizer.update_position,
            self.user_id,
            self.test_id,
            attempt.current_position,
            True,
        )
        self.dispatcher.submit(
            "finish attempt",
            self.synchronizer.finish_attempt,
            self.user_id,
            self.test_id,
            score,
            attempt.selected_length,
            self.category,
            on_success=self.ledger.apply_finish_award,
        )
        logger.info(
            f"Session {self.user_id}/{self.test_id} finished: {score}/{attempt.selected_length}"
        )
        return self.summary()

    def summary(self) -> FinishSummary:
        attempt = self._require_loaded()
        return summarize_finish(
            compute_score(attempt.answers), attempt.selected_length, self.settings.grade_bands
        )

    def begin_review(self) -> None:
        self._require_loaded()
        if self.state is SessionState.ACTIVE:
            raise InvalidTransitionError("Finish the test before reviewing it")
        self.state = SessionState.REVIEWING

    def review_questions(self, kind: ReviewFilter | str = ReviewFilter.ALL) -> list[Question]:
        attempt = self._require_loaded()
        if self.state is SessionState.ACTIVE:
            raise InvalidTransitionError("Finish the test before reviewing it")
        return filter_for_review(
            self.test.questions, attempt.selected_length, attempt.answers, self.flagged, kind
        )

    def review_summary(self) -> ReviewSummary:
        attempt = self._require_loaded()
        return summarize_review(
            self.test.questions, attempt.selected_length, attempt.answers, self.flagged
        )

    def restart(
        self, selected_length: int | None = None, exam_mode: bool | None = None
    ) -> SessionState:
        """Replace the attempt with fresh orderings and no answers."""
        self._require_loaded()
        if selected_length is not None and selected_length < 1:
            raise ValueError("selected_length must be positive")
        self.attempt = self._new_attempt(selected_length, exam_mode)
        self.flagged = set()
        self.score = 0
        self.state = SessionState.ACTIVE
        self._dispatch_attempt()
        logger.info(f"Session {self.user_id}/{self.test_id} restarted")
        return self.state

    def close(self) -> None:
        """Best-effort final save; does not wait for it."""
        if self.attempt is not None and self.state in _LOADED_STATES:
            self._dispatch_attempt()
        if self._owns_dispatcher:
            self.dispatcher.shutdown(wait=False)

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    def _dispatch_attempt(self) -> None:
        self.dispatcher.submit(
            "upsert attempt",
            self.synchronizer.upsert_attempt,
            self.user_id,
            self.test_id,
            self.attempt.copy(),
        )

    def _dispatch_position(self) -> None:
        attempt = self.attempt
        self.dispatcher.submit(
            "update position",
            self.synchronizer.update_position,
            self.user_id,
            self.test_id,
            attempt.current_position,
            attempt.finished,
        )
        self._dispatch_attempt()

    def _dispatch_answer(self, record: AnswerRecord) -> None:
        exam_mode = self.attempt.exam_mode
        submission = AnswerSubmission(
            test_id=self.test_id,
            question_id=record.question_id,
            correct_option_index=record.correct_option_index,
            chosen_option_index=record.chosen_option_index,
            reward_rate=self.test.reward_rate_per_correct * self.ledger.xp_boost,
            coins_per_correct=self.settings.coins_per_correct,
            exam_mode=exam_mode,
        )
        self.dispatcher.submit(
            f"submit answer {record.question_id}",
            self.synchronizer.submit_answer,
            self.user_id,
            submission,
            on_success=None if exam_mode else self._apply_answer_award,
        )

    def _apply_answer_award(self, award: AnswerAward) -> None:
        self.ledger.apply_answer_award(award)
