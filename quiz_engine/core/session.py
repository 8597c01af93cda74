"""Quiz session state machine: Loading → Start → Playing → GameOver."""
import enum
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Protocol

from quiz_engine.api.exceptions import LoadError, QuizAPIError
from quiz_engine.api.models import AttemptResult, MatchPair, Question, TestDefinition

from .answers import AnswerAggregator, UserAnswer
from .matching import MatchReorderEngine
from .submitter import AttemptSubmitter, ResultSubmitter
from .timer import TimerManager, TimerPolicy

logger = logging.getLogger(__name__)


class DefinitionFetcher(Protocol):
    """Test-fetch collaborator (implemented by ``QuizClient``)."""

    def get_test(self, test_id) -> Awaitable[TestDefinition]:
        ...


class QuizState(enum.Enum):
    LOADING = "loading"
    START = "start"
    PLAYING = "playing"
    GAME_OVER = "gameOver"


@dataclass
class QuizSession:
    """
    Mutable state of one attempt.

    A restart never mutates the old instance; it replaces it with a fresh
    one sharing only the test definition.
    """
    state: QuizState = QuizState.LOADING
    current_index: int = 0
    answers: Optional[AnswerAggregator] = None
    matcher: Optional[MatchReorderEngine] = None
    result: Optional[AttemptResult] = None
    error: Optional[QuizAPIError] = None
    submission_attempted: bool = False

    @property
    def is_submitting(self) -> bool:
        return self.submission_attempted and self.result is None and self.error is None


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view handed to the rendering layer."""
    state: QuizState
    current_index: int
    question_count: int
    question: Optional[Question]
    answer: Optional[UserAnswer]
    right_order: List[MatchPair]
    remaining_seconds: Optional[int]
    policy: TimerPolicy
    title: str = ""
    result: Optional[AttemptResult] = None
    error: Optional[QuizAPIError] = None
    is_submitting: bool = False

    @property
    def is_first(self) -> bool:
        return self.current_index == 0

    @property
    def is_last(self) -> bool:
        return self.current_index >= self.question_count - 1


class SessionStateMachine:
    """
    Drives one user through one test.

    Owns the question cursor and the timer, delegates answers to the
    aggregator and hands the finished attempt to the submitter exactly once.
    ``close`` must be called when the owner goes away; responses that arrive
    afterwards are dropped.
    """

    def __init__(
        self,
        test_id,
        fetcher: DefinitionFetcher,
        submitter_client: AttemptSubmitter,
        *,
        rng: Optional[random.Random] = None,
        tick_interval: Optional[float] = None,
        on_change: Optional[Callable[[SessionSnapshot], None]] = None,
    ):
        self.test_id = test_id
        self._fetcher = fetcher
        self._submitter = ResultSubmitter(submitter_client)
        self._rng = rng
        self._on_change = on_change
        self._timer = TimerManager(
            self._on_timer_expired, on_tick=self._on_timer_tick, interval=tick_interval,
        )
        self._alive = True
        self.test: Optional[TestDefinition] = None
        self.policy = TimerPolicy.NONE
        self.session = QuizSession()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def state(self) -> QuizState:
        return self.session.state

    @property
    def timer(self) -> TimerManager:
        return self._timer

    @property
    def question_count(self) -> int:
        return self.test.question_count if self.test else 0

    @property
    def current_question(self) -> Optional[Question]:
        if self.test is None:
            return None
        return self.test.questions[self.session.current_index]

    def snapshot(self) -> SessionSnapshot:
        session = self.session
        question = self.current_question
        answer = None
        right_order: List[MatchPair] = []
        if question is not None and session.answers is not None:
            answer = session.answers.get_answer(question.id)
            if question.is_match:
                right_order = session.matcher.right_order(question.id)
        return SessionSnapshot(
            state=session.state,
            current_index=session.current_index,
            question_count=self.question_count,
            question=question,
            answer=answer,
            right_order=right_order,
            remaining_seconds=self._timer.remaining,
            policy=self.policy,
            title=self.test.title if self.test else "",
            result=session.result,
            error=session.error,
            is_submitting=session.is_submitting,
        )

    def _notify(self) -> None:
        if self._on_change is None or not self._alive:
            return
        # A failing renderer must not stall transitions or the timer
        try:
            self._on_change(self.snapshot())
        except Exception:
            logger.exception("on_change callback failed for test %s", self.test_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def load(self) -> None:
        """Fetch the test. Success → Start, failure → GameOver with LoadError."""
        if self.session.state is not QuizState.LOADING:
            logger.warning("load() called in state %s, ignored", self.session.state.value)
            return

        error: Optional[LoadError] = None
        test: Optional[TestDefinition] = None
        try:
            test = await self._fetcher.get_test(self.test_id)
        except QuizAPIError as e:
            error = LoadError(f"Failed to load test data. {e.message}", status=e.status)
        except Exception as e:
            logger.exception("Unexpected error while loading test %s", self.test_id)
            error = LoadError(f"Failed to load test data. {e}")
        else:
            if test is None:
                error = LoadError(f"Test {self.test_id} not found")
            elif not test.questions:
                error = LoadError("The test was received but contains no questions")

        if not self._alive:
            logger.info("Session for test %s closed while loading, response dropped", self.test_id)
            return

        if error is not None:
            logger.error("Loading test %s failed: %s", self.test_id, error.message)
            self.session.error = error
            self.session.state = QuizState.GAME_OVER
            self._notify()
            return

        self.test = test
        self.policy = TimerPolicy.for_test(test)
        self.session = self._new_session(QuizState.START)
        self._timer.reset(self.policy.initial_seconds(test))
        logger.info(
            "Loaded test %s (%d questions, timer policy %s)",
            test.id, test.question_count, self.policy.value,
        )
        self._notify()

    def start(self) -> None:
        """Start → Playing."""
        if self.session.state is not QuizState.START:
            return
        self.session.state = QuizState.PLAYING
        self._begin_attempt()

    def restart(self) -> None:
        """GameOver → Playing with a brand-new attempt of the same test."""
        if self.session.state is not QuizState.GAME_OVER or self.test is None:
            return
        self._timer.stop()
        self.session = self._new_session(QuizState.PLAYING)
        logger.info("Restarting test %s", self.test.id)
        self._begin_attempt()

    async def finish(self) -> None:
        """Playing → GameOver and submit once; later calls are no-ops."""
        session = self.session
        if session.state is not QuizState.PLAYING or session.submission_attempted:
            return
        self._timer.stop()
        session.state = QuizState.GAME_OVER
        session.submission_attempted = True
        self._notify()

        outcome = await self._submitter.submit(self.test, session.answers)

        if not self._alive:
            logger.info("Session for test %s closed while submitting, outcome dropped", self.test.id)
            return
        # A restart during submission leaves this outcome on the discarded session
        session.result = outcome.result
        session.error = outcome.error
        if session is self.session:
            self._notify()

    def close(self) -> None:
        """Teardown: stop the timer and drop any late responses."""
        self._alive = False
        self._timer.stop()

    def _new_session(self, state: QuizState) -> QuizSession:
        answers = AnswerAggregator(self.test)
        matcher = MatchReorderEngine(answers, self._rng)
        return QuizSession(state=state, answers=answers, matcher=matcher)

    def _begin_attempt(self) -> None:
        self._enter_question()
        if self.policy is not TimerPolicy.NONE:
            self._timer.start(self.policy.initial_seconds(self.test))
        else:
            self._timer.reset(None)
        self._notify()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def next(self) -> bool:
        """Move to the next question; False at the last one or outside Playing."""
        if self.session.state is not QuizState.PLAYING:
            return False
        if self.session.current_index >= self.question_count - 1:
            return False
        self._go_to(self.session.current_index + 1)
        return True

    def prev(self) -> bool:
        """Move to the previous question; False at the first one or outside Playing."""
        if self.session.state is not QuizState.PLAYING:
            return False
        if self.session.current_index <= 0:
            return False
        self._go_to(self.session.current_index - 1)
        return True

    def _go_to(self, index: int) -> None:
        self.session.current_index = index
        if self.policy is TimerPolicy.PER_QUESTION:
            self._timer.reset(self.test.time_per_question)
        self._enter_question()
        self._notify()

    def _enter_question(self) -> None:
        question = self.current_question
        if question is not None and question.is_match:
            self.session.matcher.prepare(question)

    # ------------------------------------------------------------------
    # Answers (current question)
    # ------------------------------------------------------------------

    def select_option(self, option_id: int) -> None:
        if self.session.state is not QuizState.PLAYING:
            return
        self.session.answers.set_single_choice(self.current_question.id, option_id)
        self._notify()

    def toggle_option(self, option_id: int) -> None:
        if self.session.state is not QuizState.PLAYING:
            return
        self.session.answers.toggle_multiple_choice(self.current_question.id, option_id)
        self._notify()

    def reorder_match(self, source_index: int, destination_index: Optional[int]) -> None:
        if self.session.state is not QuizState.PLAYING:
            return
        if self.session.matcher.reorder(self.current_question, source_index, destination_index):
            self._notify()

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def _on_timer_tick(self, remaining: int) -> None:
        logger.debug("Test %s: %ss left", self.test_id, remaining)
        self._notify()

    async def _on_timer_expired(self) -> None:
        if self.session.state is not QuizState.PLAYING:
            return
        if self.policy is TimerPolicy.PER_QUESTION and self.next():
            logger.info("Question time is up, moved to question %d", self.session.current_index + 1)
            return
        logger.info("Time is up for test %s, finishing", self.test_id)
        await self.finish()
