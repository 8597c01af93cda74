"""Builds the submission payload and reports the outcome as a value."""
import logging
from dataclasses import dataclass
from typing import Awaitable, Optional, Protocol

from quiz_engine.api.exceptions import QuizAPIError, ServerError
from quiz_engine.api.models import AttemptResult, TestDefinition

from .answers import AnswerAggregator

logger = logging.getLogger(__name__)


class AttemptSubmitter(Protocol):
    """Submission collaborator (implemented by ``QuizClient``)."""

    def submit_attempt(self, payload: dict) -> Awaitable[AttemptResult]:
        ...


@dataclass(frozen=True)
class SubmissionOutcome:
    """Exactly one of ``result`` / ``error`` is set."""
    result: Optional[AttemptResult] = None
    error: Optional[QuizAPIError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_payload(test: TestDefinition, answers: AnswerAggregator) -> dict:
    return {
        "test_id": test.id,
        "answers": [a.to_payload() for a in answers.build_submission_answers(test)],
    }


class ResultSubmitter:
    """Calls the submission collaborator once and never raises."""

    def __init__(self, client: AttemptSubmitter):
        self._client = client

    async def submit(self, test: TestDefinition, answers: AnswerAggregator) -> SubmissionOutcome:
        payload = build_payload(test, answers)
        logger.info("Submitting attempt for test %s (%d answers)", test.id, len(payload["answers"]))
        try:
            result = await self._client.submit_attempt(payload)
        except QuizAPIError as e:
            logger.error("Submission of test %s failed: %s", test.id, e.user_message)
            return SubmissionOutcome(error=e)
        except Exception as e:
            logger.exception("Unexpected error while submitting test %s", test.id)
            return SubmissionOutcome(error=ServerError(f"Unexpected error: {e}"))

        if not isinstance(result, AttemptResult):
            logger.error("Submission of test %s returned %r", test.id, result)
            return SubmissionOutcome(error=ServerError("Malformed submission response"))

        logger.info(
            "Test %s submitted: %s/%s (%s%%)",
            test.id, result.score, result.total_questions, result.percentage,
        )
        return SubmissionOutcome(result=result)
