"""Data models for quiz backend responses."""
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .exceptions import InvalidResponseError

SINGLE_CHOICE = "single_choice"
MULTIPLE_CHOICE = "multiple_choice"
MATCH = "match"

CHOICE_TYPES = (SINGLE_CHOICE, MULTIPLE_CHOICE)
QUESTION_TYPES = (SINGLE_CHOICE, MULTIPLE_CHOICE, MATCH)


@dataclass(frozen=True)
class Option:
    """Answer option of a choice question."""
    id: int
    text: str


@dataclass(frozen=True)
class MatchPair:
    """Left/right pair of a match question."""
    id: int
    left_text: str
    right_text: str


@dataclass(frozen=True)
class Question:
    """Single question of a test."""
    id: int
    type: str
    text: str
    points: int = 1
    image: Optional[str] = None
    options: Tuple[Option, ...] = ()
    match_pairs: Tuple[MatchPair, ...] = ()

    def __post_init__(self):
        if self.type not in QUESTION_TYPES:
            raise ValueError(f"Unknown question type: {self.type!r}")
        if self.is_match and self.options:
            raise ValueError(f"Match question {self.id} must not carry options")
        if not self.is_match and self.match_pairs:
            raise ValueError(f"Choice question {self.id} must not carry match pairs")

    @property
    def is_match(self) -> bool:
        return self.type == MATCH

    def option_ids(self) -> List[int]:
        return [opt.id for opt in self.options]

    def pair_ids(self) -> List[int]:
        return [pair.id for pair in self.match_pairs]


@dataclass(frozen=True)
class TestDefinition:
    """Quiz template: ordered questions plus timing policy."""
    __test__ = False  # not a pytest test class

    id: int
    title: str
    questions: Tuple[Question, ...]
    section_id: Optional[int] = None
    total_time_limit: Optional[int] = None     # minutes, as authored
    time_per_question: Optional[int] = None    # seconds

    @property
    def total_time_limit_seconds(self) -> Optional[int]:
        if self.total_time_limit is None:
            return None
        return self.total_time_limit * 60

    @property
    def question_count(self) -> int:
        return len(self.questions)

    def question_by_id(self, question_id: int) -> Optional[Question]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None


@dataclass(frozen=True)
class AttemptResult:
    """Graded attempt as returned by the backend."""
    score: float
    total_questions: int
    percentage: float
    id: Optional[int] = None


@dataclass
class QuizAttempt:
    """Past attempt from the progress history."""
    id: int
    score: float
    total_questions: int
    percentage: float
    completed_at: Optional[str] = None
    test_id: Optional[int] = None
    test_title: Optional[str] = None
    section_title: Optional[str] = None
    course_title: Optional[str] = None


# ============================================================================
# CONVERTERS: JSON payloads → dataclasses
# ============================================================================

def _require(payload: Any, key: str, where: str) -> Any:
    if not isinstance(payload, dict) or payload.get(key) is None:
        raise InvalidResponseError(f"{where}: missing field '{key}'")
    return payload[key]


def _optional_int(value: Any, where: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidResponseError(f"{where}: expected a number, got {value!r}")


def _require_id(payload: Any, where: str) -> int:
    """Ids may arrive as numeric strings; they are always stored as int."""
    value = _optional_int(_require(payload, "id", where), where)
    if value is None:
        raise InvalidResponseError(f"{where}: missing field 'id'")
    return value


def option_from_payload(payload: Any) -> Option:
    """Converts an option dict; ``is_correct`` is ignored if present."""
    return Option(
        id=_require_id(payload, "option"),
        text=str(payload.get("text") or ""),
    )


def match_pair_from_payload(payload: Any) -> MatchPair:
    return MatchPair(
        id=_require_id(payload, "match pair"),
        left_text=str(payload.get("left_text") or ""),
        right_text=str(payload.get("right_text") or ""),
    )


def question_from_payload(payload: Any) -> Question:
    """
    Converts a question dict into ``Question``.

    Only the children collection matching ``type`` is read; the other one is
    dropped even if the backend sends it (usually as an empty list).
    """
    question_id = _require_id(payload, "question")
    q_type = _require(payload, "type", f"question {question_id}")
    if q_type not in QUESTION_TYPES:
        raise InvalidResponseError(f"question {question_id}: unknown type {q_type!r}")

    options: Tuple[Option, ...] = ()
    pairs: Tuple[MatchPair, ...] = ()
    if q_type == MATCH:
        pairs = tuple(match_pair_from_payload(p) for p in payload.get("match_pairs") or [])
        if not pairs:
            raise InvalidResponseError(f"question {question_id}: match question without pairs")
        if len({p.id for p in pairs}) != len(pairs):
            raise InvalidResponseError(f"question {question_id}: duplicate pair ids")
    else:
        options = tuple(option_from_payload(o) for o in payload.get("options") or [])
        if not options:
            raise InvalidResponseError(f"question {question_id}: choice question without options")
        if len({o.id for o in options}) != len(options):
            raise InvalidResponseError(f"question {question_id}: duplicate option ids")

    points = _optional_int(payload.get("points"), f"question {question_id}")
    return Question(
        id=question_id,
        type=q_type,
        text=str(payload.get("text") or ""),
        points=points if points is not None else 1,
        image=payload.get("image"),
        options=options,
        match_pairs=pairs,
    )


def test_from_payload(payload: Any) -> TestDefinition:
    """
    Converts the test-fetch response into ``TestDefinition``.

    Raises:
        InvalidResponseError: on any shape deviation, including a missing or
            empty ``questions`` array.
    """
    test_id = _require_id(payload, "test")
    raw_questions = payload.get("questions")
    if not isinstance(raw_questions, list) or not raw_questions:
        raise InvalidResponseError(f"test {test_id}: contains no questions")

    questions = tuple(question_from_payload(q) for q in raw_questions)
    if len({q.id for q in questions}) != len(questions):
        raise InvalidResponseError(f"test {test_id}: duplicate question ids")

    return TestDefinition(
        id=test_id,
        title=str(payload.get("title") or ""),
        questions=questions,
        section_id=_optional_int(payload.get("section_id"), f"test {test_id}"),
        total_time_limit=_optional_int(payload.get("total_time_limit"), f"test {test_id}"),
        time_per_question=_optional_int(payload.get("time_per_question"), f"test {test_id}"),
    )


def attempt_result_from_payload(payload: Any) -> AttemptResult:
    """Converts the (already unwrapped) submission result."""
    if not isinstance(payload, dict):
        raise InvalidResponseError("attempt result: expected an object")
    try:
        return AttemptResult(
            score=float(payload["score"]),
            total_questions=int(payload["total_questions"]),
            percentage=float(payload["percentage"]),
            id=payload.get("id"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidResponseError(f"attempt result: malformed payload ({e})")


def attempt_from_payload(payload: Any) -> QuizAttempt:
    """Converts one entry of the attempt history."""
    result = attempt_result_from_payload(payload)
    test = payload.get("test") or {}
    if not isinstance(test, dict):
        raise InvalidResponseError(f"attempt: expected an object for 'test', got {test!r}")
    return QuizAttempt(
        id=_require(payload, "id", "attempt"),
        score=result.score,
        total_questions=result.total_questions,
        percentage=result.percentage,
        completed_at=payload.get("completed_at_iso") or payload.get("completed_at"),
        test_id=_optional_int(test.get("id"), "attempt test"),
        test_title=test.get("title"),
        section_title=payload.get("section_title"),
        course_title=payload.get("course_title"),
    )
