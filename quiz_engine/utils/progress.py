"""Attempt history grouped by course and test."""
from typing import Dict, Iterable, List

from quiz_engine.api.models import QuizAttempt

UNKNOWN_COURSE = "Unknown course"
UNKNOWN_TEST = "unknown-test"


def group_attempts(attempts: Iterable[QuizAttempt]) -> Dict[str, Dict[str, List[QuizAttempt]]]:
    """
    Group attempts as ``{course_title: {test_id: [attempts...]}}``.

    Test ids become strings so attempts without a test share one bucket.
    Insertion order of the input is preserved at every level.
    """
    grouped: Dict[str, Dict[str, List[QuizAttempt]]] = {}
    for attempt in attempts:
        course = attempt.course_title or UNKNOWN_COURSE
        test_key = str(attempt.test_id) if attempt.test_id is not None else UNKNOWN_TEST
        grouped.setdefault(course, {}).setdefault(test_key, []).append(attempt)
    return grouped


def best_attempt(attempts: Iterable[QuizAttempt]):
    """Attempt with the highest percentage, or None for an empty history."""
    return max(attempts, key=lambda a: a.percentage, default=None)
