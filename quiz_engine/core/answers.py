"""Per-question answer state and the submission answer list."""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Union

from quiz_engine.api.models import MATCH, MULTIPLE_CHOICE, SINGLE_CHOICE, Question, TestDefinition


@dataclass(frozen=True)
class PairAssignment:
    """Left pair bound to the right pair the user placed opposite it."""
    left_id: int
    right_id: int

    def to_payload(self) -> dict:
        return {"left_id": self.left_id, "selected_right_id": self.right_id}


@dataclass(frozen=True)
class ChoiceAnswer:
    """Answer to a single- or multiple-choice question."""
    question_id: int
    selected_option_ids: Tuple[int, ...] = ()

    def __post_init__(self):
        if len(set(self.selected_option_ids)) != len(self.selected_option_ids):
            raise ValueError(f"Duplicate option ids in answer to question {self.question_id}")

    @property
    def is_empty(self) -> bool:
        return not self.selected_option_ids

    def to_payload(self) -> dict:
        return {
            "question_id": self.question_id,
            "selected_option_ids": list(self.selected_option_ids),
        }


@dataclass(frozen=True)
class MatchAnswer:
    """Answer to a match question; always a bijection left → right."""
    question_id: int
    selected_pairs: Tuple[PairAssignment, ...] = ()

    def __post_init__(self):
        lefts = [p.left_id for p in self.selected_pairs]
        rights = [p.right_id for p in self.selected_pairs]
        if len(set(lefts)) != len(lefts) or len(set(rights)) != len(rights):
            raise ValueError(f"Match answer to question {self.question_id} is not a bijection")

    @property
    def is_empty(self) -> bool:
        return not self.selected_pairs

    def as_dict(self) -> Dict[int, int]:
        return {p.left_id: p.right_id for p in self.selected_pairs}

    def to_payload(self) -> dict:
        return {
            "question_id": self.question_id,
            "selected_pairs": [p.to_payload() for p in self.selected_pairs],
        }


UserAnswer = Union[ChoiceAnswer, MatchAnswer]


def empty_answer(question: Question) -> UserAnswer:
    if question.is_match:
        return MatchAnswer(question.id)
    return ChoiceAnswer(question.id)


class AnswerAggregator:
    """
    Holds at most one answer per question id.

    Every update replaces the stored answer as a whole; there is no merging
    of old and new state. Updates are checked against the question so a
    choice answer can never land on a match question and vice versa.
    """

    def __init__(self, test: TestDefinition):
        self._questions: Dict[int, Question] = {q.id: q for q in test.questions}
        self._answers: Dict[int, UserAnswer] = {}

    def __len__(self) -> int:
        return len(self._answers)

    def __contains__(self, question_id: int) -> bool:
        return question_id in self._answers

    def _question(self, question_id: int, *types: str) -> Question:
        question = self._questions.get(question_id)
        if question is None:
            raise ValueError(f"Unknown question id: {question_id}")
        if question.type not in types:
            raise ValueError(f"Question {question_id} is {question.type}, expected one of {types}")
        return question

    def _check_option(self, question: Question, option_id: int) -> None:
        if option_id not in question.option_ids():
            raise ValueError(f"Option {option_id} does not belong to question {question.id}")

    def set_single_choice(self, question_id: int, option_id: int) -> None:
        question = self._question(question_id, SINGLE_CHOICE)
        self._check_option(question, option_id)
        self._answers[question_id] = ChoiceAnswer(question_id, (option_id,))

    def toggle_multiple_choice(self, question_id: int, option_id: int) -> None:
        question = self._question(question_id, MULTIPLE_CHOICE)
        self._check_option(question, option_id)
        current = self._answers.get(question_id)
        selected = list(current.selected_option_ids) if current else []
        if option_id in selected:
            selected.remove(option_id)
        else:
            selected.append(option_id)
        self._answers[question_id] = ChoiceAnswer(question_id, tuple(selected))

    def set_match_assignment(self, question_id: int, pairs: Iterable[PairAssignment]) -> None:
        question = self._question(question_id, MATCH)
        answer = MatchAnswer(question_id, tuple(pairs))
        known = set(question.pair_ids())
        for pair in answer.selected_pairs:
            if pair.left_id not in known or pair.right_id not in known:
                raise ValueError(f"Pair {pair} does not belong to question {question_id}")
        self._answers[question_id] = answer

    def get_answer(self, question_id: int) -> Optional[UserAnswer]:
        return self._answers.get(question_id)

    def build_submission_answers(self, test: TestDefinition) -> List[UserAnswer]:
        """One answer per question in test order; unanswered ones are empty."""
        return [self._answers.get(q.id) or empty_answer(q) for q in test.questions]
