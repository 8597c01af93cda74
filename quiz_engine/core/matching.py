"""Drag-based reordering of the right side of match questions."""
import logging
import random
from typing import Dict, List, Optional

from quiz_engine.api.models import MatchPair, Question

from .answers import AnswerAggregator, MatchAnswer, PairAssignment

logger = logging.getLogger(__name__)


def move_item(items: List, source_index: int, destination_index: int) -> List:
    """Return a copy with the item at ``source_index`` moved to ``destination_index``."""
    result = list(items)
    item = result.pop(source_index)
    result.insert(destination_index, item)
    return result


def positional_assignment(question: Question, right_order: List[MatchPair]) -> List[PairAssignment]:
    """Bind the left pair at position i to the right pair now at position i."""
    return [
        PairAssignment(left.id, right.id)
        for left, right in zip(question.match_pairs, right_order)
    ]


class MatchReorderEngine:
    """
    Keeps the visible right-side order of every match question of one attempt
    and pushes the positional assignment to the aggregator after each change.
    """

    def __init__(self, aggregator: AnswerAggregator, rng: Optional[random.Random] = None):
        self._aggregator = aggregator
        self._rng = rng or random.Random()
        self._orders: Dict[int, List[MatchPair]] = {}

    def right_order(self, question_id: int) -> List[MatchPair]:
        return list(self._orders.get(question_id, []))

    def prepare(self, question: Question) -> List[MatchPair]:
        """
        Called whenever ``question`` becomes current.

        The first visit shuffles the right side and stores the initial
        assignment right away. Later visits keep whatever order the user left.
        """
        if not question.is_match:
            return []

        existing = self._aggregator.get_answer(question.id)
        if isinstance(existing, MatchAnswer) and not existing.is_empty:
            if question.id not in self._orders:
                self._orders[question.id] = self._order_from_answer(question, existing)
            return self.right_order(question.id)

        shuffled = list(question.match_pairs)
        self._rng.shuffle(shuffled)
        self._store(question, shuffled)
        logger.debug("Shuffled match question %s: %s", question.id, [p.id for p in shuffled])
        return self.right_order(question.id)

    def reorder(self, question: Question, source_index: int, destination_index: Optional[int]) -> bool:
        """
        Apply a drop event. Returns False when nothing changed.

        ``destination_index`` is None for a drop outside the list.
        """
        if destination_index is None or destination_index == source_index:
            return False
        if not question.is_match:
            return False

        order = self._orders.get(question.id)
        if order is None:
            order = self.prepare(question)
        size = len(order)
        if not (0 <= source_index < size and 0 <= destination_index < size):
            logger.warning(
                "Ignoring reorder %s -> %s on question %s with %d pairs",
                source_index, destination_index, question.id, size,
            )
            return False

        self._store(question, move_item(order, source_index, destination_index))
        return True

    def _store(self, question: Question, order: List[MatchPair]) -> None:
        self._orders[question.id] = order
        self._aggregator.set_match_assignment(question.id, positional_assignment(question, order))

    @staticmethod
    def _order_from_answer(question: Question, answer: MatchAnswer) -> List[MatchPair]:
        by_id = {p.id: p for p in question.match_pairs}
        mapping = answer.as_dict()
        order = [by_id[mapping[left.id]] for left in question.match_pairs if left.id in mapping]
        # Pairs missing from a partial answer go to the end in their original order
        used = {p.id for p in order}
        order.extend(p for p in question.match_pairs if p.id not in used)
        return order
