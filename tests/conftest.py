"""Shared fixtures for the quiz engine tests."""
import random
from unittest.mock import AsyncMock

import pytest

from quiz_engine.api import models
from quiz_engine.api.models import AttemptResult
from quiz_engine.core.session import SessionStateMachine

# The loop never fires on its own in tests; timers are driven via tick()
IDLE_INTERVAL = 3600


class ReversingRandom(random.Random):
    """Deterministic "shuffle" that reverses the list."""

    def shuffle(self, x, *args, **kwargs):
        x.reverse()


def choice_question(question_id, q_type="single_choice", option_ids=(1, 2, 3)):
    return {
        "id": question_id,
        "type": q_type,
        "text": f"Question {question_id}",
        "points": 1,
        "options": [
            {"id": oid, "text": f"Option {oid}", "is_correct": oid == option_ids[0]}
            for oid in option_ids
        ],
        "match_pairs": [],
    }


def match_question(question_id, pairs=((1, "A", "1"), (2, "B", "2"))):
    return {
        "id": question_id,
        "type": "match",
        "text": f"Match {question_id}",
        "options": [],
        "match_pairs": [
            {"id": pid, "left_text": left, "right_text": right}
            for pid, left, right in pairs
        ],
    }


def definition_payload(questions, total_time_limit=None, time_per_question=None, test_id=7):
    return {
        "id": test_id,
        "title": "Sample test",
        "section_id": 3,
        "total_time_limit": total_time_limit,
        "time_per_question": time_per_question,
        "questions": questions,
    }


def build_test(questions, **kwargs):
    return models.test_from_payload(definition_payload(questions, **kwargs))


@pytest.fixture
def three_choice_test():
    """Three single-choice questions, no timers."""
    return build_test([choice_question(qid, option_ids=(qid * 10 + 1, qid * 10 + 2)) for qid in (1, 2, 3)])


@pytest.fixture
def mixed_test():
    """Single, multiple and match questions, no timers."""
    return build_test([
        choice_question(1, option_ids=(11, 12)),
        choice_question(2, "multiple_choice", option_ids=(21, 22, 23)),
        match_question(3, pairs=((31, "A", "1"), (32, "B", "2"), (33, "C", "3"))),
    ])


@pytest.fixture
def attempt_result():
    return AttemptResult(score=2, total_questions=3, percentage=66.67, id=101)


@pytest.fixture
def api(attempt_result):
    """Fake backend implementing both collaborators."""
    client = AsyncMock()
    client.submit_attempt.return_value = attempt_result
    return client


@pytest.fixture
async def make_machine(api):
    """Factory for loaded state machines; closes them on teardown."""
    machines = []

    async def _make(test, *, rng=None, load=True, on_change=None, tick_interval=IDLE_INTERVAL):
        api.get_test.return_value = test
        machine = SessionStateMachine(
            test.id, api, api,
            rng=rng or ReversingRandom(),
            tick_interval=tick_interval,
            on_change=on_change,
        )
        machines.append(machine)
        if load:
            await machine.load()
        return machine

    yield _make

    for machine in machines:
        machine.close()
