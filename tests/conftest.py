import random
from datetime import datetime, timedelta, timezone

import pytest

from models import Question
from app.identity import CookieJar
from app.storage.sqlite_store import SqliteStore


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds: float):
        self.now = self.now + timedelta(seconds=seconds)


def make_question(qid, correct="A", day=None):
    return Question(
        id=str(qid),
        question=f"Question {qid}?",
        answers=["A", "B", "C", "D"],
        correct_answer=correct,
        day=day,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def questions():
    return [make_question(i) for i in range(1, 6)]


@pytest.fixture
def store(tmp_path):
    s = SqliteStore(str(tmp_path / "trivia.db"))
    s.init_db()
    return s


@pytest.fixture
def jar(tmp_path, clock):
    return CookieJar(str(tmp_path / "cookies.json"), clock=clock)


@pytest.fixture
def question_factory():
    return make_question
