import json
from datetime import date

import pytest

from models import LeaderboardEntry
from app.errors import FetchError, StoreError
from app.storage.seed import SAMPLE_QUESTIONS, load_questions_file
from app.storage.sqlite_store import SqliteStore


def test_questions_roundtrip_in_insert_order(store, question_factory):
    store.save_questions([question_factory(3), question_factory(1), question_factory(2)])
    got = store.fetch_questions()
    assert [q.id for q in got] == ["3", "1", "2"]
    assert got[0].answers == ["A", "B", "C", "D"]
    assert got[0].correct_answer == "A"


def test_fetch_questions_by_day(store, question_factory):
    d1, d2 = date(2026, 3, 14), date(2026, 3, 15)
    store.save_questions([
        question_factory(1, day=d1),
        question_factory(2, day=d2),
        question_factory(3, day=d1),
        question_factory(4),
    ])
    assert [q.id for q in store.fetch_questions(d1)] == ["1", "3"]
    assert store.fetch_questions(date(2026, 1, 1)) == []
    assert len(store.fetch_questions()) == 4


def test_save_question_overwrites_same_id(store, question_factory):
    store.save_question(question_factory(1, correct="A"))
    store.save_question(question_factory(1, correct="C"))
    got = store.fetch_questions()
    assert len(got) == 1
    assert got[0].correct_answer == "C"


def test_upsert_is_keyed_by_identity_and_scope(store):
    day = date(2026, 3, 14)
    store.upsert_entry(LeaderboardEntry(user_id="u1", username="Ada", metric=40.0, day=day))
    store.upsert_entry(LeaderboardEntry(user_id="u1", username="Ada L", metric=35.0, day=day))
    store.upsert_entry(LeaderboardEntry(user_id="u1", username="Ada", metric=50.0))

    assert store.count_entries("u1", day) == 1
    assert store.count_entries("u1", None) == 1
    entry = store.fetch_by_identity("u1", day)
    assert entry.metric == 35.0
    assert entry.username == "Ada L"
    assert entry.day == day
    assert store.fetch_by_identity("u1", None).day is None


def test_fetch_by_identity_missing(store):
    assert store.fetch_by_identity("nobody") is None


def test_unreadable_database_raises_fetch_error(tmp_path):
    broken = SqliteStore(str(tmp_path))  # a directory, not a file
    with pytest.raises(FetchError):
        broken.fetch_questions()
    with pytest.raises(FetchError):
        broken.fetch_top()


@pytest.mark.parametrize("answers_json, correct", [
    ('["A", "B"]', "Z"),  # correct answer not a choice
    ("not json", "A"),
])
def test_malformed_question_row_raises_fetch_error(store, answers_json, correct):
    with store._connect() as conn:
        conn.execute(
            "INSERT INTO questions (id, question, answers_json, correct_answer, day) VALUES (?, ?, ?, ?, NULL)",
            ("1", "q?", answers_json, correct),
        )
    with pytest.raises(FetchError):
        store.fetch_questions()


def test_unwritable_database_raises_store_error(tmp_path):
    broken = SqliteStore(str(tmp_path))
    with pytest.raises(StoreError):
        broken.upsert_entry(LeaderboardEntry(user_id="u1", username="Ada", metric=1.0))


def test_reset_db(store, question_factory):
    store.save_question(question_factory(1))
    store.upsert_entry(LeaderboardEntry(user_id="u1", username="Ada", metric=1.0))
    store.reset_db()
    assert store.fetch_questions() == []
    assert store.fetch_top() == []


def test_load_questions_file(tmp_path):
    path = tmp_path / "q.json"
    path.write_text(json.dumps([
        {"id": 10, "question": "2+2?", "answers": ["3", "4"], "correct_answer": "4", "day": "2026-03-14"},
    ]))
    qs = load_questions_file(path)
    assert qs[0].id == "10"
    assert qs[0].day == date(2026, 3, 14)


def test_load_questions_file_rejects_bad_answer(tmp_path):
    path = tmp_path / "q.json"
    path.write_text(json.dumps([
        {"id": 1, "question": "2+2?", "answers": ["3", "5"], "correct_answer": "4"},
    ]))
    with pytest.raises(ValueError):
        load_questions_file(path)


def test_sample_questions_are_valid():
    qs = load_questions_file(SAMPLE_QUESTIONS)
    assert len(qs) >= 5
    assert len({q.id for q in qs}) == len(qs)
