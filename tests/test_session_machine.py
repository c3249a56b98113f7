"""Tests for the quiz session state machine (linear and streak_with_retry)."""

import random
from datetime import timedelta

import pytest

from models import CompletionRecord
from app.errors import EmptyPool, InvalidAnswer, NoActiveQuestion, SessionNotComplete
from app.quiz.session_machine import (
    SessionMachine,
    elapsed,
    elapsed_seconds,
    is_complete,
    progress,
)

RIGHT = "A"
WRONG = "B"


def _machine(mode, selection, clock, rng=None, **kw):
    return SessionMachine(mode, selection, rng=rng or random.Random(7), clock=clock, **kw)


def _assert_partition(state):
    remaining, mastered, retry = set(state.remaining), set(state.mastered), set(state.retry)
    assert not (remaining & mastered)
    if state.is_retry_mode:
        assert retry <= mastered
    else:
        assert not retry


class TestStart:
    def test_empty_pool_fails(self, clock):
        m = _machine("streak_with_retry", "random", clock)
        with pytest.raises(EmptyPool):
            m.start([])

    def test_start_sets_clock_and_current(self, clock, questions):
        m = _machine("streak_with_retry", "random", clock)
        s = m.start(questions)
        assert s.status == "in_progress"
        assert s.start_time == clock.now
        assert s.end_time is None
        assert s.current_id in {q.id for q in questions}
        assert set(s.remaining) == {q.id for q in questions}
        assert s.mastered == ()

    def test_sequential_starts_with_first_question(self, clock, questions):
        s = _machine("streak_with_retry", "sequential", clock).start(questions)
        assert s.current_id == "1"

    def test_duplicate_ids_rejected(self, clock, question_factory):
        m = _machine("streak_with_retry", "random", clock)
        with pytest.raises(ValueError):
            m.start([question_factory(1), question_factory(1)])

    def test_unknown_mode_rejected(self, clock):
        with pytest.raises(ValueError):
            SessionMachine("endless", "random", clock=clock)


class TestStreakWithRetry:
    def test_scenario_retry_then_resume(self, clock, question_factory):
        pool = [question_factory(i) for i in (1, 2, 3)]
        m = _machine("streak_with_retry", "sequential", clock)
        s = m.start(pool)

        s = m.submit_answer(s, RIGHT)  # Q1
        s = m.submit_answer(s, RIGHT)  # Q2
        assert s.current_id == "3"
        assert s.streak == 2

        s = m.submit_answer(s, WRONG)  # Q3 wrong
        assert s.is_retry_mode
        assert set(s.retry) == {"1", "2"}
        assert s.streak == 0
        assert s.current_id in {"1", "2"}

        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, RIGHT)
        assert not s.is_retry_mode
        assert s.retry == ()
        assert s.remaining == ("3",)
        assert s.current_id == "3"

        clock.advance(30)
        s = m.submit_answer(s, RIGHT)
        assert is_complete(s)
        assert s.status == "complete"
        assert s.end_time == clock.now

    def test_scenario_retry_with_random_selection(self, clock, rng, question_factory):
        pool = [question_factory(i) for i in (1, 2, 3)]
        m = _machine("streak_with_retry", "random", clock, rng=rng)
        s = m.start(pool)

        first = s.current_id
        s = m.submit_answer(s, RIGHT)
        second = s.current_id
        s = m.submit_answer(s, RIGHT)
        missed = s.current_id
        s = m.submit_answer(s, WRONG)

        assert set(s.retry) == {first, second}
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, RIGHT)
        assert s.current_id == missed
        s = m.submit_answer(s, RIGHT)
        assert is_complete(s)

    def test_single_question_completes_without_retry(self, clock, question_factory):
        m = _machine("streak_with_retry", "random", clock)
        s = m.start([question_factory(1)])
        s = m.submit_answer(s, RIGHT)
        assert is_complete(s)
        assert not s.is_retry_mode
        assert s.retry == ()

    def test_wrong_with_nothing_mastered_repeats_question(self, clock, questions):
        m = _machine("streak_with_retry", "sequential", clock)
        s = m.start(questions)
        s2 = m.submit_answer(s, WRONG)
        assert s2.current_id == s.current_id
        assert not s2.is_retry_mode
        assert s2.streak == 0
        assert s2.mistakes == 1
        assert s2.last_wrong_answer == WRONG

    def test_wrong_in_retry_mode_repeats_question(self, clock, questions):
        m = _machine("streak_with_retry", "sequential", clock)
        s = m.start(questions)
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, WRONG)
        assert s.is_retry_mode
        s = m.submit_answer(s, RIGHT)
        assert s.streak == 1

        before = s
        s = m.submit_answer(s, WRONG)
        assert s.streak == 0
        assert s.current_id == before.current_id
        assert s.retry == before.retry
        assert s.is_retry_mode

    def test_correct_retry_answers_count_toward_streak(self, clock, questions):
        m = _machine("streak_with_retry", "sequential", clock)
        s = m.start(questions)
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, WRONG)
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, RIGHT)
        assert s.streak == 2
        assert s.best_streak == 3

    def test_terminates_within_pool_size(self, clock, rng, questions):
        m = _machine("streak_with_retry", "random", clock, rng=rng)
        s = m.start(questions)
        for _ in range(len(questions)):
            s = m.submit_answer(s, RIGHT)
        assert is_complete(s)
        assert progress(s) == 1.0

    def test_partition_invariant_random_walk(self, clock, questions):
        walk = random.Random(99)
        m = _machine("streak_with_retry", "random", clock, rng=random.Random(3))
        s = m.start(questions)
        for _ in range(500):
            _assert_partition(s)
            if is_complete(s):
                break
            s = m.submit_answer(s, RIGHT if walk.random() < 0.7 else WRONG)
        assert is_complete(s)
        _assert_partition(s)

    def test_next_pick_is_never_the_question_just_answered(self, clock, questions):
        m = _machine("streak_with_retry", "random", clock, rng=random.Random(5))
        s = m.start(questions)
        while not is_complete(s):
            answered = s.current_id
            s = m.submit_answer(s, RIGHT)
            if s.current_id is not None:
                assert s.current_id != answered


class TestLinear:
    def test_wrong_answer_resets_sequence(self, clock, questions):
        m = _machine("linear", "sequential", clock)
        s = m.start(questions)
        started = s.start_time
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, RIGHT)
        assert s.index == 2
        assert s.current_id == "3"

        clock.advance(12)
        s = m.submit_answer(s, WRONG)
        assert s.index == 0
        assert s.start_time == clock.now
        assert s.start_time != started
        assert s.end_time is None
        assert s.restarts == 1
        assert s.streak == 0
        assert s.remaining == tuple(q.id for q in questions)

    def test_random_reset_reshuffles_full_pool(self, clock, rng, questions):
        m = _machine("linear", "random", clock, rng=rng)
        s = m.start(questions)
        s = m.submit_answer(s, RIGHT)
        failed = s.current_id
        s = m.submit_answer(s, WRONG)
        assert sorted(s.remaining) == sorted(q.id for q in questions)
        assert s.mastered == ()
        assert s.current_id == s.remaining[0]
        assert s.current_id != failed

    def test_index_monotonic_except_on_reset(self, clock, questions):
        walk = random.Random(11)
        m = _machine("linear", "random", clock, rng=random.Random(2))
        s = m.start(questions)
        for _ in range(300):
            if is_complete(s):
                break
            before = s.index
            wrong = walk.random() < 0.15
            s = m.submit_answer(s, WRONG if wrong else RIGHT)
            if wrong:
                assert s.index == 0
            else:
                assert s.index == before + 1
            assert sorted(s.remaining + s.mastered) == sorted(q.id for q in questions)

    def test_terminates_within_sequence_length(self, clock, questions):
        m = _machine("linear", "sequential", clock)
        s = m.start(questions)
        for _ in range(len(questions)):
            s = m.submit_answer(s, RIGHT)
        assert is_complete(s)
        assert [q.id for q in questions] == list(s.mastered)

    def test_no_retry_mode_in_linear(self, clock, questions):
        m = _machine("linear", "sequential", clock)
        s = m.start(questions)
        s = m.submit_answer(s, RIGHT)
        s = m.submit_answer(s, WRONG)
        assert not s.is_retry_mode
        assert s.retry == ()


class TestErrorsAndQueries:
    def test_answer_after_completion_fails(self, clock, question_factory):
        m = _machine("streak_with_retry", "random", clock)
        s = m.submit_answer(m.start([question_factory(1)]), RIGHT)
        with pytest.raises(NoActiveQuestion):
            m.submit_answer(s, RIGHT)

    def test_answer_before_start_fails(self, clock, questions):
        m = _machine("streak_with_retry", "random", clock)
        with pytest.raises(NoActiveQuestion):
            m.submit_answer(m.new_session(questions), RIGHT)

    def test_unknown_answer_is_rejected_by_default(self, clock, questions):
        m = _machine("streak_with_retry", "random", clock)
        s = m.start(questions)
        with pytest.raises(InvalidAnswer):
            m.submit_answer(s, "Z")

    def test_unknown_answer_counts_as_wrong_when_lenient(self, clock, questions):
        m = _machine("streak_with_retry", "sequential", clock, strict_answers=False)
        s = m.submit_answer(m.start(questions), RIGHT)
        s = m.submit_answer(s, "Z")
        assert s.streak == 0
        assert s.is_retry_mode

    def test_transitions_do_not_touch_previous_state(self, clock, questions):
        m = _machine("streak_with_retry", "sequential", clock)
        s = m.start(questions)
        s2 = m.submit_answer(s, RIGHT)
        assert s.current_id == "1"
        assert s.mastered == ()
        assert s2.mastered == ("1",)

    def test_elapsed_requires_completion(self, clock, questions):
        m = _machine("streak_with_retry", "random", clock)
        s = m.start(questions)
        with pytest.raises(SessionNotComplete):
            elapsed(s)

    def test_elapsed_after_completion(self, clock, question_factory):
        m = _machine("streak_with_retry", "random", clock)
        s = m.start([question_factory(1), question_factory(2)])
        clock.advance(20.5)
        s = m.submit_answer(s, RIGHT)
        clock.advance(21.5)
        s = m.submit_answer(s, RIGHT)
        assert elapsed(s) == timedelta(seconds=42)
        assert elapsed_seconds(s) == 42.0

    def test_restart_returns_to_not_started(self, clock, question_factory):
        m = _machine("streak_with_retry", "random", clock)
        pool = [question_factory(1)]
        done = m.submit_answer(m.start(pool), RIGHT)
        fresh = m.restart(done)
        assert fresh.status == "not_started"
        assert fresh.current is None
        assert fresh.remaining == ("1",)
        assert m.begin(fresh).status == "in_progress"

    def test_resume_completed_from_cookie(self, clock, questions):
        m = _machine("streak_with_retry", "random", clock)
        record = CompletionRecord(day=clock.now.date(), elapsed_seconds=37.25)
        s = m.resume_completed(questions, record)
        assert is_complete(s)
        assert elapsed_seconds(s) == 37.25
        assert s.day == record.day
        with pytest.raises(NoActiveQuestion):
            m.submit_answer(s, RIGHT)
