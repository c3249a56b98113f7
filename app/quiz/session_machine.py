# app/quiz/session_machine.py
"""Quiz session state machine.

Two sequencing policies share one transition function:

- linear: walk a fixed (or shuffled) sequence; any wrong answer restarts
  the whole sequence and the clock.
- streak_with_retry: every question must be answered correctly once. A
  wrong answer sends the player back through every question already
  mastered (the retry queue) before normal progress resumes.

States are frozen `SessionState` values; every operation returns a new one.
"""

import logging
import random
from datetime import datetime, timedelta, timezone, date
from typing import Callable, Optional, Sequence

from models import Question, SessionState, CompletionRecord
from app.errors import EmptyPool, NoActiveQuestion, InvalidAnswer, SessionNotComplete
from app.quiz.selection import pick_next, shuffled

logger = logging.getLogger(__name__)

MODES = ("linear", "streak_with_retry")
SELECTIONS = ("sequential", "random")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionMachine:
    def __init__(
        self,
        mode: str = "streak_with_retry",
        selection: str = "random",
        *,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        strict_answers: bool = True,
    ) -> None:
        if mode not in MODES:
            raise ValueError(f"mode must be one of {MODES}")
        if selection not in SELECTIONS:
            raise ValueError(f"selection must be one of {SELECTIONS}")
        self.mode = mode
        self.selection = selection
        self.rng = rng or random.Random()
        self.clock = clock or _utc_now
        self.strict_answers = strict_answers

    # -----------------------
    # Lifecycle
    # -----------------------
    def new_session(self, questions: Sequence[Question], day: Optional[date] = None) -> SessionState:
        """Build a not-started session over `questions`. Raises EmptyPool."""
        pool = tuple(questions)
        if not pool:
            raise EmptyPool("No questions available.")
        ids = [q.id for q in pool]
        if len(set(ids)) != len(ids):
            raise ValueError("question ids must be unique within a session")
        return SessionState(
            mode=self.mode,
            selection=self.selection,
            questions=pool,
            remaining=tuple(ids),
            day=day,
        )

    def begin(self, state: SessionState) -> SessionState:
        if state.status != "not_started":
            raise ValueError(f"cannot begin a session that is {state.status}")

        ids = [q.id for q in state.questions]
        if state.mode == "linear":
            order = shuffled(ids, self.rng) if state.selection == "random" else ids
            remaining = tuple(order)
            current = remaining[0]
        else:
            remaining = tuple(ids)
            current = pick_next(remaining, state.selection, self.rng)

        now = self.clock()
        logger.info("session started mode=%s pool=%d", state.mode, len(ids))
        return state.model_copy(update={
            "remaining": remaining,
            "mastered": (),
            "retry": (),
            "current_id": current,
            "start_time": now,
            "end_time": None,
            "is_retry_mode": False,
        })

    def start(self, questions: Sequence[Question], day: Optional[date] = None) -> SessionState:
        return self.begin(self.new_session(questions, day=day))

    def restart(self, state: SessionState) -> SessionState:
        """Back to not_started over the same pool, keeping the state's policies."""
        logger.info("session restarted")
        return SessionState(
            mode=state.mode,
            selection=state.selection,
            questions=state.questions,
            remaining=tuple(q.id for q in state.questions),
            day=state.day,
        )

    def resume_completed(self, questions: Sequence[Question], record: CompletionRecord) -> SessionState:
        """
        Synthesize an already-complete session from a completion-day cookie
        so a finished daily quiz is not replayed.
        """
        end = self.clock()
        pool = tuple(questions)
        return SessionState(
            mode=self.mode,
            selection=self.selection,
            questions=pool,
            remaining=(),
            mastered=tuple(q.id for q in pool),
            current_id=None,
            start_time=end - record.elapsed,
            end_time=end,
            day=record.day,
        )

    # -----------------------
    # Transition
    # -----------------------
    def submit_answer(self, state: SessionState, answer: str) -> SessionState:
        current = state.current
        if current is None:
            raise NoActiveQuestion(f"No active question (session is {state.status}).")
        if answer not in current.answers:
            if self.strict_answers:
                raise InvalidAnswer(f"{answer!r} is not a choice for question {current.id}")
            logger.debug("unknown answer %r treated as incorrect", answer)

        if answer == current.correct_answer:
            new_state = self._on_correct(state, current)
        else:
            new_state = self._on_wrong(state, current, answer)

        logger.debug(
            "answer q=%s correct=%s -> current=%s retry=%s streak=%d",
            current.id, answer == current.correct_answer,
            new_state.current_id, new_state.is_retry_mode, new_state.streak,
        )
        return new_state

    def _on_correct(self, state: SessionState, current: Question) -> SessionState:
        streak = state.streak + 1
        base = {
            "streak": streak,
            "best_streak": max(state.best_streak, streak),
            "attempts": state.attempts + 1,
            "last_wrong_answer": None,
        }

        if state.mode == "linear":
            mastered = state.mastered + (current.id,)
            remaining = state.remaining[1:]
            if not remaining:
                return self._complete(state, base, remaining=(), mastered=mastered)
            return state.model_copy(update={
                **base,
                "mastered": mastered,
                "remaining": remaining,
                "current_id": remaining[0],
            })

        if not state.is_retry_mode:
            mastered = state.mastered + (current.id,)
            remaining = tuple(i for i in state.remaining if i != current.id)
            if not remaining:
                return self._complete(state, base, remaining=(), mastered=mastered)
            return state.model_copy(update={
                **base,
                "mastered": mastered,
                "remaining": remaining,
                "current_id": pick_next(remaining, state.selection, self.rng, avoid=current.id),
            })

        # retry mode: clear this one from the queue
        retry = tuple(i for i in state.retry if i != current.id)
        if retry:
            return state.model_copy(update={
                **base,
                "retry": retry,
                "current_id": pick_next(retry, state.selection, self.rng, avoid=current.id),
            })

        logger.debug("retry queue cleared, resuming normal progress")
        if not state.remaining:
            return self._complete(state, {**base, "retry": (), "is_retry_mode": False})
        return state.model_copy(update={
            **base,
            "retry": (),
            "is_retry_mode": False,
            "current_id": pick_next(state.remaining, state.selection, self.rng, avoid=current.id),
        })

    def _on_wrong(self, state: SessionState, current: Question, answer: str) -> SessionState:
        base = {
            "streak": 0,
            "attempts": state.attempts + 1,
            "mistakes": state.mistakes + 1,
            "last_wrong_answer": answer,
        }

        if state.mode == "linear":
            ids = [q.id for q in state.questions]
            order = shuffled(ids, self.rng, avoid=current.id) if state.selection == "random" else ids
            logger.info("wrong answer in linear mode, sequence reset")
            return state.model_copy(update={
                **base,
                "remaining": tuple(order),
                "mastered": (),
                "current_id": order[0],
                "start_time": self.clock(),
                "end_time": None,
                "restarts": state.restarts + 1,
            })

        if not state.is_retry_mode and state.mastered:
            retry = tuple(state.mastered)
            logger.info("entering retry mode with %d questions", len(retry))
            return state.model_copy(update={
                **base,
                "retry": retry,
                "is_retry_mode": True,
                "current_id": pick_next(retry, state.selection, self.rng, avoid=current.id),
            })

        # same question again
        return state.model_copy(update=base)

    def _complete(self, state: SessionState, base: dict, **updates) -> SessionState:
        done = state.model_copy(update={
            **base,
            **updates,
            "current_id": None,
            "end_time": self.clock(),
        })
        logger.info("session complete in %.2fs", elapsed(done).total_seconds())
        return done


# -----------------------
# Queries
# -----------------------
def is_complete(state: SessionState) -> bool:
    return (
        state.end_time is not None
        and state.current_id is None
        and not state.remaining
        and not state.retry
    )


def elapsed(state: SessionState) -> timedelta:
    if state.start_time is None or state.end_time is None:
        raise SessionNotComplete("Session has not finished yet.")
    return state.end_time - state.start_time


def elapsed_seconds(state: SessionState) -> float:
    return round(elapsed(state).total_seconds(), 2)


def progress(state: SessionState) -> float:
    """Fraction of the pool answered correctly in the current pass."""
    if not state.questions:
        return 0.0
    return len(state.mastered) / len(state.questions)
