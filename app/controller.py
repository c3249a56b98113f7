# app/controller.py
import logging
import threading
from datetime import date, datetime, timezone
from typing import Callable, List, Optional

from models import CompletionRecord, LeaderboardEntry, SessionState
from app.config import QuizSettings
from app.errors import AnswerInProgress, EmptyPool, NoActiveQuestion, SessionNotComplete
from app.identity import CookieJar, get_or_create_identity, recall_completion, remember_completion
from app.leaderboard.gate import LeaderboardGate
from app.quiz.session_machine import SessionMachine, elapsed_seconds, is_complete
from app.storage.sqlite_store import SqliteStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class QuizController:
    """
    One player, one session. Wires the question store, the session machine,
    the leaderboard gate and the client-side cookie jar.
    """

    def __init__(
        self,
        settings: QuizSettings,
        *,
        store: Optional[SqliteStore] = None,
        jar: Optional[CookieJar] = None,
        machine: Optional[SessionMachine] = None,
        gate: Optional[LeaderboardGate] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings
        self.clock = clock or _utc_now
        self.store = store or SqliteStore(settings.db_path)
        self.jar = jar or CookieJar(settings.cookie_path, clock=self.clock)
        self.machine = machine or SessionMachine(
            settings.mode,
            settings.selection,
            clock=self.clock,
            strict_answers=settings.strict_answers,
        )
        self.gate = gate or LeaderboardGate(
            self.store,
            limit=settings.leaderboard_size,
            lower_is_better=settings.lower_is_better,
        )
        self.user_id = get_or_create_identity(self.jar)
        self.state: Optional[SessionState] = None
        self._answer_lock = threading.Lock()

    @property
    def day(self) -> Optional[date]:
        """Leaderboard / question scope: today in daily mode, else global."""
        return self.clock().date() if self.settings.daily else None

    def _scope(self) -> Optional[date]:
        # a loaded session keeps the day it started on
        return self.state.day if self.state is not None else self.day

    # -----------------------
    # Session
    # -----------------------
    def load(self) -> SessionState:
        """Fetch the pool and start. Raises FetchError / EmptyPool."""
        day = self.day
        questions = self.store.fetch_questions(day)
        if not questions:
            raise EmptyPool(f"No questions available for {day.isoformat()}." if day else "No questions available.")

        if day is not None:
            record = recall_completion(self.jar, day)
            if record is not None:
                logger.info("daily quiz already completed in %.2fs, skipping replay", record.elapsed_seconds)
                self.state = self.machine.resume_completed(questions, record)
                return self.state

        self.state = self.machine.start(questions, day=day)
        return self.state

    def restart(self) -> SessionState:
        if self.state is None:
            return self.load()
        self.state = self.machine.begin(self.machine.restart(self.state))
        return self.state

    def answer(self, text: str) -> dict:
        if not self._answer_lock.acquire(blocking=False):
            raise AnswerInProgress("Still processing the previous answer.")
        try:
            if self.state is None:
                raise NoActiveQuestion("Quiz not loaded.")
            before = self.state
            question = before.current
            self.state = self.machine.submit_answer(before, text)
        finally:
            self._answer_lock.release()

        state = self.state
        correct = text == question.correct_answer
        out = {
            "status": state.status,
            "correct": correct,
            "streak": state.streak,
            "retry_mode": state.is_retry_mode,
            "question_id": question.id,
        }

        if is_complete(state):
            secs = elapsed_seconds(state)
            out["elapsed_seconds"] = secs
            out["message"] = f"Finished in {secs:.2f}s!"
            if state.day is not None:
                remember_completion(self.jar, CompletionRecord(day=state.day, elapsed_seconds=secs))
            return out

        if correct:
            out["message"] = "Correct!"
        elif state.mode == "linear":
            out["message"] = "Wrong answer. Starting over."
        elif state.is_retry_mode and not before.is_retry_mode:
            out["message"] = f"Wrong answer. Re-answer the {len(state.retry)} question(s) you already got right."
        else:
            out["message"] = "Wrong answer. Try again."
        return out

    # -----------------------
    # Leaderboard
    # -----------------------
    def metric(self) -> float:
        """Elapsed seconds when lower is better, best streak otherwise."""
        if self.state is None or not is_complete(self.state):
            raise SessionNotComplete("Finish the quiz first.")
        if self.settings.lower_is_better:
            return elapsed_seconds(self.state)
        return float(self.state.best_streak)

    def leaderboard(self) -> List[LeaderboardEntry]:
        return self.gate.top(self._scope())

    def eligibility(self) -> dict:
        if self.state is None or not is_complete(self.state):
            return {"complete": False, "can_submit": False, "reason": "Finish the quiz first."}

        metric = self.metric()
        day = self._scope()
        already = self.gate.has_existing_entry(self.user_id, day)
        ok = self.gate.qualifies(metric, day)
        if already:
            reason = "You have already submitted a score."
        elif not ok:
            reason = f"Your result did not make the top {self.gate.limit}."
        else:
            reason = ""
        return {
            "complete": True,
            "metric": metric,
            "already_submitted": already,
            "qualifies": ok,
            "can_submit": ok and not already,
            "reason": reason,
        }

    def submit_score(self, name: str) -> LeaderboardEntry:
        """Raises SessionNotComplete, SubmissionRejected, InvalidName or StoreError."""
        metric = self.metric()
        day = self._scope()
        self.gate.check(self.user_id, metric, day)
        return self.gate.submit(self.user_id, name, metric, day)
