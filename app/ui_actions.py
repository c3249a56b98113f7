# app/ui_actions.py
from typing import List, Optional, Sequence

import pandas as pd

from models import LeaderboardEntry, Question
from app.config import QuizSettings
from app.controller import QuizController
from app.quiz.session_machine import progress
from app.storage.seed import load_questions_file
from app.storage.sqlite_store import SqliteStore


# -----------------------
# Bootstrapping
# -----------------------
def action_new_controller(settings: QuizSettings) -> QuizController:
    return QuizController(settings)


def action_import_questions(store: SqliteStore, path) -> int:
    questions: List[Question] = load_questions_file(path)
    return store.save_questions(questions)


def bootstrap_if_empty(store: SqliteStore, path) -> int:
    """Seed the store from `path` when it holds no questions yet."""
    if store.fetch_questions():
        return 0
    return action_import_questions(store, path)


# -----------------------
# Quiz actions
# -----------------------
def action_load_quiz(ctrl: QuizController):
    return ctrl.load()


def action_answer(ctrl: QuizController, answer: str) -> dict:
    return ctrl.answer(answer)


def action_restart(ctrl: QuizController):
    return ctrl.restart()


def action_progress(ctrl: QuizController) -> dict:
    state = ctrl.state
    if state is None:
        return {"mastered": 0, "total": 0, "fraction": 0.0, "streak": 0, "streak_fraction": 0.0}
    return {
        "mastered": len(state.mastered),
        "total": state.total,
        "fraction": progress(state),
        "streak": state.streak,
        "streak_fraction": streak_fraction(state.streak, ctrl.settings.streak_target),
        "retry_left": len(state.retry),
    }


def streak_fraction(streak: int, target: int = 10) -> float:
    """Fill of the streak bar: streak / target, capped at 1."""
    if target <= 0:
        return 1.0
    return min(max(streak, 0) / target, 1.0)


# -----------------------
# Leaderboard
# -----------------------
def action_leaderboard(ctrl: QuizController) -> List[LeaderboardEntry]:
    return ctrl.leaderboard()


def action_eligibility(ctrl: QuizController) -> dict:
    return ctrl.eligibility()


def action_submit_score(ctrl: QuizController, name: str) -> LeaderboardEntry:
    return ctrl.submit_score(name)


def leaderboard_frame(entries: Sequence[LeaderboardEntry], metric_label: str = "Time (s)") -> pd.DataFrame:
    rows = [
        {"Rank": i, "Name": e.username, metric_label: round(e.metric, 2)}
        for i, e in enumerate(entries, start=1)
    ]
    return pd.DataFrame(rows, columns=["Rank", "Name", metric_label])


def metric_label(settings: Optional[QuizSettings]) -> str:
    if settings is None or settings.lower_is_better:
        return "Time (s)"
    return "Best streak"
