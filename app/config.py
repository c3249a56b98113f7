"""
Quiz settings.
Reads TRIVIA_* environment variables; everything has a default.
"""

import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field

from app.storage.sqlite_store import DEFAULT_DB_PATH

DEFAULT_COOKIE_PATH = os.path.join(os.path.expanduser("~"), ".trivia", "cookies.json")

_TRUTHY = {"1", "true", "yes", "on"}


class QuizSettings(BaseModel):
    db_path: str = DEFAULT_DB_PATH
    cookie_path: str = DEFAULT_COOKIE_PATH
    mode: Literal["linear", "streak_with_retry"] = "streak_with_retry"
    selection: Literal["sequential", "random"] = "random"
    daily: bool = False
    leaderboard_size: int = Field(default=10, ge=1)
    lower_is_better: bool = True
    strict_answers: bool = True
    streak_target: int = Field(default=10, ge=1)
    log_level: str = "INFO"


def _flag(value: str) -> bool:
    return value.strip().lower() in _TRUTHY


def load_settings(env: Optional[Mapping[str, str]] = None) -> QuizSettings:
    """
    Environment variables:
        TRIVIA_DB_PATH           - SQLite file (default app/storage/trivia.db)
        TRIVIA_COOKIE_PATH       - client-side cookie file
        TRIVIA_MODE              - linear | streak_with_retry
        TRIVIA_SELECTION         - sequential | random
        TRIVIA_DAILY             - scope questions and leaderboard to today
        TRIVIA_LEADERBOARD_SIZE  - top N shown and used for qualification
        TRIVIA_LOWER_IS_BETTER   - true for elapsed time, false for scores
        TRIVIA_STRICT_ANSWERS    - reject answers not among the choices
        TRIVIA_STREAK_TARGET     - streak that fills the progress bar
        TRIVIA_LOG_LEVEL         - logging level name
    """
    env = os.environ if env is None else env
    values = {}

    for field, var in [
        ("db_path", "TRIVIA_DB_PATH"),
        ("cookie_path", "TRIVIA_COOKIE_PATH"),
        ("mode", "TRIVIA_MODE"),
        ("selection", "TRIVIA_SELECTION"),
        ("leaderboard_size", "TRIVIA_LEADERBOARD_SIZE"),
        ("streak_target", "TRIVIA_STREAK_TARGET"),
    ]:
        raw = env.get(var, "").strip()
        if raw:
            values[field] = raw

    for field, var in [
        ("daily", "TRIVIA_DAILY"),
        ("lower_is_better", "TRIVIA_LOWER_IS_BETTER"),
        ("strict_answers", "TRIVIA_STRICT_ANSWERS"),
    ]:
        raw = env.get(var, "").strip()
        if raw:
            values[field] = _flag(raw)

    level = env.get("TRIVIA_LOG_LEVEL", "").strip()
    if level:
        values["log_level"] = level.upper()

    return QuizSettings(**values)
