from datetime import date, datetime, timedelta
from typing import Optional, Literal, List, Tuple
from pydantic import BaseModel, ConfigDict, field_validator, model_validator


Mode = Literal["linear", "streak_with_retry"]
Selection = Literal["sequential", "random"]
Status = Literal["not_started", "in_progress", "complete"]


class Question(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    question: str
    answers: List[str]
    correct_answer: str
    day: Optional[date] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v):
        # store rows and seed files often carry integer ids
        if isinstance(v, int):
            return str(v)
        return v

    @model_validator(mode="after")
    def _check_answers(self):
        if len(self.answers) < 2:
            raise ValueError("a question needs at least two answers")
        if len(set(self.answers)) != len(self.answers):
            raise ValueError(f"duplicate answers in question {self.id}")
        if self.correct_answer not in self.answers:
            raise ValueError(f"correct_answer is not one of the answers in question {self.id}")
        return self


class SessionState(BaseModel):
    """
    One quiz run. Frozen: transitions return a new value.

    remaining / mastered / retry hold question ids. In linear mode
    `remaining` is the sequence still to answer, in order, and
    len(mastered) is the sequence index.
    """
    model_config = ConfigDict(frozen=True)

    mode: Mode = "streak_with_retry"
    selection: Selection = "random"
    questions: Tuple[Question, ...]
    remaining: Tuple[str, ...] = ()
    mastered: Tuple[str, ...] = ()
    retry: Tuple[str, ...] = ()
    current_id: Optional[str] = None
    streak: int = 0
    best_streak: int = 0
    attempts: int = 0
    mistakes: int = 0
    restarts: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    is_retry_mode: bool = False
    day: Optional[date] = None
    last_wrong_answer: Optional[str] = None

    @property
    def current(self) -> Optional[Question]:
        if self.current_id is None:
            return None
        for q in self.questions:
            if q.id == self.current_id:
                return q
        return None

    @property
    def status(self) -> Status:
        if self.end_time is not None and self.current_id is None:
            return "complete"
        if self.start_time is None:
            return "not_started"
        return "in_progress"

    @property
    def index(self) -> int:
        return len(self.mastered)

    @property
    def total(self) -> int:
        return len(self.questions)


class LeaderboardEntry(BaseModel):
    user_id: str
    username: str
    metric: float
    day: Optional[date] = None
    updated_at: Optional[datetime] = None


class CompletionRecord(BaseModel):
    day: date
    elapsed_seconds: float

    def encode(self) -> str:
        return f"{self.day.isoformat()}|{self.elapsed_seconds}"

    @classmethod
    def decode(cls, raw: str) -> "CompletionRecord":
        day_s, _, secs = (raw or "").partition("|")
        if not day_s or not secs:
            raise ValueError(f"malformed completion record: {raw!r}")
        return cls(day=date.fromisoformat(day_s), elapsed_seconds=float(secs))

    @property
    def elapsed(self) -> timedelta:
        return timedelta(seconds=self.elapsed_seconds)
