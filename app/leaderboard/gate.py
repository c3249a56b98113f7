# app/leaderboard/gate.py
import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Sequence

from models import LeaderboardEntry
from app.errors import SubmissionRejected
from app.leaderboard.names import ProfanityFilter, validate_display_name
from app.storage.sqlite_store import SqliteStore

logger = logging.getLogger(__name__)

TOP_N = 10


def qualifies(
    candidate: float,
    top_n: Sequence[LeaderboardEntry],
    limit: int = TOP_N,
    lower_is_better: bool = True,
) -> bool:
    """
    True if `candidate` would make the board.

    `top_n` is the current board sorted best-first (ascending when lower is
    better). A tie with the last place does not qualify.
    """
    if len(top_n) < limit:
        return True
    last = top_n[limit - 1].metric
    return candidate < last if lower_is_better else candidate > last


class LeaderboardGate:
    def __init__(
        self,
        store: SqliteStore,
        profanity: Optional[ProfanityFilter] = None,
        *,
        limit: int = TOP_N,
        lower_is_better: bool = True,
    ) -> None:
        self.store = store
        self.profanity = profanity or ProfanityFilter()
        self.limit = limit
        self.lower_is_better = lower_is_better

    def top(self, day: Optional[date] = None) -> List[LeaderboardEntry]:
        return self.store.fetch_top(day, limit=self.limit, ascending=self.lower_is_better)

    def has_existing_entry(self, user_id: str, day: Optional[date] = None) -> bool:
        return self.store.fetch_by_identity(user_id, day) is not None

    def qualifies(self, metric: float, day: Optional[date] = None) -> bool:
        return qualifies(metric, self.top(day), self.limit, self.lower_is_better)

    def check(self, user_id: str, metric: float, day: Optional[date] = None) -> None:
        """Raises SubmissionRejected unless `user_id` may post `metric` for this scope."""
        if self.has_existing_entry(user_id, day):
            raise SubmissionRejected("You have already submitted a score.")
        if not self.qualifies(metric, day):
            raise SubmissionRejected("Your result did not make the top %d." % self.limit)

    def submit(self, user_id: str, display_name: str, metric: float, day: Optional[date] = None) -> LeaderboardEntry:
        """Validate the name and upsert one row per (user_id, scope)."""
        username = validate_display_name(display_name, self.profanity)
        entry = LeaderboardEntry(
            user_id=user_id,
            username=username,
            metric=float(metric),
            day=day,
            updated_at=datetime.now(timezone.utc),
        )
        self.store.upsert_entry(entry)
        logger.info("leaderboard entry saved user=%s scope=%s metric=%.2f", user_id, day or "all", entry.metric)
        return entry
