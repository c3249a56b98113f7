# app/leaderboard/names.py
from typing import Iterable, Optional

from better_profanity import Profanity

from app.errors import InvalidName

MAX_NAME_LENGTH = 24


class ProfanityFilter:
    """better-profanity behind a check / clean surface. Default word list unless one is loaded."""

    def __init__(self, words: Optional[Iterable[str]] = None) -> None:
        self._profanity = Profanity()
        if words is not None:
            self.load_dictionary(words)

    def load_dictionary(self, words: Optional[Iterable[str]] = None) -> None:
        """Replace the word list; None restores the library default."""
        self._profanity.load_censor_words(None if words is None else [w.strip() for w in words if w.strip()])

    def check(self, text: str) -> bool:
        return self._profanity.contains_profanity(text or "")

    def clean(self, text: str, replacement: str = "*") -> str:
        return self._profanity.censor(text or "", censor_char=replacement)


def validate_display_name(name: str, profanity: ProfanityFilter) -> str:
    """Trimmed, cleaned display name. Raises InvalidName."""
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidName("Please enter a name.")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise InvalidName(f"Name must be at most {MAX_NAME_LENGTH} characters.")
    if profanity.check(cleaned):
        raise InvalidName("Invalid name. Please choose a different name.")
    return profanity.clean(cleaned)
