# app/quiz/selection.py
import random
from typing import Optional, Sequence, List


def pick_next(
    ids: Sequence[str],
    selection: str,
    rng: random.Random,
    avoid: Optional[str] = None,
) -> Optional[str]:
    """
    Choose the next question id from the active subset.

    - sequential: first id in order
    - random: uniform pick
    `avoid` is skipped whenever another id is available.
    """
    if not ids:
        return None
    candidates = [i for i in ids if i != avoid] or list(ids)

    if selection == "sequential":
        return candidates[0]
    if selection == "random":
        return rng.choice(candidates)
    raise ValueError(f"unknown selection policy: {selection}")


def shuffled(ids: Sequence[str], rng: random.Random, avoid: Optional[str] = None) -> List[str]:
    out = list(ids)
    rng.shuffle(out)
    # keep the avoided id off the front when there is a choice
    if avoid is not None and len(out) > 1 and out[0] == avoid:
        j = rng.randrange(1, len(out))
        out[0], out[j] = out[j], out[0]
    return out
