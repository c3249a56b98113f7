# app/storage/seed.py
import json
import logging
from pathlib import Path
from typing import List

from pydantic import ValidationError

from models import Question

logger = logging.getLogger(__name__)

SAMPLE_QUESTIONS = Path(__file__).resolve().parents[2] / "data" / "questions.json"


def load_questions_file(path) -> List[Question]:
    """
    Read a JSON array of question objects:
    {"id", "question", "answers", "correct_answer", "day"?}
    Raises ValueError on malformed files.
    """
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError(f"{path}: expected a JSON array of questions")

    out: List[Question] = []
    for i, item in enumerate(raw):
        try:
            out.append(Question.model_validate(item))
        except ValidationError as e:
            raise ValueError(f"{path}: question #{i} is invalid: {e}") from e
    logger.info("loaded %d questions from %s", len(out), path)
    return out
