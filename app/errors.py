# app/errors.py
class QuizError(Exception):
    """Base for every error the quiz core raises."""


class FetchError(QuizError):
    """A read from the question or leaderboard store failed."""


class StoreError(QuizError):
    """A write to the store failed."""


class EmptyPool(QuizError):
    """No questions available for the requested scope."""


class NoActiveQuestion(QuizError):
    """An answer was submitted with no question on screen."""


class InvalidAnswer(QuizError):
    """The submitted answer is not one of the offered choices."""


class InvalidName(QuizError):
    """Display name is empty, too long or rejected by the profanity filter."""


class SubmissionRejected(QuizError):
    """Already submitted for this scope, or the metric does not make the board."""


class SessionNotComplete(QuizError):
    """Elapsed time was requested before the session finished."""


class AnswerInProgress(QuizError):
    """A second answer arrived while the previous one was still being applied."""
