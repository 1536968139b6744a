"""Error taxonomy for the submission lifecycle.

InitializationError and CompletionError reach the caller.
PersistenceError is only ever logged: autosave failures are recovered
on the next save cycle and the in-memory answers stay authoritative.
"""

from __future__ import annotations

from uuid import UUID


class SubmissionError(Exception):
    pass


class InitializationError(SubmissionError):
    """The submission could not be found or created on entry."""

    def __init__(self, assessment_id: str, reason: str = "") -> None:
        self.assessment_id = assessment_id
        message = f"could not open submission for assessment {assessment_id!r}"
        super().__init__(f"{message}: {reason}" if reason else message)


class PersistenceError(SubmissionError):
    """An autosave write failed."""

    def __init__(self, submission_id: UUID, reason: str = "") -> None:
        self.submission_id = submission_id
        message = f"autosave failed for submission {submission_id}"
        super().__init__(f"{message}: {reason}" if reason else message)


class CompletionError(SubmissionError):
    """The terminal completion write failed; the submission is still in progress."""

    def __init__(self, submission_id: UUID, reason: str = "") -> None:
        self.submission_id = submission_id
        message = f"could not complete submission {submission_id}"
        super().__init__(f"{message}: {reason}" if reason else message)


class SubmissionNotFoundError(KeyError):
    pass


class DataDriftWarning(UserWarning):
    """A response references a question id the assessment no longer defines."""
