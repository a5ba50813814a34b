"""Domain error taxonomy.

Every failure the core can report is a ``DomainError`` subclass carrying a
stable ``code``.  The HTTP layer maps classes to status codes in one place
(academy/api/errors.py); callers that only care about the kind can match on
``code``.

Idempotency guards (DuplicateSubmission, AlreadySubmitted, AlreadyIssued)
mean "already done", not "try again".
"""

from __future__ import annotations


class DomainError(Exception):
    """Base for all enrollment-core errors."""

    code = "domain_error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidState(DomainError):
    code = "invalid_state"


class InvalidTransition(InvalidState):
    """A state-machine edge that the transition table does not allow."""

    code = "invalid_transition"

    def __init__(self, operation: str, from_status: str) -> None:
        self.operation = operation
        self.from_status = from_status
        super().__init__(f"cannot {operation} an enrollment in status {from_status}")


class NotAccessible(DomainError):
    code = "not_accessible"


class NotAuthorized(DomainError):
    code = "not_authorized"


class NotFound(DomainError):
    code = "not_found"


class AlreadyEnrolled(DomainError):
    code = "already_enrolled"


class DuplicateSubmission(DomainError):
    code = "duplicate_submission"


class AlreadySubmitted(DomainError):
    code = "already_submitted"


class AlreadyIssued(DomainError):
    code = "already_issued"


class QuizMisconfigured(DomainError):
    code = "quiz_misconfigured"


class InvalidArgument(DomainError):
    code = "invalid_argument"
