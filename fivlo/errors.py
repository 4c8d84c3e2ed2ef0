"""Domain errors for FIVLO.

Validation errors subclass ValueError so they can be surfaced as a 400 with the
offending field. Everything else is mapped to an HTTP status by the API layer.
"""

from typing import Optional


class FivloError(Exception):
    """Base class for FIVLO domain errors."""


class InvalidRecurrenceError(FivloError, ValueError):
    """Malformed recurrence rule (missing end date, empty weekday set, ...)."""

    def __init__(self, message: str, *, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class RecurrenceRangeExceededError(FivloError, ValueError):
    """Recurrence would expand past the allowed span."""

    def __init__(self, message: str, *, max_days: int):
        super().__init__(message)
        self.max_days = max_days


class UserNotFoundError(FivloError):
    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class NotFoundError(FivloError):
    """A task, template, category or session does not exist for this user."""


class LedgerWriteConflictError(FivloError):
    """The atomic ledger append + balance update could not be completed."""


class InsufficientCoinsError(FivloError):
    def __init__(self, balance: int, required: int):
        super().__init__(f"Insufficient coins: balance {balance}, required {required}")
        self.balance = balance
        self.required = required


class InsufficientDataError(FivloError):
    """No sessions to derive a result from (e.g. D-Day progress for an unknown goal)."""


class SessionStateError(FivloError):
    """Pomodoro session is not in a state that allows the requested transition."""


class TemplateLockedError(FivloError):
    """Recurrence fields of an expanded template changed without requesting regeneration."""


class PremiumRequiredError(FivloError):
    """Feature is only available to premium users."""


class DuplicateCategoryError(FivloError, ValueError):
    """An active category with the same name already exists."""
