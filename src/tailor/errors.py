from __future__ import annotations


class TailorError(Exception):
    """Base class for errors surfaced to the user by the tailoring workspace."""


class ValidationFailed(TailorError, ValueError):
    """Raised before any mutation when an operation's preconditions are not met."""


class ConfirmationRequired(ValidationFailed):
    """Raised when a destructive operation is invoked without ``confirmed=True``."""


class NotFound(TailorError, LookupError):
    pass


class PersistenceError(TailorError):
    """The key-value store could not complete a read or write."""


class StorageQuotaExceeded(PersistenceError):
    pass
