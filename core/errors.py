"""
AuraLock Errors

Exception types raised at the orchestration and persistence seams.
Collectors and the score engine never raise: guard cases resolve to
defined numeric defaults instead.
"""


class AuraLockError(Exception):
    """Base class for AuraLock errors."""
    pass


class SessionNotFoundError(AuraLockError):
    """Raised when no monitoring session exists for a user."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"No monitoring session for user '{user_id}'")
        self.user_id = user_id


class PersistenceError(AuraLockError):
    """Raised when the document store rejects a read or write."""
    pass
