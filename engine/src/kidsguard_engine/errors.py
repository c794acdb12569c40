"""Exception hierarchy for the KidsGuard engine.

User-facing errors (``LockedOut``, ``IncorrectCurrentPin``,
``OverlayPermissionRequired``) always reach the caller. Internal failures
(``PersistenceFailure``, ``PlatformBridgeFailure``) are logged and turned into
``False`` or a default value at component boundaries.
"""


class KidsGuardError(Exception):
    """Base exception for all KidsGuard errors."""


class LockedOut(KidsGuardError):
    """PIN entry refused until the lockout window has passed."""

    def __init__(self, remaining_seconds: int) -> None:
        super().__init__(f"Locked out. Please try again in {remaining_seconds} seconds.")
        self.remaining_seconds = remaining_seconds


class IncorrectCurrentPin(KidsGuardError):
    def __init__(self) -> None:
        super().__init__("Current PIN is incorrect")


class OverlayPermissionRequired(KidsGuardError):
    """Screen-time locking needs the overlay capability to be granted first."""

    def __init__(self) -> None:
        super().__init__("Overlay permission is required to lock screen time")


class PersistenceFailure(KidsGuardError):
    """A secret store or key-value store operation failed."""


class PlatformBridgeFailure(KidsGuardError):
    """A platform bridge call failed."""
