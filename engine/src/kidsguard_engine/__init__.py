from .ad_gate import AdEligibilityGate, AdPresenter
from .app import Bridges, KidsGuardApp
from .config import Config, load_config
from .credentials import CredentialStore
from .enforcement import EnforcementCoordinator
from .errors import (
    IncorrectCurrentPin,
    KidsGuardError,
    LockedOut,
    OverlayPermissionRequired,
    PersistenceFailure,
    PlatformBridgeFailure,
)
from .service import ServiceSupervisor

__all__ = [
    "AdEligibilityGate",
    "AdPresenter",
    "Bridges",
    "Config",
    "CredentialStore",
    "EnforcementCoordinator",
    "IncorrectCurrentPin",
    "KidsGuardApp",
    "KidsGuardError",
    "LockedOut",
    "OverlayPermissionRequired",
    "PersistenceFailure",
    "PlatformBridgeFailure",
    "ServiceSupervisor",
    "load_config",
]
