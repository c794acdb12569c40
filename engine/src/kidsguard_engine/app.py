"""Application container wiring the engine components together."""

import logging
from dataclasses import dataclass

from .ad_gate import AdEligibilityGate, AdPresenter
from .bridges import AdDelivery, LevelBridge, ScreenTimeBridge, ServiceBridge
from .clock import Clock, now_ms
from .config import Config
from .credentials import CredentialStore
from .enforcement import EnforcementCoordinator
from .service import ServiceSupervisor
from .storage import EncryptedSecretStore, FileKeyValueStore, KeyValueStore, SecretStore

logger = logging.getLogger(__name__)


@dataclass
class Bridges:
    """The platform collaborators the engine drives."""

    volume: LevelBridge
    brightness: LevelBridge
    screen_time: ScreenTimeBridge
    service: ServiceBridge
    ads: AdDelivery


class KidsGuardApp:
    """Process-wide engine state, built once at startup and passed by handle."""

    def __init__(
        self,
        config: Config,
        bridges: Bridges,
        secrets: SecretStore,
        preferences: KeyValueStore,
        clock: Clock = now_ms,
    ):
        self.config = config
        self.credentials = CredentialStore(
            secrets,
            preferences,
            clock=clock,
            lockout_threshold=config.lockout_threshold,
            lockout_base_ms=config.lockout_base_seconds * 1000,
        )
        self.enforcement = EnforcementCoordinator(
            preferences,
            volume=bridges.volume,
            brightness=bridges.brightness,
            screen_time=bridges.screen_time,
            service=ServiceSupervisor(bridges.service),
        )
        self.ad_gate = AdEligibilityGate(
            preferences, clock=clock, min_interval_hours=config.ad_min_interval_hours
        )
        self.ads = AdPresenter(self.ad_gate, bridges.ads)

    @classmethod
    def from_config(cls, config: Config, bridges: Bridges, clock: Clock = now_ms) -> "KidsGuardApp":
        """Build the app on the file-backed stores under ``config.data_dir``."""
        return cls(
            config,
            bridges,
            secrets=EncryptedSecretStore(config.data_dir / "secure"),
            preferences=FileKeyValueStore(config.data_dir),
            clock=clock,
        )

    async def start(self) -> bool:
        """Run app-start initialization.

        Returns True on first launch (no PIN yet); otherwise resumes
        enforcement of locked settings and returns False.
        """
        first_launch = await self.credentials.is_first_launch()
        if first_launch:
            logger.info("First launch, PIN setup required")
            return True

        if not await self.enforcement.initialize():
            logger.warning("Failed to initialize some controls")
        return False

    async def complete_setup(self, pin: str) -> None:
        """Store the first PIN and bring enforcement up."""
        await self.credentials.save(pin)
        await self.enforcement.initialize()

    async def on_app_foreground(self) -> bool:
        return await self.ads.show_if_eligible()

    async def on_settings_focus(self) -> bool:
        return await self.ads.show_if_eligible()
