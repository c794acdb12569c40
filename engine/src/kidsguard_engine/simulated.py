"""In-process stand-ins for the platform bridges.

Used for development on machines without the platform hooks, and by the
command-line tool. State is held in memory and every action is logged.
"""

import logging
from dataclasses import dataclass

from .errors import PlatformBridgeFailure

logger = logging.getLogger(__name__)


@dataclass
class SimulatedLevel:
    """A device level (volume or brightness) with optional enforcement."""

    name: str
    value: float = 50.0
    enforced: int | None = None

    async def set_value(self, percent: int) -> None:
        self.value = max(0, min(100, percent))
        logger.info("%s set to %d%%", self.name, self.value)

    async def get_value(self) -> float:
        return self.value

    async def start_enforcing(self, percent: int) -> None:
        self.enforced = percent
        self.value = percent
        logger.info("%s enforcement started at %d%%", self.name, percent)

    async def stop_enforcing(self) -> None:
        self.enforced = None
        logger.info("%s enforcement stopped", self.name)

    async def is_enforcing(self) -> bool:
        return self.enforced is not None


@dataclass
class SimulatedScreenTime:
    usage_seconds: float = 0.0
    limit_seconds: int | None = None
    overlay_granted: bool = True

    async def get_daily_usage_seconds(self) -> float:
        return self.usage_seconds

    async def start_enforcing(self, limit_seconds: int) -> None:
        if not self.overlay_granted:
            raise PlatformBridgeFailure("Cannot draw the lock overlay without permission")
        # Every lock starts a fresh budget cycle
        self.usage_seconds = 0.0
        self.limit_seconds = limit_seconds
        logger.info("Screen time enforcement started: %d seconds", limit_seconds)

    async def stop_enforcing(self) -> None:
        self.limit_seconds = None
        logger.info("Screen time enforcement stopped")

    async def is_enforcing(self) -> bool:
        return self.limit_seconds is not None

    async def check_overlay_permission(self) -> bool:
        return self.overlay_granted

    async def request_overlay_permission(self) -> bool:
        self.overlay_granted = True
        logger.info("Overlay permission granted")
        return True


@dataclass
class SimulatedService:
    running: bool = False
    start_count: int = 0
    stop_count: int = 0

    async def start_service(self) -> None:
        self.running = True
        self.start_count += 1
        logger.info("Enforcement service started")

    async def stop_service(self) -> None:
        self.running = False
        self.stop_count += 1
        logger.info("Enforcement service stopped")

    async def is_service_running(self) -> bool:
        return self.running


@dataclass
class SimulatedAdDelivery:
    available: bool = True
    shown: int = 0

    async def show(self) -> bool:
        if not self.available:
            logger.info("No ad available to show")
            return False
        self.shown += 1
        logger.info("Ad shown")
        return True
