"""Interfaces to the platform hooks that perform actual enforcement.

The engine only decides *when* enforcement runs. Holding a volume level,
counting screen time and keeping a background service alive are done by
platform code behind these protocols.
"""

from typing import Protocol


class LevelBridge(Protocol):
    """A device level held at a percentage (volume, brightness)."""

    async def set_value(self, percent: int) -> None: ...

    async def get_value(self) -> float: ...

    async def start_enforcing(self, percent: int) -> None: ...

    async def stop_enforcing(self) -> None: ...

    async def is_enforcing(self) -> bool: ...


class ScreenTimeBridge(Protocol):
    """Counts daily usage and locks the screen once the budget is spent."""

    async def get_daily_usage_seconds(self) -> float: ...

    async def start_enforcing(self, limit_seconds: int) -> None: ...

    async def stop_enforcing(self) -> None: ...

    async def is_enforcing(self) -> bool: ...

    async def check_overlay_permission(self) -> bool: ...

    async def request_overlay_permission(self) -> bool: ...


class ServiceBridge(Protocol):
    """The shared foreground service that keeps enforcement alive."""

    async def start_service(self) -> None: ...

    async def stop_service(self) -> None: ...

    async def is_service_running(self) -> bool: ...


class AdDelivery(Protocol):
    async def show(self) -> bool:
        """Display an ad. Returns True only if it was actually shown."""
        ...
