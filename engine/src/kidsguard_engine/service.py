"""Supervision of the shared background enforcement service."""

import logging

from .bridges import ServiceBridge

logger = logging.getLogger(__name__)


class ServiceSupervisor:
    """Keeps the background service running while any component needs it.

    Each enforcing component reports its own need. The service is started or
    stopped only when the combined need changes, and a stop is only sent to a
    service that actually started. A failed start is sticky: automatic starts
    are skipped until ``force_start`` is called, since a crash-looping service
    is worse than foreground-only enforcement.
    """

    def __init__(self, bridge: ServiceBridge):
        self._bridge = bridge
        self._needs: dict[str, bool] = {}
        self._should_run = False
        self._running = False
        self.service_start_failed = False

    @property
    def should_run(self) -> bool:
        return any(self._needs.values())

    def needs(self) -> dict[str, bool]:
        return dict(self._needs)

    async def notify_need(self, component: str, is_enforcing: bool) -> None:
        """Record ``component``'s need and start/stop the service on a change."""
        self._needs[component] = is_enforcing
        should_run = self.should_run
        logger.info(
            "%s enforcement %s, service needed: %s",
            component,
            "enabled" if is_enforcing else "disabled",
            should_run,
        )

        if should_run == self._should_run:
            return
        self._should_run = should_run

        if should_run:
            if self.service_start_failed:
                logger.warning("Skipping service start after an earlier failure")
                return
            await self._start()
        elif self._running:
            await self._stop()
        else:
            logger.debug("Service was never started, nothing to stop")

    async def force_start(self) -> bool:
        """Start the service regardless of needs, clearing any earlier failure."""
        self.service_start_failed = False
        started = await self._start()
        if started:
            self._should_run = True
        return started

    async def force_stop(self) -> bool:
        stopped = await self._stop()
        if stopped:
            self._should_run = False
        return stopped

    async def is_running(self) -> bool:
        try:
            return await self._bridge.is_service_running()
        except Exception:
            logger.exception("Error checking service status")
            return False

    async def _start(self) -> bool:
        try:
            await self._bridge.start_service()
        except Exception:
            logger.exception("Error starting enforcement service")
            self.service_start_failed = True
            return False
        self._running = True
        logger.info("Enforcement service started")
        return True

    async def _stop(self) -> bool:
        try:
            await self._bridge.stop_service()
        except Exception:
            logger.exception("Error stopping enforcement service")
            return False
        self._running = False
        logger.info("Enforcement service stopped")
        return True
