"""Coordination between persisted settings and platform enforcement."""

import asyncio
import logging

from kidsguard_shared import SETTINGS_RECORDS, ScreenTimeUsage, Setting, SettingKind

from .bridges import LevelBridge, ScreenTimeBridge
from .errors import OverlayPermissionRequired
from .service import ServiceSupervisor
from .settings import SettingsRepository
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

FALLBACK_LEVEL = 50


class EnforcementCoordinator:
    """Keeps each setting's lock state in step with platform enforcement.

    Per setting the lifecycle is Unconfigured -> Unlocked <-> Locked.
    Locking persists the staged value and starts enforcement; unlocking a
    level setting persists the live device value so the next lock cycle does
    not start from a stale one. Updates to one setting are serialized, so the
    enforced value always belongs to the update that finished last.

    Build one instance per process and pass it to every caller.
    """

    def __init__(
        self,
        preferences: KeyValueStore,
        volume: LevelBridge,
        brightness: LevelBridge,
        screen_time: ScreenTimeBridge,
        service: ServiceSupervisor,
    ):
        self.settings = SettingsRepository(preferences)
        self.service = service
        self._levels: dict[SettingKind, LevelBridge] = {
            SettingKind.VOLUME: volume,
            SettingKind.BRIGHTNESS: brightness,
        }
        self._screen_time = screen_time
        self._enforced: dict[SettingKind, int] = {}
        self._locks = {kind: asyncio.Lock() for kind in SettingKind}
        self._initialized = False

    async def initialize(self) -> bool:
        """Resume enforcement for every locked setting after a restart.

        Platform enforcement does not survive process death, so this runs on
        every app start. Once it has succeeded, later calls do nothing.
        """
        if self._initialized:
            logger.info("Enforcement already initialized, skipping")
            return True

        logger.info("Initializing enforcement...")
        results = [await self._resume(kind) for kind in SettingKind]
        success = all(results)
        if success:
            self._initialized = True
            logger.info("Enforcement initialized")
        else:
            logger.warning("Enforcement initialized with failures")
        return success

    async def _resume(self, kind: SettingKind) -> bool:
        setting = await self.settings.get(kind)
        if not setting.locked or setting.is_default:
            return True

        if kind is SettingKind.SCREEN_TIME and not await self.check_overlay_permission():
            logger.warning("Overlay permission not granted, cannot resume screen time enforcement")
            return True

        async with self._locks[kind]:
            return await self._start_enforcing(kind, setting.value)

    async def update_setting(self, kind: SettingKind, value: float, locked: bool) -> bool:
        """Persist a setting and start or stop its enforcement.

        Returns False if storage or the platform fails; the caller should
        revert its optimistic state. Stored state is not rolled back.
        Non-finite values are rejected with False. Raises
        OverlayPermissionRequired when locking screen time without the overlay
        capability; nothing is persisted in either case.
        """
        try:
            value = SETTINGS_RECORDS[kind].clamp_value(value)
        except ValueError:
            logger.error("Invalid %s value: %r", kind, value)
            return False

        if locked and kind is SettingKind.SCREEN_TIME:
            if not await self.check_overlay_permission():
                logger.info("Overlay permission missing, not locking screen time")
                raise OverlayPermissionRequired()

        async with self._locks[kind]:
            try:
                await self.settings.save(kind, value, locked)
            except Exception:
                logger.exception("Error updating %s settings", kind)
                return False

            if locked:
                return await self._start_enforcing(kind, value)
            return await self._stop_enforcing(kind)

    async def lock(self, kind: SettingKind, value: float) -> bool:
        return await self.update_setting(kind, value, locked=True)

    async def unlock(self, kind: SettingKind) -> bool:
        """Unlock a setting, keeping the live device level for level settings."""
        value: int | None = None
        if kind in self._levels:
            value = await self._read_live_value(kind)
        if value is None:
            value = (await self.settings.get(kind)).value
        return await self.update_setting(kind, value, locked=False)

    async def _start_enforcing(self, kind: SettingKind, value: int) -> bool:
        try:
            if kind is SettingKind.SCREEN_TIME:
                await self._screen_time.start_enforcing(value * 60)
            else:
                await self._levels[kind].start_enforcing(value)
        except Exception:
            logger.exception("Error starting %s enforcement", kind)
            return False

        self._enforced[kind] = value
        await self.service.notify_need(kind, True)
        logger.info("%s enforcement started at %d", kind, value)
        return True

    async def _stop_enforcing(self, kind: SettingKind) -> bool:
        self._enforced.pop(kind, None)
        success = True
        try:
            if kind is SettingKind.SCREEN_TIME:
                await self._screen_time.stop_enforcing()
            else:
                await self._levels[kind].stop_enforcing()
            logger.info("%s enforcement stopped", kind)
        except Exception:
            logger.exception("Error stopping %s enforcement", kind)
            success = False

        await self.service.notify_need(kind, False)
        return success

    def get_enforced_value(self, kind: SettingKind) -> int | None:
        """The in-memory target while ``kind`` is locked, else None."""
        return self._enforced.get(kind)

    async def get_all_settings(self) -> dict[SettingKind, Setting]:
        return await self.settings.get_all()

    async def apply_value(self, kind: SettingKind, value: float) -> bool:
        """Set the device level right now, independent of locking."""
        bridge = self._level_bridge(kind)
        try:
            clamped = SETTINGS_RECORDS[kind].clamp_value(value)
            await bridge.set_value(clamped)
        except Exception:
            logger.exception("Error setting %s", kind)
            return False
        logger.info("%s set to %d%%", kind, clamped)
        return True

    async def get_live_value(self, kind: SettingKind) -> int:
        """Current device level, or 50 if the platform cannot report it."""
        value = await self._read_live_value(kind)
        return FALLBACK_LEVEL if value is None else value

    async def _read_live_value(self, kind: SettingKind) -> int | None:
        bridge = self._level_bridge(kind)
        try:
            return round(await bridge.get_value())
        except Exception:
            logger.exception("Error getting %s", kind)
            return None

    async def is_enforcing(self, kind: SettingKind) -> bool:
        try:
            if kind is SettingKind.SCREEN_TIME:
                return await self._screen_time.is_enforcing()
            return await self._levels[kind].is_enforcing()
        except Exception:
            logger.exception("Error checking %s enforcement status", kind)
            return False

    async def get_screen_time_usage(self) -> ScreenTimeUsage:
        setting = await self.settings.get(SettingKind.SCREEN_TIME)
        try:
            usage_seconds = int(await self._screen_time.get_daily_usage_seconds())
        except Exception:
            logger.exception("Error getting daily usage")
            usage_seconds = 0
        return ScreenTimeUsage(
            limit_minutes=setting.value,
            daily_usage_seconds=max(0, usage_seconds),
        )

    async def check_overlay_permission(self) -> bool:
        try:
            return await self._screen_time.check_overlay_permission()
        except Exception:
            logger.exception("Error checking overlay permission")
            return False

    async def request_overlay_permission(self) -> bool:
        try:
            return await self._screen_time.request_overlay_permission()
        except Exception:
            logger.exception("Error requesting overlay permission")
            return False

    async def notify_service_need(self, component: str, is_enforcing: bool) -> None:
        await self.service.notify_need(component, is_enforcing)

    async def force_start_service(self) -> bool:
        """Manual retry path; clears the sticky start failure."""
        return await self.service.force_start()

    async def force_stop_service(self) -> bool:
        return await self.service.force_stop()

    async def is_service_running(self) -> bool:
        return await self.service.is_running()

    @property
    def service_start_failed(self) -> bool:
        return self.service.service_start_failed

    def _level_bridge(self, kind: SettingKind) -> LevelBridge:
        try:
            return self._levels[kind]
        except KeyError:
            raise ValueError(f"{kind} has no device level") from None
