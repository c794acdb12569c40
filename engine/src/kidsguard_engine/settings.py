"""Persistence of the per-setting records."""

import asyncio
import logging

from kidsguard_shared import SETTINGS_RECORDS, Setting, SettingKind, SettingsRecord

from .storage import KeyValueStore

logger = logging.getLogger(__name__)


def default_setting(kind: SettingKind) -> Setting:
    record_type = SETTINGS_RECORDS[kind]
    return Setting(kind=kind, value=record_type.default_value, locked=False, is_default=True)


class SettingsRepository:
    """Reads and writes settings blobs, clamping values both ways."""

    def __init__(self, preferences: KeyValueStore):
        self._preferences = preferences

    async def get(self, kind: SettingKind) -> Setting:
        """Load a setting. Missing or unreadable records read as defaults."""
        record_type = SETTINGS_RECORDS[kind]
        try:
            blob = await self._preferences.get_string(record_type.storage_key)
            if blob is None:
                return default_setting(kind)
            record = record_type.from_blob(blob)
        except Exception:
            logger.exception("Error getting %s settings", kind)
            return default_setting(kind)

        return Setting(kind=kind, value=record.value, locked=record.locked, is_default=False)

    async def save(self, kind: SettingKind, value: int, locked: bool) -> SettingsRecord:
        """Persist a setting. Raises on storage failure."""
        record = SETTINGS_RECORDS[kind].build(value, locked)
        await self._preferences.set_string(record.storage_key, record.to_blob())
        logger.debug("Saved %s settings: value=%d locked=%s", kind, record.value, record.locked)
        return record

    async def get_all(self) -> dict[SettingKind, Setting]:
        settings = await asyncio.gather(*(self.get(kind) for kind in SettingKind))
        return {setting.kind: setting for setting in settings}
