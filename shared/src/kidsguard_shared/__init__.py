from .models import (
    SETTINGS_RECORDS,
    BrightnessSettings,
    ScreenTimeSettings,
    ScreenTimeUsage,
    Setting,
    SettingKind,
    SettingsRecord,
    StorageKey,
    VolumeSettings,
)

__all__ = [
    "SETTINGS_RECORDS",
    "BrightnessSettings",
    "ScreenTimeSettings",
    "ScreenTimeUsage",
    "Setting",
    "SettingKind",
    "SettingsRecord",
    "StorageKey",
    "VolumeSettings",
]
