"""Persisted data models for KidsGuard.

These models define the schema of every settings blob kept in key-value
storage. Field names are snake_case here and camelCase on disk.
"""

import math
from enum import StrEnum
from typing import Annotated, Any, ClassVar, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class SettingKind(StrEnum):
    VOLUME = "volume"
    BRIGHTNESS = "brightness"
    SCREEN_TIME = "screen_time"


class StorageKey(StrEnum):
    """Fixed storage keys (secret store and key-value store)."""

    PIN = "parent_pin"
    VOLUME_SETTINGS = "volume_settings"
    BRIGHTNESS_SETTINGS = "brightness_settings"
    SCREEN_TIME_SETTINGS = "screen_time_settings"
    FAILED_ATTEMPTS = "failed_attempts"
    LOCKOUT_UNTIL = "lockout_until"
    LAST_AD_SHOWN = "last_ad_shown"


def clamp(value: Any, low: int, high: int, default: int) -> int:
    """Round ``value`` to an int and clamp it to ``[low, high]``.

    ``None`` (a missing field) reads as ``default``. NaN and infinities raise
    ValueError.
    """
    if value is None:
        return default
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not a finite number")
    return max(low, min(high, int(round(number))))


class SettingsRecord(BaseModel):
    """Base for per-setting blobs: one numeric field plus the lock flag."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    storage_key: ClassVar[StorageKey]
    value_field: ClassVar[str]
    minimum: ClassVar[int]
    maximum: ClassVar[int]
    default_value: ClassVar[int]

    locked: bool = False

    @field_validator("locked", mode="before")
    @classmethod
    def _coerce_locked(cls, v: Any) -> bool:
        return bool(v)

    @property
    def value(self) -> int:
        return getattr(self, self.value_field)

    @classmethod
    def clamp_value(cls, value: Any) -> int:
        return clamp(value, cls.minimum, cls.maximum, cls.default_value)

    @classmethod
    def build(cls, value: Any, locked: bool) -> Self:
        """Create a record from a raw value, clamping it into range."""
        return cls.model_validate({cls.value_field: value, "locked": locked})

    @classmethod
    def from_blob(cls, blob: str) -> Self:
        """Parse a stored JSON blob. Raises ValidationError if it is not an object."""
        return cls.model_validate_json(blob)

    def to_blob(self) -> str:
        return self.model_dump_json(by_alias=True)


class VolumeSettings(SettingsRecord):
    """Storage: volume_settings"""

    storage_key: ClassVar[StorageKey] = StorageKey.VOLUME_SETTINGS
    value_field: ClassVar[str] = "volume"
    minimum: ClassVar[int] = 0
    maximum: ClassVar[int] = 100
    default_value: ClassVar[int] = 50

    volume: int = 50

    @field_validator("volume", mode="before")
    @classmethod
    def _clamp_volume(cls, v: Any) -> int:
        return cls.clamp_value(v)


class BrightnessSettings(SettingsRecord):
    """Storage: brightness_settings"""

    storage_key: ClassVar[StorageKey] = StorageKey.BRIGHTNESS_SETTINGS
    value_field: ClassVar[str] = "brightness"
    minimum: ClassVar[int] = 0
    maximum: ClassVar[int] = 100
    default_value: ClassVar[int] = 50

    brightness: int = 50

    @field_validator("brightness", mode="before")
    @classmethod
    def _clamp_brightness(cls, v: Any) -> int:
        return cls.clamp_value(v)


class ScreenTimeSettings(SettingsRecord):
    """Storage: screen_time_settings

    The enforced value is a daily budget in minutes rather than a level.
    """

    storage_key: ClassVar[StorageKey] = StorageKey.SCREEN_TIME_SETTINGS
    value_field: ClassVar[str] = "limit_minutes"
    minimum: ClassVar[int] = 15
    maximum: ClassVar[int] = 480
    default_value: ClassVar[int] = 120

    limit_minutes: int = 120

    @field_validator("limit_minutes", mode="before")
    @classmethod
    def _clamp_limit(cls, v: Any) -> int:
        return cls.clamp_value(v)


SETTINGS_RECORDS: dict[SettingKind, type[SettingsRecord]] = {
    SettingKind.VOLUME: VolumeSettings,
    SettingKind.BRIGHTNESS: BrightnessSettings,
    SettingKind.SCREEN_TIME: ScreenTimeSettings,
}


class Setting(BaseModel):
    """A setting as seen by callers.

    ``is_default`` is true when nothing was ever persisted for this kind,
    which is different from a stored value that happens to equal the default.
    """

    model_config = ConfigDict(frozen=True)

    kind: SettingKind
    value: int
    locked: bool = False
    is_default: bool = True


class ScreenTimeUsage(BaseModel):
    """Usage against the screen-time budget, as reported by the platform."""

    limit_minutes: int
    daily_usage_seconds: Annotated[int, Field(ge=0)] = 0

    @property
    def remaining_seconds(self) -> int:
        return max(0, self.limit_minutes * 60 - self.daily_usage_seconds)

    @property
    def expired(self) -> bool:
        return self.remaining_seconds <= 0
