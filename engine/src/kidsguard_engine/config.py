"""Configuration for the KidsGuard engine."""

from pathlib import Path

from pydantic import BaseModel, Field


class Config(BaseModel):
    """Local configuration for this device."""

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".kidsguard")
    log_file: Path | None = None
    lockout_threshold: int = Field(default=5, gt=0)
    lockout_base_seconds: int = Field(default=60, gt=0)
    ad_min_interval_hours: float = Field(default=6, ge=0)


def load_config(path: Path) -> Config:
    """Load configuration from a JSON file."""
    return Config.model_validate_json(path.read_text())
