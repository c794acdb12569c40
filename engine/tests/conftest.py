"""Shared fixtures for engine tests."""

from pathlib import Path

import pytest

from kidsguard_engine.ad_gate import AdEligibilityGate
from kidsguard_engine.credentials import CredentialStore
from kidsguard_engine.enforcement import EnforcementCoordinator
from kidsguard_engine.service import ServiceSupervisor
from kidsguard_engine.simulated import (
    SimulatedAdDelivery,
    SimulatedLevel,
    SimulatedScreenTime,
    SimulatedService,
)
from kidsguard_engine.storage import EncryptedSecretStore, FileKeyValueStore

START_MS = 1_700_000_000_000
HOUR_MS = 60 * 60 * 1000


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def preferences(tmp_path: Path) -> FileKeyValueStore:
    return FileKeyValueStore(tmp_path / "prefs")


@pytest.fixture
def secrets(tmp_path: Path) -> EncryptedSecretStore:
    return EncryptedSecretStore(tmp_path / "secure")


@pytest.fixture
def credentials(
    secrets: EncryptedSecretStore, preferences: FileKeyValueStore, clock: FakeClock
) -> CredentialStore:
    return CredentialStore(secrets, preferences, clock=clock)


@pytest.fixture
def volume() -> SimulatedLevel:
    return SimulatedLevel("Volume")


@pytest.fixture
def brightness() -> SimulatedLevel:
    return SimulatedLevel("Brightness")


@pytest.fixture
def screen_time() -> SimulatedScreenTime:
    return SimulatedScreenTime()


@pytest.fixture
def service_bridge() -> SimulatedService:
    return SimulatedService()


@pytest.fixture
def supervisor(service_bridge: SimulatedService) -> ServiceSupervisor:
    return ServiceSupervisor(service_bridge)


@pytest.fixture
def coordinator(
    preferences: FileKeyValueStore,
    volume: SimulatedLevel,
    brightness: SimulatedLevel,
    screen_time: SimulatedScreenTime,
    supervisor: ServiceSupervisor,
) -> EnforcementCoordinator:
    return EnforcementCoordinator(
        preferences,
        volume=volume,
        brightness=brightness,
        screen_time=screen_time,
        service=supervisor,
    )


@pytest.fixture
def gate(preferences: FileKeyValueStore, clock: FakeClock) -> AdEligibilityGate:
    return AdEligibilityGate(preferences, clock=clock)


@pytest.fixture
def ad_delivery() -> SimulatedAdDelivery:
    return SimulatedAdDelivery()
