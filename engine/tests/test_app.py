"""Tests for the application container and command-line entry point."""

import json
from pathlib import Path

import pytest

from conftest import HOUR_MS, FakeClock
from kidsguard_engine.app import Bridges, KidsGuardApp
from kidsguard_engine.config import Config, load_config
from kidsguard_engine.errors import LockedOut
from kidsguard_engine.main import main, simulated_bridges
from kidsguard_engine.simulated import SimulatedAdDelivery, SimulatedLevel
from kidsguard_engine.storage import EncryptedSecretStore, FileKeyValueStore
from kidsguard_shared import SettingKind


@pytest.fixture
def bridges() -> Bridges:
    return simulated_bridges()


@pytest.fixture
def app(
    tmp_path: Path,
    bridges: Bridges,
    secrets: EncryptedSecretStore,
    preferences: FileKeyValueStore,
    clock: FakeClock,
) -> KidsGuardApp:
    return KidsGuardApp(Config(data_dir=tmp_path), bridges, secrets, preferences, clock=clock)


class TestKidsGuardApp:
    @pytest.mark.asyncio
    async def test_first_launch_then_setup(self, app: KidsGuardApp) -> None:
        assert await app.start() is True

        await app.complete_setup("1234")

        assert await app.start() is False
        assert await app.credentials.verify("1234") is True

    @pytest.mark.asyncio
    async def test_restart_resumes_locks(
        self,
        tmp_path: Path,
        app: KidsGuardApp,
        secrets: EncryptedSecretStore,
        preferences: FileKeyValueStore,
        clock: FakeClock,
    ) -> None:
        await app.complete_setup("1234")
        await app.enforcement.lock(SettingKind.VOLUME, 70)

        restarted_bridges = simulated_bridges()
        restarted = KidsGuardApp(
            Config(data_dir=tmp_path), restarted_bridges, secrets, preferences, clock=clock
        )
        assert await restarted.start() is False

        assert isinstance(restarted_bridges.volume, SimulatedLevel)
        assert restarted_bridges.volume.enforced == 70
        assert restarted.enforcement.get_enforced_value(SettingKind.VOLUME) == 70

    @pytest.mark.asyncio
    async def test_ads_on_foreground_and_focus(
        self, app: KidsGuardApp, bridges: Bridges, clock: FakeClock
    ) -> None:
        assert isinstance(bridges.ads, SimulatedAdDelivery)

        assert await app.on_app_foreground() is True
        assert await app.on_settings_focus() is False

        clock.advance(6 * HOUR_MS)
        assert await app.on_settings_focus() is True
        assert bridges.ads.shown == 2

    @pytest.mark.asyncio
    async def test_lockout_settings_from_config(
        self,
        tmp_path: Path,
        bridges: Bridges,
        secrets: EncryptedSecretStore,
        preferences: FileKeyValueStore,
        clock: FakeClock,
    ) -> None:
        config = Config(data_dir=tmp_path, lockout_threshold=3, lockout_base_seconds=10)
        app = KidsGuardApp(config, bridges, secrets, preferences, clock=clock)
        await app.complete_setup("1234")

        assert await app.credentials.verify("0000") is False
        assert await app.credentials.verify("0000") is False
        with pytest.raises(LockedOut) as exc_info:
            await app.credentials.verify("0000")
        assert exc_info.value.remaining_seconds == 20

    def test_from_config_uses_data_dir(self, tmp_path: Path, bridges: Bridges) -> None:
        app = KidsGuardApp.from_config(Config(data_dir=tmp_path), bridges)

        assert app.config.data_dir == tmp_path
        assert (tmp_path / "secure").is_dir()


class TestConfig:
    def test_defaults(self) -> None:
        config = Config()
        assert config.data_dir == Path.home() / ".kidsguard"
        assert config.lockout_threshold == 5
        assert config.lockout_base_seconds == 60
        assert config.ad_min_interval_hours == 6

    def test_load_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"data_dir": str(tmp_path / "data"), "ad_min_interval_hours": 1}))

        config = load_config(path)
        assert config.data_dir == tmp_path / "data"
        assert config.ad_min_interval_hours == 1
        assert config.log_file is None


def run_cli(config_path: Path, *args: str) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(["--config", str(config_path), *args])
    return exc_info.value.code


class TestCli:
    @pytest.fixture
    def config_path(self, tmp_path: Path) -> Path:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"data_dir": str(tmp_path / "data")}))
        return path

    def test_setup_and_verify(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_cli(config_path, "setup-pin", "1234") == 0
        assert "PIN saved" in capsys.readouterr().out

        assert run_cli(config_path, "setup-pin", "5678") == 1
        assert "already set" in capsys.readouterr().out

        assert run_cli(config_path, "verify", "1234") == 0
        assert "PIN accepted" in capsys.readouterr().out

        assert run_cli(config_path, "verify", "0000") == 1
        assert "Incorrect PIN" in capsys.readouterr().out

    def test_setup_rejects_bad_format(
        self, config_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run_cli(config_path, "setup-pin", "12") == 2
        assert "exactly 4 digits" in capsys.readouterr().out

    def test_change_pin(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(config_path, "setup-pin", "1234")

        assert run_cli(config_path, "change-pin", "9999", "5678") == 1
        assert "Current PIN is incorrect" in capsys.readouterr().out

        assert run_cli(config_path, "change-pin", "1234", "5678") == 0
        assert run_cli(config_path, "verify", "5678") == 0

    def test_lockout_message(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(config_path, "setup-pin", "1234")
        for _ in range(4):
            run_cli(config_path, "verify", "0000")
        capsys.readouterr()

        assert run_cli(config_path, "verify", "0000") == 1
        assert "Locked out. Please try again in 120 seconds." in capsys.readouterr().out

    def test_lock_and_status(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(config_path, "setup-pin", "1234")
        capsys.readouterr()

        assert run_cli(config_path, "lock", "screen_time", "90", "--pin", "1234") == 0
        assert "screen_time locked at 90" in capsys.readouterr().out

        assert run_cli(config_path, "status") == 0
        out = capsys.readouterr().out
        assert "1h 30m" in out
        assert "locked" in out
        assert "Screen time left: 1h 30m" in out
        assert "not configured" in out

    def test_lock_requires_correct_pin(
        self, config_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        run_cli(config_path, "setup-pin", "1234")

        assert run_cli(config_path, "lock", "volume", "70", "--pin", "0000") == 1

        capsys.readouterr()
        run_cli(config_path, "status")
        volume_line = next(
            line for line in capsys.readouterr().out.splitlines() if line.startswith("volume")
        )
        assert "not configured" in volume_line

    def test_unlock(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(config_path, "setup-pin", "1234")
        run_cli(config_path, "lock", "brightness", "30", "--pin", "1234")
        capsys.readouterr()

        assert run_cli(config_path, "unlock", "brightness", "--pin", "1234") == 0
        assert "brightness unlocked" in capsys.readouterr().out

    def test_status_before_setup(
        self, config_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert run_cli(config_path, "status") == 1
        assert "setup-pin" in capsys.readouterr().out

    def test_ad_check(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert run_cli(config_path, "ad-check") == 0
        assert "Ad shown" in capsys.readouterr().out

        assert run_cli(config_path, "ad-check") == 0
        assert "No ad due" in capsys.readouterr().out

    def test_retry_service(self, config_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        run_cli(config_path, "setup-pin", "1234")
        capsys.readouterr()

        assert run_cli(config_path, "retry-service", "--pin", "1234") == 0
        assert "Enforcement service started" in capsys.readouterr().out

    def test_missing_config_file(self, tmp_path: Path) -> None:
        assert run_cli(tmp_path / "missing.json", "status") == 1

    def test_unknown_kind_rejected(self, config_path: Path) -> None:
        assert run_cli(config_path, "lock", "wifi", "1", "--pin", "1234") == 2

    def test_non_finite_value_rejected(self, config_path: Path) -> None:
        assert run_cli(config_path, "lock", "volume", "nan", "--pin", "1234") == 2
