import pytest

from epochbot.config.settings import load_settings
from epochbot.errors import ConfigurationError
from epochbot.main import main
from epochbot.runtime.app import App, stake_to_wei
from epochbot.tests.fakes import FakeGateway


def test_stake_to_wei() -> None:
    assert stake_to_wei("0.02") == 2 * 10**16
    with pytest.raises(ConfigurationError):
        stake_to_wei("0")
    with pytest.raises(ConfigurationError):
        stake_to_wei("lots")


def test_missing_key_exits_cleanly(monkeypatch, tmp_path, capsys) -> None:
    monkeypatch.delenv("PRIVATE_KEY", raising=False)
    monkeypatch.setenv("EPOCHBOT_ENV_FILE", str(tmp_path / "missing.env"))
    assert main() == 0
    assert "private key was not found" in capsys.readouterr().out


def test_app_builds_scheduler_and_claims(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("EPOCHBOT_ENV_FILE", str(tmp_path / "missing.env"))
    monkeypatch.setenv("PRIVATE_KEY", "0x" + "11" * 32)
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("CONTRACT_PROFILE", "candle_genie_v3")
    monkeypatch.setenv("REDISTRIBUTE_TO", "0x000000000000000000000000000000000000dEaD")
    monkeypatch.setenv("REDISTRIBUTE_BPS", "100")
    app = App(load_settings())

    sched = app.build_scheduler()
    assert sched.current_wait() == 281500
    assert sched.step_ms == 6000

    claims = app.build_claims(FakeGateway())
    assert claims.redistribution_enabled
    assert claims.transform(10**18) == 10**16
