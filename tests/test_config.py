from __future__ import annotations

import pytest

from pyrbo.config import DEFAULT_REDIS_URL, RboConfig
from pyrbo.exceptions import RboConfigError


def test_defaults() -> None:
    config = RboConfig(key="rbo:test")

    assert config.redis_url == DEFAULT_REDIS_URL
    assert config.save_interval == 1.0
    assert config.hydrate is True


def test_invalid_values_rejected() -> None:
    with pytest.raises(RboConfigError):
        RboConfig(key="")
    with pytest.raises(RboConfigError):
        RboConfig(key="k", save_interval=-1)


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RBO_KEY", " rbo:env ")
    monkeypatch.setenv("RBO_REDIS_URL", "redis://cache:6379/3")
    monkeypatch.setenv("RBO_SAVE_INTERVAL", "0.25")
    monkeypatch.setenv("RBO_HYDRATE", "off")

    config = RboConfig.from_env()

    assert config == RboConfig(
        key="rbo:env",
        redis_url="redis://cache:6379/3",
        save_interval=0.25,
        hydrate=False,
    )


def test_from_env_overrides_win(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RBO_KEY", "rbo:env")
    monkeypatch.setenv("RBO_SAVE_INTERVAL", "not-a-number")

    config = RboConfig.from_env(key="rbo:override", save_interval=2.0)

    assert config.key == "rbo:override"
    assert config.save_interval == 2.0


def test_from_env_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RBO_KEY", raising=False)
    monkeypatch.delenv("RBO_SAVE_INTERVAL", raising=False)
    with pytest.raises(RboConfigError):
        RboConfig.from_env()

    monkeypatch.setenv("RBO_KEY", "k")
    monkeypatch.setenv("RBO_SAVE_INTERVAL", "soon")
    with pytest.raises(RboConfigError):
        RboConfig.from_env()
