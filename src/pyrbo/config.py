"""Configuration for pyrbo backed objects."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyrbo.exceptions import RboConfigError

#: Default debounce interval in seconds between the last mutation and the write.
DEFAULT_SAVE_INTERVAL: float = 1.0

DEFAULT_REDIS_URL = "redis://localhost:6379/0"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class RboConfig:
    """Backed object configuration.

    Parameters
    ----------
    key : str
        Store key the object is mirrored to.
    redis_url : str
        Redis connection URL used when no store is passed explicitly.
    save_interval : float
        Debounce interval in seconds.  A write happens once no mutation
        has been observed for this long.  ``0`` writes on the next loop
        iteration after the last mutation.
    hydrate : bool
        Load and merge the stored snapshot on construction.
    """

    key: str
    redis_url: str = DEFAULT_REDIS_URL
    save_interval: float = DEFAULT_SAVE_INTERVAL
    hydrate: bool = True

    def __post_init__(self) -> None:
        if not self.key:
            raise RboConfigError("key must be a non-empty string")
        if self.save_interval < 0:
            raise RboConfigError(f"save_interval must be >= 0, got {self.save_interval!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> RboConfig:
        """Create configuration from environment variables.

        Reads ``RBO_KEY``, ``RBO_REDIS_URL``, ``RBO_SAVE_INTERVAL`` and
        ``RBO_HYDRATE``.  Explicit keyword arguments override environment
        values.

        Raises
        ------
        RboConfigError
            If a numeric variable cannot be parsed or the key is missing.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        key = env.get("RBO_KEY")
        if key is not None:
            config_kwargs["key"] = key.strip()

        url = env.get("RBO_REDIS_URL")
        if url is not None:
            config_kwargs["redis_url"] = url.strip()

        interval_env = env.get("RBO_SAVE_INTERVAL")
        if interval_env is not None and "save_interval" not in overrides:
            try:
                config_kwargs["save_interval"] = float(interval_env)
            except ValueError as exc:
                raise RboConfigError(f"RBO_SAVE_INTERVAL is not a number: {interval_env!r}") from exc

        if "hydrate" not in overrides:
            config_kwargs["hydrate"] = _env_bool(env.get("RBO_HYDRATE"), True)

        config_kwargs.update(overrides)
        if "key" not in config_kwargs:
            raise RboConfigError("RBO_KEY is not set and no key was given")

        return cls(**config_kwargs)
