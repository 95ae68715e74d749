"""Server configuration from environment variables.

Command line flags in __main__ override these values.
"""

from __future__ import annotations

import logging
import math
import os
from collections.abc import Mapping
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ENV_PREFIX = "GODOT_BUILD_"


@dataclass
class BuildPanelConfig:
    """Settings for the build panel server."""

    project_root: str | None = None
    """Project root; searched upward from CWD when unset."""

    configuration: str = "Debug"
    """Build configuration key, passed to the build system verbatim."""

    dotnet_path: str | None = None
    """dotnet executable; looked up on PATH when unset."""

    debounce_seconds: float = 0.5
    """Delay before a restarted debounce timer fires."""

    build_timeout: float = 300.0
    """Timeout for a single build system command."""

    game_address: tuple[str, int] | None = None
    """host/port of the running game's debug channel."""

    def __post_init__(self) -> None:
        if not self.configuration:
            raise ValueError("Build configuration must not be empty")
        if not math.isfinite(self.debounce_seconds) or self.debounce_seconds < 0:
            raise ValueError(
                f"Debounce delay must be a finite non-negative number: {self.debounce_seconds}"
            )
        if not math.isfinite(self.build_timeout) or self.build_timeout <= 0:
            raise ValueError(f"Build timeout must be a finite positive number: {self.build_timeout}")


def parse_address(value: str) -> tuple[str, int]:
    """Parse `host:port` (host defaults to 127.0.0.1 for `:port`)."""
    host, sep, port = value.rpartition(":")
    if not sep or not port.isdigit():
        raise ValueError(f"Invalid address (expected host:port): {value}")
    return host or "127.0.0.1", int(port)


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value):
        raise ValueError(f"{name} must be a finite number, got {raw!r}")
    return value


def load_config(env: Mapping[str, str] | None = None) -> BuildPanelConfig:
    """Load configuration from environment variables.

    Args:
        env: Environment mapping (defaults to os.environ)

    Raises:
        ValueError: If a variable holds an invalid value
    """
    env = os.environ if env is None else env

    address = env.get(f"{ENV_PREFIX}GAME_ADDRESS")
    config = BuildPanelConfig(
        project_root=env.get(f"{ENV_PREFIX}PROJECT_ROOT") or None,
        configuration=env.get(f"{ENV_PREFIX}CONFIGURATION") or "Debug",
        dotnet_path=env.get(f"{ENV_PREFIX}DOTNET_PATH") or None,
        debounce_seconds=_float_env(env, f"{ENV_PREFIX}DEBOUNCE_SECONDS", 0.5),
        build_timeout=_float_env(env, f"{ENV_PREFIX}TIMEOUT_SECONDS", 300.0),
        game_address=parse_address(address) if address else None,
    )
    logger.debug(f"Loaded config: {config}")
    return config
