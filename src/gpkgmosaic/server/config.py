"""Settings of the HTTP service.

Environment Variables:
    GPKGMOSAIC_WEB_DATA_DIRS: Directories searched for GeoPackages, separated
        by ``os.pathsep`` (default: current directory)
    GPKGMOSAIC_WEB_HOST: Bind address (default: 0.0.0.0)
    GPKGMOSAIC_WEB_PORT: Port, 1-65535 (default: 8000)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from gpkgmosaic.config import _get_env_int, _get_env_str

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000


@dataclass(frozen=True)
class ServerConfig:
    """Where the service looks for packages and where it listens."""

    data_dirs: list[Path] = field(default_factory=list)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


def _data_dirs_from_env(value: str) -> list[Path]:
    dirs = [
        Path(part.strip()).expanduser().resolve()
        for part in value.split(os.pathsep)
        if part.strip()
    ]
    return dirs or [Path.cwd().resolve()]


def _valid_port(port: int) -> int:
    if not 1 <= port <= 65535:
        logger.warning(
            "GPKGMOSAIC_WEB_PORT=%d is out of range, using default %d", port, DEFAULT_PORT
        )
        return DEFAULT_PORT
    return port


def load_config() -> ServerConfig:
    """Build the service settings from the environment.

    Malformed or out-of-range values are logged and replaced by defaults.
    """
    return ServerConfig(
        data_dirs=_data_dirs_from_env(_get_env_str("GPKGMOSAIC_WEB_DATA_DIRS", "")),
        host=_get_env_str("GPKGMOSAIC_WEB_HOST", DEFAULT_HOST) or DEFAULT_HOST,
        port=_valid_port(_get_env_int("GPKGMOSAIC_WEB_PORT", DEFAULT_PORT)),
    )
