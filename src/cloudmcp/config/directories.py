# src/cloudmcp/config/directories.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Platform configuration locations and path safety.

Summary:
    Resolve the per-user configuration directory with ``platformdirs``:
    ``$XDG_CONFIG_HOME/cloudmcp`` (or ``~/.config/cloudmcp``) on Linux,
    ``~/Library/Application Support/cloudmcp`` on macOS and the roaming
    AppData area on Windows.

Design:
    * Directories are created owner + group read/execute (``0o750``).
    * A path containing ``..`` segments is only accepted when it resolves
      under an allowed root: the user config directory or the temp area.
"""

from __future__ import annotations

import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Final

import platformdirs

from cloudmcp.domain.exceptions import ConfigPathUnsafe

__all__ = [
    "APP_NAME",
    "CONFIG_FILENAME",
    "DIR_MODE",
    "FILE_MODE",
    "default_allowed_roots",
    "default_config_path",
    "ensure_safe_path",
    "user_config_dir",
]

APP_NAME: Final[str] = "cloudmcp"
CONFIG_FILENAME: Final[str] = "config.toml"
DIR_MODE: Final[int] = 0o750
FILE_MODE: Final[int] = 0o600


def user_config_dir() -> Path:
    """Return the per-user configuration directory for the broker."""
    return Path(platformdirs.user_config_dir(APP_NAME, appauthor=False, roaming=True))


def default_config_path() -> Path:
    """Return ``<user config dir>/config.toml``."""
    return user_config_dir() / CONFIG_FILENAME


def default_allowed_roots() -> tuple[Path, ...]:
    """Roots under which traversal-bearing paths are still accepted."""
    return (user_config_dir(), Path(tempfile.gettempdir()))


def ensure_safe_path(path: Path, allowed_roots: Iterable[Path]) -> Path:
    """Reject ``path`` if it uses ``..`` to escape the allowed roots.

    Args:
        path: Candidate configuration file path.
        allowed_roots: Directories under which traversal is tolerated.

    Returns:
        Path: ``path`` unchanged when it is acceptable.

    Raises:
        ConfigPathUnsafe: If ``path`` contains a ``..`` segment and does not
            resolve under any allowed root.
    """
    if ".." not in path.parts:
        return path
    resolved = path.resolve()
    for root in allowed_roots:
        if resolved.is_relative_to(root.resolve()):
            return path
    raise ConfigPathUnsafe(
        "Configuration path traverses outside the allowed directories",
        details={"path": str(path)},
    )
