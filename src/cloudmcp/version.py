# src/cloudmcp/version.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Version and build information.

Build metadata defaults to development values; packaging pipelines override
them through ``CLOUDMCP_BUILD_DATE``, ``CLOUDMCP_GIT_COMMIT`` and
``CLOUDMCP_GIT_BRANCH``.
"""

from __future__ import annotations

import os
import platform
import sys
from functools import lru_cache
from typing import Final

from pydantic import BaseModel, ConfigDict, Field

from cloudmcp import __version__

__all__ = ["API_VERSION", "FEATURES", "VersionInfo", "get_version_info"]

API_VERSION: Final[str] = "0.1.0"
FEATURES: Final[tuple[str, ...]] = (
    "tools",
    "health_check",
    "metrics",
    "multi_account",
)


class VersionInfo(BaseModel):
    """Result payload of the ``version`` tool."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    version: str = Field(..., description="Broker release version.")
    api_version: str = Field(..., description="Tool-call surface version.")
    build_date: str = Field(..., description="Build timestamp, or 'unknown'.")
    git_commit: str = Field(..., description="Commit the build was made from.")
    git_branch: str = Field(..., description="Branch the build was made from.")
    python_version: str
    platform: str = Field(..., description="'<system>/<machine>' of the running host.")
    features: list[str]


@lru_cache(maxsize=1)
def get_version_info() -> VersionInfo:
    """Return the (cached) version information of this process."""
    return VersionInfo(
        version=__version__,
        api_version=API_VERSION,
        build_date=os.getenv("CLOUDMCP_BUILD_DATE", "unknown"),
        git_commit=os.getenv("CLOUDMCP_GIT_COMMIT", "dev"),
        git_branch=os.getenv("CLOUDMCP_GIT_BRANCH", "main"),
        python_version=".".join(str(part) for part in sys.version_info[:3]),
        platform=f"{platform.system().lower()}/{platform.machine().lower()}",
        features=list(FEATURES),
    )
