# src/cloudmcp/config/__init__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Config package export.

Keeps import sites clean and stable:
    from cloudmcp.config import ConfigManager, get_settings
"""

from __future__ import annotations

from cloudmcp.config.directories import default_config_path, user_config_dir
from cloudmcp.config.document import (
    AccountRecord,
    ConfigDocument,
    SystemSettings,
    default_document,
    resolve_system_settings,
)
from cloudmcp.config.manager import ConfigManager
from cloudmcp.config.settings import Settings, get_settings

__all__ = [
    "AccountRecord",
    "ConfigDocument",
    "ConfigManager",
    "Settings",
    "SystemSettings",
    "default_config_path",
    "default_document",
    "get_settings",
    "resolve_system_settings",
    "user_config_dir",
]
