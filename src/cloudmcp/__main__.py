# src/cloudmcp/__main__.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Allow ``python -m cloudmcp``."""

from __future__ import annotations

import sys

from cloudmcp.main import main

if __name__ == "__main__":
    sys.exit(main())
