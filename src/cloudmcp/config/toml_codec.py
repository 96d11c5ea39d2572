# src/cloudmcp/config/toml_codec.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""TOML encoding of the configuration document.

Parsing uses the standard-library ``tomllib``; writing uses ``tomli_w``.
Validation errors are reported without input values so credentials never
reach logs or error messages.
"""

from __future__ import annotations

import tomllib

import tomli_w
from pydantic import ValidationError

from cloudmcp.config.document import ConfigDocument, validation_details
from cloudmcp.domain.exceptions import ConfigParse, ConfigValidate

__all__ = ["parse_document", "render_document", "validation_details"]


def parse_document(data: bytes) -> ConfigDocument:
    """Decode and validate a configuration file body.

    Raises:
        ConfigParse: If ``data`` is not UTF-8 TOML.
        ConfigValidate: If the content violates a document invariant.
    """
    try:
        raw = tomllib.loads(data.decode("utf-8"))
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ConfigParse(f"Invalid configuration file: {exc}") from exc
    try:
        return ConfigDocument.model_validate(raw)
    except ValidationError as exc:
        raise ConfigValidate(
            "Configuration failed validation", details={"errors": validation_details(exc)}
        ) from exc


def render_document(document: ConfigDocument) -> bytes:
    """Encode ``document`` as TOML bytes."""
    return tomli_w.dumps(document.to_toml_dict()).encode("utf-8")
