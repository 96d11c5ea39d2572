# src/cloudmcp/infrastructure/http/tls.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Server-side TLS context for the sidecar.

The context refuses anything below TLS 1.3, whose suites are all AEAD. The
cipher string restricts TLS 1.2 to ECDHE with AES-GCM or ChaCha20-Poly1305
should the floor ever be lowered.
"""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Final

from cloudmcp.domain.exceptions import TLSConfig

__all__ = ["AEAD_CIPHERS", "build_server_ssl_context"]

AEAD_CIPHERS: Final[str] = "ECDHE+AESGCM:ECDHE+CHACHA20"


def build_server_ssl_context(
    cert_file: str | Path | None, key_file: str | Path | None
) -> ssl.SSLContext:
    """Load the certificate chain into a TLS 1.3-only server context.

    Raises:
        TLSConfig: A path is missing, unreadable, or not a valid PEM pair.
    """
    if not cert_file or not key_file:
        raise TLSConfig("TLS requires both a certificate file and a key file")
    for label, candidate in (("certificate", cert_file), ("key", key_file)):
        if not Path(candidate).is_file():
            raise TLSConfig(f"TLS {label} file not found: {candidate}")

    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.minimum_version = ssl.TLSVersion.TLSv1_3
    context.set_ciphers(AEAD_CIPHERS)
    try:
        context.load_cert_chain(certfile=str(cert_file), keyfile=str(key_file))
    except (ssl.SSLError, OSError) as exc:
        raise TLSConfig(f"Cannot load TLS certificate/key: {exc}") from exc
    return context
