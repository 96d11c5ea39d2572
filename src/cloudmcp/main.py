# src/cloudmcp/main.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""
Process Entry (Bootstrap)

Synopsis:
    Entry point of the ``cloudmcp`` broker: load settings and configuration,
    configure logging, wire components via the core bootstrap, then serve
    JSON-RPC on stdio (or only the sidecar in ``DAEMON_MODE``).

Design:
    * stdout belongs to the dispatcher; logs go to stderr (and optionally a
      rotating file).
    * SIGINT/SIGTERM cancel the root token. A second signal while shutting
      down exits immediately with status 130.
    * Startup failures print one ``cloudmcp: <message>`` line to stderr and
      exit with status 1.
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys
from collections.abc import Sequence
from typing import Final

from cloudmcp.config.directories import default_config_path
from cloudmcp.config.document import SystemSettings, resolve_system_settings
from cloudmcp.config.manager import ConfigManager
from cloudmcp.config.settings import get_settings
from cloudmcp.dependencies.core.bootstrap import ProviderFactory, bootstrap
from cloudmcp.domain.exceptions import ConfigIO, DomainError
from cloudmcp.infrastructure.concurrency.cancellation import CancellationToken
from cloudmcp.infrastructure.logging.logger import configure_root_logging, get_json_logger
from cloudmcp.mcp.stdio import open_stdio

__all__ = ["install_signal_handlers", "main", "run"]

logger = get_json_logger(__name__)

EXIT_OK: Final[int] = 0
EXIT_STARTUP_FAILED: Final[int] = 1
EXIT_FORCED: Final[int] = 130


def _fail(message: str) -> int:
    print(f"cloudmcp: {message}", file=sys.stderr, flush=True)
    return EXIT_STARTUP_FAILED


def _configure_logging(system: SystemSettings) -> None:
    """Reconfigure logging from the resolved ``[system]`` table.

    Raises:
        ConfigIO: If the log file or its directory cannot be created.
    """
    try:
        configure_root_logging(
            system.log_level,
            log_file=system.log_file or None,
            max_size_mb=system.log_max_size,
            max_backups=system.log_max_backups,
            max_age_days=system.log_max_age,
        )
    except OSError as exc:
        raise ConfigIO(
            f"Cannot open log file {system.log_file}: {exc.strerror or exc}",
            details={"path": system.log_file},
        ) from exc


def install_signal_handlers(
    loop: asyncio.AbstractEventLoop, token: CancellationToken
) -> list[signal.Signals]:
    """Route SIGINT/SIGTERM to ``token``; a repeated signal forces exit.

    Returns:
        list[signal.Signals]: Signals installed on the loop (empty when the
        platform only supports ``signal.signal``).
    """

    def _on_signal(signum: int) -> None:
        if token.cancelled:
            logger.warning("shutdown_forced", extra={"extra": {"signal": signum}})
            os._exit(EXIT_FORCED)
        logger.info("shutdown_signal", extra={"extra": {"signal": signum}})
        token.cancel(f"signal {signal.Signals(signum).name}")

    installed: list[signal.Signals] = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _on_signal, int(sig))
            installed.append(sig)
        except NotImplementedError:
            signal.signal(
                sig, lambda signum, _frame: loop.call_soon_threadsafe(_on_signal, signum)
            )
    return installed


async def run(provider_factories: Sequence[ProviderFactory] = ()) -> int:
    """Run the broker until stdin closes or the root token is cancelled.

    Args:
        provider_factories: Cloud providers to attach at startup.

    Returns:
        int: Process exit status.
    """
    configure_root_logging()
    try:
        settings = get_settings()
        manager = ConfigManager(settings.config_path or default_config_path())
        document = await asyncio.to_thread(manager.load_or_create)
        _configure_logging(resolve_system_settings(document.system, settings))
    except DomainError as exc:
        return _fail(exc.message)

    token = CancellationToken()
    loop = asyncio.get_running_loop()
    installed = install_signal_handlers(loop, token)
    try:
        async with bootstrap(settings, manager, provider_factories=provider_factories) as state:
            if settings.daemon_mode:
                logger.info("daemon_mode", extra={"extra": {"sidecar_url": state.sidecar.url}})
                await token.wait()
            else:
                reader, writer = await open_stdio()
                await state.dispatcher.serve(reader, writer, token)
    except DomainError as exc:
        logger.error("startup_failed", extra={"extra": {"code": exc.code, "error": exc.message}})
        return _fail(exc.message)
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)

    logger.info("shutdown_complete", extra={"extra": {"reason": token.reason or "eof"}})
    return EXIT_OK


def main() -> int:
    """Console-script entry point."""
    try:
        return asyncio.run(run())
    except KeyboardInterrupt:
        return EXIT_FORCED


if __name__ == "__main__":
    sys.exit(main())
