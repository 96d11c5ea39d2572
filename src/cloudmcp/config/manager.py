# src/cloudmcp/config/manager.py
# Copyright (c) CloudMCP.
# SPDX-License-Identifier: MIT
"""Configuration Manager.

Summary:
    Owns the live :class:`ConfigDocument` and its TOML file. Provides a
    many-reader/single-writer API: readers receive deep copies, mutators
    run copy -> apply -> validate -> persist -> swap under the exclusive
    lock so no observer ever sees a half-applied change.

Design:
    * Saves are atomic: write a temp file in the same directory, fsync,
      restrict it to the owner, then ``os.replace`` it over the target.
    * Any failure (validation, I/O) leaves the live document untouched.
    * ``version`` increases by one on every successful mutation, save or
      reload, so readers can detect changes cheaply.

Usage:
    manager = ConfigManager(default_config_path())
    manager.load_or_create()
    manager.add_account("primary", AccountRecord(token=tok, label="Primary"))
    manager.set_default_account("primary")
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import Callable, Sequence
from contextlib import suppress
from pathlib import Path

from pydantic import ValidationError

from cloudmcp.config.directories import (
    DIR_MODE,
    FILE_MODE,
    default_allowed_roots,
    ensure_safe_path,
)
from cloudmcp.config.document import AccountRecord, ConfigDocument, default_document
from cloudmcp.config.toml_codec import parse_document, render_document, validation_details
from cloudmcp.domain.exceptions import (
    AccountExists,
    AccountInvalid,
    AccountMissing,
    ConfigIO,
    ConfigValidate,
    DefaultAccountLocked,
)
from cloudmcp.infrastructure.concurrency.rwlock import ReaderPreferredLock
from cloudmcp.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

__all__ = ["ConfigManager"]


class ConfigManager:
    """Thread-safe owner of the configuration document and file.

    Args:
        path: Location of the TOML configuration file.
        allowed_roots: Directories under which ``..``-bearing paths are
            tolerated. Defaults to the user config dir and the temp dir.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        allowed_roots: Sequence[Path] | None = None,
    ) -> None:
        self._path = Path(path).expanduser()
        self._allowed_roots = (
            tuple(allowed_roots) if allowed_roots is not None else default_allowed_roots()
        )
        self._lock = ReaderPreferredLock()
        self._document = default_document()
        self._version = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def version(self) -> int:
        """Monotonic change counter of the live document."""
        with self._lock.read():
            return self._version

    # ------------------------------------------------------------------ #
    # Loading
    # ------------------------------------------------------------------ #

    def load_or_create(self) -> ConfigDocument:
        """Load the file, or synthesize and persist defaults when it is absent.

        Returns:
            ConfigDocument: Snapshot of the loaded document.

        Raises:
            ConfigParse: The file is not valid TOML.
            ConfigValidate: The file violates a document invariant.
            ConfigPathUnsafe: The path escapes the allowed roots.
            ConfigIO: The file could not be read or written.
        """
        with self._lock.write():
            data = self._read_file(missing_ok=True)
            if data is None:
                document = default_document()
                self._persist(document)
                logger.info("config_created", extra={"extra": {"path": str(self._path)}})
            else:
                document = parse_document(data)
                logger.info(
                    "config_loaded",
                    extra={"extra": {"path": str(self._path), "accounts": len(document.accounts)}},
                )
            self._install(document)
            return document.model_copy(deep=True)

    def reload(self) -> ConfigDocument:
        """Replace the live document with the file content.

        A missing, unreadable or invalid file raises and keeps the prior
        document.

        Raises:
            ConfigIO: The file is missing or unreadable.
            ConfigParse: The file is not valid TOML.
            ConfigValidate: The file violates a document invariant.
        """
        with self._lock.write():
            data = self._read_file(missing_ok=False)
            assert data is not None
            document = parse_document(data)
            self._install(document)
            logger.info(
                "config_reloaded",
                extra={"extra": {"path": str(self._path), "version": self._version}},
            )
            return document.model_copy(deep=True)

    # ------------------------------------------------------------------ #
    # Readers
    # ------------------------------------------------------------------ #

    def snapshot(self) -> ConfigDocument:
        """Return a deep copy of the live document."""
        with self._lock.read():
            return self._document.model_copy(deep=True)

    def get_account(self, name: str) -> AccountRecord:
        """Return the account called ``name``.

        Raises:
            AccountMissing: If no such account is configured.
        """
        with self._lock.read():
            record = self._document.accounts.get(name)
            if record is None:
                raise AccountMissing(f"Account '{name}' not found", details={"account": name})
            return record.model_copy()

    def account_names(self) -> list[str]:
        """Return configured account names in lexicographic order."""
        with self._lock.read():
            return list(self._document.accounts)

    # ------------------------------------------------------------------ #
    # Mutators
    # ------------------------------------------------------------------ #

    def add_account(self, name: str, record: AccountRecord) -> None:
        """Add a new account and persist.

        Raises:
            AccountExists: ``name`` is already configured.
            AccountInvalid: ``name``, token or label is empty.
        """

        def apply(draft: ConfigDocument) -> None:
            if name in draft.accounts:
                raise AccountExists(f"Account '{name}' already exists", details={"account": name})
            _require_complete(name, record)
            draft.accounts[name] = record

        self._mutate("add_account", name, apply)

    def update_account(self, name: str, record: AccountRecord) -> None:
        """Replace an existing account and persist.

        Raises:
            AccountMissing: ``name`` is not configured.
            AccountInvalid: token or label is empty.
        """

        def apply(draft: ConfigDocument) -> None:
            if name not in draft.accounts:
                raise AccountMissing(f"Account '{name}' not found", details={"account": name})
            _require_complete(name, record)
            draft.accounts[name] = record

        self._mutate("update_account", name, apply)

    def remove_account(self, name: str) -> None:
        """Remove an account and persist.

        Raises:
            AccountMissing: ``name`` is not configured.
            DefaultAccountLocked: ``name`` is the default account.
        """

        def apply(draft: ConfigDocument) -> None:
            if name not in draft.accounts:
                raise AccountMissing(f"Account '{name}' not found", details={"account": name})
            if draft.system.default_account == name:
                raise DefaultAccountLocked(
                    f"Account '{name}' is the default account and cannot be removed",
                    details={"account": name},
                )
            del draft.accounts[name]

        self._mutate("remove_account", name, apply)

    def set_default_account(self, name: str) -> None:
        """Make ``name`` the default account and persist.

        Setting the current default again is a no-op.

        Raises:
            AccountMissing: ``name`` is not configured.
        """
        with self._lock.read():
            if self._document.system.default_account == name:
                return

        def apply(draft: ConfigDocument) -> None:
            if name not in draft.accounts:
                raise AccountMissing(f"Account '{name}' not found", details={"account": name})
            draft.system.default_account = name

        self._mutate("set_default_account", name, apply)

    def save(self, document: ConfigDocument | None = None) -> None:
        """Atomically write the live document, or install and write ``document``.

        Raises:
            ConfigValidate: ``document`` violates an invariant.
            ConfigPathUnsafe: The path escapes the allowed roots.
            ConfigIO: The file could not be written.
        """
        with self._lock.write():
            target = self._document if document is None else _revalidate(document)
            self._persist(target)
            self._install(target)
            logger.info("config_saved", extra={"extra": {"path": str(self._path)}})

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _mutate(
        self, operation: str, account: str, apply: Callable[[ConfigDocument], None]
    ) -> None:
        with self._lock.write():
            draft = self._document.model_copy(deep=True)
            apply(draft)
            document = _revalidate(draft)
            self._persist(document)
            self._install(document)
        logger.info(
            "config_updated",
            extra={"extra": {"operation": operation, "account": account, "version": self.version}},
        )

    def _install(self, document: ConfigDocument) -> None:
        self._document = document
        self._version += 1

    def _safe_path(self) -> Path:
        return ensure_safe_path(self._path, self._allowed_roots)

    def _read_file(self, *, missing_ok: bool) -> bytes | None:
        path = self._safe_path()
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            if missing_ok:
                return None
            raise ConfigIO(
                f"Configuration file not found: {path}", details={"path": str(path)}
            ) from exc
        except OSError as exc:
            raise ConfigIO(
                f"Cannot read configuration file: {exc.strerror}", details={"path": str(path)}
            ) from exc

    def _persist(self, document: ConfigDocument) -> None:
        path = self._safe_path()
        payload = render_document(document)
        try:
            path.parent.mkdir(parents=True, exist_ok=True, mode=DIR_MODE)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            try:
                with os.fdopen(fd, "wb") as fh:
                    fh.write(payload)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.chmod(tmp_name, FILE_MODE)
                os.replace(tmp_name, path)
            except BaseException:
                with suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            logger.error(
                "config_save_failed",
                extra={"extra": {"path": str(path), "error": exc.strerror or str(exc)}},
            )
            raise ConfigIO(
                f"Cannot write configuration file: {exc.strerror or exc}",
                details={"path": str(path)},
            ) from exc


def _require_complete(name: str, record: AccountRecord) -> None:
    if not name.strip():
        raise AccountInvalid("Account name must not be empty")
    if not record.token or not record.label:
        raise AccountInvalid(
            f"Account '{name}' requires both a token and a label", details={"account": name}
        )


def _revalidate(document: ConfigDocument) -> ConfigDocument:
    try:
        return ConfigDocument.model_validate(document.model_dump())
    except ValidationError as exc:
        raise ConfigValidate(
            "Configuration failed validation", details={"errors": validation_details(exc)}
        ) from exc
