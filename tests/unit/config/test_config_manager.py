# tests/unit/config/test_config_manager.py
from __future__ import annotations

import os
import stat
import threading
import tomllib
from pathlib import Path

import pytest

from cloudmcp.config.document import AccountRecord
from cloudmcp.config.manager import ConfigManager
from cloudmcp.domain.exceptions import (
    AccountExists,
    AccountInvalid,
    AccountMissing,
    ConfigIO,
    ConfigParse,
    ConfigPathUnsafe,
    ConfigValidate,
    DefaultAccountLocked,
)

TOKEN = "abcdef123456789012345678901234567890abcd"


def _record(label: str = "Primary", token: str = TOKEN, apiurl: str = "") -> AccountRecord:
    return AccountRecord(token=token, label=label, apiurl=apiurl)


def test_add_default_and_reload_from_fresh_manager(config_path: Path) -> None:
    first = ConfigManager(config_path)
    first.load_or_create()
    first.add_account("primary", _record())
    first.set_default_account("primary")

    second = ConfigManager(config_path)
    second.load_or_create()
    snapshot = second.snapshot()

    assert snapshot.default_account == "primary"
    assert snapshot.accounts["primary"].label == "Primary"
    assert snapshot.accounts["primary"].token == TOKEN


def test_load_or_create_writes_defaults_with_owner_only_mode(config_path: Path) -> None:
    manager = ConfigManager(config_path)
    document = manager.load_or_create()

    assert config_path.is_file()
    assert stat.S_IMODE(config_path.stat().st_mode) == 0o600
    assert document.system.server_name == "CloudMCP"
    assert document.accounts == {}
    on_disk = tomllib.loads(config_path.read_text("utf-8"))
    assert on_disk["system"]["metrics_port"] == 8080
    assert "account" not in on_disk


def test_mutations_bump_version_and_persist(manager: ConfigManager) -> None:
    start = manager.version
    manager.add_account("beta", _record("Beta"))
    manager.add_account("alpha", _record("Alpha"))
    manager.update_account("beta", _record("Beta 2", apiurl="https://example.test/v4"))

    assert manager.version == start + 3
    assert manager.account_names() == ["alpha", "beta"]
    on_disk = tomllib.loads(manager.path.read_text("utf-8"))
    assert on_disk["account"]["beta"] == {
        "token": TOKEN,
        "label": "Beta 2",
        "apiurl": "https://example.test/v4",
    }


def test_add_existing_account_is_rejected_and_document_kept(manager: ConfigManager) -> None:
    manager.add_account("primary", _record())
    version = manager.version

    with pytest.raises(AccountExists):
        manager.add_account("primary", _record("Other"))

    assert manager.version == version
    assert manager.get_account("primary").label == "Primary"


def test_add_requires_token_and_label(manager: ConfigManager) -> None:
    with pytest.raises(AccountInvalid):
        manager.add_account("empty", AccountRecord())
    with pytest.raises(AccountInvalid):
        manager.add_account("   ", _record())
    assert manager.account_names() == []


def test_update_missing_account(manager: ConfigManager) -> None:
    with pytest.raises(AccountMissing) as excinfo:
        manager.update_account("ghost", _record())
    assert excinfo.value.details == {"account": "ghost"}


def test_remove_account_rules(manager: ConfigManager) -> None:
    manager.add_account("primary", _record())
    manager.add_account("secondary", _record("Secondary"))
    manager.set_default_account("primary")

    with pytest.raises(DefaultAccountLocked):
        manager.remove_account("primary")
    with pytest.raises(AccountMissing):
        manager.remove_account("ghost")

    manager.remove_account("secondary")
    assert manager.account_names() == ["primary"]


def test_set_default_is_idempotent(manager: ConfigManager) -> None:
    manager.add_account("primary", _record())
    manager.set_default_account("primary")
    version = manager.version

    manager.set_default_account("primary")

    assert manager.version == version
    with pytest.raises(AccountMissing):
        manager.set_default_account("ghost")


def test_snapshot_is_a_deep_copy(manager: ConfigManager) -> None:
    manager.add_account("primary", _record())
    snapshot = manager.snapshot()
    snapshot.accounts.pop("primary")
    snapshot.system.server_name = "Mutated"

    fresh = manager.snapshot()
    assert "primary" in fresh.accounts
    assert fresh.system.server_name == "CloudMCP"


def test_get_account_missing(manager: ConfigManager) -> None:
    with pytest.raises(AccountMissing):
        manager.get_account("nope")


def test_reload_picks_up_external_edit(manager: ConfigManager) -> None:
    manager.path.write_text(
        '[system]\nserver_name = "Edited"\n\n'
        f'[account.ops]\ntoken = "{TOKEN}"\nlabel = "Ops"\n',
        encoding="utf-8",
    )
    version = manager.version

    document = manager.reload()

    assert document.system.server_name == "Edited"
    assert manager.account_names() == ["ops"]
    assert manager.version == version + 1


def test_reload_of_removed_file_keeps_prior_document(manager: ConfigManager) -> None:
    manager.add_account("primary", _record())
    manager.path.unlink()

    with pytest.raises(ConfigIO):
        manager.reload()

    assert manager.account_names() == ["primary"]


def test_reload_rejects_invalid_content(manager: ConfigManager) -> None:
    manager.path.write_text("[system\nbroken", encoding="utf-8")
    with pytest.raises(ConfigParse):
        manager.reload()

    manager.path.write_text('[system]\ndefault_account = "ghost"\n', encoding="utf-8")
    with pytest.raises(ConfigValidate) as excinfo:
        manager.reload()
    assert excinfo.value.details["errors"]


def test_load_rejects_tokenless_account(config_path: Path) -> None:
    config_path.parent.mkdir(parents=True)
    config_path.write_text('[account.half]\nlabel = "No token"\n', encoding="utf-8")

    with pytest.raises(ConfigValidate):
        ConfigManager(config_path).load_or_create()


def test_traversal_outside_allowed_roots_is_refused(tmp_path: Path) -> None:
    root = tmp_path / "root"
    root.mkdir()
    sneaky = root / ".." / "outside" / "config.toml"

    with pytest.raises(ConfigPathUnsafe):
        ConfigManager(sneaky, allowed_roots=[root]).load_or_create()


def test_traversal_inside_allowed_root_is_accepted(tmp_path: Path) -> None:
    (tmp_path / "a").mkdir()
    path = tmp_path / "a" / ".." / "b" / "config.toml"
    manager = ConfigManager(path, allowed_roots=[tmp_path])
    manager.load_or_create()
    assert (tmp_path / "b" / "config.toml").is_file()


def test_failed_write_leaves_document_and_no_temp_files(
    manager: ConfigManager, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _replace(src: str, dst: str) -> None:
        raise OSError(28, "No space left on device")

    with monkeypatch.context() as patched, pytest.raises(ConfigIO):
        patched.setattr(os, "replace", _replace)
        manager.add_account("primary", _record())

    assert manager.account_names() == []
    leftovers = [p.name for p in manager.path.parent.iterdir() if p.name.endswith(".tmp")]
    assert leftovers == []


def test_save_installs_given_document(manager: ConfigManager) -> None:
    document = manager.snapshot()
    document.system.server_name = "Renamed"

    manager.save(document)

    assert manager.snapshot().system.server_name == "Renamed"
    assert 'server_name = "Renamed"' in manager.path.read_text("utf-8")


def test_concurrent_mutations_are_serialized(manager: ConfigManager) -> None:
    names = [f"acct{i:02d}" for i in range(16)]
    errors: list[BaseException] = []

    def _add(name: str) -> None:
        try:
            manager.add_account(name, _record(name))
        except BaseException as exc:  # pragma: no cover - surfaced below
            errors.append(exc)

    threads = [threading.Thread(target=_add, args=(n,)) for n in names]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    assert manager.account_names() == names
    reloaded = ConfigManager(manager.path)
    reloaded.load_or_create()
    assert reloaded.account_names() == names
