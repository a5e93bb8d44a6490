"""Tests for the runion-admin command line."""

import json
from unittest.mock import patch

import pytest

from runion_admin.adapters.memory import InMemoryAdapter
from runion_admin.cli import build_parser, main

META = {"timestamp": "2026-02-13T02:00:00.000Z", "version": "1.0"}


@pytest.fixture
def cli_env(monkeypatch, tmp_path, seed):
    """Run commands in an empty directory against an in-memory database."""
    monkeypatch.chdir(tmp_path)
    for name in ("RUNION_DB_PROFILE", "RUNION_DATABASE_URL", "DATABASE_URL", "RUNION_CONFIG",
                 "RUNION_ACTOR_ID", "RUNION_ACTOR_NAME"):
        monkeypatch.delenv(name, raising=False)
    adapter = InMemoryAdapter(seed)
    with patch("runion_admin.cli.get_adapter", return_value=adapter), \
            patch("runion_admin.cli._configure_logging"):
        yield adapter


class TestParser:
    def test_global_options(self) -> None:
        args = build_parser().parse_args(["-p", "production", "restore", "b.json", "--mode", "merge"])
        assert args.profile == "production"
        assert args.mode == "merge"
        assert not args.yes

    def test_audit_filters_are_exclusive(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["audit", "--entity", "User", "u1", "--user", "u1"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestValidateCommand:
    def test_valid_file(self, cli_env, tmp_path, capsys) -> None:
        path = tmp_path / "b.json"
        path.write_text(json.dumps({"metadata": META, "data": {"users": [{"id": "u1"}]}}))
        assert main(["validate", str(path)]) == 0
        assert "Backup is valid" in capsys.readouterr().out

    def test_invalid_file(self, cli_env, tmp_path) -> None:
        path = tmp_path / "b.json"
        path.write_text("{nope")
        assert main(["validate", str(path)]) == 1


class TestDatabaseCommands:
    def test_backup_writes_file(self, cli_env, tmp_path) -> None:
        out = tmp_path / "out" / "manual.json"
        assert main(["backup", "-o", str(out)]) == 0
        document = json.loads(out.read_text(encoding="utf-8"))
        assert document["metadata"]["source"] == "manual"
        assert document["data"]["events"][0]["slug"] == "balaton-futas-2026"
        assert cli_env.closed

    def test_restore_cancelled(self, cli_env, seed, tmp_path, monkeypatch) -> None:
        path = tmp_path / "b.json"
        path.write_text(json.dumps({"metadata": META, "data": {}}))
        monkeypatch.setattr("builtins.input", lambda _prompt: "n")
        assert main(["restore", str(path)]) == 0
        assert cli_env.rows("User") == seed["User"]

    def test_restore_merge(self, cli_env, seed, tmp_path) -> None:
        path = tmp_path / "b.json"
        path.write_text(json.dumps({"metadata": META, "data": {"sponsors": [{"id": "sp1", "name": "OTP"}]}}))
        assert main(["restore", str(path), "--mode", "merge"]) == 0
        assert cli_env.rows("Sponsor") == [{"id": "sp1", "name": "OTP"}]
        assert cli_env.rows("User") == seed["User"]

    def test_export_registrations(self, cli_env, tmp_path) -> None:
        out = tmp_path / "regs.csv"
        assert main(["export-registrations", "balaton-futas-2026", "-o", str(out)]) == 0
        assert out.read_bytes().startswith("\ufeffsep=;\r\n".encode("utf-8"))

    def test_import_payments(self, cli_env, tmp_path) -> None:
        path = tmp_path / "pay.csv"
        path.write_text("ID;Fizetési Státusz\nr1;Fizetve\n", encoding="utf-8")
        assert main(["import-payments", str(path)]) == 0
        assert cli_env.rows("Registration")[0]["paymentStatus"] == "PAID"

    def test_delete_then_audit(self, cli_env, capsys) -> None:
        assert main(["delete", "Product", "p1"]) == 0
        assert main(["audit", "--entity", "Product", "p1"]) == 0
        assert "DELETE" in capsys.readouterr().out

    def test_missing_entity_fails(self, cli_env) -> None:
        assert main(["delete", "Product", "nope"]) == 1


class TestBackupDirectory:
    def test_list_backups(self, cli_env, tmp_path, capsys) -> None:
        (tmp_path / "runion.toml").write_text(f'[backup]\ndirectory = "{tmp_path.as_posix()}/daily"\n')
        daily = tmp_path / "daily"
        daily.mkdir()
        (daily / "backup-2026-10-18.json").write_text("{}")
        assert main(["list-backups"]) == 0
        assert "backup-2026-10-18.json" in capsys.readouterr().out

    def test_auto_backup(self, cli_env, tmp_path) -> None:
        (tmp_path / "runion.toml").write_text(f'[backup]\ndirectory = "{tmp_path.as_posix()}/daily"\n')
        assert main(["auto-backup"]) == 0
        [created] = (tmp_path / "daily").iterdir()
        assert created.name.startswith("backup-")
        assert created.name.endswith(".json")
