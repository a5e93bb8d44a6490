"""Tests for backup document parsing, legacy shapes, and file validation."""

import json

import pytest

from runion_admin.backup.document import dump_backup, flatten_relations, parse_backup, validate_backup
from runion_admin.backup.models import BackupDocument, BackupMetadata
from runion_admin.errors import BackupFormatError
from runion_admin.store import LEGACY_KEYS, RUNION_SCHEMA

META = {"timestamp": "2026-02-13T02:00:00.000Z", "version": "1.0", "generator": "Runion Backup System"}


def _text(data: dict, metadata: dict | None = None) -> str:
    return json.dumps({"metadata": metadata or META, "data": data})


class TestParseBackup:
    def test_canonical_shape(self) -> None:
        doc = parse_backup(_text({"users": [{"id": "u1"}], "events": []}), RUNION_SCHEMA)
        assert doc.metadata.version == "1.0"
        assert doc.data["users"] == [{"id": "u1"}]

    def test_invalid_json(self) -> None:
        with pytest.raises(BackupFormatError, match="Invalid JSON"):
            parse_backup("{not json", RUNION_SCHEMA)

    def test_missing_data(self) -> None:
        with pytest.raises(BackupFormatError, match="missing data"):
            parse_backup(json.dumps({"metadata": META}), RUNION_SCHEMA)

    def test_missing_everything(self) -> None:
        with pytest.raises(BackupFormatError, match="missing metadata, data"):
            parse_backup(json.dumps({"hello": "world"}), RUNION_SCHEMA)

    def test_nested_relations_are_flattened(self) -> None:
        """events[].distances[].priceTiers[] and orders[].items[] surface as flat arrays."""
        data = {
            "events": [{"id": "e1", "distances": [
                {"id": "d1", "priceTiers": [{"id": "pt1", "name": "Early"}]},
            ]}],
            "orders": [{"id": "o1", "items": [{"id": "oi1", "productId": "p1"}]}],
        }
        doc = parse_backup(_text(data), RUNION_SCHEMA)
        assert doc.data["distances"][0]["eventId"] == "e1"
        assert doc.data["priceTiers"] == [{"id": "pt1", "name": "Early", "distanceId": "d1"}]
        assert doc.data["orderItems"] == [{"id": "oi1", "productId": "p1", "orderId": "o1"}]

    def test_flat_array_wins_over_nested(self) -> None:
        data = {
            "orders": [{"id": "o1", "items": [{"id": "nested"}]}],
            "orderItems": [{"id": "flat", "orderId": "o1"}],
        }
        doc = parse_backup(_text(data), RUNION_SCHEMA)
        assert [i["id"] for i in doc.data["orderItems"]] == ["flat"]

    def test_pull_backup_shape(self) -> None:
        raw = {
            "timestamp": "2026-01-05T10:00:00Z",
            "users": [{"id": "u1"}],
            "globalSettings": {"id": "gs", "shopEnabled": True},
        }
        doc = parse_backup(json.dumps(raw), RUNION_SCHEMA)
        assert doc.metadata.source == "pull-backup"
        assert doc.data["globalSettings"] == [{"id": "gs", "shopEnabled": True}]

    def test_legacy_features_key(self) -> None:
        doc = parse_backup(_text({"features": [{"id": "f1"}]}), RUNION_SCHEMA, LEGACY_KEYS)
        assert doc.data["homepageFeatures"] == [{"id": "f1"}]
        assert "features" not in doc.data

    def test_flatten_keeps_input_untouched(self) -> None:
        data = {"orders": [{"id": "o1", "items": [{"id": "oi1"}]}]}
        flatten_relations(data, RUNION_SCHEMA)
        assert "orderItems" not in data
        assert "orderId" not in data["orders"][0]["items"][0]


class TestDumpBackup:
    def test_unicode_and_indent(self) -> None:
        doc = BackupDocument(metadata=BackupMetadata(**META), data={"faqs": [{"id": "f1", "question": "Mikor?"}]})
        text = dump_backup(doc)
        assert '"Mikor?"' in text
        assert text.startswith("{\n  ")
        assert parse_backup(text, RUNION_SCHEMA).data == doc.data


class TestValidateBackup:
    def test_valid_file(self, tmp_path) -> None:
        path = tmp_path / "b.json"
        path.write_text(_text({"users": [{"id": "u1"}], "events": [{"id": "e1", "organizerId": "u1"}]}))
        report = validate_backup(path, RUNION_SCHEMA)
        assert report["valid"]
        assert report["errors"] == []
        assert report["counts"]["users"] == 1

    def test_missing_file(self, tmp_path) -> None:
        report = validate_backup(tmp_path / "nope.json", RUNION_SCHEMA)
        assert not report["valid"]
        assert "not found" in report["errors"][0]

    def test_missing_pk_and_version(self, tmp_path) -> None:
        path = tmp_path / "b.json"
        path.write_text(_text({"users": [{"email": "x"}]}, {**META, "version": "9.9"}))
        report = validate_backup(path, RUNION_SCHEMA)
        assert not report["valid"]
        assert any("Unsupported backup version" in e for e in report["errors"])
        assert any("users row 0 missing 'id'" in e for e in report["errors"])

    def test_warnings_for_unknown_tables_and_orphans(self, tmp_path) -> None:
        path = tmp_path / "b.json"
        path.write_text(_text({
            "users": [{"id": "u1"}],
            "events": [{"id": "e1", "organizerId": "ghost"}],
            "widgets": [{"id": "w1"}],
        }))
        report = validate_backup(path, RUNION_SCHEMA)
        assert report["valid"]
        assert "Unknown table 'widgets' will be ignored" in report["warnings"]
        assert any("Orphaned events 'e1'" in w for w in report["warnings"])
