"""Tests for the audit logger."""

import logging
from unittest.mock import AsyncMock

import pytest

from runion_admin.adapters.memory import InMemoryAdapter
from runion_admin.audit import (
    MAX_LOG_LIMIT,
    AuditAction,
    get_logs_by_user,
    get_logs_for_entity,
    get_recent_logs,
    log_action,
    snapshot,
)


class TestLogAction:
    async def test_writes_entry(self, admin) -> None:
        """Entry carries actor, action and snapshot in camelCase columns."""
        db = InMemoryAdapter()
        outcome = await log_action(
            db, AuditAction.DELETE, "Registration", "r1", {"id": "r1", "finalPrice": 8000}, actor=admin
        )
        assert outcome.ok
        assert outcome.warnings == []
        [row] = db.rows("AuditLog")
        assert row["userId"] == "org"
        assert row["userName"] == "Nagy Péter"
        assert row["action"] == "DELETE"
        assert row["entityType"] == "Registration"
        assert row["entityId"] == "r1"
        assert row["entityData"] == {"id": "r1", "finalPrice": 8000}
        assert row["createdAt"]

    async def test_no_actor_is_system(self) -> None:
        db = InMemoryAdapter()
        await log_action(db, AuditAction.UPDATE, "Event", "e1")
        [row] = db.rows("AuditLog")
        assert row["userId"] == "SYSTEM"
        assert row["userName"] == "SYSTEM"
        assert row["entityData"] is None

    async def test_snapshot_is_detached(self) -> None:
        """Mutating the source after logging does not change the stored snapshot."""
        db = InMemoryAdapter()
        data = {"id": "e1", "tags": ["a"]}
        await log_action(db, AuditAction.UPDATE, "Event", "e1", data)
        data["tags"].append("b")
        assert db.rows("AuditLog")[0]["entityData"] == {"id": "e1", "tags": ["a"]}

    async def test_failure_never_raises(self, caplog) -> None:
        """A failing audit write is logged and returned as a warning."""
        db = AsyncMock()
        db.insert = AsyncMock(side_effect=RuntimeError("db down"))
        with caplog.at_level(logging.ERROR, logger="runion_admin.audit"):
            outcome = await log_action(db, AuditAction.DELETE, "User", "u1", {"id": "u1"})
        assert not outcome.ok
        assert "db down" in outcome.warnings[0]
        assert "Audit log failed" in caplog.text

    def test_snapshot_helper(self) -> None:
        assert snapshot(None) is None
        assert snapshot({"n": 1}) == {"n": 1}


class TestReadLogs:
    async def _seed(self) -> InMemoryAdapter:
        rows = [
            {"id": f"l{i}", "userId": "org" if i % 2 else "u1", "userName": "x", "action": "DELETE",
             "entityType": "Registration", "entityId": "r1" if i < 3 else "r2", "entityData": None,
             "ipAddress": None, "userAgent": None, "createdAt": f"2026-01-0{i + 1}T00:00:00+00:00"}
            for i in range(5)
        ]
        return InMemoryAdapter({"AuditLog": rows})

    async def test_for_entity_newest_first(self) -> None:
        db = await self._seed()
        entries = await get_logs_for_entity(db, "Registration", "r1")
        assert [e.id for e in entries] == ["l2", "l1", "l0"]

    async def test_recent_limit(self) -> None:
        db = await self._seed()
        entries = await get_recent_logs(db, limit=2)
        assert [e.id for e in entries] == ["l4", "l3"]

    @pytest.mark.parametrize(
        "read",
        [
            lambda db, limit: get_recent_logs(db, limit=limit),
            lambda db, limit: get_logs_for_entity(db, "Registration", "r1", limit=limit),
            lambda db, limit: get_logs_by_user(db, "org", limit=limit),
        ],
        ids=["recent", "entity", "user"],
    )
    @pytest.mark.parametrize("requested, applied", [(50_000, MAX_LOG_LIMIT), (0, 1)])
    async def test_every_reader_clamps_limit(self, read, requested, applied) -> None:
        db = AsyncMock()
        db.select = AsyncMock(return_value=[])
        await read(db, requested)
        assert db.select.call_args.kwargs["limit"] == applied

    async def test_by_user(self) -> None:
        db = await self._seed()
        entries = await get_logs_by_user(db, "org")
        assert {e.user_id for e in entries} == {"org"}
        assert len(entries) == 2

    async def test_read_failure_returns_empty(self) -> None:
        db = AsyncMock()
        db.select = AsyncMock(side_effect=RuntimeError("db down"))
        assert await get_recent_logs(db) == []
