"""Tests for schema setup and the database health check."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app import database
from app.models import metadata


@pytest.mark.asyncio
async def test_create_schema_installs_extensions_first():
    conn = AsyncMock()
    bind = MagicMock()
    bind.begin.return_value.__aenter__.return_value = conn

    tables = await database.create_schema(bind)

    statements = [str(call.args[0]) for call in conn.execute.await_args_list]
    assert statements == [
        'CREATE EXTENSION IF NOT EXISTS "pgcrypto"',
        'CREATE EXTENSION IF NOT EXISTS "btree_gist"',
    ]
    conn.run_sync.assert_awaited_once_with(metadata.create_all)
    assert "appointments" in tables


@pytest.mark.asyncio
async def test_health_check_reports_unreachable_database(monkeypatch):
    engine = MagicMock()
    engine.connect.side_effect = OperationalError("SELECT 1", {}, OSError("refused"))
    monkeypatch.setattr(database, "engine", engine)

    assert await database.check_database_connection() is False
