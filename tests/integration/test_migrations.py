"""Tests that the Alembic history builds the same schema the models declare."""

from pathlib import Path

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine

from src.app.core.config import get_settings
from src.app.core.db import run_migrations_async

pytestmark = pytest.mark.integration

PROJECT_ROOT = Path(__file__).resolve().parents[2]


async def test_upgrade_head_creates_schema(tmp_path, settings_override):
    url = f"sqlite+aiosqlite:///{tmp_path / 'migrated.db'}"
    settings_override.setenv("DATABASE_URL", url)
    settings_override.chdir(PROJECT_ROOT)
    get_settings.cache_clear()

    await run_migrations_async()

    engine = create_async_engine(url)
    try:
        async with engine.connect() as conn:
            tables, owner_indexes = await conn.run_sync(
                lambda sync_conn: (
                    set(inspect(sync_conn).get_table_names()),
                    {ix["name"]: ix for ix in inspect(sync_conn).get_indexes("tenants")},
                )
            )
    finally:
        await engine.dispose()

    assert {
        "tenants",
        "tenant_members",
        "projects",
        "project_members",
        "invites",
        "alembic_version",
    } <= tables
    assert owner_indexes["uq_tenants_active_owner"]["unique"]
