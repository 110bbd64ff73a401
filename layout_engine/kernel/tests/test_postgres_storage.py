"""
Tests for PostgresConfigurationStore adapter.

Requires a running Postgres instance with the slot_configurations table
(alembic upgrade head).
"""

import os
import uuid

import asyncpg
import pytest

from layout_engine.kernel.errors import ConfigurationNotFound
from layout_engine.kernel.lifecycle import ConfigurationManager
from layout_engine.kernel.postgres_storage import PostgresConfigurationStore
from layout_engine.kernel.templates import default_snapshot
from layout_engine.kernel.types import Snapshot


@pytest.fixture
async def db_pool():
    """Create a connection pool for tests."""
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        pytest.skip("DATABASE_URL not set")

    pool = await asyncpg.create_pool(database_url)
    yield pool
    await pool.close()


@pytest.fixture
async def storage(db_pool):
    """Create a PostgresConfigurationStore instance."""
    return PostgresConfigurationStore(db_pool)


@pytest.fixture
def tenant_id():
    """A fresh tenant per test so rows never collide."""
    return f"test-{uuid.uuid4()}"


class TestPostgresConfigurationStore:
    """Test PostgresConfigurationStore draft and publish operations."""

    @pytest.mark.asyncio
    async def test_load_draft_creates_from_default(self, storage, tenant_id):
        default = default_snapshot("product").to_dict()
        record = await storage.load_draft(tenant_id, "product", default)

        assert record.status == "draft"
        assert record.payload == default
        assert record.version_number == 0

    @pytest.mark.asyncio
    async def test_load_draft_is_idempotent(self, storage, tenant_id):
        default = default_snapshot("cart").to_dict()
        first = await storage.load_draft(tenant_id, "cart", default)
        second = await storage.load_draft(tenant_id, "cart", {"version": 1, "slots": {}})
        assert second.id == first.id
        assert second.payload == default

    @pytest.mark.asyncio
    async def test_save_draft_overwrites(self, storage, tenant_id):
        await storage.load_draft(tenant_id, "cart", default_snapshot("cart").to_dict())
        empty = {"version": 1, "slots": {}, "rootOrder": []}
        saved = await storage.save_draft(tenant_id, "cart", empty)

        reloaded = await storage.load_draft(tenant_id, "cart", default_snapshot("cart").to_dict())
        assert reloaded.id == saved.id
        assert reloaded.payload == empty

    @pytest.mark.asyncio
    async def test_publish_copies_draft(self, storage, tenant_id):
        default = default_snapshot("product").to_dict()
        draft = await storage.load_draft(tenant_id, "product", default)

        first = await storage.publish(draft.id, tenant_id)
        second = await storage.publish(draft.id, tenant_id)

        assert (first.version_number, second.version_number) == (1, 2)
        assert first.payload == default
        latest = await storage.load_published(tenant_id, "product")
        assert latest.id == second.id

    @pytest.mark.asyncio
    async def test_publish_unknown_draft(self, storage, tenant_id):
        with pytest.raises(ConfigurationNotFound):
            await storage.publish(str(uuid.uuid4()), tenant_id)
        with pytest.raises(ConfigurationNotFound):
            await storage.publish("not-a-uuid", tenant_id)

    @pytest.mark.asyncio
    async def test_publish_scoped_to_tenant(self, storage, tenant_id):
        draft = await storage.load_draft(tenant_id, "product", default_snapshot("product").to_dict())
        with pytest.raises(ConfigurationNotFound):
            await storage.publish(draft.id, f"{tenant_id}-other")

    @pytest.mark.asyncio
    async def test_versions_and_lookup(self, storage, tenant_id):
        draft = await storage.load_draft(tenant_id, "checkout", default_snapshot("checkout").to_dict())
        published = [await storage.publish(draft.id, tenant_id) for _ in range(3)]

        versions = await storage.list_versions(tenant_id, "checkout", 2)
        assert [v.version_number for v in versions] == [3, 2]

        found = await storage.get_version(published[0].id, tenant_id)
        assert found.version_number == 1
        assert await storage.get_version(published[0].id, f"{tenant_id}-other") is None
        assert await storage.get_version("not-a-uuid", tenant_id) is None

    @pytest.mark.asyncio
    async def test_delete_draft_keeps_published(self, storage, tenant_id):
        draft = await storage.load_draft(tenant_id, "cart", default_snapshot("cart").to_dict())
        version = await storage.publish(draft.id, tenant_id)

        assert not await storage.delete_draft(draft.id, f"{tenant_id}-other")
        assert not await storage.delete_draft(version.id, tenant_id)
        assert await storage.delete_draft(draft.id, tenant_id)
        assert not await storage.delete_draft("not-a-uuid", tenant_id)

        assert (await storage.load_published(tenant_id, "cart")).id == version.id
        fresh = await storage.load_draft(tenant_id, "cart", default_snapshot("cart").to_dict())
        assert fresh.id != draft.id

    @pytest.mark.asyncio
    async def test_nothing_published(self, storage, tenant_id):
        assert await storage.load_published(tenant_id, "product") is None


class TestPostgresLifecycle:
    """End-to-end editor session against Postgres."""

    @pytest.mark.asyncio
    async def test_edit_publish_reload(self, storage, tenant_id):
        manager = ConfigurationManager(storage, debounce_seconds=0.01)
        session = await manager.open_draft(tenant_id, "product")
        session.resize("product_gallery", 8)
        await session.publish()
        await session.close()

        reopened = await manager.open_draft(tenant_id, "product")
        assert reopened.snapshot.slots["product_gallery"].col_span == 8
        published = await manager.load_published(tenant_id, "product")
        assert published == reopened.snapshot
        assert isinstance(published, Snapshot)
