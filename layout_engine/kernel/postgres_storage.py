"""
PostgresConfigurationStore adapter for the layout engine lifecycle layer.

Implements the ConfigurationStore interface using Postgres as the backend.
Drafts and published versions share the slot_configurations table; the
status column tells them apart.
"""

from __future__ import annotations

import json
import uuid
from typing import Any

import asyncpg

from layout_engine.kernel.errors import ConfigurationNotFound
from layout_engine.kernel.lifecycle import DRAFT, PUBLISHED, ConfigurationRecord, ConfigurationStore
from layout_engine.utils.snapshot_hash import hash_snapshot

_COLUMNS = "id, tenant_id, page_type, status, payload, version_number, snapshot_hash, updated_at"


class PostgresConfigurationStore(ConfigurationStore):
    """
    Postgres-based storage for slot configurations.

    One row per draft (unique per tenant and page type) and one immutable
    row per published version.
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def load_draft(self, tenant_id: str, page_type: str, default_payload: dict[str, Any]) -> ConfigurationRecord:
        """Fetch the draft, inserting `default_payload` first if none exists."""
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO slot_configurations (tenant_id, page_type, status, payload, snapshot_hash)
                VALUES ($1, $2, 'draft', $3::jsonb, $4)
                ON CONFLICT (tenant_id, page_type) WHERE status = 'draft'
                DO NOTHING
                """,
                tenant_id,
                page_type,
                json.dumps(default_payload),
                hash_snapshot(default_payload),
            )
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM slot_configurations WHERE tenant_id = $1 AND page_type = $2 AND status = $3",
                tenant_id,
                page_type,
                DRAFT,
            )
            return _record(row)

    async def save_draft(self, tenant_id: str, page_type: str, payload: dict[str, Any]) -> ConfigurationRecord:
        """Overwrite the draft payload. Last write wins."""
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO slot_configurations (tenant_id, page_type, status, payload, snapshot_hash)
                VALUES ($1, $2, 'draft', $3::jsonb, $4)
                ON CONFLICT (tenant_id, page_type) WHERE status = 'draft'
                DO UPDATE SET payload = EXCLUDED.payload,
                              snapshot_hash = EXCLUDED.snapshot_hash,
                              updated_at = now()
                RETURNING {_COLUMNS}
                """,
                tenant_id,
                page_type,
                json.dumps(payload),
                hash_snapshot(payload),
            )
            return _record(row)

    async def delete_draft(self, draft_id: str, tenant_id: str) -> bool:
        """Delete the draft row. Published versions are never touched."""
        draft_uuid = _parse_uuid(draft_id)
        if draft_uuid is None:
            return False
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "DELETE FROM slot_configurations WHERE id = $1 AND tenant_id = $2 AND status = 'draft' RETURNING id",
                draft_uuid,
                tenant_id,
            )
            return row is not None

    async def publish(self, draft_id: str, tenant_id: str) -> ConfigurationRecord:
        """Copy the stored draft into the next published version, in one transaction."""
        draft_uuid = _parse_uuid(draft_id)
        if draft_uuid is None:
            raise ConfigurationNotFound(f"no draft {draft_id} for tenant {tenant_id}")

        async with self.pool.acquire() as conn:
            async with conn.transaction():
                # Locking the draft row serializes concurrent publishes of the same page
                draft = await conn.fetchrow(
                    """
                    SELECT id FROM slot_configurations
                    WHERE id = $1 AND tenant_id = $2 AND status = 'draft'
                    FOR UPDATE
                    """,
                    draft_uuid,
                    tenant_id,
                )
                if draft is None:
                    raise ConfigurationNotFound(f"no draft {draft_id} for tenant {tenant_id}")

                row = await conn.fetchrow(
                    f"""
                    INSERT INTO slot_configurations
                        (tenant_id, page_type, status, payload, version_number, snapshot_hash)
                    SELECT d.tenant_id, d.page_type, 'published', d.payload,
                           (SELECT COALESCE(MAX(p.version_number), 0) + 1
                              FROM slot_configurations p
                             WHERE p.tenant_id = d.tenant_id
                               AND p.page_type = d.page_type
                               AND p.status = 'published'),
                           d.snapshot_hash
                    FROM slot_configurations d
                    WHERE d.id = $1
                    RETURNING {_COLUMNS}
                    """,
                    draft_uuid,
                )
                return _record(row)

    async def load_published(self, tenant_id: str, page_type: str) -> ConfigurationRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                SELECT {_COLUMNS} FROM slot_configurations
                WHERE tenant_id = $1 AND page_type = $2 AND status = $3
                ORDER BY version_number DESC
                LIMIT 1
                """,
                tenant_id,
                page_type,
                PUBLISHED,
            )
            return _record(row) if row else None

    async def list_versions(self, tenant_id: str, page_type: str, limit: int) -> list[ConfigurationRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"""
                SELECT {_COLUMNS} FROM slot_configurations
                WHERE tenant_id = $1 AND page_type = $2 AND status = $3
                ORDER BY version_number DESC
                LIMIT $4
                """,
                tenant_id,
                page_type,
                PUBLISHED,
                limit,
            )
            return [_record(row) for row in rows]

    async def get_version(self, version_id: str, tenant_id: str) -> ConfigurationRecord | None:
        version_uuid = _parse_uuid(version_id)
        if version_uuid is None:
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM slot_configurations WHERE id = $1 AND tenant_id = $2 AND status = $3",
                version_uuid,
                tenant_id,
                PUBLISHED,
            )
            return _record(row) if row else None

    async def close(self) -> None:
        """Close the connection pool."""
        await self.pool.close()


def _parse_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _record(row: asyncpg.Record) -> ConfigurationRecord:
    payload = row["payload"]
    # asyncpg hands back JSONB as text unless a codec is registered on the pool
    if isinstance(payload, str):
        payload = json.loads(payload)
    return ConfigurationRecord(
        id=str(row["id"]),
        tenant_id=row["tenant_id"],
        page_type=row["page_type"],
        status=row["status"],
        payload=payload,
        version_number=row["version_number"],
        snapshot_hash=row["snapshot_hash"],
        updated_at=row["updated_at"].isoformat(),
    )
