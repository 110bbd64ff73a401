"""create slot_configurations table for layout drafts and published versions

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op


revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # One row per draft, one immutable row per published version
    op.execute("""
        CREATE TABLE slot_configurations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            tenant_id TEXT NOT NULL,
            page_type TEXT NOT NULL,
            status TEXT NOT NULL CHECK (status IN ('draft', 'published')),
            payload JSONB NOT NULL,
            version_number INTEGER NOT NULL DEFAULT 0,
            snapshot_hash TEXT NOT NULL DEFAULT '',
            created_at TIMESTAMPTZ DEFAULT now(),
            updated_at TIMESTAMPTZ DEFAULT now()
        );
    """)

    # At most one draft per tenant and page type (ON CONFLICT target for draft upserts)
    op.execute("""
        CREATE UNIQUE INDEX idx_slot_configurations_draft
        ON slot_configurations(tenant_id, page_type)
        WHERE status = 'draft';
    """)

    # Published version numbers are unique per tenant and page type
    op.execute("""
        CREATE UNIQUE INDEX idx_slot_configurations_version
        ON slot_configurations(tenant_id, page_type, version_number)
        WHERE status = 'published';
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS slot_configurations CASCADE;")
