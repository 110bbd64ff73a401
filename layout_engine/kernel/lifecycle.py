"""
Layout Engine Kernel — Configuration Lifecycle

Drafts, auto-save, publish, and undo for one (tenant, page type) layout.

    manager = ConfigurationManager(store, protected_slots=PROTECTED_SLOT_IDS)
    session = await manager.open_draft("tenant-1", "product")
    session.resize("product_gallery", 8)         # in memory now, saved shortly
    session.execute(commands_from_assistant)     # one undoable batch
    await session.publish()                      # flush, then copy draft to a published version

Editing is synchronous and in memory. Only the store calls are async, and
they never run before the in-memory snapshot has been swapped, so a slow or
failing store never blocks or corrupts editing.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from layout_engine.config import settings
from layout_engine.kernel.draft_saver import DraftSaver
from layout_engine.kernel.errors import ConfigurationNotFound, PersistenceError, SnapshotParseError
from layout_engine.kernel.invariants import validate
from layout_engine.kernel.processor import BatchResult, CommandProcessor
from layout_engine.kernel.reducer import (
    MutationResult,
    create_slot,
    delete_slot,
    move_relative,
    move_slot,
    reorder_children,
    resize_slot,
    update_slot,
)
from layout_engine.kernel.templates import PageTemplate, get_template
from layout_engine.kernel.types import Snapshot
from layout_engine.utils.snapshot_hash import hash_snapshot

logger = logging.getLogger(__name__)

DRAFT = "draft"
PUBLISHED = "published"


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


# ---------------------------------------------------------------------------
# Stored records
# ---------------------------------------------------------------------------


@dataclass
class ConfigurationRecord:
    """
    One stored configuration row.

    Drafts have version_number 0 and there is at most one per (tenant, page
    type). Published versions are numbered from 1 and never change.
    """

    id: str
    tenant_id: str
    page_type: str
    status: str
    payload: dict[str, Any]
    version_number: int = 0
    snapshot_hash: str = ""
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tenantId": self.tenant_id,
            "pageType": self.page_type,
            "status": self.status,
            "versionNumber": self.version_number,
            "snapshotHash": self.snapshot_hash,
            "updatedAt": self.updated_at,
        }


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class ConfigurationStore:
    """
    Abstract storage interface.
    Implement with Postgres for production, or in-memory for tests.
    """

    async def load_draft(self, tenant_id: str, page_type: str, default_payload: dict[str, Any]) -> ConfigurationRecord:
        """Return the draft, creating it from `default_payload` if there is none."""
        raise NotImplementedError

    async def save_draft(self, tenant_id: str, page_type: str, payload: dict[str, Any]) -> ConfigurationRecord:
        """Overwrite the draft payload, creating the draft if there is none."""
        raise NotImplementedError

    async def delete_draft(self, draft_id: str, tenant_id: str) -> bool:
        """Delete a draft, scoped to the tenant. False if there was no such draft."""
        raise NotImplementedError

    async def publish(self, draft_id: str, tenant_id: str) -> ConfigurationRecord:
        """Copy the stored draft into a new published version, atomically."""
        raise NotImplementedError

    async def load_published(self, tenant_id: str, page_type: str) -> ConfigurationRecord | None:
        """Newest published version, or None if never published."""
        raise NotImplementedError

    async def list_versions(self, tenant_id: str, page_type: str, limit: int) -> list[ConfigurationRecord]:
        """Published versions, newest first."""
        raise NotImplementedError

    async def get_version(self, version_id: str, tenant_id: str) -> ConfigurationRecord | None:
        """A published version by id, scoped to the tenant."""
        raise NotImplementedError


class MemoryConfigurationStore(ConfigurationStore):
    """In-memory storage for testing. Payloads are deep-copied in and out."""

    def __init__(self) -> None:
        self.drafts: dict[tuple[str, str], ConfigurationRecord] = {}
        self.published: dict[tuple[str, str], list[ConfigurationRecord]] = {}
        self.save_calls = 0

    async def load_draft(self, tenant_id: str, page_type: str, default_payload: dict[str, Any]) -> ConfigurationRecord:
        key = (tenant_id, page_type)
        if key not in self.drafts:
            self.drafts[key] = ConfigurationRecord(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                page_type=page_type,
                status=DRAFT,
                payload=copy.deepcopy(default_payload),
                snapshot_hash=hash_snapshot(default_payload),
            )
        return _copy_record(self.drafts[key])

    async def save_draft(self, tenant_id: str, page_type: str, payload: dict[str, Any]) -> ConfigurationRecord:
        self.save_calls += 1
        key = (tenant_id, page_type)
        record = self.drafts.get(key)
        if record is None:
            record = ConfigurationRecord(
                id=str(uuid.uuid4()), tenant_id=tenant_id, page_type=page_type, status=DRAFT, payload={}
            )
            self.drafts[key] = record
        record.payload = copy.deepcopy(payload)
        record.snapshot_hash = hash_snapshot(payload)
        record.updated_at = now_iso()
        return _copy_record(record)

    async def delete_draft(self, draft_id: str, tenant_id: str) -> bool:
        for key, record in self.drafts.items():
            if record.id == draft_id and record.tenant_id == tenant_id:
                del self.drafts[key]
                return True
        return False

    async def publish(self, draft_id: str, tenant_id: str) -> ConfigurationRecord:
        draft = next(
            (r for r in self.drafts.values() if r.id == draft_id and r.tenant_id == tenant_id),
            None,
        )
        if draft is None:
            raise ConfigurationNotFound(f"no draft {draft_id} for tenant {tenant_id}")
        history = self.published.setdefault((tenant_id, draft.page_type), [])
        version = ConfigurationRecord(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            page_type=draft.page_type,
            status=PUBLISHED,
            payload=copy.deepcopy(draft.payload),
            version_number=len(history) + 1,
            snapshot_hash=draft.snapshot_hash,
        )
        history.append(version)
        return _copy_record(version)

    async def load_published(self, tenant_id: str, page_type: str) -> ConfigurationRecord | None:
        history = self.published.get((tenant_id, page_type))
        return _copy_record(history[-1]) if history else None

    async def list_versions(self, tenant_id: str, page_type: str, limit: int) -> list[ConfigurationRecord]:
        history = self.published.get((tenant_id, page_type), [])
        return [_copy_record(r) for r in reversed(history)][:limit]

    async def get_version(self, version_id: str, tenant_id: str) -> ConfigurationRecord | None:
        for history in self.published.values():
            for record in history:
                if record.id == version_id and record.tenant_id == tenant_id:
                    return _copy_record(record)
        return None


def _copy_record(record: ConfigurationRecord) -> ConfigurationRecord:
    return copy.deepcopy(record)


def checked_snapshot(payload: Any, label: str) -> Snapshot:
    """Parse a stored payload and require a valid tree. Raises SnapshotParseError."""
    snapshot = Snapshot.from_dict(payload)
    violations = validate(snapshot)
    if violations:
        raise SnapshotParseError(f"{label} is invalid: {[str(v) for v in violations]}")
    return snapshot


# ---------------------------------------------------------------------------
# Editor session
# ---------------------------------------------------------------------------


class EditorSession:
    """
    The working draft of one (tenant, page type), plus its auto-saver.

    Every committed change swaps `snapshot` and schedules a draft save.
    Rejected changes leave everything as it was. Edits must run inside an
    event loop; outside one they raise RuntimeError and change nothing.
    """

    def __init__(
        self,
        store: ConfigurationStore,
        record: ConfigurationRecord,
        snapshot: Snapshot,
        template: PageTemplate,
        processor: CommandProcessor,
        *,
        recovered_from_default: bool = False,
        debounce_seconds: float | None = None,
        save_retries: int | None = None,
    ) -> None:
        self.store = store
        self.tenant_id = record.tenant_id
        self.page_type = record.page_type
        self.template = template
        self.processor = processor
        self.recovered_from_default = recovered_from_default

        self._draft_id = record.id
        self._snapshot = snapshot
        self._undo: Snapshot | None = None
        self._saver = DraftSaver(
            self._save_draft,
            delay=settings.DRAFT_SAVE_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds,
            retries=settings.DRAFT_SAVE_RETRIES if save_retries is None else save_retries,
            label=f"{self.tenant_id}/{self.page_type}",
        )
        if not recovered_from_default:
            self._saver.mark_saved(record.payload)

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def draft_id(self) -> str:
        return self._draft_id

    @property
    def can_undo(self) -> bool:
        return self._undo is not None

    @property
    def persistence_error(self) -> BaseException | None:
        """Last draft save failure, cleared by the next successful save."""
        return self._saver.error

    @property
    def saving(self) -> bool:
        return self._saver.pending

    # -- direct edits (drag-drop surface) --

    def create(self, slot_type: str, parent_id: str | None = None, content: str = "", **kwargs: Any) -> MutationResult:
        return self._apply(create_slot(self._snapshot, slot_type, parent_id, content, **kwargs))

    def delete(self, slot_id: str) -> MutationResult:
        return self._apply(delete_slot(self._snapshot, slot_id))

    def move(self, slot_id: str, new_parent_id: str | None, position: int | None = None) -> MutationResult:
        return self._apply(move_slot(self._snapshot, slot_id, new_parent_id, position))

    def move_relative(self, slot_id: str, anchor_id: str, placement: str) -> MutationResult:
        return self._apply(move_relative(self._snapshot, slot_id, anchor_id, placement))

    def resize(self, slot_id: str, col_span: int, row_span: int | None = None) -> MutationResult:
        return self._apply(resize_slot(self._snapshot, slot_id, col_span, row_span))

    def reorder(self, parent_id: str | None, ordered_ids: list[str]) -> MutationResult:
        return self._apply(reorder_children(self._snapshot, parent_id, ordered_ids))

    def update(self, slot_id: str, **changes: Any) -> MutationResult:
        return self._apply(update_slot(self._snapshot, slot_id, **changes))

    # -- batches and undo --

    def execute(self, commands: Sequence[Any]) -> BatchResult:
        """
        Run a command batch against the draft. If anything applied, the
        pre-batch snapshot becomes the undo point.
        """
        result = self.processor.execute(commands, self._snapshot)
        if result.executed_count and result.changed:
            self._swap(result.snapshot, undo_point=result.previous)
        return result

    def undo_last_batch(self) -> bool:
        """Restore the snapshot from before the last batch. Single level."""
        if self._undo is None:
            return False
        self._swap(self._undo)
        logger.info("EditorSession[%s/%s]: undid last batch", self.tenant_id, self.page_type)
        return True

    def reset_layout(self) -> Snapshot:
        """Replace the draft with the page type's default layout. Undoable."""
        self._swap(self.template.build(), undo_point=self._snapshot)
        logger.info("EditorSession[%s/%s]: layout reset to default", self.tenant_id, self.page_type)
        return self._snapshot

    async def revert_to_version(self, version_id: str) -> Snapshot:
        """Load a published version into the draft. Undoable."""
        try:
            record = await self.store.get_version(version_id, self.tenant_id)
        except Exception as e:
            logger.exception(
                "EditorSession[%s/%s]: loading version %s failed", self.tenant_id, self.page_type, version_id
            )
            raise PersistenceError(f"could not load version {version_id}: {e}") from e
        if record is None or record.page_type != self.page_type:
            raise ConfigurationNotFound(f"no published {self.page_type} version {version_id}")

        snapshot = checked_snapshot(record.payload, f"version {version_id}")
        self._swap(snapshot, undo_point=self._snapshot)
        logger.info(
            "EditorSession[%s/%s]: reverted draft to version %d",
            self.tenant_id,
            self.page_type,
            record.version_number,
        )
        return self._snapshot

    # -- persistence --

    async def flush(self) -> None:
        """Write any pending draft save now. Raises PersistenceError on failure."""
        await self._saver.flush()

    async def publish(self) -> ConfigurationRecord:
        """
        Make the current draft the live layout.
        The draft is flushed first so the published copy matches what is on screen.
        """
        # A recovered draft was never written, so the stored payload can differ
        self._saver.schedule(self._snapshot.to_dict())
        await self.flush()
        try:
            record = await self.store.publish(self._draft_id, self.tenant_id)
        except (PersistenceError, ConfigurationNotFound):
            raise
        except Exception as e:
            logger.exception("EditorSession[%s/%s]: publish failed", self.tenant_id, self.page_type)
            raise PersistenceError(f"publish failed: {e}") from e
        logger.info(
            "EditorSession[%s/%s]: published version %d (%s)",
            self.tenant_id,
            self.page_type,
            record.version_number,
            record.snapshot_hash,
        )
        return record

    async def has_unpublished_changes(self) -> bool:
        """True when the draft differs from the live layout, or nothing is live yet."""
        try:
            live = await self.store.load_published(self.tenant_id, self.page_type)
        except Exception as e:
            logger.exception("EditorSession[%s/%s]: loading live layout failed", self.tenant_id, self.page_type)
            raise PersistenceError(f"could not load live layout: {e}") from e
        if live is None:
            return True
        return hash_snapshot(self._snapshot) != live.snapshot_hash

    async def discard_draft(self) -> Snapshot:
        """
        Throw the draft away and start a new one from the live layout, or from
        the default template if nothing is live. Pending saves are dropped and
        the undo point is cleared.
        """
        await self._saver.discard()
        try:
            await self.store.delete_draft(self._draft_id, self.tenant_id)
            live = await self.store.load_published(self.tenant_id, self.page_type)
        except Exception as e:
            logger.exception("EditorSession[%s/%s]: discarding draft failed", self.tenant_id, self.page_type)
            raise PersistenceError(f"could not discard draft: {e}") from e

        snapshot = self.template.build() if live is None else checked_snapshot(live.payload, "live layout")
        try:
            record = await self.store.save_draft(self.tenant_id, self.page_type, snapshot.to_dict())
        except Exception as e:
            logger.exception("EditorSession[%s/%s]: recreating draft failed", self.tenant_id, self.page_type)
            raise PersistenceError(f"could not recreate draft: {e}") from e

        self._draft_id = record.id
        self._undo = None
        self._snapshot = snapshot
        self.recovered_from_default = False
        self._saver.mark_saved(record.payload)
        logger.info(
            "EditorSession[%s/%s]: draft discarded, restarted from %s",
            self.tenant_id,
            self.page_type,
            "default layout" if live is None else f"version {live.version_number}",
        )
        return snapshot

    async def close(self) -> None:
        """Flush pending work. The session should not be used afterwards."""
        try:
            await self.flush()
        finally:
            self._saver.cancel()

    # -- internals --

    def _apply(self, result: MutationResult) -> MutationResult:
        if result.applied and result.snapshot is not self._snapshot:
            self._swap(result.snapshot)
        return result

    def _swap(self, snapshot: Snapshot, undo_point: Snapshot | None = None) -> None:
        self._saver.schedule(snapshot.to_dict())
        # Direct edits clear the undo point
        self._undo = undo_point
        self._snapshot = snapshot

    async def _save_draft(self, payload: dict[str, Any]) -> None:
        record = await self.store.save_draft(self.tenant_id, self.page_type, payload)
        self._draft_id = record.id


# ---------------------------------------------------------------------------
# Manager
# ---------------------------------------------------------------------------


class ConfigurationManager:
    """Opens editor sessions and serves published layouts from one store."""

    def __init__(
        self,
        store: ConfigurationStore,
        *,
        protected_slots: Iterable[str] | None = None,
        max_commands: int | None = None,
        debounce_seconds: float | None = None,
        save_retries: int | None = None,
    ) -> None:
        self.store = store
        self.protected_slots = None if protected_slots is None else frozenset(protected_slots)
        self.max_commands = settings.MAX_COMMANDS_PER_BATCH if max_commands is None else max_commands
        self.debounce_seconds = debounce_seconds
        self.save_retries = save_retries

    async def open_draft(self, tenant_id: str, page_type: str) -> EditorSession:
        """
        Load the tenant's draft for `page_type`, creating it from the default
        template if absent. A stored draft that does not parse or validate is
        replaced in memory by the default; it is overwritten in the store on
        the next committed change or on publish.
        """
        template = get_template(page_type)
        default = template.build()
        try:
            record = await self.store.load_draft(tenant_id, page_type, default.to_dict())
        except Exception as e:
            logger.exception("ConfigurationManager: loading draft %s/%s failed", tenant_id, page_type)
            raise PersistenceError(f"could not load draft for {tenant_id}/{page_type}: {e}") from e

        snapshot, recovered = self._parse_draft(record, default)
        processor = CommandProcessor(
            protected_slots=template.protected if self.protected_slots is None else self.protected_slots,
            max_commands=self.max_commands,
        )
        return EditorSession(
            self.store,
            record,
            snapshot,
            template,
            processor,
            recovered_from_default=recovered,
            debounce_seconds=self.debounce_seconds,
            save_retries=self.save_retries,
        )

    async def load_published(self, tenant_id: str, page_type: str) -> Snapshot | None:
        """The live layout, or None if the page was never published."""
        record = await self.store.load_published(tenant_id, page_type)
        if record is None:
            return None
        try:
            return checked_snapshot(record.payload, f"published version {record.id}")
        except SnapshotParseError:
            logger.error("ConfigurationManager: live layout %s/%s is unusable", tenant_id, page_type)
            raise

    async def list_versions(
        self, tenant_id: str, page_type: str, limit: int | None = None
    ) -> list[ConfigurationRecord]:
        """Published versions, newest first."""
        limit = settings.PUBLISHED_HISTORY_LIMIT if limit is None else limit
        return await self.store.list_versions(tenant_id, page_type, limit)

    def _parse_draft(self, record: ConfigurationRecord, default: Snapshot) -> tuple[Snapshot, bool]:
        try:
            snapshot = Snapshot.from_dict(record.payload)
        except SnapshotParseError as e:
            logger.warning(
                "ConfigurationManager: draft %s (%s/%s) does not parse, using default layout: %s",
                record.id,
                record.tenant_id,
                record.page_type,
                e,
            )
            return default, True

        violations = validate(snapshot)
        if violations:
            logger.warning(
                "ConfigurationManager: draft %s (%s/%s) breaks %d invariant(s), using default layout: %s",
                record.id,
                record.tenant_id,
                record.page_type,
                len(violations),
                violations[0],
            )
            return default, True

        return snapshot, False
