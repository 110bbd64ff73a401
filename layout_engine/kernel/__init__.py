"""
Layout Engine Kernel — the slot layout engine.

Components:
  types       — slot variants and the immutable Snapshot
  tree        — read-only queries over a Snapshot
  invariants  — structural rules every committed snapshot satisfies
  reducer     — (snapshot, mutation) → MutationResult  (pure, never raises)
  commands    — structural validation of wire commands (pydantic)
  processor   — best-effort command batches
  lifecycle   — drafts, debounced auto-save, publish, undo

Assistant helpers:
  parse_ai_response, describe_layout
"""

from layout_engine.kernel.assistant import describe_layout, parse_ai_response
from layout_engine.kernel.commands import make_command, validate_command
from layout_engine.kernel.errors import (
    ConfigurationNotFound,
    LayoutEngineError,
    PersistenceError,
    SlotValidationError,
    SnapshotParseError,
    UnknownPageType,
)
from layout_engine.kernel.invariants import can_reparent, clamp_span, validate
from layout_engine.kernel.lifecycle import (
    ConfigurationManager,
    ConfigurationRecord,
    ConfigurationStore,
    EditorSession,
    MemoryConfigurationStore,
)
from layout_engine.kernel.processor import BatchResult, CommandProcessor, execute
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
from layout_engine.kernel.templates import PAGE_TYPES, PROTECTED_SLOT_IDS, default_snapshot, get_template
from layout_engine.kernel.types import Slot, Snapshot, empty_snapshot, make_slot

__all__ = [
    "Slot",
    "Snapshot",
    "make_slot",
    "empty_snapshot",
    "validate",
    "can_reparent",
    "clamp_span",
    "MutationResult",
    "create_slot",
    "delete_slot",
    "move_slot",
    "move_relative",
    "resize_slot",
    "reorder_children",
    "update_slot",
    "validate_command",
    "make_command",
    "CommandProcessor",
    "BatchResult",
    "execute",
    "ConfigurationManager",
    "ConfigurationRecord",
    "ConfigurationStore",
    "EditorSession",
    "MemoryConfigurationStore",
    "PAGE_TYPES",
    "PROTECTED_SLOT_IDS",
    "default_snapshot",
    "get_template",
    "parse_ai_response",
    "describe_layout",
    "LayoutEngineError",
    "SlotValidationError",
    "SnapshotParseError",
    "PersistenceError",
    "ConfigurationNotFound",
    "UnknownPageType",
]
