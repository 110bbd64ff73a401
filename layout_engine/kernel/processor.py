"""
Layout Engine Kernel — Command Processor

Applies a batch of commands to one snapshot, in order, each command seeing
the effects of the ones before it. A failing command is recorded and skipped;
the rest of the batch still runs. Nothing here raises for a bad command.

Per command:
  1. Structural validation (commands.parse_command)
  2. Pre-validation against the working snapshot (targets exist, protected slots)
  3. Mutation (reducer.*), which runs the invariant checker before committing
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from layout_engine.kernel.commands import (
    CreateParams,
    MoveParams,
    ParsedCommand,
    ReorderParams,
    ResizeParams,
    UpdateParams,
    parse_command,
)
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
from layout_engine.kernel.types import Snapshot

logger = logging.getLogger(__name__)


@dataclass
class CommandError:
    """Why one command in a batch did not take effect."""

    index: int
    operation: str | None
    target_slot_id: str | None
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "operation": self.operation,
            "targetSlotId": self.target_slot_id,
            "reason": self.reason,
        }


@dataclass
class BatchResult:
    """
    Outcome of one batch.

    `snapshot` reflects every applied command; `previous` is the snapshot the
    batch started from, kept so the caller can undo the batch as a whole.
    """

    snapshot: Snapshot
    previous: Snapshot
    executed_count: int = 0
    errors: list[CommandError] = field(default_factory=list)
    applied: list[int] = field(default_factory=list)  # Indices of commands that took effect
    created_ids: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.snapshot is not self.previous

    def to_dict(self) -> dict[str, Any]:
        return {
            "executedCount": self.executed_count,
            "total": self.executed_count + len(self.errors),
            "errors": [e.to_dict() for e in self.errors],
            "createdIds": list(self.created_ids),
        }


# ---------------------------------------------------------------------------
# Per-operation pre-validation and application
# ---------------------------------------------------------------------------


def _missing(slot_id: str | None, what: str = "") -> str:
    return f"SLOT_NOT_FOUND: {what}'{slot_id}' does not exist (it may have been removed earlier in this batch)"


def _apply_create(tree: Snapshot, cmd: ParsedCommand) -> MutationResult:
    p: CreateParams = cmd.params
    return create_slot(
        tree,
        p.type,
        cmd.target_slot_id,
        p.content,
        slot_id=p.slot_id,
        col_span=p.col_span,
        row_span=p.row_span,
        class_name=p.class_name,
        styles=p.styles,
        metadata=p.metadata,
        position=p.position,
        **p.variant(),
    )


def _apply_delete(tree: Snapshot, cmd: ParsedCommand) -> MutationResult:
    return delete_slot(tree, cmd.target_slot_id)  # type: ignore[arg-type]


def _apply_move(tree: Snapshot, cmd: ParsedCommand) -> MutationResult:
    p: MoveParams = cmd.params
    if p.anchor_id is not None:
        return move_relative(tree, cmd.target_slot_id, p.anchor_id, p.placement)  # type: ignore[arg-type]
    return move_slot(tree, cmd.target_slot_id, p.new_parent_id, p.position)  # type: ignore[arg-type]


def _apply_resize(tree: Snapshot, cmd: ParsedCommand) -> MutationResult:
    p: ResizeParams = cmd.params
    slot = tree.slots[cmd.target_slot_id]  # type: ignore[index]
    col_span = slot.col_span if p.col_span is None else p.col_span
    return resize_slot(tree, slot.id, col_span, p.row_span)


def _apply_reorder(tree: Snapshot, cmd: ParsedCommand) -> MutationResult:
    p: ReorderParams = cmd.params
    return reorder_children(tree, cmd.target_slot_id, p.order)


def _apply_update(tree: Snapshot, cmd: ParsedCommand) -> MutationResult:
    p: UpdateParams = cmd.params
    return update_slot(
        tree,
        cmd.target_slot_id,  # type: ignore[arg-type]
        content=p.content,
        class_name=p.class_name,
        styles=p.styles,
        metadata=p.metadata,
        replace_styles=p.replace_styles,
        **p.variant(),
    )


_HANDLERS: dict[str, Callable[[Snapshot, ParsedCommand], MutationResult]] = {
    "create": _apply_create,
    "delete": _apply_delete,
    "move": _apply_move,
    "resize": _apply_resize,
    "reorder": _apply_reorder,
    "update": _apply_update,
}


# ---------------------------------------------------------------------------
# Processor
# ---------------------------------------------------------------------------


class CommandProcessor:
    """
    Best-effort batch executor.

    protected_slots: ids that may not be deleted or moved (structural
        containers of the page template).
    max_commands: commands past this count are rejected unread. None = no limit.
    """

    def __init__(self, protected_slots: Iterable[str] = (), max_commands: int | None = None) -> None:
        self.protected_slots = frozenset(protected_slots)
        self.max_commands = max_commands

    def execute(self, commands: Sequence[Any], tree: Snapshot) -> BatchResult:
        """
        Apply `commands` in order against `tree`.
        Returns the final snapshot, the number applied, and an error per
        rejected command.
        """
        result = BatchResult(snapshot=tree, previous=tree)
        working = tree

        for index, raw in enumerate(commands):
            operation = raw.get("operation") if isinstance(raw, dict) else None
            target = raw.get("targetSlotId") if isinstance(raw, dict) else None

            if self.max_commands is not None and index >= self.max_commands:
                result.errors.append(
                    CommandError(index, operation, target, f"BATCH_TOO_LARGE: limit is {self.max_commands} commands")
                )
                continue

            cmd, errors = parse_command(raw)
            if cmd is None:
                result.errors.append(CommandError(index, operation, target, "; ".join(errors)))
                continue

            reason = self.prevalidate(cmd, working)
            if reason is not None:
                result.errors.append(CommandError(index, cmd.operation, cmd.target_slot_id, reason))
                continue

            outcome = _HANDLERS[cmd.operation](working, cmd)
            if not outcome.applied:
                result.errors.append(
                    CommandError(index, cmd.operation, cmd.target_slot_id, outcome.reason or "rejected")
                )
                continue

            working = outcome.snapshot
            result.executed_count += 1
            result.applied.append(index)
            if cmd.operation == "create" and outcome.slot_id:
                result.created_ids.append(outcome.slot_id)

        result.snapshot = working

        if result.errors:
            for error in result.errors:
                logger.debug("CommandProcessor: command %d rejected: %s", error.index, error.reason)
        logger.info(
            "CommandProcessor: applied %d of %d commands (%d rejected)",
            result.executed_count,
            len(commands),
            len(result.errors),
        )
        return result

    def prevalidate(self, cmd: ParsedCommand, tree: Snapshot) -> str | None:
        """
        Check a structurally valid command against the current snapshot.
        Returns a reason string if it cannot apply, else None.
        """
        target = cmd.target_slot_id
        op = cmd.operation

        if op in ("create", "reorder"):
            if target is not None and target not in tree.slots:
                return _missing(target, "parent ")
            return None

        if target not in tree.slots:
            return _missing(target)

        if op == "delete" and target in self.protected_slots:
            return f"PROTECTED_SLOT: '{target}' is a structural slot and cannot be deleted"

        if op == "move":
            if target in self.protected_slots:
                return f"PROTECTED_SLOT: '{target}' is a structural slot and cannot be moved"
            p: MoveParams = cmd.params
            if p.anchor_id is not None and p.anchor_id not in tree.slots:
                return _missing(p.anchor_id, "anchor ")
            if p.anchor_id is None and p.new_parent_id is not None and p.new_parent_id not in tree.slots:
                return _missing(p.new_parent_id, "parent ")

        return None


def execute(commands: Sequence[Any], tree: Snapshot) -> BatchResult:
    """Run a batch with no protected slots and no size limit."""
    return CommandProcessor().execute(commands, tree)
