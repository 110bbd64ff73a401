"""
Layout Engine Kernel — Mutation Operations

Pure functions: (snapshot, args) → MutationResult

Every operation works on a copy of the slot map, renumbers the sibling groups
it touched, runs the invariant checker on the candidate tree and only then
hands it back. A rejected operation returns the input snapshot untouched.

Operations:
  create_slot: new slot, type defaults, appended (or inserted) under a parent
  delete_slot: slot plus every descendant; absent slot is a no-op
  move_slot: reparent a subtree at a sibling position
  move_relative: before / after / inside another slot (drop targets)
  resize_slot: colSpan clamped into [1, 12]
  reorder_children: rewrite sibling order from an exact id list
  update_slot: content / class / styles / metadata / variant fields
"""

from __future__ import annotations

import dataclasses
import math
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from layout_engine.kernel.errors import SlotValidationError
from layout_engine.kernel.invariants import clamp_span, reparent_violation, validate
from layout_engine.kernel.tree import get_child_ids, get_subtree_ids, is_container
from layout_engine.kernel.types import (
    DEFAULT_CLASS_NAMES,
    DEFAULT_COL_SPANS,
    DEFAULT_STYLES,
    SLOT_TYPES,
    Slot,
    Snapshot,
    is_strict_int,
    is_valid_slot_id,
    make_slot,
    variant_field_names,
)

PLACEMENTS: frozenset[str] = frozenset({"before", "after", "inside"})


# ---------------------------------------------------------------------------
# MutationResult
# ---------------------------------------------------------------------------


class MutationResult:
    """
    Result of one mutation. Returned, never raised.

    On rejection `snapshot` is the caller's snapshot, unchanged.
    """

    __slots__ = ("snapshot", "applied", "reason", "slot_id")

    def __init__(
        self,
        snapshot: Snapshot,
        applied: bool,
        reason: str | None = None,
        slot_id: str | None = None,
    ) -> None:
        self.snapshot = snapshot
        self.applied = applied
        self.reason = reason
        self.slot_id = slot_id  # The slot the operation acted on (new id for create)

    def __repr__(self) -> str:  # pragma: no cover
        if self.applied:
            return f"MutationResult(applied=True, slot_id={self.slot_id!r})"
        return f"MutationResult(applied=False, reason={self.reason!r})"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _reject(tree: Snapshot, reason: str) -> MutationResult:
    return MutationResult(snapshot=tree, applied=False, reason=reason)


def _ok(tree: Snapshot, slot_id: str | None = None) -> MutationResult:
    return MutationResult(snapshot=tree, applied=True, slot_id=slot_id)


def _commit(original: Snapshot, slots: dict[str, Slot], slot_id: str | None) -> MutationResult:
    """Validate the candidate tree; hand it back only if every invariant holds."""
    candidate = original.with_slots(slots)
    violations = validate(candidate)
    if violations:
        return _reject(original, "INVARIANT_VIOLATION: " + "; ".join(str(v) for v in violations))
    return _ok(candidate, slot_id)


def _sibling_ids(slots: Mapping[str, Slot], parent_id: str | None, exclude: str | None = None) -> list[str]:
    siblings = [s for s in slots.values() if s.parent_id == parent_id and s.id != exclude]
    siblings.sort(key=lambda s: (s.order, s.id))
    return [s.id for s in siblings]


def _renumber(slots: dict[str, Slot], ordered_ids: Iterable[str]) -> None:
    """Assign order 0..n-1 following `ordered_ids`. Rewrites only what changed."""
    for index, slot_id in enumerate(ordered_ids):
        slot = slots[slot_id]
        if slot.order != index:
            slots[slot_id] = dataclasses.replace(slot, order=index)


def _insert_at(ids: list[str], slot_id: str, position: int | None) -> list[str]:
    if position is None or position >= len(ids):
        return [*ids, slot_id]
    index = max(0, position)
    return [*ids[:index], slot_id, *ids[index:]]


def _new_slot_id(slots: Mapping[str, Slot], slot_type: str) -> str:
    while True:
        candidate = f"{slot_type}_{uuid.uuid4().hex[:8]}"
        if candidate not in slots:
            return candidate


def _check_number(value: Any, name: str) -> str | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return f"INVALID_SPAN: {name} must be a number, got {value!r}"
    if isinstance(value, float) and not math.isfinite(value):
        return f"INVALID_SPAN: {name} must be finite, got {value!r}"
    return None


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------


def create_slot(
    tree: Snapshot,
    slot_type: str,
    parent_id: str | None = None,
    content: str = "",
    *,
    slot_id: str | None = None,
    col_span: int | None = None,
    row_span: int = 1,
    class_name: str | None = None,
    styles: Mapping[str, Any] | None = None,
    metadata: Mapping[str, Any] | None = None,
    position: int | None = None,
    **variant: Any,
) -> MutationResult:
    """
    Create a slot under `parent_id` (None = root).

    Type defaults fill colSpan, className and styles. The slot is appended as
    the last child unless `position` names a sibling index.
    """
    if slot_type not in SLOT_TYPES:
        return _reject(tree, f"UNKNOWN_SLOT_TYPE: '{slot_type}' is not one of {list(SLOT_TYPES)}")

    unknown = sorted(set(variant) - variant_field_names(slot_type))
    if unknown:
        return _reject(tree, f"INVALID_FIELD: {slot_type} slots have no field(s) {unknown}")

    if parent_id is not None:
        parent = tree.slots.get(parent_id)
        if parent is None:
            return _reject(tree, f"PARENT_NOT_FOUND: '{parent_id}' does not exist")
        if not is_container(parent):
            return _reject(
                tree, f"PARENT_NOT_CONTAINER: '{parent_id}' is a {parent.type} slot and cannot hold children"
            )

    if slot_id is None:
        slot_id = _new_slot_id(tree.slots, slot_type)
    elif not is_valid_slot_id(slot_id):
        return _reject(tree, f"INVALID_ID: '{slot_id}' must start with a letter, max 64 chars")
    elif slot_id in tree.slots:
        return _reject(tree, f"SLOT_EXISTS: '{slot_id}' already exists")

    if col_span is None:
        span = DEFAULT_COL_SPANS[slot_type]
    else:
        error = _check_number(col_span, "colSpan")
        if error:
            return _reject(tree, error)
        span = clamp_span(col_span)

    error = _check_number(row_span, "rowSpan")
    if error:
        return _reject(tree, error)

    try:
        slot = make_slot(
            slot_type,
            id=slot_id,
            parent_id=parent_id,
            content=content,
            col_span=span,
            row_span=max(1, int(row_span)),
            class_name=DEFAULT_CLASS_NAMES[slot_type] if class_name is None else class_name,
            styles=dict(DEFAULT_STYLES.get(slot_type, {})) if styles is None else styles,
            metadata=metadata or {},
            **variant,
        )
    except SlotValidationError as e:
        return _reject(tree, f"INVALID_SLOT: {e}")

    slots = dict(tree.slots)
    slots[slot_id] = slot
    _renumber(slots, _insert_at(_sibling_ids(tree.slots, parent_id), slot_id, position))
    return _commit(tree, slots, slot_id)


def delete_slot(tree: Snapshot, slot_id: str) -> MutationResult:
    """
    Remove a slot and, transitively, all of its descendants.

    Deleting a slot that is already gone is accepted and returns the same
    snapshot.
    """
    slot = tree.slots.get(slot_id)
    if slot is None:
        return _ok(tree, slot_id)

    doomed = get_subtree_ids(tree, slot_id)
    slots = {sid: s for sid, s in tree.slots.items() if sid not in doomed}
    _renumber(slots, _sibling_ids(slots, slot.parent_id))
    return _commit(tree, slots, slot_id)


def move_slot(
    tree: Snapshot,
    slot_id: str,
    new_parent_id: str | None,
    position: int | None = None,
) -> MutationResult:
    """
    Reparent `slot_id` (with its subtree) under `new_parent_id` at sibling
    index `position` (None = last). Moving into oneself or one's own
    subtree is rejected.
    """
    violation = reparent_violation(tree, slot_id, new_parent_id)
    if violation:
        return _reject(tree, violation)

    slot = tree.slots[slot_id]
    old_parent_id = slot.parent_id

    slots = dict(tree.slots)
    slots[slot_id] = dataclasses.replace(slot, parent_id=new_parent_id)

    target_ids = _insert_at(_sibling_ids(tree.slots, new_parent_id, exclude=slot_id), slot_id, position)
    _renumber(slots, target_ids)
    if old_parent_id != new_parent_id:
        _renumber(slots, _sibling_ids(tree.slots, old_parent_id, exclude=slot_id))
    return _commit(tree, slots, slot_id)


def move_relative(tree: Snapshot, slot_id: str, anchor_id: str, placement: str) -> MutationResult:
    """
    Drop `slot_id` before, after, or inside `anchor_id`.

    "inside" places the slot first among the anchor's children.
    """
    if placement not in PLACEMENTS:
        return _reject(tree, f"INVALID_PLACEMENT: '{placement}' must be one of {sorted(PLACEMENTS)}")
    if slot_id not in tree.slots:
        return _reject(tree, f"SLOT_NOT_FOUND: '{slot_id}' does not exist")
    anchor = tree.slots.get(anchor_id)
    if anchor is None:
        return _reject(tree, f"SLOT_NOT_FOUND: anchor '{anchor_id}' does not exist")
    if anchor_id == slot_id:
        return _reject(tree, f"INVALID_ANCHOR: cannot place '{slot_id}' relative to itself")

    if placement == "inside":
        return move_slot(tree, slot_id, anchor_id, 0)

    siblings = _sibling_ids(tree.slots, anchor.parent_id, exclude=slot_id)
    index = siblings.index(anchor_id)
    return move_slot(tree, slot_id, anchor.parent_id, index if placement == "before" else index + 1)


def resize_slot(tree: Snapshot, slot_id: str, col_span: int, row_span: int | None = None) -> MutationResult:
    """
    Set a slot's width. Out-of-range spans are clamped into [1, 12], never
    rejected; rowSpan, when given, is floored at 1.
    """
    slot = tree.slots.get(slot_id)
    if slot is None:
        return _reject(tree, f"SLOT_NOT_FOUND: '{slot_id}' does not exist")

    error = _check_number(col_span, "colSpan")
    if error:
        return _reject(tree, error)
    changes: dict[str, Any] = {"col_span": clamp_span(col_span)}

    if row_span is not None:
        error = _check_number(row_span, "rowSpan")
        if error:
            return _reject(tree, error)
        changes["row_span"] = max(1, int(row_span))

    slots = dict(tree.slots)
    slots[slot_id] = dataclasses.replace(slot, **changes)
    return _commit(tree, slots, slot_id)


def reorder_children(tree: Snapshot, parent_id: str | None, ordered_ids: list[str]) -> MutationResult:
    """
    Rewrite the order of `parent_id`'s children (None = roots).

    `ordered_ids` must be exactly the current child set: no missing ids,
    no extras, no duplicates. Anything else is rejected wholesale.
    """
    if parent_id is not None and parent_id not in tree.slots:
        return _reject(tree, f"PARENT_NOT_FOUND: '{parent_id}' does not exist")

    current = get_child_ids(tree, parent_id)
    current_set = set(current)
    requested = list(ordered_ids)
    requested_set = set(requested)

    duplicates = sorted({sid for sid in requested if requested.count(sid) > 1})
    missing = current_set - requested_set
    extra = requested_set - current_set
    if missing or extra or duplicates:
        parts = []
        if missing:
            parts.append(f"missing: {sorted(missing)}")
        if extra:
            parts.append(f"extra: {sorted(extra)}")
        if duplicates:
            parts.append(f"duplicate: {duplicates}")
        return _reject(tree, f"REORDER_MISMATCH: {', '.join(parts)}")

    slots = dict(tree.slots)
    _renumber(slots, requested)
    return _commit(tree, slots, parent_id)


def update_slot(
    tree: Snapshot,
    slot_id: str,
    *,
    content: str | None = None,
    class_name: str | None = None,
    styles: Mapping[str, Any] | None = None,
    metadata: Mapping[str, Any] | None = None,
    replace_styles: bool = False,
    **variant: Any,
) -> MutationResult:
    """
    Edit a slot's presentation data. Structure (parent, order, span) is
    never touched here.

    Styles and metadata merge into the existing maps unless
    `replace_styles` is set, in which case styles are replaced wholesale.
    """
    slot = tree.slots.get(slot_id)
    if slot is None:
        return _reject(tree, f"SLOT_NOT_FOUND: '{slot_id}' does not exist")

    allowed = slot.variant_fields()
    unknown = sorted(set(variant) - set(allowed))
    if unknown:
        return _reject(tree, f"INVALID_FIELD: {slot.type} slots have no field(s) {unknown}")

    changes: dict[str, Any] = dict(variant)
    if content is not None:
        changes["content"] = content
    if class_name is not None:
        changes["class_name"] = class_name
    if styles is not None:
        changes["styles"] = dict(styles) if replace_styles else {**slot.styles, **styles}
    if metadata is not None:
        changes["metadata"] = {**slot.metadata, **metadata}

    try:
        updated = dataclasses.replace(slot, **changes)
    except SlotValidationError as e:
        return _reject(tree, f"INVALID_SLOT: {e}")

    slots = dict(tree.slots)
    slots[slot_id] = updated
    return _commit(tree, slots, slot_id)
