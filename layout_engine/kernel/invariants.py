"""
Layout Engine Kernel — Invariant Checker

Pure predicates over a Snapshot, run before any mutation is committed.

Invariants:
  1. Parent links form a forest (no slot is its own ancestor).
  2. Every non-null parent id names an existing container-capable slot.
  3. colSpan is in [1, 12].
  4. Order keys are unique among siblings.
  5. No orphans (follows from 2 once deletes cascade).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from layout_engine.kernel.tree import get_descendants, is_container
from layout_engine.kernel.types import MAX_COL_SPAN, MIN_COL_SPAN, Snapshot, is_strict_int


@dataclass(frozen=True)
class Violation:
    """One broken invariant, tied to the slot where it was found."""

    code: str
    message: str
    slot_id: str | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


# ---------------------------------------------------------------------------
# Span helpers
# ---------------------------------------------------------------------------


def is_span_valid(span: Any) -> bool:
    return is_strict_int(span) and MIN_COL_SPAN <= span <= MAX_COL_SPAN


def clamp_span(span: int | float) -> int:
    """Round to the nearest column and clamp into [1, 12]."""
    return int(round(max(MIN_COL_SPAN, min(MAX_COL_SPAN, span))))


# ---------------------------------------------------------------------------
# Reparent checks
# ---------------------------------------------------------------------------


def reparent_violation(tree: Snapshot, slot_id: str, new_parent_id: str | None) -> str | None:
    """
    Why `slot_id` cannot be placed under `new_parent_id`, or None if it can.

    Self / descendant targets are checked before the parent's type, so a
    cycle attempt always reports as a cycle.
    """
    if slot_id not in tree.slots:
        return f"SLOT_NOT_FOUND: '{slot_id}' does not exist"
    if new_parent_id is None:
        return None
    if new_parent_id == slot_id:
        return f"CYCLE: cannot move into own descendant ('{slot_id}' into itself)"
    if new_parent_id in get_descendants(tree, slot_id):
        return f"CYCLE: cannot move into own descendant ('{slot_id}' into '{new_parent_id}')"
    parent = tree.slots.get(new_parent_id)
    if parent is None:
        return f"PARENT_NOT_FOUND: '{new_parent_id}' does not exist"
    if not is_container(parent):
        return f"PARENT_NOT_CONTAINER: '{new_parent_id}' is a {parent.type} slot and cannot hold children"
    return None


def can_reparent(tree: Snapshot, slot_id: str, new_parent_id: str | None) -> bool:
    return reparent_violation(tree, slot_id, new_parent_id) is None


# ---------------------------------------------------------------------------
# Whole-tree validation
# ---------------------------------------------------------------------------


def validate(tree: Snapshot) -> list[Violation]:
    """
    Check every invariant. Returns a list of violations; empty = valid.
    """
    violations: list[Violation] = []
    slots = tree.slots

    for key, slot in slots.items():
        if slot.id != key:
            violations.append(Violation("ID_MISMATCH", f"key '{key}' holds slot '{slot.id}'", key))
        if not is_span_valid(slot.col_span):
            violations.append(
                Violation("SPAN_OUT_OF_RANGE", f"'{key}' has colSpan {slot.col_span!r}", key)
            )
        if slot.parent_id is not None:
            parent = slots.get(slot.parent_id)
            if parent is None:
                violations.append(
                    Violation("PARENT_NOT_FOUND", f"'{key}' references missing parent '{slot.parent_id}'", key)
                )
            elif not is_container(parent):
                violations.append(
                    Violation(
                        "PARENT_NOT_CONTAINER",
                        f"'{key}' is parented to '{parent.id}', a {parent.type} slot",
                        key,
                    )
                )

    violations.extend(_order_violations(tree))
    violations.extend(_cycle_violations(tree))
    return violations


def is_valid(tree: Snapshot) -> bool:
    return not validate(tree)


def _order_violations(tree: Snapshot) -> list[Violation]:
    violations: list[Violation] = []
    seen: dict[tuple[str | None, int], str] = {}
    for slot in tree.slots.values():
        key = (slot.parent_id, slot.order)
        other = seen.get(key)
        if other is not None:
            parent = slot.parent_id or "root"
            violations.append(
                Violation(
                    "DUPLICATE_ORDER",
                    f"'{other}' and '{slot.id}' share order {slot.order} under {parent}",
                    slot.id,
                )
            )
        else:
            seen[key] = slot.id
    return violations


def _cycle_violations(tree: Snapshot) -> list[Violation]:
    """Follow parent links from every slot; report each cycle once."""
    violations: list[Violation] = []
    state: dict[str, int] = {}  # 1 = on current path, 2 = known acyclic
    slots = tree.slots

    for start in slots:
        if state.get(start) == 2:
            continue
        path: list[str] = []
        current: str | None = start
        while current is not None and current in slots and state.get(current) != 2:
            if state.get(current) == 1:
                cycle = path[path.index(current):]
                violations.append(
                    Violation("CYCLE", f"parent links loop through {' -> '.join(cycle + [current])}", current)
                )
                break
            state[current] = 1
            path.append(current)
            current = slots[current].parent_id
        for slot_id in path:
            state[slot_id] = 2
    return violations
