"""
Layout Engine Kernel — Tree Queries

Pure read helpers over a Snapshot. Nothing here mutates; the children index
they lean on is a derived view cached on the (frozen) snapshot itself.
"""

from __future__ import annotations

from collections.abc import Iterator

from layout_engine.kernel.types import CONTAINER_TYPES, Slot, Snapshot


def get_slot(tree: Snapshot, slot_id: str | None) -> Slot | None:
    """Return the slot if present, else None."""
    if slot_id is None:
        return None
    return tree.slots.get(slot_id)


def is_container(slot: Slot | None) -> bool:
    """True if the slot's type may own children."""
    return slot is not None and slot.type in CONTAINER_TYPES


def get_roots(tree: Snapshot) -> list[Slot]:
    """Slots with no parent, in render order."""
    return [tree.slots[sid] for sid in tree.root_order]


def get_child_ids(tree: Snapshot, parent_id: str | None) -> list[str]:
    """Ids of the children of `parent_id` (None = roots), in render order."""
    return list(tree.children_index.get(parent_id, ()))


def get_children(tree: Snapshot, parent_id: str | None) -> list[Slot]:
    """Children of `parent_id` (None = roots), in render order."""
    return [tree.slots[sid] for sid in tree.children_index.get(parent_id, ())]


def get_siblings(tree: Snapshot, slot_id: str) -> list[Slot]:
    """Other slots under the same parent, in render order."""
    slot = tree.slots.get(slot_id)
    if slot is None:
        return []
    return [s for s in get_children(tree, slot.parent_id) if s.id != slot_id]


def get_ancestors(tree: Snapshot, slot_id: str) -> list[str]:
    """
    Ancestor ids, nearest first. Excludes `slot_id` itself.

    Stops at a missing parent or at a repeated id, so a corrupt
    (cyclic) tree still returns a finite list.
    """
    ancestors: list[str] = []
    seen = {slot_id}
    current = tree.slots.get(slot_id)
    while current is not None and current.parent_id is not None:
        parent_id = current.parent_id
        if parent_id in seen:
            break
        ancestors.append(parent_id)
        seen.add(parent_id)
        current = tree.slots.get(parent_id)
    return ancestors


def get_descendants(tree: Snapshot, slot_id: str) -> set[str]:
    """All descendant ids of `slot_id` (not including itself)."""
    result: set[str] = set()
    stack = list(tree.children_index.get(slot_id, ()))
    while stack:
        child_id = stack.pop()
        if child_id in result or child_id == slot_id:
            continue
        result.add(child_id)
        stack.extend(tree.children_index.get(child_id, ()))
    return result


def get_subtree_ids(tree: Snapshot, slot_id: str) -> set[str]:
    """`slot_id` plus every descendant. Empty if the slot is absent."""
    if slot_id not in tree.slots:
        return set()
    return {slot_id} | get_descendants(tree, slot_id)


def depth(tree: Snapshot, slot_id: str) -> int:
    """0 for roots, 1 for their children, and so on."""
    return len(get_ancestors(tree, slot_id))


def walk(tree: Snapshot, parent_id: str | None = None) -> Iterator[Slot]:
    """Depth-first traversal in render order, starting below `parent_id`."""
    stack = list(reversed(get_child_ids(tree, parent_id)))
    visited: set[str] = set()
    while stack:
        slot_id = stack.pop()
        if slot_id in visited:
            continue
        visited.add(slot_id)
        yield tree.slots[slot_id]
        stack.extend(reversed(get_child_ids(tree, slot_id)))
