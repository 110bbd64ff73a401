"""
Layout Engine Kernel — Shared Types

Slot variants and the Snapshot that holds them. These are the contracts that
bind tree queries, invariant checks, mutations and persistence together.

Key points:
- One frozen dataclass per slot type; fields are validated at construction.
- A Snapshot is a flat, read-only map of slot id → Slot. Parent links and
  per-sibling `order` keys encode the tree.
- `to_dict()` / `from_dict()` speak the persisted camelCase wire shape:
  {"version", "slots": {id: SlotRecord}, "rootOrder": [id, ...]}
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from functools import cached_property
from types import MappingProxyType
from typing import Any, ClassVar

from layout_engine.kernel.errors import SlotValidationError, SnapshotParseError

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

GRID_COLUMNS = 12
MIN_COL_SPAN = 1
MAX_COL_SPAN = GRID_COLUMNS

SNAPSHOT_VERSION = 1

SLOT_ID_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_.-]{0,63}$")

SLOT_TYPES: tuple[str, ...] = ("container", "text", "button", "image", "html", "component")

CONTAINER_TYPES: frozenset[str] = frozenset({"container"})

CONTAINER_LAYOUTS: frozenset[str] = frozenset({"grid", "flex", "stack"})

DEFAULT_COL_SPANS: dict[str, int] = {
    "container": 12,
    "text": 6,
    "button": 4,
    "image": 6,
    "html": 12,
    "component": 12,
}

DEFAULT_CLASS_NAMES: dict[str, str] = {
    "container": "p-4 border border-gray-200 rounded",
    "text": "text-base text-gray-900",
    "button": "px-4 py-2 rounded bg-blue-600 text-white",
    "image": "w-full h-auto",
    "html": "",
    "component": "",
}

DEFAULT_STYLES: dict[str, dict[str, Any]] = {
    "container": {"minHeight": "80px"},
}

# Wire name → attribute name for fields shared by every slot type
_COMMON_WIRE_FIELDS: dict[str, str] = {
    "id": "id",
    "parentId": "parent_id",
    "content": "content",
    "colSpan": "col_span",
    "rowSpan": "row_span",
    "order": "order",
    "className": "class_name",
    "styles": "styles",
    "metadata": "metadata",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_valid_slot_id(value: Any) -> bool:
    """Check if a value is a usable slot id (letter first, max 64 chars)."""
    return isinstance(value, str) and bool(SLOT_ID_PATTERN.match(value))


def is_strict_int(value: Any) -> bool:
    """True for ints that are not bools."""
    return isinstance(value, int) and not isinstance(value, bool)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


# ---------------------------------------------------------------------------
# Slot variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True, kw_only=True)
class Slot:
    """
    Common shape of every slot.

    `type` is a class-level tag, so a slot can never disagree with its class.
    `content`, `class_name`, `styles` and `metadata` are opaque to the engine.
    """

    type: ClassVar[str] = ""

    id: str
    parent_id: str | None = None
    content: str = ""
    col_span: int = GRID_COLUMNS
    row_span: int = 1
    order: int = 0
    class_name: str = ""
    styles: Mapping[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not is_valid_slot_id(self.id):
            raise SlotValidationError(f"invalid slot id: {self.id!r}")
        if self.parent_id is not None and not is_valid_slot_id(self.parent_id):
            raise SlotValidationError(f"{self.id}: invalid parent id {self.parent_id!r}")
        if self.parent_id == self.id:
            raise SlotValidationError(f"{self.id}: a slot cannot be its own parent")
        if not isinstance(self.content, str):
            raise SlotValidationError(f"{self.id}: content must be a string")
        if not is_strict_int(self.col_span) or not MIN_COL_SPAN <= self.col_span <= MAX_COL_SPAN:
            raise SlotValidationError(
                f"{self.id}: colSpan must be an integer in [{MIN_COL_SPAN}, {MAX_COL_SPAN}], got {self.col_span!r}"
            )
        if not is_strict_int(self.row_span) or self.row_span < 1:
            raise SlotValidationError(f"{self.id}: rowSpan must be a positive integer, got {self.row_span!r}")
        if not is_strict_int(self.order) or self.order < 0:
            raise SlotValidationError(f"{self.id}: order must be a non-negative integer, got {self.order!r}")
        if not isinstance(self.class_name, str):
            raise SlotValidationError(f"{self.id}: className must be a string")
        if not isinstance(self.styles, Mapping):
            raise SlotValidationError(f"{self.id}: styles must be an object")
        if not isinstance(self.metadata, Mapping):
            raise SlotValidationError(f"{self.id}: metadata must be an object")
        # Private copies so callers cannot alias a committed slot's payload
        object.__setattr__(self, "styles", dict(self.styles))
        object.__setattr__(self, "metadata", dict(self.metadata))

    @property
    def is_container(self) -> bool:
        return self.type in CONTAINER_TYPES

    def variant_fields(self) -> dict[str, Any]:
        """Attributes specific to this slot type, keyed by attribute name."""
        common = set(_COMMON_WIRE_FIELDS.values())
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in common}

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type}
        for wire, attr in _COMMON_WIRE_FIELDS.items():
            value = getattr(self, attr)
            d[wire] = dict(value) if isinstance(value, Mapping) else value
        for attr, value in self.variant_fields().items():
            d[_camel(attr)] = value
        return d


@dataclass(frozen=True, kw_only=True)
class ContainerSlot(Slot):
    """A slot that owns children laid out on its own grid."""

    type: ClassVar[str] = "container"

    layout: str = "grid"
    grid_cols: int = GRID_COLUMNS

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.layout not in CONTAINER_LAYOUTS:
            raise SlotValidationError(f"{self.id}: layout must be one of {sorted(CONTAINER_LAYOUTS)}")
        if not is_strict_int(self.grid_cols) or not 1 <= self.grid_cols <= GRID_COLUMNS:
            raise SlotValidationError(f"{self.id}: gridCols must be an integer in [1, {GRID_COLUMNS}]")


@dataclass(frozen=True, kw_only=True)
class TextSlot(Slot):
    type: ClassVar[str] = "text"


@dataclass(frozen=True, kw_only=True)
class ButtonSlot(Slot):
    type: ClassVar[str] = "button"

    href: str | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.href is not None and not isinstance(self.href, str):
            raise SlotValidationError(f"{self.id}: href must be a string")


@dataclass(frozen=True, kw_only=True)
class ImageSlot(Slot):
    type: ClassVar[str] = "image"

    alt: str = ""

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.alt, str):
            raise SlotValidationError(f"{self.id}: alt must be a string")


@dataclass(frozen=True, kw_only=True)
class HtmlSlot(Slot):
    type: ClassVar[str] = "html"


@dataclass(frozen=True, kw_only=True)
class ComponentSlot(Slot):
    """Delegates rendering to a named external component."""

    type: ClassVar[str] = "component"

    component: str

    def __post_init__(self) -> None:
        super().__post_init__()
        if not isinstance(self.component, str) or not self.component.strip():
            raise SlotValidationError(f"{self.id}: component slots require a component name")


SLOT_CLASSES: dict[str, type[Slot]] = {
    cls.type: cls for cls in (ContainerSlot, TextSlot, ButtonSlot, ImageSlot, HtmlSlot, ComponentSlot)
}


def variant_field_names(slot_type: str) -> frozenset[str]:
    """Attribute names specific to `slot_type`. Empty for unknown types."""
    cls = SLOT_CLASSES.get(slot_type)
    if cls is None:
        return frozenset()
    common = set(_COMMON_WIRE_FIELDS.values())
    return frozenset(f.name for f in fields(cls) if f.name not in common)


def make_slot(slot_type: str, **kwargs: Any) -> Slot:
    """Construct the variant for `slot_type`. Raises SlotValidationError."""
    cls = SLOT_CLASSES.get(slot_type)
    if cls is None:
        raise SlotValidationError(f"unknown slot type: {slot_type!r}")
    try:
        return cls(**kwargs)
    except TypeError as e:
        # Missing required or unexpected variant field
        raise SlotValidationError(f"{slot_type}: {e}") from e


def slot_from_dict(d: Mapping[str, Any]) -> Slot:
    """Build a slot from its wire record. Raises SlotValidationError."""
    if not isinstance(d, Mapping):
        raise SlotValidationError("slot record must be an object")
    slot_type = d.get("type")
    cls = SLOT_CLASSES.get(slot_type)  # type: ignore[arg-type]
    if cls is None:
        raise SlotValidationError(f"unknown slot type: {slot_type!r}")

    kwargs: dict[str, Any] = {}
    for wire, attr in _COMMON_WIRE_FIELDS.items():
        if wire in d and d[wire] is not None:
            kwargs[attr] = d[wire]
    if "parentId" in d:
        kwargs["parent_id"] = d["parentId"]
    if "id" not in kwargs:
        raise SlotValidationError("slot record is missing 'id'")

    common = set(_COMMON_WIRE_FIELDS.values())
    for f in fields(cls):
        if f.name in common:
            continue
        wire = _camel(f.name)
        if wire in d:
            kwargs[f.name] = d[wire]
    return make_slot(slot_type, **kwargs)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Snapshot:
    """
    One immutable version of a page's slot tree.

    `slots` is exposed as a read-only mapping. New versions are produced by
    the mutation layer; nothing edits a Snapshot in place.
    """

    slots: Mapping[str, Slot] = field(default_factory=dict)
    version: int = SNAPSHOT_VERSION

    def __post_init__(self) -> None:
        object.__setattr__(self, "slots", MappingProxyType(dict(self.slots)))

    @cached_property
    def children_index(self) -> Mapping[str | None, tuple[str, ...]]:
        """parent id (None for roots) → child ids sorted by (order, id)."""
        groups: dict[str | None, list[Slot]] = {}
        for slot in self.slots.values():
            groups.setdefault(slot.parent_id, []).append(slot)
        return MappingProxyType(
            {
                parent: tuple(s.id for s in sorted(children, key=lambda s: (s.order, s.id)))
                for parent, children in groups.items()
            }
        )

    @property
    def root_order(self) -> tuple[str, ...]:
        return self.children_index.get(None, ())

    def __contains__(self, slot_id: object) -> bool:
        return slot_id in self.slots

    def with_slots(self, slots: Mapping[str, Slot]) -> Snapshot:
        """A new Snapshot holding `slots`, same format version."""
        return Snapshot(slots=slots, version=self.version)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "slots": {slot_id: slot.to_dict() for slot_id, slot in self.slots.items()},
            "rootOrder": list(self.root_order),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Snapshot:
        """
        Parse a persisted payload.

        Checks shape only (well-formed slots, keys matching ids, rootOrder
        consistent with root slots). Tree invariants are the checker's job.
        """
        if not isinstance(d, Mapping):
            raise SnapshotParseError("snapshot payload must be an object")
        version = d.get("version", SNAPSHOT_VERSION)
        if not is_strict_int(version) or version > SNAPSHOT_VERSION:
            raise SnapshotParseError(f"snapshot version {version!r} not supported")

        raw_slots = d.get("slots", {})
        if not isinstance(raw_slots, Mapping):
            raise SnapshotParseError("'slots' must be an object")

        slots: dict[str, Slot] = {}
        for key, record in raw_slots.items():
            try:
                slot = slot_from_dict(record)
            except SlotValidationError as e:
                raise SnapshotParseError(f"slot {key!r}: {e}") from e
            if slot.id != key:
                raise SnapshotParseError(f"slot key {key!r} does not match its id {slot.id!r}")
            slots[key] = slot

        snapshot = cls(slots=slots, version=version)

        root_order = d.get("rootOrder")
        if root_order is not None and list(root_order) != list(snapshot.root_order):
            raise SnapshotParseError(
                f"rootOrder {list(root_order)} does not match root slot order {list(snapshot.root_order)}"
            )
        return snapshot


def empty_snapshot() -> Snapshot:
    """A tree with no slots."""
    return Snapshot()
