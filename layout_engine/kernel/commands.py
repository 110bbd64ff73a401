"""
Layout Engine Kernel — Command Validation

Structural checks for externally-issued commands (drag-drop surface or AI
assistant) before they are allowed near the mutation layer.

Wire shape:
  {"targetSlotId": str | null, "operation": str, "params": {...}}

Validation is structural (well-formed? types and ranges right?), not
semantic (does the target exist?). Existence is checked by the processor
against the working snapshot.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


COMMAND_OPERATIONS: tuple[str, ...] = ("create", "delete", "move", "resize", "reorder", "update")

# Operations whose targetSlotId names the slot being acted on (and so is required).
# For create / reorder the target is a parent, and null means the root level.
TARGETED_OPERATIONS: frozenset[str] = frozenset({"delete", "move", "resize", "update"})

# Variant parameters and the slot types that accept them
VARIANT_PARAMS: dict[str, frozenset[str]] = {
    "layout": frozenset({"container"}),
    "grid_cols": frozenset({"container"}),
    "href": frozenset({"button"}),
    "alt": frozenset({"image"}),
    "component": frozenset({"component"}),
}

SlotTypeName = Literal["container", "text", "button", "image", "html", "component"]


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class _Params(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class CommandEnvelope(BaseModel):
    """The outer command object, before its params are interpreted."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    target_slot_id: str | None = Field(default=None, alias="targetSlotId")
    operation: str
    params: dict[str, Any] = Field(default_factory=dict)


class CreateParams(_Params):
    type: SlotTypeName
    content: str = ""
    slot_id: str | None = Field(default=None, alias="id")
    col_span: int | None = Field(default=None, alias="colSpan")
    row_span: int = Field(default=1, alias="rowSpan", ge=1)
    position: int | None = Field(default=None, ge=0)
    class_name: str | None = Field(default=None, alias="className")
    styles: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    layout: Literal["grid", "flex", "stack"] | None = None
    grid_cols: int | None = Field(default=None, alias="gridCols", ge=1, le=12)
    href: str | None = None
    alt: str | None = None
    component: str | None = None

    @model_validator(mode="after")
    def _check_variant(self) -> CreateParams:
        if self.type == "component" and not (self.component or "").strip():
            raise ValueError("component slots require 'component'")
        for name, types in VARIANT_PARAMS.items():
            if getattr(self, name) is not None and self.type not in types:
                raise ValueError(f"'{name}' is not valid for {self.type} slots")
        return self

    def variant(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in VARIANT_PARAMS if getattr(self, name) is not None}


class DeleteParams(_Params):
    pass


class MoveParams(_Params):
    new_parent_id: str | None = Field(default=None, alias="newParentId")
    position: int | None = Field(default=None, ge=0)
    anchor_id: str | None = Field(default=None, alias="anchorId")
    placement: Literal["before", "after", "inside"] | None = None

    @model_validator(mode="after")
    def _check_destination(self) -> MoveParams:
        has_parent = "new_parent_id" in self.model_fields_set
        has_anchor = self.anchor_id is not None
        if has_parent and has_anchor:
            raise ValueError("provide only one of 'newParentId' or 'anchorId'")
        if not has_parent and not has_anchor:
            raise ValueError("move requires 'newParentId' (null for root) or 'anchorId'")
        if has_anchor and self.placement is None:
            raise ValueError("'anchorId' requires 'placement' (before, after or inside)")
        if has_anchor and self.position is not None:
            raise ValueError("'position' cannot be combined with 'anchorId'")
        return self


class ResizeParams(_Params):
    # Out-of-range colSpan is clamped by the mutation, so no bounds here
    col_span: int | None = Field(default=None, alias="colSpan")
    row_span: int | None = Field(default=None, alias="rowSpan", ge=1)

    @model_validator(mode="after")
    def _check_any(self) -> ResizeParams:
        if self.col_span is None and self.row_span is None:
            raise ValueError("resize requires 'colSpan' or 'rowSpan'")
        return self


class ReorderParams(_Params):
    order: list[str]


class UpdateParams(_Params):
    content: str | None = None
    class_name: str | None = Field(default=None, alias="className")
    styles: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    replace_styles: bool = Field(default=False, alias="replaceStyles")
    layout: Literal["grid", "flex", "stack"] | None = None
    grid_cols: int | None = Field(default=None, alias="gridCols", ge=1, le=12)
    href: str | None = None
    alt: str | None = None
    component: str | None = None

    @model_validator(mode="after")
    def _check_any(self) -> UpdateParams:
        if not self.model_fields_set - {"replace_styles"}:
            raise ValueError("update requires at least one field to change")
        return self

    def variant(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in VARIANT_PARAMS if getattr(self, name) is not None}


PARAM_MODELS: dict[str, type[_Params]] = {
    "create": CreateParams,
    "delete": DeleteParams,
    "move": MoveParams,
    "resize": ResizeParams,
    "reorder": ReorderParams,
    "update": UpdateParams,
}


@dataclass(frozen=True)
class ParsedCommand:
    """A command that passed structural validation."""

    operation: str
    target_slot_id: str | None
    params: Any  # One of the *Params models above


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_command(raw: Any) -> tuple[ParsedCommand | None, list[str]]:
    """
    Validate a raw command and interpret its params.
    Returns (command, []) when valid, (None, errors) otherwise.
    """
    if not isinstance(raw, Mapping):
        return None, ["MALFORMED_COMMAND: command must be an object"]

    operation = raw.get("operation")
    if not isinstance(operation, str) or operation not in COMMAND_OPERATIONS:
        return None, [f"UNSUPPORTED_COMMAND: unsupported command {operation!r}"]

    try:
        envelope = CommandEnvelope.model_validate(raw)
    except ValidationError as e:
        return None, _format_errors("MALFORMED_COMMAND", "command", e)

    if operation in TARGETED_OPERATIONS and envelope.target_slot_id is None:
        return None, [f"MISSING_TARGET: {operation} requires 'targetSlotId'"]

    try:
        params = PARAM_MODELS[operation].model_validate(envelope.params)
    except ValidationError as e:
        return None, _format_errors("INVALID_PARAMS", operation, e)

    return ParsedCommand(operation=operation, target_slot_id=envelope.target_slot_id, params=params), []


def validate_command(raw: Any) -> list[str]:
    """
    Structural validation only. Returns a list of error strings;
    empty list = valid.
    """
    _, errors = parse_command(raw)
    return errors


def make_command(operation: str, target_slot_id: str | None = None, **params: Any) -> dict[str, Any]:
    """
    Build a wire-shaped command. Params use wire names (colSpan, newParentId, ...).

        make_command("resize", "hero_text", colSpan=8)
    """
    return {"targetSlotId": target_slot_id, "operation": operation, "params": params}


def _format_errors(code: str, prefix: str, error: ValidationError) -> list[str]:
    messages: list[str] = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        where = f"{prefix}.{loc}" if loc else prefix
        messages.append(f"{code}: {where}: {err.get('msg', 'invalid value')}")
    return messages
