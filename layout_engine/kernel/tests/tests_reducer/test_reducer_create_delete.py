"""
Layout Engine Reducer -- Create and Delete Tests

Covers:
  - create_slot applies type defaults (colSpan, className, styles)
  - create appends last, or inserts at a sibling position, renumbering orders
  - create rejects unknown types, missing / non-container parents, bad ids
  - delete cascades to every descendant and renumbers the remaining siblings
  - delete of an absent slot is an accepted no-op
  - rejected operations hand back the caller's snapshot unchanged
"""

import pytest

from layout_engine.kernel.invariants import validate
from layout_engine.kernel.reducer import create_slot, delete_slot
from layout_engine.kernel.tree import get_child_ids
from layout_engine.kernel.types import DEFAULT_CLASS_NAMES, DEFAULT_COL_SPANS, empty_snapshot

# ============================================================================
# create_slot
# ============================================================================


class TestCreateDefaults:
    @pytest.mark.parametrize("slot_type", ["container", "text", "button", "image", "html"])
    def test_default_span_per_type(self, slot_type):
        result = create_slot(empty_snapshot(), slot_type, slot_id="s")
        assert result.applied
        assert result.snapshot.slots["s"].col_span == DEFAULT_COL_SPANS[slot_type]

    def test_text_defaults(self):
        slot = create_slot(empty_snapshot(), "text", None, "Hi", slot_id="t").snapshot.slots["t"]
        assert slot.col_span == 6
        assert slot.class_name == DEFAULT_CLASS_NAMES["text"]
        assert slot.content == "Hi"
        assert slot.row_span == 1

    def test_container_default_min_height(self):
        slot = create_slot(empty_snapshot(), "container", slot_id="c").snapshot.slots["c"]
        assert slot.styles == {"minHeight": "80px"}
        assert slot.layout == "grid"

    def test_explicit_values_override_defaults(self):
        result = create_slot(
            empty_snapshot(), "text", slot_id="t", col_span=3, class_name="custom", styles={"color": "red"}
        )
        slot = result.snapshot.slots["t"]
        assert (slot.col_span, slot.class_name, dict(slot.styles)) == (3, "custom", {"color": "red"})

    def test_span_clamped(self):
        assert create_slot(empty_snapshot(), "text", slot_id="t", col_span=40).snapshot.slots["t"].col_span == 12
        assert create_slot(empty_snapshot(), "text", slot_id="t", col_span=0).snapshot.slots["t"].col_span == 1

    def test_generated_id_uses_type_prefix(self):
        result = create_slot(empty_snapshot(), "button")
        assert result.applied
        assert result.slot_id.startswith("button_")
        assert result.slot_id in result.snapshot.slots

    def test_variant_fields_pass_through(self):
        result = create_slot(empty_snapshot(), "component", slot_id="tabs", component="ProductTabs")
        assert result.snapshot.slots["tabs"].component == "ProductTabs"


class TestCreatePlacement:
    def test_appended_last(self, sample_tree):
        result = create_slot(sample_tree, "text", "left", slot_id="note")
        assert get_child_ids(result.snapshot, "left") == ["title", "buy", "note"]
        assert result.snapshot.slots["note"].order == 2

    def test_inserted_at_position(self, sample_tree):
        result = create_slot(sample_tree, "text", "left", slot_id="note", position=0)
        tree = result.snapshot
        assert get_child_ids(tree, "left") == ["note", "title", "buy"]
        assert [tree.slots[s].order for s in ("note", "title", "buy")] == [0, 1, 2]

    def test_position_past_end_appends(self, sample_tree):
        result = create_slot(sample_tree, "text", "left", slot_id="note", position=99)
        assert get_child_ids(result.snapshot, "left")[-1] == "note"

    def test_create_at_root(self, sample_tree):
        result = create_slot(sample_tree, "container", None, slot_id="footer")
        assert result.snapshot.root_order == ("root", "footer")

    def test_original_snapshot_untouched(self, sample_tree):
        before = sample_tree.to_dict()
        create_slot(sample_tree, "text", "left", slot_id="note")
        assert sample_tree.to_dict() == before


class TestCreateRejections:
    def test_unknown_type(self, sample_tree):
        result = create_slot(sample_tree, "video", "left")
        assert not result.applied
        assert result.reason.startswith("UNKNOWN_SLOT_TYPE")
        assert result.snapshot is sample_tree

    def test_missing_parent(self, sample_tree):
        result = create_slot(sample_tree, "text", "ghost")
        assert result.reason.startswith("PARENT_NOT_FOUND")

    def test_non_container_parent(self, sample_tree):
        result = create_slot(sample_tree, "text", "title")
        assert not result.applied
        assert result.reason.startswith("PARENT_NOT_CONTAINER")
        assert result.snapshot is sample_tree

    def test_duplicate_id(self, sample_tree):
        result = create_slot(sample_tree, "text", "left", slot_id="buy")
        assert result.reason.startswith("SLOT_EXISTS")

    def test_invalid_id(self, sample_tree):
        assert create_slot(sample_tree, "text", "left", slot_id="9lives").reason.startswith("INVALID_ID")

    def test_non_numeric_span(self, sample_tree):
        assert create_slot(sample_tree, "text", "left", col_span="wide").reason.startswith("INVALID_SPAN")

    def test_component_without_name(self, sample_tree):
        assert create_slot(sample_tree, "component", "left").reason.startswith("INVALID_SLOT")

    def test_variant_on_wrong_type(self, sample_tree):
        assert create_slot(sample_tree, "text", "left", href="/x").reason.startswith("INVALID_FIELD")

    @pytest.mark.parametrize("field", ["id", "order", "type"])
    def test_common_field_as_variant(self, sample_tree, field):
        result = create_slot(sample_tree, "text", "left", **{field: "x1"})
        assert result.reason.startswith("INVALID_FIELD")
        assert result.snapshot is sample_tree

    @pytest.mark.parametrize("span", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_spans(self, sample_tree, span):
        assert create_slot(sample_tree, "text", "left", col_span=span).reason.startswith("INVALID_SPAN")
        assert create_slot(sample_tree, "text", "left", row_span=span).reason.startswith("INVALID_SPAN")


# ============================================================================
# delete_slot
# ============================================================================


class TestDelete:
    def test_cascade_removes_every_descendant(self, sample_tree):
        result = delete_slot(sample_tree, "root")
        assert result.applied
        assert dict(result.snapshot.slots) == {}

    def test_cascade_leaves_siblings(self, sample_tree):
        tree = delete_slot(sample_tree, "left").snapshot
        assert set(tree.slots) == {"root", "right", "hero"}
        assert not any(s.parent_id == "left" for s in tree.slots.values())

    def test_no_dangling_parents_after_delete(self, sample_tree):
        tree = delete_slot(sample_tree, "left").snapshot
        assert validate(tree) == []

    def test_siblings_renumbered(self, sample_tree):
        tree = delete_slot(sample_tree, "left").snapshot
        assert tree.slots["right"].order == 0

    def test_delete_leaf(self, sample_tree):
        tree = delete_slot(sample_tree, "title").snapshot
        assert get_child_ids(tree, "left") == ["buy"]
        assert tree.slots["buy"].order == 0

    def test_absent_slot_is_noop(self, sample_tree):
        result = delete_slot(sample_tree, "ghost")
        assert result.applied
        assert result.snapshot is sample_tree

    def test_delete_twice(self, sample_tree):
        once = delete_slot(sample_tree, "right").snapshot
        twice = delete_slot(once, "right")
        assert twice.applied
        assert twice.snapshot is once
