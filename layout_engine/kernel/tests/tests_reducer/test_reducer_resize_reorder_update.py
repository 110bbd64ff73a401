"""
Layout Engine Reducer -- Resize, Reorder and Update Tests

Covers:
  - resize clamps colSpan into [1, 12] and floors rowSpan at 1
  - reorder accepts exactly the current child set and rejects any mismatch whole
  - update merges styles / metadata, edits variant fields, never touches structure
"""

import pytest

from layout_engine.kernel.reducer import reorder_children, resize_slot, update_slot
from layout_engine.kernel.tree import get_child_ids


# ============================================================================
# resize_slot
# ============================================================================


class TestResize:
    @pytest.mark.parametrize("requested, stored", [(20, 12), (0, 1), (-3, 1), (8, 8), (7.6, 8)])
    def test_clamped(self, sample_tree, requested, stored):
        result = resize_slot(sample_tree, "title", requested)
        assert result.applied
        assert result.snapshot.slots["title"].col_span == stored

    def test_row_span(self, sample_tree):
        tree = resize_slot(sample_tree, "hero", 6, row_span=2).snapshot
        assert tree.slots["hero"].row_span == 2

    def test_row_span_floored(self, sample_tree):
        tree = resize_slot(sample_tree, "hero", 6, row_span=0).snapshot
        assert tree.slots["hero"].row_span == 1

    def test_other_fields_untouched(self, sample_tree):
        tree = resize_slot(sample_tree, "title", 3).snapshot
        before, after = sample_tree.slots["title"], tree.slots["title"]
        assert (after.content, after.order, after.parent_id) == (before.content, before.order, before.parent_id)

    def test_missing_slot(self, sample_tree):
        result = resize_slot(sample_tree, "ghost", 4)
        assert result.reason.startswith("SLOT_NOT_FOUND")
        assert result.snapshot is sample_tree

    def test_non_numeric(self, sample_tree):
        assert resize_slot(sample_tree, "title", "big").reason.startswith("INVALID_SPAN")

    @pytest.mark.parametrize("span", [float("inf"), float("-inf"), float("nan")])
    def test_non_finite_rejected(self, sample_tree, span):
        for result in (resize_slot(sample_tree, "title", span), resize_slot(sample_tree, "title", 4, row_span=span)):
            assert result.reason.startswith("INVALID_SPAN")
            assert result.snapshot is sample_tree


# ============================================================================
# reorder_children
# ============================================================================


class TestReorder:
    def test_exact_permutation(self, sample_tree):
        result = reorder_children(sample_tree, "left", ["buy", "title"])
        assert result.applied
        assert get_child_ids(result.snapshot, "left") == ["buy", "title"]
        assert result.snapshot.slots["buy"].order == 0

    def test_roots(self, sample_tree):
        assert reorder_children(sample_tree, None, ["root"]).applied

    def test_missing_child_rejected(self, sample_tree):
        result = reorder_children(sample_tree, "left", ["buy"])
        assert not result.applied
        assert result.reason == "REORDER_MISMATCH: missing: ['title']"
        assert result.snapshot is sample_tree

    def test_extra_child_rejected(self, sample_tree):
        result = reorder_children(sample_tree, "left", ["buy", "title", "hero"])
        assert result.reason == "REORDER_MISMATCH: extra: ['hero']"

    def test_duplicate_rejected(self, sample_tree):
        result = reorder_children(sample_tree, "left", ["buy", "title", "buy"])
        assert result.reason == "REORDER_MISMATCH: duplicate: ['buy']"

    def test_missing_parent(self, sample_tree):
        assert reorder_children(sample_tree, "ghost", []).reason.startswith("PARENT_NOT_FOUND")

    def test_leaf_has_empty_child_set(self, sample_tree):
        assert reorder_children(sample_tree, "title", []).applied


# ============================================================================
# update_slot
# ============================================================================


class TestUpdate:
    def test_content_and_class(self, sample_tree):
        tree = update_slot(sample_tree, "title", content="Welcome", class_name="text-3xl").snapshot
        slot = tree.slots["title"]
        assert (slot.content, slot.class_name) == ("Welcome", "text-3xl")

    def test_styles_merge(self, sample_tree):
        tree = update_slot(sample_tree, "left", styles={"color": "red"}).snapshot
        assert tree.slots["left"].styles == {"minHeight": "80px", "color": "red"}

    def test_styles_replace(self, sample_tree):
        tree = update_slot(sample_tree, "left", styles={"color": "red"}, replace_styles=True).snapshot
        assert tree.slots["left"].styles == {"color": "red"}

    def test_metadata_merge(self, sample_tree):
        once = update_slot(sample_tree, "title", metadata={"a": 1}).snapshot
        twice = update_slot(once, "title", metadata={"b": 2}).snapshot
        assert twice.slots["title"].metadata == {"a": 1, "b": 2}

    def test_variant_field(self, sample_tree):
        tree = update_slot(sample_tree, "buy", href="/cart").snapshot
        assert tree.slots["buy"].href == "/cart"

    def test_container_layout(self, sample_tree):
        tree = update_slot(sample_tree, "left", layout="stack").snapshot
        assert tree.slots["left"].layout == "stack"

    def test_structure_untouched(self, sample_tree):
        tree = update_slot(sample_tree, "title", content="x").snapshot
        assert tree.slots["title"].parent_id == "left"
        assert tree.slots["title"].order == 0
        assert tree.slots["title"].col_span == 6

    def test_field_of_other_type_rejected(self, sample_tree):
        result = update_slot(sample_tree, "title", href="/x")
        assert result.reason.startswith("INVALID_FIELD")
        assert result.snapshot is sample_tree

    def test_invalid_variant_value_rejected(self, sample_tree):
        assert update_slot(sample_tree, "left", layout="table").reason.startswith("INVALID_SLOT")

    def test_missing_slot(self, sample_tree):
        assert update_slot(sample_tree, "ghost", content="x").reason.startswith("SLOT_NOT_FOUND")
