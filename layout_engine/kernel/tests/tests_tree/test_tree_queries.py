"""
Layout Engine -- Tree Query Tests

Read-only helpers over a Snapshot: roots, children, siblings, ancestors,
descendants, depth and render-order traversal.
"""

from layout_engine.kernel.tree import (
    depth,
    get_ancestors,
    get_child_ids,
    get_children,
    get_descendants,
    get_roots,
    get_siblings,
    get_slot,
    get_subtree_ids,
    is_container,
    walk,
)
from layout_engine.kernel.types import Snapshot, TextSlot


class TestLookups:
    def test_get_slot(self, sample_tree):
        assert get_slot(sample_tree, "title").content == "Hello"
        assert get_slot(sample_tree, "missing") is None
        assert get_slot(sample_tree, None) is None

    def test_is_container(self, sample_tree):
        assert is_container(sample_tree.slots["left"])
        assert not is_container(sample_tree.slots["title"])
        assert not is_container(None)

    def test_roots(self, sample_tree):
        assert [s.id for s in get_roots(sample_tree)] == ["root"]

    def test_children_in_order(self, sample_tree):
        assert get_child_ids(sample_tree, "root") == ["left", "right"]
        assert [s.id for s in get_children(sample_tree, "left")] == ["title", "buy"]
        assert get_child_ids(sample_tree, "title") == []

    def test_children_of_none_are_roots(self, sample_tree):
        assert get_child_ids(sample_tree, None) == ["root"]

    def test_siblings_exclude_self(self, sample_tree):
        assert [s.id for s in get_siblings(sample_tree, "title")] == ["buy"]
        assert get_siblings(sample_tree, "missing") == []


class TestAncestry:
    def test_ancestors_nearest_first(self, sample_tree):
        assert get_ancestors(sample_tree, "title") == ["left", "root"]
        assert get_ancestors(sample_tree, "root") == []

    def test_descendants(self, sample_tree):
        assert get_descendants(sample_tree, "root") == {"left", "right", "title", "buy", "hero"}
        assert get_descendants(sample_tree, "left") == {"title", "buy"}
        assert get_descendants(sample_tree, "hero") == set()

    def test_subtree_includes_self(self, sample_tree):
        assert get_subtree_ids(sample_tree, "right") == {"right", "hero"}
        assert get_subtree_ids(sample_tree, "missing") == set()

    def test_depth(self, sample_tree):
        assert depth(sample_tree, "root") == 0
        assert depth(sample_tree, "left") == 1
        assert depth(sample_tree, "buy") == 2

    def test_ancestors_terminate_on_corrupt_cycle(self):
        """A tree with a parent loop never reaches a committed snapshot, but queries must still end."""
        tree = Snapshot(
            slots={
                "a": TextSlot(id="a", parent_id="b"),
                "b": TextSlot(id="b", parent_id="a"),
            }
        )
        assert get_ancestors(tree, "a") == ["b"]


class TestWalk:
    def test_depth_first_render_order(self, sample_tree):
        assert [s.id for s in walk(sample_tree)] == ["root", "left", "title", "buy", "right", "hero"]

    def test_walk_below_a_parent(self, sample_tree):
        assert [s.id for s in walk(sample_tree, "left")] == ["title", "buy"]

    def test_walk_empty(self):
        assert list(walk(Snapshot())) == []
