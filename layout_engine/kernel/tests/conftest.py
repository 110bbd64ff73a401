"""
Layout engine kernel test configuration.

Shared trees for the query, mutation and command tests. Lifecycle tests use
MemoryConfigurationStore; Postgres tests are skipped when DATABASE_URL is not
set.
"""

import pytest

from layout_engine.kernel.reducer import create_slot
from layout_engine.kernel.types import Snapshot, empty_snapshot


def build_sample_tree() -> Snapshot:
    """
    root (container)
      left (container, 6)
        title (text)
        buy (button)
      right (container, 6)
        hero (image)
    """
    tree = empty_snapshot()
    steps = [
        ("container", None, {"slot_id": "root"}),
        ("container", "root", {"slot_id": "left", "col_span": 6}),
        ("container", "root", {"slot_id": "right", "col_span": 6}),
        ("text", "left", {"slot_id": "title", "content": "Hello"}),
        ("button", "left", {"slot_id": "buy", "content": "Buy"}),
        ("image", "right", {"slot_id": "hero", "alt": "Hero image"}),
    ]
    for slot_type, parent_id, kwargs in steps:
        result = create_slot(tree, slot_type, parent_id, **kwargs)
        assert result.applied, result.reason
        tree = result.snapshot
    return tree


@pytest.fixture
def sample_tree() -> Snapshot:
    return build_sample_tree()
