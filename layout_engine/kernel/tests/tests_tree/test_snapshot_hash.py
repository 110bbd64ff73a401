"""
Layout Engine -- Snapshot Digest Tests

Covers:
  - a Snapshot and its wire payload give the same digest
  - key order in the payload does not matter
  - any layout change gives a different digest
"""

from layout_engine.kernel.reducer import resize_slot
from layout_engine.kernel.templates import default_snapshot
from layout_engine.kernel.types import Snapshot
from layout_engine.utils.snapshot_hash import hash_snapshot


class TestHashSnapshot:
    def test_snapshot_and_payload_agree(self):
        tree = default_snapshot("cart")
        assert hash_snapshot(tree) == hash_snapshot(tree.to_dict())

    def test_key_order_ignored(self):
        payload = default_snapshot("cart").to_dict()
        reordered = dict(reversed(list(payload.items())))
        assert hash_snapshot(reordered) == hash_snapshot(payload)

    def test_round_trip_keeps_digest(self):
        tree = default_snapshot("product")
        assert hash_snapshot(Snapshot.from_dict(tree.to_dict())) == hash_snapshot(tree)

    def test_change_alters_digest(self, sample_tree):
        resized = resize_slot(sample_tree, "title", 3).snapshot
        assert hash_snapshot(resized) != hash_snapshot(sample_tree)

    def test_short_hex(self, sample_tree):
        digest = hash_snapshot(sample_tree)
        assert len(digest) == 16
        int(digest, 16)
