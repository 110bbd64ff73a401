"""Layout digests for change detection."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from layout_engine.kernel.types import Snapshot


def hash_snapshot(snapshot: Snapshot | Mapping[str, Any]) -> str:
    """
    Digest of a layout: first 16 hex characters of SHA-256 over canonical JSON.

    Accepts a Snapshot or its wire payload; both give the same digest. The
    draft saver compares digests to skip unchanged writes, and every stored
    row carries the digest of its payload, so a draft can be compared with
    the live version without loading either tree.
    """
    payload = snapshot if isinstance(snapshot, Mapping) else snapshot.to_dict()
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:16]
