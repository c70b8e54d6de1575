"""Canonical serialization and hash chaining for the notification log."""
from __future__ import annotations

import hashlib
import json
from typing import Any, Mapping, Optional


def canonical_bytes(data: Mapping[str, Any]) -> bytes:
    """Serialize data with deterministic ordering for hashing and signing."""
    return json.dumps(data, sort_keys=True, separators=(",", ":")).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def chain_hash(payload: Mapping[str, Any], prev_hash_hex: Optional[str]) -> str:
    """Hash of the payload linked to the previous entry's hash."""
    hasher = hashlib.sha256()
    hasher.update(canonical_bytes(payload))
    if prev_hash_hex:
        hasher.update(bytes.fromhex(prev_hash_hex))
    return hasher.hexdigest()
