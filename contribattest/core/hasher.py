"""Canonical hashing helpers for identity keys and content addressing.

Subject identity comes from the canonical URL alone; name and description
never participate.  Relationship identity is the hash of the ordered
(subject, predicate, object) triple.
"""

from __future__ import annotations

import hashlib
import json
from typing import Any
from urllib.parse import urlsplit, urlunsplit


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes: deterministic, sorted, compact.

    - sorted keys
    - no whitespace separators (",", ":")
    - ensure_ascii=True
    - UTF-8 encoding
    """
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def ledger_hash(obj: Any) -> str:
    """Content-address a JSON-serializable object as a ``0x``-prefixed hash."""
    return f"0x{sha256_hex(canonical_json_bytes(obj))}"


def canonical_url(url: str) -> str:
    """Normalise a URL for identity comparison.

    Scheme and host are case-insensitive; a trailing slash on the path and
    surrounding whitespace are dropped.  Path, query and fragment keep their
    case.
    """
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/")
    return urlunsplit(
        (parts.scheme.lower(), parts.netloc.lower(), path, parts.query, parts.fragment)
    )


def subject_key(url: str) -> str:
    """Deterministic lookup key of a subject resource."""
    return ledger_hash({"kind": "subject", "url": canonical_url(url)})


def relationship_key(subject_id: str, predicate_id: str, object_id: str) -> str:
    """Deterministic identity of the ordered triple."""
    return ledger_hash(
        {"kind": "relationship", "triple": [subject_id, predicate_id, object_id]}
    )
