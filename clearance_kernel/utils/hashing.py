"""
Deterministic hashing utilities.

Audit ledger entries are chained by SHA-256 over canonical JSON, so every
hash here must be reproducible from the stored data alone.
"""

import hashlib
import json
from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for types not natively supported.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, datetime):
        return obj.isoformat()
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, bytes):
        return obj.hex()

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to canonical JSON string.

    Keys are sorted, no whitespace, consistent handling of datetime, UUID
    and enums.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def hash_payload(payload: dict) -> str:
    """
    Compute SHA-256 hash of a payload.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_ledger_entry(
    subject_key: str,
    action: str,
    details_hash: str,
    prev_hash: str | None,
    seq: int,
) -> str:
    """
    Compute hash for an audit ledger entry.

    The hash includes all key fields plus the previous entry's hash,
    creating a tamper-evident chain.

    Args:
        subject_key: Application id (or other stable key) of the subject.
        action: Action being recorded, e.g. FORM_APPROVED.
        details_hash: Hash of the entry's details payload.
        prev_hash: Hash of the previous entry (None for genesis).
        seq: Position of the entry in the chain.
    """
    components = [
        str(seq),
        subject_key,
        action,
        details_hash,
        prev_hash or "GENESIS",
    ]
    data = "|".join(components)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
