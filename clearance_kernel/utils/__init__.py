"""Utility modules for the clearance kernel."""

from clearance_kernel.utils.hashing import (
    canonicalize_json,
    hash_ledger_entry,
    hash_payload,
)

__all__ = [
    "hash_payload",
    "hash_ledger_entry",
    "canonicalize_json",
]
