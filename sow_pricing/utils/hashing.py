"""
Hashing utilities for stable, reproducible line-item identifiers.
"""

from __future__ import annotations

import hashlib


def sha256_hash(content: str | bytes) -> str:
    """Return the SHA-256 hex digest of the given content."""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def row_id(title: str, index: int, role: str) -> str:
    """Deterministic id for a pricing row that arrived without one."""
    digest = sha256_hash(f"{title}\x1f{index}\x1f{role}")
    return f"row-{index}-{digest[:10]}"
