# src/cache/fingerprint.py — v1
"""Content fingerprinting: SHA-256 over normalized text.

Normalization is trim + lower-case only, so two submissions that differ
only in case or surrounding whitespace collide on purpose. Pure functions,
no error conditions; empty content is rejected upstream by the gateway.
"""

from __future__ import annotations

import hashlib

from scamguard.cache.models import ContentFingerprint


def normalize_content(content: str) -> str:
    """Trim surrounding whitespace and lower-case."""
    return content.strip().lower()


def fingerprint(content: str) -> ContentFingerprint:
    """Compute the content fingerprint used as cache and search key."""
    normalized = normalize_content(content)
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()
    return ContentFingerprint(digest=digest, normalized_length=len(normalized))
