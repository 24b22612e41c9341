"""Content fingerprint used as the deduplication key. Hash is SHA-256 of the snippet body."""

import hashlib


def content_hash(content: bytes) -> str:
    """SHA-256 hex digest of snippet content."""
    return hashlib.sha256(content).hexdigest()
