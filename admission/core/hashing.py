"""Identity hashing for logs.

Kept free of settings imports so limiter adapters can use it without
loading configuration.
"""

from __future__ import annotations

import hashlib


def hash_identity(identity: str | None) -> str:
    """Return a short stable digest of a caller identity for log correlation.

    Args:
        identity: Caller identity (IP address, namespaced API key, ...).

    Returns:
        First 16 hex chars of the SHA-256 digest, or "anonymous".
    """

    if identity is None:
        return "anonymous"
    return hashlib.sha256(identity.encode()).hexdigest()[:16]
