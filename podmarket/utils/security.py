# -*- coding: utf-8 -*-
"""Token and time helpers shared by sessions and account tokens."""
import hashlib
import secrets
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now; the database stores naive UTC timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def generate_token(nbytes: int = 32) -> str:
    return secrets.token_urlsafe(nbytes)


def hash_token(token: str) -> str:
    """SHA-256 hex digest. Only digests of sessions and account tokens are persisted."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
