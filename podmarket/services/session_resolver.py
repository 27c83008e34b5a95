# -*- coding: utf-8 -*-
"""
Session/identity resolution.

Maps an opaque session id (as sent in the session cookie) to a Principal.
The user row is re-read on every resolution so admin grants and revocations
take effect on the next request.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from podmarket.infra.log import get_logger
from podmarket.services.credential_store import CredentialStore
from podmarket.utils.security import generate_token, hash_token, utcnow

logger = get_logger('podmarket.auth')


@dataclass(frozen=True)
class Principal:
    """An authenticated identity plus its privilege flags."""
    user_id: str
    email: str
    is_admin: bool = False


class SessionResolver:

    def __init__(self, store: CredentialStore, ttl_hours: int = 24 * 7,
                 clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.ttl = timedelta(hours=ttl_hours)
        self.clock = clock

    def resolve(self, session_id: Optional[str]) -> Optional[Principal]:
        """Return the principal for `session_id`, or None for anonymous callers."""
        if not session_id:
            return None

        token_hash = hash_token(session_id)
        session = self.store.get_session(token_hash)
        if session is None:
            return None

        if session.expires_at <= self.clock():
            self.store.delete_session(token_hash)
            logger.debug("Expired session removed", user_id=session.user_id)
            return None

        user = self.store.get_user(session.user_id)
        if user is None:
            self.store.delete_session(token_hash)
            return None

        return Principal(user_id=user.id, email=user.email, is_admin=bool(user.is_admin))

    def open_session(self, user_id: str) -> str:
        """Create a session for `user_id` and return the opaque session id."""
        session_id = generate_token()
        self.store.create_session(hash_token(session_id), user_id, self.clock() + self.ttl)
        return session_id

    def close_session(self, session_id: Optional[str]) -> None:
        if session_id:
            self.store.delete_session(hash_token(session_id))

    def revoke_all(self, user_id: str) -> int:
        return self.store.delete_user_sessions(user_id)
