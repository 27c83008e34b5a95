# podmarket/models/session.py
from podmarket.infra.db import db
from podmarket.utils.security import utcnow


class UserSession(db.Model):
    """Server-side login session, keyed by the digest of the opaque session id."""
    __tablename__ = 'user_sessions'

    token_hash = db.Column(db.String(64), primary_key=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
