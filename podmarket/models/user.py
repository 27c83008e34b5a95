# podmarket/models/user.py
import uuid

from werkzeug.security import generate_password_hash, check_password_hash

from podmarket.infra.db import db
from podmarket.utils.security import utcnow


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100))

    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    is_email_verified = db.Column(db.Boolean, default=False, nullable=False)

    # only digests of the tokens are stored
    email_verification_token = db.Column(db.String(64), index=True, nullable=True)
    email_verification_expires = db.Column(db.DateTime, nullable=True)
    password_reset_token = db.Column(db.String(64), index=True, nullable=True)
    password_reset_expires = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    purchases = db.relationship('Purchase', backref='user', lazy=True)

    # --- password helpers ---
    def set_password(self, raw_password: str):
        self.password_hash = generate_password_hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        return check_password_hash(self.password_hash, raw_password)

    @property
    def display_name(self) -> str:
        return self.first_name or self.email.split("@")[0]

    # --- safe serializer ---
    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "is_admin": bool(self.is_admin),
            "is_email_verified": bool(self.is_email_verified),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
