# podmarket/models/purchase.py
import uuid

from podmarket.infra.db import db
from podmarket.utils.security import utcnow


class PurchaseStatus:
    COMPLETED = "completed"
    REFUNDED = "refunded"


class Purchase(db.Model):
    __tablename__ = "purchases"
    __table_args__ = (
        # at most one completed purchase per (user, podcast)
        db.Index(
            "uq_purchases_completed_user_podcast",
            "user_id",
            "podcast_id",
            unique=True,
            sqlite_where=db.text("status = 'completed'"),
            postgresql_where=db.text("status = 'completed'"),
        ),
    )

    id                       = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id                  = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    podcast_id               = db.Column(db.String(36), db.ForeignKey("podcasts.id"), nullable=False, index=True)
    stripe_payment_intent_id = db.Column(db.String(255), nullable=True, unique=True, index=True)
    amount                   = db.Column(db.Integer, nullable=False)
    status                   = db.Column(db.String(50), nullable=False, default=PurchaseStatus.COMPLETED)
    purchased_at             = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self, include_podcast: bool = False):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "podcast_id": self.podcast_id,
            "stripe_payment_intent_id": self.stripe_payment_intent_id,
            "amount": self.amount,
            "status": self.status,
            "purchased_at": self.purchased_at.isoformat() if self.purchased_at else None,
        }
        if include_podcast and self.podcast is not None:
            data["podcast"] = self.podcast.to_dict(include_category=True)
        return data
