# podmarket/models/podcast.py
import uuid
from typing import Any, Dict

from podmarket.infra.db import db
from podmarket.utils.security import utcnow


class Podcast(db.Model):
    """A purchasable podcast episode."""
    __tablename__ = 'podcasts'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = db.Column(db.String(200), nullable=False)
    slug = db.Column(db.String(200), unique=True, nullable=False, index=True)
    description = db.Column(db.Text)
    duration = db.Column(db.Integer)  # minutes
    price = db.Column(db.Integer, nullable=False)  # minor currency units
    category_id = db.Column(db.String(36), db.ForeignKey('categories.id'), nullable=False, index=True)
    # canonical object path, e.g. /objects/uploads/<id>; one podcast per object
    audio_object_path = db.Column(db.String(512), unique=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow)

    purchases = db.relationship('Purchase', backref='podcast', lazy=True)

    def to_dict(self, include_category: bool = False) -> Dict[str, Any]:
        data = {
            'id': self.id,
            'title': self.title,
            'slug': self.slug,
            'description': self.description,
            'duration': self.duration,
            'price': self.price,
            'category_id': self.category_id,
            'audio_object_path': self.audio_object_path,
            'is_active': bool(self.is_active),
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_category and self.category is not None:
            data['category'] = self.category.to_dict()
        return data
