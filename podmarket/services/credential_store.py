# -*- coding: utf-8 -*-
"""
Credential store: the single owner of persisted state.

`CredentialStore` is the capability interface every service depends on.
`SqlCredentialStore` implements it with Flask-SQLAlchemy; uniqueness of
emails, slugs, audio object paths, payment references and completed
purchases is enforced by the database itself.
No business rules live here.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError

from podmarket.infra.db import db
from podmarket.infra.log import get_logger
from podmarket.models import Category, Podcast, Purchase, PurchaseStatus, User, UserSession
from podmarket.services.errors import Conflict
from podmarket.utils.security import utcnow

logger = get_logger('podmarket.store')


class CredentialStore(ABC):
    """Persistence boundary for users, sessions, catalog and purchases."""

    # --- users ---
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_verification_token(self, token_hash: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_reset_token(self, token_hash: str) -> Optional[User]: ...

    @abstractmethod
    def create_user(self, values: Dict[str, Any]) -> User:
        """Insert a user. Raises Conflict on a duplicate email."""

    @abstractmethod
    def update_user(self, user_id: str, values: Dict[str, Any],
                    expected: Optional[Dict[str, Any]] = None) -> Optional[User]:
        """
        Update a user, optionally only while every column in `expected` still
        holds the given value. Returns the updated user, or None when no row
        matched.
        """

    # --- sessions ---
    @abstractmethod
    def create_session(self, token_hash: str, user_id: str, expires_at: datetime) -> UserSession: ...

    @abstractmethod
    def get_session(self, token_hash: str) -> Optional[UserSession]: ...

    @abstractmethod
    def delete_session(self, token_hash: str) -> bool: ...

    @abstractmethod
    def delete_user_sessions(self, user_id: str) -> int: ...

    # --- categories ---
    @abstractmethod
    def list_categories(self) -> List[Category]: ...

    @abstractmethod
    def get_category(self, category_id: str) -> Optional[Category]: ...

    @abstractmethod
    def get_category_by_slug(self, slug: str) -> Optional[Category]: ...

    @abstractmethod
    def create_category(self, values: Dict[str, Any]) -> Category:
        """Insert a category. Raises Conflict on a duplicate slug."""

    # --- podcasts ---
    @abstractmethod
    def list_podcasts(self, category_id: Optional[str] = None, active_only: bool = True) -> List[Podcast]: ...

    @abstractmethod
    def get_podcast(self, podcast_id: str) -> Optional[Podcast]: ...

    @abstractmethod
    def get_podcast_by_slug(self, slug: str) -> Optional[Podcast]: ...

    @abstractmethod
    def get_podcast_by_audio_path(self, object_path: str) -> Optional[Podcast]: ...

    @abstractmethod
    def create_podcast(self, values: Dict[str, Any]) -> Podcast:
        """Insert a podcast. Raises Conflict on a duplicate slug or audio object path."""

    @abstractmethod
    def update_podcast(self, podcast_id: str, values: Dict[str, Any]) -> Optional[Podcast]: ...

    @abstractmethod
    def delete_podcast(self, podcast_id: str) -> bool: ...

    # --- purchases ---
    @abstractmethod
    def completed_purchase_exists(self, user_id: str, podcast_id: str) -> bool: ...

    @abstractmethod
    def get_completed_purchase(self, user_id: str, podcast_id: str) -> Optional[Purchase]: ...

    @abstractmethod
    def get_purchase_by_payment_reference(self, payment_reference: str) -> Optional[Purchase]:
        """Any purchase, whatever its status, recorded for this payment reference."""

    @abstractmethod
    def insert_completed_purchase(self, user_id: str, podcast_id: str, amount: int,
                                  payment_reference: Optional[str]) -> Tuple[Purchase, bool]:
        """
        Insert a completed purchase keyed by (user_id, podcast_id).

        Returns (purchase, created). When a completed purchase for the pair
        already exists, including one inserted concurrently, the existing row
        is returned with created=False. A concurrent insert that collides on
        the payment reference resolves to the row holding that reference.
        """

    @abstractmethod
    def list_user_purchases(self, user_id: str) -> List[Purchase]: ...

    @abstractmethod
    def podcast_has_purchases(self, podcast_id: str) -> bool: ...


def _duplicate_conflict(exc: IntegrityError, entity: str) -> Conflict:
    error_msg = str(exc.orig) if hasattr(exc, 'orig') else str(exc)
    logger.warning(f"Unique constraint rejected {entity}", error=error_msg)
    return Conflict(f"{entity.capitalize()} already exists")


class SqlCredentialStore(CredentialStore):
    """Flask-SQLAlchemy implementation. Requires an application context."""

    def __init__(self, database=None):
        self.db = database or db

    @property
    def session(self):
        return self.db.session

    def _insert(self, instance, entity: str):
        self.session.add(instance)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise _duplicate_conflict(exc, entity)
        return instance

    # --- users ---
    def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        return self.session.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return User.query.filter_by(email=email.lower().strip()).first()

    def get_user_by_verification_token(self, token_hash: str) -> Optional[User]:
        return User.query.filter_by(email_verification_token=token_hash).first()

    def get_user_by_reset_token(self, token_hash: str) -> Optional[User]:
        return User.query.filter_by(password_reset_token=token_hash).first()

    def create_user(self, values: Dict[str, Any]) -> User:
        return self._insert(User(**values), "user")

    def update_user(self, user_id: str, values: Dict[str, Any],
                    expected: Optional[Dict[str, Any]] = None) -> Optional[User]:
        query = User.query.filter(User.id == user_id)
        for column, value in (expected or {}).items():
            query = query.filter(getattr(User, column) == value)
        updated = query.update(dict(values, updated_at=utcnow()), synchronize_session=False)
        self.session.commit()
        if not updated:
            return None
        user = self.session.get(User, user_id)
        self.session.refresh(user)
        return user

    # --- sessions ---
    def create_session(self, token_hash: str, user_id: str, expires_at: datetime) -> UserSession:
        return self._insert(UserSession(token_hash=token_hash, user_id=user_id, expires_at=expires_at), "session")

    def get_session(self, token_hash: str) -> Optional[UserSession]:
        return self.session.get(UserSession, token_hash)

    def delete_session(self, token_hash: str) -> bool:
        deleted = UserSession.query.filter_by(token_hash=token_hash).delete(synchronize_session=False)
        self.session.commit()
        return deleted > 0

    def delete_user_sessions(self, user_id: str) -> int:
        deleted = UserSession.query.filter_by(user_id=user_id).delete(synchronize_session=False)
        self.session.commit()
        return deleted

    # --- categories ---
    def list_categories(self) -> List[Category]:
        return Category.query.order_by(Category.name.asc()).all()

    def get_category(self, category_id: str) -> Optional[Category]:
        if not category_id:
            return None
        return self.session.get(Category, category_id)

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        return Category.query.filter_by(slug=slug).first()

    def create_category(self, values: Dict[str, Any]) -> Category:
        return self._insert(Category(**values), "category")

    # --- podcasts ---
    def list_podcasts(self, category_id: Optional[str] = None, active_only: bool = True) -> List[Podcast]:
        query = Podcast.query
        if category_id:
            query = query.filter_by(category_id=category_id)
        if active_only:
            query = query.filter_by(is_active=True).order_by(Podcast.title.asc())
        else:
            query = query.order_by(Podcast.created_at.desc())
        return query.all()

    def get_podcast(self, podcast_id: str) -> Optional[Podcast]:
        if not podcast_id:
            return None
        return self.session.get(Podcast, podcast_id)

    def get_podcast_by_slug(self, slug: str) -> Optional[Podcast]:
        return Podcast.query.filter_by(slug=slug).first()

    def get_podcast_by_audio_path(self, object_path: str) -> Optional[Podcast]:
        return Podcast.query.filter_by(audio_object_path=object_path).first()

    def create_podcast(self, values: Dict[str, Any]) -> Podcast:
        return self._insert(Podcast(**values), "podcast")

    def update_podcast(self, podcast_id: str, values: Dict[str, Any]) -> Optional[Podcast]:
        podcast = self.get_podcast(podcast_id)
        if podcast is None:
            return None
        for column, value in values.items():
            setattr(podcast, column, value)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise _duplicate_conflict(exc, "podcast")
        return podcast

    def delete_podcast(self, podcast_id: str) -> bool:
        deleted = Podcast.query.filter_by(id=podcast_id).delete(synchronize_session=False)
        self.session.commit()
        return deleted > 0

    # --- purchases ---
    def _completed_query(self, user_id: str, podcast_id: str):
        return Purchase.query.filter_by(
            user_id=user_id, podcast_id=podcast_id, status=PurchaseStatus.COMPLETED)

    def completed_purchase_exists(self, user_id: str, podcast_id: str) -> bool:
        return self.session.query(self._completed_query(user_id, podcast_id).exists()).scalar()

    def get_completed_purchase(self, user_id: str, podcast_id: str) -> Optional[Purchase]:
        return self._completed_query(user_id, podcast_id).first()

    def get_purchase_by_payment_reference(self, payment_reference: str) -> Optional[Purchase]:
        if not payment_reference:
            return None
        return Purchase.query.filter_by(stripe_payment_intent_id=payment_reference).first()

    def insert_completed_purchase(self, user_id: str, podcast_id: str, amount: int,
                                  payment_reference: Optional[str]) -> Tuple[Purchase, bool]:
        existing = self.get_completed_purchase(user_id, podcast_id)
        if existing is not None:
            return existing, False

        purchase = Purchase(
            user_id=user_id,
            podcast_id=podcast_id,
            amount=amount,
            stripe_payment_intent_id=payment_reference,
            status=PurchaseStatus.COMPLETED,
        )
        self.session.add(purchase)
        try:
            self.session.commit()
            return purchase, True
        except IntegrityError:
            # a concurrent confirmation won the unique index
            self.session.rollback()
            existing = (self.get_completed_purchase(user_id, podcast_id)
                        or self.get_purchase_by_payment_reference(payment_reference))
            if existing is None:
                raise
            logger.info("Concurrent purchase insert resolved to existing row",
                        user_id=user_id, podcast_id=podcast_id, purchase_id=existing.id)
            return existing, False

    def list_user_purchases(self, user_id: str) -> List[Purchase]:
        return (Purchase.query
                .filter_by(user_id=user_id)
                .order_by(Purchase.purchased_at.desc())
                .all())

    def podcast_has_purchases(self, podcast_id: str) -> bool:
        return self.session.query(Purchase.query.filter_by(podcast_id=podcast_id).exists()).scalar()
