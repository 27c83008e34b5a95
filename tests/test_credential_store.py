# -*- coding: utf-8 -*-
"""
Tests for the SQL credential store against a temporary SQLite database,
including the partial unique index on completed purchases.
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError

from podmarket.database import db
from podmarket.models import Purchase, PurchaseStatus
from podmarket.services.errors import Conflict


@pytest.fixture
def store(services):
    return services.store


@pytest.fixture
def buyer(store):
    return store.create_user({"email": "buyer@example.com", "password_hash": "x"})


class TestUsers:

    def test_duplicate_email_is_conflict(self, store, buyer):
        with pytest.raises(Conflict):
            store.create_user({"email": "buyer@example.com", "password_hash": "y"})

    def test_lookup_is_case_insensitive(self, store, buyer):
        assert store.get_user_by_email("  BUYER@example.com ").id == buyer.id

    def test_conditional_update(self, store, buyer):
        store.update_user(buyer.id, {"password_reset_token": "digest-1"})

        assert store.update_user(buyer.id, {"password_reset_token": None},
                                 expected={"password_reset_token": "other"}) is None
        updated = store.update_user(buyer.id, {"password_reset_token": None},
                                    expected={"password_reset_token": "digest-1"})
        assert updated is not None
        assert updated.password_reset_token is None

    def test_update_missing_user(self, store):
        assert store.update_user("missing", {"is_admin": True}) is None


class TestCatalog:

    def test_duplicate_slug_is_conflict(self, store, catalog):
        category, _ = catalog
        with pytest.raises(Conflict):
            store.create_category({"name": "Java again", "slug": category.slug})

    def test_active_listing_excludes_inactive(self, store, catalog):
        category, podcast = catalog
        store.update_podcast(podcast.id, {"is_active": False})
        assert store.list_podcasts(category_id=category.id) == []
        assert [p.id for p in store.list_podcasts(active_only=False)] == [podcast.id]

    def test_lookup_by_audio_path(self, store, catalog):
        _, podcast = catalog
        assert store.get_podcast_by_audio_path("/objects/uploads/P1").id == podcast.id
        assert store.get_podcast_by_audio_path("/objects/uploads/other") is None

    def test_audio_path_belongs_to_one_podcast(self, store, catalog):
        category, podcast = catalog
        with pytest.raises(Conflict):
            store.create_podcast({"title": "Premium", "slug": "premium", "price": 9900,
                                  "category_id": category.id, "audio_object_path": "/objects/uploads/P1"})

        other = store.create_podcast({"title": "Premium", "slug": "premium", "price": 9900,
                                      "category_id": category.id})
        with pytest.raises(Conflict):
            store.update_podcast(other.id, {"audio_object_path": "/objects/uploads/P1"})

        db.session.expire_all()
        assert store.get_podcast_by_audio_path("/objects/uploads/P1").id == podcast.id
        assert store.get_podcast(other.id).audio_object_path is None

    def test_podcasts_without_audio_coexist(self, store, catalog):
        category, _ = catalog
        for slug in ("draft-1", "draft-2"):
            store.create_podcast({"title": slug, "slug": slug, "price": 2900, "category_id": category.id})
        assert len(store.list_podcasts(active_only=False)) == 3


class TestPurchases:

    def test_insert_is_idempotent_per_pair(self, store, buyer, catalog):
        _, podcast = catalog
        first, created = store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_1")
        again, created_again = store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_2")

        assert created and not created_again
        assert again.id == first.id
        assert Purchase.query.count() == 1

    def test_index_rejects_second_completed_row(self, store, buyer, catalog):
        """The database itself refuses a second completed purchase per pair."""
        _, podcast = catalog
        store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_1")

        db.session.add(Purchase(user_id=buyer.id, podcast_id=podcast.id, amount=2900,
                                status=PurchaseStatus.COMPLETED))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()

    def test_index_allows_refunded_history(self, store, buyer, catalog):
        _, podcast = catalog
        db.session.add(Purchase(user_id=buyer.id, podcast_id=podcast.id, amount=2900,
                                status=PurchaseStatus.REFUNDED))
        db.session.commit()

        _, created = store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_2")
        assert created
        assert store.completed_purchase_exists(buyer.id, podcast.id)
        assert store.podcast_has_purchases(podcast.id)

    def test_lost_race_returns_winning_row(self, store, buyer, catalog):
        """An insert that loses the unique index resolves to the existing row."""
        _, podcast = catalog
        winner, _ = store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_winner")

        real_lookup = store.get_completed_purchase
        calls = []

        def stale_then_real(user_id, podcast_id):
            calls.append(1)
            # the first lookup runs before the concurrent insert became visible
            return None if len(calls) == 1 else real_lookup(user_id, podcast_id)

        with patch.object(store, "get_completed_purchase", side_effect=stale_then_real):
            purchase, created = store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_loser")

        assert not created
        assert purchase.id == winner.id
        assert Purchase.query.count() == 1

    def test_payment_reference_is_unique(self, store, buyer, catalog):
        """One payment intent backs at most one purchase row, whatever its status."""
        _, podcast = catalog
        purchase, _ = store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_1")
        purchase.status = PurchaseStatus.REFUNDED
        db.session.commit()

        db.session.add(Purchase(user_id=buyer.id, podcast_id=podcast.id, amount=2900,
                                stripe_payment_intent_id="pi_1", status=PurchaseStatus.COMPLETED))
        with pytest.raises(IntegrityError):
            db.session.commit()
        db.session.rollback()

        assert store.get_purchase_by_payment_reference("pi_1").id == purchase.id
        assert store.get_purchase_by_payment_reference("pi_unknown") is None

    def test_reference_collision_resolves_to_existing_row(self, store, buyer, catalog):
        _, podcast = catalog
        purchase, _ = store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_1")
        purchase.status = PurchaseStatus.REFUNDED
        db.session.commit()

        again, created = store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_1")
        assert not created
        assert again.id == purchase.id
        assert Purchase.query.count() == 1

    def test_user_purchase_listing(self, store, buyer, catalog):
        _, podcast = catalog
        store.insert_completed_purchase(buyer.id, podcast.id, 2900, "pi_1")
        purchases = store.list_user_purchases(buyer.id)
        assert [p.podcast_id for p in purchases] == [podcast.id]
        assert store.list_user_purchases("someone-else") == []


class TestSessions:

    def test_session_lifecycle(self, store, buyer):
        from podmarket.utils.security import utcnow

        store.create_session("digest-a", buyer.id, utcnow())
        store.create_session("digest-b", buyer.id, utcnow())
        assert store.get_session("digest-a").user_id == buyer.id

        assert store.delete_session("digest-a")
        assert not store.delete_session("digest-a")
        assert store.delete_user_sessions(buyer.id) == 1
