# -*- coding: utf-8 -*-
"""
Tests for catalog browsing and the admin catalog operations.
"""

import io

import pytest
from pydantic import ValidationError

from podmarket.schemas.catalog import (
    CreateCategoryCommand,
    CreatePodcastCommand,
    UpdatePodcastCommand,
    UploadObjectCommand,
)
from podmarket.services.catalog import CatalogService
from podmarket.services.errors import Conflict, NotAuthenticated, NotAuthorized, NotFound, ValidationFailed
from podmarket.services.object_acl import Visibility
from podmarket.services.session_resolver import Principal

ADMIN = Principal(user_id="admin-1", email="admin@example.com", is_admin=True)
LISTENER = Principal(user_id="user-1", email="user@example.com")


@pytest.fixture
def catalog_service(memory_store, object_store):
    return CatalogService(memory_store, object_store)


@pytest.fixture
def category(catalog_service):
    return catalog_service.create_category(ADMIN, CreateCategoryCommand(name="Java", slug="java", icon="☕"))


def podcast_command(category, **overrides):
    values = dict(title="Java Concurrency", slug="java-concurrency", price=3900,
                  duration=52, category_id=category.id)
    values.update(overrides)
    return CreatePodcastCommand(**values)


class TestBrowse:

    def test_category_listing(self, catalog_service, category):
        podcast = catalog_service.create_podcast(ADMIN, podcast_command(category))
        catalog_service.create_podcast(ADMIN, podcast_command(category, slug="hidden", is_active=False))

        assert [p.id for p in catalog_service.podcasts_in_category("java")] == [podcast.id]
        assert catalog_service.podcast_by_slug("java-concurrency").id == podcast.id

    def test_inactive_podcast_is_not_found(self, catalog_service, category):
        hidden = catalog_service.create_podcast(ADMIN, podcast_command(category, is_active=False))
        with pytest.raises(NotFound):
            catalog_service.podcast_by_id(hidden.id)

    def test_unknown_category(self, catalog_service):
        with pytest.raises(NotFound):
            catalog_service.podcasts_in_category("cobol")


class TestAdminOperations:

    def test_non_admin_is_refused(self, catalog_service, category):
        with pytest.raises(NotAuthorized):
            catalog_service.create_podcast(LISTENER, podcast_command(category))
        with pytest.raises(NotAuthenticated):
            catalog_service.list_all_podcasts(None)

    def test_price_below_minimum_is_rejected(self, category):
        """A podcast priced 50 never reaches storage."""
        with pytest.raises(ValidationError):
            podcast_command(category, price=50)

    def test_unknown_category_is_rejected(self, catalog_service):
        command = CreatePodcastCommand(title="X", slug="x", price=2900, category_id="missing")
        with pytest.raises(ValidationFailed):
            catalog_service.create_podcast(ADMIN, command)

    def test_partial_update(self, catalog_service, category):
        podcast = catalog_service.create_podcast(ADMIN, podcast_command(category))
        updated = catalog_service.update_podcast(ADMIN, podcast.id, UpdatePodcastCommand(price=4500))
        assert updated.price == 4500
        assert updated.title == "Java Concurrency"

    def test_update_cannot_null_required_fields(self, catalog_service, category):
        podcast = catalog_service.create_podcast(ADMIN, podcast_command(category))
        with pytest.raises(ValidationFailed):
            catalog_service.update_podcast(ADMIN, podcast.id, UpdatePodcastCommand(title=None))

    def test_update_missing_podcast(self, catalog_service):
        with pytest.raises(NotFound):
            catalog_service.update_podcast(ADMIN, "missing", UpdatePodcastCommand(price=2900))

    def test_delete_with_purchases_is_conflict(self, catalog_service, category, memory_store):
        podcast = catalog_service.create_podcast(ADMIN, podcast_command(category))
        memory_store.insert_completed_purchase("user-1", podcast.id, 3900, "pi_1")

        with pytest.raises(Conflict):
            catalog_service.delete_podcast(ADMIN, podcast.id)
        assert memory_store.get_podcast(podcast.id) is not None

    def test_delete_without_purchases(self, catalog_service, category, memory_store):
        podcast = catalog_service.create_podcast(ADMIN, podcast_command(category))
        catalog_service.delete_podcast(ADMIN, podcast.id)
        assert memory_store.get_podcast(podcast.id) is None

    def test_second_podcast_cannot_claim_same_audio(self, catalog_service, category, memory_store):
        """An audio object backs at most one podcast, so its buyers are unambiguous."""
        first = catalog_service.create_podcast(
            ADMIN, podcast_command(category, audio_object_path="/objects/uploads/X"))

        with pytest.raises(Conflict):
            catalog_service.create_podcast(
                ADMIN, podcast_command(category, slug="premium", audio_object_path="/objects/uploads/X"))

        other = catalog_service.create_podcast(ADMIN, podcast_command(category, slug="premium"))
        with pytest.raises(Conflict):
            catalog_service.update_podcast(
                ADMIN, other.id, UpdatePodcastCommand(audio_object_path="/objects/uploads/X"))

        assert memory_store.get_podcast(other.id).audio_object_path is None
        assert memory_store.get_podcast_by_audio_path("/objects/uploads/X").id == first.id

    def test_podcast_can_keep_its_own_audio(self, catalog_service, category):
        podcast = catalog_service.create_podcast(
            ADMIN, podcast_command(category, audio_object_path="/objects/uploads/X"))
        updated = catalog_service.update_podcast(
            ADMIN, podcast.id, UpdatePodcastCommand(audio_object_path="/objects/uploads/X", price=4500))
        assert updated.price == 4500


class TestUpload:

    def test_upload_owned_by_admin_and_private_by_default(self, catalog_service, object_store):
        path = catalog_service.upload_object(ADMIN, io.BytesIO(b"audio"), "audio/mpeg", UploadObjectCommand())

        assert path.startswith("/objects/uploads/")
        acl = object_store.get_acl(path)
        assert acl.owner == ADMIN.user_id
        assert acl.visibility is Visibility.PRIVATE

    def test_upload_attached_to_podcast(self, catalog_service, category, memory_store):
        podcast = catalog_service.create_podcast(ADMIN, podcast_command(category))
        path = catalog_service.upload_object(
            ADMIN, io.BytesIO(b"audio"), "audio/mpeg",
            UploadObjectCommand(visibility="public", podcast_id=podcast.id))

        assert memory_store.get_podcast(podcast.id).audio_object_path == path

    def test_upload_for_unknown_podcast_stores_nothing(self, catalog_service, tmp_path):
        with pytest.raises(NotFound):
            catalog_service.upload_object(
                ADMIN, io.BytesIO(b"audio"), "audio/mpeg", UploadObjectCommand(podcast_id="missing"))
        assert not (tmp_path / "objects" / "uploads").exists()
