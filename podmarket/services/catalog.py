# -*- coding: utf-8 -*-
"""
Catalog service: public browsing plus the admin CRUD surface.

Browsing never consults the entitlement engine. Admin operations expect an
admin principal; the HTTP layer enforces that with require_admin and the
service checks it again.
"""
from __future__ import annotations

import uuid
from typing import BinaryIO, List, Optional

from podmarket.infra.log import get_logger
from podmarket.models import Category, Podcast
from podmarket.schemas.catalog import (
    CreateCategoryCommand,
    CreatePodcastCommand,
    UpdatePodcastCommand,
    UploadObjectCommand,
)
from podmarket.services.credential_store import CredentialStore
from podmarket.services.errors import Conflict, NotAuthenticated, NotAuthorized, NotFound, ValidationFailed
from podmarket.services.object_acl import ObjectAclPolicy
from podmarket.services.object_storage import ObjectStore
from podmarket.services.session_resolver import Principal

logger = get_logger('podmarket.catalog')

UPLOAD_PREFIX = "uploads"
# columns that must never be cleared by a partial update
NON_NULLABLE_FIELDS = ("title", "slug", "price", "category_id", "is_active")


def _require_admin(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise NotAuthenticated()
    if not principal.is_admin:
        raise NotAuthorized("Admin privileges required")
    return principal


class CatalogService:

    def __init__(self, store: CredentialStore, objects: ObjectStore):
        self.store = store
        self.objects = objects

    # --- browse ---
    def list_categories(self) -> List[Category]:
        return self.store.list_categories()

    def podcasts_in_category(self, slug: str) -> List[Podcast]:
        category = self.store.get_category_by_slug(slug)
        if category is None:
            raise NotFound("Category not found")
        return self.store.list_podcasts(category_id=category.id, active_only=True)

    def podcast_by_slug(self, slug: str) -> Podcast:
        podcast = self.store.get_podcast_by_slug(slug)
        if podcast is None or not podcast.is_active:
            raise NotFound("Podcast not found")
        return podcast

    def podcast_by_id(self, podcast_id: str) -> Podcast:
        podcast = self.store.get_podcast(podcast_id)
        if podcast is None or not podcast.is_active:
            raise NotFound("Podcast not found")
        return podcast

    # --- admin ---
    def list_all_podcasts(self, principal: Optional[Principal]) -> List[Podcast]:
        _require_admin(principal)
        return self.store.list_podcasts(active_only=False)

    def create_category(self, principal: Optional[Principal], command: CreateCategoryCommand) -> Category:
        _require_admin(principal)
        category = self.store.create_category(command.model_dump())
        logger.info("Category created", category_id=category.id, slug=category.slug)
        return category

    def _check_category(self, category_id: str) -> None:
        if self.store.get_category(category_id) is None:
            raise ValidationFailed("Unknown category", field="category_id")

    def _check_audio_path(self, object_path: Optional[str], podcast_id: Optional[str] = None) -> None:
        """An audio object backs at most one podcast."""
        if not object_path:
            return
        holder = self.store.get_podcast_by_audio_path(object_path)
        if holder is not None and holder.id != podcast_id:
            raise Conflict("Audio object is already attached to another podcast")

    def create_podcast(self, principal: Optional[Principal], command: CreatePodcastCommand) -> Podcast:
        admin = _require_admin(principal)
        self._check_category(command.category_id)
        self._check_audio_path(command.audio_object_path)
        podcast = self.store.create_podcast(command.model_dump())
        logger.info("Podcast created", podcast_id=podcast.id, slug=podcast.slug,
                    price=podcast.price, user_id=admin.user_id)
        return podcast

    def update_podcast(self, principal: Optional[Principal], podcast_id: str,
                       command: UpdatePodcastCommand) -> Podcast:
        admin = _require_admin(principal)
        changes = command.changes()
        for name in NON_NULLABLE_FIELDS:
            if name in changes and changes[name] is None:
                raise ValidationFailed(f"{name} cannot be null", field=name)
        if "category_id" in changes:
            self._check_category(changes["category_id"])
        if "audio_object_path" in changes:
            self._check_audio_path(changes["audio_object_path"], podcast_id)

        podcast = self.store.update_podcast(podcast_id, changes)
        if podcast is None:
            raise NotFound("Podcast not found")
        logger.info("Podcast updated", podcast_id=podcast_id, fields=sorted(changes), user_id=admin.user_id)
        return podcast

    def delete_podcast(self, principal: Optional[Principal], podcast_id: str) -> None:
        admin = _require_admin(principal)
        if self.store.get_podcast(podcast_id) is None:
            raise NotFound("Podcast not found")
        if self.store.podcast_has_purchases(podcast_id):
            raise Conflict("Podcast has purchases; deactivate it instead")
        self.store.delete_podcast(podcast_id)
        logger.info("Podcast deleted", podcast_id=podcast_id, user_id=admin.user_id)

    def upload_object(self, principal: Optional[Principal], stream: BinaryIO, content_type: Optional[str],
                      command: UploadObjectCommand) -> str:
        """
        Store an uploaded audio file under a fresh key and return its
        canonical path. The uploading admin owns the object. When
        `podcast_id` is given the podcast is pointed at the new object.
        """
        admin = _require_admin(principal)
        if command.podcast_id and self.store.get_podcast(command.podcast_id) is None:
            raise NotFound("Podcast not found")

        acl = ObjectAclPolicy(owner=admin.user_id, visibility=command.visibility)
        path = self.objects.put(
            f"{UPLOAD_PREFIX}/{uuid.uuid4()}",
            stream,
            content_type or "application/octet-stream",
            acl,
        )
        logger.info("Audio object uploaded", object_path=path, visibility=command.visibility.value,
                    user_id=admin.user_id)

        if command.podcast_id:
            self.store.update_podcast(command.podcast_id, {"audio_object_path": path})
        return path
