# -*- coding: utf-8 -*-
"""
HTTP tests for the public catalog and the admin API.
"""

import io

import pytest

from podmarket.database import db


@pytest.fixture
def admin_client(client, make_user, login):
    make_user("root@example.com", is_admin=True)
    login("root@example.com")
    return client


class TestCatalogBrowsing:

    def test_categories_and_podcasts(self, client, catalog):
        category, podcast = catalog
        assert [c["slug"] for c in client.get("/api/categories").get_json()] == ["java"]

        listing = client.get("/api/categories/java/podcasts").get_json()
        assert [p["id"] for p in listing] == [podcast.id]

        by_slug = client.get("/api/podcasts/java-map-collections").get_json()
        assert by_slug["price"] == 2900
        assert by_slug["category"]["id"] == category.id
        assert client.get(f"/api/podcasts/by-id/{podcast.id}").status_code == 200

    def test_unknown_podcast(self, client):
        resp = client.get("/api/podcasts/does-not-exist")
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "not_found"


class TestAdminGuards:

    def test_anonymous_gets_401(self, client):
        assert client.get("/api/admin/podcasts").status_code == 401

    def test_listener_gets_403(self, client, make_user, login):
        make_user("anna@example.com")
        login("anna@example.com")
        assert client.get("/api/admin/podcasts").status_code == 403


class TestAdminCatalog:

    def test_create_podcast(self, admin_client, catalog):
        category, _ = catalog
        resp = admin_client.post("/api/admin/podcasts", json={
            "title": "Java Concurrency",
            "slug": "java-concurrency",
            "price": 3900,
            "duration": 52,
            "category_id": category.id,
        })
        assert resp.status_code == 201
        assert resp.get_json()["price"] == 3900

    def test_price_below_minimum_rejected(self, admin_client, catalog):
        """An admin creating a podcast priced 50 gets a validation error."""
        category, _ = catalog
        resp = admin_client.post("/api/admin/podcasts", json={
            "title": "Too cheap", "slug": "too-cheap", "price": 50, "category_id": category.id,
        })
        assert resp.status_code == 400
        assert resp.get_json()["details"][0]["loc"] == "price"

    def test_duplicate_slug(self, admin_client, catalog):
        category, _ = catalog
        resp = admin_client.post("/api/admin/podcasts", json={
            "title": "Again", "slug": "java-map-collections", "price": 2900, "category_id": category.id,
        })
        assert resp.status_code == 409

    def test_audio_already_attached_elsewhere(self, admin_client, catalog):
        category, podcast = catalog
        resp = admin_client.post("/api/admin/podcasts", json={
            "title": "Premium", "slug": "premium", "price": 9900, "category_id": category.id,
            "audio_object_path": podcast.audio_object_path,
        })
        assert resp.status_code == 409

        created = admin_client.post("/api/admin/podcasts", json={
            "title": "Premium", "slug": "premium", "price": 9900, "category_id": category.id,
        }).get_json()
        resp = admin_client.put(f"/api/admin/podcasts/{created['id']}",
                                json={"audio_object_path": "/objects//uploads/P1"})
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "conflict"

    def test_update_and_list(self, admin_client, catalog):
        _, podcast = catalog
        resp = admin_client.put(f"/api/admin/podcasts/{podcast.id}", json={"is_active": False})
        assert resp.status_code == 200
        assert resp.get_json()["is_active"] is False

        listing = admin_client.get("/api/admin/podcasts").get_json()
        assert [p["id"] for p in listing] == [podcast.id]

    def test_delete(self, admin_client, catalog):
        _, podcast = catalog
        assert admin_client.delete(f"/api/admin/podcasts/{podcast.id}").status_code == 200
        assert admin_client.get(f"/api/podcasts/by-id/{podcast.id}").status_code == 404

    def test_create_category(self, admin_client):
        resp = admin_client.post("/api/admin/categories", json={"name": "Azure", "slug": "azure", "icon": "☁️"})
        assert resp.status_code == 201
        assert resp.get_json()["slug"] == "azure"


class TestAdminUsers:

    def test_grant_admin(self, admin_client, make_user, services):
        user = make_user("anna@example.com")
        resp = admin_client.post(f"/api/admin/users/{user.id}/admin", json={"is_admin": True})
        assert resp.status_code == 200
        assert resp.get_json()["is_admin"] is True

    def test_unknown_user(self, admin_client):
        resp = admin_client.post("/api/admin/users/missing/admin", json={})
        assert resp.status_code == 404


class TestAdminUpload:

    def test_upload_and_attach(self, admin_client, catalog, object_store):
        _, podcast = catalog
        resp = admin_client.post(
            "/api/admin/objects",
            data={
                "file": (io.BytesIO(b"new-audio"), "episode.mp3", "audio/mpeg"),
                "podcast_id": podcast.id,
            },
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201
        path = resp.get_json()["object_path"]

        db.session.expire_all()
        refreshed = admin_client.get(f"/api/podcasts/by-id/{podcast.id}").get_json()
        assert refreshed["audio_object_path"] == path
        assert object_store.get_acl(path).visibility.value == "private"

    def test_upload_requires_file(self, admin_client):
        resp = admin_client.post("/api/admin/objects", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
