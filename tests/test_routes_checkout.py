# -*- coding: utf-8 -*-
"""
End-to-end purchase scenarios over HTTP: intent creation, confirmation,
library listing and the protected download.
"""

from podmarket.database import db
from podmarket.models import Purchase, PurchaseStatus

AUDIO_URL = "/objects/uploads/P1"


def buy(client, processor, podcast_id):
    resp = client.post("/api/create-payment-intent", json={"podcast_id": podcast_id})
    assert resp.status_code == 200, resp.get_json()
    intent_id = resp.get_json()["payment_intent_id"]
    processor.succeed(intent_id)
    return client.post("/api/purchases", json={"podcast_id": podcast_id, "payment_intent_id": intent_id})


class TestProtectedDownload:

    def test_anonymous_and_non_buyer_are_refused(self, client, catalog, stored_audio, make_user, login):
        """No purchases: anonymous gets 401, a signed-in listener 403."""
        stored_audio()

        resp = client.get(AUDIO_URL)
        assert resp.status_code == 401

        make_user("anna@example.com")
        login("anna@example.com")
        resp = client.get(AUDIO_URL)
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "forbidden"

    def test_missing_object_is_404(self, client, make_user, login):
        make_user("anna@example.com")
        login("anna@example.com")
        assert client.get("/objects/uploads/nothing-here").status_code == 404

    def test_public_object_is_served_anonymously(self, client, stored_audio):
        stored_audio(visibility="public", path="/objects/uploads/trailer")

        resp = client.get("/objects/uploads/trailer")
        assert resp.status_code == 200
        assert resp.headers["Cache-Control"].startswith("public")
        assert resp.data == b"ID3-fake-audio-bytes"

    def test_admin_can_download_anything(self, client, catalog, stored_audio, make_user, login):
        stored_audio(owner="another-admin")
        make_user("root@example.com", is_admin=True)
        login("root@example.com")

        assert client.get(AUDIO_URL).status_code == 200


class TestPurchaseFlow:

    def test_purchase_then_download(self, client, processor, catalog, stored_audio, make_user, login):
        """Buying P1 at 2900 with a succeeded intent records one row and unlocks the audio."""
        _, podcast = catalog
        stored_audio()
        user = make_user("anna@example.com")
        login("anna@example.com")

        resp = buy(client, processor, podcast.id)
        assert resp.status_code == 201
        assert resp.get_json()["purchase"]["amount"] == 2900

        rows = Purchase.query.filter_by(user_id=user.id, podcast_id=podcast.id).all()
        assert len(rows) == 1
        assert rows[0].amount == 2900
        assert rows[0].status == "completed"

        download = client.get(AUDIO_URL)
        assert download.status_code == 200
        assert download.headers["Cache-Control"].startswith("private")
        assert download.headers["Content-Type"] == "audio/mpeg"
        assert download.data == b"ID3-fake-audio-bytes"

    def test_intent_amount_comes_from_catalog(self, client, processor, catalog, make_user, login):
        _, podcast = catalog
        make_user("anna@example.com")
        login("anna@example.com")

        resp = client.post("/api/create-payment-intent", json={"podcast_id": podcast.id, "amount": 1})
        assert resp.status_code == 400
        assert processor.create_calls == []

        resp = client.post("/api/create-payment-intent", json={"podcast_id": podcast.id})
        assert resp.get_json()["amount"] == 2900
        assert resp.get_json()["currency"] == "pln"

    def test_second_intent_for_owned_podcast(self, client, processor, catalog, make_user, login):
        _, podcast = catalog
        make_user("anna@example.com")
        login("anna@example.com")
        buy(client, processor, podcast.id)
        calls = len(processor.create_calls)

        resp = client.post("/api/create-payment-intent", json={"podcast_id": podcast.id})
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "already_purchased"
        assert len(processor.create_calls) == calls

    def test_confirming_unpaid_intent(self, client, processor, catalog, make_user, login):
        _, podcast = catalog
        make_user("anna@example.com")
        login("anna@example.com")
        intent_id = client.post("/api/create-payment-intent",
                                json={"podcast_id": podcast.id}).get_json()["payment_intent_id"]

        resp = client.post("/api/purchases", json={"podcast_id": podcast.id, "payment_intent_id": intent_id})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "payment_not_completed"
        assert Purchase.query.count() == 0

    def test_repeat_confirmation_is_idempotent(self, client, processor, catalog, make_user, login):
        _, podcast = catalog
        make_user("anna@example.com")
        login("anna@example.com")
        first = buy(client, processor, podcast.id)
        intent_id = first.get_json()["purchase"]["stripe_payment_intent_id"]

        again = client.post("/api/purchases", json={"podcast_id": podcast.id, "payment_intent_id": intent_id})
        assert again.status_code == 200
        assert again.get_json()["purchase"]["id"] == first.get_json()["purchase"]["id"]
        assert Purchase.query.count() == 1

    def test_refunded_intent_does_not_restore_access(self, client, processor, catalog, stored_audio,
                                                     make_user, login):
        _, podcast = catalog
        stored_audio()
        make_user("anna@example.com")
        login("anna@example.com")
        intent_id = buy(client, processor, podcast.id).get_json()["purchase"]["stripe_payment_intent_id"]

        Purchase.query.update({"status": PurchaseStatus.REFUNDED})
        db.session.commit()

        replay = client.post("/api/purchases", json={"podcast_id": podcast.id, "payment_intent_id": intent_id})
        assert replay.status_code == 200
        assert replay.get_json()["created"] is False
        assert replay.get_json()["purchase"]["status"] == "refunded"
        assert Purchase.query.count() == 1
        assert client.get(AUDIO_URL).status_code == 403

    def test_checkout_requires_session(self, client, catalog):
        _, podcast = catalog
        resp = client.post("/api/create-payment-intent", json={"podcast_id": podcast.id})
        assert resp.status_code == 401

    def test_library_and_ownership(self, client, processor, catalog, make_user, login):
        _, podcast = catalog
        make_user("anna@example.com")
        login("anna@example.com")

        assert client.get(f"/api/podcasts/{podcast.id}/ownership").get_json()["owned"] is False
        buy(client, processor, podcast.id)

        assert client.get(f"/api/podcasts/{podcast.id}/ownership").get_json()["owned"] is True
        library = client.get("/api/user/purchases").get_json()
        assert [p["podcast"]["slug"] for p in library] == ["java-map-collections"]
        assert library[0]["podcast"]["category"]["slug"] == "java"
