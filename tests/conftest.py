import io
import os
import tempfile

import pytest

from podmarket.services.object_storage import LocalObjectStore
from tests.fakes import TEST_PASSWORD, FakePaymentProcessor, InMemoryCredentialStore, RecordingEmailSender

os.environ.setdefault("PODMARKET_LOG_JSON", "false")


@pytest.fixture
def processor():
    return FakePaymentProcessor()


@pytest.fixture
def mailer():
    return RecordingEmailSender()


@pytest.fixture
def object_store(tmp_path):
    return LocalObjectStore(str(tmp_path / "objects"))


@pytest.fixture
def memory_store():
    return InMemoryCredentialStore()


@pytest.fixture
def app(processor, mailer, object_store):
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    from podmarket.factory import create_app
    from podmarket.database import db

    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
            "SESSION_COOKIE_SECURE_FLAG": False,
            "RATELIMIT_ENABLED": False,
            "FRONTEND_ORIGIN": "http://podmarket.test",
        },
        payment_processor=processor,
        object_store=object_store,
        email_sender=mailer,
    )
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions['podmarket']


@pytest.fixture
def make_user(services):
    """Create a user directly through the account service."""
    from podmarket.schemas.auth import RegisterCommand

    def _make(email="listener@example.com", password=TEST_PASSWORD, is_admin=False):
        user = services.accounts.register(RegisterCommand(
            email=email, password=password, first_name="Test", last_name="User"))
        if is_admin:
            user = services.accounts.set_admin(user.id, True)
        return user

    return _make


@pytest.fixture
def login(client):
    def _login(email, password=TEST_PASSWORD):
        resp = client.post("/api/auth/login", json={"email": email, "password": password})
        assert resp.status_code == 200, resp.get_json()
        return resp

    return _login


@pytest.fixture
def catalog(services):
    """One category with one active podcast priced at 2900."""
    store = services.store
    category = store.create_category({"name": "Java", "slug": "java", "icon": "☕"})
    podcast = store.create_podcast({
        "title": "Kolekcja Map w Java",
        "slug": "java-map-collections",
        "duration": 45,
        "price": 2900,
        "category_id": category.id,
        "audio_object_path": "/objects/uploads/P1",
    })
    return category, podcast


@pytest.fixture
def stored_audio(object_store):
    """Private audio object at /objects/uploads/P1 owned by an admin account."""
    from podmarket.services.object_acl import ObjectAclPolicy

    def _store(owner="admin-user-id", visibility="private", path="/objects/uploads/P1"):
        return object_store.put(
            path,
            io.BytesIO(b"ID3-fake-audio-bytes"),
            "audio/mpeg",
            ObjectAclPolicy.from_dict({"owner": owner, "visibility": visibility}),
        )

    return _store
