import httpx
import pytest

from opsdesk.core.errors import ApiError, Forbidden, ValidationFailed
from opsdesk.core.models.user import Session, User
from opsdesk.core.services.auth_service import AuthService
from opsdesk.core.services.invoice_service import InvoiceService
from opsdesk.core.storage.session_store import SessionStore

ADMIN = {"id": 1, "username": "dana", "email": "dana@shop.test", "role": "admin"}
STAFF = {"id": 2, "username": "lee", "role": "user"}


@pytest.fixture
def store(settings):
    return SessionStore(settings.session_path)


@pytest.fixture
def auth(client, store):
    return AuthService(client, store)


def test_store_round_trip(store):
    s = Session(token="abc", user=User(**ADMIN))
    store.save(s)
    assert store.load().model_dump() == s.model_dump()
    store.clear()
    assert store.load() is None
    store.clear()


def test_corrupt_session_file_is_set_aside(store):
    store.filepath.write_text("{not json", encoding="utf-8")
    assert store.load() is None
    assert store.filepath.with_suffix(".corrupt.json").exists()


def test_invalid_session_shape_is_ignored(store):
    store.filepath.write_text('{"token": "abc"}', encoding="utf-8")
    assert store.load() is None


def test_require_admin_returns_typed_forbidden():
    staff = Session(token="t", user=User(**STAFF))
    denied = staff.require_admin("delete invoices")
    assert isinstance(denied, Forbidden)
    assert denied.message == "You are not allowed to delete invoices"
    assert Session(token="t", user=User(**ADMIN)).require_admin("delete invoices") is None
    with pytest.raises(Forbidden):
        staff.ensure_admin("delete invoices")


def test_login_saves_session_and_token(auth, client, store, fake_api):
    fake_api.on("POST", "/api/auth/login", {"token": "jwt-1", "user": ADMIN, "message": "Login successful"})
    session = auth.login(" dana ", "secret")
    assert session.is_admin
    assert client.token == "jwt-1"
    assert store.load().model_dump() == session.model_dump()
    assert fake_api.json_of(fake_api.calls[0]) == {"username": "dana", "password": "secret"}


def test_login_requires_credentials(auth, fake_api):
    with pytest.raises(ValidationFailed):
        auth.login("", "x")
    assert fake_api.calls == []


def test_bad_credentials_surface_server_message(auth, fake_api):
    fake_api.on("POST", "/api/auth/login", {"message": "Invalid credentials"}, status=401)
    with pytest.raises(ApiError) as exc:
        auth.login("dana", "wrong")
    assert exc.value.message == "Invalid credentials"


def test_restore_refreshes_user(auth, client, store, fake_api):
    store.save(Session(token="jwt-1", user=User(**STAFF)))
    fake_api.on("GET", "/api/auth/me", {"user": {**STAFF, "role": "admin"}})
    session = auth.restore()
    assert session.is_admin
    assert client.token == "jwt-1"
    assert fake_api.calls[0].headers["Authorization"] == "Bearer jwt-1"


def test_restore_drops_rejected_session(auth, client, store, fake_api):
    store.save(Session(token="old", user=User(**STAFF)))
    fake_api.on("GET", "/api/auth/me", {"message": "Token expired"}, status=401)
    assert auth.restore() is None
    assert client.token is None
    assert store.load() is None


def test_restore_without_session_makes_no_call(auth, fake_api):
    assert auth.restore() is None
    assert fake_api.calls == []


def test_any_auth_failure_clears_persisted_session(auth, client, store, fake_api):
    store.save(Session(token="jwt-1", user=User(**ADMIN)))
    client.token = "jwt-1"
    fake_api.on("GET", "/api/invoices", {"message": "Forbidden"}, status=403)
    with pytest.raises(ApiError):
        InvoiceService(client).get_invoices()
    assert store.load() is None


def test_logout_clears_even_when_server_fails(auth, client, store, fake_api):
    store.save(Session(token="jwt-1", user=User(**ADMIN)))
    client.token = "jwt-1"
    fake_api.on("POST", "/api/auth/logout", handler=lambda r: httpx.Response(502, text="bad gateway"))
    auth.logout()
    assert client.token is None
    assert store.load() is None
