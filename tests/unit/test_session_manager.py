"""Unit tests for SessionManager: cookie issue, refresh, removal, lookup."""

from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from http.cookies import SimpleCookie

import pytest
from pymongo.errors import ServerSelectionTimeoutError
from starlette.requests import Request
from starlette.responses import Response

from schemas.models.user import UserDoc
from services.session_manager import SessionManager
from services.token_codec import TokenCodec


@pytest.fixture
def manager(settings, users, clock):
    return SessionManager(TokenCodec(settings.session, now=clock), users, settings, now=clock)


@pytest.fixture
async def alice(users, clock):
    return await users.create(
        UserDoc(
            name="Alice",
            email="alice@example.com",
            password_hash="x",
            email_verified_at=clock(),
            created_at=clock(),
            updated_at=clock(),
        )
    )


def _request(cookie_value=None) -> Request:
    headers = []
    if cookie_value is not None:
        headers.append((b"cookie", f"session={cookie_value}".encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": headers})


def _set_cookie(response: Response) -> SimpleCookie:
    cookie = SimpleCookie()
    cookie.load(response.headers["set-cookie"])
    return cookie


def _token(response: Response) -> str:
    return _set_cookie(response)["session"].value


class TestCreateSession:
    def test_cookie_attributes(self, manager, clock):
        response = Response()
        expires = manager.create_session(response, "665f1c2e8a4b7c0012345678")
        assert expires == clock() + timedelta(hours=8)

        morsel = _set_cookie(response)["session"]
        assert morsel["httponly"] is True
        assert morsel["path"] == "/"
        assert morsel["samesite"].lower() == "lax"
        assert parsedate_to_datetime(morsel["expires"]) == expires
        # test env is not production
        assert not morsel["secure"]

    def test_secure_flag_in_production(self, settings, users, clock):
        prod = settings.model_copy(update={"env": "production"})
        manager = SessionManager(TokenCodec(prod.session, now=clock), users, prod, now=clock)
        response = Response()
        manager.create_session(response, "665f1c2e8a4b7c0012345678")
        assert _set_cookie(response)["session"]["secure"] is True


class TestDeleteSession:
    def test_expires_in_the_past(self, manager):
        response = Response()
        manager.delete_session(response)
        morsel = _set_cookie(response)["session"]
        assert morsel.value == ""
        assert "1970" in morsel["expires"]

    def test_without_prior_session(self, manager):
        manager.delete_session(Response())


class TestGetSession:
    async def test_resolves_user(self, manager, alice):
        response = Response()
        manager.create_session(response, alice.str_id)
        session = await manager.get_session(_request(_token(response)))
        assert session is not None
        assert session.user.email == "alice@example.com"
        assert session.user.email_verified is True

    async def test_no_cookie(self, manager):
        assert await manager.get_session(_request()) is None

    async def test_garbage_cookie(self, manager):
        assert await manager.get_session(_request("garbage")) is None

    async def test_deleted_user(self, manager, users, alice):
        response = Response()
        manager.create_session(response, alice.str_id)
        await users.delete(alice.str_id)
        assert await manager.get_session(_request(_token(response))) is None

    async def test_expired(self, manager, clock, alice):
        response = Response()
        manager.create_session(response, alice.str_id)
        clock.advance(hours=8, seconds=1)
        assert await manager.get_session(_request(_token(response))) is None

    async def test_store_failure_reads_as_no_session(self, manager, users, alice, mocker):
        response = Response()
        manager.create_session(response, alice.str_id)
        mocker.patch.object(
            users, "find_by_id", side_effect=ServerSelectionTimeoutError("no servers")
        )
        assert await manager.get_session(_request(_token(response))) is None

    async def test_malformed_user_document_reads_as_no_session(
        self, manager, users, alice, mocker
    ):
        response = Response()
        manager.create_session(response, alice.str_id)

        def corrupt(user_id):
            return UserDoc.model_validate({"_id": user_id, "email": 42})

        mocker.patch.object(users, "find_by_id", side_effect=corrupt)
        assert await manager.get_session(_request(_token(response))) is None

    async def test_revoked(self, manager, alice):
        response = Response()
        manager.create_session(response, alice.str_id, epoch=alice.session_epoch)
        assert await manager.revoke_sessions(alice.str_id) == 1
        assert await manager.get_session(_request(_token(response))) is None


class TestUpdateSession:
    def test_slides_expiry(self, manager, clock):
        first = Response()
        manager.create_session(first, "665f1c2e8a4b7c0012345678")
        clock.advance(hours=1)

        refreshed = Response()
        assert manager.update_session(_request(_token(first)), refreshed) is True

        morsel = _set_cookie(refreshed)["session"]
        assert parsedate_to_datetime(morsel["expires"]) == clock() + timedelta(hours=8)
        claims = manager.read_claims(_request(morsel.value))
        assert claims.expires == clock() + timedelta(hours=8)

    def test_no_cookie_no_mutation(self, manager):
        response = Response()
        assert manager.update_session(_request(), response) is False
        assert "set-cookie" not in response.headers

    def test_expired_cookie_no_mutation(self, manager, clock):
        first = Response()
        manager.create_session(first, "665f1c2e8a4b7c0012345678")
        clock.advance(hours=9)
        response = Response()
        assert manager.update_session(_request(_token(first)), response) is False
        assert "set-cookie" not in response.headers


def test_clock_is_utc(clock):
    assert clock().tzinfo == timezone.utc
    assert isinstance(clock(), datetime)
