"""Unit tests for the MongoDB repositories against mocked collections."""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from repositories.indexes import ensure_indexes
from repositories.otp_repository import MongoOtpRepository
from repositories.user_repository import MongoUserRepository
from schemas.models.otp import OtpDoc
from schemas.models.user import UserDoc

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
USER_OID = ObjectId("665f1c2e8a4b7c0012345678")


@pytest.fixture
def collections():
    return {"users": AsyncMock(), "otp_codes": AsyncMock()}


@pytest.fixture
def db(collections):
    mock_db = MagicMock()
    mock_db.__getitem__.side_effect = lambda name: collections[name]
    return mock_db


def _user_doc(**overrides) -> dict:
    doc = {
        "_id": USER_OID,
        "name": "Alice",
        "email": "alice@example.com",
        "password_hash": "$argon2id$...",
        "email_verified_at": None,
        "session_epoch": 0,
        "created_at": NOW,
        "updated_at": NOW,
    }
    doc.update(overrides)
    return doc


class TestMongoUserRepository:
    async def test_find_by_email(self, db, collections):
        collections["users"].find_one.return_value = _user_doc()
        user = await MongoUserRepository(db).find_by_email("alice@example.com")
        collections["users"].find_one.assert_awaited_once_with({"email": "alice@example.com"})
        assert user.id == USER_OID
        assert user.name == "Alice"

    async def test_find_by_email_missing(self, db, collections):
        collections["users"].find_one.return_value = None
        assert await MongoUserRepository(db).find_by_email("ghost@example.com") is None

    async def test_find_by_id_invalid_id_skips_query(self, db, collections):
        assert await MongoUserRepository(db).find_by_id("not-an-id") is None
        collections["users"].find_one.assert_not_awaited()

    async def test_create_sets_id_and_omits_null_id(self, db, collections):
        collections["users"].insert_one.return_value = MagicMock(inserted_id=USER_OID)
        user = UserDoc(name="Alice", email="alice@example.com", password_hash="h")

        created = await MongoUserRepository(db).create(user)

        inserted = collections["users"].insert_one.await_args.args[0]
        assert "_id" not in inserted
        assert inserted["email"] == "alice@example.com"
        assert created.id == USER_OID

    async def test_mark_verified(self, db, collections):
        collections["users"].update_one.return_value = MagicMock(matched_count=1)
        assert await MongoUserRepository(db).mark_verified(str(USER_OID), NOW) is True
        filter_, update = collections["users"].update_one.await_args.args
        assert filter_ == {"_id": USER_OID}
        assert update["$set"]["email_verified_at"] == NOW

    async def test_bump_session_epoch(self, db, collections):
        collections["users"].find_one_and_update.return_value = {"_id": USER_OID, "session_epoch": 2}
        assert await MongoUserRepository(db).bump_session_epoch(str(USER_OID), NOW) == 2
        kwargs = collections["users"].find_one_and_update.await_args.kwargs
        assert kwargs["return_document"] == ReturnDocument.AFTER

    async def test_bump_session_epoch_missing_user(self, db, collections):
        collections["users"].find_one_and_update.return_value = None
        assert await MongoUserRepository(db).bump_session_epoch(str(USER_OID), NOW) is None

    async def test_delete_cascades_otps(self, db, collections):
        collections["otp_codes"].delete_many.return_value = MagicMock(deleted_count=2)
        collections["users"].delete_one.return_value = MagicMock(deleted_count=1)

        assert await MongoUserRepository(db).delete(str(USER_OID)) is True
        collections["otp_codes"].delete_many.assert_awaited_once_with({"user_id": USER_OID})
        collections["users"].delete_one.assert_awaited_once_with({"_id": USER_OID})


class TestMongoOtpRepository:
    async def test_create_keeps_object_id_user(self, db, collections):
        new_id = ObjectId()
        collections["otp_codes"].insert_one.return_value = MagicMock(inserted_id=new_id)
        otp = OtpDoc(
            user_id=str(USER_OID),
            code_hash="abc",
            expires_at=NOW + timedelta(minutes=10),
            created_at=NOW,
        )

        created = await MongoOtpRepository(db).create(otp)

        inserted = collections["otp_codes"].insert_one.await_args.args[0]
        assert inserted["user_id"] == USER_OID
        assert inserted["attempts"] == 0
        assert created.id == new_id

    async def test_consume_latest_is_single_atomic_delete(self, db, collections):
        collections["otp_codes"].find_one_and_delete.return_value = {
            "_id": ObjectId(),
            "user_id": USER_OID,
            "code_hash": "abc",
            "expires_at": NOW + timedelta(minutes=5),
            "created_at": NOW,
            "attempts": 0,
        }

        record = await MongoOtpRepository(db).consume_latest(str(USER_OID), "abc", NOW, 5)

        call = collections["otp_codes"].find_one_and_delete.await_args
        assert call.args[0] == {
            "user_id": USER_OID,
            "code_hash": "abc",
            "expires_at": {"$gt": NOW},
            "attempts": {"$lt": 5},
        }
        assert call.kwargs["sort"] == [("created_at", DESCENDING)]
        assert record.code_hash == "abc"

    async def test_consume_latest_no_match(self, db, collections):
        collections["otp_codes"].find_one_and_delete.return_value = None
        assert await MongoOtpRepository(db).consume_latest(str(USER_OID), "x", NOW, 5) is None

    async def test_register_failed_attempt_targets_live_codes(self, db, collections):
        collections["otp_codes"].update_many.return_value = MagicMock(modified_count=1)
        assert await MongoOtpRepository(db).register_failed_attempt(str(USER_OID), NOW) == 1
        filter_, update = collections["otp_codes"].update_many.await_args.args
        assert filter_ == {"user_id": USER_OID, "expires_at": {"$gt": NOW}}
        assert update == {"$inc": {"attempts": 1}}

    async def test_count_issued_since(self, db, collections):
        collections["otp_codes"].count_documents.return_value = 3
        since = NOW - timedelta(hours=1)
        assert await MongoOtpRepository(db).count_issued_since(str(USER_OID), since) == 3
        collections["otp_codes"].count_documents.assert_awaited_once_with(
            {"user_id": USER_OID, "created_at": {"$gte": since}}
        )


async def test_ensure_indexes(db, collections):
    await ensure_indexes(db)

    users_calls = collections["users"].create_index.await_args_list
    assert users_calls[0].kwargs == {"unique": True}

    ttl = [
        c for c in collections["otp_codes"].create_index.await_args_list
        if "expireAfterSeconds" in c.kwargs
    ]
    assert ttl and ttl[0].args[0] == [("expires_at", 1)]
