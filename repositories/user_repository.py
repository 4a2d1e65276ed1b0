"""
MongoDB-backed credential store for the `users` collection.

Write failures surface as pymongo errors (DuplicateKeyError on a taken
email); callers decide how to present them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import ReturnDocument
from pymongo.asynchronous.database import AsyncDatabase

from schemas.models.base import to_object_id
from schemas.models.user import UserDoc
from shared.logging import get_logger

log = get_logger(__name__)

USERS_COLLECTION = "users"
OTP_COLLECTION = "otp_codes"


class MongoUserRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._users = db[USERS_COLLECTION]
        self._otps = db[OTP_COLLECTION]

    async def find_by_email(self, email: str) -> Optional[UserDoc]:
        return UserDoc.from_mongo(await self._users.find_one({"email": email}))

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]:
        oid = to_object_id(user_id)
        if oid is None:
            return None
        return UserDoc.from_mongo(await self._users.find_one({"_id": oid}))

    async def create(self, user: UserDoc) -> UserDoc:
        result = await self._users.insert_one(user.to_mongo())
        return user.model_copy(update={"id": result.inserted_id})

    async def mark_verified(self, user_id: str, verified_at: datetime) -> bool:
        result = await self._users.update_one(
            {"_id": to_object_id(user_id)},
            {"$set": {"email_verified_at": verified_at, "updated_at": verified_at}},
        )
        return result.matched_count > 0

    async def bump_session_epoch(self, user_id: str, at: datetime) -> Optional[int]:
        doc = await self._users.find_one_and_update(
            {"_id": to_object_id(user_id)},
            {"$inc": {"session_epoch": 1}, "$set": {"updated_at": at}},
            projection={"session_epoch": 1},
            return_document=ReturnDocument.AFTER,
        )
        return doc["session_epoch"] if doc else None

    async def delete(self, user_id: str) -> bool:
        """Delete a user and, as a cascade, every OTP record it owns."""
        oid = to_object_id(user_id)
        if oid is None:
            return False
        otp_result = await self._otps.delete_many({"user_id": oid})
        result = await self._users.delete_one({"_id": oid})
        log.info(
            "user_deleted",
            user_id=user_id,
            deleted=result.deleted_count > 0,
            otps_deleted=otp_result.deleted_count,
        )
        return result.deleted_count > 0
