"""
MongoDB-backed store for one-time passcodes (`otp_codes` collection).

consume_latest() is a single find_one_and_delete, so two concurrent
submissions of the same code cannot both succeed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pymongo import DESCENDING
from pymongo.asynchronous.database import AsyncDatabase

from repositories.user_repository import OTP_COLLECTION
from schemas.models.base import to_object_id
from schemas.models.otp import OtpDoc


class MongoOtpRepository:
    def __init__(self, db: AsyncDatabase) -> None:
        self._otps = db[OTP_COLLECTION]

    async def create(self, otp: OtpDoc) -> OtpDoc:
        result = await self._otps.insert_one(otp.to_mongo())
        return otp.model_copy(update={"id": result.inserted_id})

    async def consume_latest(
        self, user_id: str, code_hash: str, now: datetime, max_attempts: int
    ) -> Optional[OtpDoc]:
        doc = await self._otps.find_one_and_delete(
            {
                "user_id": to_object_id(user_id),
                "code_hash": code_hash,
                "expires_at": {"$gt": now},
                "attempts": {"$lt": max_attempts},
            },
            sort=[("created_at", DESCENDING)],
        )
        return OtpDoc.from_mongo(doc)

    async def register_failed_attempt(self, user_id: str, now: datetime) -> int:
        result = await self._otps.update_many(
            {"user_id": to_object_id(user_id), "expires_at": {"$gt": now}},
            {"$inc": {"attempts": 1}},
        )
        return result.modified_count

    async def count_issued_since(self, user_id: str, since: datetime) -> int:
        return await self._otps.count_documents(
            {"user_id": to_object_id(user_id), "created_at": {"$gte": since}}
        )
