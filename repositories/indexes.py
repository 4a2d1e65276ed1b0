"""Index definitions for the identity collections."""

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.database import AsyncDatabase

from repositories.user_repository import OTP_COLLECTION, USERS_COLLECTION
from shared.logging import get_logger

log = get_logger(__name__)


async def ensure_indexes(db: AsyncDatabase) -> None:
    users = db[USERS_COLLECTION]
    otps = db[OTP_COLLECTION]

    # Email uniqueness is the store-level guard against double registration
    await users.create_index([("email", ASCENDING)], unique=True)

    await otps.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    # Expired codes are garbage collected by MongoDB; verification never
    # relies on this and filters on expires_at itself.
    await otps.create_index([("expires_at", ASCENDING)], expireAfterSeconds=0)

    log.info("mongodb_indexes_ensured", collections=[USERS_COLLECTION, OTP_COLLECTION])
