from repositories.indexes import ensure_indexes
from repositories.otp_repository import MongoOtpRepository
from repositories.protocol import OtpRepository, UserRepository
from repositories.user_repository import MongoUserRepository

__all__ = [
    "ensure_indexes",
    "MongoOtpRepository",
    "MongoUserRepository",
    "OtpRepository",
    "UserRepository",
]
