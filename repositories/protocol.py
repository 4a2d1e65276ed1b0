"""Repository protocols: services depend on these, not on MongoDB."""

from datetime import datetime
from typing import Optional, Protocol

from schemas.models.otp import OtpDoc
from schemas.models.user import UserDoc


class UserRepository(Protocol):
    async def find_by_email(self, email: str) -> Optional[UserDoc]: ...

    async def find_by_id(self, user_id: str) -> Optional[UserDoc]: ...

    async def create(self, user: UserDoc) -> UserDoc: ...

    async def mark_verified(self, user_id: str, verified_at: datetime) -> bool: ...

    async def bump_session_epoch(self, user_id: str, at: datetime) -> Optional[int]: ...

    async def delete(self, user_id: str) -> bool: ...


class OtpRepository(Protocol):
    async def create(self, otp: OtpDoc) -> OtpDoc: ...

    async def consume_latest(
        self, user_id: str, code_hash: str, now: datetime, max_attempts: int
    ) -> Optional[OtpDoc]: ...

    async def register_failed_attempt(self, user_id: str, now: datetime) -> int: ...

    async def count_issued_since(self, user_id: str, since: datetime) -> int: ...
