from datetime import datetime

from pydantic import BaseModel

from unionvote.utils.datetime_helpers import ensure_aware


class VerificationCode(BaseModel):
    """Stored one-time code. Only the SHA-256 of the code is kept."""
    phone_number: str
    code_hash: str
    issued_at: datetime
    expires_at: datetime
    consumed: bool = False

    def is_expired(self, now: datetime) -> bool:
        return ensure_aware(self.expires_at) <= now

    def is_active(self, now: datetime) -> bool:
        return not self.consumed and not self.is_expired(now)
