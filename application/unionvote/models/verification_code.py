"""
Verification code model
One row per phone number; issuing a new code replaces the row.
"""

from sqlalchemy import Column, String, Boolean, TIMESTAMP, Index
from unionvote.connections.database import Base


class VerificationCodes(Base):
    __tablename__ = "verification_codes"

    phone_number = Column(String(15), primary_key=True)
    code_hash = Column(String(64), nullable=False)
    issued_at = Column(TIMESTAMP(timezone=True), nullable=False)
    expires_at = Column(TIMESTAMP(timezone=True), nullable=False)
    consumed = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_verification_codes_expires_at", "expires_at"),
    )
