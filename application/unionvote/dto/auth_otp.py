from typing import Optional

from pydantic import BaseModel, Field, field_validator

from unionvote.dto.identity import Identity
from unionvote.dto.phone_validations import validate_phone_number, normalize_digits


class RequestOTPRequest(BaseModel):
    """Request model for requesting a verification code"""
    phone_number: str = Field(..., description="Local mobile number (e.g., 09121234567)")

    @field_validator('phone_number')
    @classmethod
    def validate_phone(cls, v):
        return validate_phone_number(v)


class RequestOTPResponse(BaseModel):
    success: bool
    message: str
    phone_number: str
    expires_in: int = Field(..., description="Seconds until the code expires")
    resend_after: int = Field(..., description="Seconds until another code may be requested")


class ValidateOTPRequest(BaseModel):
    """Request model for validating a verification code"""
    phone_number: str = Field(..., description="Local mobile number")
    otp_code: str = Field(..., description="4-digit verification code")

    @field_validator('phone_number')
    @classmethod
    def validate_phone(cls, v):
        return validate_phone_number(v)

    @field_validator('otp_code')
    @classmethod
    def validate_code(cls, v):
        cleaned = normalize_digits(v)
        if not cleaned:
            raise ValueError("otp_code must contain digits")
        return cleaned


class ValidateOTPResponse(BaseModel):
    success: bool
    message: str
    session_token: Optional[str] = None
    identity: Optional[Identity] = None
