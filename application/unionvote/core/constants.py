"""
Core constants for the union vote service

Roles, provisioning defaults and digit tables shared across the
verification, session and ballot layers.
"""


class Role:
    """Member roles"""

    ADMIN = "admin"
    CANDIDATE = "candidate"
    MEMBER = "member"

    ALL = (ADMIN, CANDIDATE, MEMBER)


class DisplayName:
    """Names given to provisioned members until they update their profile"""

    ADMIN = "System Administrator"
    MEMBER = "Member"


# Persian (U+06F0..) and Arabic-Indic (U+0660..) digits to ASCII
DIGIT_TRANSLATION = str.maketrans(
    "۰۱۲۳۴۵۶۷۸۹٠١٢٣٤٥٦٧٨٩",
    "01234567890123456789",
)

LOCAL_MOBILE_PATTERN = r"^09\d{9}$"

OTP_CACHE_PREFIX = "otp:"
MEMBER_CACHE_PREFIX = "member:"
MEMBER_PHONE_CACHE_PREFIX = "member_phone:"
BALLOT_CACHE_PREFIX = "ballot:"
SESSION_CACHE_PREFIX = "session:"
