import re

from pydantic import BaseModel, field_validator

from unionvote.core.constants import DIGIT_TRANSLATION, LOCAL_MOBILE_PATTERN
from unionvote.logging.utils import get_app_logger
logger = get_app_logger('unionvote.phone_number_validations')


def normalize_digits(value: str) -> str:
    """Map Persian/Arabic-Indic digits to ASCII and drop everything else."""
    return re.sub(r'\D', '', (value or '').translate(DIGIT_TRANSLATION))


class PhoneNumberValidator(BaseModel):
    phone_number: str

    @field_validator('phone_number')
    @classmethod
    def validate_phone_number(cls, v):
        if not v:
            raise ValueError('Phone number is required')

        cleaned = normalize_digits(v)

        # Normalize to the local 09XXXXXXXXX format
        if re.match(r'^989\d{9}$', cleaned):
            cleaned = f'0{cleaned[2:]}'
        elif re.match(r'^9\d{9}$', cleaned):
            cleaned = f'0{cleaned}'

        if re.match(LOCAL_MOBILE_PATTERN, cleaned):
            return cleaned
        logger.warning(f"invalid_phone_number_format | length={len(cleaned)}")
        raise ValueError('Invalid phone number format. Expected 11 digits starting with 09')


def validate_phone_number(phone: str) -> str:
    return PhoneNumberValidator(phone_number=phone).phone_number
