"""
Logging filters injecting request and voting context
"""
import logging
import uuid
from unionvote.middlewares.request_context import request_context


def mask_phone_number(phone_number: str | None) -> str:
    """09121234567 -> 0912***4567"""
    if not phone_number:
        return ''
    if len(phone_number) < 8:
        return '***'
    return f"{phone_number[:4]}***{phone_number[-4:]}"


class RequestContextFilter(logging.Filter):
    def filter(self, record):
        record.request_id = getattr(request_context, 'request_id', None) or str(uuid.uuid4())
        record.request_method = getattr(request_context, 'request_method', '') or ''
        record.request_path = getattr(request_context, 'request_path', '') or ''
        record.user_id = getattr(request_context, 'user_id', '') or ''
        return True


class VotingContextFilter(logging.Filter):
    def filter(self, record):
        record.phone_number = mask_phone_number(getattr(request_context, 'phone_number', None))
        record.voter_id = getattr(request_context, 'voter_id', '') or ''
        record.candidate_id = getattr(request_context, 'candidate_id', '') or ''
        return True
