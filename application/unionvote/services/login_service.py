from unionvote.core.exceptions import CodeInvalidOrExpired, SessionEstablishFailed
from unionvote.dto.identity import Identity
from unionvote.logging.filters import mask_phone_number
from unionvote.logging.utils import get_app_logger
from unionvote.services.otp_service import OTPService
from unionvote.services.session_service import SessionManager

logger = get_app_logger("unionvote.login_service")


class LoginService:
    """Verified code -> session. A code is never left consumed without a session."""

    def __init__(self, otp_service: OTPService, sessions: SessionManager):
        self.otp_service = otp_service
        self.sessions = sessions

    async def login(self, phone_number: str, otp_code: str) -> Identity:
        record = await self.otp_service.consume(phone_number, otp_code)
        if record is None:
            raise CodeInvalidOrExpired()

        try:
            return await self.sessions.establish(phone_number)
        except SessionEstablishFailed:
            restored = await self.otp_service.reinstate(record)
            logger.error(f"login_compensated | phone={mask_phone_number(phone_number)} code_restored={restored}")
            raise
