import hashlib
import math
import secrets
from datetime import timedelta
from typing import Callable, Optional

from unionvote.config.settings import VotingConfigs
from unionvote.core.exceptions import StoreUnavailable
from unionvote.dto.phone_validations import normalize_digits
from unionvote.dto.verification import VerificationCode
from unionvote.integrations.base import SMSTransport
from unionvote.logging.filters import mask_phone_number
from unionvote.logging.utils import get_app_logger
from unionvote.middlewares.request_context import request_context
from unionvote.repository.base import VotingRepository
from unionvote.utils.datetime_helpers import ensure_aware, utc_now

logger = get_app_logger("unionvote.otp_service")


class OTPService:
    """
    Issues and verifies one-time codes keyed by phone number:
    - only the newest code for a number is valid
    - codes expire after OTP_EXPIRY_SECONDS
    - a matching code is consumed atomically, so a replay fails
    - the code value is never returned or logged, only its hash is stored
    """

    def __init__(
        self,
        repository: VotingRepository,
        transport: SMSTransport,
        configs: Optional[VotingConfigs] = None,
        rng=None,
        clock: Optional[Callable] = None,
    ):
        configs = configs or VotingConfigs()
        self.repository = repository
        self.transport = transport
        self.otp_length = configs.OTP_LENGTH
        self.otp_expiry = configs.OTP_EXPIRY_SECONDS
        self.resend_cooldown = configs.OTP_RESEND_COOLDOWN_SECONDS
        self.message_prefix = configs.SMS_MESSAGE_PREFIX
        self.union_name = configs.UNION_NAME
        self.rng = rng or secrets.SystemRandom()
        self.clock = clock or utc_now

    def generate_otp(self) -> str:
        """Uniform draw from [10^(n-1), 10^n - 1]; 1000..9999 for four digits."""
        return str(self.rng.randint(10 ** (self.otp_length - 1), (10 ** self.otp_length) - 1))

    @staticmethod
    def hash_otp(otp: str) -> str:
        return hashlib.sha256(otp.encode()).hexdigest()

    def build_message(self, otp: str) -> str:
        return f"{self.message_prefix}: {otp}\n{self.union_name}"

    async def issue(self, phone_number: str) -> bool:
        """
        Issue a new code for ``phone_number`` and deliver it.

        Any earlier code for the number stops being valid. The code is stored
        unusable (``consumed=True``) and only activated once delivery succeeded,
        so no failure after the first write can leave an undelivered code live.

        Returns:
            bool: True if the code was delivered and activated, False otherwise

        Raises:
            StoreUnavailable: the store could not be written
        """
        request_context.phone_number = phone_number
        masked = mask_phone_number(phone_number)
        otp = self.generate_otp()
        issued_at = ensure_aware(self.clock())
        pending = VerificationCode(
            phone_number=phone_number,
            code_hash=self.hash_otp(otp),
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=self.otp_expiry),
            consumed=True,
        )
        self.repository.replace_code(pending)

        try:
            delivered = await self.transport.send_text(phone_number, self.build_message(otp))
        except Exception as e:
            logger.error(f"otp_delivery_error | phone={masked} error={e}", exc_info=True)
            delivered = False

        if not delivered:
            try:
                self.repository.delete_code(pending)
            except StoreUnavailable as e:
                # the pending code can never be verified; purge_expired removes it later
                logger.error(f"otp_rollback_error | phone={masked} error={e}")
            logger.warning(f"otp_issue_rolled_back | phone={masked}")
            return False

        if not self.repository.activate_code(pending, ensure_aware(self.clock())):
            logger.warning(f"otp_activation_superseded | phone={masked}")
            return False

        logger.info(f"otp_issued | phone={masked} expires_at={pending.expires_at.isoformat()}")
        return True

    async def consume(self, phone_number: str, submitted_code: str) -> Optional[VerificationCode]:
        """
        Compare-and-consume the active code.

        Returns:
            The consumed record, or None if there is no active code or it does not match
        """
        request_context.phone_number = phone_number
        code = normalize_digits(submitted_code)
        if len(code) != self.otp_length:
            logger.warning(f"otp_invalid_format | phone={mask_phone_number(phone_number)}")
            return None

        record = self.repository.consume_code(phone_number, self.hash_otp(code), ensure_aware(self.clock()))
        if record is None:
            logger.warning(f"otp_rejected | phone={mask_phone_number(phone_number)}")
            return None

        logger.info(f"otp_consumed | phone={mask_phone_number(phone_number)}")
        return record

    async def verify(self, phone_number: str, submitted_code: str) -> bool:
        return await self.consume(phone_number, submitted_code) is not None

    async def reinstate(self, record: VerificationCode) -> bool:
        """Put a consumed code back, unless a newer code exists or it has expired."""
        restored = self.repository.reinstate_code(record, ensure_aware(self.clock()))
        logger.info(f"otp_reinstated | phone={mask_phone_number(record.phone_number)} restored={restored}")
        return restored

    async def resend_available_in(self, phone_number: str) -> int:
        """Seconds until another code may be requested for ``phone_number``."""
        record = self.repository.get_code(phone_number)
        now = ensure_aware(self.clock())
        if record is None or not record.is_active(now):
            return 0
        elapsed = (now - ensure_aware(record.issued_at)).total_seconds()
        return max(0, math.ceil(self.resend_cooldown - elapsed))

    async def purge_expired(self) -> int:
        return self.repository.purge_expired_codes(ensure_aware(self.clock()))
