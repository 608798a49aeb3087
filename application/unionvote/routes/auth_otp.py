import secrets

from fastapi import APIRouter, Depends, Request

from unionvote.config.settings import VotingConfigs
from unionvote.core.exceptions import DeliveryFailed, ResendCooldownActive
from unionvote.dto.auth_otp import RequestOTPRequest, RequestOTPResponse, ValidateOTPRequest, ValidateOTPResponse
from unionvote.logging.filters import mask_phone_number
from unionvote.logging.utils import get_app_logger
from unionvote.routes.dependencies import get_configs, get_otp_service
from unionvote.services.login_service import LoginService
from unionvote.services.otp_service import OTPService
from unionvote.services.session_service import SessionManager

logger = get_app_logger("unionvote.routes.auth_otp")

router = APIRouter(tags=["auth"])


@router.post("/request-otp", response_model=RequestOTPResponse)
async def request_otp(
    body: RequestOTPRequest,
    otp_service: OTPService = Depends(get_otp_service),
):
    """
    Send a verification code to the given phone number.
    Steps:
    1. Validate and normalise the phone number
    2. Refuse while the resend cooldown of the active code is running
    3. Issue the code and deliver it over SMS
    """
    phone_number = body.phone_number
    logger.info(f"otp_requested | phone={mask_phone_number(phone_number)}")

    retry_after = await otp_service.resend_available_in(phone_number)
    if retry_after > 0:
        raise ResendCooldownActive(retry_after)

    if not await otp_service.issue(phone_number):
        raise DeliveryFailed()

    return RequestOTPResponse(
        success=True,
        message="Verification code sent",
        phone_number=phone_number,
        expires_in=otp_service.otp_expiry,
        resend_after=otp_service.resend_cooldown,
    )


@router.post("/validate-otp", response_model=ValidateOTPResponse)
async def validate_otp(
    body: ValidateOTPRequest,
    request: Request,
    otp_service: OTPService = Depends(get_otp_service),
    configs: VotingConfigs = Depends(get_configs),
):
    """Consume the code and open a session; the returned token names the session slot."""
    session_token = secrets.token_urlsafe(32)
    sessions = SessionManager(otp_service.repository, request.app.state.slot_factory(session_token), configs=configs)

    identity = await LoginService(otp_service, sessions).login(body.phone_number, body.otp_code)
    return ValidateOTPResponse(
        success=True,
        message="Signed in",
        session_token=session_token,
        identity=identity,
    )
