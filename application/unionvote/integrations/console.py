from unionvote.integrations.base import SMSTransport
from unionvote.logging.filters import mask_phone_number
from unionvote.logging.utils import get_app_logger

logger = get_app_logger("unionvote.sms_console")


class ConsoleSMSTransport(SMSTransport):
    """Development transport: nothing leaves the machine.

    The body is only written out when ``echo_body`` is set (DEBUG), because it
    contains the verification code.
    """

    def __init__(self, echo_body: bool = False):
        self.echo_body = echo_body

    async def send_text(self, to_phone_number: str, body: str) -> bool:
        if self.echo_body:
            print(f"[SMS to {to_phone_number}]: {body}")
        logger.info(f"sms_console_delivery | to={mask_phone_number(to_phone_number)} length={len(body)}")
        return True
