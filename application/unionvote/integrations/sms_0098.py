from typing import Optional

import httpx
from httpx_retry import AsyncRetryTransport, RetryPolicy

from unionvote.config.settings import VotingConfigs
from unionvote.integrations.base import SMSTransport
from unionvote.logging.filters import mask_phone_number
from unionvote.logging.utils import get_app_logger

logger = get_app_logger("unionvote.sms_0098")


class SMS0098Transport(SMSTransport):
    """
    0098sms link gateway integration.
    The gateway answers with a plain-text status; "0" means accepted.
    """

    SUCCESS_STATUS = "0"

    def __init__(self, configs: VotingConfigs, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = configs.SMS_BASE_URL
        self.sender = configs.SMS_FROM
        self.username = configs.SMS_USERNAME
        self.password = configs.SMS_PASSWORD
        self.domain = configs.SMS_DOMAIN

        if not self.username or not self.password or not self.sender:
            logger.error("sms_credentials_missing")
            raise ValueError("SMS gateway credentials not configured")

        if transport is None:
            retry_policy = RetryPolicy(
                max_retries=3,
                initial_delay=0.5,
                multiplier=2.0,
                retry_on=[429, 500, 502, 503, 504]
            )
            transport = AsyncRetryTransport(policy=retry_policy)

        self.client = httpx.AsyncClient(transport=transport, timeout=configs.SMS_TIMEOUT)

    async def close(self) -> None:
        await self.client.aclose()

    async def send_text(self, to_phone_number: str, body: str) -> bool:
        """
        Send a text message through the gateway.

        Args:
            to_phone_number: Recipient in local 09XXXXXXXXX format
            body: Message text

        Returns:
            bool: True if the gateway accepted the message
        """
        params = {
            'FROM': self.sender,
            'TO': to_phone_number,
            'TEXT': body,
            'USERNAME': self.username,
            'PASSWORD': self.password,
            'DOMAIN': self.domain,
        }
        masked = mask_phone_number(to_phone_number)
        try:
            response = await self.client.get(self.base_url, params=params)
            status = response.text.strip()
            if response.status_code == 200 and status == self.SUCCESS_STATUS:
                logger.info(f"sms_sent | to={masked}")
                return True
            logger.warning(f"sms_rejected | to={masked} http_status={response.status_code} gateway_status={status[:50]}")
            return False
        except httpx.TimeoutException:
            logger.error(f"sms_timeout | to={masked}")
            return False
        except httpx.RequestError as e:
            logger.error(f"sms_request_error | to={masked} error={e}")
            return False
