from unionvote.config.settings import VotingConfigs
from unionvote.integrations.base import SMSTransport
from unionvote.integrations.console import ConsoleSMSTransport
from unionvote.integrations.sms_0098 import SMS0098Transport


def create_sms_transport(configs: VotingConfigs) -> SMSTransport:
    if configs.SMS_ENABLED:
        return SMS0098Transport(configs)
    return ConsoleSMSTransport(echo_body=configs.DEBUG)


__all__ = ["SMSTransport", "ConsoleSMSTransport", "SMS0098Transport", "create_sms_transport"]
