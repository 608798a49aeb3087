import asyncio

import httpx
import pytest

from unionvote.config.settings import VotingConfigs
from unionvote.integrations import ConsoleSMSTransport, SMS0098Transport, create_sms_transport

from conftest import MEMBER_PHONE


@pytest.fixture
def sms_configs(monkeypatch, configs):
    monkeypatch.setenv("SMS_ENABLED", "true")
    monkeypatch.setenv("SMS_FROM", "30001234")
    monkeypatch.setenv("SMS_USERNAME", "union")
    monkeypatch.setenv("SMS_PASSWORD", "secret")
    return VotingConfigs()


def _send(transport, body="code: 4821"):
    async def run():
        try:
            return await transport.send_text(MEMBER_PHONE, body)
        finally:
            await transport.close()
    return asyncio.run(run())


def test_gateway_accepts_message(sms_configs):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, text="0")

    assert _send(SMS0098Transport(sms_configs, transport=httpx.MockTransport(handler))) is True

    params = seen[0].url.params
    assert params["FROM"] == "30001234"
    assert params["TO"] == MEMBER_PHONE
    assert params["TEXT"] == "code: 4821"
    assert params["USERNAME"] == "union"
    assert params["DOMAIN"] == "0098"


@pytest.mark.parametrize("status_code, text", [(200, "5"), (500, "0"), (200, "")])
def test_gateway_rejection(sms_configs, status_code, text):
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code, text=text))

    assert _send(SMS0098Transport(sms_configs, transport=transport)) is False


def test_gateway_unreachable(sms_configs):
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    assert _send(SMS0098Transport(sms_configs, transport=httpx.MockTransport(handler))) is False


def test_missing_credentials(monkeypatch, sms_configs):
    monkeypatch.setenv("SMS_PASSWORD", "")

    with pytest.raises(ValueError):
        SMS0098Transport(VotingConfigs())


def test_transport_selection(configs, sms_configs):
    assert isinstance(create_sms_transport(configs), ConsoleSMSTransport)

    gateway = create_sms_transport(sms_configs)
    assert isinstance(gateway, SMS0098Transport)
    asyncio.run(gateway.close())


def test_console_transport_always_delivers():
    assert _send(ConsoleSMSTransport()) is True
