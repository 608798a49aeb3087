import asyncio
import hashlib

import pytest

from unionvote.core.exceptions import StoreUnavailable
from unionvote.services.otp_service import OTPService

from conftest import FIXED_CODE, MEMBER_PHONE, SequenceRandom


def test_issue_delivers_code_and_stores_only_hash(otp_service, transport, repository):
    assert asyncio.run(otp_service.issue(MEMBER_PHONE)) is True

    assert transport.messages == [(MEMBER_PHONE, f"Your verification code: {FIXED_CODE}\nComputer Guild Union")]
    record = repository.get_code(MEMBER_PHONE)
    assert record.code_hash == hashlib.sha256(str(FIXED_CODE).encode()).hexdigest()
    assert str(FIXED_CODE) not in record.code_hash
    assert (record.expires_at - record.issued_at).total_seconds() == 300
    assert record.consumed is False


def test_generated_codes_are_four_digits(repository, transport, configs):
    service = OTPService(repository, transport, configs=configs)
    for _ in range(200):
        code = service.generate_otp()
        assert len(code) == 4
        assert 1000 <= int(code) <= 9999


def test_verify_consumes_code_once(otp_service):
    asyncio.run(otp_service.issue(MEMBER_PHONE))

    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is True
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is False


def test_new_code_invalidates_previous(repository, transport, configs, clock):
    service = OTPService(repository, transport, configs=configs, rng=SequenceRandom(1111, 2222), clock=clock)
    asyncio.run(service.issue(MEMBER_PHONE))
    asyncio.run(service.issue(MEMBER_PHONE))

    assert asyncio.run(service.verify(MEMBER_PHONE, "1111")) is False
    assert asyncio.run(service.verify(MEMBER_PHONE, "2222")) is True


def test_expired_code_is_rejected(otp_service, clock):
    asyncio.run(otp_service.issue(MEMBER_PHONE))
    clock.advance(301)

    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is False


def test_code_valid_just_before_expiry(otp_service, clock):
    asyncio.run(otp_service.issue(MEMBER_PHONE))
    clock.advance(299)

    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is True


@pytest.mark.parametrize("submitted", ["1234", "48", "48210", "abcd", ""])
def test_mismatch_does_not_burn_the_code(otp_service, submitted):
    asyncio.run(otp_service.issue(MEMBER_PHONE))

    assert asyncio.run(otp_service.verify(MEMBER_PHONE, submitted)) is False
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is True


def test_persian_digits_are_normalised(otp_service):
    asyncio.run(otp_service.issue(MEMBER_PHONE))

    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "۴۸۲۱")) is True


def test_verify_without_issued_code(otp_service):
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is False


def test_delivery_failure_rolls_back(otp_service, transport, repository):
    transport.fail = True

    assert asyncio.run(otp_service.issue(MEMBER_PHONE)) is False
    assert repository.get_code(MEMBER_PHONE) is None
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is False


def test_transport_exception_rolls_back(otp_service, transport, repository):
    transport.error = ConnectionError("gateway unreachable")

    assert asyncio.run(otp_service.issue(MEMBER_PHONE)) is False
    assert repository.get_code(MEMBER_PHONE) is None


def test_failed_rollback_leaves_no_usable_code(otp_service, transport, repository, monkeypatch):
    def broken(record):
        raise StoreUnavailable()
    monkeypatch.setattr(repository, "delete_code", broken)
    transport.fail = True

    assert asyncio.run(otp_service.issue(MEMBER_PHONE)) is False
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is False
    assert asyncio.run(otp_service.resend_available_in(MEMBER_PHONE)) == 0


def test_failed_activation_leaves_no_usable_code(otp_service, transport, repository, monkeypatch):
    def broken(record, now):
        raise StoreUnavailable()
    monkeypatch.setattr(repository, "activate_code", broken)

    with pytest.raises(StoreUnavailable):
        asyncio.run(otp_service.issue(MEMBER_PHONE))
    assert transport.messages
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is False


def test_code_is_unusable_until_delivered(otp_service, transport):
    seen = []

    class CheckingTransport(type(transport)):
        async def send_text(self, to_phone_number, body):
            seen.append(await otp_service.verify(to_phone_number, "4821"))
            return await super().send_text(to_phone_number, body)

    otp_service.transport = CheckingTransport()

    assert asyncio.run(otp_service.issue(MEMBER_PHONE)) is True
    assert seen == [False]
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is True


def test_newer_issuance_during_delivery_wins(repository, transport, configs, clock):
    service = OTPService(repository, transport, configs=configs, rng=SequenceRandom(1111, 2222), clock=clock)
    results = []

    class ReentrantTransport(type(transport)):
        async def send_text(self, to_phone_number, body):
            if not results:
                results.append(None)
                results.append(await service.issue(to_phone_number))
            return await super().send_text(to_phone_number, body)

    service.transport = ReentrantTransport()

    assert asyncio.run(service.issue(MEMBER_PHONE)) is False
    assert results[1] is True
    assert asyncio.run(service.verify(MEMBER_PHONE, "1111")) is False
    assert asyncio.run(service.verify(MEMBER_PHONE, "2222")) is True


def test_store_failure_propagates(otp_service, repository, monkeypatch):
    def broken(record):
        raise StoreUnavailable()
    monkeypatch.setattr(repository, "replace_code", broken)

    with pytest.raises(StoreUnavailable):
        asyncio.run(otp_service.issue(MEMBER_PHONE))


def test_resend_cooldown(otp_service, clock):
    assert asyncio.run(otp_service.resend_available_in(MEMBER_PHONE)) == 0

    asyncio.run(otp_service.issue(MEMBER_PHONE))
    assert asyncio.run(otp_service.resend_available_in(MEMBER_PHONE)) == 120

    clock.advance(30.5)
    assert asyncio.run(otp_service.resend_available_in(MEMBER_PHONE)) == 90

    clock.advance(90)
    assert asyncio.run(otp_service.resend_available_in(MEMBER_PHONE)) == 0


def test_consumed_code_has_no_cooldown(otp_service):
    asyncio.run(otp_service.issue(MEMBER_PHONE))
    asyncio.run(otp_service.verify(MEMBER_PHONE, "4821"))

    assert asyncio.run(otp_service.resend_available_in(MEMBER_PHONE)) == 0


def test_reinstate_restores_consumed_code(otp_service):
    asyncio.run(otp_service.issue(MEMBER_PHONE))
    record = asyncio.run(otp_service.consume(MEMBER_PHONE, "4821"))

    assert asyncio.run(otp_service.reinstate(record)) is True
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is True


def test_reinstate_never_overrides_newer_code(repository, transport, configs, clock):
    service = OTPService(repository, transport, configs=configs, rng=SequenceRandom(1111, 2222), clock=clock)
    asyncio.run(service.issue(MEMBER_PHONE))
    record = asyncio.run(service.consume(MEMBER_PHONE, "1111"))
    asyncio.run(service.issue(MEMBER_PHONE))

    assert asyncio.run(service.reinstate(record)) is False
    assert asyncio.run(service.verify(MEMBER_PHONE, "1111")) is False
    assert asyncio.run(service.verify(MEMBER_PHONE, "2222")) is True


def test_purge_expired_removes_stale_codes(otp_service, repository, clock):
    asyncio.run(otp_service.issue(MEMBER_PHONE))
    asyncio.run(otp_service.issue("09351112233"))
    clock.advance(400)

    assert asyncio.run(otp_service.purge_expired()) == 2
    assert repository.get_code(MEMBER_PHONE) is None
