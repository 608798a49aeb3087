"""
Redis adapter for the voting store.

Codes live under ``otp:<phone>`` with a native TTL; consuming a code deletes it
through a compare-and-delete script, so a replay finds nothing. Ballots use
``SET NX`` on ``ballot:<voter_id>`` as the insert-if-absent primitive.
"""

from collections import Counter
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Optional

import redis

from unionvote.connections.redis_wrapper import RedisJSONWrapper, safe_key_part
from unionvote.core.constants import (
    BALLOT_CACHE_PREFIX,
    MEMBER_CACHE_PREFIX,
    MEMBER_PHONE_CACHE_PREFIX,
    OTP_CACHE_PREFIX,
)
from unionvote.core.exceptions import StoreUnavailable
from unionvote.dto.ballots import Ballot
from unionvote.dto.identity import Identity
from unionvote.dto.verification import VerificationCode
from unionvote.repository.base import VotingRepository

from unionvote.logging.utils import get_app_logger
logger = get_app_logger("unionvote.redis_repository")


def _remaining_seconds(record: VerificationCode, now: datetime) -> int:
    return int((record.expires_at - now).total_seconds())


class RedisVotingRepository(VotingRepository):

    backend_name = "redis"

    def __init__(self, wrapper: RedisJSONWrapper):
        if not getattr(wrapper, "connected", False):
            raise StoreUnavailable("Redis connection failed")
        self.redis = wrapper

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except redis.exceptions.RedisError as e:
            logger.error(f"{operation}_error | error={e}", exc_info=True)
            raise StoreUnavailable() from e

    @staticmethod
    def _otp_key(phone_number: str) -> str:
        return f"{OTP_CACHE_PREFIX}{safe_key_part(phone_number)}"

    @staticmethod
    def _member_key(member_id: str) -> str:
        return f"{MEMBER_CACHE_PREFIX}{safe_key_part(member_id)}"

    @staticmethod
    def _member_phone_key(phone_number: str) -> str:
        return f"{MEMBER_PHONE_CACHE_PREFIX}{safe_key_part(phone_number)}"

    @staticmethod
    def _ballot_key(voter_id: str) -> str:
        return f"{BALLOT_CACHE_PREFIX}{safe_key_part(voter_id)}"

    # Verification codes

    def replace_code(self, record: VerificationCode) -> None:
        ttl = _remaining_seconds(record, record.issued_at)
        with self._guard("replace_code"):
            self.redis.set_with_ttl(self._otp_key(record.phone_number), record.model_dump(mode="json"), ttl)

    def activate_code(self, record: VerificationCode, now: datetime) -> bool:
        if _remaining_seconds(record, now) <= 0:
            return False
        pending = record.model_copy(update={"consumed": True}).model_dump(mode="json")
        active = record.model_copy(update={"consumed": False}).model_dump(mode="json")
        with self._guard("activate_code"):
            # A newer issuance replaced the pending value; leave it alone
            return self.redis.compare_and_set(self._otp_key(record.phone_number), pending, active)

    def get_code(self, phone_number: str) -> Optional[VerificationCode]:
        with self._guard("get_code"):
            data = self.redis.get(self._otp_key(phone_number))
        return VerificationCode.model_validate(data) if data else None

    def consume_code(self, phone_number: str, code_hash: str, now: datetime) -> Optional[VerificationCode]:
        key = self._otp_key(phone_number)
        with self._guard("consume_code"):
            data = self.redis.get(key)
            if not data:
                return None
            record = VerificationCode.model_validate(data)
            if record.code_hash != code_hash or not record.is_active(now):
                return None
            # Only one caller can delete the exact value it read
            if not self.redis.compare_and_delete(key, data):
                return None
        return record.model_copy(update={"consumed": True})

    def reinstate_code(self, record: VerificationCode, now: datetime) -> bool:
        ttl = _remaining_seconds(record, now)
        if ttl <= 0:
            return False
        payload = record.model_copy(update={"consumed": False}).model_dump(mode="json")
        with self._guard("reinstate_code"):
            # NX: a newer issuance must not be overwritten
            return self.redis.set_if_not_exists(self._otp_key(record.phone_number), payload, ttl)

    def delete_code(self, record: VerificationCode) -> bool:
        with self._guard("delete_code"):
            return self.redis.compare_and_delete(self._otp_key(record.phone_number), record.model_dump(mode="json"))

    def purge_expired_codes(self, now: datetime) -> int:
        # Expired keys are evicted by Redis; consumed codes are deleted on consume
        return 0

    # Members

    def get_member_by_phone(self, phone_number: str) -> Optional[Identity]:
        with self._guard("get_member_by_phone"):
            member_id = self.redis.get(self._member_phone_key(phone_number))
        if not member_id:
            return None
        return self.get_member_by_id(member_id)

    def get_member_by_id(self, member_id: str) -> Optional[Identity]:
        with self._guard("get_member_by_id"):
            data = self.redis.get(self._member_key(member_id))
        return Identity.model_validate(data) if data else None

    def create_member(self, identity: Identity) -> Identity:
        with self._guard("create_member"):
            claimed = self.redis.set_if_not_exists(self._member_phone_key(identity.phone_number), identity.id)
            if claimed:
                self.redis.set(self._member_key(identity.id), identity.model_dump(mode="json"))
                return identity
        logger.info(f"create_member_conflict | member_id={identity.id}")
        stored = self.get_member_by_phone(identity.phone_number)
        if stored is None:
            raise StoreUnavailable("Member could not be stored")
        return stored

    def update_member(self, identity: Identity) -> Identity:
        with self._guard("update_member"):
            self.redis.set(self._member_key(identity.id), identity.model_dump(mode="json"))
        return identity

    def count_approved_members(self) -> int:
        with self._guard("count_approved_members"):
            count = 0
            for key in self.redis.scan_keys(f"{MEMBER_CACHE_PREFIX}*"):
                data = self.redis.get(key)
                if data and data.get("role") == "member" and data.get("approval_state"):
                    count += 1
            return count

    # Ballots

    def get_ballot(self, voter_id: str) -> Optional[Ballot]:
        with self._guard("get_ballot"):
            data = self.redis.get(self._ballot_key(voter_id))
        return Ballot.model_validate(data) if data else None

    def insert_ballot_if_absent(self, ballot: Ballot) -> bool:
        with self._guard("insert_ballot"):
            return self.redis.set_if_not_exists(self._ballot_key(ballot.voter_id), ballot.model_dump(mode="json"))

    def count_ballots_by_candidate(self) -> Dict[str, int]:
        counts = Counter()
        with self._guard("count_ballots_by_candidate"):
            for key in self.redis.scan_keys(f"{BALLOT_CACHE_PREFIX}*"):
                data = self.redis.get(key)
                if data:
                    counts[data["candidate_id"]] += 1
        return dict(counts)

    def count_ballots(self) -> int:
        with self._guard("count_ballots"):
            return len(self.redis.scan_keys(f"{BALLOT_CACHE_PREFIX}*"))

    # Lifecycle

    def ping(self) -> bool:
        with self._guard("ping"):
            return self.redis.ping()

    def close(self) -> None:
        self.redis.close()
