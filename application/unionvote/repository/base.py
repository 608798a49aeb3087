"""
Store interface shared by the SQL and Redis adapters.

The verification code and ballot operations are the only writers to the
two shared tables. Both adapters serialise conflicting writes on the same
key (phone number for codes, voter id for ballots) inside the store itself.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional

from unionvote.dto.ballots import Ballot
from unionvote.dto.identity import Identity
from unionvote.dto.verification import VerificationCode


class VotingRepository(ABC):
    """Repository for verification codes, members and ballots"""

    backend_name = "abstract"

    # Verification codes

    @abstractmethod
    def replace_code(self, record: VerificationCode) -> None:
        """Store ``record`` as the only code for its phone number."""

    @abstractmethod
    def activate_code(self, record: VerificationCode, now: datetime) -> bool:
        """
        Make a code stored with ``consumed=True`` usable.

        Only succeeds while ``record`` is still the newest code for its number
        and unexpired at ``now``.
        """

    @abstractmethod
    def get_code(self, phone_number: str) -> Optional[VerificationCode]:
        """Return the stored code for the number, active or not."""

    @abstractmethod
    def consume_code(self, phone_number: str, code_hash: str, now: datetime) -> Optional[VerificationCode]:
        """
        Compare-and-consume.

        Marks the code consumed only if it matches ``code_hash``, is unconsumed
        and unexpired at ``now``. Exactly one concurrent caller can succeed.

        Returns:
            The consumed record, or None when nothing matched
        """

    @abstractmethod
    def reinstate_code(self, record: VerificationCode, now: datetime) -> bool:
        """Undo a consume, only while ``record`` is still the newest code and unexpired."""

    @abstractmethod
    def delete_code(self, record: VerificationCode) -> bool:
        """Delete the code for ``record.phone_number`` only if it is still ``record``."""

    @abstractmethod
    def purge_expired_codes(self, now: datetime) -> int:
        """Garbage-collect expired and consumed codes; returns the number removed."""

    # Members

    @abstractmethod
    def get_member_by_phone(self, phone_number: str) -> Optional[Identity]:
        pass

    @abstractmethod
    def get_member_by_id(self, member_id: str) -> Optional[Identity]:
        pass

    @abstractmethod
    def create_member(self, identity: Identity) -> Identity:
        """Insert-if-absent by phone number; returns whichever member ends up stored."""

    @abstractmethod
    def update_member(self, identity: Identity) -> Identity:
        pass

    @abstractmethod
    def count_approved_members(self) -> int:
        pass

    # Ballots

    @abstractmethod
    def get_ballot(self, voter_id: str) -> Optional[Ballot]:
        pass

    @abstractmethod
    def insert_ballot_if_absent(self, ballot: Ballot) -> bool:
        """
        Insert the ballot unless one already exists for its voter.

        Returns:
            True if inserted, False if the voter already had a ballot
        """

    @abstractmethod
    def count_ballots_by_candidate(self) -> Dict[str, int]:
        pass

    @abstractmethod
    def count_ballots(self) -> int:
        pass

    # Lifecycle

    @abstractmethod
    def ping(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        pass
