"""
SQL adapter for the voting store (SQLAlchemy Core statements inside transactions)
"""

from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Optional

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from unionvote.connections.database import Database
from unionvote.core.exceptions import StoreUnavailable
from unionvote.dto.ballots import Ballot
from unionvote.dto.identity import Identity
from unionvote.dto.verification import VerificationCode
from unionvote.models.ballot import Ballots
from unionvote.models.member import Members
from unionvote.models.verification_code import VerificationCodes
from unionvote.repository.base import VotingRepository
from unionvote.utils.datetime_helpers import ensure_aware

from unionvote.logging.utils import get_app_logger
logger = get_app_logger("unionvote.sql_repository")


def _code_from_row(row) -> VerificationCode:
    return VerificationCode(
        phone_number=row.phone_number,
        code_hash=row.code_hash,
        issued_at=ensure_aware(row.issued_at),
        expires_at=ensure_aware(row.expires_at),
        consumed=bool(row.consumed),
    )


def _member_from_row(row) -> Identity:
    return Identity(
        id=row.id,
        phone_number=row.phone_number,
        display_name=row.display_name,
        role=row.role,
        approval_state=bool(row.is_approved),
        created_at=ensure_aware(row.created_at),
    )


def _ballot_from_row(row) -> Ballot:
    return Ballot(voter_id=row.voter_id, candidate_id=row.candidate_id, cast_at=ensure_aware(row.cast_at))


def _same_issuance(record: VerificationCode):
    return (
        VerificationCodes.phone_number == record.phone_number,
        VerificationCodes.code_hash == record.code_hash,
        VerificationCodes.issued_at == record.issued_at,
    )


class SQLVotingRepository(VotingRepository):
    """Relational store; uniqueness of ballots.voter_id closes the cast race"""

    backend_name = "database"

    def __init__(self, database: Database):
        self.database = database

    @contextmanager
    def _transaction(self, operation: str):
        try:
            with self.database.get_raw_transaction() as db:
                yield db
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"{operation}_error | error={e}", exc_info=True)
            raise StoreUnavailable() from e

    # Verification codes

    def replace_code(self, record: VerificationCode) -> None:
        values = record.model_dump()
        try:
            with self._transaction("replace_code") as db:
                db.execute(delete(VerificationCodes).where(VerificationCodes.phone_number == record.phone_number))
                db.execute(insert(VerificationCodes).values(**values))
        except IntegrityError:
            # A concurrent issuance inserted first; last writer still wins
            with self._transaction("replace_code_retry") as db:
                db.execute(
                    update(VerificationCodes)
                    .where(VerificationCodes.phone_number == record.phone_number)
                    .values(**values)
                )

    def get_code(self, phone_number: str) -> Optional[VerificationCode]:
        with self._transaction("get_code") as db:
            row = db.execute(
                select(VerificationCodes).where(VerificationCodes.phone_number == phone_number)
            ).scalar_one_or_none()
            return _code_from_row(row) if row else None

    def consume_code(self, phone_number: str, code_hash: str, now: datetime) -> Optional[VerificationCode]:
        with self._transaction("consume_code") as db:
            result = db.execute(
                update(VerificationCodes)
                .where(
                    VerificationCodes.phone_number == phone_number,
                    VerificationCodes.code_hash == code_hash,
                    VerificationCodes.consumed.is_(False),
                    VerificationCodes.expires_at > now,
                )
                .values(consumed=True)
            )
            if result.rowcount != 1:
                return None
            row = db.execute(
                select(VerificationCodes).where(VerificationCodes.phone_number == phone_number)
            ).scalar_one()
            return _code_from_row(row)

    def _mark_unconsumed(self, record: VerificationCode, now: datetime, operation: str) -> bool:
        with self._transaction(operation) as db:
            result = db.execute(
                update(VerificationCodes)
                .where(*_same_issuance(record), VerificationCodes.consumed.is_(True), VerificationCodes.expires_at > now)
                .values(consumed=False)
            )
            return result.rowcount == 1

    def activate_code(self, record: VerificationCode, now: datetime) -> bool:
        return self._mark_unconsumed(record, now, "activate_code")

    def reinstate_code(self, record: VerificationCode, now: datetime) -> bool:
        return self._mark_unconsumed(record, now, "reinstate_code")

    def delete_code(self, record: VerificationCode) -> bool:
        with self._transaction("delete_code") as db:
            result = db.execute(delete(VerificationCodes).where(*_same_issuance(record)))
            return result.rowcount > 0

    def purge_expired_codes(self, now: datetime) -> int:
        with self._transaction("purge_expired_codes") as db:
            result = db.execute(
                delete(VerificationCodes).where(
                    or_(VerificationCodes.expires_at <= now, VerificationCodes.consumed.is_(True))
                )
            )
            logger.info(f"purge_expired_codes | removed={result.rowcount}")
            return result.rowcount

    # Members

    def get_member_by_phone(self, phone_number: str) -> Optional[Identity]:
        with self._transaction("get_member_by_phone") as db:
            row = db.execute(select(Members).where(Members.phone_number == phone_number)).scalar_one_or_none()
            return _member_from_row(row) if row else None

    def get_member_by_id(self, member_id: str) -> Optional[Identity]:
        with self._transaction("get_member_by_id") as db:
            row = db.execute(select(Members).where(Members.id == member_id)).scalar_one_or_none()
            return _member_from_row(row) if row else None

    def create_member(self, identity: Identity) -> Identity:
        try:
            with self._transaction("create_member") as db:
                db.execute(
                    insert(Members).values(
                        id=identity.id,
                        phone_number=identity.phone_number,
                        display_name=identity.display_name,
                        role=identity.role,
                        is_approved=identity.approval_state,
                    )
                )
        except IntegrityError:
            logger.info(f"create_member_conflict | member_id={identity.id}")
        stored = self.get_member_by_phone(identity.phone_number)
        if stored is None:
            raise StoreUnavailable("Member could not be stored")
        return stored

    def update_member(self, identity: Identity) -> Identity:
        with self._transaction("update_member") as db:
            db.execute(
                update(Members)
                .where(Members.id == identity.id)
                .values(
                    display_name=identity.display_name,
                    role=identity.role,
                    is_approved=identity.approval_state,
                    updated_at=func.now(),
                )
            )
        stored = self.get_member_by_id(identity.id)
        if stored is None:
            raise StoreUnavailable("Member disappeared during update")
        return stored

    def count_approved_members(self) -> int:
        with self._transaction("count_approved_members") as db:
            return db.execute(
                select(func.count()).select_from(Members).where(Members.role == "member", Members.is_approved.is_(True))
            ).scalar_one()

    # Ballots

    def get_ballot(self, voter_id: str) -> Optional[Ballot]:
        with self._transaction("get_ballot") as db:
            row = db.execute(select(Ballots).where(Ballots.voter_id == voter_id)).scalar_one_or_none()
            return _ballot_from_row(row) if row else None

    def insert_ballot_if_absent(self, ballot: Ballot) -> bool:
        try:
            with self._transaction("insert_ballot") as db:
                db.execute(insert(Ballots).values(**ballot.model_dump()))
            return True
        except IntegrityError as e:
            if self.get_ballot(ballot.voter_id) is not None:
                return False
            # Not a duplicate voter: some other constraint rejected the row
            logger.error(f"insert_ballot_integrity_error | voter_id={ballot.voter_id} error={e}")
            raise StoreUnavailable("Ballot rejected by store") from e

    def count_ballots_by_candidate(self) -> Dict[str, int]:
        with self._transaction("count_ballots_by_candidate") as db:
            rows = db.execute(
                select(Ballots.candidate_id, func.count(Ballots.id)).group_by(Ballots.candidate_id)
            ).all()
            return {candidate_id: count for candidate_id, count in rows}

    def count_ballots(self) -> int:
        with self._transaction("count_ballots") as db:
            return db.execute(select(func.count(Ballots.id))).scalar_one()

    # Lifecycle

    def ping(self) -> bool:
        try:
            return self.database.ping()
        except SQLAlchemyError as e:
            raise StoreUnavailable() from e

    def close(self) -> None:
        self.database.dispose()
