"""
Ballot casting and tallying.

One ballot per voter, enforced by the store (SQL UNIQUE on ``ballots.voter_id``,
Redis SET NX on ``ballot:<voter_id>``). The ``has_voted`` check before the
insert only short-circuits the common case; it does not close the race.
Tallies are aggregated at read time, nothing is counted on write.
"""
from typing import Callable, Optional

from unionvote.core.exceptions import AlreadyVoted, NotAuthenticated
from unionvote.dto.ballots import Ballot, TallyEntry, TallyView
from unionvote.logging.utils import get_app_logger
from unionvote.middlewares.request_context import request_context
from unionvote.repository.base import VotingRepository
from unionvote.services.session_service import SessionManager
from unionvote.utils.datetime_helpers import ensure_aware, utc_now

logger = get_app_logger("unionvote.ballot_service")


class BallotService:

    def __init__(self, repository: VotingRepository, sessions: SessionManager, clock: Optional[Callable] = None):
        self.repository = repository
        self.sessions = sessions
        self.clock = clock or utc_now

    def _authorize(self, voter_id: str):
        identity = self.sessions.current
        if identity is None or identity.id != voter_id:
            logger.warning(f"cast_unauthorized | voter_id={voter_id}")
            raise NotAuthenticated()
        # The session may outlive the member record
        if self.repository.get_member_by_id(voter_id) is None:
            logger.warning(f"cast_unknown_member | voter_id={voter_id}")
            raise NotAuthenticated()
        return identity

    async def cast(self, voter_id: str, candidate_id: str) -> Ballot:
        """
        Record the voter's single ballot.

        Raises:
            NotAuthenticated: the current session does not belong to ``voter_id``
            AlreadyVoted: a ballot for ``voter_id`` exists, including one written by a
                concurrent cast that won the race
        """
        request_context.voter_id = voter_id
        request_context.candidate_id = candidate_id
        self._authorize(voter_id)

        if await self.has_voted(voter_id):
            logger.info(f"cast_rejected_already_voted | voter_id={voter_id}")
            raise AlreadyVoted()

        ballot = Ballot(voter_id=voter_id, candidate_id=candidate_id, cast_at=ensure_aware(self.clock()))
        if not self.repository.insert_ballot_if_absent(ballot):
            logger.warning(f"cast_lost_race | voter_id={voter_id}")
            raise AlreadyVoted()

        logger.info(f"ballot_cast | voter_id={voter_id} candidate_id={candidate_id}")
        return ballot

    async def has_voted(self, voter_id: str) -> bool:
        return self.repository.get_ballot(voter_id) is not None

    async def get_user_vote(self, voter_id: str) -> Optional[str]:
        ballot = self.repository.get_ballot(voter_id)
        return ballot.candidate_id if ballot else None

    async def total_votes(self) -> int:
        return self.repository.count_ballots()

    async def participation_rate(self) -> float:
        """Ballots as a percentage of approved members; 0 when nobody is approved."""
        approved = self.repository.count_approved_members()
        if approved == 0:
            return 0.0
        return round(self.repository.count_ballots() / approved * 100, 2)

    async def results(self) -> TallyView:
        counts = self.repository.count_ballots_by_candidate()
        total = sum(counts.values())
        ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))

        entries = []
        for position, (candidate_id, votes) in enumerate(ordered):
            entries.append(TallyEntry(
                candidate_id=candidate_id,
                votes=votes,
                percentage=round(votes / total * 100) if total else 0,
                is_leader=position == 0,
            ))
        return TallyView(total_votes=total, entries=entries)
