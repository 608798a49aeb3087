import asyncio
from datetime import datetime, timezone

import pytest

from unionvote.core.exceptions import AlreadyVoted, NotAuthenticated
from unionvote.dto.ballots import Ballot
from unionvote.dto.identity import Identity
from unionvote.services.login_service import LoginService

from conftest import MEMBER_PHONE

CAST_AT = datetime(2026, 10, 18, 11, 0, tzinfo=timezone.utc)


def _member(repository, suffix: str, approved: bool = True) -> Identity:
    return repository.create_member(Identity(
        id=f"member{suffix}".ljust(32, "0"),
        phone_number=f"0912000{suffix.rjust(4, '0')}",
        display_name="Member",
        role="member",
        approval_state=approved,
    ))


def _ballot(voter_id: str, candidate_id: str) -> Ballot:
    return Ballot(voter_id=voter_id, candidate_id=candidate_id, cast_at=CAST_AT)


def test_issue_verify_establish_cast_scenario(otp_service, session_manager, ballot_service):
    assert asyncio.run(otp_service.issue(MEMBER_PHONE)) is True
    assert asyncio.run(otp_service.verify(MEMBER_PHONE, "4821")) is True

    identity = asyncio.run(session_manager.establish(MEMBER_PHONE))
    assert identity.phone_number == MEMBER_PHONE
    assert identity.role == "member"

    ballot = asyncio.run(ballot_service.cast(identity.id, "candidate-7"))
    assert ballot.candidate_id == "candidate-7"

    with pytest.raises(AlreadyVoted):
        asyncio.run(ballot_service.cast(identity.id, "candidate-9"))

    results = asyncio.run(ballot_service.results())
    assert results.total_votes == 1
    assert results.votes_for("candidate-7") == 1
    assert results.votes_for("candidate-9") == 0


def test_cast_requires_matching_session(ballot_service, session_manager, repository):
    other = _member(repository, "1")
    with pytest.raises(NotAuthenticated):
        asyncio.run(ballot_service.cast(other.id, "candidate-1"))

    asyncio.run(session_manager.establish(MEMBER_PHONE))
    with pytest.raises(NotAuthenticated):
        asyncio.run(ballot_service.cast(other.id, "candidate-1"))
    assert asyncio.run(ballot_service.has_voted(other.id)) is False


def test_cast_rejects_session_for_unknown_member(ballot_service, session_manager):
    stale = Identity(id="f" * 32, phone_number=MEMBER_PHONE, display_name="Member", role="member")
    session_manager.container.set(stale)

    with pytest.raises(NotAuthenticated):
        asyncio.run(ballot_service.cast(stale.id, "candidate-1"))


def test_lost_race_surfaces_as_already_voted(ballot_service, session_manager, repository, monkeypatch):
    identity = asyncio.run(session_manager.establish(MEMBER_PHONE))

    async def stale_check(voter_id):
        return False
    monkeypatch.setattr(ballot_service, "has_voted", stale_check)
    # a concurrent cast commits between the pre-check and the insert
    assert repository.insert_ballot_if_absent(_ballot(identity.id, "candidate-2")) is True

    with pytest.raises(AlreadyVoted):
        asyncio.run(ballot_service.cast(identity.id, "candidate-3"))
    assert repository.get_ballot(identity.id).candidate_id == "candidate-2"
    assert repository.count_ballots() == 1


def test_store_rejects_second_ballot(repository):
    voter = _member(repository, "1")

    assert repository.insert_ballot_if_absent(_ballot(voter.id, "candidate-1")) is True
    assert repository.insert_ballot_if_absent(_ballot(voter.id, "candidate-2")) is False
    assert repository.get_ballot(voter.id).candidate_id == "candidate-1"


def test_results_ordering_and_percentages(ballot_service, repository):
    votes = {"1": "cand-b", "2": "cand-a", "3": "cand-b", "4": "cand-a", "5": "cand-c"}
    for suffix, candidate in votes.items():
        voter = _member(repository, suffix)
        repository.insert_ballot_if_absent(_ballot(voter.id, candidate))

    results = asyncio.run(ballot_service.results())

    assert results.total_votes == 5
    assert [(e.candidate_id, e.votes, e.percentage, e.is_leader) for e in results.entries] == [
        ("cand-a", 2, 40, True),
        ("cand-b", 2, 40, False),
        ("cand-c", 1, 20, False),
    ]


def test_results_with_no_ballots(ballot_service):
    results = asyncio.run(ballot_service.results())

    assert results.total_votes == 0
    assert results.entries == []


def test_user_vote_and_totals(ballot_service, session_manager):
    identity = asyncio.run(session_manager.establish(MEMBER_PHONE))
    assert asyncio.run(ballot_service.get_user_vote(identity.id)) is None

    asyncio.run(ballot_service.cast(identity.id, "candidate-7"))

    assert asyncio.run(ballot_service.has_voted(identity.id)) is True
    assert asyncio.run(ballot_service.get_user_vote(identity.id)) == "candidate-7"
    assert asyncio.run(ballot_service.total_votes()) == 1


def test_participation_rate(ballot_service, repository):
    assert asyncio.run(ballot_service.participation_rate()) == 0.0

    first = _member(repository, "1")
    _member(repository, "2")
    _member(repository, "3", approved=False)
    repository.insert_ballot_if_absent(_ballot(first.id, "candidate-1"))

    assert asyncio.run(ballot_service.participation_rate()) == 50.0


def test_cast_after_login(otp_service, session_manager, ballot_service):
    asyncio.run(otp_service.issue(MEMBER_PHONE))
    identity = asyncio.run(LoginService(otp_service, session_manager).login(MEMBER_PHONE, "4821"))

    asyncio.run(ballot_service.cast(identity.id, "candidate-1"))
    assert asyncio.run(ballot_service.has_voted(identity.id)) is True
