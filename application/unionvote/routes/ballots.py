from fastapi import APIRouter, Depends, status

from unionvote.dto.ballots import CastBallotRequest, CastBallotResponse, TallyView, VoteStatsResponse, VoteStatusResponse
from unionvote.routes.dependencies import get_ballot_service
from unionvote.services.ballot_service import BallotService

router = APIRouter(tags=["votes"])


@router.get("/status", response_model=VoteStatusResponse)
async def vote_status(ballots: BallotService = Depends(get_ballot_service)):
    identity = ballots.sessions.require_identity()
    return VoteStatusResponse(voter_id=identity.id, has_voted=await ballots.has_voted(identity.id))


@router.post("", response_model=CastBallotResponse, status_code=status.HTTP_201_CREATED)
async def cast_ballot(body: CastBallotRequest, ballots: BallotService = Depends(get_ballot_service)):
    """Cast the caller's single ballot; 409 if one already exists."""
    identity = ballots.sessions.require_identity()
    ballot = await ballots.cast(identity.id, body.candidate_id)
    return CastBallotResponse(success=True, message="Vote recorded", ballot=ballot)


@router.get("/mine", response_model=VoteStatusResponse)
async def my_vote(ballots: BallotService = Depends(get_ballot_service)):
    identity = ballots.sessions.require_identity()
    candidate_id = await ballots.get_user_vote(identity.id)
    return VoteStatusResponse(voter_id=identity.id, has_voted=candidate_id is not None, candidate_id=candidate_id)


@router.get("/results", response_model=TallyView)
async def results(ballots: BallotService = Depends(get_ballot_service)):
    ballots.sessions.require_identity()
    return await ballots.results()


@router.get("/stats", response_model=VoteStatsResponse)
async def stats(ballots: BallotService = Depends(get_ballot_service)):
    ballots.sessions.require_identity()
    return VoteStatsResponse(
        total_votes=await ballots.total_votes(),
        participation_rate=await ballots.participation_rate(),
    )
