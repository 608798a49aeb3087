from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class Ballot(BaseModel):
    """Immutable record linking one voter to one candidate"""
    voter_id: str
    candidate_id: str
    cast_at: datetime


class TallyEntry(BaseModel):
    candidate_id: str
    votes: int
    percentage: int = 0
    is_leader: bool = False


class TallyView(BaseModel):
    """Per-candidate counts, sorted by votes desc then candidate_id asc"""
    total_votes: int
    entries: List[TallyEntry] = Field(default_factory=list)

    def votes_for(self, candidate_id: str) -> int:
        for entry in self.entries:
            if entry.candidate_id == candidate_id:
                return entry.votes
        return 0


class CastBallotRequest(BaseModel):
    candidate_id: str = Field(..., description="Identifier of the chosen candidate")

    @field_validator('candidate_id')
    @classmethod
    def validate_candidate_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("candidate_id is required")
        if len(v) > 64:
            raise ValueError("candidate_id is too long")
        return v


class CastBallotResponse(BaseModel):
    success: bool
    message: str
    ballot: Optional[Ballot] = None


class VoteStatusResponse(BaseModel):
    voter_id: str
    has_voted: bool
    candidate_id: Optional[str] = None


class VoteStatsResponse(BaseModel):
    total_votes: int
    participation_rate: float
