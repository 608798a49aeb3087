"""
Ballot model

The unique constraint on voter_id is what enforces one ballot per voter;
the service-level pre-check is only a fast path.
"""

from sqlalchemy import Column, Integer, String, TIMESTAMP, ForeignKey, UniqueConstraint, Index
from unionvote.connections.database import Base


class Ballots(Base):
    __tablename__ = "ballots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    voter_id = Column(String(32), ForeignKey("members.id"), nullable=False)
    candidate_id = Column(String(64), nullable=False)
    cast_at = Column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("voter_id", name="uq_ballots_voter_id"),
        Index("ix_ballots_candidate_id", "candidate_id"),
    )
