from unionvote.core.exceptions import MemberNotFound
from unionvote.dto.identity import Identity
from unionvote.logging.utils import get_app_logger
from unionvote.repository.base import VotingRepository
from unionvote.services.session_service import SessionManager

logger = get_app_logger("unionvote.member_service")


class MemberService:
    """Administrative actions on members; every method requires an approved admin."""

    def __init__(self, repository: VotingRepository, sessions: SessionManager):
        self.repository = repository
        self.sessions = sessions

    async def approve(self, member_id: str) -> Identity:
        admin = self.sessions.require_privileged()
        member = self.repository.get_member_by_id(member_id)
        if member is None:
            raise MemberNotFound()
        if member.approval_state:
            return member

        member = self.repository.update_member(member.model_copy(update={"approval_state": True}))
        logger.info(f"member_approved | member_id={member.id} approved_by={admin.id}")
        return member
