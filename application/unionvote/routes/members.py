from fastapi import APIRouter, Depends

from unionvote.dto.identity import IdentityResponse
from unionvote.routes.dependencies import get_member_service
from unionvote.services.member_service import MemberService

router = APIRouter(tags=["members"])


@router.post("/{member_id}/approve", response_model=IdentityResponse)
async def approve_member(member_id: str, members: MemberService = Depends(get_member_service)):
    """Approved administrators only."""
    member = await members.approve(member_id)
    return IdentityResponse(success=True, message="Member approved", identity=member)
