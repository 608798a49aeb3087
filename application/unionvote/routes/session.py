from fastapi import APIRouter, Depends

from unionvote.dto.identity import IdentityResponse
from unionvote.routes.dependencies import get_session_manager
from unionvote.services.session_service import SessionManager

router = APIRouter(tags=["session"])


@router.get("/me", response_model=IdentityResponse)
async def current_identity(sessions: SessionManager = Depends(get_session_manager)):
    identity = sessions.require_identity()
    return IdentityResponse(success=True, message="Active session", identity=identity)


@router.post("/logout", response_model=IdentityResponse)
async def logout(sessions: SessionManager = Depends(get_session_manager)):
    await sessions.terminate()
    return IdentityResponse(success=True, message="Signed out")
