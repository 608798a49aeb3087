"""
FastAPI dependencies wiring services to the store and transport created at startup.
"""
from fastapi import Request

from unionvote.config.settings import VotingConfigs
from unionvote.core.exceptions import NotAuthenticated
from unionvote.repository.base import VotingRepository
from unionvote.services.ballot_service import BallotService
from unionvote.services.member_service import MemberService
from unionvote.services.otp_service import OTPService
from unionvote.services.session_service import SessionManager


def get_configs(request: Request) -> VotingConfigs:
    return request.app.state.configs


def get_repository(request: Request) -> VotingRepository:
    return request.app.state.repository


def get_otp_service(request: Request) -> OTPService:
    state = request.app.state
    return OTPService(state.repository, state.transport, configs=state.configs)


def get_session_manager(request: Request) -> SessionManager:
    sessions = getattr(request.state, "session_manager", None)
    if sessions is None:
        raise NotAuthenticated()
    return sessions


def get_ballot_service(request: Request) -> BallotService:
    return BallotService(request.app.state.repository, get_session_manager(request))


def get_member_service(request: Request) -> MemberService:
    return MemberService(request.app.state.repository, get_session_manager(request))
