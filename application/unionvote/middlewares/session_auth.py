import re

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from unionvote.middlewares.request_context import request_context
from unionvote.services.session_service import SessionManager

# secrets.token_urlsafe(32) yields 43 characters
TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{32,128}$")


def extract_bearer_token(auth_header: str | None) -> str | None:
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not TOKEN_PATTERN.match(token.strip()):
        return None
    return token.strip()


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """Restore the caller's session from the slot named by its bearer token.

    Attaches ``request.state.session_manager``; routes decide whether an
    identity is required, so logging out of an expired session still succeeds.
    """

    include_path_starts = ("/session", "/votes", "/members")

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)

        if not request.url.path.startswith(self.include_path_starts):
            return await call_next(request)

        token = extract_bearer_token(request.headers.get("authorization"))
        if not token:
            return JSONResponse(status_code=401, content={"success": False, "message": "Authentication required"})

        state = request.app.state
        sessions = SessionManager(state.repository, state.slot_factory(token), configs=state.configs)
        identity = await sessions.restore()
        request.state.session_manager = sessions
        if identity is not None:
            request_context.user_id = identity.id
        return await call_next(request)
