"""
Domain errors for verification, sessions and ballots.

Every error is recoverable at the HTTP boundary: handlers in
``unionvote.middlewares.handlers`` turn them into JSON responses using
``status_code`` and ``message``.
"""


class VotingError(Exception):
    status_code = 500
    message = "Something went wrong"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)


class DeliveryFailed(VotingError):
    """The transport could not send the code; issuance was rolled back."""
    status_code = 502
    message = "Failed to send verification code"


class CodeInvalidOrExpired(VotingError):
    status_code = 401
    message = "Verification code is invalid or expired"


class ResendCooldownActive(VotingError):
    status_code = 429
    message = "A verification code was sent recently"

    def __init__(self, retry_after: int, message: str | None = None):
        self.retry_after = retry_after
        super().__init__(message)


class SessionEstablishFailed(VotingError):
    """Identity resolution or provisioning failed; no session was installed."""
    status_code = 500
    message = "Failed to establish session"


class NotAuthenticated(VotingError):
    status_code = 401
    message = "Authentication required"


class PermissionDenied(VotingError):
    status_code = 403
    message = "Access denied"


class AlreadyVoted(VotingError):
    """Terminal: a ballot for this voter already exists."""
    status_code = 409
    message = "You have already voted"


class StoreUnavailable(VotingError):
    status_code = 503
    message = "Storage service unavailable"


class MemberNotFound(VotingError):
    status_code = 404
    message = "Member not found"
