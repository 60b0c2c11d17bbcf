"""Error taxonomy shared by the HTTP routes and the WebSocket gateway.

Services raise these; routes translate them into HTTP status codes and
socket handlers into `error` events (or a close code for auth failures).
"NotFound" covers both "absent" and "owned by someone else"
so callers can't probe for other users' rows.
"""


class LexdeskError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 500
    message = "Internal server error"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        self.message = message or self.message


class AuthenticationRequired(LexdeskError):
    status_code = 401
    message = "Authentication required"


class AuthenticationFailed(LexdeskError):
    status_code = 401
    message = "Authentication failed"


class UserNotFound(LexdeskError):
    status_code = 404
    message = "User not found"


class NotFoundError(LexdeskError):
    status_code = 404
    message = "Not found"


class ValidationFailed(LexdeskError):
    status_code = 400
    message = "Invalid input"


class AccessDenied(LexdeskError):
    status_code = 403
    message = "Access denied"
