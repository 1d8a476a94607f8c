"""Error hierarchy for the registry.

Every error carries a user-facing message, a stable code and the HTTP status
it maps to. The global handlers in ``cotillion.error_handlers`` turn them into
``{"error": message}`` responses.
"""

from typing import Optional


class CotillionError(Exception):
    """Base exception for all registry errors."""

    code = "ERROR"
    http_status = 500
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_response(self) -> dict:
        return {"error": self.message}


# Validation (400)


class ValidationError(CotillionError):
    code = "VALIDATION_ERROR"
    http_status = 400
    default_message = "Invalid request"


class InvalidInput(ValidationError):
    code = "INVALID_INPUT"
    default_message = "Invalid name or code"


class InvalidCategory(ValidationError):
    code = "INVALID_CATEGORY"
    default_message = "Pick girl or guy"


# Authentication


class AuthError(CotillionError):
    code = "AUTH_ERROR"
    http_status = 401
    default_message = "Not authenticated"


class NotSignedIn(AuthError):
    code = "NOT_SIGNED_IN"
    default_message = "Not signed in"


class WrongCode(AuthError):
    code = "WRONG_CODE"
    default_message = "Wrong code"


class NoSuchUser(AuthError):
    code = "NO_SUCH_USER"
    http_status = 400
    default_message = "No such user"


# Authorization (403)


class AuthorizationError(CotillionError):
    code = "FORBIDDEN"
    http_status = 403
    default_message = "Forbidden"


class Forbidden(AuthorizationError):
    pass


class WrongDirection(AuthorizationError):
    code = "WRONG_DIRECTION"
    default_message = "Only girls can ask out guys"


class AccessDenied(AuthorizationError):
    code = "ACCESS_DENIED"
    default_message = "Access denied"


class BadCsrf(AuthorizationError):
    code = "BAD_CSRF"
    default_message = "Bad CSRF token"


# Conflicts


class ConflictError(CotillionError):
    code = "CONFLICT"
    http_status = 409
    default_message = "Conflict"


class NameTaken(ConflictError):
    code = "NAME_TAKEN"
    default_message = "Name already taken"


class AlreadyPaired(ConflictError):
    code = "ALREADY_PAIRED"
    http_status = 400
    default_message = "Already taken"


class NotPending(ConflictError):
    code = "NOT_PENDING"
    default_message = "Ask is no longer pending"


# Not found (404)


class NotFoundError(CotillionError):
    code = "NOT_FOUND"
    http_status = 404
    default_message = "Not found"


class ProposalNotFound(NotFoundError):
    default_message = "Ask not found"


class ParticipantNotFound(NotFoundError):
    default_message = "No such member"


# Infrastructure (500)


class ServerError(CotillionError):
    code = "SERVER_ERROR"
