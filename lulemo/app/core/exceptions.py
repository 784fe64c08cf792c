# lulemo/app/core/exceptions.py
"""
Error taxonomy for the auth service.

Every error carries the HTTP status it maps to. Handlers registered in
main.py turn them into a `{"error": message}` JSON body.
"""
from typing import Optional

from fastapi import status


class LulemoError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(LulemoError):
    """Malformed email, password, PIN or request shape."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "invalid request"


class AuthenticationError(LulemoError):
    """Wrong password, PIN, answer or refresh token."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "authentication failed"


class AuthorizationError(LulemoError):
    """Disabled account or insufficient role."""
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "forbidden"


class NotFoundError(LulemoError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "not found"


class ConflictError(LulemoError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "already exists"


class ExpiredOrConsumedError(LulemoError):
    """Verification code is wrong, expired or already used."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "verification code is invalid or expired"


class IntegrityError(LulemoError):
    """Access token signature mismatch, tamper or expiry."""
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "invalid access token"


class DeliveryError(LulemoError):
    """The mail collaborator could not deliver a code."""
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "failed to send verification email"
