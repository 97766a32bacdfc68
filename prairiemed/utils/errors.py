"""Custom error definitions for API exceptions.

Authentication and authorization failures collapse into four client-visible
categories: invalid credentials, unauthenticated (bad/missing token, revoked
session), forbidden, and a generic server error for store failures.
"""
from fastapi import HTTPException
from starlette import status

GENERIC_SERVER_ERROR = "Internal server error"


class InvalidCredentialsError(HTTPException):
    """Wrong email or password. Same shape whether or not the account exists."""

    def __init__(self, detail: str = "Invalid credentials"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class UnauthenticatedError(HTTPException):
    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidTokenError(UnauthenticatedError):
    def __init__(self, detail: str = "Invalid or expired token"):
        super().__init__(detail=detail)


class SessionRevokedError(UnauthenticatedError):
    """Refresh token is well-formed but its session no longer authorizes refresh."""

    def __init__(self, detail: str = "Refresh session revoked"):
        super().__init__(detail=detail)


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class StoreUnavailableError(HTTPException):
    """Credential/session store failure. Details go to the log, never to the client."""

    def __init__(self, detail: str = GENERIC_SERVER_ERROR):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class UserNotFoundError(HTTPException):
    def __init__(self, detail: str = "User not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)
