"""ORM models for the credential and session stores."""

__all__ = [
    "base",
    "user",
    "session",
]
