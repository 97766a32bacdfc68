"""Service layer package."""

__all__ = [
    "store",
    "user_service",
    "session_store",
    "auth_service",
]
