from fastapi import Depends, Request
import logging
from prairiemed.core.rbac import RoleSet, can_access, can_access_all
from prairiemed.services.auth_service import AuthService, Identity
from prairiemed.utils.errors import ForbiddenError, InvalidTokenError, UnauthenticatedError

logger = logging.getLogger(__name__)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


async def get_current_identity(request: Request) -> Identity:
    """Require a verified access token (attached by JWTMiddleware)."""
    identity = getattr(request.state, "auth", None)
    if identity is not None:
        return identity

    error = getattr(request.state, "auth_error", None)
    if error is not None:
        logger.info("Rejected access token on %s: %s", request.url.path, error.value)
        raise InvalidTokenError()
    raise UnauthenticatedError("Missing token")


class require_roles:
    """
    Dependency factory: caller must hold ANY of the allowed roles
    (superadmin/orgadmin always pass).

    Usage:
        @router.get("/patients", dependencies=[Depends(require_roles(*VIEW_PATIENT_ROLES))])
    """

    def __init__(self, *allowed: str):
        self.allowed = RoleSet(allowed)

    def check(self, roles) -> bool:
        return can_access(roles, self.allowed)

    async def __call__(self, identity: Identity = Depends(get_current_identity)) -> Identity:
        if not self.check(identity.roles):
            logger.warning("Role check failed for user %s", identity.user_id)
            # Do not reveal which roles would have been accepted
            raise ForbiddenError()
        return identity


class require_all_roles(require_roles):
    """Caller must hold EVERY listed role (superadmin/orgadmin still pass)."""

    def check(self, roles) -> bool:
        return can_access_all(roles, self.allowed)
