"""Administrative session endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool
from prairiemed.core.database import get_db
from prairiemed.core.rbac import SESSION_ADMIN_ROLES, SUPERADMIN, RoleSet
from prairiemed.dependencies.auth import get_auth_service, require_roles
from prairiemed.schemas.auth import RevokeSessionsResponse
from prairiemed.services.auth_service import AuthService, Identity
from prairiemed.services.user_service import UserStore
from prairiemed.utils.errors import ForbiddenError, UserNotFoundError

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/users/{user_id}/sessions/revoke", response_model=RevokeSessionsResponse)
async def revoke_user_sessions(
    user_id: str,
    current_admin: Identity = Depends(require_roles(*SESSION_ADMIN_ROLES)),
    db: Session = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """Force logout: revoke every refresh session of a user.

    Access tokens already issued stay valid until they expire.
    """
    target = await run_in_threadpool(UserStore(db).find_by_id, user_id)
    if target is None:
        raise UserNotFoundError()
    # Outside superadmin, force logout stays within the caller's organization
    if SUPERADMIN not in RoleSet(current_admin.roles) and target.organization_id != current_admin.org_id:
        raise ForbiddenError()
    revoked = await run_in_threadpool(
        auth.revoke_user_sessions, db, user_id, reason=f"admin:{current_admin.user_id}"
    )
    return {"revoked": revoked}
