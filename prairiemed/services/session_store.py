"""
Refresh session store.

One row per issued refresh token, keyed by its jti. Rows are revoked, never
deleted, so rotation leaves an audit trail.
"""
from datetime import datetime
from typing import List, Optional
import logging
from sqlalchemy import select, update
from prairiemed.models.session import AuthSession
from prairiemed.services.store import SQLStore
from prairiemed.utils.helpers import utcnow

logger = logging.getLogger(__name__)


class SessionStore(SQLStore):
    def create(
        self,
        user_id: str,
        jti: str,
        expires_at: datetime,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> str:
        """Stage a new session row and return its id. A duplicate jti is a store failure."""
        with self.guard("create_session"):
            session = AuthSession(
                user_id=str(user_id),
                refresh_jti=jti,
                refresh_expires_at=expires_at,
                ip_address=ip,
                user_agent=user_agent[:512] if user_agent else None,
            )
            self.db.add(session)
            self.db.flush()
            return session.id

    def find_by_jti(self, jti: str) -> Optional[AuthSession]:
        with self.guard("find_session_by_jti"):
            return self.db.execute(
                select(AuthSession).where(AuthSession.refresh_jti == jti).limit(1)
            ).scalar_one_or_none()

    def revoke_by_jti(self, jti: str, reason: str = "logout") -> bool:
        """Mark the session revoked. Idempotent.

        The update only matches non-revoked rows, so the return value tells the
        caller whether *this* call did the revocation. Two concurrent refreshes
        of the same token race here and only one sees True.
        """
        with self.guard("revoke_session"):
            result = self.db.execute(
                update(AuthSession)
                .where(AuthSession.refresh_jti == jti, AuthSession.revoked.is_(False))
                .values(revoked=True, revoked_at=utcnow(), revoked_reason=reason)
            )
            self.db.flush()
        return result.rowcount == 1

    def list_active(self, user_id: str) -> List[AuthSession]:
        with self.guard("list_active_sessions"):
            return list(
                self.db.execute(
                    select(AuthSession)
                    .where(
                        AuthSession.user_id == str(user_id),
                        AuthSession.revoked.is_(False),
                        AuthSession.refresh_expires_at > utcnow(),
                    )
                    .order_by(AuthSession.created_at.desc())
                ).scalars().all()
            )

    def revoke_all_for_user(self, user_id: str, reason: str = "admin") -> int:
        """Revoke every outstanding session for a user. Returns the count affected."""
        with self.guard("revoke_all_sessions"):
            result = self.db.execute(
                update(AuthSession)
                .where(AuthSession.user_id == str(user_id), AuthSession.revoked.is_(False))
                .values(revoked=True, revoked_at=utcnow(), revoked_reason=reason)
            )
            self.db.flush()
        return result.rowcount

    def commit(self) -> None:
        with self.guard("commit"):
            self.db.commit()
