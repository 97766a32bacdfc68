"""Login, refresh rotation, logout and profile reads.

Each refresh token moves through ISSUED -> ROTATED | REVOKED | EXPIRED. The
last three are terminal for that jti; a rotation starts a new jti at ISSUED.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
import logging
from sqlalchemy.orm import Session
from prairiemed.core.config import AuthConfig
from prairiemed.core.security import verify_or_migrate
from prairiemed.core.tokens import TokenIssuer
from prairiemed.services.session_store import SessionStore
from prairiemed.services.user_service import UserStore
from prairiemed.utils.errors import (
    InvalidCredentialsError, InvalidTokenError, SessionRevokedError,
)
from prairiemed.utils.helpers import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Caller resolved from a verified access token."""
    user_id: str
    roles: List[str] = field(default_factory=list)
    email: Optional[str] = None
    org_id: Optional[str] = None
    facility_id: Optional[str] = None

    @classmethod
    def from_claims(cls, claims: dict) -> "Identity":
        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        return cls(
            user_id=str(claims["sub"]),
            roles=[r for r in roles if isinstance(r, str)],
            email=claims.get("email"),
            org_id=claims.get("org"),
            facility_id=claims.get("fac"),
        )


@dataclass(frozen=True)
class IssuedTokens:
    access_token: str
    refresh_token: str
    refresh_expires_at: datetime
    session_id: str


@dataclass(frozen=True)
class LoginResult:
    tokens: IssuedTokens
    user: dict

    @property
    def locale(self) -> str:
        return self.user.get("locale") or "en"


class AuthService:
    def __init__(self, config: AuthConfig, issuer: Optional[TokenIssuer] = None):
        self.config = config
        self.issuer = issuer or TokenIssuer(config)

    def _issue_pair(
        self,
        sessions: SessionStore,
        user_id: str,
        email: str,
        roles: List[str],
        org_id: Optional[str],
        facility_id: Optional[str],
        ip: Optional[str],
        user_agent: Optional[str],
    ) -> IssuedTokens:
        access_token = self.issuer.issue_access_token(
            user_id=user_id,
            email=email,
            roles=roles,
            org_id=org_id,
            facility_id=facility_id,
        )
        refresh = self.issuer.issue_refresh_token(user_id)
        session_id = sessions.create(
            user_id=user_id,
            jti=refresh.jti,
            expires_at=refresh.expires_at,
            ip=ip,
            user_agent=user_agent,
        )
        return IssuedTokens(
            access_token=access_token,
            refresh_token=refresh.token,
            refresh_expires_at=refresh.expires_at,
            session_id=session_id,
        )

    def login(
        self,
        db: Session,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> LoginResult:
        """
        Email/password login
        - Verify credentials (unknown, inactive and wrong-password all look the same)
        - Optionally upgrade a legacy plaintext password
        - Issue access + refresh tokens and persist the refresh session
        """
        users = UserStore(db)
        sessions = SessionStore(db)

        user = users.find_by_email(email)
        if user is None or not user.is_active:
            logger.info("Login rejected: unknown or inactive account")
            raise InvalidCredentialsError()

        check = verify_or_migrate(user.password_hash, password)
        if not check.ok:
            logger.warning("Login rejected: bad password for user %s", user.id)
            raise InvalidCredentialsError()

        if check.migrated_hash and self.config.migrate_legacy_passwords:
            users.migrate_password(user, check.migrated_hash)
            logger.info("Upgraded legacy password hash for user %s", user.id)

        roles = users.get_roles(user.id)
        tokens = self._issue_pair(
            sessions,
            user_id=user.id,
            email=user.email,
            roles=roles,
            org_id=user.organization_id,
            facility_id=user.facility_id,
            ip=ip_address,
            user_agent=user_agent,
        )
        users.touch_last_login(user)
        sessions.commit()

        return LoginResult(tokens=tokens, user=users.public_profile(user.id, roles=roles))

    def refresh(
        self,
        db: Session,
        refresh_token: Optional[str],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> IssuedTokens:
        """Exchange a refresh token for a new pair. The presented token is single-use."""
        if not refresh_token:
            raise InvalidTokenError("Missing refresh token")

        check = self.issuer.verify_refresh(refresh_token)
        if not check.ok:
            raise InvalidTokenError("Invalid refresh token")

        jti = check.claims["jti"]
        user_id = str(check.claims["sub"])

        users = UserStore(db)
        sessions = SessionStore(db)

        session = sessions.find_by_jti(jti)
        if session is None or session.revoked:
            logger.warning(
                "refresh_replay: refresh token presented for %s session (user=%s jti=%s)",
                "unknown" if session is None else "revoked",
                user_id,
                jti,
            )
            raise SessionRevokedError()

        if session.user_id != user_id:
            logger.warning("refresh_replay: subject mismatch for jti=%s", jti)
            raise SessionRevokedError()

        if session.refresh_expires_at <= utcnow():
            logger.info("Refresh rejected: session expired (user=%s jti=%s)", user_id, jti)
            raise SessionRevokedError("Refresh session expired")

        user = users.find_by_id(user_id)
        if user is None or not user.is_active:
            sessions.revoke_by_jti(jti, reason="account_inactive")
            sessions.commit()
            raise SessionRevokedError()

        # Revoke-then-issue in one transaction. Losing the conditional revoke
        # means a concurrent refresh already rotated this token.
        if not sessions.revoke_by_jti(jti, reason="rotated"):
            db.rollback()
            logger.warning("refresh_replay: concurrent rotation lost for jti=%s", jti)
            raise SessionRevokedError()

        roles = users.get_roles(user.id)
        tokens = self._issue_pair(
            sessions,
            user_id=user.id,
            email=user.email,
            roles=roles,
            org_id=user.organization_id,
            facility_id=user.facility_id,
            ip=ip_address,
            user_agent=user_agent,
        )
        sessions.commit()
        return tokens

    def logout(self, db: Session, refresh_token: Optional[str]) -> None:
        """Best-effort revoke. Never raises; failures only reach the log."""
        if not refresh_token:
            return
        try:
            check = self.issuer.verify_refresh(refresh_token)
            if not check.ok:
                logger.info("Logout with unusable refresh token (%s)", check.error.value)
                return
            sessions = SessionStore(db)
            sessions.revoke_by_jti(check.claims["jti"], reason="logout")
            sessions.commit()
        except Exception:
            logger.exception("Logout revoke failed; clearing client session anyway")

    def me(self, db: Session, identity: Identity) -> dict:
        return UserStore(db).public_profile(identity.user_id, roles=identity.roles)

    def active_sessions(self, db: Session, identity: Identity) -> list:
        return SessionStore(db).list_active(identity.user_id)

    def revoke_user_sessions(self, db: Session, user_id: str, reason: str = "admin") -> int:
        sessions = SessionStore(db)
        count = sessions.revoke_all_for_user(user_id, reason=reason)
        sessions.commit()
        logger.info("Revoked %d session(s) for user %s (%s)", count, user_id, reason)
        return count
