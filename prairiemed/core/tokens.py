"""JWT issuance and verification.

Access and refresh tokens are HS256-signed with separate secrets. Access
tokens minted by an external identity provider (RS256) are verified against
its published key set when ``AUTH_JWKS_URL`` is configured; the algorithm is
picked from the token's own header.

Verification never raises for a bad token. It returns a ``TokenCheck``
carrying either the claims or a ``TokenError`` kind.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional
import logging
import threading
import time
import uuid

import httpx
from jose import JWTError, jwt

from prairiemed.core.config import AuthConfig
from prairiemed.utils.helpers import from_timestamp

logger = logging.getLogger(__name__)

HS256 = "HS256"
RS256 = "RS256"

ACCESS = "access"
REFRESH = "refresh"


class TokenError(str, Enum):
    MALFORMED = "malformed"
    EXPIRED = "expired"
    INVALID = "invalid"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    KEYSET_UNAVAILABLE = "keyset_unavailable"


@dataclass(frozen=True)
class TokenCheck:
    claims: Optional[Dict[str, Any]] = None
    error: Optional[TokenError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.claims is not None

    @classmethod
    def accepted(cls, claims: Dict[str, Any]) -> "TokenCheck":
        return cls(claims=claims)

    @classmethod
    def rejected(cls, error: TokenError) -> "TokenCheck":
        return cls(error=error)


@dataclass(frozen=True)
class IssuedRefreshToken:
    token: str
    jti: str
    expires_at: datetime


class JWKSClient:
    """Fetches and caches a remote JSON Web Key Set.

    The set is refetched when older than ``cache_seconds``. A ``kid`` missing
    from the cache also triggers a refetch, but at most once per
    ``refetch_cooldown_seconds`` so unknown kids cannot drive traffic to the
    identity provider. Called from threadpool workers; the cache is
    lock-protected.
    """

    def __init__(
        self,
        url: str,
        cache_seconds: int = 300,
        timeout: float = 5.0,
        clock: Callable[[], float] = time.time,
        refetch_cooldown_seconds: int = 30,
    ):
        self.url = url
        self.cache_seconds = cache_seconds
        self.timeout = timeout
        self.refetch_cooldown_seconds = refetch_cooldown_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._keys: List[Dict[str, Any]] = []
        self._fetched_at: Optional[float] = None

    def _fetch(self) -> List[Dict[str, Any]]:
        response = httpx.get(self.url, timeout=self.timeout)
        response.raise_for_status()
        keys = response.json().get("keys")
        if not isinstance(keys, list):
            raise ValueError("JWKS document has no 'keys' list")
        return keys

    def _needs_fetch(self, kid: Optional[str], now: float) -> bool:
        if self._fetched_at is None or now - self._fetched_at > self.cache_seconds:
            return True
        if kid is None or any(k.get("kid") == kid for k in self._keys):
            return False
        return now - self._fetched_at >= self.refetch_cooldown_seconds

    def get_keys(self, kid: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            now = self._clock()
            if self._needs_fetch(kid, now):
                # A failed fetch leaves the previous set and timestamp in place
                self._keys = self._fetch()
                self._fetched_at = now
            keys = list(self._keys)

        if kid is None:
            return keys
        return [k for k in keys if k.get("kid") == kid]


class TokenIssuer:
    def __init__(
        self,
        config: AuthConfig,
        clock: Callable[[], float] = time.time,
        jwks_client: Optional[JWKSClient] = None,
    ):
        self.config = config
        self._clock = clock
        if jwks_client is None and config.jwks_url:
            jwks_client = JWKSClient(config.jwks_url, cache_seconds=config.jwks_cache_seconds)
        self.jwks = jwks_client

    # ------------------------------------------------------------------ issue

    def _base_claims(self, subject: str, token_type: str, ttl_seconds: int) -> Dict[str, Any]:
        now = int(self._clock())
        return {
            "sub": str(subject),
            "typ": token_type,
            "iss": self.config.issuer,
            "aud": self.config.audience,
            "iat": now,
            "exp": now + ttl_seconds,
            "jti": str(uuid.uuid4()),
        }

    def issue_access_token(
        self,
        user_id: str,
        email: str,
        roles: Iterable[str],
        org_id: Optional[str] = None,
        facility_id: Optional[str] = None,
    ) -> str:
        claims = self._base_claims(user_id, ACCESS, self.config.access_ttl_seconds)
        claims.update({
            "email": email,
            "roles": sorted(set(roles)),
            "org": org_id,
            "fac": facility_id,
        })
        return jwt.encode(claims, self.config.access_secret, algorithm=HS256)

    def issue_refresh_token(self, user_id: str) -> IssuedRefreshToken:
        claims = self._base_claims(user_id, REFRESH, self.config.refresh_ttl_seconds)
        token = jwt.encode(claims, self.config.refresh_secret, algorithm=HS256)

        # Session expiry comes from what was actually signed
        check = self.verify_refresh(token)
        if not check.ok:
            raise RuntimeError(f"Freshly issued refresh token failed verification: {check.error}")
        return IssuedRefreshToken(
            token=token,
            jti=check.claims["jti"],
            expires_at=from_timestamp(check.claims["exp"]),
        )

    # ----------------------------------------------------------------- verify

    def verify_access(self, token: str) -> TokenCheck:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError:
            return TokenCheck.rejected(TokenError.MALFORMED)

        alg = header.get("alg")
        if alg == RS256:
            if self.jwks is None:
                logger.warning("RS256 access token received but AUTH_JWKS_URL is not configured")
                return TokenCheck.rejected(TokenError.UNSUPPORTED_ALGORITHM)
            try:
                keys = self.jwks.get_keys(header.get("kid"))
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("Unable to load JWKS from %s: %s", self.jwks.url, exc)
                return TokenCheck.rejected(TokenError.KEYSET_UNAVAILABLE)
            if not keys:
                return TokenCheck.rejected(TokenError.INVALID)
            return self._decode(token, {"keys": keys}, RS256, ACCESS)

        if alg != HS256:
            return TokenCheck.rejected(TokenError.UNSUPPORTED_ALGORITHM)
        return self._decode(token, self.config.access_secret, HS256, ACCESS)

    def verify_refresh(self, token: str) -> TokenCheck:
        check = self._decode(token, self.config.refresh_secret, HS256, REFRESH)
        if check.ok and not check.claims.get("jti"):
            return TokenCheck.rejected(TokenError.INVALID)
        return check

    def _decode(self, token: str, key: Any, algorithm: str, token_type: str) -> TokenCheck:
        try:
            claims = jwt.decode(
                token,
                key,
                algorithms=[algorithm],
                audience=self.config.audience,
                issuer=self.config.issuer,
                # exp is checked below without leeway; skew tolerance covers nbf/iat
                options={"verify_exp": False, "leeway": self.config.clock_skew_seconds},
            )
        except JWTError:
            return TokenCheck.rejected(TokenError.INVALID)

        exp = claims.get("exp")
        if not isinstance(exp, (int, float)):
            return TokenCheck.rejected(TokenError.INVALID)
        if self._clock() >= exp:
            return TokenCheck.rejected(TokenError.EXPIRED)

        # External-provider tokens carry no "typ"; ours must match the slot they are used in
        typ = claims.get("typ")
        if algorithm == HS256 and typ != token_type:
            return TokenCheck.rejected(TokenError.INVALID)
        if typ is not None and typ != token_type:
            return TokenCheck.rejected(TokenError.INVALID)

        if not claims.get("sub"):
            return TokenCheck.rejected(TokenError.INVALID)
        return TokenCheck.accepted(claims)
