"""JWT verification middleware.

Resolves the caller once per request and attaches the result to
``request.state``. It never rejects a request and never touches persisted
state; route-level dependencies (`get_current_identity`, `require_roles`)
decide whether a missing or invalid credential matters.
"""
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.middleware.base import BaseHTTPMiddleware
from prairiemed.core.tokens import TokenError, TokenIssuer
from prairiemed.services.auth_service import Identity

ACCESS_COOKIE = "access_token"


def extract_bearer(request: Request) -> tuple[str | None, bool]:
    """Return (token, malformed_header). Header wins over the cookie."""
    auth_header = request.headers.get("authorization")
    if auth_header:
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None, True
        return token.strip(), False
    return request.cookies.get(ACCESS_COOKIE) or None, False


class JWTMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, issuer: TokenIssuer):
        super().__init__(app)
        self.issuer = issuer

    async def dispatch(self, request: Request, call_next):
        request.state.auth = None
        request.state.auth_error = None

        token, malformed = extract_bearer(request)
        if malformed:
            request.state.auth_error = TokenError.MALFORMED
        elif token:
            # May hit the network for a JWKS refresh
            check = await run_in_threadpool(self.issuer.verify_access, token)
            if check.ok:
                request.state.auth = Identity.from_claims(check.claims)
            else:
                request.state.auth_error = check.error

        return await call_next(request)
