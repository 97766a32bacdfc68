"""Helper utilities (time, request helpers)."""
from datetime import datetime, timezone
from fastapi import Request
from prairiemed.core.config import settings


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how DateTime columns are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_timestamp(ts: int | float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)


def get_client_ip(request: Request, trust_proxy: bool | None = None) -> str | None:
    """Return the caller's IP address.

    `X-Forwarded-For` is client-controlled, so its first hop is used only when
    ``trust_proxy`` (default: ``TRUST_PROXY_HEADERS``) is on. Otherwise the
    socket peer from `request.client.host` is returned. None if neither is known.
    """
    if trust_proxy is None:
        trust_proxy = settings.TRUST_PROXY_HEADERS
    if trust_proxy:
        x_forwarded_for = request.headers.get("x-forwarded-for")
        if x_forwarded_for:
            return x_forwarded_for.split(",")[0].strip()

    client = getattr(request, "client", None)
    if client and getattr(client, "host", None):
        return client.host

    return None


def get_user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent") or None
