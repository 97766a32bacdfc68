"""Locale preference cookie."""
from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel
from prairiemed.routers.auth import set_locale_cookie

router = APIRouter(prefix="/i18n", tags=["i18n"])

SUPPORTED_LOCALES = ("en", "fr")
DEFAULT_LOCALE = "en"


class SetLocaleRequest(BaseModel):
    locale: str = DEFAULT_LOCALE
    returnTo: str = "/"


def normalize_locale(value: str | None) -> str:
    value = (value or "").strip().lower()
    return value if value in SUPPORTED_LOCALES else DEFAULT_LOCALE


@router.post("/set-locale")
async def set_locale(payload: SetLocaleRequest, request: Request):
    locale = normalize_locale(payload.locale)
    # Only same-site relative redirects
    target = payload.returnTo if payload.returnTo.startswith("/") and not payload.returnTo.startswith("//") else "/"
    response = RedirectResponse(url=target, status_code=303)
    set_locale_cookie(response, locale, request.app.state.auth_service.config.secure_cookies)
    return response
