"""Global error handlers for the application.

Every HTTPException renders as ``{"error": detail}``. Anything unhandled is
logged with its traceback and reduced to a generic 500.
"""
import logging
from fastapi import Request
from fastapi.responses import JSONResponse
from prairiemed.utils.errors import GENERIC_SERVER_ERROR

logger = logging.getLogger(__name__)


async def http_exception_handler(request: Request, exc):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": GENERIC_SERVER_ERROR})
