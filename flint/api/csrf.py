"""
CSRF protection for state-changing endpoints.

Double-submit cookie: GET /api/csrf-token issues a random token both as a
cookie and in the body; every POST must echo it in the x-csrf-token header.
"""

import logging
import secrets

from fastapi import APIRouter, HTTPException, Request, Response

from flint.config import settings

logger = logging.getLogger("flint.csrf")

CSRF_HEADER = "x-csrf-token"

router = APIRouter(tags=["csrf"])


def generate_csrf_token() -> str:
    return secrets.token_hex(32)


@router.get("/csrf-token")
async def get_csrf_token(request: Request, response: Response):
    """Return the session's CSRF token, issuing one if the cookie is missing."""
    token = request.cookies.get(settings.csrf_cookie_name) or generate_csrf_token()
    response.set_cookie(
        settings.csrf_cookie_name,
        token,
        httponly=True,
        samesite="strict",
        secure=settings.csrf_cookie_secure,
    )
    return {"csrfToken": token}


async def require_csrf(request: Request) -> None:
    header = request.headers.get(CSRF_HEADER)
    cookie = request.cookies.get(settings.csrf_cookie_name)
    if not header or not cookie or not secrets.compare_digest(header, cookie):
        logger.warning("CSRF validation failed for %s %s", request.method, request.url.path)
        raise HTTPException(status_code=403, detail="Invalid or missing CSRF token")
