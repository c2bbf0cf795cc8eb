"""
Home page and operator login.

A failed login redirects back to /login with the error message and an
HMAC tag in the query string. GET /login renders the message only when the
tag verifies, so a crafted link cannot inject text into the page.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import HTMLResponse, RedirectResponse

from letterbox.api import pages
from letterbox.api.auth_utils import SESSION_COOKIE_NAME, create_session_token
from letterbox.api.deps import get_context, get_hmac_secret
from letterbox.app_shell.context import ServiceContext
from letterbox.components.auth import (
    Credentials,
    InvalidCredentialsError,
    UnexpectedAuthError,
    authenticate,
)
from letterbox.core.errors import format_error_chain
from letterbox.core.services import redirect_signing

logger = logging.getLogger(__name__)

router = APIRouter()

AUTHENTICATION_FAILED = "Authentication failed"
SOMETHING_WENT_WRONG = "Something went wrong"
DASHBOARD_PATH = "/admin/dashboard"


@router.get("/", response_class=HTMLResponse)
def home() -> HTMLResponse:
    return HTMLResponse(content=pages.home_page())


@router.get("/login", response_class=HTMLResponse)
def login_form(
    error: str | None = None,
    tag: str | None = None,
    secret: bytes = Depends(get_hmac_secret),
) -> HTMLResponse:
    message = redirect_signing.read_verified_error(error, tag, secret)
    if error is not None and message is None:
        logger.warning("Ignoring login error message with an invalid tag")
    return HTMLResponse(content=pages.login_page(message))


def signed_redirect(path: str, message: str, secret: bytes) -> RedirectResponse:
    return RedirectResponse(
        url=redirect_signing.build_error_redirect(path, message, secret),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.post("/login")
async def login(
    username: Annotated[str, Form()],
    password: Annotated[str, Form()],
    context: ServiceContext = Depends(get_context),
) -> RedirectResponse:
    try:
        user_id = await authenticate(
            Credentials(username=username, password=password),
            user_repo=context.user_repo,
            password_verifier=context.password_verifier,
        )
    except InvalidCredentialsError as e:
        logger.info("Failed login: %s", e)
        return signed_redirect("/login", AUTHENTICATION_FAILED, context.hmac_secret)
    except UnexpectedAuthError as e:
        logger.error("Login failed unexpectedly:\n%s", format_error_chain(e))
        return signed_redirect("/login", SOMETHING_WENT_WRONG, context.hmac_secret)

    logger.info("User %s logged in", user_id)

    app_settings = context.settings.application
    ttl = timedelta(minutes=app_settings.session_ttl_minutes)
    token = create_session_token(
        str(user_id), app_settings.session_secret.get_secret_value(), ttl
    )

    response = RedirectResponse(url=DASHBOARD_PATH, status_code=status.HTTP_303_SEE_OTHER)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        max_age=int(ttl.total_seconds()),
        samesite="lax",
        secure=app_settings.secure_cookies,
    )
    return response
