"""
Operator pages behind the session cookie.

Endpoints:
- GET /admin/dashboard
- GET /admin/password, POST /admin/password - Change password
- POST /admin/logout
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import HTMLResponse, RedirectResponse

from letterbox.api import pages
from letterbox.api.auth_utils import SESSION_COOKIE_NAME
from letterbox.api.deps import get_context, get_current_user, get_hmac_secret
from letterbox.api.routes.login import SOMETHING_WENT_WRONG, signed_redirect
from letterbox.app_shell.context import ServiceContext
from letterbox.components.auth import (
    ChangePasswordInput,
    InvalidCredentialsError,
    PasswordPolicyError,
    UnexpectedAuthError,
    change_password,
)
from letterbox.core.errors import format_error_chain
from letterbox.core.services import redirect_signing
from letterbox.domain.entities import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")

PASSWORD_PATH = "/admin/password"
WRONG_CURRENT_PASSWORD = "The current password is incorrect."
PASSWORD_CHANGED = "Your password has been changed."


def password_page_secret(secret: bytes = Depends(get_hmac_secret)) -> bytes:
    return redirect_signing.derive_page_secret(secret, PASSWORD_PATH)


@router.get("/dashboard", response_class=HTMLResponse)
def dashboard(user: User = Depends(get_current_user)) -> HTMLResponse:
    return HTMLResponse(content=pages.dashboard_page(user.username))


@router.get("/password", response_class=HTMLResponse)
def change_password_form(
    error: str | None = None,
    tag: str | None = None,
    user: User = Depends(get_current_user),
    secret: bytes = Depends(password_page_secret),
) -> HTMLResponse:
    message = redirect_signing.read_verified_error(error, tag, secret)
    return HTMLResponse(content=pages.change_password_page(message))


@router.post("/password")
async def submit_change_password(
    current_password: Annotated[str, Form()],
    new_password: Annotated[str, Form()],
    new_password_check: Annotated[str, Form()],
    user: User = Depends(get_current_user),
    context: ServiceContext = Depends(get_context),
    secret: bytes = Depends(password_page_secret),
) -> RedirectResponse:
    try:
        await change_password(
            ChangePasswordInput(
                user_id=user.user_id,
                current_password=current_password,
                new_password=new_password,
                new_password_check=new_password_check,
            ),
            user_repo=context.user_repo,
            password_verifier=context.password_verifier,
        )
    except PasswordPolicyError as e:
        return signed_redirect(PASSWORD_PATH, str(e), secret)
    except InvalidCredentialsError:
        return signed_redirect(PASSWORD_PATH, WRONG_CURRENT_PASSWORD, secret)
    except UnexpectedAuthError as e:
        logger.error("Password change failed:\n%s", format_error_chain(e))
        return signed_redirect(PASSWORD_PATH, SOMETHING_WENT_WRONG, secret)

    return signed_redirect(PASSWORD_PATH, PASSWORD_CHANGED, secret)


@router.post("/logout")
def logout(user: User = Depends(get_current_user)) -> RedirectResponse:
    logger.info("User %s logged out", user.user_id)
    response = RedirectResponse(url="/login", status_code=status.HTTP_303_SEE_OTHER)
    response.delete_cookie(key=SESSION_COOKIE_NAME)
    return response
