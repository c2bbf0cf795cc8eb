import logging
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from letterbox.api.auth_utils import SESSION_COOKIE_NAME, decode_session_token
from letterbox.app_shell.context import ServiceContext
from letterbox.core.errors import format_error_chain
from letterbox.core.ports.db import StoreError
from letterbox.domain.entities import User

logger = logging.getLogger(__name__)


def get_context(request: Request) -> ServiceContext:
    context: ServiceContext = request.app.state.context
    return context


def get_hmac_secret(context: ServiceContext = Depends(get_context)) -> bytes:
    return context.hmac_secret


class LoginRequired(Exception):
    """No valid session; the handler redirects to /login."""


async def get_current_user(
    request: Request,
    context: ServiceContext = Depends(get_context),
) -> User:
    """Resolve the session cookie to a user or raise LoginRequired."""
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        raise LoginRequired()

    secret = context.settings.application.session_secret.get_secret_value()
    payload = decode_session_token(token, secret)
    if not payload or "sub" not in payload:
        raise LoginRequired()

    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError as e:
        raise LoginRequired() from e

    try:
        user = await run_in_threadpool(context.user_repo.get_by_id, user_id)
    except StoreError as e:
        logger.error("Failed to load the session user:\n%s", format_error_chain(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong",
        ) from e
    if user is None:
        raise LoginRequired()
    return user
