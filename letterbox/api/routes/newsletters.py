"""
Newsletter publishing endpoint.

POST /newsletters with HTTP Basic credentials and a JSON issue.
Delivers only to confirmed subscribers.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from letterbox.api.deps import get_context
from letterbox.app_shell.context import ServiceContext
from letterbox.components.auth import (
    InvalidCredentialsError,
    UnexpectedAuthError,
    authenticate,
    parse_basic_authorization,
)
from letterbox.components.newsletter import PublishError, PublishInput, run_publish
from letterbox.core.errors import format_error_chain

logger = logging.getLogger(__name__)

router = APIRouter()

BASIC_AUTH_CHALLENGE = 'Basic realm="publish"'


class NewsletterIssue(BaseModel):
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1, description="HTML body of the issue")


class PublishResponse(BaseModel):
    delivered: int
    skipped: int


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": BASIC_AUTH_CHALLENGE},
    )


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Something went wrong",
    )


@router.post("/newsletters", response_model=PublishResponse)
async def publish_newsletter(
    issue: NewsletterIssue,
    request: Request,
    context: ServiceContext = Depends(get_context),
) -> PublishResponse:
    try:
        credentials = parse_basic_authorization(request.headers.get("Authorization"))
        user_id = await authenticate(
            credentials,
            user_repo=context.user_repo,
            password_verifier=context.password_verifier,
        )
    except InvalidCredentialsError as e:
        logger.info("Rejected publish attempt: %s", e)
        raise _unauthorized("Authentication failed") from e
    except UnexpectedAuthError as e:
        logger.error("Publish authentication failed:\n%s", format_error_chain(e))
        raise _internal_error() from e

    logger.info("User %s publishing newsletter issue %r", user_id, issue.title)

    try:
        result = await run_in_threadpool(
            run_publish,
            PublishInput(title=issue.title, body_html=issue.body),
            subscriptions=context.subscriptions,
            email_sender=context.email_sender,
        )
    except PublishError as e:
        logger.error("Newsletter publish failed:\n%s", format_error_chain(e))
        raise _internal_error() from e

    return PublishResponse(delivered=result.delivered, skipped=len(result.skipped))
