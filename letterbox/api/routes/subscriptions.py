"""
Public subscription endpoints.

Endpoints:
- POST /subscriptions - Subscribe (form: name, email)
- GET /subscriptions/confirm - Confirm via emailed link
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, status
from pydantic import BaseModel

from letterbox.api.deps import get_context
from letterbox.app_shell.context import ServiceContext
from letterbox.components.subscriptions import (
    ConfirmDatabaseError,
    ConfirmInput,
    ConfirmOutput,
    ConfirmTokenNotFoundError,
    SubscribeDatabaseError,
    SubscribeInput,
    SubscribeParseError,
    SubscribeSendEmailError,
    run,
)
from letterbox.core.errors import format_error_chain

logger = logging.getLogger(__name__)

router = APIRouter()


class SubscriptionResponse(BaseModel):
    message: str


# Sync handlers: FastAPI runs them in its thread pool, off the event loop.


@router.post("/subscriptions", response_model=SubscriptionResponse)
def subscribe(
    name: Annotated[str, Form()],
    email: Annotated[str, Form()],
    context: ServiceContext = Depends(get_context),
) -> SubscriptionResponse:
    try:
        run(
            SubscribeInput(name=name, email=email),
            unit_of_work=context.unit_of_work,
            email_sender=context.email_sender,
            config=context.subscription_config,
        )
    except SubscribeParseError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason) from e
    except (SubscribeDatabaseError, SubscribeSendEmailError) as e:
        logger.error("Subscription failed:\n%s", format_error_chain(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong",
        ) from e

    return SubscriptionResponse(message="Check your inbox to confirm your subscription.")


@router.get("/subscriptions/confirm", response_model=SubscriptionResponse)
def confirm(
    subscription_token: str | None = None,
    context: ServiceContext = Depends(get_context),
) -> SubscriptionResponse:
    try:
        result = run(
            ConfirmInput(token=subscription_token),
            subscriptions=context.subscriptions,
            subscription_tokens=context.subscription_tokens,
        )
    except ConfirmTokenNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except ConfirmDatabaseError as e:
        logger.error("Confirmation failed:\n%s", format_error_chain(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong",
        ) from e

    if isinstance(result, ConfirmOutput) and result.already_confirmed:
        return SubscriptionResponse(message="Your subscription was already confirmed.")
    return SubscriptionResponse(message="Your subscription is confirmed.")
