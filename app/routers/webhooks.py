"""Clerk webhook: keeps the local users table in sync with Clerk.

Flow per request:
1. Require the three svix headers
2. Re-serialize the JSON body to the canonical signed string
3. Verify the Svix signature
4. Apply at most one insert/update/delete on users

Responds 400 for unauthenticated or malformed messages, 500 when the
database statement fails, 200 with an empty body otherwise (including
event types we do not handle).
"""

import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError
from sqlalchemy import delete, insert, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.webhooks import SVIX_HEADERS, WebhookVerificationError, decode_secret, verify_webhook
from app.models.user import User
from app.schemas.webhook import ClerkDeletedObject, ClerkUserData, ClerkWebhookEvent

logger = logging.getLogger(__name__)

router = APIRouter()


class WebhookConfigurationError(RuntimeError):
    """The Clerk webhook secret is missing or is not a valid signing secret."""


def canonical_body(payload) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


async def create_user(db: AsyncSession, data: ClerkUserData) -> Response | None:
    now = datetime.now(timezone.utc)
    try:
        await db.execute(
            insert(User).values(
                id=data.id,
                email=data.email,
                first_name=data.first_name or None,
                last_name=data.last_name or None,
                image_url=data.image_url or None,
                created_at=now,
                updated_at=now,
            )
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Error creating user %s in database", data.id)
        return PlainTextResponse("Error creating user", status_code=500)
    logger.info("User %s created in database", data.id)
    return None


async def update_user(db: AsyncSession, data: ClerkUserData) -> Response | None:
    try:
        await db.execute(
            update(User)
            .where(User.id == data.id)
            .values(
                email=data.email,
                first_name=data.first_name or None,
                last_name=data.last_name or None,
                image_url=data.image_url or None,
                updated_at=datetime.now(timezone.utc),
            )
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Error updating user %s in database", data.id)
        return PlainTextResponse("Error updating user", status_code=500)
    logger.info("User %s updated in database", data.id)
    return None


async def delete_user(db: AsyncSession, data: ClerkDeletedObject) -> Response | None:
    try:
        await db.execute(delete(User).where(User.id == data.id))
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Error deleting user %s from database", data.id)
        return PlainTextResponse("Error deleting user", status_code=500)
    logger.info("User %s deleted from database", data.id)
    return None


_USER_HANDLERS = {
    "user.created": (ClerkUserData, create_user),
    "user.updated": (ClerkUserData, update_user),
    "user.deleted": (ClerkDeletedObject, delete_user),
}


@router.post("/clerk")
async def clerk_webhook(request: Request, db: AsyncSession = Depends(get_db)):
    secret = settings.CLERK_WEBHOOK_SECRET
    if not secret:
        raise WebhookConfigurationError(
            "Please add CLERK_WEBHOOK_SECRET from Clerk Dashboard to .env"
        )
    try:
        decode_secret(secret)
    except WebhookVerificationError as exc:
        raise WebhookConfigurationError("CLERK_WEBHOOK_SECRET is not a valid Svix signing secret") from exc

    headers = {name: request.headers.get(name) for name in SVIX_HEADERS}
    if not all(headers.values()):
        logger.warning("Clerk webhook rejected: missing svix headers")
        return PlainTextResponse("Error occured -- no svix headers", status_code=400)

    try:
        body = canonical_body(await request.json())
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Clerk webhook rejected: body is not JSON (svix-id=%s)", headers["svix-id"])
        return PlainTextResponse("Error occured -- invalid body", status_code=400)

    try:
        payload = verify_webhook(secret, body, headers, tolerance=settings.WEBHOOK_TOLERANCE_SECONDS)
        event = ClerkWebhookEvent.model_validate(payload)
    except WebhookVerificationError as exc:
        logger.error("Error verifying webhook %s: %s", headers["svix-id"], exc)
        return PlainTextResponse("Error occured", status_code=400)
    except ValidationError:
        logger.warning("Clerk webhook %s has no event envelope", headers["svix-id"])
        return PlainTextResponse("Error occured -- invalid payload", status_code=400)

    handler = _USER_HANDLERS.get(event.type)
    if handler is None:
        logger.info("Clerk webhook %s: ignoring event type %s", headers["svix-id"], event.type)
        return Response(status_code=200)

    data_model, apply = handler
    try:
        data = data_model.model_validate(event.data)
    except ValidationError:
        logger.warning("Clerk webhook %s: invalid %s payload", headers["svix-id"], event.type)
        return PlainTextResponse("Error occured -- invalid payload", status_code=400)

    error_response = await apply(db, data)
    if error_response is not None:
        return error_response
    return Response(status_code=200)
