"""
WhatsApp webhook endpoints.

GET answers Meta's verification handshake. POST logs every inbound text
message and hands its id to the ingest queue; it always answers 200 so
the provider never retries a delivery.
"""
import logging
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.config import settings
from jobboard.database import get_db
from jobboard.dependencies import get_ingest_queue
from jobboard.schemas.webhook import WhatsAppWebhookPayload
from jobboard.services.stores import SqlMessageStore
from jobboard.services.task_queue import IngestQueueFullError, IngestTaskQueue

logger = logging.getLogger(__name__)
router = APIRouter()

EVENT_RECEIVED = "EVENT_RECEIVED"


@router.get("", response_class=PlainTextResponse)
async def verify_webhook(
    mode: str = Query(None, alias="hub.mode"),
    token: str = Query(None, alias="hub.verify_token"),
    challenge: str = Query("", alias="hub.challenge"),
):
    """Echo the challenge when Meta subscribes with our verify token."""
    if mode == "subscribe" and settings.whatsapp_verify_token and token == settings.whatsapp_verify_token:
        logger.info("Webhook verified successfully")
        return PlainTextResponse(challenge, status_code=200)
    
    logger.warning(f"Webhook verification failed (mode={mode})")
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("", response_class=PlainTextResponse)
async def receive_messages(
    request: Request,
    db: AsyncSession = Depends(get_db),
    queue: IngestTaskQueue = Depends(get_ingest_queue),
):
    """
    Log inbound group messages and queue them for extraction.
    
    Errors are logged and never returned to the provider.
    """
    try:
        payload = WhatsAppWebhookPayload.model_validate(await request.json())
    except (ValueError, PydanticValidationError) as e:
        logger.warning(f"Ignoring malformed webhook payload: {e}")
        return PlainTextResponse(EVENT_RECEIVED, status_code=200)
    
    store = SqlMessageStore(db)
    for message in payload.text_messages():
        try:
            log = await store.create(
                message.raw_text,
                group_id=message.group_id,
                message_id=message.message_id,
            )
            logger.info(f"Received message {message.message_id} from {message.group_id} as log {log.id}")
            queue.submit(log.id)
        except IngestQueueFullError:
            # Entry stays pending; the backlog worker picks it up later
            logger.warning(f"Ingest queue full, message {message.message_id} left pending")
        except Exception as e:
            await db.rollback()
            logger.error(f"Error processing webhook message {message.message_id}: {e}", exc_info=True)
    
    return PlainTextResponse(EVENT_RECEIVED, status_code=200)
