from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query, status
from typing import Optional
import json
import logging
import uuid

from clurb.core.auth import websocket_subject
from clurb.core.config import get_settings
from clurb.core.db import SessionLocal
from clurb.db.repositories.document_repository import MembershipRepository
from clurb.domains.reading.debounce import ProgressDebouncer
from clurb.domains.reading.services import ReadingProgressService
from clurb.infrastructure.realtime import document_channel, hub

logger = logging.getLogger(__name__)

router = APIRouter()


async def _is_member(document_uuid: uuid.UUID, user_id: uuid.UUID) -> bool:
    async with SessionLocal() as session:
        return await MembershipRepository(session).get(document_uuid, user_id) is not None


def _page_from(message: dict) -> Optional[int]:
    page = (message.get("data") or {}).get("page")
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        return None
    return page


@router.websocket("/ws/documents/{document_uuid}")
async def reading_session(
    websocket: WebSocket,
    document_uuid: uuid.UUID,
    token: Optional[str] = Query(None)
):
    """WebSocket сессии чтения: присутствие, события чата, отложенная запись страницы"""
    user_id = websocket_subject(token, websocket.headers.get("authorization"))
    if user_id is None or not await _is_member(document_uuid, user_id):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    channel = document_channel(document_uuid)
    connection_id = uuid.uuid4().hex

    async def write_progress(page: int) -> None:
        async with SessionLocal() as session:
            progress = await ReadingProgressService(session).record_page(document_uuid, user_id, page)
        if progress is None:
            # Членство отозвано во время открытой сессии
            logger.warning(f"Progress for user {user_id} on {document_uuid} rejected: not a member")
            return
        await websocket.send_json({
            "type": "progress_saved",
            "data": {"page": progress.current_page, "last_read_at": progress.last_read_at.isoformat()}
        })

    debouncer = ProgressDebouncer(write_progress, delay=get_settings().progress_debounce_seconds)

    hub.subscribe(channel, connection_id, websocket)
    try:
        await websocket.send_json({
            "type": "connected",
            "data": {
                "document_id": str(document_uuid),
                "user_id": str(user_id),
                "connection_id": connection_id
            }
        })
        await hub.track(channel, connection_id, user_id)
        logger.info(f"User {user_id} opened reading session on {document_uuid}")

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "data": {"message": "Invalid JSON"}})
                continue

            message_type = message.get("type") if isinstance(message, dict) else None

            if message_type == "page_changed":
                page = _page_from(message)
                if page is None:
                    await websocket.send_json({"type": "error", "data": {"message": "Invalid page"}})
                    continue
                debouncer.schedule(page)

            elif message_type == "ping":
                # Ответ на ping для поддержания соединения
                await websocket.send_json({"type": "pong"})

            else:
                await websocket.send_json({"type": "error", "data": {"message": "Unknown message type"}})

    except WebSocketDisconnect:
        logger.info(f"User {user_id} left reading session on {document_uuid}")

    except Exception as e:
        logger.error(f"WebSocket error for user {user_id} on {document_uuid}: {e}")

    finally:
        # Несработавшая запись страницы отбрасывается
        debouncer.cancel()
        await hub.unsubscribe(channel, connection_id)
