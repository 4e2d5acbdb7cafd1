from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError
from typing import Any, Dict, Optional
import json
import logging
import secrets

from clipcut.domains.clipboard.exceptions import (
    InvalidStateError, ItemNotFoundError, TokenMismatchError
)
from clipcut.domains.clipboard.schemas import (
    CutCreatedEvent, CutResponse, ErrorMessage, PasteAckMessage,
    PasteAckResultMessage, RegisteredMessage, RegisterMessage
)
from clipcut.domains.clipboard.services import CutCoordinator
from clipcut.domains.devices.services import DeviceRegistry

logger = logging.getLogger(__name__)

router = APIRouter()


async def send_message(websocket: WebSocket, message: BaseModel) -> None:
    await websocket.send_json(message.model_dump(mode="json", by_alias=True, exclude_none=True))


async def handle_register(
    websocket: WebSocket,
    registry: DeviceRegistry,
    coordinator: CutCoordinator,
    message: Dict[str, Any],
    current_id: Optional[str]
) -> Optional[str]:
    """Регистрация устройства и досылка всех открытых вырезаний"""
    try:
        register = RegisterMessage.model_validate(message)
    except ValidationError:
        await send_message(websocket, ErrorMessage(reason="invalid register message"))
        return current_id

    device_id = register.device_id or f"anon-{secrets.token_hex(4)}"
    if current_id and current_id != device_id:
        registry.disconnect(current_id, websocket)

    registry.register(device_id, register.name or "unknown", websocket)
    await send_message(websocket, RegisteredMessage(device_id=device_id))

    for item in await coordinator.open_cuts():
        await send_message(
            websocket,
            CutCreatedEvent(item_id=item.id, cut=CutResponse.from_entity(item.cut))
        )

    return device_id


async def handle_paste_ack(
    websocket: WebSocket,
    coordinator: CutCoordinator,
    message: Dict[str, Any]
) -> None:
    """Подтверждение вставки через живой канал"""
    raw_item_id = message.get("itemId")
    item_id = raw_item_id if isinstance(raw_item_id, str) else None

    try:
        ack = PasteAckMessage.model_validate(message)
    except ValidationError:
        await send_message(websocket, PasteAckResultMessage(
            ok=False, item_id=item_id, reason="itemId, token and deviceId required"
        ))
        return

    try:
        result = await coordinator.acknowledge(ack.item_id, ack.device_id, ack.token)
    except ItemNotFoundError:
        reason = "item not found"
    except InvalidStateError:
        reason = "cut not found for item"
    except TokenMismatchError:
        reason = "invalid token"
    else:
        if result.deleted:
            await send_message(websocket, PasteAckResultMessage(ok=True, item_id=ack.item_id, deleted=True))
        else:
            await send_message(websocket, PasteAckResultMessage(ok=True, item_id=ack.item_id, pending=result.pending))
        return

    logger.info(f"Rejected paste-ack for item {ack.item_id} from {ack.device_id}: {reason}")
    await send_message(websocket, PasteAckResultMessage(ok=False, item_id=ack.item_id, reason=reason))


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Живой канал устройства"""
    registry: DeviceRegistry = websocket.app.state.device_registry
    coordinator: CutCoordinator = websocket.app.state.cut_coordinator

    await websocket.accept()
    device_id: Optional[str] = None

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except ValueError:
                await send_message(websocket, ErrorMessage(reason="invalid json"))
                continue

            if not isinstance(message, dict):
                await send_message(websocket, ErrorMessage(reason="message must be an object"))
                continue

            message_type = message.get("type")

            if message_type == "register":
                device_id = await handle_register(websocket, registry, coordinator, message, device_id)

            elif message_type == "paste-ack":
                await handle_paste_ack(websocket, coordinator, message)

            elif message_type == "ping":
                # Ответ на ping для поддержания соединения
                await websocket.send_json({"type": "pong"})

            else:
                await send_message(websocket, ErrorMessage(reason=f"unknown message type: {message_type}"))

            if device_id:
                registry.touch(device_id)

    except WebSocketDisconnect:
        logger.info(f"WebSocket closed for device {device_id}")

    except Exception as e:
        logger.error(f"WebSocket error for device {device_id}: {e}")

    finally:
        if device_id:
            registry.disconnect(device_id, websocket)
