"""
WebSocket Endpoint

職責：
1. 為每條連線分配 connection id，並在斷線時通知 RoomManager
2. 解析 {"event": ..., "data": {...}} 格式的訊息並驗證 payload
3. Handler 邊界：所有異常都在這裡被攔下，只回 error 給發起者，
   不會讓其他房間或連線受影響
"""
import json
import logging
import uuid
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Type

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from core import events
from core.exceptions import PresentationTimerException
from core.room_manager import RoomManager, get_room_manager
from schemas import (
    AddCheckpointPayload,
    CreateRoomPayload,
    JoinRoomPayload,
    ReconnectPayload,
    RemoveCheckpointPayload,
    RoomCodePayload,
    UpdateDurationPayload,
)

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)


class WebSocketConnection:
    """把 FastAPI WebSocket 包成 BroadcastDispatcher 需要的 Connection"""

    def __init__(self, websocket: WebSocket, connection_id: str):
        self.websocket = websocket
        self.connection_id = connection_id

    async def send(self, event: str, payload: Any) -> None:
        await self.websocket.send_json({"event": event, "data": payload})


class EventHandler(NamedTuple):
    schema: Type[BaseModel]
    action: str
    call: Callable[[RoomManager, str, Any], Awaitable[Any]]


HANDLERS: Dict[str, EventHandler] = {
    events.CREATE_ROOM: EventHandler(
        CreateRoomPayload, "create room",
        lambda m, cid, p: m.create_room(cid, p.room_name, p.user_name, p.total_duration)
    ),
    events.JOIN_ROOM: EventHandler(
        JoinRoomPayload, "join room",
        lambda m, cid, p: m.join_room(cid, p.room_code, p.user_name)
    ),
    events.ADD_CHECKPOINT: EventHandler(
        AddCheckpointPayload, "add checkpoint",
        lambda m, cid, p: m.add_checkpoint(cid, p.name, p.time_in_seconds, p.note)
    ),
    events.REMOVE_CHECKPOINT: EventHandler(
        RemoveCheckpointPayload, "remove checkpoint",
        lambda m, cid, p: m.remove_checkpoint(cid, p.id)
    ),
    events.START_TIMER: EventHandler(
        RoomCodePayload, "start timer",
        lambda m, cid, p: m.start_timer(cid, p.room_code)
    ),
    events.PAUSE_TIMER: EventHandler(
        RoomCodePayload, "pause timer",
        lambda m, cid, p: m.pause_timer(cid, p.room_code)
    ),
    events.TOGGLE_READY: EventHandler(
        RoomCodePayload, "toggle ready status",
        lambda m, cid, p: m.toggle_ready(cid, p.room_code)
    ),
    events.UPDATE_DURATION: EventHandler(
        UpdateDurationPayload, "update duration",
        lambda m, cid, p: m.update_duration(cid, p.room_code, p.minutes, p.phase)
    ),
    events.SKIP_TO_QUESTIONS: EventHandler(
        RoomCodePayload, "skip to Q&A",
        lambda m, cid, p: m.skip_to_questions(cid, p.room_code)
    ),
    events.RESET_ROOM_PHASE: EventHandler(
        RoomCodePayload, "reset room phase",
        lambda m, cid, p: m.reset_room_phase(cid, p.room_code)
    ),
    events.TOGGLE_LOCK: EventHandler(
        RoomCodePayload, "toggle lock",
        lambda m, cid, p: m.toggle_lock(cid, p.room_code)
    ),
    events.RECONNECT: EventHandler(
        ReconnectPayload, "reconnect",
        lambda m, cid, p: m.reconnect(cid, p.previous_connection_id)
    ),
}


async def handle_event(manager: RoomManager, connection_id: str, event: str, data: Any) -> None:
    """
    處理單一 inbound 事件

    錯誤處理：
    - 未知事件 / payload 驗證失敗：回 error
    - 業務異常（RoomNotFound, RoomLocked, NotAuthorized, ParticipantNotFound）：
      回 error（異常訊息），不廣播
    - 其他異常：記 log，回 "Failed to <action>"
    """
    handler = HANDLERS.get(event)
    if handler is None:
        logger.warning(f"Unknown event {event!r} from {connection_id}")
        await manager.dispatcher.send_to(connection_id, events.ERROR, {"message": f"Unknown event: {event}"})
        return

    try:
        payload = handler.schema.model_validate(data or {})
    except ValidationError as e:
        logger.warning(f"Invalid {event} payload from {connection_id}: {e.errors()}")
        await manager.dispatcher.send_to(connection_id, events.ERROR, {"message": f"Invalid {event} payload"})
        return

    try:
        await handler.call(manager, connection_id, payload)
    except PresentationTimerException as e:
        logger.warning(f"Rejected {event} from {connection_id}: {e}")
        await manager.dispatcher.send_to(connection_id, events.ERROR, {"message": str(e)})
    except Exception as e:
        logger.error(f"Error in {event}: {e}", exc_info=True)
        await manager.dispatcher.send_to(
            connection_id, events.ERROR, {"message": f"Failed to {handler.action}"}
        )


@router.websocket("/ws")
async def room_socket(websocket: WebSocket, manager: RoomManager = Depends(get_room_manager)):
    """
    房間即時連線

    流程：
    1. accept 並分配 connection id，回傳 connected 事件
    2. 逐一處理 inbound 事件
    3. 斷線時交給 RoomManager（寬限期邏輯）
    """
    await websocket.accept()
    connection = WebSocketConnection(websocket, uuid.uuid4().hex)
    await manager.connect(connection)
    logger.info(f"New socket connected: {connection.connection_id}")
    await connection.send(events.CONNECTED, {"connectionId": connection.connection_id})

    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(frame.get("code", 1000))
            raw = frame.get("text")
            if raw is None:
                logger.warning(f"Ignoring binary frame from {connection.connection_id}")
                continue
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                logger.warning(f"Ignoring malformed frame from {connection.connection_id}")
                continue
            if not isinstance(message, dict) or not isinstance(message.get("event"), str):
                logger.warning(f"Ignoring frame without event from {connection.connection_id}")
                continue

            await handle_event(manager, connection.connection_id, message["event"], message.get("data"))
    except WebSocketDisconnect:
        logger.info(f"Socket disconnected: {connection.connection_id}")
    finally:
        await manager.disconnect(connection.connection_id)
