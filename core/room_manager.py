"""
Room Manager：處理所有 inbound 事件的協調層

職責：
1. 透過 Registry / Session Binding 找到事件所屬的 Room
2. 持有 room.lock，檢查權限，呼叫 RoomStateMachine 轉換狀態
3. 建立 / 取消倒數 task
4. 透過 BroadcastDispatcher 廣播結果

原則：
- 單一寫入者：同一個房間的 handler、tick、寬限期到期全部經過 room.lock
- 驗證失敗先拋異常，不做部分修改、不廣播（由 API 層回傳 error 給發起者）
- 不同房間之間互不影響
"""
import asyncio
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from config import Settings, get_settings
from models import Phase, Room
from core.broadcaster import BroadcastDispatcher
from core.countdown import cancel_countdown, start_countdown
from core.events import RoomEvent, ROOM_CREATED, UPDATE_ROOM_STATE
from core.exceptions import ParticipantNotFound, RoomNotFound
from core.locks import with_room_lock
from core.presence import PresenceMonitor
from core.room_registry import RoomRegistry
from core.session_binding import SessionBinding
from core.state_machine import RoomStateMachine

logger = logging.getLogger(__name__)


class RoomManager:
    """房間協調器（整個 process 一個實例）"""

    def __init__(
        self,
        registry: Optional[RoomRegistry] = None,
        dispatcher: Optional[BroadcastDispatcher] = None,
        bindings: Optional[SessionBinding] = None,
        tick_interval: float = 1.0,
        grace_period: float = 10.0
    ):
        self.registry = registry or RoomRegistry()
        self.dispatcher = dispatcher or BroadcastDispatcher()
        self.bindings = bindings or SessionBinding()
        self.presence = PresenceMonitor(grace_period, self._expire_participant)
        self.tick_interval = tick_interval

    @classmethod
    def from_settings(cls, settings: Settings) -> "RoomManager":
        return cls(
            registry=RoomRegistry(code_length=settings.room_code_length),
            dispatcher=BroadcastDispatcher(send_timeout=settings.send_timeout_seconds),
            tick_interval=settings.tick_interval_seconds,
            grace_period=settings.grace_period_seconds
        )

    # ============ 連線生命週期 ============

    async def connect(self, connection) -> None:
        self.dispatcher.register(connection)

    async def disconnect(self, connection_id: str) -> None:
        """
        連線中斷

        流程：
        1. 從 dispatcher 移除連線（不再收到廣播）
        2. 解除 session 綁定
        3. 對每個綁在這個連線上的參與者排寬限期 timer
           （不立即標記離線）
        """
        self.dispatcher.unregister(connection_id)
        self.bindings.unbind(connection_id)

        for room in self.registry.rooms_with_connection(connection_id):
            for participant in room.participants:
                if participant.connection_id == connection_id:
                    self.presence.schedule(room.room_code, participant.name, connection_id)

    async def reconnect(self, connection_id: str, previous_connection_id: str) -> List[Room]:
        """
        同一個邏輯連線重新連上（用舊的 connection id 認領參與者）

        只有「舊連線已斷、且寬限期 timer 還在」的參與者可以被認領；
        仍在線上的連線（例如 Host）不能被其他人用它的 id 接管。

        異常：
            ParticipantNotFound: 舊連線仍在線上，或沒有任何等待重連的參與者
        """
        if self.dispatcher.is_connected(previous_connection_id):
            raise ParticipantNotFound(previous_connection_id)

        rebound = []
        for room in self.registry.rooms_with_connection(previous_connection_id):
            async with room.lock:
                participant = room.find_by_connection(previous_connection_id)
                if participant is None or not self.presence.is_pending(room.room_code, participant.name):
                    continue
                RoomStateMachine.rebind(room, previous_connection_id, connection_id)
                self.presence.cancel(room.room_code, participant.name)
                self._bind(connection_id, room.room_code, participant.name)

                logger.info(
                    f"Participant {participant.name} reconnected to room {room.room_code} "
                    f"({previous_connection_id} -> {connection_id})"
                )
                await self.dispatcher.send_to(connection_id, UPDATE_ROOM_STATE, room.snapshot())
                await self.dispatcher.broadcast_room(room)
                rebound.append(room)

        if not rebound:
            raise ParticipantNotFound(previous_connection_id)
        return rebound

    # ============ 房間建立 / 加入 ============

    async def create_room(
        self,
        connection_id: str,
        room_name: str,
        user_name: str,
        total_duration: int
    ) -> Room:
        room = self.registry.create_room(room_name, user_name, connection_id, total_duration)
        async with room.lock:
            self._bind(connection_id, room.room_code, user_name)
            await self.dispatcher.send_to(connection_id, ROOM_CREATED, {"roomCode": room.room_code})
            await self.dispatcher.send_to(connection_id, UPDATE_ROOM_STATE, room.snapshot())
        return room

    async def join_room(self, connection_id: str, room_code: str, user_name: str) -> Room:
        """
        加入房間（同名視為重連）

        異常：
            RoomNotFound: 房間不存在
            RoomLocked: 房間已上鎖
        """
        async with with_room_lock(self.registry, room_code) as room:
            reconnected = RoomStateMachine.join(room, user_name, connection_id)
            self.presence.cancel(room_code, user_name)
            self._bind(connection_id, room_code, user_name)

            if reconnected:
                logger.info(f"User {user_name} already in room {room_code}, updating connection id")
            else:
                logger.info(f"User {user_name} joined room {room_code}")

            await self.dispatcher.send_to(connection_id, UPDATE_ROOM_STATE, room.snapshot())
            await self.dispatcher.broadcast_room(room)
            return room

    # ============ 參與者 / Checkpoint ============

    async def toggle_ready(self, connection_id: str, room_code: str) -> Room:
        async with with_room_lock(self.registry, room_code) as room:
            participant = RoomStateMachine.toggle_ready(room, connection_id)
            logger.info(
                f"User {participant.name} is now "
                f"{'ready' if participant.is_ready else 'not ready'} in room {room_code}"
            )
            await self.dispatcher.broadcast_room(room)
            return room

    async def add_checkpoint(
        self,
        connection_id: str,
        name: str,
        time_in_seconds: int,
        note: str
    ) -> Room:
        room_code = self._bound_room_code(connection_id)
        async with with_room_lock(self.registry, room_code) as room:
            checkpoint = RoomStateMachine.add_checkpoint(room, name, time_in_seconds, note)
            logger.info(f"Added checkpoint {checkpoint.id} ({name}) in room {room_code}")
            await self.dispatcher.broadcast_room(room)
            return room

    async def remove_checkpoint(self, connection_id: str, checkpoint_id: str) -> Room:
        room_code = self._bound_room_code(connection_id)
        async with with_room_lock(self.registry, room_code) as room:
            RoomStateMachine.remove_checkpoint(room, checkpoint_id)
            logger.info(f"Removed checkpoint {checkpoint_id} in room {room_code}")
            await self.dispatcher.broadcast_room(room)
            return room

    # ============ Host 專屬：計時控制 ============

    async def start_timer(self, connection_id: str, room_code: str) -> Room:
        async with with_room_lock(self.registry, room_code) as room:
            RoomStateMachine.require_host(room, connection_id, "start timer")
            if not RoomStateMachine.start(room):
                return room

            start_countdown(room, self.tick_interval, self.tick)
            logger.info(f"Timer started for room {room_code}, phase: {room.phase.value}")
            await self.dispatcher.broadcast_room(room)
            return room

    async def pause_timer(self, connection_id: str, room_code: str) -> Room:
        async with with_room_lock(self.registry, room_code) as room:
            RoomStateMachine.require_host(room, connection_id, "pause timer")
            if not RoomStateMachine.pause(room):
                return room

            cancel_countdown(room)
            logger.info(f"Timer paused for room {room_code} at {room.remaining_time}s")
            await self.dispatcher.broadcast_room(room)
            return room

    async def update_duration(
        self,
        connection_id: str,
        room_code: str,
        minutes: float,
        phase: Phase
    ) -> Room:
        async with with_room_lock(self.registry, room_code) as room:
            RoomStateMachine.require_host(room, connection_id, "update duration")
            applied = RoomStateMachine.update_duration(room, minutes, phase)
            logger.info(
                f"Updated {phase.value} duration to {applied}m in room {room_code} "
                f"(current phase: {room.phase.value}, remaining: {room.remaining_time}s)"
            )
            await self.dispatcher.broadcast_room(room)
            return room

    async def skip_to_questions(self, connection_id: str, room_code: str) -> Room:
        async with with_room_lock(self.registry, room_code) as room:
            RoomStateMachine.require_host(room, connection_id, "skip to Q&A")
            events = RoomStateMachine.skip_to_questions(room)
            if not events:
                return room

            logger.info(f"Skipped to Q&A for room {room_code}")
            await self._publish(room, events)
            return room

    async def reset_room_phase(self, connection_id: str, room_code: str) -> Room:
        async with with_room_lock(self.registry, room_code) as room:
            RoomStateMachine.require_host(room, connection_id, "reset room phase")
            events = RoomStateMachine.reset_phase(room)
            logger.info(f"Reset room phase for room {room_code}")
            await self._publish(room, events)
            return room

    async def toggle_lock(self, connection_id: str, room_code: str) -> Room:
        async with with_room_lock(self.registry, room_code) as room:
            RoomStateMachine.require_host(room, connection_id, "toggle lock")
            locked = RoomStateMachine.toggle_lock(room)
            logger.info(f"Room {room_code} is now {'locked' if locked else 'unlocked'}")
            await self.dispatcher.broadcast_room(room)
            return room

    # ============ 背景活動 ============

    async def tick(self, room_code: str, owner: Optional[asyncio.Task] = None) -> bool:
        """
        倒數一秒並廣播

        參數：
            room_code: 房間代碼
            owner: 呼叫的倒數 task；不是房間目前登記的 task 時直接放棄

        返回：
            True 如果房間仍在倒數（倒數 task 應該繼續）
        """
        room = self.registry.get_room(room_code)
        if room is None:
            return False

        async with room.lock:
            if owner is not None and room.countdown is not owner:
                return False
            if not room.is_running:
                return False

            events = RoomStateMachine.tick(room)
            for event in events:
                logger.info(f"Room {room_code}: {event.kind} {event.payload}")
            if not room.is_running:
                cancel_countdown(room)

            await self._publish(room, events)
            return room.is_running

    async def _expire_participant(self, room_code: str, name: str, lost_connection_id: str) -> None:
        room = self.registry.get_room(room_code)
        if room is None:
            return

        async with room.lock:
            if not RoomStateMachine.mark_inactive(room, name, lost_connection_id):
                return
            logger.info(f"Marked participant {name} as inactive in room {room_code} after timeout")
            await self.dispatcher.broadcast_room(room)

    # ============ 查詢 ============

    def rooms_snapshot(self) -> List[Dict[str, Any]]:
        """所有房間的完整 snapshot（唯讀，無副作用）"""
        return [room.snapshot() for room in self.registry.all_rooms()]

    async def shutdown(self) -> None:
        """停止所有倒數與寬限期 timer（應用關閉時呼叫）"""
        self.presence.cancel_all()
        for room in self.registry.all_rooms():
            cancel_countdown(room)

    # ============ 內部工具 ============

    def _bind(self, connection_id: str, room_code: str, user_name: str) -> None:
        previous = self.bindings.bind(connection_id, room_code, user_name)
        if previous is not None and previous.room_code != room_code:
            self.dispatcher.unsubscribe(previous.room_code, connection_id)
        self.dispatcher.subscribe(room_code, connection_id)

    def _bound_room_code(self, connection_id: str) -> str:
        binding = self.bindings.resolve(connection_id)
        if binding is None:
            raise RoomNotFound(None)
        return binding.room_code

    async def _publish(self, room: Room, events: List[RoomEvent]) -> None:
        # 窄事件先送，完整 snapshot 最後送
        for event in events:
            await self.dispatcher.emit_to_room(room.room_code, event.kind, event.payload)
        await self.dispatcher.broadcast_room(room)


@lru_cache()
def get_room_manager() -> RoomManager:
    return RoomManager.from_settings(get_settings())
