"""
Broadcast Dispatcher：把房間狀態推送給所有訂閱該房間的連線

- 每次都送完整 snapshot，不做 delta
- 每個連線的送出都有時間上限，失敗只記 log，不會往外拋
  （避免單一慢連線卡住倒數 tick）
"""
import asyncio
import logging
from collections import defaultdict
from typing import Any, Dict, Protocol, Set

from models import Room
from core.events import UPDATE_ROOM_STATE

logger = logging.getLogger(__name__)


class Connection(Protocol):
    """Transport 層提供的連線介面"""
    connection_id: str

    async def send(self, event: str, payload: Any) -> None:
        ...


class BroadcastDispatcher:
    def __init__(self, send_timeout: float = 2.0):
        self._send_timeout = send_timeout
        self._connections: Dict[str, Connection] = {}
        self._channels: Dict[str, Set[str]] = defaultdict(set)

    # ============ 連線 / 頻道管理 ============

    def register(self, connection: Connection) -> None:
        self._connections[connection.connection_id] = connection

    def unregister(self, connection_id: str) -> None:
        self._connections.pop(connection_id, None)
        for room_code in list(self._channels):
            self.unsubscribe(room_code, connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    def subscribe(self, room_code: str, connection_id: str) -> None:
        self._channels[room_code].add(connection_id)

    def unsubscribe(self, room_code: str, connection_id: str) -> None:
        members = self._channels.get(room_code)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            self._channels.pop(room_code, None)

    def members(self, room_code: str) -> Set[str]:
        return set(self._channels.get(room_code, set()))

    # ============ 送出 ============

    async def send_to(self, connection_id: str, event: str, payload: Any) -> bool:
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        return await self._deliver(connection, event, payload)

    async def emit_to_room(self, room_code: str, event: str, payload: Any) -> None:
        targets = [
            self._connections[cid]
            for cid in self.members(room_code)
            if cid in self._connections
        ]
        if not targets:
            return
        await asyncio.gather(*(self._deliver(conn, event, payload) for conn in targets))

    async def broadcast_room(self, room: Room) -> None:
        await self.emit_to_room(room.room_code, UPDATE_ROOM_STATE, room.snapshot())

    async def _deliver(self, connection: Connection, event: str, payload: Any) -> bool:
        try:
            await asyncio.wait_for(connection.send(event, payload), timeout=self._send_timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Timed out sending {event} to {connection.connection_id}")
        except Exception as e:
            logger.warning(f"Failed to send {event} to {connection.connection_id}: {e}")
        return False
