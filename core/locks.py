"""
並發控制工具

每個 Room 擁有自己的 asyncio.Lock（單一寫入者）：
- WebSocket handler、倒數 tick、寬限期到期都必須持有同一把鎖
- 不同房間之間沒有共用鎖，可以完全並行
"""
from contextlib import asynccontextmanager
from typing import AsyncIterator

from models import Room


@asynccontextmanager
async def with_room_lock(registry, room_code: str) -> AsyncIterator[Room]:
    """
    取得並鎖定一個 Room

    使用場景：
    - 修改 Room 狀態並廣播時
    - 需要確保 read-modify-broadcast 期間不被 tick 或其他事件插入

    範例：
        async with with_room_lock(registry, room_code) as room:
            RoomStateMachine.toggle_lock(room)
            await dispatcher.broadcast_room(room)

    參數：
        registry: RoomRegistry
        room_code: 房間代碼

    異常：
        RoomNotFound: 房間不存在（不會取得任何鎖）
    """
    room = registry.require_room(room_code)
    async with room.lock:
        yield room
