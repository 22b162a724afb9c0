"""
Presence Monitor：斷線寬限期

斷線時不立即把參與者標記為離線，而是排一個寬限期 timer：
- 寬限期內重連（或同名 join）→ 取消 timer，isActive 不變
- 寬限期到期 → 呼叫 on_expire，由 RoomManager 在 room.lock 下標記離線

每個 (room_code, name) 最多只有一個 timer（single-slot），
重複斷線會先取消舊的 timer 再排新的。
"""
import asyncio
import logging
from typing import Awaitable, Callable, Dict, Tuple

logger = logging.getLogger(__name__)

ExpireCallback = Callable[[str, str, str], Awaitable[None]]


class PresenceMonitor:
    def __init__(self, grace_period: float, on_expire: ExpireCallback):
        self._grace_period = grace_period
        self._on_expire = on_expire
        self._timers: Dict[Tuple[str, str], asyncio.Task] = {}

    def schedule(self, room_code: str, name: str, lost_connection_id: str) -> asyncio.Task:
        """
        排一個寬限期 timer

        參數：
            room_code: 房間代碼
            name: 參與者名稱
            lost_connection_id: 斷掉的連線 ID（到期時用來確認沒有重新綁定）
        """
        key = (room_code, name)
        self.cancel(room_code, name)
        task = asyncio.create_task(
            self._expire_later(key, lost_connection_id),
            name=f"grace-{room_code}-{name}"
        )
        self._timers[key] = task
        logger.info(
            f"Participant {name} in room {room_code} disconnected, "
            f"grace period {self._grace_period}s"
        )
        return task

    def cancel(self, room_code: str, name: str) -> bool:
        task = self._timers.pop((room_code, name), None)
        if task is None:
            return False
        task.cancel()
        logger.info(f"Cancelled grace timer for {name} in room {room_code}")
        return True

    def is_pending(self, room_code: str, name: str) -> bool:
        return (room_code, name) in self._timers

    def cancel_all(self) -> None:
        for task in self._timers.values():
            task.cancel()
        self._timers.clear()

    async def _expire_later(self, key: Tuple[str, str], lost_connection_id: str) -> None:
        await asyncio.sleep(self._grace_period)

        # 先解除登記，之後的 cancel() 不會打斷已經開始的到期處理
        if self._timers.get(key) is not asyncio.current_task():
            return
        del self._timers[key]

        room_code, name = key
        try:
            await self._on_expire(room_code, name, lost_connection_id)
        except Exception as e:
            logger.error(f"Grace expiry failed for {name} in room {room_code}: {e}", exc_info=True)
