"""
倒數計時 task：每個 running 的房間一個

task 本身不碰 Room 狀態，每秒呼叫 on_tick(room_code, owner)；
on_tick 會在持有 room.lock 的情況下確認自己仍是房間登記的 task，
所以 pause 取消後不可能再有一次 tick 修改狀態。
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from models import Room

logger = logging.getLogger(__name__)

TickCallback = Callable[[str, asyncio.Task], Awaitable[bool]]


def start_countdown(room: Room, interval: float, on_tick: TickCallback) -> asyncio.Task:
    """
    建立並登記房間的倒數 task

    注意：
        呼叫者必須持有 room.lock，且確認房間目前沒有倒數 task
    """
    task = asyncio.create_task(
        _run(room.room_code, interval, on_tick),
        name=f"countdown-{room.room_code}"
    )
    room.attach_countdown(task)
    return task


def cancel_countdown(room: Room) -> Optional[asyncio.Task]:
    """取消並解除登記房間的倒數 task（呼叫者必須持有 room.lock）"""
    task = room.detach_countdown()
    if task is not None and task is not asyncio.current_task():
        task.cancel()
    return task


async def _run(room_code: str, interval: float, on_tick: TickCallback) -> None:
    owner = asyncio.current_task()
    while True:
        await asyncio.sleep(interval)
        try:
            still_running = await on_tick(room_code, owner)
        except Exception as e:
            # 單次 tick 失敗不能讓倒數停掉
            logger.error(f"Countdown tick failed for room {room_code}: {e}", exc_info=True)
            continue
        if not still_running:
            logger.debug(f"Countdown for room {room_code} stopped")
            return
