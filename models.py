"""
資料模型：Room / Participant / Checkpoint

所有狀態都只存在記憶體中（process 重啟即消失）。
對外序列化一律使用 camelCase，與前端事件格式一致。
"""
import asyncio
import enum
import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    return int(time.time() * 1000)


class Phase(str, enum.Enum):
    PRESENTATION = "presentation"
    QUESTIONS = "questions"
    COMPLETED = "completed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class Participant(_CamelModel):
    """房間內的參與者（用 name 辨識，connection_id 會隨重連改變）"""
    connection_id: str = Field(alias="id")
    name: str
    is_ready: bool = False
    is_host: bool = False
    is_active: bool = True


class Checkpoint(_CamelModel):
    """時間檢查點，純資訊用途，建立後不再修改"""
    id: str
    name: str
    time_in_seconds: int = Field(ge=0)
    note: str = ""
    reached: bool = False


class Room(_CamelModel):
    """
    單一簡報房間的完整狀態

    私有欄位（不會出現在 snapshot）：
        _lock: 房間的獨佔鎖，所有讀改寫（含 tick）都必須持有
        _countdown: 倒數計時 task，只在 is_running 時存在
    """
    room_code: str
    room_name: str
    total_duration: int = Field(ge=1, le=60)
    question_duration: int = Field(default=5, ge=1, le=30)
    remaining_time: int = Field(ge=0)
    phase: Phase = Phase.PRESENTATION
    is_running: bool = False
    is_locked: bool = False
    participants: List[Participant] = Field(default_factory=list)
    checkpoints: List[Checkpoint] = Field(default_factory=list)
    last_updated: int = Field(default_factory=now_ms)

    _lock: asyncio.Lock = PrivateAttr(default_factory=asyncio.Lock)
    _countdown: Optional[asyncio.Task] = PrivateAttr(default=None)

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    @property
    def countdown(self) -> Optional[asyncio.Task]:
        return self._countdown

    def attach_countdown(self, task: asyncio.Task) -> None:
        self._countdown = task

    def detach_countdown(self) -> Optional[asyncio.Task]:
        task, self._countdown = self._countdown, None
        return task

    def touch(self) -> None:
        # lastUpdated 不可倒退（系統時間被調整時）
        self.last_updated = max(now_ms(), self.last_updated)

    def find_by_name(self, name: str) -> Optional[Participant]:
        return next((p for p in self.participants if p.name == name), None)

    def find_by_connection(self, connection_id: str) -> Optional[Participant]:
        return next(
            (p for p in self.participants if p.connection_id == connection_id),
            None
        )

    def snapshot(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")
