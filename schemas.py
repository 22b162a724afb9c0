"""
Inbound 事件的 payload schema

前端送來的欄位是 camelCase（roomCode / userName ...），這裡統一驗證後
轉成 snake_case 屬性給 RoomManager 使用。
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models import Phase


class _Payload(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        str_strip_whitespace=True,
    )


class CreateRoomPayload(_Payload):
    room_name: str = Field(min_length=1)
    user_name: str = Field(min_length=1)
    total_duration: int = Field(ge=1, le=60)


class JoinRoomPayload(_Payload):
    room_code: str = Field(min_length=1)
    user_name: str = Field(min_length=1)


class AddCheckpointPayload(_Payload):
    name: str
    time_in_seconds: int = Field(ge=0)
    note: str = ""


class RemoveCheckpointPayload(_Payload):
    id: str


class RoomCodePayload(_Payload):
    room_code: str = Field(min_length=1)


class UpdateDurationPayload(RoomCodePayload):
    # 小數分鐘會在 clamp_minutes 無條件捨去
    minutes: float = Field(allow_inf_nan=False)
    phase: Phase = Phase.PRESENTATION

    @field_validator("phase")
    @classmethod
    def phase_must_have_duration(cls, value: Phase) -> Phase:
        if value == Phase.COMPLETED:
            raise ValueError("phase must be presentation or questions")
        return value


class ReconnectPayload(_Payload):
    previous_connection_id: str = Field(min_length=1)
