"""
Room 狀態機：集中管理單一房間的所有狀態轉換

原則：
- 純函式：只修改傳入的 Room，不做 I/O、不廣播、不碰 lock
- 呼叫者（RoomManager）負責持有 room.lock 並在之後廣播
- 驗證失敗時先拋出異常，保證沒有部分修改

每個方法回傳需要額外發送的窄事件（RoomEvent）列表；
完整的 room snapshot 由 RoomManager 統一廣播。
"""
from typing import List, Optional

from models import Checkpoint, Participant, Phase, Room
from core.events import (
    RoomEvent,
    PHASE_TRANSITION,
    TIMER_COMPLETED,
    TIMER_WARNING,
)
from core.exceptions import NotAuthorized, ParticipantNotFound, RoomLocked
from services.naming_service import generate_checkpoint_id
from services.phase_service import (
    clamp_minutes,
    is_warning_time,
    presentation_seconds,
    question_seconds,
)


class RoomStateMachine:
    """Room 狀態轉換"""

    @staticmethod
    def require_host(room: Room, connection_id: str, action: str) -> Participant:
        """
        確認連線對應到房間的 Host

        異常：
            NotAuthorized: 連線不是 Host（或根本不在房間內）
        """
        participant = room.find_by_connection(connection_id)
        if not participant or not participant.is_host:
            raise NotAuthorized(action)
        return participant

    @staticmethod
    def join(room: Room, user_name: str, connection_id: str) -> bool:
        """
        參與者加入房間

        規則：
        1. 房間上鎖時拒絕
        2. 同名參與者已存在：視為重連，更新 connection_id 並設為 active
        3. 否則新增一個非 Host 參與者

        返回：
            True 如果是重連（沒有新增參與者）

        異常：
            RoomLocked: 房間已上鎖
        """
        if room.is_locked:
            raise RoomLocked(room.room_code)

        existing = room.find_by_name(user_name)
        if existing:
            existing.connection_id = connection_id
            existing.is_active = True
        else:
            room.participants.append(Participant(
                connection_id=connection_id,
                name=user_name,
                is_ready=False,
                is_host=False,
                is_active=True
            ))
        room.touch()
        return existing is not None

    @staticmethod
    def rebind(room: Room, previous_connection_id: str, connection_id: str) -> Optional[Participant]:
        """把舊連線的參與者改綁到新連線（重連），找不到時回傳 None"""
        participant = room.find_by_connection(previous_connection_id)
        if not participant:
            return None
        participant.connection_id = connection_id
        participant.is_active = True
        room.touch()
        return participant

    @staticmethod
    def toggle_ready(room: Room, connection_id: str) -> Participant:
        participant = room.find_by_connection(connection_id)
        if not participant:
            raise ParticipantNotFound(connection_id)
        participant.is_ready = not participant.is_ready
        room.touch()
        return participant

    @staticmethod
    def add_checkpoint(room: Room, name: str, time_in_seconds: int, note: str) -> Checkpoint:
        checkpoint = Checkpoint(
            id=generate_checkpoint_id(),
            name=name,
            time_in_seconds=time_in_seconds,
            note=note,
            reached=False
        )
        room.checkpoints.append(checkpoint)
        room.touch()
        return checkpoint

    @staticmethod
    def remove_checkpoint(room: Room, checkpoint_id: str) -> None:
        room.checkpoints = [cp for cp in room.checkpoints if cp.id != checkpoint_id]
        room.touch()

    @staticmethod
    def start(room: Room) -> bool:
        """
        開始倒數（只改旗標，倒數 task 由 RoomManager 建立）

        返回：
            False 如果是 no-op（已在倒數，或房間已結束）
        """
        if room.is_running or room.phase == Phase.COMPLETED:
            return False
        room.is_running = True
        room.touch()
        return True

    @staticmethod
    def pause(room: Room) -> bool:
        if not room.is_running:
            return False
        room.is_running = False
        room.touch()
        return True

    @staticmethod
    def update_duration(room: Room, minutes: float, target_phase: Phase) -> int:
        """
        調整某個階段的時長

        - 分鐘數會被限制在 [1, 60]（簡報）/ [1, 30]（問答）
        - 如果房間目前就在該階段，remainingTime 立即重設
        - 否則只更新設定，下次進入該階段時生效

        返回：
            實際套用的分鐘數
        """
        valid_minutes = clamp_minutes(minutes, target_phase)

        if target_phase == Phase.QUESTIONS:
            room.question_duration = valid_minutes
        else:
            room.total_duration = valid_minutes

        if room.phase == target_phase:
            room.remaining_time = valid_minutes * 60

        room.touch()
        return valid_minutes

    @staticmethod
    def skip_to_questions(room: Room) -> List[RoomEvent]:
        """只有在簡報階段才會跳到問答，其他階段是 no-op（回傳空列表）"""
        if room.phase != Phase.PRESENTATION:
            return []
        room.phase = Phase.QUESTIONS
        room.remaining_time = question_seconds(room)
        room.touch()
        return [RoomEvent(PHASE_TRANSITION, {"phase": Phase.QUESTIONS.value})]

    @staticmethod
    def reset_phase(room: Room) -> List[RoomEvent]:
        # 不論目前階段或是否在倒數，一律回到簡報階段
        room.phase = Phase.PRESENTATION
        room.remaining_time = presentation_seconds(room)
        room.touch()
        return [RoomEvent(PHASE_TRANSITION, {"phase": Phase.PRESENTATION.value})]

    @staticmethod
    def toggle_lock(room: Room) -> bool:
        room.is_locked = not room.is_locked
        room.touch()
        return room.is_locked

    @staticmethod
    def mark_inactive(room: Room, name: str, lost_connection_id: str) -> bool:
        """
        寬限期結束後標記參與者離線

        返回：
            False 如果參與者已經改綁到新連線（或已不存在），不做任何修改
        """
        participant = room.find_by_name(name)
        if not participant or participant.connection_id != lost_connection_id:
            return False
        if not participant.is_active:
            return False
        participant.is_active = False
        room.touch()
        return True

    @staticmethod
    def tick(room: Room) -> List[RoomEvent]:
        """
        倒數一秒

        流程：
        1. remainingTime 減 1（最低 0）
        2. 剛好 60 / 30 秒時發出提醒
        3. 歸零時轉換階段：
           - PRESENTATION -> QUESTIONS（重設為問答時長）
           - QUESTIONS -> COMPLETED（停止倒數）

        返回：
            需要廣播的窄事件列表（依發生順序）
        """
        events: List[RoomEvent] = []

        # 1. 倒數
        room.remaining_time = max(0, room.remaining_time - 1)
        room.touch()

        # 2. 提醒
        if is_warning_time(room.remaining_time):
            events.append(RoomEvent(TIMER_WARNING, {
                "remainingTime": room.remaining_time,
                "phase": room.phase.value,
            }))

        # 3. 階段轉換
        if room.remaining_time <= 0 and room.phase == Phase.PRESENTATION:
            room.phase = Phase.QUESTIONS
            room.remaining_time = question_seconds(room)
            events.append(RoomEvent(PHASE_TRANSITION, {"phase": Phase.QUESTIONS.value}))
        elif room.remaining_time <= 0 and room.phase == Phase.QUESTIONS:
            room.phase = Phase.COMPLETED
            room.is_running = False
            events.append(RoomEvent(TIMER_COMPLETED, {}))

        return events
