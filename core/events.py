"""
事件名稱

Inbound（前端 -> server）與 Outbound（server -> 前端）事件名稱集中在這裡，
避免在各處寫死字串。
"""
from typing import Any, Dict, NamedTuple

# ============ Outbound ============
CONNECTED = "connected"
ROOM_CREATED = "roomCreated"
UPDATE_ROOM_STATE = "updateRoomState"
ERROR = "error"
TIMER_WARNING = "timerWarning"
PHASE_TRANSITION = "phaseTransition"
TIMER_COMPLETED = "timerCompleted"

# ============ Inbound ============
CREATE_ROOM = "createRoom"
JOIN_ROOM = "joinRoom"
ADD_CHECKPOINT = "addCheckpoint"
REMOVE_CHECKPOINT = "removeCheckpoint"
START_TIMER = "startTimer"
PAUSE_TIMER = "pauseTimer"
TOGGLE_READY = "toggleReady"
UPDATE_DURATION = "updateDuration"
SKIP_TO_QUESTIONS = "skipToQuestions"
RESET_ROOM_PHASE = "resetRoomPhase"
TOGGLE_LOCK = "toggleLock"
RECONNECT = "reconnect"


class RoomEvent(NamedTuple):
    """狀態轉換附帶的窄事件（warning / phase transition / completion）"""
    kind: str
    payload: Dict[str, Any]
