"""
命名服務：生成 Room Code 和 Checkpoint ID

純計算邏輯，不涉及狀態轉換
"""
import random
import string
import threading
import time

ROOM_CODE_ALPHABET = string.ascii_lowercase + string.digits

_checkpoint_lock = threading.Lock()
_last_checkpoint_ms = 0


def generate_room_code(length: int = 8) -> str:
    """
    生成隨機的房間代碼（小寫字母 + 數字）

    範例：k3x9a0qz, 7mf2p8dd

    注意：
    - 不檢查唯一性（由 RoomRegistry 負責重試）
    - 36^8 ≈ 2.8 兆種可能，碰撞機率極低
    """
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=length))


def generate_checkpoint_id() -> str:
    """
    以建立時間（毫秒）生成 Checkpoint ID

    同一毫秒內建立多個 checkpoint 時往後遞增，
    保證同一個 process 內 ID 嚴格遞增、不重複。
    """
    global _last_checkpoint_ms
    with _checkpoint_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_checkpoint_ms:
            candidate = _last_checkpoint_ms + 1
        _last_checkpoint_ms = candidate
        return str(candidate)
