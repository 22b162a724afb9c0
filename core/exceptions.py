"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層（WebSocket handler）統一處理。
異常訊息會直接回傳給發起動作的連線，所以要寫成使用者看得懂的句子。
"""


class PresentationTimerException(Exception):
    """所有房間 / 計時異常的基類"""
    pass


# ============ Room 相關異常 ============

class RoomNotFound(PresentationTimerException):
    """房間不存在"""
    def __init__(self, room_code):
        self.room_code = room_code
        super().__init__("Room does not exist")


class RoomLocked(PresentationTimerException):
    """房間已上鎖，不接受新參與者"""
    def __init__(self, room_code):
        self.room_code = room_code
        super().__init__("Room is locked")


class DuplicateCode(PresentationTimerException):
    """房間代碼碰撞（只在 Registry 內部使用，會自動重試，不會傳到前端）"""
    def __init__(self, room_code):
        self.room_code = room_code
        super().__init__(f"Room code {room_code} already in use")


# ============ 權限相關異常 ============

class NotAuthorized(PresentationTimerException):
    """非 Host 嘗試執行 Host 專屬動作"""
    def __init__(self, action):
        self.action = action
        super().__init__(f"Only host can {action}")


# ============ Participant 相關異常 ============

class ParticipantNotFound(PresentationTimerException):
    """找不到對應這個連線的參與者"""
    def __init__(self, connection_id):
        self.connection_id = connection_id
        super().__init__("Participant not found")
