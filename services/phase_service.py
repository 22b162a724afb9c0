"""
階段服務：簡報階段的時間規則

房間的階段設計：
- PRESENTATION: 簡報時間（totalDuration 分鐘，1-60）
- QUESTIONS: 問答時間（questionDuration 分鐘，1-30，預設 5）
- COMPLETED: 結束，不再倒數
"""
from models import Phase, Room

PRESENTATION_MINUTES_RANGE = (1, 60)
QUESTION_MINUTES_RANGE = (1, 30)
DEFAULT_QUESTION_MINUTES = 5
WARNING_THRESHOLDS = (60, 30)


def clamp_minutes(minutes: float, phase: Phase) -> int:
    """
    將分鐘數限制在該階段允許的範圍內（小數先捨去成整數分鐘）

    範例：
        clamp_minutes(90, Phase.PRESENTATION) -> 60
        clamp_minutes(45, Phase.QUESTIONS) -> 30
        clamp_minutes(0, Phase.QUESTIONS) -> 1
        clamp_minutes(2.5, Phase.PRESENTATION) -> 2
    """
    low, high = (
        QUESTION_MINUTES_RANGE if phase == Phase.QUESTIONS
        else PRESENTATION_MINUTES_RANGE
    )
    return max(low, min(high, int(minutes)))


def question_seconds(room: Room) -> int:
    """問答階段的秒數（questionDuration 為 0 / 空值時退回預設 5 分鐘）"""
    return (room.question_duration or DEFAULT_QUESTION_MINUTES) * 60


def presentation_seconds(room: Room) -> int:
    return room.total_duration * 60


def is_warning_time(remaining_time: int) -> bool:
    """
    檢查是否為提醒時間點

    注意：
        使用「等於」而不是範圍判斷，每個門檻在一次倒數中最多觸發一次
    """
    return remaining_time in WARNING_THRESHOLDS
