"""
Room Registry：房間代碼 -> Room 的唯一擁有者

只負責建立與查詢，不會刪除任何房間。
"""
import logging
from typing import Callable, Dict, List, Optional

from models import Participant, Phase, Room
from core.exceptions import DuplicateCode, RoomNotFound
from services.naming_service import generate_room_code
from services.phase_service import DEFAULT_QUESTION_MINUTES

logger = logging.getLogger(__name__)


class RoomRegistry:
    """記憶體內的房間表"""

    def __init__(self, code_length: int = 8, code_factory: Optional[Callable[[int], str]] = None):
        self._rooms: Dict[str, Room] = {}
        self._code_length = code_length
        self._code_factory = code_factory or generate_room_code

    def create_room(
        self,
        room_name: str,
        creator_name: str,
        creator_connection_id: str,
        total_duration: int
    ) -> Room:
        """
        建立新房間（含 Host 參與者）

        流程：
        1. 生成房間代碼，碰撞時重新生成
        2. 建立 Room（簡報階段、未倒數、未上鎖）
        3. 建立 Host 參與者

        注意：
            DuplicateCode 不會往外拋，一律重試
        """
        while True:
            code = self._code_factory(self._code_length)
            try:
                self._reserve(code)
                break
            except DuplicateCode:
                logger.warning(f"Room code collision detected, regenerating: {code}")

        host = Participant(
            connection_id=creator_connection_id,
            name=creator_name,
            is_ready=False,
            is_host=True,
            is_active=True
        )
        room = Room(
            room_code=code,
            room_name=room_name,
            total_duration=total_duration,
            question_duration=DEFAULT_QUESTION_MINUTES,
            remaining_time=total_duration * 60,
            phase=Phase.PRESENTATION,
            participants=[host]
        )
        self._rooms[code] = room

        logger.info(f"Created room {code} ({room_name}) by {creator_name}, duration: {total_duration}m")
        return room

    def _reserve(self, code: str) -> None:
        if code in self._rooms:
            raise DuplicateCode(code)

    def get_room(self, room_code: str) -> Optional[Room]:
        return self._rooms.get(room_code)

    def require_room(self, room_code: str) -> Room:
        room = self._rooms.get(room_code)
        if room is None:
            raise RoomNotFound(room_code)
        return room

    def all_rooms(self) -> List[Room]:
        return list(self._rooms.values())

    def rooms_with_connection(self, connection_id: str) -> List[Room]:
        """找出所有有參與者綁在這個連線上的房間"""
        return [
            room for room in self._rooms.values()
            if room.find_by_connection(connection_id) is not None
        ]
