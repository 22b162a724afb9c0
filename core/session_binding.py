"""
Session Binding：連線 -> (房間代碼, 參與者名稱)

連線只持有弱參照，每個事件都重新透過 Registry 解析出 Room。
"""
from typing import Dict, NamedTuple, Optional


class Binding(NamedTuple):
    room_code: str
    user_name: str


class SessionBinding:
    def __init__(self):
        self._bindings: Dict[str, Binding] = {}

    def bind(self, connection_id: str, room_code: str, user_name: str) -> Optional[Binding]:
        """綁定連線到房間，回傳先前的綁定（如果有）"""
        previous = self._bindings.get(connection_id)
        self._bindings[connection_id] = Binding(room_code, user_name)
        return previous

    def resolve(self, connection_id: str) -> Optional[Binding]:
        return self._bindings.get(connection_id)

    def unbind(self, connection_id: str) -> Optional[Binding]:
        return self._bindings.pop(connection_id, None)
