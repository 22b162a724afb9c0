"""
Shared fixtures: an isolated RoomManager per test and mock connections
that record every event pushed to them.
"""
import pytest

from core.room_manager import RoomManager


class MockConnection:
    """Lightweight stand-in for a transport connection."""

    def __init__(self, connection_id: str):
        self.connection_id = connection_id
        self.sent: list[tuple[str, dict]] = []

    async def send(self, event: str, payload):
        self.sent.append((event, payload))

    def all(self, event: str) -> list:
        return [payload for name, payload in self.sent if name == event]

    def last(self, event: str):
        matches = self.all(event)
        return matches[-1] if matches else None

    def clear(self):
        self.sent.clear()


@pytest.fixture
def manager():
    # Very long tick interval: countdown tasks exist but never fire on their own,
    # tests drive ticks explicitly through manager.tick().
    return RoomManager(tick_interval=3600, grace_period=0.05)


@pytest.fixture
def connect(manager):
    async def _connect(connection_id: str) -> MockConnection:
        connection = MockConnection(connection_id)
        await manager.connect(connection)
        return connection
    return _connect


@pytest.fixture
def demo_room(manager, connect):
    """Create 'Demo' hosted by Alice (10 minutes) and return (room, alice_connection)."""
    async def _create(total_duration: int = 10):
        alice = await connect("alice-1")
        room = await manager.create_room("alice-1", "Demo", "Alice", total_duration)
        alice.clear()
        return room, alice
    return _create
