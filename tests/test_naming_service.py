from core.room_registry import RoomRegistry
from services.naming_service import (
    ROOM_CODE_ALPHABET,
    generate_checkpoint_id,
    generate_room_code,
)
from services.phase_service import clamp_minutes, is_warning_time
from models import Phase


def test_room_code_shape():
    code = generate_room_code(8)
    assert len(code) == 8
    assert set(code) <= set(ROOM_CODE_ALPHABET)


def test_checkpoint_ids_strictly_increase():
    ids = [int(generate_checkpoint_id()) for _ in range(50)]
    assert ids == sorted(ids)
    assert len(set(ids)) == len(ids)


def test_registry_retries_on_code_collision():
    codes = iter(["aaaa", "aaaa", "bbbb"])
    registry = RoomRegistry(code_factory=lambda length: next(codes))

    first = registry.create_room("One", "Alice", "c1", 5)
    second = registry.create_room("Two", "Bob", "c2", 5)

    assert first.room_code == "aaaa"
    assert second.room_code == "bbbb"
    assert len(registry.all_rooms()) == 2
    assert registry.get_room("bbbb").room_name == "Two"


def test_registry_lookup_missing():
    assert RoomRegistry().get_room("zzzz") is None


def test_clamp_minutes():
    assert clamp_minutes(100, Phase.PRESENTATION) == 60
    assert clamp_minutes(100, Phase.QUESTIONS) == 30
    assert clamp_minutes("7", Phase.QUESTIONS) == 7
    assert clamp_minutes(2.5, Phase.PRESENTATION) == 2


def test_warning_times_are_exact():
    assert is_warning_time(60)
    assert is_warning_time(30)
    assert not is_warning_time(59)
    assert not is_warning_time(0)
