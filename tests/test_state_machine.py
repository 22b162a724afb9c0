"""
Unit tests for the pure room transitions in core/state_machine.py.
No event loop, no broadcasting: every test mutates a Room directly.
"""
import pytest

from models import Phase
from core.events import PHASE_TRANSITION, TIMER_COMPLETED, TIMER_WARNING
from core.exceptions import NotAuthorized, ParticipantNotFound, RoomLocked
from core.room_registry import RoomRegistry
from core.state_machine import RoomStateMachine


def make_room(total_duration=10):
    return RoomRegistry().create_room("Demo", "Alice", "alice-1", total_duration)


def run_ticks(room, count):
    events = []
    for _ in range(count):
        events.extend(RoomStateMachine.tick(room))
    return events


def kinds(events, kind):
    return [e for e in events if e.kind == kind]


class TestCreation:
    @pytest.mark.parametrize("minutes", [1, 10, 60])
    def test_remaining_time_matches_duration(self, minutes):
        room = make_room(minutes)
        assert room.remaining_time == minutes * 60
        assert room.phase == Phase.PRESENTATION
        assert room.question_duration == 5
        assert not room.is_running
        assert not room.is_locked
        assert room.checkpoints == []

    def test_creator_is_only_host(self):
        room = make_room()
        assert len(room.participants) == 1
        host = room.participants[0]
        assert host.is_host and host.is_active and not host.is_ready
        assert host.connection_id == "alice-1"


class TestJoin:
    def test_new_participant_is_not_host(self):
        room = make_room()
        reconnected = RoomStateMachine.join(room, "Bob", "bob-1")
        assert reconnected is False
        bob = room.find_by_name("Bob")
        assert not bob.is_host and bob.is_active and not bob.is_ready

    def test_same_name_rebinds_instead_of_duplicating(self):
        room = make_room()
        RoomStateMachine.join(room, "Bob", "bob-1")
        room.find_by_name("Bob").is_active = False

        reconnected = RoomStateMachine.join(room, "Bob", "bob-2")

        assert reconnected is True
        assert len(room.participants) == 2
        bob = room.find_by_name("Bob")
        assert bob.connection_id == "bob-2"
        assert bob.is_active

    def test_host_rejoin_keeps_host_flag(self):
        room = make_room()
        RoomStateMachine.join(room, "Alice", "alice-2")
        assert len(room.participants) == 1
        assert room.participants[0].is_host
        assert room.participants[0].connection_id == "alice-2"

    def test_locked_room_rejects_join_without_mutation(self):
        room = make_room()
        RoomStateMachine.toggle_lock(room)
        with pytest.raises(RoomLocked):
            RoomStateMachine.join(room, "Bob", "bob-1")
        assert len(room.participants) == 1


class TestParticipantsAndCheckpoints:
    def test_toggle_ready_flips(self):
        room = make_room()
        assert RoomStateMachine.toggle_ready(room, "alice-1").is_ready is True
        assert RoomStateMachine.toggle_ready(room, "alice-1").is_ready is False

    def test_toggle_ready_unknown_connection(self):
        room = make_room()
        with pytest.raises(ParticipantNotFound):
            RoomStateMachine.toggle_ready(room, "nobody")

    def test_add_and_remove_checkpoint(self):
        room = make_room()
        first = RoomStateMachine.add_checkpoint(room, "Intro", 60, "say hi")
        second = RoomStateMachine.add_checkpoint(room, "Demo", 300, "")
        assert [cp.name for cp in room.checkpoints] == ["Intro", "Demo"]
        assert int(second.id) > int(first.id)
        assert first.reached is False

        RoomStateMachine.remove_checkpoint(room, first.id)
        assert [cp.id for cp in room.checkpoints] == [second.id]

    def test_remove_unknown_checkpoint_is_harmless(self):
        room = make_room()
        RoomStateMachine.add_checkpoint(room, "Intro", 60, "")
        RoomStateMachine.remove_checkpoint(room, "missing")
        assert len(room.checkpoints) == 1

    def test_mutations_refresh_last_updated(self):
        room = make_room()
        room.last_updated = 0
        RoomStateMachine.toggle_lock(room)
        assert room.last_updated > 0


class TestHostChecks:
    def test_host_passes(self):
        room = make_room()
        assert RoomStateMachine.require_host(room, "alice-1", "start timer").name == "Alice"

    def test_non_host_rejected(self):
        room = make_room()
        RoomStateMachine.join(room, "Bob", "bob-1")
        with pytest.raises(NotAuthorized) as exc:
            RoomStateMachine.require_host(room, "bob-1", "start timer")
        assert str(exc.value) == "Only host can start timer"

    def test_stranger_rejected(self):
        room = make_room()
        with pytest.raises(NotAuthorized):
            RoomStateMachine.require_host(room, "stranger", "toggle lock")


class TestStartPause:
    def test_start_twice_is_noop(self):
        room = make_room()
        assert RoomStateMachine.start(room) is True
        assert RoomStateMachine.start(room) is False
        assert room.is_running

    def test_pause_when_stopped_is_noop(self):
        room = make_room()
        assert RoomStateMachine.pause(room) is False

    def test_cannot_start_completed_room(self):
        room = make_room()
        room.phase = Phase.COMPLETED
        assert RoomStateMachine.start(room) is False
        assert not room.is_running


class TestUpdateDuration:
    @pytest.mark.parametrize("minutes, expected", [(0, 1), (25, 25), (90, 60)])
    def test_presentation_clamped(self, minutes, expected):
        room = make_room()
        assert RoomStateMachine.update_duration(room, minutes, Phase.PRESENTATION) == expected
        assert room.total_duration == expected
        assert room.remaining_time == expected * 60

    @pytest.mark.parametrize("minutes, expected", [(-5, 1), (12, 12), (45, 30)])
    def test_questions_clamped(self, minutes, expected):
        room = make_room()
        assert RoomStateMachine.update_duration(room, minutes, Phase.QUESTIONS) == expected
        assert room.question_duration == expected

    def test_other_phase_only_changes_stored_duration(self):
        room = make_room()
        RoomStateMachine.update_duration(room, 12, Phase.QUESTIONS)
        assert room.remaining_time == 600

        RoomStateMachine.skip_to_questions(room)
        assert room.remaining_time == 12 * 60

    def test_live_adjustment_in_questions(self):
        room = make_room()
        RoomStateMachine.skip_to_questions(room)
        RoomStateMachine.update_duration(room, 2, Phase.QUESTIONS)
        assert room.remaining_time == 120


class TestPhaseControls:
    def test_skip_to_questions(self):
        room = make_room()
        events = RoomStateMachine.skip_to_questions(room)
        assert room.phase == Phase.QUESTIONS
        assert room.remaining_time == 300
        assert [(e.kind, e.payload) for e in events] == [(PHASE_TRANSITION, {"phase": "questions"})]

    def test_skip_outside_presentation_is_noop(self):
        room = make_room()
        RoomStateMachine.skip_to_questions(room)
        room.remaining_time = 42
        assert RoomStateMachine.skip_to_questions(room) == []
        assert room.remaining_time == 42

    def test_reset_from_any_phase(self):
        room = make_room()
        room.phase = Phase.COMPLETED
        room.remaining_time = 0
        events = RoomStateMachine.reset_phase(room)
        assert room.phase == Phase.PRESENTATION
        assert room.remaining_time == 600
        assert events[0].payload == {"phase": "presentation"}

    def test_reset_keeps_running_state(self):
        room = make_room()
        RoomStateMachine.start(room)
        RoomStateMachine.skip_to_questions(room)
        RoomStateMachine.reset_phase(room)
        assert room.is_running


class TestTick:
    def test_demo_scenario(self):
        room = make_room(10)
        assert room.remaining_time == 600
        RoomStateMachine.start(room)

        events = run_ticks(room, 540)
        assert room.remaining_time == 60
        assert [e.payload for e in kinds(events, TIMER_WARNING)] == [
            {"remainingTime": 60, "phase": "presentation"}
        ]

        events += run_ticks(room, 30)
        assert room.remaining_time == 30
        assert len(kinds(events, TIMER_WARNING)) == 2

        events += run_ticks(room, 30)
        assert room.phase == Phase.QUESTIONS
        assert room.remaining_time == 300
        assert len(kinds(events, PHASE_TRANSITION)) == 1

        RoomStateMachine.pause(room)
        assert not room.is_running
        assert room.remaining_time == 300

    def test_pause_resume_does_not_repeat_warning(self):
        room = make_room(1)
        RoomStateMachine.start(room)
        events = run_ticks(room, 1)
        assert room.remaining_time == 59
        assert kinds(events, TIMER_WARNING) == []

        room.remaining_time = 61
        events = run_ticks(room, 1)
        assert len(kinds(events, TIMER_WARNING)) == 1
        RoomStateMachine.pause(room)
        RoomStateMachine.start(room)
        events = run_ticks(room, 1)
        assert room.remaining_time == 59
        assert kinds(events, TIMER_WARNING) == []

    def test_questions_reaching_zero_completes(self):
        room = make_room(1)
        RoomStateMachine.start(room)
        RoomStateMachine.skip_to_questions(room)
        RoomStateMachine.update_duration(room, 1, Phase.QUESTIONS)

        events = run_ticks(room, 60)

        assert room.phase == Phase.COMPLETED
        assert room.remaining_time == 0
        assert not room.is_running
        assert len(kinds(events, TIMER_COMPLETED)) == 1
        # warning at 30 only: the phase started at exactly 60
        assert [e.payload["remainingTime"] for e in kinds(events, TIMER_WARNING)] == [30]

    def test_remaining_time_never_negative(self):
        room = make_room(1)
        room.phase = Phase.QUESTIONS
        room.remaining_time = 0
        room.is_running = True
        RoomStateMachine.tick(room)
        assert room.remaining_time == 0
        assert room.phase == Phase.COMPLETED


class TestMarkInactive:
    def test_marks_once(self):
        room = make_room()
        RoomStateMachine.join(room, "Bob", "bob-1")
        assert RoomStateMachine.mark_inactive(room, "Bob", "bob-1") is True
        assert room.find_by_name("Bob").is_active is False
        assert RoomStateMachine.mark_inactive(room, "Bob", "bob-1") is False

    def test_skips_rebound_participant(self):
        room = make_room()
        RoomStateMachine.join(room, "Bob", "bob-1")
        RoomStateMachine.join(room, "Bob", "bob-2")
        assert RoomStateMachine.mark_inactive(room, "Bob", "bob-1") is False
        assert room.find_by_name("Bob").is_active
