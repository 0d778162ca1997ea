import pytest

from roomplan.models import (
    Plan, Remedy, Room,
    CLEAR_OVERRIDE, CREATE_ROOM, NO_ROOM_LARGE_ENOUGH, REPLAN, RESCHEDULE, USE_LARGEST_ROOM,
    VIEW_ROOM_SCHEDULE,
)
from roomplan.overrides import Overrides
from roomplan.planning.commit import commit_plan
from roomplan.planning.planner import plan_assignments, resolve_headcounts
from roomplan.remedies import apply_remedy
from roomplan.store import InMemoryStore, SUCCESS

from conftest import DAY, session, t


@pytest.fixture
def crowded():
    rooms = [Room("A", 20), Room("B", 25)]
    return InMemoryStore(rooms, [session("S1", "big")], headcounts={"big": 40})


def _diagnostic(store):
    sessions = store.list_unassigned_sessions()
    plan = plan_assignments(sessions, store.list_active_rooms(), store.list_bookings(),
                            resolve_headcounts(sessions, store))
    return plan.diagnostics[0]


def test_remedies_are_plain_data(crowded):
    diag = _diagnostic(crowded)
    assert diag.reason == NO_ROOM_LARGE_ENOUGH
    d = diag.to_dict()
    assert [r["kind"] for r in d["remedies"]] == [USE_LARGEST_ROOM, CREATE_ROOM]
    assert d["remedies"][0]["params"]["room_id"] == "B"


def test_use_largest_room_forces_the_booking(crowded):
    largest = _diagnostic(crowded).remedies[0]
    assert apply_remedy(largest, crowded) == SUCCESS
    assert crowded.get_session("S1").room_id == "B"


def test_create_room_then_plan_succeeds(crowded):
    create = _diagnostic(crowded).remedies[1]
    room = apply_remedy(create, crowded, room_id="HALL", name="Hall")
    assert (room.id, room.capacity) == ("HALL", 40)
    sessions = crowded.list_unassigned_sessions()
    plan = plan_assignments(sessions, crowded.list_active_rooms(), crowded.list_bookings(),
                            resolve_headcounts(sessions, crowded))
    assert plan.accepted[0].room_id == "HALL"


def test_clear_override_remedy():
    o = Overrides({"S1": "Z"})
    apply_remedy(Remedy(CLEAR_OVERRIDE, "Clear", "", {"session_id": "S1", "room_id": "Z"}), None, o)
    assert "S1" not in o
    with pytest.raises(ValueError):
        apply_remedy(Remedy(CLEAR_OVERRIDE, "Clear", "", {"session_id": "S1"}), None)


def test_reschedule_moves_the_session(store):
    store.commit_booking("R1", "S1")
    remedy = Remedy(RESCHEDULE, "Reschedule", "", {"session_id": "S1"})
    with pytest.raises(ValueError):
        apply_remedy(remedy, store)
    moved = apply_remedy(remedy, store, date=DAY, start=t("14:00"), end=t("15:00"))
    assert (moved.start, moved.end) == (t("14:00"), t("15:00"))
    assert moved.room_id is None
    assert "S1" in [s.id for s in store.list_unassigned_sessions()]


def test_view_room_schedule_lists_the_day(store):
    store.commit_booking("R1", "S1")
    store.commit_booking("R1", "S3")
    remedy = Remedy(VIEW_ROOM_SCHEDULE, "View", "", {"room_id": "R1", "date": DAY.isoformat()})
    assert [o.session_id for o in apply_remedy(remedy, store)] == ["S1", "S3"]


def test_replan_remedy_returns_a_plan(store):
    plan = apply_remedy(Remedy(REPLAN, "Plan again", "", {"session_id": "S1"}), store)
    assert isinstance(plan, Plan)
    assert plan.accepted[0].room_id == "R1"


def test_unknown_remedy_kind():
    with pytest.raises(ValueError):
        apply_remedy(Remedy("teleport", "?", ""), None)


def test_commit_race_remedies_recover_the_session(store):
    sessions = store.list_unassigned_sessions()
    counts = resolve_headcounts(sessions, store)
    plan = plan_assignments(sessions, store.list_active_rooms(), store.list_bookings(), counts)
    store.add_session(session("other", "C9", "11:00", "12:00", room_id="R3"))
    report = commit_plan(plan, store)
    diag = report.diagnostics[0]
    assert diag.session_id == "S3"
    by_kind = {r.kind: r for r in diag.remedies}
    assert set(by_kind) == {REPLAN, RESCHEDULE}

    retry = apply_remedy(by_kind[REPLAN], store, headcounts=counts)
    assert commit_plan(retry, store).committed[0].room_id == "R1"
    assert store.get_session("S3").room_id == "R1"
    # once booked, a second replan has nothing to do
    assert apply_remedy(by_kind[REPLAN], store, headcounts=counts) is None
