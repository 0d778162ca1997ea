import pytest

from roomplan.models import (
    ContractViolation, Room, Session,
    ALL_ROOMS_OCCUPIED, CREATE_ROOM, NO_ROOM_LARGE_ENOUGH, RESCHEDULE, USE_LARGEST_ROOM,
    VIEW_ROOM_SCHEDULE,
)
from roomplan.planning.planner import plan_assignments, resolve_headcounts
from roomplan.planning.validation import no_double_booking, plan_ok

from conftest import DAY, booking, session, t


def test_only_room_with_enough_seats_is_chosen():
    rooms = [Room("X", 30), Room("Y", 25)]
    plan = plan_assignments([session("S1", "C")], rooms, [], {"C": 28})
    assert [(i.session_id, i.room_id) for i in plan.accepted] == [("S1", "X")]
    assert plan.accepted[0].efficiency == pytest.approx(28 / 30)
    assert plan.accepted[0].source == "auto"
    assert plan.diagnostics == []


def test_largest_class_gets_the_single_room():
    rooms = [Room("X", 30)]
    sessions = [session("S2", "small"), session("S1", "big")]
    plan = plan_assignments(sessions, rooms, [], {"big": 30, "small": 10})
    assert [(i.session_id, i.room_id) for i in plan.accepted] == [("S1", "X")]
    assert len(plan.diagnostics) == 1
    diag = plan.diagnostics[0]
    assert diag.session_id == "S2"
    assert diag.reason == ALL_ROOMS_OCCUPIED
    kinds = [r.kind for r in diag.remedies]
    assert kinds == [RESCHEDULE, VIEW_ROOM_SCHEDULE]
    assert diag.remedies[1].params["sessions"] == ["S1"]


def test_tightest_fit_wins_and_ties_go_to_first_room():
    rooms = [Room("A", 40), Room("B", 30), Room("C", 30)]
    plan = plan_assignments([session("S1", "C1")], rooms, [], {"C1": 25})
    assert plan.accepted[0].room_id == "B"


def test_busy_best_fit_falls_through_to_next_room():
    rooms = [Room("A", 40), Room("B", 30)]
    plan = plan_assignments([session("S1", "C1")], rooms, [booking("B", "old")], {"C1": 25})
    assert plan.accepted[0].room_id == "A"


def test_committed_bookings_are_respected():
    rooms = [Room("A", 30)]
    existing = [booking("A", "old", "09:30", "10:30")]
    plan = plan_assignments([session("S1", "C1")], rooms, existing, {"C1": 10})
    assert plan.accepted == []
    assert plan.diagnostics[0].reason == ALL_ROOMS_OCCUPIED
    # back-to-back is fine
    plan = plan_assignments([session("S2", "C1", "10:30", "11:30")], rooms, existing, {"C1": 10})
    assert plan.accepted[0].room_id == "A"


def test_inactive_rooms_are_ignored():
    rooms = [Room("A", 30, is_active=False), Room("B", 50)]
    plan = plan_assignments([session("S1", "C1")], rooms, [], {"C1": 25})
    assert plan.accepted[0].room_id == "B"


def test_no_room_large_enough_offers_largest_free_room_and_new_room():
    rooms = [Room("A", 20), Room("B", 25), Room("C", 25)]
    plan = plan_assignments([session("S1", "C1")], rooms, [booking("B", "old")], {"C1": 40})
    assert plan.accepted == []
    diag = plan.diagnostics[0]
    assert diag.reason == NO_ROOM_LARGE_ENOUGH
    largest, create = diag.remedies
    assert largest.kind == USE_LARGEST_ROOM
    assert largest.params["room_id"] == "C"
    assert largest.params["shortfall"] == 15
    assert create.kind == CREATE_ROOM
    assert create.params["capacity"] == 40


def test_empty_room_list_reports_every_session():
    plan = plan_assignments([session("S1", "C1"), session("S2", "C1", "11:00", "12:00")], [], [], {"C1": 5})
    assert plan.accepted == []
    assert [d.reason for d in plan.diagnostics] == [NO_ROOM_LARGE_ENOUGH, NO_ROOM_LARGE_ENOUGH]
    assert [r.kind for r in plan.diagnostics[0].remedies] == [CREATE_ROOM]


def test_same_inputs_give_same_plan():
    rooms = [Room("A", 30), Room("B", 30), Room("C", 50)]
    sessions = [session(f"S{i}", f"C{i % 3}", f"{8 + i % 4:02d}:00", f"{9 + i % 4:02d}:00") for i in range(12)]
    counts = {"C0": 20, "C1": 30, "C2": 45}
    first = plan_assignments(sessions, rooms, [], counts)
    second = plan_assignments(sessions, rooms, [], counts)
    assert first.to_dict() == second.to_dict()


def test_accepted_plan_never_double_books():
    rooms = [Room("A", 30), Room("B", 35), Room("C", 50)]
    sessions = [
        session(f"S{i}", f"C{i % 4}", f"{8 + i % 5:02d}:{(i * 15) % 60:02d}", f"{10 + i % 5:02d}:00")
        for i in range(20)
    ]
    counts = {"C0": 20, "C1": 30, "C2": 45, "C3": 10}
    existing = [booking("A", "old1", "08:00", "09:00"), booking("C", "old2", "12:00", "13:00")]
    plan = plan_assignments(sessions, rooms, existing, counts)
    combined = existing + [i.to_booking() for i in plan.accepted]
    assert no_double_booking(combined)
    assert plan_ok(plan, existing, {r.id: r for r in rooms})
    assert len(plan.accepted) + len(plan.diagnostics) == len(sessions)


def test_inputs_are_not_mutated():
    rooms = [Room("A", 30)]
    sessions = [session("S1", "C1")]
    existing = [booking("A", "old", "11:00", "12:00")]
    plan_assignments(sessions, rooms, existing, {"C1": 10})
    assert sessions[0].room_id is None
    assert sessions[0].start == t("09:00")
    assert len(existing) == 1


@pytest.mark.parametrize("bad", [
    Session("S1", "C1", date=None, start=t("09:00"), end=t("10:00")),
    Session("S1", "C1", date=DAY, start=None, end=t("10:00")),
    Session("S1", "C1", date=DAY, start=t("10:00"), end=t("09:00")),
    Session("S1", "missing", date=DAY, start=t("09:00"), end=t("10:00")),
])
def test_malformed_sessions_raise(bad):
    with pytest.raises(ContractViolation):
        plan_assignments([bad], [Room("A", 30)], [], {"C1": 10})


def test_duplicate_ids_raise():
    with pytest.raises(ContractViolation):
        plan_assignments([session("S1", "C1"), session("S1", "C1")], [Room("A", 30)], [], {"C1": 10})
    with pytest.raises(ContractViolation):
        plan_assignments([session("S1", "C1")], [Room("A", 30), Room("A", 40)], [], {"C1": 10})


def test_resolve_headcounts_from_store_and_default(store):
    sessions = store.list_unassigned_sessions()
    assert resolve_headcounts(sessions, store) == {"C1": 25, "C2": 35, "C3": 18}
    extra = sessions + [session("S9", "unknown")]
    with pytest.raises(ContractViolation):
        resolve_headcounts(extra, store)
    assert resolve_headcounts(extra, {"C1": 1, "C2": 2, "C3": 3}, default_headcount=0)["unknown"] == 0


def test_session_already_booked_elsewhere_is_rejected():
    with pytest.raises(ContractViolation):
        plan_assignments([session("S1", "C1")], [Room("B", 30)], [booking("A", "S1")], {"C1": 10})
    # a pin to another room does not make it plannable either
    with pytest.raises(ContractViolation):
        plan_assignments([session("S1", "C1")], [Room("A", 30), Room("B", 30)], [booking("A", "S1")],
                         {"C1": 10}, {"S1": "B"})
