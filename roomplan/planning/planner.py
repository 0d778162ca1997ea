import logging
from typing import Dict, Iterable, List, Mapping, Optional, Union

from ..availability import WorkingOccupancy
from ..models import (
    Booking, ContractViolation, Diagnostic, Plan, PlanItem, Remedy, Room, Session,
    ALL_ROOMS_OCCUPIED, CLEAR_OVERRIDE, CREATE_ROOM, MANUAL_ROOM_OCCUPIED,
    MANUAL_ROOM_UNAVAILABLE, NO_ROOM_LARGE_ENOUGH, RESCHEDULE, USE_LARGEST_ROOM,
    VIEW_ROOM_SCHEDULE,
)
from ..overrides import Overrides

logger = logging.getLogger(__name__)

OverrideInput = Union[Overrides, Mapping[str, str], None]


def resolve_headcounts(sessions: Iterable[Session], source, default_headcount: Optional[int] = None) -> Dict[str, int]:
    """Headcount per class, looked up once before planning.

    ``source`` is a mapping ``class_id -> headcount`` or any object with a
    ``headcount_for_class`` method. A class without a headcount falls back
    to ``default_headcount`` when one is given, otherwise it is an error.
    """
    lookup = source.get if isinstance(source, Mapping) else source.headcount_for_class
    counts: Dict[str, int] = {}
    for s in sessions:
        if s.class_id in counts:
            continue
        n = lookup(s.class_id)
        if n is None:
            if default_headcount is None:
                raise ContractViolation(f"no headcount for class {s.class_id!r}")
            n = default_headcount
        counts[s.class_id] = int(n)
    return counts


def _check_inputs(sessions: List[Session], rooms: List[Room], headcounts: Mapping[str, int]) -> None:
    seen = set()
    for s in sessions:
        if s.id in seen:
            raise ContractViolation(f"duplicate session id {s.id!r}")
        seen.add(s.id)
        if s.date is None or s.start is None or s.end is None:
            raise ContractViolation(f"session {s.id!r} lacks a date or time")
        if not s.start < s.end:
            raise ContractViolation(f"session {s.id!r} ends before it starts")
        if s.class_id not in headcounts:
            raise ContractViolation(f"no headcount for class {s.class_id!r} of session {s.id!r}")
        if headcounts[s.class_id] < 0:
            raise ContractViolation(f"negative headcount for class {s.class_id!r}")
    room_ids = set()
    for r in rooms:
        if r.id in room_ids:
            raise ContractViolation(f"duplicate room id {r.id!r}")
        room_ids.add(r.id)
        if r.capacity < 0:
            raise ContractViolation(f"room {r.id!r} has negative capacity")


def _check_booked(sessions: List[Session], bookings: List[Booking], pins: Mapping[str, str]) -> None:
    booked = {b.session_id: b.room_id for b in bookings}
    for s in sessions:
        room_id = booked.get(s.id)
        # only a pin to the room it already holds may re-plan a booked session
        if room_id is not None and pins.get(s.id) != room_id:
            raise ContractViolation(f"session {s.id!r} is already booked in room {room_id!r}")


def _pins_of(overrides: OverrideInput) -> Dict[str, str]:
    if overrides is None:
        return {}
    if isinstance(overrides, Overrides):
        return overrides.as_dict()
    return dict(overrides)


def _efficiency(headcount: int, capacity: int) -> float:
    return headcount / capacity if capacity else 0.0


def _accept(plan: Plan, working: WorkingOccupancy, s: Session, room: Room, need: int, source: str) -> PlanItem:
    item = PlanItem(
        session_id=s.id, room_id=room.id, date=s.date, start=s.start, end=s.end,
        headcount=need, capacity=room.capacity,
        efficiency=_efficiency(need, room.capacity), source=source,
    )
    working.add(item.to_booking())
    plan.accepted.append(item)
    logger.debug("session %s -> room %s (%s, %.0f%%)", s.id, room.id, source, item.efficiency * 100)
    return item


def _clear_override_remedy(s: Session, room_id: str) -> Remedy:
    return Remedy(
        kind=CLEAR_OVERRIDE,
        label="Clear manual room",
        description=f"Drop the pin on room {room_id} and let automatic assignment choose a room.",
        params={"session_id": s.id, "room_id": room_id},
    )


def _place_pinned(plan: Plan, working: WorkingOccupancy, rooms_by_id: Dict[str, Room],
                  s: Session, need: int, room_id: str) -> None:
    room = rooms_by_id.get(room_id)
    if room is None or not room.is_active:
        plan.diagnostics.append(Diagnostic(
            session_id=s.id,
            reason=MANUAL_ROOM_UNAVAILABLE,
            message=f"Manually chosen room {room_id} is unknown or inactive.",
            remedies=[_clear_override_remedy(s, room_id)],
            rooms=[room_id],
        ))
        return
    occ = working.occupancy(room.id, s.date, s.start, s.end, excluding=s.id)
    if occ:
        plan.diagnostics.append(Diagnostic(
            session_id=s.id,
            reason=MANUAL_ROOM_OCCUPIED,
            message=(f"Manually chosen room {room.label} is occupied at this time "
                     f"(by {', '.join(o.session_id for o in occ)})."),
            remedies=[_clear_override_remedy(s, room.id)],
            rooms=[room.id],
        ))
        return
    if room.capacity < need:
        logger.info("manual room %s for session %s is short by %d seats",
                    room.id, s.id, need - room.capacity)
    _accept(plan, working, s, room, need, "manual")


def _no_room_large_enough(plan: Plan, working: WorkingOccupancy, rooms: List[Room], s: Session, need: int) -> None:
    remedies: List[Remedy] = []
    free = [r for r in rooms if r.is_active and working.is_available(r.id, s.date, s.start, s.end, excluding=s.id)]
    if free:
        largest = max(free, key=lambda r: r.capacity)
        remedies.append(Remedy(
            kind=USE_LARGEST_ROOM,
            label=f"Use {largest.label}",
            description=(f"Assign the largest free room ({largest.capacity} seats) "
                         f"and accept a shortfall of {need - largest.capacity}."),
            params={"session_id": s.id, "room_id": largest.id,
                    "capacity": largest.capacity, "shortfall": need - largest.capacity},
        ))
    remedies.append(Remedy(
        kind=CREATE_ROOM,
        label="Create a new room",
        description=f"Create a room with at least {need} seats.",
        params={"session_id": s.id, "capacity": need},
    ))
    plan.diagnostics.append(Diagnostic(
        session_id=s.id,
        reason=NO_ROOM_LARGE_ENOUGH,
        message=f"No room large enough for {need} students.",
        remedies=remedies,
        rooms=[r.id for r in free],
    ))


def _all_rooms_occupied(plan: Plan, working: WorkingOccupancy, suitable: List[Room], s: Session, need: int) -> None:
    best = suitable[0]
    occ = working.occupancy(best.id, s.date, s.start, s.end, excluding=s.id)
    plan.diagnostics.append(Diagnostic(
        session_id=s.id,
        reason=ALL_ROOMS_OCCUPIED,
        message=(f"All {len(suitable)} rooms with at least {need} seats are occupied "
                 f"on {s.date.isoformat()} {s.start.strftime('%H:%M')}-{s.end.strftime('%H:%M')}."),
        remedies=[
            Remedy(
                kind=RESCHEDULE,
                label="Reschedule session",
                description="Move the session to another date or time and plan it again.",
                params={"session_id": s.id},
            ),
            Remedy(
                kind=VIEW_ROOM_SCHEDULE,
                label=f"View schedule of {best.label}",
                description=(f"Inspect the sessions occupying {best.label}: "
                             f"{', '.join(o.session_id for o in occ)}."),
                params={"room_id": best.id, "date": s.date.isoformat(),
                        "sessions": [o.session_id for o in occ]},
            ),
        ],
        rooms=[r.id for r in suitable],
    ))


def plan_assignments(sessions: Iterable[Session], rooms: Iterable[Room], bookings: Iterable[Booking],
                     headcounts: Mapping[str, int], overrides: OverrideInput = None) -> Plan:
    """Best-fit room assignment for a batch of unassigned sessions.

    Sessions are placed largest class first. A pinned room is honoured when
    it is free; otherwise the active room with the least spare seats that is
    free at the session's time wins, ties going to the earlier room in
    ``rooms``. Failures come back as diagnostics with remedies. Nothing is
    written anywhere; ``bookings`` is only read to seed the working copy.
    """
    sessions = list(sessions)
    rooms = list(rooms)
    bookings = list(bookings)
    _check_inputs(sessions, rooms, headcounts)
    pins = _pins_of(overrides)
    _check_booked(sessions, bookings, pins)
    rooms_by_id = {r.id: r for r in rooms}
    working = WorkingOccupancy(bookings)
    plan = Plan()

    order = sorted(sessions, key=lambda s: -headcounts[s.class_id])
    for s in order:
        need = headcounts[s.class_id]
        pinned = pins.get(s.id)
        if pinned is not None:
            _place_pinned(plan, working, rooms_by_id, s, need, pinned)
            continue

        ranked = sorted(
            ((r.capacity - need, idx, r) for idx, r in enumerate(rooms) if r.is_active and r.capacity >= need),
            key=lambda t: (t[0], t[1]),
        )
        if not ranked:
            _no_room_large_enough(plan, working, rooms, s, need)
            continue
        chosen = None
        for _, _, room in ranked:
            if working.is_available(room.id, s.date, s.start, s.end, excluding=s.id):
                chosen = room
                break
        if chosen is None:
            _all_rooms_occupied(plan, working, [r for _, _, r in ranked], s, need)
        else:
            _accept(plan, working, s, chosen, need, "auto")

    logger.info("planned %d sessions: %d accepted, %d diagnostics",
                len(sessions), len(plan.accepted), len(plan.diagnostics))
    return plan
