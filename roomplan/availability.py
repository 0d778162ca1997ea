import logging
from datetime import date, time
from typing import Dict, Iterable, List, Optional

from .config import DEFAULT_DAY_START, DEFAULT_DAY_END
from .models import Booking, Occupancy, Room, Slot

logger = logging.getLogger(__name__)


def overlaps(a_start: time, a_end: time, b_start: time, b_end: time) -> bool:
    """Half-open interval test: windows that only touch do not overlap."""
    return a_start < b_end and a_end > b_start


def occupancy(bookings: Iterable[Booking], room_id: str, day: date, start: time, end: time,
              excluding: Optional[str] = None) -> List[Occupancy]:
    """Bookings of ``room_id`` on ``day`` intersecting ``[start, end)``.

    Entries carry the raw booking window (not clipped to the query) and are
    sorted by start time. ``excluding`` names a session whose own booking is
    ignored, so a session never conflicts with itself.
    """
    hits = [
        Occupancy(start=b.start, end=b.end, session_id=b.session_id)
        for b in bookings
        if b.room_id == room_id and b.date == day and b.session_id != excluding
        and overlaps(b.start, b.end, start, end)
    ]
    hits.sort(key=lambda o: (o.start, o.end, o.session_id))
    return hits


def free_slots(occupied: Iterable[Occupancy], start: time, end: time) -> List[Slot]:
    """Complement of ``occupied`` inside ``[start, end)``.

    Occupied intervals are clamped to the window before subtracting and
    zero-length gaps are dropped.
    """
    if not start < end:
        return []
    slots: List[Slot] = []
    cursor = start
    for occ in sorted(occupied, key=lambda o: (o.start, o.end)):
        s = max(occ.start, start)
        e = min(occ.end, end)
        if e <= s:
            continue
        if s > cursor:
            slots.append(Slot(cursor, s))
        if e > cursor:
            cursor = e
    if cursor < end:
        slots.append(Slot(cursor, end))
    return slots


def is_available(bookings: Iterable[Booking], room_id: str, day: date, start: time, end: time,
                 excluding: Optional[str] = None) -> bool:
    return not occupancy(bookings, room_id, day, start, end, excluding=excluding)


def room_status(bookings: Iterable[Booking], room_id: str, day: date, at: time) -> str:
    """'occupied' if a booking of the room covers instant ``at``, else 'free'."""
    for b in bookings:
        if b.room_id == room_id and b.date == day and b.start <= at <= b.end:
            return "occupied"
    return "free"


def day_availability(rooms: Iterable[Room], bookings: Iterable[Booking], day: date,
                     day_start: time = DEFAULT_DAY_START, day_end: time = DEFAULT_DAY_END) -> Dict[str, list]:
    """Sort active rooms into available / partial / occupied for one day.

    A room is *available* when nothing is booked in it that day, *partial*
    when some of ``[day_start, day_end)`` is still free and *occupied*
    otherwise. Partial entries carry their free slots.
    """
    bookings = list(bookings)
    result: Dict[str, list] = {"available": [], "partial": [], "occupied": []}
    for room in rooms:
        if not room.is_active:
            continue
        todays = [b for b in bookings if b.room_id == room.id and b.date == day]
        if not todays:
            result["available"].append(room)
            continue
        occ = occupancy(todays, room.id, day, day_start, day_end)
        slots = free_slots(occ, day_start, day_end)
        if slots:
            result["partial"].append((room, slots))
        else:
            result["occupied"].append(room)
    return result


class WorkingOccupancy:
    """Planner-private copy of the booking state, indexed by room.

    Seeded from a committed snapshot at the start of a run and extended as
    the run accepts assignments. One instance belongs to one planning run.
    """

    def __init__(self, bookings: Iterable[Booking] = ()):
        self._by_room: Dict[str, List[Booking]] = {}
        for b in bookings:
            self.add(b)

    def add(self, booking: Booking) -> None:
        self._by_room.setdefault(booking.room_id, []).append(booking)

    def occupancy(self, room_id: str, day: date, start: time, end: time,
                  excluding: Optional[str] = None) -> List[Occupancy]:
        return occupancy(self._by_room.get(room_id, ()), room_id, day, start, end, excluding=excluding)

    def is_available(self, room_id: str, day: date, start: time, end: time,
                     excluding: Optional[str] = None) -> bool:
        return not self.occupancy(room_id, day, start, end, excluding=excluding)

    def snapshot(self) -> List[Booking]:
        out: List[Booking] = []
        for bookings in self._by_room.values():
            out.extend(bookings)
        return out

    def __len__(self):
        return sum(len(v) for v in self._by_room.values())
