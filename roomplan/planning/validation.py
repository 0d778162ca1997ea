from typing import Dict, Iterable, List
from collections import Counter, defaultdict

from ..graph_build import build_overlap_graph
from ..models import Booking, Plan, Room


def no_double_booking(bookings: Iterable[Booking]) -> bool:
    by_room: Dict[str, List[Booking]] = defaultdict(list)
    for b in bookings:
        by_room[b.room_id].append(b)
    for room_bookings in by_room.values():
        if build_overlap_graph(room_bookings).number_of_edges():
            return False
    return True


def single_booking_per_session(bookings: Iterable[Booking]) -> bool:
    counts = Counter(b.session_id for b in bookings)
    return all(n == 1 for n in counts.values())


def capacity_ok(plan: Plan) -> bool:
    return all(item.capacity_ok for item in plan.accepted)


def plan_ok(plan: Plan, bookings: Iterable[Booking], rooms: Dict[str, Room]) -> bool:
    """Committed bookings plus the accepted items form a valid state."""
    combined = list(bookings) + [i.to_booking() for i in plan.accepted]
    for item in plan.accepted:
        if item.room_id not in rooms:
            return False
    return no_double_booking(combined) and single_booking_per_session(combined)
