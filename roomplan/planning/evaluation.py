from collections import Counter
from datetime import date
from typing import Iterable, List

import networkx as nx
import pandas as pd

from ..availability import day_availability
from ..graph_build import build_overlap_graph
from ..models import Booking, Plan, Room, Session
from .validation import capacity_ok, no_double_booking, single_booking_per_session


def peak_concurrency(G: nx.Graph) -> int:
    """Largest set of mutually overlapping sessions.

    Overlap graphs of time windows are interval graphs, so the maximum
    clique is the number of rooms needed at the busiest moment.
    """
    return max((len(c) for c in nx.find_cliques(G)), default=0)


def summary(rooms: Iterable[Room], sessions: Iterable[Session], plan: Plan,
            bookings: Iterable[Booking] = ()) -> str:
    rooms = [r for r in rooms if r.is_active]
    sessions = list(sessions)
    bookings = list(bookings)
    combined = bookings + [i.to_booking() for i in plan.accepted]
    G = build_overlap_graph(list(sessions) + bookings)
    peak = peak_concurrency(G)
    reasons = Counter(d.reason for d in plan.diagnostics)
    eff = [i.efficiency for i in plan.accepted]
    mean_eff = sum(eff) / len(eff) if eff else 0.0
    ok_double = no_double_booking(combined)
    ok_single = single_booking_per_session(combined)
    ok_cap = capacity_ok(plan)
    warning = ""
    if len(rooms) < peak:
        warning = (
            f"Warning: active rooms={len(rooms)} < peak concurrency={peak}; "
            f"some sessions cannot be placed at their current time.\n"
        )
    by_reason = ", ".join(f"{k}={v}" for k, v in sorted(reasons.items())) or "none"
    return (
        f"Sessions: {len(sessions)}  Existing bookings: {len(bookings)}  Active rooms: {len(rooms)}\n"
        f"Accepted: {len(plan.accepted)}  Diagnostics: {len(plan.diagnostics)} ({by_reason})\n"
        f"Mean efficiency: {mean_eff:.1%}  Peak concurrency: {peak}\n"
        f"Valid (no double booking): {ok_double}  Valid (one booking per session): {ok_single}  "
        f"Valid (capacity): {ok_cap}\n"
        f"{warning}"
    )


def plan_frame(plan: Plan) -> pd.DataFrame:
    cols = ["session_id", "room_id", "date", "start", "end", "headcount", "capacity",
            "efficiency", "source", "capacity_ok"]
    return pd.DataFrame([i.to_dict() for i in plan.accepted], columns=cols)


def diagnostics_frame(plan: Plan) -> pd.DataFrame:
    rows = []
    for d in plan.diagnostics:
        rows.append({
            "session_id": d.session_id,
            "reason": d.reason,
            "message": d.message,
            "remedies": "; ".join(r.label for r in d.remedies),
            "rooms": ", ".join(d.rooms),
        })
    return pd.DataFrame(rows, columns=["session_id", "reason", "message", "remedies", "rooms"])


def availability_frame(rooms: Iterable[Room], bookings: Iterable[Booking], day: date, **window) -> pd.DataFrame:
    status = day_availability(rooms, bookings, day, **window)
    rows: List[dict] = []
    for room in status["available"]:
        rows.append({"room_id": room.id, "room": room.label, "capacity": room.capacity,
                     "status": "available", "free": "all day"})
    for room, slots in status["partial"]:
        free = ", ".join(f"{s.start.strftime('%H:%M')}-{s.end.strftime('%H:%M')}" for s in slots)
        rows.append({"room_id": room.id, "room": room.label, "capacity": room.capacity,
                     "status": "partial", "free": free})
    for room in status["occupied"]:
        rows.append({"room_id": room.id, "room": room.label, "capacity": room.capacity,
                     "status": "occupied", "free": ""})
    return pd.DataFrame(rows, columns=["room_id", "room", "capacity", "status", "free"])
