from typing import Iterable, Union
from collections import defaultdict
import networkx as nx

from .availability import overlaps
from .models import Booking, Session


def build_overlap_graph(items: Iterable[Union[Booking, Session]]) -> nx.Graph:
    """Graph over session ids with an edge for every pair of windows that
    overlap on the same date. Node attribute ``room`` holds the booked room
    (None for an unassigned session)."""
    G = nx.Graph()
    by_day = defaultdict(list)
    for it in items:
        sid = it.session_id if isinstance(it, Booking) else it.id
        G.add_node(sid, room=it.room_id, date=it.date, start=it.start, end=it.end)
        by_day[it.date].append((sid, it.start, it.end))
    for windows in by_day.values():
        windows.sort(key=lambda w: w[1])
        for i in range(len(windows)):
            u, u_start, u_end = windows[i]
            for j in range(i + 1, len(windows)):
                v, v_start, v_end = windows[j]
                if v_start >= u_end:
                    break
                if u != v and overlaps(u_start, u_end, v_start, v_end):
                    G.add_edge(u, v)
    return G
