import logging
from datetime import date, time
from typing import Dict, Iterable, List, Mapping, Optional

from .availability import overlaps
from .config import PLANNABLE_KIND
from .models import Booking, Room, Session

logger = logging.getLogger(__name__)

SUCCESS = "success"
CONFLICT = "conflict"


class InMemoryStore:
    """Rooms, sessions and bookings held in memory.

    Exposes the same methods a hosted backend adapter would, so the planner,
    the commit step and the remedies run unchanged against either one.
    ``commit_booking`` checks and writes in one call and reports a conflict
    instead of raising.
    """

    def __init__(self, rooms: Iterable[Room] = (), sessions: Iterable[Session] = (),
                 headcounts: Optional[Mapping[str, int]] = None):
        self.rooms: Dict[str, Room] = {}
        self.sessions: Dict[str, Session] = {}
        self.bookings: Dict[str, Booking] = {}  # session_id -> booking
        self.headcounts: Dict[str, int] = dict(headcounts or {})
        for r in rooms:
            self.add_room(r)
        for s in sessions:
            self.add_session(s)

    # -- rooms ---------------------------------------------------------
    def add_room(self, room: Room) -> Room:
        if room.id in self.rooms:
            raise ValueError(f"room {room.id!r} already exists")
        self.rooms[room.id] = room
        return room

    def get_room(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def list_active_rooms(self) -> List[Room]:
        return [r for _, r in sorted(self.rooms.items()) if r.is_active]

    # -- sessions ------------------------------------------------------
    def add_session(self, session: Session) -> Session:
        if session.id in self.sessions:
            raise ValueError(f"session {session.id!r} already exists")
        self.sessions[session.id] = session
        if session.room_id is not None:
            # sessions loaded with a room come with their booking
            self.bookings[session.id] = Booking(session.room_id, session.id,
                                                session.date, session.start, session.end)
        return session

    def get_session(self, session_id: str) -> Optional[Session]:
        return self.sessions.get(session_id)

    def headcount_for_class(self, class_id: str) -> Optional[int]:
        return self.headcounts.get(class_id)

    def list_unassigned_sessions(self, day: Optional[date] = None) -> List[Session]:
        out = []
        for s in self.sessions.values():
            if s.kind != PLANNABLE_KIND or s.id in self.bookings:
                continue
            if s.date is None or s.start is None or s.end is None:
                continue
            if day is not None and s.date != day:
                continue
            out.append(s)
        return out

    def reschedule_session(self, session_id: str, day: date, start: time, end: time) -> Session:
        s = self.sessions[session_id]
        if not start < end:
            raise ValueError("end must be after start")
        s.date, s.start, s.end = day, start, end
        # a moved session keeps no stale booking
        self.clear_booking(session_id)
        return s

    # -- bookings ------------------------------------------------------
    def list_bookings(self, day: Optional[date] = None) -> List[Booking]:
        return [b for b in self.bookings.values() if day is None or b.date == day]

    def commit_booking(self, room_id: str, session_id: str, force: bool = False) -> str:
        """Book ``room_id`` for ``session_id``; returns 'success' or 'conflict'.

        ``force`` accepts a capacity shortfall. Time conflicts are refused
        either way.
        """
        s = self.sessions[session_id]
        if room_id not in self.rooms:
            raise KeyError(room_id)
        current = self.bookings.get(session_id)
        if current is not None and current.room_id != room_id:
            logger.warning("session %s already booked in %s", session_id, current.room_id)
            return CONFLICT
        for b in self.bookings.values():
            if b.room_id == room_id and b.session_id != session_id and b.date == s.date \
                    and overlaps(b.start, b.end, s.start, s.end):
                logger.warning("room %s taken by %s when committing %s", room_id, b.session_id, session_id)
                return CONFLICT
        if force and self.rooms[room_id].capacity < (self.headcounts.get(s.class_id) or 0):
            logger.info("forced booking of %s into undersized room %s", session_id, room_id)
        self.bookings[session_id] = Booking(room_id, session_id, s.date, s.start, s.end)
        s.room_id = room_id
        return SUCCESS

    def clear_booking(self, session_id: str) -> None:
        self.bookings.pop(session_id, None)
        s = self.sessions.get(session_id)
        if s is not None:
            s.room_id = None
