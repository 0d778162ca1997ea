from datetime import date, time

import pytest

from roomplan.models import Booking, Room, Session
from roomplan.store import InMemoryStore

DAY = date(2024, 1, 10)


def t(hhmm: str) -> time:
    h, m = hhmm.split(":")
    return time(int(h), int(m))


def session(sid, class_id, start="09:00", end="10:00", day=DAY, **kw) -> Session:
    return Session(id=sid, class_id=class_id, date=day, start=t(start), end=t(end), **kw)


def booking(room_id, sid, start="09:00", end="10:00", day=DAY) -> Booking:
    return Booking(room_id=room_id, session_id=sid, date=day, start=t(start), end=t(end))


@pytest.fixture
def rooms():
    return [
        Room(id="R1", capacity=30, name="Room 1"),
        Room(id="R2", capacity=40, name="Room 2"),
        Room(id="R3", capacity=20, name="Room 3"),
    ]


@pytest.fixture
def store(rooms):
    sessions = [
        session("S1", "C1"),
        session("S2", "C2"),
        session("S3", "C3", "11:00", "12:00"),
    ]
    return InMemoryStore(rooms, sessions, headcounts={"C1": 25, "C2": 35, "C3": 18})
