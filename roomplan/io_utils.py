import csv
import io
import json
import os
from datetime import date, datetime, time
from typing import Dict, IO, Iterable, List, Union

from .config import DATE_FORMAT, TIME_FORMATS
from .models import Booking, Plan, Room, Session

TextOrPath = Union[str, os.PathLike, IO]


def _open_text(src: TextOrPath):
    """Return a text-mode file handle and a flag indicating whether to close it.

    Accepts a filesystem path, a text IO object, or a BytesIO buffer.
    """
    if isinstance(src, (str, os.PathLike)):
        f = open(src, 'r', newline='')
        return f, True
    if isinstance(src, io.BytesIO):
        src.seek(0)
        f = io.TextIOWrapper(src, encoding='utf-8', newline='')
        return f, True
    if hasattr(src, 'read'):
        if hasattr(src, 'seek'):
            src.seek(0)
        return src, False
    raise TypeError("Unsupported input type; expected path or file-like object")


def _blank(value) -> bool:
    return value is None or str(value).strip() == ''


def parse_time(value: str) -> time:
    value = str(value).strip()
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(value, fmt).time()
        except ValueError:
            continue
    raise ValueError(f"bad time {value!r}; expected HH:MM")


def parse_date(value: str) -> date:
    return datetime.strptime(str(value).strip(), DATE_FORMAT).date()


def _parse_bool(value, default: bool = True) -> bool:
    if _blank(value):
        return default
    return str(value).strip().lower() in ('1', 'true', 'yes', 'y')


def load_rooms(src: TextOrPath) -> List[Room]:
    """rooms.csv with id,capacity and optional name,building,floor,is_active.

    File order is kept.
    """
    rooms: List[Room] = []
    f, should_close = _open_text(src)
    try:
        r = csv.DictReader(f)
        for row in r:
            rooms.append(Room(
                id=str(row['id']).strip(),
                capacity=int(row['capacity']),
                name=None if _blank(row.get('name')) else row['name'].strip(),
                building=None if _blank(row.get('building')) else row['building'].strip(),
                floor=None if _blank(row.get('floor')) else str(row['floor']).strip(),
                is_active=_parse_bool(row.get('is_active')),
            ))
    finally:
        if should_close:
            f.close()
    return rooms


def load_headcounts(src: TextOrPath) -> Dict[str, int]:
    """classes.csv with class_id,headcount."""
    counts: Dict[str, int] = {}
    f, should_close = _open_text(src)
    try:
        r = csv.DictReader(f)
        for row in r:
            counts[str(row['class_id']).strip()] = int(row['headcount'])
    finally:
        if should_close:
            f.close()
    return counts


def load_sessions(src: TextOrPath) -> List[Session]:
    """sessions.csv with id,class_id,date,start,end and optional type,room_id.

    A filled room_id marks a session that is already booked. Missing dates
    or times are kept as None; the planner rejects such sessions.
    """
    sessions: List[Session] = []
    f, should_close = _open_text(src)
    try:
        r = csv.DictReader(f)
        for row in r:
            sessions.append(Session(
                id=str(row['id']).strip(),
                class_id=str(row['class_id']).strip(),
                date=None if _blank(row.get('date')) else parse_date(row['date']),
                start=None if _blank(row.get('start')) else parse_time(row['start']),
                end=None if _blank(row.get('end')) else parse_time(row['end']),
                kind='course' if _blank(row.get('type')) else row['type'].strip(),
                room_id=None if _blank(row.get('room_id')) else row['room_id'].strip(),
            ))
    finally:
        if should_close:
            f.close()
    return sessions


def load_overrides(src: TextOrPath) -> Dict[str, str]:
    """overrides.csv with session_id,room_id; later rows win."""
    pins: Dict[str, str] = {}
    f, should_close = _open_text(src)
    try:
        r = csv.DictReader(f)
        for row in r:
            pins[str(row['session_id']).strip()] = str(row['room_id']).strip()
    finally:
        if should_close:
            f.close()
    return pins


def save_plan_csv(path: str, plan: Plan):
    with open(path, 'w', newline='') as f:
        w = csv.writer(f)
        w.writerow(['session_id', 'room_id', 'date', 'start', 'end', 'headcount', 'capacity',
                    'efficiency', 'source'])
        for item in plan.accepted:
            d = item.to_dict()
            w.writerow([d['session_id'], d['room_id'], d['date'], d['start'], d['end'],
                        d['headcount'], d['capacity'], d['efficiency'], d['source']])


def save_diagnostics_csv(path: str, plan: Plan):
    with open(path, 'w', newline='') as f:
        w = csv.writer(f)
        w.writerow(['session_id', 'reason', 'message', 'remedies'])
        for d in plan.diagnostics:
            w.writerow([d.session_id, d.reason, d.message,
                        json.dumps([r.to_dict() for r in d.remedies])])


def save_bookings_csv(path: str, bookings: Iterable[Booking]):
    with open(path, 'w', newline='') as f:
        w = csv.writer(f)
        w.writerow(['room_id', 'session_id', 'date', 'start', 'end'])
        for b in sorted(bookings, key=lambda b: (b.room_id, b.date, b.start)):
            w.writerow([b.room_id, b.session_id, b.date.isoformat(),
                        b.start.strftime('%H:%M'), b.end.strftime('%H:%M')])
