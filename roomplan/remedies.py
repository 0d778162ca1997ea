"""Turn a diagnostic's remedy tags into actions on the store and overrides."""
import logging
from datetime import date

from .availability import occupancy
from .config import DEFAULT_DAY_START, DEFAULT_DAY_END
from .planning.commit import replan_session
from .models import (
    Room, Remedy, CLEAR_OVERRIDE, CREATE_ROOM, REPLAN, RESCHEDULE, USE_LARGEST_ROOM,
    VIEW_ROOM_SCHEDULE,
)

logger = logging.getLogger(__name__)


def apply_remedy(remedy: Remedy, store, overrides=None, **kwargs):
    """Carry out ``remedy``.

    Returns whatever the action produced: the store's commit result for
    ``use_largest_room``, the new ``Room`` for ``create_room``, the moved
    session for ``reschedule``, the occupancy list for
    ``view_room_schedule`` and a fresh ``Plan`` for ``replan``.
    ``reschedule`` needs ``date``, ``start`` and ``end`` keyword arguments;
    ``create_room`` needs ``room_id`` and may take ``name``.
    """
    p = remedy.params
    if remedy.kind == CLEAR_OVERRIDE:
        if overrides is None:
            raise ValueError("clear_override needs the overrides in use")
        overrides.clear(p["session_id"])
        return None
    if remedy.kind == USE_LARGEST_ROOM:
        logger.info("forcing session %s into %s (short by %s)", p["session_id"], p["room_id"], p.get("shortfall"))
        return store.commit_booking(p["room_id"], p["session_id"], force=True)
    if remedy.kind == CREATE_ROOM:
        room = Room(id=kwargs["room_id"], capacity=int(kwargs.get("capacity", p["capacity"])),
                    name=kwargs.get("name"))
        return store.add_room(room)
    if remedy.kind == RESCHEDULE:
        try:
            new_day, start, end = kwargs["date"], kwargs["start"], kwargs["end"]
        except KeyError as e:
            raise ValueError(f"reschedule needs a new {e.args[0]}") from e
        return store.reschedule_session(p["session_id"], new_day, start, end)
    if remedy.kind == VIEW_ROOM_SCHEDULE:
        day = date.fromisoformat(p["date"])
        return occupancy(store.list_bookings(day), p["room_id"], day,
                         kwargs.get("start", DEFAULT_DAY_START), kwargs.get("end", DEFAULT_DAY_END))
    if remedy.kind == REPLAN:
        return replan_session(store, p["session_id"], kwargs.get("headcounts"))
    raise ValueError(f"unknown remedy kind {remedy.kind!r}")
