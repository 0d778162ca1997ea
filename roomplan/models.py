from dataclasses import dataclass, field
from datetime import date, time
from typing import Any, Dict, List, Optional


class ContractViolation(ValueError):
    """Raised when the caller hands the planner malformed input."""


@dataclass
class Room:
    id: str
    capacity: int
    name: Optional[str] = None
    building: Optional[str] = None
    floor: Optional[str] = None
    is_active: bool = True

    @property
    def label(self) -> str:
        return self.name or self.id


@dataclass
class Session:
    id: str
    class_id: str
    date: Optional[date] = None
    start: Optional[time] = None
    end: Optional[time] = None
    kind: str = "course"
    room_id: Optional[str] = None  # current assignment, None = unassigned


@dataclass
class Booking:
    room_id: str
    session_id: str
    # window copied from the session for conflict checks
    date: date
    start: time
    end: time


@dataclass(frozen=True)
class Occupancy:
    start: time
    end: time
    session_id: str


@dataclass(frozen=True)
class Slot:
    start: time
    end: time


# remedy kinds
USE_LARGEST_ROOM = "use_largest_room"
CREATE_ROOM = "create_room"
RESCHEDULE = "reschedule"
VIEW_ROOM_SCHEDULE = "view_room_schedule"
CLEAR_OVERRIDE = "clear_override"
REPLAN = "replan"

# diagnostic reasons
NO_ROOM_LARGE_ENOUGH = "no_room_large_enough"
ALL_ROOMS_OCCUPIED = "all_rooms_occupied"
MANUAL_ROOM_OCCUPIED = "manual_room_occupied"
MANUAL_ROOM_UNAVAILABLE = "manual_room_unavailable"
ROOM_OCCUPIED = "room_occupied"


@dataclass
class Remedy:
    kind: str
    label: str
    description: str
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "label": self.label,
            "description": self.description,
            "params": dict(self.params),
        }


@dataclass
class Diagnostic:
    session_id: str
    reason: str
    message: str
    remedies: List[Remedy] = field(default_factory=list)
    # rooms involved in the failure (pinned room, conflicting rooms, ...)
    rooms: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "reason": self.reason,
            "message": self.message,
            "remedies": [r.to_dict() for r in self.remedies],
            "rooms": list(self.rooms),
        }


@dataclass
class PlanItem:
    session_id: str
    room_id: str
    date: date
    start: time
    end: time
    headcount: int
    capacity: int
    efficiency: float
    source: str = "auto"  # "auto" | "manual"

    @property
    def capacity_ok(self) -> bool:
        return self.capacity >= self.headcount

    def to_booking(self) -> Booking:
        return Booking(room_id=self.room_id, session_id=self.session_id,
                       date=self.date, start=self.start, end=self.end)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "room_id": self.room_id,
            "date": self.date.isoformat(),
            "start": self.start.strftime("%H:%M"),
            "end": self.end.strftime("%H:%M"),
            "headcount": self.headcount,
            "capacity": self.capacity,
            "efficiency": round(self.efficiency, 4),
            "source": self.source,
            "capacity_ok": self.capacity_ok,
        }


@dataclass
class Plan:
    accepted: List[PlanItem] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accepted": [i.to_dict() for i in self.accepted],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
