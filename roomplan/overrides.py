from typing import Dict, Iterator, Mapping, Optional, Tuple


class Overrides:
    """Caller-owned session -> room preferences for one planning run.

    Setting is last-write-wins and does no validation; the planner checks
    each pin against the working occupancy. Nothing here is persisted.
    """

    def __init__(self, pins: Optional[Mapping[str, str]] = None):
        self._pins: Dict[str, str] = dict(pins or {})

    def set(self, session_id: str, room_id: str) -> None:
        self._pins[session_id] = room_id

    def clear(self, session_id: str) -> None:
        self._pins.pop(session_id, None)

    def clear_all(self) -> None:
        self._pins.clear()

    def get(self, session_id: str) -> Optional[str]:
        return self._pins.get(session_id)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(list(self._pins.items()))

    def copy(self) -> "Overrides":
        return Overrides(self._pins)

    def as_dict(self) -> Dict[str, str]:
        return dict(self._pins)

    def __contains__(self, session_id) -> bool:
        return session_id in self._pins

    def __len__(self) -> int:
        return len(self._pins)

    def __repr__(self):
        return f"Overrides({self._pins!r})"
