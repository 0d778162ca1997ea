import logging
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from ..availability import occupancy
from ..models import Diagnostic, Plan, PlanItem, Remedy, REPLAN, RESCHEDULE, ROOM_OCCUPIED
from ..store import SUCCESS
from .planner import plan_assignments, resolve_headcounts

logger = logging.getLogger(__name__)


@dataclass
class CommitReport:
    committed: List[PlanItem] = field(default_factory=list)
    diagnostics: List[Diagnostic] = field(default_factory=list)


def _race_diagnostic(item: PlanItem, taken_by: List[str]) -> Diagnostic:
    by = f" by {', '.join(taken_by)}" if taken_by else ""
    return Diagnostic(
        session_id=item.session_id,
        reason=ROOM_OCCUPIED,
        message=f"Room {item.room_id} was booked{by} before this assignment was saved.",
        remedies=[
            Remedy(kind=REPLAN, label="Plan again",
                   description="Run automatic assignment again for this session only.",
                   params={"session_id": item.session_id}),
            Remedy(kind=RESCHEDULE, label="Reschedule session",
                   description="Move the session to another date or time.",
                   params={"session_id": item.session_id}),
        ],
        rooms=[item.room_id],
    )


def _try_commit(store, item: PlanItem) -> Optional[Diagnostic]:
    current = store.list_bookings(item.date)
    taken = occupancy(current, item.room_id, item.date, item.start, item.end, excluding=item.session_id)
    if taken:
        return _race_diagnostic(item, [o.session_id for o in taken])
    if store.commit_booking(item.room_id, item.session_id, force=not item.capacity_ok) != SUCCESS:
        return _race_diagnostic(item, [])
    return None


def commit_plan(plan: Plan, store, replan: bool = False,
                headcounts: Optional[Mapping[str, int]] = None) -> CommitReport:
    """Write accepted plan items to ``store`` one at a time.

    Each item is re-checked against the store's current bookings right
    before its write. A lost race is reported as a ``room_occupied``
    diagnostic and the remaining items are still committed. With
    ``replan`` the losing session is planned again alone against fresh
    data and the new choice committed once.
    """
    report = CommitReport()
    for item in plan.accepted:
        diag = _try_commit(store, item)
        if diag is None:
            report.committed.append(item)
            continue
        logger.warning("commit of session %s into %s lost a race", item.session_id, item.room_id)
        if replan:
            retry = replan_session(store, item.session_id, headcounts)
            if retry is not None and retry.accepted:
                again = retry.accepted[0]
                if _try_commit(store, again) is None:
                    report.committed.append(again)
                    continue
            elif retry is not None and retry.diagnostics:
                diag = retry.diagnostics[0]
        report.diagnostics.append(diag)
    logger.info("committed %d of %d accepted items", len(report.committed), len(plan.accepted))
    return report


def replan_session(store, session_id: str, headcounts: Optional[Mapping[str, int]] = None) -> Optional[Plan]:
    """Plan one session alone against the store's current state.

    Returns None for an unknown session or one that already holds a room.
    A class with no headcount raises ``ContractViolation``.
    """
    session = store.get_session(session_id)
    if session is None or session.room_id is not None:
        return None
    source = headcounts if headcounts is not None and session.class_id in headcounts else store
    counts = resolve_headcounts([session], source)
    return plan_assignments([session], store.list_active_rooms(), store.list_bookings(session.date), counts)


def unassign(store, session_id: str) -> None:
    store.clear_booking(session_id)
