import argparse
import logging

from roomplan.io_utils import (
    load_rooms, load_headcounts, load_sessions, load_overrides, parse_date, parse_time,
    save_plan_csv, save_diagnostics_csv, save_bookings_csv
)
from roomplan.config import DEFAULT_DAY_START, DEFAULT_DAY_END
from roomplan.overrides import Overrides
from roomplan.store import InMemoryStore
from roomplan.planning.planner import plan_assignments, resolve_headcounts
from roomplan.planning.commit import commit_plan
from roomplan.planning.evaluation import summary, availability_frame


def main(argv=None):
    p = argparse.ArgumentParser(description="RoomPlan – Best-fit classroom assignment")
    # Inputs
    p.add_argument('--rooms', type=str, required=True, help='rooms.csv with id,capacity[,name,building,floor,is_active]')
    p.add_argument('--classes', type=str, required=True, help='classes.csv with class_id,headcount')
    p.add_argument('--sessions', type=str, required=True,
                   help='sessions.csv with id,class_id,date,start,end[,type,room_id]')
    p.add_argument('--overrides', type=str, required=False, help='Optional CSV session_id,room_id')
    p.add_argument('--date', type=str, default=None, help='Only plan sessions on this date (YYYY-MM-DD)')
    p.add_argument('--default_headcount', type=int, default=None,
                   help='Headcount for classes missing from classes.csv (default: reject)')

    # Commit
    p.add_argument('--commit', action='store_true', help='Write accepted assignments to the booking set')
    p.add_argument('--replan', action='store_true', help='Re-plan sessions that lose their room at commit')

    # Availability overview
    p.add_argument('--availability', action='store_true', help='Print the room availability for --date')
    p.add_argument('--day_start', type=str, default=DEFAULT_DAY_START.strftime('%H:%M'))
    p.add_argument('--day_end', type=str, default=DEFAULT_DAY_END.strftime('%H:%M'))

    # Output
    p.add_argument('--out_plan', type=str, default='plan.csv')
    p.add_argument('--out_diagnostics', type=str, default='diagnostics.csv')
    p.add_argument('--out_bookings', type=str, default='bookings.csv')
    p.add_argument('--log-level', dest='log_level', type=str, default='WARNING')
    args = p.parse_args(argv)

    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING),
                        format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    rooms = load_rooms(args.rooms)
    counts = load_headcounts(args.classes)
    store = InMemoryStore(rooms, load_sessions(args.sessions), headcounts=counts)
    day = parse_date(args.date) if args.date else None

    if args.availability:
        if day is None:
            raise SystemExit("--availability needs --date")
        print(availability_frame(store.list_active_rooms(), store.list_bookings(day), day,
                                 day_start=parse_time(args.day_start),
                                 day_end=parse_time(args.day_end)).to_string(index=False))
        print()

    sessions = store.list_unassigned_sessions(day)
    bookings = store.list_bookings(day)
    headcounts = resolve_headcounts(sessions, store, default_headcount=args.default_headcount)
    overrides = Overrides(load_overrides(args.overrides)) if args.overrides else Overrides()

    plan = plan_assignments(sessions, store.list_active_rooms(), bookings, headcounts, overrides)

    print(summary(store.list_active_rooms(), sessions, plan, bookings))
    for d in plan.diagnostics:
        print(f"[{d.reason}] {d.session_id}: {d.message}")
        for r in d.remedies:
            print(f"    - {r.label}: {r.description}")

    save_plan_csv(args.out_plan, plan)
    save_diagnostics_csv(args.out_diagnostics, plan)
    saved = [args.out_plan, args.out_diagnostics]

    if args.commit:
        report = commit_plan(plan, store, replan=args.replan, headcounts=headcounts)
        print(f"Committed {len(report.committed)} of {len(plan.accepted)} assignments")
        for d in report.diagnostics:
            print(f"[{d.reason}] {d.session_id}: {d.message}")
        save_bookings_csv(args.out_bookings, store.list_bookings())
        saved.append(args.out_bookings)

    print(f"Saved: {', '.join(saved)}")


if __name__ == '__main__':
    main()
