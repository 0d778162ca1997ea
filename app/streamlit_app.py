import sys, os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import io
import time
import datetime as dt

import pandas as pd
import streamlit as st

from roomplan.io_utils import load_rooms, load_headcounts, load_sessions
from roomplan.config import DEFAULT_DAY_START, DEFAULT_DAY_END
from roomplan.models import (
    ContractViolation, CLEAR_OVERRIDE, CREATE_ROOM, REPLAN, RESCHEDULE, USE_LARGEST_ROOM, VIEW_ROOM_SCHEDULE,
)
from roomplan.overrides import Overrides
from roomplan.store import InMemoryStore, SUCCESS
from roomplan.remedies import apply_remedy
from roomplan.planning.planner import plan_assignments, resolve_headcounts
from roomplan.planning.commit import commit_plan
from roomplan.planning.evaluation import summary, plan_frame, diagnostics_frame, availability_frame

# ---------------------------------------------------------------------
# Page config
# ---------------------------------------------------------------------
st.set_page_config(page_title="RoomPlan – Classroom Assignment", layout="wide")
st.title("RoomPlan – Best-fit Classroom Assignment")

# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------
def _bytes_of(upload):
    if upload is None:
        return None
    return upload.getvalue()

def _remedy_controls(remedy, store, overrides, key):
    """Render the action for one remedy; returns True when the plan is stale."""
    if remedy.kind == CLEAR_OVERRIDE:
        if st.button(remedy.label, key=key):
            apply_remedy(remedy, store, overrides)
            return True
    elif remedy.kind == USE_LARGEST_ROOM:
        if st.button(remedy.label, key=key):
            if apply_remedy(remedy, store) == SUCCESS:
                st.success(f"Booked {remedy.params['room_id']} for {remedy.params['session_id']}.")
                return True
            st.warning(f"{remedy.params['room_id']} was taken meanwhile.")
    elif remedy.kind == CREATE_ROOM:
        c1, c2 = st.columns(2)
        room_id = c1.text_input("New room id", key=f"{key}-id")
        name = c2.text_input("Name", key=f"{key}-name")
        if st.button(remedy.label, key=key, disabled=not room_id):
            try:
                apply_remedy(remedy, store, room_id=room_id.strip(), name=name.strip() or None)
            except ValueError as e:
                st.error(str(e))
                return False
            return True
    elif remedy.kind == RESCHEDULE:
        current = store.get_session(remedy.params["session_id"])
        c1, c2, c3 = st.columns(3)
        new_day = c1.date_input("New date", value=current.date, key=f"{key}-date")
        start = c2.time_input("Start", value=current.start, key=f"{key}-start")
        end = c3.time_input("End", value=current.end, key=f"{key}-end")
        if st.button(remedy.label, key=key):
            try:
                apply_remedy(remedy, store, date=new_day, start=start, end=end)
            except ValueError as e:
                st.error(str(e))
                return False
            return True
    elif remedy.kind == VIEW_ROOM_SCHEDULE:
        if st.button(remedy.label, key=key):
            occ = apply_remedy(remedy, store)
            st.table(pd.DataFrame(
                [(o.session_id, o.start.strftime("%H:%M"), o.end.strftime("%H:%M")) for o in occ],
                columns=["session_id", "start", "end"],
            ))
    elif remedy.kind == REPLAN:
        if st.button(remedy.label, key=key):
            try:
                retry = apply_remedy(remedy, store, headcounts=st.session_state.get("headcounts"))
            except ContractViolation as e:
                st.error(str(e))
                return False
            if retry is not None and retry.accepted:
                report = commit_plan(retry, store)
                if report.committed:
                    st.success(f"Booked {report.committed[0].room_id} for {report.committed[0].session_id}.")
                    return True
            st.warning("No free room for this session; try rescheduling it.")
    return False

# ---------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------
@st.cache_data
def load_rooms_cached(rooms_bytes: bytes):
    return load_rooms(io.BytesIO(rooms_bytes))

@st.cache_data
def load_headcounts_cached(classes_bytes: bytes):
    return load_headcounts(io.BytesIO(classes_bytes))

@st.cache_data
def load_sessions_cached(sessions_bytes: bytes):
    return load_sessions(io.BytesIO(sessions_bytes))

# ---------------------------------------------------------------------
# State: the store lives for the browser session, overrides for one run
# ---------------------------------------------------------------------
if "overrides" not in st.session_state:
    st.session_state.overrides = Overrides()
if "plan" not in st.session_state:
    st.session_state.plan = None

with st.form("inputs"):
    c1, c2, c3 = st.columns(3)
    rooms_file = c1.file_uploader("Rooms CSV (id,capacity,...)", type=["csv"])
    classes_file = c2.file_uploader("Classes CSV (class_id,headcount)", type=["csv"])
    sessions_file = c3.file_uploader("Sessions CSV (id,class_id,date,start,end,...)", type=["csv"])
    loaded = st.form_submit_button("Load data")

if loaded:
    if not (rooms_file and classes_file and sessions_file):
        st.error("Please upload rooms, classes and sessions.")
        st.stop()
    st.session_state.store = InMemoryStore(
        load_rooms_cached(_bytes_of(rooms_file)),
        load_sessions_cached(_bytes_of(sessions_file)),
        headcounts=load_headcounts_cached(_bytes_of(classes_file)),
    )
    st.session_state.overrides = Overrides()
    st.session_state.plan = None
    st.session_state.commit_diagnostics = []

if "store" not in st.session_state:
    st.info("Upload the three CSV files to start.")
    st.stop()

store: InMemoryStore = st.session_state.store
overrides: Overrides = st.session_state.overrides

# ---------------------------------------------------------------------
# Availability overview
# ---------------------------------------------------------------------
st.subheader("Room availability")
a1, a2, a3 = st.columns(3)
day = a1.date_input("Date", value=dt.date.today())
day_start = a2.time_input("Day starts", value=DEFAULT_DAY_START)
day_end = a3.time_input("Day ends", value=DEFAULT_DAY_END)
st.dataframe(availability_frame(store.list_active_rooms(), store.list_bookings(day), day,
                                day_start=day_start, day_end=day_end), use_container_width=True)

# ---------------------------------------------------------------------
# Manual overrides
# ---------------------------------------------------------------------
st.subheader("Manual rooms")
only_day = st.checkbox("Only sessions on the selected date", value=True)
sessions = store.list_unassigned_sessions(day if only_day else None)
room_ids = [r.id for r in store.list_active_rooms()]
if sessions and room_ids:
    o1, o2, o3 = st.columns([2, 2, 1])
    pin_session = o1.selectbox("Session", [s.id for s in sessions])
    pin_room = o2.selectbox("Room", room_ids)
    if o3.button("Pin room"):
        overrides.set(pin_session, pin_room)
if len(overrides):
    st.table(pd.DataFrame(list(overrides.items()), columns=["session_id", "room_id"]))
    if st.button("Clear all pins"):
        overrides.clear_all()

# ---------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------
if st.button("Plan assignments"):
    t0 = time.perf_counter()
    try:
        headcounts = resolve_headcounts(sessions, store)
        st.session_state.plan = plan_assignments(sessions, store.list_active_rooms(),
                                                 store.list_bookings(), headcounts, overrides)
    except ContractViolation as e:
        st.error(f"Cannot plan: {e}")
        st.stop()
    st.session_state.headcounts = headcounts
    st.caption(f"Planning time: {time.perf_counter() - t0:.3f}s")

plan = st.session_state.plan
if plan is not None:
    st.subheader("Summary")
    st.text(summary(store.list_active_rooms(), sessions, plan, store.list_bookings()))

    st.subheader("Accepted")
    st.dataframe(plan_frame(plan), use_container_width=True)

    if plan.diagnostics:
        st.subheader("Needs attention")
        st.dataframe(diagnostics_frame(plan), use_container_width=True)
        for i, d in enumerate(plan.diagnostics):
            with st.expander(f"{d.session_id}: {d.message}"):
                for j, r in enumerate(d.remedies):
                    st.write(f"**{r.label}** – {r.description}")
                    if _remedy_controls(r, store, overrides, key=f"remedy-{i}-{j}"):
                        st.session_state.plan = None
                        st.rerun()

    if plan.accepted and st.button("Confirm assignments"):
        report = commit_plan(plan, store, replan=True, headcounts=st.session_state.get("headcounts"))
        overrides.clear_all()
        st.session_state.plan = None
        st.session_state.commit_diagnostics = report.diagnostics
        st.success(f"Saved {len(report.committed)} of {len(plan.accepted)} assignments.")

# ---------------------------------------------------------------------
# Assignments lost at commit time
# ---------------------------------------------------------------------
for i, d in enumerate(st.session_state.get("commit_diagnostics", [])):
    st.warning(f"{d.session_id}: {d.message}")
    with st.expander(f"Fix {d.session_id}"):
        for j, r in enumerate(d.remedies):
            st.write(f"**{r.label}** – {r.description}")
            if _remedy_controls(r, store, overrides, key=f"commit-remedy-{i}-{j}"):
                st.session_state.commit_diagnostics = [
                    x for x in st.session_state.commit_diagnostics if x.session_id != d.session_id
                ]
                st.rerun()
