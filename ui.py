import os
from datetime import datetime

import streamlit as st

from taskboard.services.board import (
    PRIORITIES,
    STAT_KINDS,
    ExtractionFailed,
    format_due_date,
    request_extraction,
)
from taskboard.services.store import BoardStore, load_board, save_board

st.set_page_config(page_title="AI TaskMaster", layout="wide")

API_BASE = st.sidebar.text_input("API Base URL", value=os.getenv("TASKBOARD_API_BASE", "http://127.0.0.1:8000"))
st.sidebar.markdown("---")

PRIORITY_LABELS = {"P1": "P1 - High", "P2": "P2 - Medium", "P3": "P3 - Low"}
PRIORITY_BADGES = {"P1": "🔴 P1", "P2": "🟠 P2", "P3": "🟢 P3"}

store = BoardStore()
if "board" not in st.session_state:
    st.session_state.board = load_board(store)
    st.session_state.transcript_input = st.session_state.board.transcript
board = st.session_state.board


def persist():
    save_board(store, board)


st.title("AI TaskMaster")
st.caption("Meeting transcript → AI task extraction • filter, sort, search • saved locally")

# ----------------- Stats -----------------
stats = board.stats()
c1, c2, c3, c4 = st.columns(4)
c1.metric("Total Tasks", stats["total"])
c2.metric("Completed", stats["completed"])
c3.metric("Pending", stats["pending"])
c4.metric("High Priority", stats["high_priority"])

with st.expander("Task details by status"):
    kind = st.radio("Show", STAT_KINDS, horizontal=True)
    details = board.tasks_for_stat(kind)
    if details:
        st.table([{"Task": t.description, "Assignee": t.assignee, "Due": t.due_date,
                   "Priority": t.priority, "Done": t.completed} for t in details])
    else:
        st.write("No tasks in this group yet.")

# ----------------- Extraction -----------------
st.subheader("AI-Powered Task Extraction")
transcript = st.text_area(
    "Meeting Transcript",
    key="transcript_input",
    placeholder="John, please finish the homepage design by Friday. Sarah, can you handle the client presentation for next Tuesday?",
    height=160,
)
if transcript != board.transcript:
    board.transcript = transcript
    persist()

if st.button("Extract Tasks with AI", type="primary", disabled=not transcript.strip()):
    with st.spinner("AI is extracting tasks..."):
        try:
            candidates = request_extraction(API_BASE, transcript)
        except ExtractionFailed as e:
            candidates = None
            st.error("Extraction Failed. Please ensure the Gemini API key is configured and try again.")
            st.code(str(e))

    if candidates is not None:
        if not candidates:
            st.warning("No tasks found. Try being more specific about tasks and assignments.")
        else:
            new_tasks = board.merge_extracted(candidates)
            persist()
            del st.session_state["transcript_input"]
            st.success(f"{len(new_tasks)} tasks have been added to your board.")
            st.rerun()

# ----------------- Add Task -----------------
with st.expander("➕ Add Task"):
    with st.form("add_task", clear_on_submit=True):
        description = st.text_input("Description")
        assignee = st.text_input("Assignee")
        has_due = st.checkbox("Set a due date")
        due_day = st.date_input("Due date")
        due_time = st.time_input("Due time")
        priority = st.selectbox("Priority Level", PRIORITIES, index=2, format_func=PRIORITY_LABELS.get)
        if st.form_submit_button("Add Task"):
            due = format_due_date(datetime.combine(due_day, due_time)) if has_due else "No deadline"
            try:
                board.add_task(description, assignee, due, priority)
            except ValueError as e:
                st.error(str(e))
            else:
                persist()
                st.success("New task has been added successfully.")

# ----------------- Filters -----------------
f1, f2, f3, f4 = st.columns([2, 1, 1, 1])
search = f1.text_input("Search tasks...")
filter_priority = f2.selectbox("Priority", ["all", *PRIORITIES],
                               format_func=lambda p: "All Priorities" if p == "all" else PRIORITY_LABELS[p])
filter_status = f3.selectbox("Status", ["all", "pending", "completed"], format_func=str.title)
sort_by = f4.selectbox("Sort by", ["priority", "assignee"], format_func=str.title)

visible = board.visible_tasks(filter_priority, filter_status, search, sort_by)
st.subheader(f"Task Board ({len(visible)} tasks)")

if not visible:
    if search or filter_priority != "all" or filter_status != "all":
        st.info("No tasks found. Try adjusting your filters or search terms.")
    else:
        st.info("No tasks found. Paste a meeting transcript above or add tasks manually to get started.")

cols = st.columns(3)
for i, task in enumerate(visible):
    with cols[i % 3]:
        with st.container(border=True):
            title = f"~~{task.description}~~" if task.completed else f"**{task.description}**"
            st.markdown(f"{PRIORITY_BADGES[task.priority]} {title}")
            st.caption(f"👤 {task.assignee} • 📅 {task.due_date}")
            a, b = st.columns(2)
            if a.button("Undo" if task.completed else "Complete", key=f"toggle-{task.id}"):
                board.toggle(task.id)
                persist()
                st.rerun()
            if b.button("Delete", key=f"delete-{task.id}"):
                board.delete(task.id)
                persist()
                st.toast("Task has been removed from your board.")
                st.rerun()
