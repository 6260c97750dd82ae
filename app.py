"""DriveCoach — driving school mock tests (full license + restricted)."""
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path

# Ensure project root is in path
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import streamlit as st

from db import get_draft_writer, get_drafts, get_settings, get_store
from drivecoach import full_license, restricted
from drivecoach.constants import (
    ASSESSMENT_TYPE_FULL_LICENSE,
    ASSESSMENT_TYPE_RESTRICTED,
    FULL_LICENSE_ASSESSMENT_ITEMS,
    FULL_LICENSE_CRITICAL_ERRORS,
    FULL_LICENSE_IMMEDIATE_ERRORS,
    FULL_LICENSE_MODES,
    FULL_LICENSE_TASKS,
    FULL_LICENSE_WEATHER,
    HAZARD_CATEGORIES,
    HAZARD_DIRECTIONS,
    HAZARD_LAYOUT,
    HAZARD_RESPONSES,
    RESTRICTED_CRITICAL_ERRORS,
    RESTRICTED_FAULT_CATEGORIES,
    RESTRICTED_IMMEDIATE_ERRORS,
    RESTRICTED_STAGES,
)
from drivecoach.dates import format_display_date, today_display
from drivecoach.schemas import decode_full_license, decode_restricted, encode, is_uuid
from drivecoach.submission import render_assessment, submit_full_license, submit_restricted
from engine import (
    DEFAULT_DRILL_TARGET,
    STAGE_DETAILS,
    STAGE_RUN,
    STAGE_SUMMARY,
    clamp_target,
    format_mmss,
    next_rep,
    resume_seconds,
    session_seconds,
    session_stage,
    time_left,
)

PAGES = ["Dashboard", "Full License Mock Test", "Restricted Mock Test"]
TYPE_LABELS = {
    ASSESSMENT_TYPE_FULL_LICENSE: "Full License Mock Test",
    ASSESSMENT_TYPE_RESTRICTED: "Restricted Mock Test",
}

st.set_page_config(page_title="DriveCoach", layout="wide")
st.sidebar.title("DriveCoach")
default_page = st.query_params.get("page", "Dashboard")
if default_page not in PAGES:
    default_page = "Dashboard"
page = st.sidebar.radio("Navigate", PAGES, index=PAGES.index(default_page), label_visibility="collapsed")
user_id = st.sidebar.text_input("Your user ID", key="user_id").strip()
if user_id and not is_uuid(user_id):
    st.sidebar.error("User ID must be a UUID (e.g. 0c7d6f0a-95a1-4b7e-8a5c-3e4d2f1b6a22).")
    user_id = ""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _student_label(student: dict) -> str:
    return f"{student.get('first_name', '')} {student.get('last_name', '')}".strip() or student.get("id", "")


def _load_students():
    try:
        return get_store().list_students()
    except Exception as e:
        st.error(f"Could not load students. Check DB and .env (SUPABASE_URL, SUPABASE_KEY). {e}")
        st.stop()


def _pick_student(prefix: str):
    students = _load_students()
    if not students:
        st.info("No active students yet.")
        st.stop()
    by_id = {s["id"]: s for s in students}
    student_id = st.selectbox(
        "Student", list(by_id), format_func=lambda sid: _student_label(by_id[sid]), key=f"{prefix}_student"
    )
    return by_id[student_id]


def _draft_prompt(prefix: str, assessment_type: str, student: dict):
    """Offer to resume or discard a saved draft once per student. Returns the resumed record or None."""
    seen_key = f"{prefix}_draft_checked"
    if st.session_state.get(seen_key) == student["id"]:
        return None
    drafts = get_drafts()
    if not drafts.exists(assessment_type, user_id, student["id"]):
        st.session_state[seen_key] = student["id"]
        return None
    record = drafts.load(assessment_type, user_id, student["id"])
    if record is None:
        st.session_state[seen_key] = student["id"]
        return None
    st.warning("A saved draft exists for this student.")
    col1, col2 = st.columns(2)
    if col1.button("Resume draft", key=f"{prefix}_resume", type="primary"):
        st.session_state[seen_key] = student["id"]
        return record
    if col2.button("Discard draft", key=f"{prefix}_discard"):
        drafts.delete(assessment_type, user_id, student["id"])
        st.session_state[seen_key] = student["id"]
        st.rerun()
    st.stop()


def _schedule_draft(assessment_type: str, raw: dict, decoder) -> None:
    result = decoder(raw)
    if result.ok:
        get_draft_writer().schedule(assessment_type, user_id, raw["studentId"], result.record)


def _count_inputs(prefix: str, labels, counts: dict) -> None:
    for i, label in enumerate(labels):
        counts[label] = int(st.number_input(label, min_value=0, step=1, value=int(counts.get(label, 0)), key=f"{prefix}_{i}"))


def _show_submit_result(result) -> None:
    if not result.ok:
        st.error(result.message)
        for err in result.errors:
            st.caption(err)
        return
    if result.report is None:
        st.warning(result.message)
    else:
        st.success(result.message)
        file_name, data = result.report
        st.download_button("Download PDF", data=data, file_name=file_name, mime="application/pdf")


# ----- Dashboard -----
if page == "Dashboard":
    st.header("Dashboard")
    try:
        store = get_store()
        assessments = store.list_assessments(limit=50)
        students = {s["id"]: s for s in store.list_students()}
    except Exception as e:
        st.error(f"Could not load assessments. Check DB and .env (SUPABASE_URL, SUPABASE_KEY). {e}")
        st.stop()
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Start Full License Mock Test", type="primary", use_container_width=True):
            st.query_params["page"] = "Full License Mock Test"
            st.rerun()
    with col2:
        if st.button("Start Restricted Mock Test", use_container_width=True):
            st.query_params["page"] = "Restricted Mock Test"
            st.rerun()

    if not assessments:
        st.info("No assessments saved yet.")
    for row in assessments:
        student = students.get(row.get("student_id"), {})
        score = row.get("total_score")
        title = (
            f"{format_display_date(row.get('assessment_date'))} · {_student_label(student) or 'Unknown student'} · "
            f"{TYPE_LABELS.get(row.get('assessment_type'), row.get('assessment_type'))}"
            + (f" · {score}%" if score is not None else "")
        )
        with st.expander(title):
            if st.button("Prepare PDF", key=f"pdf_{row['id']}"):
                try:
                    file_name, data = render_assessment(row, get_settings().organization)
                    st.download_button("Download PDF", data=data, file_name=file_name, mime="application/pdf",
                                       key=f"dl_{row['id']}")
                except ValueError as e:
                    st.error(f"This assessment cannot be rendered: {e}")

# ----- Full License Mock Test -----
elif page == "Full License Mock Test":
    st.header("Full License Mock Test")
    if not user_id:
        st.info("Enter your user ID in the sidebar to start.")
        st.stop()
    student = _pick_student("fl")

    if st.session_state.get("fl_student_id") != student["id"]:
        st.session_state["fl_student_id"] = student["id"]
        st.session_state["fl_record"] = {
            "studentId": student["id"],
            "date": today_display(),
            "time": datetime.now().strftime("%H:%M"),
            "candidateName": _student_label(student),
            "mode": "official",
            "weather": "dry",
            "drillLeftTarget": DEFAULT_DRILL_TARGET,
            "drillRightTarget": DEFAULT_DRILL_TARGET,
            "attempts": [],
            "critical": full_license.create_error_counts(FULL_LICENSE_CRITICAL_ERRORS),
            "immediate": full_license.create_error_counts(FULL_LICENSE_IMMEDIATE_ERRORS),
        }
        st.session_state["fl_stage"] = STAGE_DETAILS
        st.session_state["fl_remaining"] = session_seconds("official")
        st.session_state["fl_running_since"] = None
        st.session_state["fl_result"] = None

    resumed = _draft_prompt("fl", ASSESSMENT_TYPE_FULL_LICENSE, student)
    if resumed is not None:
        st.session_state["fl_record"] = encode(resumed)
        st.session_state["fl_stage"] = session_stage(resumed.start_time_iso, resumed.end_time_iso)
        st.session_state["fl_remaining"] = resume_seconds(resumed.mode, resumed.remaining_seconds)
        st.session_state["fl_running_since"] = None
        st.rerun()

    rec = st.session_state["fl_record"]
    stage = st.session_state["fl_stage"]

    # Details
    with st.expander("Test details", expanded=stage == STAGE_DETAILS):
        col1, col2 = st.columns(2)
        rec["date"] = col1.text_input("Date (DD/MM/YYYY)", value=rec.get("date", ""))
        rec["time"] = col2.text_input("Time", value=rec.get("time", ""))
        rec["candidateName"] = col1.text_input("Candidate", value=rec.get("candidateName", ""))
        rec["instructor"] = col2.text_input("Instructor", value=rec.get("instructor", ""))
        rec["locationArea"] = col1.text_input("Area / route", value=rec.get("locationArea", ""))
        rec["vehicle"] = col2.text_input("Vehicle", value=rec.get("vehicle", ""))
        locked = rec.get("startTimeISO") is not None
        rec["mode"] = col1.radio(
            "Mode", FULL_LICENSE_MODES, index=FULL_LICENSE_MODES.index(rec.get("mode", "official")),
            horizontal=True, disabled=locked,
        )
        rec["weather"] = col2.selectbox(
            "Weather", list(FULL_LICENSE_WEATHER), index=list(FULL_LICENSE_WEATHER).index(rec.get("weather", "dry")),
            format_func=FULL_LICENSE_WEATHER.get,
        )
        if rec["mode"] == "drill":
            rec["drillLeftTarget"] = clamp_target(
                col1.number_input("Left-turn reps", min_value=1, max_value=30, value=rec.get("drillLeftTarget") or 10)
            )
            rec["drillRightTarget"] = clamp_target(
                col2.number_input("Right-turn reps", min_value=1, max_value=30, value=rec.get("drillRightTarget") or 10)
            )
        if not locked:
            st.session_state["fl_remaining"] = session_seconds(rec["mode"])
        if stage == STAGE_DETAILS and st.button("Start session", type="primary"):
            rec["startTimeISO"] = _now_iso()
            st.session_state["fl_stage"] = STAGE_RUN
            st.session_state["fl_running_since"] = datetime.now(timezone.utc)
            st.rerun()

    # Timer
    left = time_left(st.session_state["fl_remaining"], st.session_state["fl_running_since"])
    rec["remainingSeconds"] = left
    st.sidebar.metric("Time left", format_mmss(left))
    if stage == STAGE_RUN:
        running = st.session_state["fl_running_since"] is not None
        if st.sidebar.button("Pause" if running else "Resume timer"):
            st.session_state["fl_remaining"] = left
            st.session_state["fl_running_since"] = None if running else datetime.now(timezone.utc)
            st.rerun()

    # Run: record attempts
    if stage == STAGE_RUN:
        st.subheader("Record attempt")
        tasks = {t["id"]: t for t in FULL_LICENSE_TASKS}
        col1, col2 = st.columns(2)
        task_id = col1.selectbox("Task", list(tasks), format_func=lambda tid: tasks[tid]["name"], key="fl_task")
        variant = col2.selectbox("Variant", tasks[task_id]["variants"], key="fl_variant")
        rep_index, rep_target = next_rep(
            rec["mode"], task_id, rec["attempts"], rec.get("drillLeftTarget") or 10, rec.get("drillRightTarget") or 10
        )
        if rep_target > 1:
            st.caption(f"Rep {rep_index}/{rep_target}")

        items = {}
        for item in FULL_LICENSE_ASSESSMENT_ITEMS:
            items[item["id"]] = st.radio(
                item["label"], ["P", "F"], horizontal=True, key=f"fl_item_{item['id']}",
                format_func=lambda v: "Pass" if v == "P" else "Fail",
            )

        st.markdown("**Hazard perception**")
        hazard_responses = full_license.create_empty_hazard_responses()
        for category, directions in HAZARD_LAYOUT.items():
            cols = st.columns(len(directions) + 1)
            cols[0].write(HAZARD_CATEGORIES[category])
            for col, direction in zip(cols[1:], directions):
                hazard_responses[category][direction] = col.selectbox(
                    HAZARD_DIRECTIONS[direction], list(HAZARD_RESPONSES), index=2,
                    format_func=HAZARD_RESPONSES.get, key=f"fl_hz_{category}_{direction}",
                )
        hazards_spoken = st.text_input("Hazards spoken", key="fl_hazards_spoken")
        actions_spoken = st.text_input("Actions spoken", key="fl_actions_spoken")
        notes = st.text_input("Notes", key="fl_attempt_notes")
        location_tag = st.text_input("Location tag", key="fl_location_tag")

        if st.button("Record attempt", type="primary"):
            error = full_license.validate_attempt(
                hazard_responses, hazards_spoken, actions_spoken,
                mode=rec["mode"], task_id=task_id, attempts=rec["attempts"],
                drill_left_target=rec.get("drillLeftTarget") or 10,
                drill_right_target=rec.get("drillRightTarget") or 10,
            )
            if error:
                st.error(error)
            else:
                rec["attempts"].insert(0, {
                    "id": uuid.uuid4().hex,
                    "createdAt": _now_iso(),
                    "taskId": task_id,
                    "taskName": tasks[task_id]["name"],
                    "variant": variant,
                    "repIndex": rep_index,
                    "repTarget": rep_target,
                    "items": items,
                    "hazardResponses": hazard_responses,
                    "hazardsSpoken": hazards_spoken.strip(),
                    "actionsSpoken": actions_spoken.strip(),
                    "notes": notes.strip(),
                    "locationTag": location_tag.strip(),
                })
                st.success(f"Recorded {tasks[task_id]['name']} ({len(rec['attempts'])} attempts).")

        with st.expander("Critical and immediate failure errors"):
            _count_inputs("fl_crit", FULL_LICENSE_CRITICAL_ERRORS, rec["critical"])
            immediate_before = full_license.count_errors(rec["immediate"], FULL_LICENSE_IMMEDIATE_ERRORS)
            _count_inputs("fl_imm", FULL_LICENSE_IMMEDIATE_ERRORS, rec["immediate"])
            if immediate_before == 0 and full_license.count_errors(rec["immediate"], FULL_LICENSE_IMMEDIATE_ERRORS) > 0:
                # Pause the clock when the first immediate failure is recorded
                st.session_state["fl_remaining"] = left
                st.session_state["fl_running_since"] = None
                st.warning("Immediate fail recorded. The session is paused; you can end and review now.")

        if st.button("End session"):
            rec["endTimeISO"] = _now_iso()
            st.session_state["fl_remaining"] = left
            st.session_state["fl_running_since"] = None
            st.session_state["fl_stage"] = STAGE_SUMMARY
            st.rerun()

    # Live summary
    summary = full_license.calculate_summary(rec["attempts"], rec["critical"], rec["immediate"])
    st.subheader("Summary")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Attempts", summary.attempts_count)
    col2.metric("Score", f"{summary.score_percent}%" if summary.score_percent is not None else "—")
    col3.metric("Critical", summary.critical_total)
    col4.metric("Immediate", summary.immediate_total)
    st.info(f"**{summary.readiness.label}** – {summary.readiness.reason}")
    for i, attempt in enumerate(reversed(rec["attempts"]), 1):
        failed = full_license.failed_item_labels(attempt)
        rep = f" · Rep {attempt['repIndex']}/{attempt['repTarget']}" if attempt["repTarget"] > 1 else ""
        st.caption(f"{i}. {attempt['taskName']} – {attempt['variant']}{rep}: " + (", ".join(failed) or "all pass"))

    if stage == STAGE_SUMMARY:
        rec["overallNotes"] = st.text_area("Overall notes", value=rec.get("overallNotes", ""))
        rec["criticalNotes"] = st.text_area("Critical error notes", value=rec.get("criticalNotes", ""))
        rec["immediateNotes"] = st.text_area("Immediate failure notes", value=rec.get("immediateNotes", ""))
        if st.button("Back to session"):
            rec["endTimeISO"] = None
            st.session_state["fl_stage"] = STAGE_RUN
            st.rerun()
        if st.button("Submit assessment", type="primary"):
            settings = get_settings()
            get_draft_writer().cancel(ASSESSMENT_TYPE_FULL_LICENSE, user_id, student["id"])
            st.session_state["fl_result"] = submit_full_license(
                rec, get_store(), get_drafts(), user_id, settings.organization_id, user_id, settings.organization
            )
        if st.session_state.get("fl_result") is not None:
            _show_submit_result(st.session_state["fl_result"])
            if st.session_state["fl_result"].ok:
                st.stop()

    _schedule_draft(ASSESSMENT_TYPE_FULL_LICENSE, rec, decode_full_license)

# ----- Restricted Mock Test -----
elif page == "Restricted Mock Test":
    st.header("Restricted Mock Test")
    if not user_id:
        st.info("Enter your user ID in the sidebar to start.")
        st.stop()
    student = _pick_student("rs")

    if st.session_state.get("rs_student_id") != student["id"]:
        st.session_state["rs_student_id"] = student["id"]
        st.session_state["rs_record"] = {
            "studentId": student["id"],
            "date": today_display(),
            "time": datetime.now().strftime("%H:%M"),
            "candidateName": _student_label(student),
            "stage2Enabled": False,
            "stagesState": {"stage1": {}, "stage2": {}},
            "critical": full_license.create_error_counts(RESTRICTED_CRITICAL_ERRORS),
            "immediate": full_license.create_error_counts(RESTRICTED_IMMEDIATE_ERRORS),
        }
        st.session_state["rs_result"] = None

    resumed = _draft_prompt("rs", ASSESSMENT_TYPE_RESTRICTED, student)
    if resumed is not None:
        st.session_state["rs_record"] = encode(resumed)
        st.rerun()

    rec = st.session_state["rs_record"]

    with st.expander("Test details", expanded=True):
        col1, col2 = st.columns(2)
        rec["date"] = col1.text_input("Date (DD/MM/YYYY)", value=rec.get("date", ""))
        rec["time"] = col2.text_input("Time", value=rec.get("time", ""))
        rec["candidateName"] = col1.text_input("Candidate", value=rec.get("candidateName", ""))
        rec["instructor"] = col2.text_input("Instructor", value=rec.get("instructor", ""))
        rec["vehicleInfo"] = col1.text_input("Vehicle", value=rec.get("vehicleInfo", ""))
        rec["routeInfo"] = col2.text_input("Route", value=rec.get("routeInfo", ""))
        rec["preDriveNotes"] = st.text_area("Pre-drive notes", value=rec.get("preDriveNotes", ""))

    for stage_def in RESTRICTED_STAGES:
        stage_id = stage_def["id"]
        if stage_id == "stage2":
            rec["stage2Enabled"] = st.toggle("Continue to Stage 2", value=rec.get("stage2Enabled", False))
            if not rec["stage2Enabled"]:
                continue
        st.subheader(stage_def["name"])
        st.caption(stage_def.get("note", ""))
        stage_state = rec["stagesState"].setdefault(stage_id, {})
        for task_def in stage_def["tasks"]:
            task = stage_state.setdefault(task_def["id"], restricted.create_empty_task_state())
            faults = restricted.get_task_faults(task)
            with st.expander(f"{task_def['name']} · {task_def['speed']}" + (f" · {', '.join(faults)}" if faults else "")):
                key = f"rs_{stage_id}_{task_def['id']}"
                cols = st.columns(5)
                for i, category in enumerate(RESTRICTED_FAULT_CATEGORIES):
                    task["items"][category["id"]] = int(cols[i % 5].number_input(
                        category["label"], min_value=0, step=1,
                        value=int(task["items"].get(category["id"], 0)), key=f"{key}_{category['id']}",
                    ))
                task["repetitions"] = int(st.number_input(
                    f"Repetitions (target {task_def['targetReps']})", min_value=0, step=1,
                    value=int(task.get("repetitions", 0)), key=f"{key}_reps",
                ))
                task["location"] = st.text_input("Location", value=task.get("location", ""), key=f"{key}_loc")
                task["notes"] = st.text_input("Notes", value=task.get("notes", ""), key=f"{key}_notes")
                task["criticalErrors"] = [st.text_area(
                    "Critical errors (one per line)", value="\n".join(task.get("criticalErrors", [])), key=f"{key}_crit",
                )]
                task["immediateErrors"] = [st.text_area(
                    "Immediate failure errors (one per line)", value="\n".join(task.get("immediateErrors", [])),
                    key=f"{key}_imm",
                )]

    with st.expander("Critical and immediate failure errors (whole drive)"):
        _count_inputs("rs_crit", RESTRICTED_CRITICAL_ERRORS, rec["critical"])
        _count_inputs("rs_imm", RESTRICTED_IMMEDIATE_ERRORS, rec["immediate"])
    rec["criticalNotes"] = st.text_area("Critical error notes", value=rec.get("criticalNotes", ""))
    rec["immediateNotes"] = st.text_area("Immediate failure notes", value=rec.get("immediateNotes", ""))

    summary = restricted.calculate_summary(rec["stagesState"], rec["critical"], rec["immediate"])
    st.subheader("Summary")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Stage 1 faults", summary.stage1_faults)
    col2.metric("Stage 2 faults", summary.stage2_faults)
    col3.metric("Critical", summary.critical_total)
    col4.metric("Immediate", summary.immediate_total)
    if summary.result_tone == restricted.TONE_DANGER:
        st.error(summary.result_text)
        st.caption(summary.immediate_list)
    else:
        st.success(summary.result_text)

    if st.button("Submit assessment", type="primary"):
        settings = get_settings()
        get_draft_writer().cancel(ASSESSMENT_TYPE_RESTRICTED, user_id, student["id"])
        st.session_state["rs_result"] = submit_restricted(
            rec, get_store(), get_drafts(), user_id, settings.organization_id, user_id, settings.organization
        )
    if st.session_state.get("rs_result") is not None:
        _show_submit_result(st.session_state["rs_result"])
        if st.session_state["rs_result"].ok:
            st.stop()

    _schedule_draft(ASSESSMENT_TYPE_RESTRICTED, rec, decode_restricted)
