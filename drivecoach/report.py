"""
PDF reports for submitted mock tests (ReportLab canvas).

Every figure in a report comes from the same calculate_summary() the live
session uses; nothing is read back from the stored summary snapshot.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import List, Optional, Sequence, Tuple

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader, simpleSplit
from reportlab.pdfgen import canvas

from drivecoach import full_license, restricted
from drivecoach.constants import (
    FULL_LICENSE_ASSESSMENT_ITEMS,
    FULL_LICENSE_CRITICAL_ERRORS,
    FULL_LICENSE_IMMEDIATE_ERRORS,
    FULL_LICENSE_WEATHER,
    HAZARD_CATEGORIES,
    HAZARD_DIRECTIONS,
    HAZARD_LAYOUT,
    HAZARD_RESPONSES,
    RESTRICTED_CRITICAL_ERRORS,
    RESTRICTED_IMMEDIATE_ERRORS,
    RESTRICTED_STAGES,
)
from drivecoach.dates import parse_date_input
from drivecoach.schemas import FullLicenseRecord, RestrictedRecord

logger = logging.getLogger(__name__)

Block = Tuple[str, str]

# Colours
INK = (0.12, 0.12, 0.14)
MUTED = (0.45, 0.45, 0.48)
DANGER = (0.75, 0.15, 0.15)
SUCCESS = (0.10, 0.50, 0.25)

MARGIN = 48
STYLES = {
    # kind: (font, size, leading, colour)
    "title": ("Helvetica-Bold", 18, 24, INK),
    "heading": ("Helvetica-Bold", 12, 18, INK),
    "text": ("Helvetica", 10, 14, INK),
    "muted": ("Helvetica", 9, 12, MUTED),
    "danger": ("Helvetica-Bold", 10, 14, DANGER),
    "success": ("Helvetica-Bold", 10, 14, SUCCESS),
}


@dataclass
class Organization:
    name: str
    logo_url: Optional[str] = None


def sanitize_file_name(value: str, fallback: str = "mock_test") -> str:
    """Strip reserved characters, collapse whitespace to '_', cap at 80 chars."""
    without_reserved = re.sub(r'[<>:"/\\|?*\x00-\x1f]', "", value or "")
    collapsed = re.sub(r"\s+", "_", without_reserved.strip())
    return (collapsed or fallback)[:80]


def _report_file_name(prefix: str, candidate: str, date_value: str, fallback: str) -> str:
    iso = parse_date_input(date_value)
    stamp = datetime.strptime(iso, "%Y-%m-%d").strftime("%d-%m-%y") if iso else ""
    name = " ".join(part for part in (prefix, candidate.strip(), stamp) if part)
    return f"{sanitize_file_name(name, fallback)}.pdf"


def _counts_blocks(title: str, labels: Sequence[str], counts: dict) -> List[Block]:
    blocks: List[Block] = [("heading", title)]
    lines = [f"{label}: {counts.get(label, 0)}" for label in labels if (counts.get(label, 0) or 0) > 0]
    if not lines:
        return blocks + [("muted", "None recorded.")]
    return blocks + [("text", f"• {line}") for line in lines]


def _notes_block(title: str, text: str) -> List[Block]:
    return [("heading", title), ("text", text) if text.strip() else ("muted", "—")]


# ============= Full-license =============

def _hazard_line(responses: dict) -> str:
    parts = []
    for category, directions in HAZARD_LAYOUT.items():
        row = responses.get(category) or {}
        for direction in directions:
            value = row.get(direction, "na")
            if value == "na":
                continue
            parts.append(f"{HAZARD_CATEGORIES[category]}/{HAZARD_DIRECTIONS[direction]}: {HAZARD_RESPONSES[value]}")
    return ", ".join(parts) if parts else "No hazard responses recorded."


def full_license_blocks(record: FullLicenseRecord, organization: Organization) -> List[Block]:
    summary = full_license.calculate_summary(record.attempts, record.critical, record.immediate)
    score = "—" if summary.score_percent is None else f"{summary.score_percent}%"
    date_time = " ".join(part for part in (record.date, record.time) if part)

    blocks: List[Block] = [
        ("title", organization.name or "Driving School"),
        ("heading", "Mock Test – Full License"),
        ("text", f"Candidate: {record.candidate_name or '—'}"),
        ("text", f"Instructor: {record.instructor or '—'}"),
        ("text", f"Date/time: {date_time or '—'}"),
        ("text", f"Location/area: {record.location_area or '—'}    Vehicle: {record.vehicle or '—'}"),
        ("text", f"Mode: {record.mode.title()}    Weather: {FULL_LICENSE_WEATHER.get(record.weather, record.weather)}"),
        ("heading", "Summary"),
        ("text", f"Attempts recorded: {summary.attempts_count}"),
        ("text", f"Item checks: {summary.total_item_checks}    Item fails: {summary.total_item_fails}"),
        ("text", f"Score: {score}"),
        ("text", f"Critical errors: {summary.critical_total}    Immediate failure errors: {summary.immediate_total}"),
        (
            "danger" if summary.readiness.label == full_license.READINESS_NOT_READY else "success",
            f"Readiness: {summary.readiness.label} – {summary.readiness.reason}",
        ),
        ("heading", "Fails by assessment item"),
    ]
    for item in FULL_LICENSE_ASSESSMENT_ITEMS:
        blocks.append(("text", f"{item['label']}: {summary.failures_by_item[item['id']]}"))

    blocks += _counts_blocks("Critical errors", FULL_LICENSE_CRITICAL_ERRORS, record.critical)
    blocks += _counts_blocks("Immediate failure errors", FULL_LICENSE_IMMEDIATE_ERRORS, record.immediate)

    blocks.append(("heading", "Attempts"))
    if not record.attempts:
        blocks.append(("muted", "No attempts recorded."))
    # attempts are held newest first; print them in the order they were driven
    for number, attempt in enumerate(reversed(record.attempts), start=1):
        fails, total = full_license.score_attempt(attempt)
        meta = [attempt.variant.strip()] if attempt.variant.strip() else []
        if attempt.rep_target > 1:
            meta.append(f"Rep {attempt.rep_index}/{attempt.rep_target}")
        if attempt.location_tag.strip():
            meta.append(attempt.location_tag.strip())
        task_name = attempt.task_name or full_license.get_task(attempt.task_id)["name"]
        blocks.append(("text", f"{number}. {task_name} – {total - fails}/{total} passed"))
        if meta:
            blocks.append(("muted", " · ".join(meta)))
        failed = full_license.failed_item_labels(attempt)
        blocks.append(("text", f"Failed items: {', '.join(failed)}" if failed else "All items passed."))
        blocks.append(("muted", _hazard_line(attempt.hazard_responses)))
        if attempt.hazards_spoken:
            blocks.append(("text", f"Hazards spoken: {attempt.hazards_spoken}"))
        if attempt.actions_spoken:
            blocks.append(("text", f"Actions spoken: {attempt.actions_spoken}"))
        if attempt.notes:
            blocks.append(("text", f"Notes: {attempt.notes}"))

    blocks += _notes_block("Critical error notes", record.critical_notes)
    blocks += _notes_block("Immediate failure notes", record.immediate_notes)
    blocks += _notes_block("Overall notes", record.overall_notes)
    return blocks


def render_full_license_pdf(record: FullLicenseRecord, organization: Organization) -> Tuple[str, bytes]:
    """Returns (filename, pdf_bytes)."""
    filename = _report_file_name(
        "Mock Test Full License", record.candidate_name, record.date, "full_license_mock_test"
    )
    return filename, _render(full_license_blocks(record, organization), organization)


# ============= Restricted =============

def restricted_blocks(record: RestrictedRecord, organization: Organization) -> List[Block]:
    summary = restricted.calculate_summary(record.stages_state, record.critical, record.immediate)
    date_time = " ".join(part for part in (record.date, record.time) if part)

    blocks: List[Block] = [
        ("title", organization.name or "Driving School"),
        ("heading", "Mock Test – Restricted License"),
        ("text", f"Candidate: {record.candidate_name or '—'}"),
        ("text", f"Instructor: {record.instructor or '—'}"),
        ("text", f"Date/time: {date_time or '—'}"),
        ("text", f"Vehicle: {record.vehicle_info or '—'}"),
        ("text", f"Route: {record.route_info or '—'}"),
        ("heading", "Summary"),
        ("text", f"Stage 1 faults: {summary.stage1_faults}    Stage 2 faults: {summary.stage2_faults}"),
        ("text", f"Critical errors: {summary.critical_total}    Immediate failure errors: {summary.immediate_total}"),
        (summary.result_tone, summary.result_text),
    ]
    if summary.immediate_items:
        blocks.append(("text", f"Immediate failures: {summary.immediate_list}"))

    tasks_by_stage = {}
    for stage_id, task_ref, task in restricted.iter_tasks(record.stages_state):
        tasks_by_stage.setdefault(stage_id, []).append((task_ref, task))

    for stage in RESTRICTED_STAGES:
        entries = tasks_by_stage.get(stage["id"], [])
        if stage["id"] == "stage2" and not record.stage2_enabled and not entries:
            continue
        blocks.append(("heading", stage["name"]))
        if not entries:
            blocks.append(("muted", "No tasks recorded."))
        for task_ref, task in entries:
            if isinstance(task_ref, restricted.KnownTask):
                reps = f"{task.repetitions}/{task_ref.target_reps} reps"
            else:
                reps = f"{task.repetitions} reps"
            faults = restricted.get_task_faults(task)
            blocks.append(("text", f"{task_ref.name} – {reps}"))
            blocks.append(("text", f"Faults: {', '.join(faults)}" if faults else "No faults."))
            if task.location:
                blocks.append(("muted", f"Location: {task.location}"))
            if task.notes:
                blocks.append(("muted", f"Notes: {task.notes}"))
            for line in restricted.task_critical_lines(task):
                blocks.append(("text", f"Critical: {line}"))
            for line in restricted.task_immediate_lines(task):
                blocks.append(("danger", f"Immediate: {line}"))

    blocks += _counts_blocks("Critical errors", RESTRICTED_CRITICAL_ERRORS, record.critical)
    blocks += _counts_blocks("Immediate failure errors", RESTRICTED_IMMEDIATE_ERRORS, record.immediate)
    blocks += _notes_block("Pre-drive notes", record.pre_drive_notes)
    blocks += _notes_block("Critical error notes", record.critical_notes)
    blocks += _notes_block("Immediate failure notes", record.immediate_notes)
    return blocks


def render_restricted_pdf(record: RestrictedRecord, organization: Organization) -> Tuple[str, bytes]:
    """Returns (filename, pdf_bytes)."""
    filename = _report_file_name(
        "Mock Test Restricted License", record.candidate_name, record.date, "restricted_mock_test"
    )
    return filename, _render(restricted_blocks(record, organization), organization)


# ============= Drawing =============

def _render(blocks: Sequence[Block], organization: Organization) -> bytes:
    page_width, page_height = A4
    usable = page_width - 2 * MARGIN

    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    c.setTitle(blocks[1][1] if len(blocks) > 1 else "Mock Test")
    generated_at = datetime.now().strftime("%d/%m/%Y %H:%M")
    page = 1

    def footer():
        c.setFont("Helvetica", 8)
        c.setFillColorRGB(*MUTED)
        c.drawString(MARGIN, MARGIN / 2, f"Generated {generated_at}")
        c.drawRightString(page_width - MARGIN, MARGIN / 2, f"Page {page}")

    y = page_height - MARGIN
    if organization.logo_url:
        try:
            logo = ImageReader(organization.logo_url)
            c.drawImage(logo, page_width - MARGIN - 80, y - 40, width=80, height=40,
                        preserveAspectRatio=True, mask="auto")
        except Exception as e:
            logger.warning(f"Could not draw organization logo: {e}")

    for kind, text in blocks:
        font, size, leading, colour = STYLES.get(kind, STYLES["text"])
        lines = simpleSplit(text, font, size, usable) or [""]
        gap = 8 if kind in ("heading", "title") else 0
        needed = gap + leading * len(lines)
        if y - needed < MARGIN:
            footer()
            c.showPage()
            page += 1
            y = page_height - MARGIN
        y -= gap
        c.setFont(font, size)
        c.setFillColorRGB(*colour)
        for line in lines:
            y -= leading
            c.drawString(MARGIN, y, line)

    footer()
    c.showPage()
    c.save()
    buf.seek(0)
    logger.info(f"Rendered report ({page} pages)")
    return buf.getvalue()
