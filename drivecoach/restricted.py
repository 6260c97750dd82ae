"""
Restricted-license mock test: per-stage fault aggregation and the pass/fail outcome.

Stage state maps task id -> task state. Task ids outside the fixed catalogue
(ad hoc extra tasks, legacy entries) are aggregated like any other task.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

from drivecoach.constants import (
    RESTRICTED_CRITICAL_ERRORS,
    RESTRICTED_FAULT_CATEGORIES,
    RESTRICTED_FAULT_IDS,
    RESTRICTED_IMMEDIATE_ERRORS,
    RESTRICTED_STAGE_IDS,
    RESTRICTED_STAGES,
)
from drivecoach.full_license import count_errors

logger = logging.getLogger(__name__)

TONE_DANGER = "danger"
TONE_SUCCESS = "success"

RESULT_FAIL_TEXT = (
    "Automatic FAIL (immediate failure error recorded). Use notes for coaching and re-test planning."
)
RESULT_PASS_TEXT = (
    "No immediate failure errors recorded. Use Stage 1 & 2 task faults and critical errors "
    "to decide readiness for the real test."
)


# ============= Task ids =============

@dataclass(frozen=True)
class KnownTask:
    """A task from the fixed stage catalogue."""
    stage_id: str
    task_id: str
    name: str
    speed: str
    target_reps: int


@dataclass(frozen=True)
class ExtraTask:
    """An ad hoc task id that is not in the catalogue."""
    stage_id: str
    task_id: str

    @property
    def name(self) -> str:
        return self.task_id


TaskRef = Union[KnownTask, ExtraTask]

_CATALOGUE: Dict[Tuple[str, str], KnownTask] = {
    (stage["id"], task["id"]): KnownTask(stage["id"], task["id"], task["name"], task["speed"], task["targetReps"])
    for stage in RESTRICTED_STAGES
    for task in stage["tasks"]
}


def resolve_task(stage_id: str, task_id: str) -> TaskRef:
    return _CATALOGUE.get((stage_id, task_id)) or ExtraTask(stage_id, task_id)


def catalogue_tasks(stage_id: str) -> List[KnownTask]:
    return [task for (sid, _), task in _CATALOGUE.items() if sid == stage_id]


def _get(obj, key: str, attr: Optional[str] = None, default=None):
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    return getattr(obj, attr or key, default)


def _stage_tasks(stages_state, stage_id: str) -> Mapping:
    if stages_state is None:
        return {}
    return _get(stages_state, stage_id) or {}


def iter_tasks(stages_state) -> Iterator[Tuple[str, TaskRef, object]]:
    """
    Walk every task entry in both stages, in stage order then insertion order.
    Yields (stage_id, task_ref, task_state).
    """
    for stage_id in RESTRICTED_STAGE_IDS:
        for task_id, task_state in _stage_tasks(stages_state, stage_id).items():
            if task_state is None:
                continue
            yield stage_id, resolve_task(stage_id, task_id), task_state


# ============= Task-level helpers =============

def _fault_counts(task) -> Mapping[str, int]:
    return _get(task, "items") or {}


def task_fault_total(task) -> int:
    counts = _fault_counts(task)
    return sum(int(counts.get(fault_id, 0) or 0) for fault_id in RESTRICTED_FAULT_IDS)


def split_error_lines(blocks) -> List[str]:
    """One error per non-empty line across all per-repetition text blocks."""
    if not blocks:
        return []
    if isinstance(blocks, str):
        blocks = [blocks]
    lines = []
    for block in blocks:
        for line in (block or "").splitlines():
            line = line.strip()
            if line:
                lines.append(line)
    return lines


def task_critical_lines(task) -> List[str]:
    return split_error_lines(_get(task, "criticalErrors", "critical_errors"))


def task_immediate_lines(task) -> List[str]:
    return split_error_lines(_get(task, "immediateErrors", "immediate_errors"))


def get_task_faults(task) -> List[str]:
    """Fault labels in catalogue order; zero counts omitted, '(N)' suffix when N > 1."""
    counts = _fault_counts(task)
    faults = []
    for category in RESTRICTED_FAULT_CATEGORIES:
        count = int(counts.get(category["id"], 0) or 0)
        if count <= 0:
            continue
        faults.append(f"{category['label']} ({count})" if count > 1 else category["label"])
    return faults


# ============= Summary =============

@dataclass
class Summary:
    stage1_faults: int
    stage2_faults: int
    critical_total: int
    immediate_total: int
    result_text: str
    result_tone: str
    immediate_items: List[str] = field(default_factory=list)

    @property
    def immediate_list(self) -> str:
        return "; ".join(self.immediate_items)

    def to_snapshot(self) -> Dict:
        return {
            "stage1Faults": self.stage1_faults,
            "stage2Faults": self.stage2_faults,
            "criticalTotal": self.critical_total,
            "immediateTotal": self.immediate_total,
            "immediateList": self.immediate_list,
            "resultText": self.result_text,
            "resultTone": self.result_tone,
        }


def calculate_summary(
    stages_state,
    critical: Optional[Mapping[str, int]] = None,
    immediate: Optional[Mapping[str, int]] = None,
) -> Summary:
    """
    Aggregate stage task states and error counters.

    Stage 1 and stage 2 faults are counted separately. Critical and immediate
    totals add the task-level error lines to the legacy counters; the same
    error entered both ways counts twice.
    """
    stage_faults = {stage_id: 0 for stage_id in RESTRICTED_STAGE_IDS}
    task_critical = 0
    task_immediate: List[str] = []

    for stage_id, _task_ref, task in iter_tasks(stages_state):
        stage_faults[stage_id] += task_fault_total(task)
        task_critical += len(task_critical_lines(task))
        task_immediate.extend(task_immediate_lines(task))

    immediate = immediate or {}
    critical_total = count_errors(critical, RESTRICTED_CRITICAL_ERRORS) + task_critical
    immediate_total = count_errors(immediate, RESTRICTED_IMMEDIATE_ERRORS) + len(task_immediate)

    # label -> count, legacy counters first (catalogue order), then typed lines
    merged: Dict[str, int] = {}
    for label in RESTRICTED_IMMEDIATE_ERRORS:
        count = int(immediate.get(label, 0) or 0)
        if count > 0:
            merged[label] = count
    for line in task_immediate:
        merged[line] = merged.get(line, 0) + 1
    immediate_items = [f"{label} ({count})" for label, count in merged.items()]

    if immediate_total > 0:
        result_text, result_tone = RESULT_FAIL_TEXT, TONE_DANGER
    else:
        result_text, result_tone = RESULT_PASS_TEXT, TONE_SUCCESS

    return Summary(
        stage1_faults=stage_faults["stage1"],
        stage2_faults=stage_faults["stage2"],
        critical_total=critical_total,
        immediate_total=immediate_total,
        result_text=result_text,
        result_tone=result_tone,
        immediate_items=immediate_items,
    )


def create_empty_task_state() -> Dict:
    return {
        "items": {fault_id: 0 for fault_id in RESTRICTED_FAULT_IDS},
        "location": "",
        "notes": "",
        "repetitions": 0,
        "criticalErrors": [],
        "immediateErrors": [],
    }
