"""
Full-license mock test: attempt aggregation and readiness classification.
Pure functions. The live UI, the submit flow and the PDF report all call
calculate_summary() so the figures they show never drift apart.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from drivecoach.constants import (
    FULL_LICENSE_ASSESSMENT_ITEMS,
    FULL_LICENSE_CRITICAL_ERRORS,
    FULL_LICENSE_IMMEDIATE_ERRORS,
    FULL_LICENSE_ITEM_IDS,
    FULL_LICENSE_TASKS,
    HAZARD_LAYOUT,
)

logger = logging.getLogger(__name__)

ITEM_PASS = "P"
ITEM_FAIL = "F"

# Readiness policy
READINESS_NOT_READY = "NOT READY"
READINESS_NEEDS_COACHING = "NEEDS COACHING"
READINESS_IN_PROGRESS = "IN PROGRESS"
READINESS_LOOKING_GOOD = "LOOKING GOOD"
CRITICAL_REPEAT_THRESHOLD = 2
ITEM_FAIL_REPEAT_THRESHOLD = 3
MIN_ATTEMPTS_FOR_VERDICT = 4


@dataclass(frozen=True)
class Readiness:
    label: str
    reason: str


@dataclass
class Summary:
    attempts_count: int
    total_item_checks: int
    total_item_fails: int
    score_percent: Optional[int]
    failures_by_item: Dict[str, int]
    critical_total: int
    immediate_total: int
    readiness: Readiness

    def to_snapshot(self) -> Dict:
        """Display-cache copy stored under form_data.summary."""
        return {
            "attemptsCount": self.attempts_count,
            "criticalTotal": self.critical_total,
            "immediateTotal": self.immediate_total,
            "scorePercent": self.score_percent,
            "readinessLabel": self.readiness.label,
            "readinessReason": self.readiness.reason,
        }


def _items_of(attempt) -> Mapping[str, str]:
    if isinstance(attempt, dict):
        return attempt.get("items") or {}
    return getattr(attempt, "items", None) or {}


def count_errors(counts: Optional[Mapping[str, int]], labels: Sequence[str]) -> int:
    """Sum counts over the canonical labels only; unknown keys are ignored."""
    counts = counts or {}
    return sum(int(counts.get(label, 0) or 0) for label in labels)


def round_percent(numerator: int, denominator: int) -> int:
    """Round half up: 62.5 -> 63."""
    value = Decimal(numerator) * 100 / Decimal(denominator)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def classify(
    attempts_count: int,
    critical_total: int,
    immediate_total: int,
    failures_by_item: Mapping[str, int],
) -> Readiness:
    """
    Map aggregated counts to a readiness verdict.

    Rules are checked in order and the first match wins:
      1. any immediate failure          -> NOT READY
      2. two or more critical errors    -> NOT READY
      3. one item failed 3+ times       -> NEEDS COACHING
      4. fewer than 4 attempts          -> IN PROGRESS
      5. otherwise                      -> LOOKING GOOD
    """
    if immediate_total > 0:
        return Readiness(READINESS_NOT_READY, "Immediate failure recorded.")

    if critical_total >= CRITICAL_REPEAT_THRESHOLD:
        return Readiness(READINESS_NOT_READY, "Repeated critical errors recorded.")

    biggest_item_fail = max(failures_by_item.values(), default=0)
    if biggest_item_fail >= ITEM_FAIL_REPEAT_THRESHOLD:
        return Readiness(READINESS_NEEDS_COACHING, "Repeated errors in a core assessment item.")

    if attempts_count < MIN_ATTEMPTS_FOR_VERDICT:
        return Readiness(READINESS_IN_PROGRESS, "Not enough attempts recorded yet.")

    return Readiness(READINESS_LOOKING_GOOD, "No major error patterns detected.")


def calculate_summary(
    attempts: Sequence,
    critical: Optional[Mapping[str, int]] = None,
    immediate: Optional[Mapping[str, int]] = None,
) -> Summary:
    """
    Aggregate recorded attempts and error counters into a Summary.

    Args:
        attempts: Attempt models or dicts with an "items" map of item id -> "P"/"F"
        critical: Critical error counts keyed by label (may be partial)
        immediate: Immediate-failure error counts keyed by label (may be partial)

    Any immediate-failure error forces score_percent to 0.
    """
    failures_by_item = {item_id: 0 for item_id in FULL_LICENSE_ITEM_IDS}
    total_item_fails = 0

    for attempt in attempts:
        items = _items_of(attempt)
        for item_id in FULL_LICENSE_ITEM_IDS:
            if items.get(item_id) != ITEM_FAIL:
                continue
            failures_by_item[item_id] += 1
            total_item_fails += 1

    attempts_count = len(attempts)
    total_item_checks = attempts_count * len(FULL_LICENSE_ITEM_IDS)
    score_percent = None
    if total_item_checks:
        score_percent = round_percent(total_item_checks - total_item_fails, total_item_checks)

    critical_total = count_errors(critical, FULL_LICENSE_CRITICAL_ERRORS)
    immediate_total = count_errors(immediate, FULL_LICENSE_IMMEDIATE_ERRORS)
    if immediate_total > 0:
        score_percent = 0

    readiness = classify(attempts_count, critical_total, immediate_total, failures_by_item)

    return Summary(
        attempts_count=attempts_count,
        total_item_checks=total_item_checks,
        total_item_fails=total_item_fails,
        score_percent=score_percent,
        failures_by_item=failures_by_item,
        critical_total=critical_total,
        immediate_total=immediate_total,
        readiness=readiness,
    )


# ============= Attempt helpers =============

def create_empty_items() -> Dict[str, str]:
    return {item_id: ITEM_PASS for item_id in FULL_LICENSE_ITEM_IDS}


def create_empty_hazard_responses() -> Dict[str, Dict[str, str]]:
    return {category: {direction: "na" for direction in directions} for category, directions in HAZARD_LAYOUT.items()}


def create_error_counts(labels: Sequence[str]) -> Dict[str, int]:
    return {label: 0 for label in labels}


def has_hazard_response(responses: Optional[Mapping[str, Mapping[str, str]]]) -> bool:
    """True when at least one layout cell holds yes/no."""
    responses = responses or {}
    for category, directions in HAZARD_LAYOUT.items():
        row = responses.get(category) or {}
        if any(row.get(direction, "na") != "na" for direction in directions):
            return True
    return False


def score_attempt(attempt) -> Tuple[int, int]:
    """Returns (fails, total) for a single attempt."""
    items = _items_of(attempt)
    fails = sum(1 for item_id in FULL_LICENSE_ITEM_IDS if items.get(item_id) == ITEM_FAIL)
    return fails, len(FULL_LICENSE_ITEM_IDS)


def get_task(task_id: str) -> Dict:
    """Task definition for task_id; falls back to the first task."""
    return next((t for t in FULL_LICENSE_TASKS if t["id"] == task_id), FULL_LICENSE_TASKS[0])


def count_task_attempts(attempts: Sequence, task_id: str) -> int:
    total = 0
    for attempt in attempts:
        current = attempt.get("taskId") if isinstance(attempt, dict) else getattr(attempt, "task_id", None)
        if current == task_id:
            total += 1
    return total


def validate_attempt(
    hazard_responses: Optional[Mapping[str, Mapping[str, str]]],
    hazards_spoken: str,
    actions_spoken: str,
    mode: str = "official",
    task_id: str = "",
    attempts: Sequence = (),
    drill_left_target: int = 10,
    drill_right_target: int = 10,
) -> Optional[str]:
    """Check a new attempt before it is recorded. Returns a user-facing message, or None if valid."""
    if not has_hazard_response(hazard_responses):
        return "Select at least one hazard response (Yes/No) before recording this attempt."
    if not (hazards_spoken or "").strip():
        return "Please enter the hazards spoken."
    if not (actions_spoken or "").strip():
        return "Please enter the action spoken."
    if mode == "drill":
        if task_id == "left_turn" and count_task_attempts(attempts, "left_turn") >= drill_left_target:
            return "Left-turn target already completed."
        if task_id == "right_turn" and count_task_attempts(attempts, "right_turn") >= drill_right_target:
            return "Right-turn target already completed."
    return None


def failed_item_labels(attempt) -> List[str]:
    items = _items_of(attempt)
    return [item["label"] for item in FULL_LICENSE_ASSESSMENT_ITEMS if items.get(item["id"]) == ITEM_FAIL]
