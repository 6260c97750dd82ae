"""Mock test session policy: timers, drill targets, resume stage. No UI."""
# Official runs 20 min, drill runs 30 min; drill targets are 1-30 reps per turn direction
from datetime import datetime, timezone
from typing import Optional, Sequence, Tuple

from drivecoach.full_license import count_task_attempts

OFFICIAL_SECONDS = 20 * 60
DRILL_SECONDS = 30 * 60
DEFAULT_DRILL_TARGET = 10
DRILL_TARGET_MIN = 1
DRILL_TARGET_MAX = 30

STAGE_DETAILS = "details"
STAGE_RUN = "run"
STAGE_SUMMARY = "summary"


def session_seconds(mode: str) -> int:
    return DRILL_SECONDS if mode == "drill" else OFFICIAL_SECONDS


def clamp_target(value, fallback: int = DEFAULT_DRILL_TARGET) -> int:
    """Parse a drill target input and clamp it to 1-30."""
    try:
        n = int(value)
    except (TypeError, ValueError):
        return fallback
    return max(DRILL_TARGET_MIN, min(DRILL_TARGET_MAX, n))


def format_mmss(total_seconds: float) -> str:
    clamped = max(0, int(total_seconds))
    m, s = divmod(clamped, 60)
    return f"{m:02d}:{s:02d}"


def resume_seconds(mode: str, remaining_seconds=None) -> int:
    """Countdown to restore from a draft: its saved remainder, else a fresh session."""
    if remaining_seconds is None:
        return session_seconds(mode)
    return max(0, int(remaining_seconds))


def time_left(remaining_seconds: int, running_since: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Seconds left on a countdown that has been running since running_since (None = paused)."""
    if running_since is None:
        return max(0, remaining_seconds)
    now = now or datetime.now(timezone.utc)
    return max(0, remaining_seconds - int((now - running_since).total_seconds()))


def session_stage(start_time_iso: Optional[str], end_time_iso: Optional[str]) -> str:
    """Where a resumed session lands: ended -> summary, started -> run, else details."""
    if end_time_iso:
        return STAGE_SUMMARY
    if start_time_iso:
        return STAGE_RUN
    return STAGE_DETAILS


def next_rep(mode: str, task_id: str, attempts: Sequence, left_target: int, right_target: int) -> Tuple[int, int]:
    """(rep_index, rep_target) for the next attempt; only drill turns are repeated."""
    if mode == "drill" and task_id in ("left_turn", "right_turn"):
        target = left_target if task_id == "left_turn" else right_target
        done = count_task_attempts(attempts, task_id)
        return max(1, min(target, done + 1)), target
    return 1, 1
