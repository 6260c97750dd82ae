"""Full-license aggregation, readiness and attempt validation."""
import pytest

from conftest import make_attempt
from drivecoach import full_license
from drivecoach.constants import FULL_LICENSE_CRITICAL_ERRORS, FULL_LICENSE_IMMEDIATE_ERRORS, FULL_LICENSE_ITEM_IDS

COLLISION = FULL_LICENSE_IMMEDIATE_ERRORS[0]


def test_four_clean_attempts_look_good():
    summary = full_license.calculate_summary([make_attempt() for _ in range(4)], {}, {})
    assert summary.attempts_count == 4
    assert summary.total_item_checks == 24
    assert summary.total_item_fails == 0
    assert summary.score_percent == 100
    assert summary.readiness.label == "LOOKING GOOD"
    assert summary.readiness.reason == "No major error patterns detected."


def test_immediate_failure_zeroes_score():
    summary = full_license.calculate_summary([make_attempt() for _ in range(5)], {}, {COLLISION: 1})
    assert summary.score_percent == 0
    assert summary.readiness.label == "NOT READY"
    assert summary.readiness.reason == "Immediate failure recorded."


@pytest.mark.parametrize("fails", [(), ("observation",), tuple(FULL_LICENSE_ITEM_IDS)])
def test_immediate_failure_overrides_any_item_mix(fails):
    attempts = [make_attempt(fails=fails) for _ in range(3)]
    summary = full_license.calculate_summary(attempts, None, {COLLISION: 2})
    assert summary.score_percent == 0


def test_zero_attempts_is_in_progress():
    summary = full_license.calculate_summary([])
    assert summary.attempts_count == 0
    assert summary.score_percent is None
    assert summary.readiness.label == "IN PROGRESS"
    assert summary.readiness.reason == "Not enough attempts recorded yet."


def test_classify_with_no_item_failures_map():
    readiness = full_license.classify(0, 0, 0, {})
    assert readiness.label == "IN PROGRESS"


def test_immediate_rule_wins_over_lower_rules():
    attempts = [make_attempt(fails=("observation",)) for _ in range(3)]
    critical = {FULL_LICENSE_CRITICAL_ERRORS[0]: 2}
    summary = full_license.calculate_summary(attempts, critical, {COLLISION: 1})
    assert summary.readiness.label == "NOT READY"
    assert summary.readiness.reason == "Immediate failure recorded."


def test_repeated_critical_errors_not_ready():
    critical = {FULL_LICENSE_CRITICAL_ERRORS[0]: 1, FULL_LICENSE_CRITICAL_ERRORS[3]: 1}
    summary = full_license.calculate_summary([make_attempt() for _ in range(6)], critical, {})
    assert summary.critical_total == 2
    assert summary.readiness.label == "NOT READY"
    assert summary.readiness.reason == "Repeated critical errors recorded."


def test_item_failed_three_times_needs_coaching():
    attempts = [make_attempt(fails=("gapSelection",)) for _ in range(3)]
    summary = full_license.calculate_summary(attempts, {FULL_LICENSE_CRITICAL_ERRORS[0]: 1}, {})
    assert summary.failures_by_item["gapSelection"] == 3
    assert summary.readiness.label == "NEEDS COACHING"


def test_score_rounds_half_up():
    # 8 attempts x 6 items = 48 checks, 1 fail -> 97.9 -> 98
    attempts = [make_attempt() for _ in range(7)] + [make_attempt(fails=("signalling",))]
    assert full_license.calculate_summary(attempts).score_percent == 98
    # 1 attempt, 3 of 6 fail -> exactly 50
    assert full_license.calculate_summary([make_attempt(fails=("observation", "signalling", "gapSelection"))]).score_percent == 50
    assert full_license.round_percent(5, 8) == 63


def test_score_drops_as_fails_increase():
    previous = None
    for n in range(len(FULL_LICENSE_ITEM_IDS) + 1):
        attempts = [make_attempt(fails=FULL_LICENSE_ITEM_IDS[:n]), make_attempt()]
        score = full_license.calculate_summary(attempts, {}, {}).score_percent
        if previous is not None:
            assert score < previous
        previous = score


def test_unknown_error_labels_are_ignored():
    summary = full_license.calculate_summary([make_attempt()], {"Made up": 9}, {"Also made up": 3})
    assert summary.critical_total == 0
    assert summary.immediate_total == 0
    assert summary.score_percent == 100


def test_snapshot_uses_wire_keys():
    snapshot = full_license.calculate_summary([make_attempt()]).to_snapshot()
    assert snapshot == {
        "attemptsCount": 1,
        "criticalTotal": 0,
        "immediateTotal": 0,
        "scorePercent": 100,
        "readinessLabel": "IN PROGRESS",
        "readinessReason": "Not enough attempts recorded yet.",
    }


def test_score_attempt_and_failed_labels():
    attempt = make_attempt(fails=("hazardDetection", "observation"))
    assert full_license.score_attempt(attempt) == (2, 6)
    assert full_license.failed_item_labels(attempt) == ["Observation", "Hazard detection"]


class TestValidateAttempt:
    def test_requires_a_hazard_response(self):
        grid = full_license.create_empty_hazard_responses()
        message = full_license.validate_attempt(grid, "car", "brake")
        assert message == "Select at least one hazard response (Yes/No) before recording this attempt."

    def test_cells_outside_layout_do_not_count(self):
        assert not full_license.has_hazard_response({"pedestrians": {"behind": "yes"}})

    def test_requires_spoken_text(self):
        grid = {"others": {"left": "no"}}
        assert full_license.validate_attempt(grid, "  ", "brake") == "Please enter the hazards spoken."
        assert full_license.validate_attempt(grid, "car", "") == "Please enter the action spoken."
        assert full_license.validate_attempt(grid, "car", "brake") is None

    def test_drill_turn_target(self):
        grid = {"vehicles": {"left": "yes"}}
        attempts = [make_attempt(task_id="left_turn") for _ in range(2)]
        kwargs = dict(mode="drill", attempts=attempts, drill_left_target=2, drill_right_target=2)
        assert full_license.validate_attempt(grid, "a", "b", task_id="left_turn", **kwargs) == (
            "Left-turn target already completed."
        )
        assert full_license.validate_attempt(grid, "a", "b", task_id="right_turn", **kwargs) is None
        # official mode has no targets
        assert full_license.validate_attempt(grid, "a", "b", task_id="left_turn", attempts=attempts) is None
