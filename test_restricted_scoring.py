"""Restricted-license stage totals, outcome text and the task fault lister."""
from drivecoach import restricted
from drivecoach.constants import RESTRICTED_CRITICAL_ERRORS, RESTRICTED_IMMEDIATE_ERRORS
from drivecoach.schemas import StagesState

COLLISION = RESTRICTED_IMMEDIATE_ERRORS[2]


def _stages(stage1=None, stage2=None):
    return {"stage1": stage1 or {}, "stage2": stage2 or {}}


def test_single_task_faults_pass_outcome():
    stages = _stages({"s1_rt": {"items": {"observation": 2, "signalling": 1}}})
    summary = restricted.calculate_summary(stages, {}, {})
    assert summary.stage1_faults == 3
    assert summary.stage2_faults == 0
    assert summary.result_tone == "success"
    assert "No immediate failure errors recorded." in summary.result_text
    assert summary.immediate_list == ""


def test_stage_totals_are_independent():
    stage1 = {"s1_lt": {"items": {"gap": 4}}}
    before = restricted.calculate_summary(_stages(stage1, {"s2_merge": {"items": {"speed": 1}}}))
    after = restricted.calculate_summary(_stages(stage1, {"s2_merge": {"items": {"speed": 7, "lateral": 2}}}))
    assert before.stage1_faults == after.stage1_faults == 4
    assert (before.stage2_faults, after.stage2_faults) == (1, 9)


def test_extra_task_ids_are_counted():
    stages = _stages(stage2={"roundabout_night_drive": {"items": {"observation": 1}}})
    summary = restricted.calculate_summary(stages)
    assert summary.stage2_faults == 1


def test_immediate_failure_merges_counts_and_typed_lines():
    stages = _stages({"s1_rt": {"immediateErrors": [f"{COLLISION}\nMounted footpath", "  "]}})
    summary = restricted.calculate_summary(stages, {}, {COLLISION: 1})
    assert summary.immediate_total == 3
    assert summary.result_tone == "danger"
    assert summary.result_text.startswith("Automatic FAIL")
    # same error entered both ways is counted twice
    assert summary.immediate_items == [f"{COLLISION} (2)", "Mounted footpath (1)"]
    assert summary.immediate_list == f"{COLLISION} (2); Mounted footpath (1)"


def test_critical_total_adds_counts_and_lines():
    stages = _stages(
        {"s1_rt": {"criticalErrors": ["Too slow\n", "Failing to signal"]}},
        {"s2_lcr": {"criticalErrors": "Stalling vehicle"}},
    )
    summary = restricted.calculate_summary(stages, {RESTRICTED_CRITICAL_ERRORS[0]: 2, "not a label": 5}, {})
    assert summary.critical_total == 5
    assert summary.result_tone == "success"


def test_accepts_validated_models():
    stages = StagesState.model_validate({"stage1": {"s1_rt": {"items": {"observation": "fault", "gap": 2}}}})
    summary = restricted.calculate_summary(stages)
    assert summary.stage1_faults == 3


def test_snapshot_keys():
    snapshot = restricted.calculate_summary(_stages()).to_snapshot()
    assert snapshot["stage1Faults"] == 0
    assert snapshot["resultTone"] == "success"
    assert set(snapshot) == {
        "stage1Faults", "stage2Faults", "criticalTotal", "immediateTotal", "immediateList", "resultText", "resultTone",
    }


def test_get_task_faults_orders_and_suffixes():
    task = {"items": {"signalling": 1, "observation": 3, "speed": 0, "unknown": 4}}
    assert restricted.get_task_faults(task) == ["Observation (3)", "Signalling"]
    assert restricted.get_task_faults({}) == []


def test_resolve_task_union():
    known = restricted.resolve_task("stage1", "s1_rpp")
    assert isinstance(known, restricted.KnownTask)
    assert known.name == "Reverse Parallel Park"
    assert known.target_reps == 3

    extra = restricted.resolve_task("stage1", "s2_merge")
    assert isinstance(extra, restricted.ExtraTask)
    assert extra.name == "s2_merge"


def test_catalogue_sizes():
    assert len(restricted.catalogue_tasks("stage1")) == 6
    assert len(restricted.catalogue_tasks("stage2")) == 18


def test_split_error_lines():
    assert restricted.split_error_lines(None) == []
    assert restricted.split_error_lines(" a \n\n b") == ["a", "b"]
    assert restricted.split_error_lines(["x", "", "y\nz"]) == ["x", "y", "z"]
