"""Submit flow against an in-memory Supabase client."""
import pytest

from conftest import ORG_ID, STUDENT_ID, USER_ID, full_license_raw, make_attempt, restricted_raw
from drivecoach.constants import ASSESSMENT_TYPE_FULL_LICENSE, ASSESSMENT_TYPE_RESTRICTED, FULL_LICENSE_IMMEDIATE_ERRORS
from drivecoach.database import AssessmentStore, StoreError
from drivecoach.drafts import DraftStore
from drivecoach.report import Organization
from drivecoach.schemas import decode_full_license
from drivecoach.submission import (
    compute_summary,
    render_assessment,
    submit_full_license,
    submit_restricted,
    with_summary_snapshot,
)

ORG = Organization(name="Kiwi Driving School")


@pytest.fixture
def store(fake_client):
    return AssessmentStore(fake_client)


@pytest.fixture
def drafts(draft_dir):
    return DraftStore(draft_dir)


def _inserted(fake_client):
    return fake_client.tables["assessments"].inserted


def test_full_license_submit_saves_row_and_pdf(fake_client, store, drafts):
    draft = decode_full_license(full_license_raw()).record
    drafts.save(ASSESSMENT_TYPE_FULL_LICENSE, USER_ID, STUDENT_ID, draft)

    result = submit_full_license(full_license_raw(), store, drafts, USER_ID, ORG_ID, USER_ID, ORG)

    assert result.ok, result.errors
    assert result.message == "Assessment saved and PDF generated."
    row = _inserted(fake_client)[0]
    assert row["assessment_type"] == "third_assessment"
    assert row["assessment_date"] == "2024-03-05"
    assert row["organization_id"] == ORG_ID
    assert row["total_score"] == 100
    assert row["form_data"]["savedByUserId"] == USER_ID
    assert row["form_data"]["summary"]["readinessLabel"] == "LOOKING GOOD"
    file_name, data = result.report
    assert file_name == "Mock_Test_Full_License_Aroha_Smith_05-03-24.pdf"
    assert data.startswith(b"%PDF")
    assert not drafts.exists(ASSESSMENT_TYPE_FULL_LICENSE, USER_ID, STUDENT_ID)


def test_stale_summary_is_replaced(fake_client, store):
    raw = full_license_raw(
        immediate={FULL_LICENSE_IMMEDIATE_ERRORS[1]: 1},
        summary={"scorePercent": 100, "readinessLabel": "LOOKING GOOD"},
    )
    result = submit_full_license(raw, store, None, USER_ID, ORG_ID, None, ORG)
    assert result.ok
    row = _inserted(fake_client)[0]
    assert row["total_score"] == 0
    assert row["form_data"]["summary"]["scorePercent"] == 0
    assert row["form_data"]["summary"]["readinessLabel"] == "NOT READY"


def test_invalid_record_is_not_saved(fake_client, store, drafts):
    result = submit_full_license(full_license_raw(studentId=""), store, drafts, USER_ID, ORG_ID, USER_ID, ORG)
    assert not result.ok
    assert result.message == "Some required details are missing."
    assert "studentId: Select a student" in result.errors
    assert "assessments" not in fake_client.tables


def test_store_failure_keeps_draft(fake_client, store, drafts):
    draft = decode_full_license(full_license_raw()).record
    drafts.save(ASSESSMENT_TYPE_FULL_LICENSE, USER_ID, STUDENT_ID, draft)
    fake_client.table("assessments")
    fake_client.tables["assessments"].error = RuntimeError("network down")

    result = submit_full_license(full_license_raw(), store, drafts, USER_ID, ORG_ID, USER_ID, ORG)

    assert not result.ok
    assert result.message == "Could not save the assessment: network down"
    assert drafts.exists(ASSESSMENT_TYPE_FULL_LICENSE, USER_ID, STUDENT_ID)


def test_empty_insert_response_is_an_error(fake_client, store):
    fake_client.table("assessments")
    fake_client.tables["assessments"].return_rows = False
    with pytest.raises(StoreError):
        store.create_assessment({"assessment_type": ASSESSMENT_TYPE_RESTRICTED})


def test_pdf_failure_still_saves(fake_client, store, drafts, monkeypatch):
    def broken(record, organization):
        raise RuntimeError("font missing")

    monkeypatch.setattr("drivecoach.submission.render_restricted_pdf", broken)
    result = submit_restricted(restricted_raw(), store, drafts, USER_ID, ORG_ID, USER_ID, ORG)
    assert result.ok
    assert result.report is None
    assert result.message == "Saved, but couldn't export PDF: font missing"
    assert len(_inserted(fake_client)) == 1


def test_restricted_submit_has_no_total_score(fake_client, store):
    result = submit_restricted(restricted_raw(), store, None, USER_ID, ORG_ID, None, ORG)
    assert result.ok
    row = _inserted(fake_client)[0]
    assert row["assessment_type"] == "second_assessment"
    assert row["total_score"] is None
    assert row["form_data"]["summary"]["stage1Faults"] == 3
    assert result.report[0].startswith("Mock_Test_Restricted_License_Aroha_Smith_05-03-24")


def test_with_summary_snapshot_matches_compute():
    record = decode_full_license(full_license_raw(attempts=[make_attempt(fails=("observation",))])).record
    refreshed = with_summary_snapshot(record)
    summary = compute_summary(refreshed)
    assert refreshed.last_known_summary.score_percent == summary.score_percent == 83
    assert record.last_known_summary is None


def test_render_assessment_from_row(fake_client, store):
    submit_full_license(full_license_raw(), store, None, USER_ID, ORG_ID, None, ORG)
    row = dict(_inserted(fake_client)[0], id="a1")
    file_name, data = render_assessment(row, ORG)
    assert file_name.endswith(".pdf")
    assert data.startswith(b"%PDF")


def test_render_assessment_rejects_bad_rows():
    with pytest.raises(ValueError):
        render_assessment({"assessment_type": "first_assessment", "form_data": {}}, ORG)
    with pytest.raises(ValueError):
        render_assessment({"assessment_type": ASSESSMENT_TYPE_FULL_LICENSE, "form_data": {"mode": "x"}}, ORG)


def test_list_assessments_swallows_errors(fake_client, store):
    fake_client.table("assessments")
    fake_client.tables["assessments"].error = RuntimeError("boom")
    assert store.list_assessments() == []


@pytest.mark.parametrize("user_id, instructor_id", [("instructor-sam", None), (USER_ID, "sam")])
def test_non_uuid_user_is_rejected_before_insert(fake_client, store, user_id, instructor_id):
    result = submit_full_license(full_license_raw(), store, None, user_id, ORG_ID, instructor_id, ORG)
    assert not result.ok
    assert result.message == "Sign in with a valid user ID before submitting."
    assert "assessments" not in fake_client.tables
