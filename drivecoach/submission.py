"""
Submit flow shared by both mock tests:
validate -> attach fresh summary snapshot -> insert assessment row -> render PDF -> drop local draft.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from drivecoach import full_license, restricted
from drivecoach.constants import ASSESSMENT_TYPE_FULL_LICENSE, ASSESSMENT_TYPE_RESTRICTED
from drivecoach.database import AssessmentStore, StoreError
from drivecoach.drafts import DraftStore
from drivecoach.report import Organization, render_full_license_pdf, render_restricted_pdf
from drivecoach.schemas import (
    FullLicenseRecord,
    FullLicenseSummarySnapshot,
    RestrictedRecord,
    RestrictedSummarySnapshot,
    decode_full_license,
    decode_restricted,
    encode,
    is_uuid,
)

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    ok: bool
    message: str
    errors: List[str] = field(default_factory=list)
    assessment: Optional[Dict] = None
    report: Optional[Tuple[str, bytes]] = None


def compute_summary(record):
    """Authoritative summary for a stored record, always recomputed."""
    if isinstance(record, FullLicenseRecord):
        return full_license.calculate_summary(record.attempts, record.critical, record.immediate)
    if isinstance(record, RestrictedRecord):
        return restricted.calculate_summary(record.stages_state, record.critical, record.immediate)
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


def with_summary_snapshot(record):
    """Copy of record whose summary snapshot reflects its current data."""
    snapshot = compute_summary(record).to_snapshot()
    if isinstance(record, FullLicenseRecord):
        cached = FullLicenseSummarySnapshot.model_validate(snapshot)
    else:
        cached = RestrictedSummarySnapshot.model_validate(snapshot)
    return record.model_copy(update={"last_known_summary": cached})


def _submit(
    assessment_type: str,
    raw: Dict,
    store: AssessmentStore,
    drafts: Optional[DraftStore],
    user_id: str,
    organization_id: str,
    instructor_id: Optional[str],
    organization: Organization,
) -> SubmitResult:
    if not is_uuid(user_id) or (instructor_id is not None and not is_uuid(instructor_id)):
        return SubmitResult(ok=False, message="Sign in with a valid user ID before submitting.")

    decoder = decode_full_license if assessment_type == ASSESSMENT_TYPE_FULL_LICENSE else decode_restricted
    result = decoder({**raw, "savedByUserId": user_id})
    if not result.ok:
        return SubmitResult(ok=False, message="Some required details are missing.", errors=result.errors)

    record = with_summary_snapshot(result.record)
    summary = compute_summary(record)
    total_score = summary.score_percent if assessment_type == ASSESSMENT_TYPE_FULL_LICENSE else None

    row = {
        "organization_id": organization_id,
        "student_id": record.student_id,
        "instructor_id": instructor_id,
        "assessment_type": assessment_type,
        "assessment_date": record.assessment_date_iso,
        "total_score": total_score,
        "form_data": encode(record),
    }
    try:
        assessment = store.create_assessment(row)
    except StoreError as e:
        return SubmitResult(ok=False, message=f"Could not save the assessment: {e}")

    # The stored row now owns the data
    if drafts is not None:
        drafts.delete(assessment_type, user_id, record.student_id)

    renderer = render_full_license_pdf if assessment_type == ASSESSMENT_TYPE_FULL_LICENSE else render_restricted_pdf
    try:
        report = renderer(record, organization)
    except Exception as e:
        logger.error(f"Error rendering report for assessment {assessment.get('id')}: {e}")
        return SubmitResult(ok=True, message=f"Saved, but couldn't export PDF: {e}", assessment=assessment)

    return SubmitResult(ok=True, message="Assessment saved and PDF generated.", assessment=assessment, report=report)


def submit_full_license(
    raw: Dict,
    store: AssessmentStore,
    drafts: Optional[DraftStore],
    user_id: str,
    organization_id: str,
    instructor_id: Optional[str],
    organization: Organization,
) -> SubmitResult:
    return _submit(
        ASSESSMENT_TYPE_FULL_LICENSE, raw, store, drafts, user_id, organization_id, instructor_id, organization
    )


def submit_restricted(
    raw: Dict,
    store: AssessmentStore,
    drafts: Optional[DraftStore],
    user_id: str,
    organization_id: str,
    instructor_id: Optional[str],
    organization: Organization,
) -> SubmitResult:
    return _submit(
        ASSESSMENT_TYPE_RESTRICTED, raw, store, drafts, user_id, organization_id, instructor_id, organization
    )


def render_assessment(assessment: Dict, organization: Organization) -> Tuple[str, bytes]:
    """Re-render a stored assessment row. Raises ValueError when its form_data does not validate."""
    assessment_type = assessment.get("assessment_type")
    if assessment_type == ASSESSMENT_TYPE_FULL_LICENSE:
        result = decode_full_license(assessment.get("form_data"))
        renderer = render_full_license_pdf
    elif assessment_type == ASSESSMENT_TYPE_RESTRICTED:
        result = decode_restricted(assessment.get("form_data"))
        renderer = render_restricted_pdf
    else:
        raise ValueError(f"Unsupported assessment type: {assessment_type}")
    if not result.ok:
        raise ValueError("; ".join(result.errors))
    return renderer(result.record, organization)
