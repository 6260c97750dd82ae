"""
Stored-data records for both mock tests.

The validated record is the assessments.form_data blob verbatim and is also
the local draft payload. Keys are camelCase on the wire, snake_case in Python.
Decoding never raises: callers branch on DecodeResult.ok.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Annotated, Any, Callable, Dict, List, Literal, Optional, Type, TypeVar
from uuid import UUID

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    NonNegativeInt,
    ValidationError,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from drivecoach.constants import (
    FULL_LICENSE_CRITICAL_ERRORS,
    FULL_LICENSE_IMMEDIATE_ERRORS,
    RESTRICTED_CRITICAL_ERRORS,
    RESTRICTED_FAULT_IDS,
    RESTRICTED_IMMEDIATE_ERRORS,
)
from drivecoach.dates import parse_date_input
from drivecoach.full_license import create_empty_hazard_responses, create_empty_items, create_error_counts

logger = logging.getLogger(__name__)

CURRENT_VERSION = 1

# version -> function upgrading a raw dict from that version to the next one
UPGRADES: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {}

ItemValue = Literal["P", "F"]
HazardResponse = Literal["yes", "no", "na"]
ErrorCounts = Dict[str, NonNegativeInt]


def is_uuid(value: Any) -> bool:
    """Canonical dashed UUID only (no braces, urn: prefix or bare hex)."""
    if not isinstance(value, str):
        return False
    try:
        return str(UUID(value)) == value.lower()
    except ValueError:
        return False


class _Model(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class _FormModel(_Model):
    """Top-level record: form text is trimmed, version is checked and upgraded."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    version: int = Field(CURRENT_VERSION, ge=1)
    student_id: str
    date: str
    time: str
    candidate_name: str = ""
    instructor: str = ""
    critical_notes: str = ""
    immediate_notes: str = ""
    saved_by_user_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _upgrade(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        version = data.get("version")
        if version is None:
            return {**data, "version": CURRENT_VERSION}
        if not isinstance(version, int) or isinstance(version, bool):
            return data
        if version < 1 or version > CURRENT_VERSION or any(v not in UPGRADES for v in range(version, CURRENT_VERSION)):
            raise ValueError(f"Unsupported record version {version} (newest known is {CURRENT_VERSION})")
        while version < CURRENT_VERSION:
            data = UPGRADES[version](dict(data))
            version += 1
            data["version"] = version
        return data

    @field_validator("student_id")
    @classmethod
    def _check_student_id(cls, value: str) -> str:
        if not is_uuid(value):
            raise ValueError("Select a student")
        return value

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        if parse_date_input(value) is None:
            raise ValueError("Use DD/MM/YYYY")
        return value

    @property
    def assessment_date_iso(self) -> str:
        return parse_date_input(self.date)


def _fill_counts(labels: List[str]) -> Callable[[Dict[str, int]], Dict[str, int]]:
    def fill(value: Dict[str, int]) -> Dict[str, int]:
        return {**create_error_counts(labels), **value}

    return fill


# Canonical labels are zero-filled; unknown keys are kept but never counted
FullLicenseCriticalCounts = Annotated[ErrorCounts, AfterValidator(_fill_counts(FULL_LICENSE_CRITICAL_ERRORS))]
FullLicenseImmediateCounts = Annotated[ErrorCounts, AfterValidator(_fill_counts(FULL_LICENSE_IMMEDIATE_ERRORS))]
RestrictedCriticalCounts = Annotated[ErrorCounts, AfterValidator(_fill_counts(RESTRICTED_CRITICAL_ERRORS))]
RestrictedImmediateCounts = Annotated[ErrorCounts, AfterValidator(_fill_counts(RESTRICTED_IMMEDIATE_ERRORS))]


# ============= Full-license mock test =============

class Attempt(_Model):
    id: str
    created_at: str
    task_id: str
    task_name: str = ""
    variant: str
    rep_index: int = Field(ge=1)
    rep_target: int = Field(ge=1)
    items: Dict[str, ItemValue] = Field(default_factory=create_empty_items)
    hazard_responses: Dict[str, Dict[str, HazardResponse]] = Field(default_factory=create_empty_hazard_responses)
    hazards_spoken: str = ""
    actions_spoken: str = ""
    notes: str = ""
    location_tag: str = ""

    @field_validator("items")
    @classmethod
    def _fill_items(cls, value: Dict[str, str]) -> Dict[str, str]:
        return {**create_empty_items(), **value}

    @field_validator("hazard_responses")
    @classmethod
    def _fill_hazards(cls, value: Dict[str, Dict[str, str]]) -> Dict[str, Dict[str, str]]:
        filled = create_empty_hazard_responses()
        for category, row in value.items():
            filled[category] = {**filled.get(category, {}), **row}
        return filled


class FullLicenseSummarySnapshot(_Model):
    attempts_count: Optional[NonNegativeInt] = None
    critical_total: Optional[NonNegativeInt] = None
    immediate_total: Optional[NonNegativeInt] = None
    score_percent: Optional[int] = Field(None, ge=0, le=100)
    readiness_label: Optional[str] = None
    readiness_reason: Optional[str] = None


class FullLicenseRecord(_FormModel):
    location_area: str = ""
    vehicle: str = ""
    mode: Literal["official", "drill"]
    weather: Literal["dry", "wet", "low_visibility"]
    overall_notes: str = ""
    drill_left_target: Optional[int] = Field(None, ge=1, le=30)
    drill_right_target: Optional[int] = Field(None, ge=1, le=30)
    start_time_iso: Optional[str] = Field(None, alias="startTimeISO")
    end_time_iso: Optional[str] = Field(None, alias="endTimeISO")
    remaining_seconds: Optional[NonNegativeInt] = None
    attempts: List[Attempt] = Field(default_factory=list)
    critical: FullLicenseCriticalCounts = Field(default_factory=lambda: create_error_counts(FULL_LICENSE_CRITICAL_ERRORS))
    immediate: FullLicenseImmediateCounts = Field(
        default_factory=lambda: create_error_counts(FULL_LICENSE_IMMEDIATE_ERRORS)
    )
    # Display cache only, never merged into a recomputed summary
    last_known_summary: Optional[FullLicenseSummarySnapshot] = Field(None, alias="summary")


# ============= Restricted-license mock test =============

class TaskState(_Model):
    items: Dict[str, NonNegativeInt] = Field(default_factory=lambda: {fault_id: 0 for fault_id in RESTRICTED_FAULT_IDS})
    location: str = ""
    notes: str = ""
    repetitions: NonNegativeInt = 0
    critical_errors: List[str] = Field(default_factory=list)
    immediate_errors: List[str] = Field(default_factory=list)

    @field_validator("items", mode="before")
    @classmethod
    def _read_items(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        counts = {fault_id: 0 for fault_id in RESTRICTED_FAULT_IDS}
        for key, raw in value.items():
            # older records stored "fault" / "" markers instead of counts
            if raw == "fault":
                counts[key] = 1
            elif raw == "" or raw is None:
                counts[key] = 0
            else:
                counts[key] = raw
        return counts

    @field_validator("critical_errors", "immediate_errors", mode="before")
    @classmethod
    def _wrap_text(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value


class StagesState(_Model):
    stage1: Dict[str, TaskState] = Field(default_factory=dict)
    stage2: Dict[str, TaskState] = Field(default_factory=dict)


class RestrictedSummarySnapshot(_Model):
    stage1_faults: Optional[NonNegativeInt] = Field(None, alias="stage1Faults")
    stage2_faults: Optional[NonNegativeInt] = Field(None, alias="stage2Faults")
    critical_total: Optional[NonNegativeInt] = None
    immediate_total: Optional[NonNegativeInt] = None
    immediate_list: Optional[str] = None
    result_text: Optional[str] = None
    result_tone: Optional[Literal["danger", "success"]] = None


class RestrictedRecord(_FormModel):
    vehicle_info: str = ""
    route_info: str = ""
    pre_drive_notes: str = ""
    stage2_enabled: bool = Field(False, alias="stage2Enabled")
    stages_state: StagesState = Field(default_factory=StagesState)
    critical: RestrictedCriticalCounts = Field(default_factory=lambda: create_error_counts(RESTRICTED_CRITICAL_ERRORS))
    immediate: RestrictedImmediateCounts = Field(
        default_factory=lambda: create_error_counts(RESTRICTED_IMMEDIATE_ERRORS)
    )
    last_known_summary: Optional[RestrictedSummarySnapshot] = Field(None, alias="summary")


# ============= Codec =============

RecordT = TypeVar("RecordT", FullLicenseRecord, RestrictedRecord)


@dataclass
class DecodeResult:
    ok: bool
    record: Optional[BaseModel] = None
    errors: List[str] = field(default_factory=list)


def _format_errors(exc: ValidationError) -> List[str]:
    messages = []
    for err in exc.errors():
        path = ".".join(str(part) for part in err.get("loc", ())) or "record"
        msg = err.get("msg", "invalid")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        messages.append(f"{path}: {msg}")
    return messages


def decode(model: Type[RecordT], raw: Any) -> DecodeResult:
    if not isinstance(raw, dict):
        return DecodeResult(ok=False, errors=["record: expected an object"])
    try:
        return DecodeResult(ok=True, record=model.model_validate(raw))
    except ValidationError as e:
        errors = _format_errors(e)
        logger.debug(f"{model.__name__} rejected: {errors}")
        return DecodeResult(ok=False, errors=errors)


def decode_full_license(raw: Any) -> DecodeResult:
    return decode(FullLicenseRecord, raw)


def decode_restricted(raw: Any) -> DecodeResult:
    return decode(RestrictedRecord, raw)


def loads(model: Type[RecordT], text: str) -> DecodeResult:
    """Decode JSON text (e.g. a local draft file)."""
    try:
        raw = json.loads(text)
    except (TypeError, json.JSONDecodeError) as e:
        return DecodeResult(ok=False, errors=[f"record: invalid JSON ({e})"])
    return decode(model, raw)


def encode(record: BaseModel) -> Dict[str, Any]:
    """camelCase, JSON-safe dict; this is what goes into form_data."""
    return record.model_dump(by_alias=True, mode="json")


def dumps(record: BaseModel) -> str:
    return json.dumps(encode(record), ensure_ascii=False)
