"""
Per-kind closed payload structs for form submission.

Responsibility:
    Parses an untrusted submission mapping into the one frozen dataclass
    that belongs to the form kind.  Only declared fields are read; unknown
    keys are ignored.  Missing required fields, wrong types, bad enum
    members and unparseable dates are collected and raised together as a
    single ``InvalidFormPayloadError``.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  The submission service copies a
    parsed payload onto the ORM row field by field (``payload_columns``);
    there is no generic "copy every request field" path.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from datetime import date, datetime
from enum import Enum
from typing import Any

from clearance_kernel.domain.forms import FormKind
from clearance_kernel.exceptions import InvalidFormPayloadError


class Gender(str, Enum):
    MALE = "Male"
    FEMALE = "Female"


class MaritalStatus(str, Enum):
    SINGLE = "Single"
    MARRIED = "Married"


@dataclass(frozen=True)
class NewClearancePayload:
    student_name: str
    jamb_reg_no: str
    o_level_qualification: bool = False
    change_of_course: bool = False
    change_of_institution: bool = False
    upload_o_level: bool = False
    jamb_admission_letter: bool = False


@dataclass(frozen=True)
class ProvAdmissionPayload:
    student_name: str
    department: str
    course: str


@dataclass(frozen=True)
class PersonalRecordPayload:
    full_name: str
    school_faculty: str
    department: str
    course: str
    gender: Gender
    date_of_birth: date
    marital_status: MaritalStatus
    state_of_origin: str
    nationality: str
    home_address: str
    next_of_kin: str
    matric_no: str | None = None
    religion: str | None = None
    church: str | None = None
    blood_group: str | None = None
    home_town: str | None = None


@dataclass(frozen=True)
class EducationEntry:
    school_name: str
    school_address: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "school_name": self.school_name,
            "school_address": self.school_address,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
        }


@dataclass(frozen=True)
class PersonalRecord2Payload:
    parent_guardian_name: str
    parent_guardian_address: str
    parent_guardian_origin: str
    parent_guardian_country: str
    parent_guardian_phone: str
    parent_guardian_email: str | None = None
    father_name: str | None = None
    father_address: str | None = None
    father_phone: str | None = None
    father_occupation: str | None = None
    mother_name: str | None = None
    mother_address: str | None = None
    mother_phone: str | None = None
    mother_occupation: str | None = None
    education_history: tuple[EducationEntry, ...] = ()
    qualifications: str | None = None


@dataclass(frozen=True)
class AffidavitPayload:
    student_name: str
    faculty: str
    department: str
    course: str
    agreement_date: date
    signature: str


FormPayload = (
    NewClearancePayload
    | ProvAdmissionPayload
    | PersonalRecordPayload
    | PersonalRecord2Payload
    | AffidavitPayload
)


class _Reader:
    """Reads typed fields from a mapping, collecting errors instead of raising."""

    def __init__(self, data: Mapping[str, Any], prefix: str = ""):
        self._data = data
        self._prefix = prefix
        self.errors: list[dict[str, str]] = []

    def _error(self, name: str, message: str) -> None:
        self.errors.append({"field": f"{self._prefix}{name}", "message": message})

    def text(self, name: str, required: bool = True) -> str | None:
        value = self._data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            if required:
                self._error(name, "required")
            return None
        if not isinstance(value, str):
            self._error(name, "must be a string")
            return None
        return value.strip()

    def flag(self, name: str) -> bool:
        value = self._data.get(name, False)
        if value is None:
            return False
        if not isinstance(value, bool):
            self._error(name, "must be a boolean")
            return False
        return value

    def choice(self, name: str, enum_cls: type[Enum]) -> Any:
        value = self._data.get(name)
        if value is None:
            self._error(name, "required")
            return None
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            self._error(name, f"must be one of: {allowed}")
            return None

    def day(self, name: str, required: bool = True) -> date | None:
        value = self._data.get(name)
        if value is None or value == "":
            if required:
                self._error(name, "required")
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                return date.fromisoformat(value[:10])
            except ValueError:
                pass
        self._error(name, "must be an ISO date (YYYY-MM-DD)")
        return None


def _parse_new_clearance(r: _Reader) -> dict[str, Any]:
    return {
        "student_name": r.text("student_name"),
        "jamb_reg_no": r.text("jamb_reg_no"),
        "o_level_qualification": r.flag("o_level_qualification"),
        "change_of_course": r.flag("change_of_course"),
        "change_of_institution": r.flag("change_of_institution"),
        "upload_o_level": r.flag("upload_o_level"),
        "jamb_admission_letter": r.flag("jamb_admission_letter"),
    }


def _parse_prov_admission(r: _Reader) -> dict[str, Any]:
    return {
        "student_name": r.text("student_name"),
        "department": r.text("department"),
        "course": r.text("course"),
    }


def _parse_personal_record(r: _Reader) -> dict[str, Any]:
    return {
        "full_name": r.text("full_name"),
        "school_faculty": r.text("school_faculty"),
        "department": r.text("department"),
        "course": r.text("course"),
        "gender": r.choice("gender", Gender),
        "date_of_birth": r.day("date_of_birth"),
        "marital_status": r.choice("marital_status", MaritalStatus),
        "state_of_origin": r.text("state_of_origin"),
        "nationality": r.text("nationality"),
        "home_address": r.text("home_address"),
        "next_of_kin": r.text("next_of_kin"),
        "matric_no": r.text("matric_no", required=False),
        "religion": r.text("religion", required=False),
        "church": r.text("church", required=False),
        "blood_group": r.text("blood_group", required=False),
        "home_town": r.text("home_town", required=False),
    }


def _parse_education(r: _Reader, raw: Any) -> tuple[EducationEntry, ...]:
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)):
        r.errors.append({"field": "education_history", "message": "must be a list"})
        return ()

    entries = []
    for index, item in enumerate(raw):
        if not isinstance(item, Mapping):
            r.errors.append(
                {"field": f"education_history[{index}]", "message": "must be an object"}
            )
            continue
        sub = _Reader(item, prefix=f"education_history[{index}].")
        school_name = sub.text("school_name")
        school_address = sub.text("school_address", required=False)
        start_date = sub.day("start_date", required=False)
        end_date = sub.day("end_date", required=False)
        r.errors.extend(sub.errors)
        if not sub.errors:
            entries.append(
                EducationEntry(
                    school_name=school_name,
                    school_address=school_address,
                    start_date=start_date,
                    end_date=end_date,
                )
            )
    return tuple(entries)


def _parse_personal_record_2(r: _Reader, data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "parent_guardian_name": r.text("parent_guardian_name"),
        "parent_guardian_address": r.text("parent_guardian_address"),
        "parent_guardian_origin": r.text("parent_guardian_origin"),
        "parent_guardian_country": r.text("parent_guardian_country"),
        "parent_guardian_phone": r.text("parent_guardian_phone"),
        "parent_guardian_email": r.text("parent_guardian_email", required=False),
        "father_name": r.text("father_name", required=False),
        "father_address": r.text("father_address", required=False),
        "father_phone": r.text("father_phone", required=False),
        "father_occupation": r.text("father_occupation", required=False),
        "mother_name": r.text("mother_name", required=False),
        "mother_address": r.text("mother_address", required=False),
        "mother_phone": r.text("mother_phone", required=False),
        "mother_occupation": r.text("mother_occupation", required=False),
        "education_history": _parse_education(r, data.get("education_history")),
        "qualifications": r.text("qualifications", required=False),
    }


def _parse_affidavit(r: _Reader) -> dict[str, Any]:
    return {
        "student_name": r.text("student_name"),
        "faculty": r.text("faculty"),
        "department": r.text("department"),
        "course": r.text("course"),
        "agreement_date": r.day("agreement_date"),
        "signature": r.text("signature"),
    }


def parse_payload(kind: FormKind, data: Mapping[str, Any] | None) -> FormPayload:
    """
    Parse ``data`` into the closed payload struct for ``kind``.

    Raises:
        InvalidFormPayloadError: with every field error found.
    """
    kind = FormKind(kind)
    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise InvalidFormPayloadError(
            kind.value, [{"field": "", "message": "payload must be an object"}]
        )

    r = _Reader(data)
    if kind == FormKind.NEW_CLEARANCE:
        values, cls = _parse_new_clearance(r), NewClearancePayload
    elif kind == FormKind.PROV_ADMISSION:
        values, cls = _parse_prov_admission(r), ProvAdmissionPayload
    elif kind == FormKind.PERSONAL_RECORD:
        values, cls = _parse_personal_record(r), PersonalRecordPayload
    elif kind == FormKind.PERSONAL_RECORD_2:
        values, cls = _parse_personal_record_2(r, data), PersonalRecord2Payload
    else:
        values, cls = _parse_affidavit(r), AffidavitPayload

    if r.errors:
        raise InvalidFormPayloadError(kind.value, r.errors)
    return cls(**values)


def payload_columns(payload: FormPayload) -> dict[str, Any]:
    """
    Column values for the ORM row, one entry per declared payload field.

    Enums are stored by value and the education history as a JSON list.
    """
    columns: dict[str, Any] = {}
    for f in fields(payload):
        value = getattr(payload, f.name)
        if isinstance(value, Enum):
            value = value.value
        elif f.name == "education_history":
            value = [entry.as_dict() for entry in value]
        columns[f.name] = value
    return columns
