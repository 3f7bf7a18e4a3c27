from __future__ import annotations

import re
import uuid
from datetime import date
from typing import Annotated

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer, StringConstraints, field_validator

_ACADEMIC_YEAR_RE = re.compile(r"^(\d{4})-(\d{4})$")

# Academic years accepted on create: current year plus or minus this many years.
ACADEMIC_YEAR_WINDOW = 2

# Surrounding whitespace is dropped before the length checks, so blank values are rejected.
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Label = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


def parse_grade_level(raw: str | int) -> int:
    """'K' -> 0, '1'..'12' -> 1..12."""
    if isinstance(raw, str) and raw.strip().upper() == "K":
        return 0
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid grade level: {raw!r}") from exc
    if value < 0 or value > 12:
        raise ValueError(f"Invalid grade level: {value}. Must be K or 1-12.")
    return value


def format_grade_level(value: int) -> str:
    return "K" if value == 0 else str(value)


GradeLevelIn = Annotated[int, BeforeValidator(parse_grade_level)]
GradeLevelOut = Annotated[int, PlainSerializer(format_grade_level, return_type=str)]


class CreateClassRequest(BaseModel):
    name: Name
    grade_level: GradeLevelIn
    academic_year: str

    @field_validator("academic_year")
    @classmethod
    def _academic_year(cls, value: str) -> str:
        match = _ACADEMIC_YEAR_RE.match(value.strip())
        if not match or int(match.group(2)) != int(match.group(1)) + 1:
            raise ValueError("Academic year must look like 2025-2026")
        current_year = date.today().year
        if abs(int(match.group(1)) - current_year) > ACADEMIC_YEAR_WINDOW:
            raise ValueError(f"Academic year must be within {ACADEMIC_YEAR_WINDOW} years of the current year")
        return value.strip()


class ClassOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    grade_level: GradeLevelOut
    academic_year: str


class CreateStudentRequest(BaseModel):
    first_name: Name
    last_name: Name
    date_of_birth: date
    grade_level: GradeLevelIn
    class_id: uuid.UUID
    student_number: Label | None = None
    enrollment_date: date | None = None


class TransferGradeRequest(BaseModel):
    grade_level: GradeLevelIn


class StudentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    first_name: str
    last_name: str
    date_of_birth: date
    grade_level: GradeLevelOut
    class_id: uuid.UUID
    student_number: str | None
    enrollment_date: date


class CreateAssignmentRequest(BaseModel):
    teacher_id: uuid.UUID
    class_id: uuid.UUID
    role: Label
    assigned_date: date | None = None


class AssignmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    teacher_id: uuid.UUID
    class_id: uuid.UUID
    role: str
    assigned_date: date


class CreateAssociationRequest(BaseModel):
    parent_id: uuid.UUID
    student_id: uuid.UUID
    relationship_type: Label
    is_primary_contact: bool = False


class AssociationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    parent_id: uuid.UUID
    student_id: uuid.UUID
    relationship_type: str
    is_primary_contact: bool
