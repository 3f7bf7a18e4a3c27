from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from schoolrecords.authz.policy import ResourceSlot, ResourceType
from schoolrecords.authz.principal import Role
from schoolrecords.db.session import get_db
from schoolrecords.models.school import SchoolClass, Student
from schoolrecords.schemas.school import CreateStudentRequest, StudentOut, TransferGradeRequest
from schoolrecords.security.decorators import require_role

router = APIRouter(prefix="/api/students", tags=["students"])


def _get_student_or_404(db: Session, student_id: uuid.UUID) -> Student:
    student = db.get(Student, student_id)
    if student is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.post("", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
@require_role(Role.ADMIN)
def create_student(body: CreateStudentRequest, db: Session = Depends(get_db)) -> Student:
    if db.get(SchoolClass, body.class_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Class does not exist")

    student = Student(
        first_name=body.first_name,
        last_name=body.last_name,
        date_of_birth=body.date_of_birth,
        grade_level=body.grade_level,
        class_id=body.class_id,
        student_number=body.student_number,
        enrollment_date=body.enrollment_date or date.today(),
    )
    db.add(student)
    db.commit()
    db.refresh(student)
    return student


@router.get("/{student_id}", response_model=StudentOut)
@require_role(
    Role.ADMIN,
    Role.TEACHER,
    Role.PARENT,
    resource=ResourceSlot("student_id", ResourceType.STUDENT),
)
def get_student(student_id: uuid.UUID, db: Session = Depends(get_db)) -> Student:
    # Teachers see students in their assigned classes, parents their linked children.
    return _get_student_or_404(db, student_id)


@router.post("/{student_id}/transfer", response_model=StudentOut)
@require_role(Role.ADMIN)
def transfer_student(student_id: uuid.UUID, body: TransferGradeRequest, db: Session = Depends(get_db)) -> Student:
    student = _get_student_or_404(db, student_id)
    student.grade_level = body.grade_level
    db.commit()
    db.refresh(student)
    return student


@router.post("/{student_id}/advance", response_model=StudentOut)
@require_role(Role.ADMIN)
def advance_student(student_id: uuid.UUID, db: Session = Depends(get_db)) -> Student:
    student = _get_student_or_404(db, student_id)
    if student.grade_level >= 12:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cannot advance beyond grade 12")
    student.grade_level += 1
    db.commit()
    db.refresh(student)
    return student
