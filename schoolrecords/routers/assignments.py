from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolrecords.db.session import get_db
from schoolrecords.models.school import SchoolClass, TeacherClassAssignment
from schoolrecords.models.users import User
from schoolrecords.schemas.school import AssignmentOut, CreateAssignmentRequest

# Policies for these operations live in config/security_config.yaml.
router = APIRouter(prefix="/api/teacher-class-assignments", tags=["teacher_class_assignments"])


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def create_assignment(body: CreateAssignmentRequest, db: Session = Depends(get_db)) -> TeacherClassAssignment:
    teacher = db.get(User, body.teacher_id)
    if teacher is None or teacher.role != "TEACHER" or not teacher.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Teacher does not exist or is inactive")
    if db.get(SchoolClass, body.class_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Class does not exist")

    existing = db.scalars(
        select(TeacherClassAssignment.id)
        .where(TeacherClassAssignment.teacher_id == body.teacher_id)
        .where(TeacherClassAssignment.class_id == body.class_id)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Teacher is already assigned to this class")

    assignment = TeacherClassAssignment(
        teacher_id=body.teacher_id,
        class_id=body.class_id,
        role=body.role,
        assigned_date=body.assigned_date or date.today(),
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


@router.get("/teacher/{teacher_id}", response_model=list[AssignmentOut])
def list_assignments_by_teacher(teacher_id: uuid.UUID, db: Session = Depends(get_db)) -> list[TeacherClassAssignment]:
    stmt = (
        select(TeacherClassAssignment)
        .where(TeacherClassAssignment.teacher_id == teacher_id)
        .order_by(TeacherClassAssignment.assigned_date)
    )
    return list(db.scalars(stmt).all())


@router.get("/class/{class_id}", response_model=list[AssignmentOut])
def list_assignments_by_class(class_id: uuid.UUID, db: Session = Depends(get_db)) -> list[TeacherClassAssignment]:
    stmt = (
        select(TeacherClassAssignment)
        .where(TeacherClassAssignment.class_id == class_id)
        .order_by(TeacherClassAssignment.assigned_date)
    )
    return list(db.scalars(stmt).all())
