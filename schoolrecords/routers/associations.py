from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolrecords.db.session import get_db
from schoolrecords.models.school import ParentStudentAssociation, Student
from schoolrecords.models.users import User
from schoolrecords.schemas.school import AssociationOut, CreateAssociationRequest

# Policies for these operations live in config/security_config.yaml.
router = APIRouter(prefix="/api/parent-student-associations", tags=["parent_student_associations"])


@router.post("", response_model=AssociationOut, status_code=status.HTTP_201_CREATED)
def create_association(body: CreateAssociationRequest, db: Session = Depends(get_db)) -> ParentStudentAssociation:
    parent = db.get(User, body.parent_id)
    if parent is None or parent.role != "PARENT" or not parent.is_active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parent does not exist or is inactive")
    if db.get(Student, body.student_id) is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Student does not exist")

    existing = db.scalars(
        select(ParentStudentAssociation.id)
        .where(ParentStudentAssociation.parent_id == body.parent_id)
        .where(ParentStudentAssociation.student_id == body.student_id)
    ).first()
    if existing is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Parent is already linked to this student")

    association = ParentStudentAssociation(
        parent_id=body.parent_id,
        student_id=body.student_id,
        relationship_type=body.relationship_type,
        is_primary_contact=body.is_primary_contact,
    )
    db.add(association)
    db.commit()
    db.refresh(association)
    return association


@router.get("/parent/{parent_id}", response_model=list[AssociationOut])
def list_associations_by_parent(parent_id: uuid.UUID, db: Session = Depends(get_db)) -> list[ParentStudentAssociation]:
    stmt = select(ParentStudentAssociation).where(ParentStudentAssociation.parent_id == parent_id)
    return list(db.scalars(stmt).all())


@router.get("/student/{student_id}", response_model=list[AssociationOut])
def list_associations_by_student(student_id: uuid.UUID, db: Session = Depends(get_db)) -> list[ParentStudentAssociation]:
    stmt = select(ParentStudentAssociation).where(ParentStudentAssociation.student_id == student_id)
    return list(db.scalars(stmt).all())
