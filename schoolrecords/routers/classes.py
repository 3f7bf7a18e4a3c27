from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolrecords.authz.policy import ResourceSlot, ResourceType
from schoolrecords.authz.principal import Role
from schoolrecords.db.session import get_db
from schoolrecords.models.school import SchoolClass
from schoolrecords.schemas.school import ClassOut, CreateClassRequest, parse_grade_level
from schoolrecords.security.decorators import require_role

router = APIRouter(prefix="/api/classes", tags=["classes"])


@router.post("", response_model=ClassOut, status_code=status.HTTP_201_CREATED)
@require_role(Role.ADMIN)
def create_class(body: CreateClassRequest, db: Session = Depends(get_db)) -> SchoolClass:
    exists = db.scalars(
        select(SchoolClass.id)
        .where(SchoolClass.name == body.name)
        .where(SchoolClass.grade_level == body.grade_level)
        .where(SchoolClass.academic_year == body.academic_year)
    ).first()
    if exists is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Class already exists")

    school_class = SchoolClass(name=body.name, grade_level=body.grade_level, academic_year=body.academic_year)
    db.add(school_class)
    db.commit()
    db.refresh(school_class)
    return school_class


@router.get("/grade/{grade}", response_model=list[ClassOut])
@require_role(Role.ADMIN)
def list_classes_by_grade(grade: str, db: Session = Depends(get_db)) -> list[SchoolClass]:
    try:
        grade_level = parse_grade_level(grade)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc

    stmt = select(SchoolClass).where(SchoolClass.grade_level == grade_level).order_by(SchoolClass.name)
    return list(db.scalars(stmt).all())


@router.get("/{class_id}", response_model=ClassOut)
@require_role(Role.ADMIN, Role.TEACHER, resource=ResourceSlot("class_id", ResourceType.CLASS))
def get_class(class_id: uuid.UUID, db: Session = Depends(get_db)) -> SchoolClass:
    school_class = db.get(SchoolClass, class_id)
    if school_class is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Class not found")
    return school_class
