from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from schoolrecords.authz.principal import Principal, Role
from schoolrecords.db.session import get_db
from schoolrecords.models.users import User
from schoolrecords.schemas.users import CreateUserRequest, UserOut
from schoolrecords.security.decorators import require_role
from schoolrecords.security.dependencies import get_current_principal

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/me", response_model=UserOut)
def current_user(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
) -> User:
    # No declaration: open to any authenticated principal.
    user = db.get(User, principal.id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("/{role}", response_model=UserOut, status_code=status.HTTP_201_CREATED)
@require_role(Role.ADMIN)
def create_user(
    role: Literal["teacher", "parent", "admin"],
    body: CreateUserRequest,
    db: Session = Depends(get_db),
) -> User:
    email = body.email.lower()
    if db.scalars(select(User.id).where(User.email == email)).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="User with this email already exists")

    user = User(
        email=email,
        first_name=body.first_name,
        last_name=body.last_name,
        role=Role.parse(role).value,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user
