from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, EmailStr

from schoolrecords.schemas.school import Name


class CreateUserRequest(BaseModel):
    email: EmailStr
    first_name: Name
    last_name: Name


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool
