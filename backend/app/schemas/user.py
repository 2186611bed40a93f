# app/schemas/user.py

from datetime import datetime
from pydantic import BaseModel, EmailStr, ConfigDict
from pydantic.alias_generators import to_camel


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: EmailStr
    role: str


class UserMeResponse(UserResponse):
    model_config = ConfigDict(
        from_attributes=True, alias_generator=to_camel, populate_by_name=True
    )

    readiness_score: float
    readiness_score_quiz_count: int
    readiness_score_updated_at: datetime | None = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str
