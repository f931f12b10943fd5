from pydantic import BaseModel, EmailStr
from pydantic.alias_generators import to_camel
from typing import Optional


class UserCreate(BaseModel):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    app_id: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class UserSummary(BaseModel):
    id: int
    email: str

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    app_id: Optional[str]
    is_active: bool


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    user: UserSummary
