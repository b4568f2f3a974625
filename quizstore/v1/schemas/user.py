from pydantic import EmailStr, Field
from typing import Optional
from uuid import UUID

from quizstore.v1.models.user import Role
from quizstore.v1.schemas.common import CreateSchema, UpdateSchema, IntUpdate


class UserCreate(CreateSchema):
    id: Optional[UUID] = None
    email: EmailStr
    password: Optional[str] = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., max_length=100)
    country: Optional[str] = None
    city: Optional[str] = None
    avatar: Optional[str] = None
    role: Role = Role.USER
    is_email_verified: bool = False
    google_id: Optional[str] = None
    stars: int = Field(default=0, ge=0)
    show_in_leaderboard: bool = True
    email_notifications: bool = True
    push_notifications: bool = True
    marketing_emails: bool = False
    current_session_token: Optional[str] = None


class UserUpdate(UpdateSchema):
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(default=None, max_length=100)
    country: Optional[str] = None
    city: Optional[str] = None
    avatar: Optional[str] = None
    role: Optional[Role] = None
    is_email_verified: Optional[bool] = None
    google_id: Optional[str] = None
    stars: Optional[IntUpdate] = None
    show_in_leaderboard: Optional[bool] = None
    email_notifications: Optional[bool] = None
    push_notifications: Optional[bool] = None
    marketing_emails: Optional[bool] = None
    current_session_token: Optional[str] = None
