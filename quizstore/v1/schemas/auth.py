from pydantic import Field
from typing import Optional
from uuid import UUID
from datetime import datetime

from quizstore.v1.schemas.common import CreateSchema, UpdateSchema


class EmailVerificationCreate(CreateSchema):
    id: Optional[UUID] = None
    user_id: UUID
    code: str = Field(..., min_length=1, max_length=16)
    expires_at: datetime


class EmailVerificationUpdate(UpdateSchema):
    code: Optional[str] = Field(default=None, min_length=1, max_length=16)
    expires_at: Optional[datetime] = None


class PasswordResetCreate(CreateSchema):
    id: Optional[UUID] = None
    user_id: UUID
    token: str = Field(..., min_length=1, max_length=128)
    expires_at: datetime


class PasswordResetUpdate(UpdateSchema):
    token: Optional[str] = Field(default=None, min_length=1, max_length=128)
    expires_at: Optional[datetime] = None
