from pydantic import Field
from typing import List, Optional, Union
from uuid import UUID
from datetime import datetime

from quizstore.v1.schemas.common import CreateSchema, UpdateSchema, IntUpdate


class EmailHistoryCreate(CreateSchema):
    id: Optional[UUID] = None
    subject: str = Field(..., min_length=1, max_length=255)
    html_content: str
    recipient_count: int = Field(..., ge=0)
    recipient_emails: Union[List[str], str]  # lists are JSON-encoded on write
    success_count: int = 0
    failed_count: int = 0
    errors: Optional[Union[List[str], str]] = None
    sent_by_id: UUID
    sent_at: Optional[datetime] = None


class EmailHistoryUpdate(UpdateSchema):
    subject: Optional[str] = Field(default=None, min_length=1, max_length=255)
    html_content: Optional[str] = None
    recipient_count: Optional[IntUpdate] = None
    recipient_emails: Optional[Union[List[str], str]] = None
    success_count: Optional[IntUpdate] = None
    failed_count: Optional[IntUpdate] = None
    errors: Optional[Union[List[str], str]] = None
