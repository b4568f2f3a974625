import json
import uuid
from sqlalchemy import Column, String, Text, Integer, ForeignKey, TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizstore.db.database import Base


class EmailHistory(Base):
    __tablename__ = "email_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    subject = Column(String(255), nullable=False)
    html_content = Column(Text, nullable=False)
    recipient_count = Column(Integer, nullable=False)
    recipient_emails = Column(Text, nullable=False)  # JSON-encoded list of str
    success_count = Column(Integer, nullable=False, default=0)
    failed_count = Column(Integer, nullable=False, default=0)
    errors = Column(Text, nullable=True)  # JSON-encoded list, NULL when every send succeeded
    sent_by_id = Column(
        UUID(as_uuid=True), ForeignKey("user.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    sent_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    sent_by = relationship("User", back_populates="sent_emails")

    @property
    def recipients(self):
        return json.loads(self.recipient_emails) if self.recipient_emails else []

    @property
    def error_list(self):
        return json.loads(self.errors) if self.errors else []
