import uuid
from sqlalchemy import Column, String, ForeignKey, TIMESTAMP, UUID, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizstore.db.database import Base


class EmailVerification(Base):
    __tablename__ = "email_verification"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    code = Column(String(16), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="email_verifications")
