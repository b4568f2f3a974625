import uuid
from sqlalchemy import Column, String, ForeignKey, TIMESTAMP, UUID, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizstore.db.database import Base


class PasswordReset(Base):
    __tablename__ = "password_reset"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("user.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token = Column(String(128), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="password_resets")
