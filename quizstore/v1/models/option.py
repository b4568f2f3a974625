from sqlalchemy import Column, Boolean, Text, ForeignKey, TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizstore.db.database import Base
from uuid import uuid4


class Option(Base):
    __tablename__ = "option"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    question_id = Column(
        UUID(as_uuid=True),
        ForeignKey("question.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)
    explanation = Column(Text, nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    question = relationship("Question", back_populates="options")
