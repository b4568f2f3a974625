import enum
from uuid import uuid4

from sqlalchemy import Column, ForeignKey, Text, Enum, TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from quizstore.db.database import Base


class QuestionType(str, enum.Enum):
    QCM = "QCM"  # several correct options
    QCU = "QCU"  # exactly one correct option


class Question(Base):
    __tablename__ = "question"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    quiz_id = Column(
        UUID(as_uuid=True), ForeignKey("quiz.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content = Column(Text, nullable=False)
    type = Column(Enum(QuestionType), nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)
    updated_at = Column(
        TIMESTAMP, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    quiz = relationship("Quiz", back_populates="questions")
    options = relationship(
        "Option", back_populates="question", cascade="all, delete-orphan", passive_deletes=True
    )
