import uuid
from sqlalchemy import Column, ForeignKey, TIMESTAMP, Integer, UUID
from sqlalchemy.orm import relationship
from quizstore.db.database import Base
from sqlalchemy.sql import func


class QuizExtraAttempt(Base):
    __tablename__ = "quiz_extra_attempt"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quiz_id = Column(
        UUID(as_uuid=True), ForeignKey("quiz.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stars_cost = Column(Integer, nullable=False)
    purchased_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="quiz_extra_attempts")
    quiz = relationship("Quiz", back_populates="extra_attempts")
