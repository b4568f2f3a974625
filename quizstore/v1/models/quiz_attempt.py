import uuid
from sqlalchemy import Column, ForeignKey, TIMESTAMP, Integer, UUID
from sqlalchemy.orm import relationship
from quizstore.db.database import Base
from sqlalchemy.sql import func


# One row per finished attempt; a user may attempt the same quiz many times.
class QuizAttempt(Base):
    __tablename__ = "quiz_attempt"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True
    )
    quiz_id = Column(
        UUID(as_uuid=True), ForeignKey("quiz.id", ondelete="CASCADE"), nullable=False, index=True
    )
    score = Column(Integer, nullable=False)
    stars_earned = Column(Integer, nullable=False, default=0)
    completed_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="quiz_attempts")
    quiz = relationship("Quiz", back_populates="attempts")
