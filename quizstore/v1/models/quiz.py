import enum
from uuid import uuid4

from sqlalchemy import Column, Integer, String, Text, Boolean, Enum, ForeignKey, TIMESTAMP, UUID
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from quizstore.db.database import Base


class Difficulty(str, enum.Enum):
    FACILE = "FACILE"
    MOYEN = "MOYEN"
    DIFFICILE = "DIFFICILE"


class Quiz(Base):
    __tablename__ = "quiz"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid4)
    theme_id = Column(
        UUID(as_uuid=True),
        ForeignKey("theme.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    difficulty = Column(Enum(Difficulty), nullable=False)
    time_limit = Column(Integer, nullable=False)  # seconds
    passing_score = Column(Integer, nullable=False)  # percent
    required_stars = Column(Integer, nullable=False, default=0)
    display_order = Column(Integer, nullable=False, default=0)
    is_free = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)
    updated_at = Column(
        TIMESTAMP, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    theme = relationship("Theme", back_populates="quizzes")
    questions = relationship(
        "Question", back_populates="quiz", cascade="all, delete", passive_deletes=True
    )
    attempts = relationship(
        "QuizAttempt", back_populates="quiz", cascade="all, delete", passive_deletes=True
    )
    extra_attempts = relationship(
        "QuizExtraAttempt", back_populates="quiz", cascade="all, delete", passive_deletes=True
    )
