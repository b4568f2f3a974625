import enum
import uuid

from sqlalchemy import Column, String, Boolean, Enum, UUID, Integer, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from quizstore.db.database import Base


class Role(str, enum.Enum):
    ADMIN = "ADMIN"
    USER = "USER"


class User(Base):
    __tablename__ = "user"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password = Column(String, nullable=True)  # null for Google-only accounts
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    country = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)
    avatar = Column(String, nullable=True)
    role = Column(Enum(Role), nullable=False, default=Role.USER)
    is_email_verified = Column(Boolean, nullable=False, default=False)
    google_id = Column(String(255), unique=True, nullable=True)
    stars = Column(Integer, nullable=False, default=0)
    show_in_leaderboard = Column(Boolean, nullable=False, default=True)

    email_notifications = Column(Boolean, nullable=False, default=True)
    push_notifications = Column(Boolean, nullable=False, default=True)
    marketing_emails = Column(Boolean, nullable=False, default=False)

    current_session_token = Column(String, nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)
    updated_at = Column(
        TIMESTAMP, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    email_verifications = relationship(
        "EmailVerification", back_populates="user", cascade="all, delete", passive_deletes=True
    )
    password_resets = relationship(
        "PasswordReset", back_populates="user", cascade="all, delete", passive_deletes=True
    )
    quiz_attempts = relationship(
        "QuizAttempt", back_populates="user", cascade="all, delete", passive_deletes=True
    )
    quiz_extra_attempts = relationship(
        "QuizExtraAttempt", back_populates="user", cascade="all, delete", passive_deletes=True
    )
    # RESTRICT on the FK: the store refuses to drop a sender with history
    sent_emails = relationship("EmailHistory", back_populates="sent_by", passive_deletes="all")
