import uuid
from sqlalchemy import Column, String, Text, Boolean, Integer, TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from quizstore.db.database import Base


# A Theme groups quizzes; position is the unique ordering key on the home page.
class Theme(Base):
    __tablename__ = "theme"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    position = Column(Integer, unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP, server_default=func.now(), nullable=False)
    updated_at = Column(
        TIMESTAMP, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    quizzes = relationship(
        "Quiz", back_populates="theme", cascade="all, delete", passive_deletes=True
    )
