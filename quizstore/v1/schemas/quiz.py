from pydantic import Field
from typing import Optional
from uuid import UUID
from datetime import datetime

from quizstore.v1.models.quiz import Difficulty
from quizstore.v1.models.question import QuestionType
from quizstore.v1.schemas.common import CreateSchema, UpdateSchema, IntUpdate


# Themes
class ThemeCreate(CreateSchema):
    id: Optional[UUID] = None
    position: int = Field(..., ge=1)
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    is_active: bool = True


class ThemeUpdate(UpdateSchema):
    position: Optional[IntUpdate] = None
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    is_active: Optional[bool] = None


# Quizzes
class QuizCreate(CreateSchema):
    id: Optional[UUID] = None
    theme_id: UUID
    title: str = Field(default="", max_length=255)
    description: str = ""
    difficulty: Difficulty
    time_limit: int = Field(..., ge=1)
    passing_score: int = Field(..., ge=0, le=100)
    required_stars: int = Field(default=0, ge=0)
    display_order: int = 0
    is_free: bool = False
    is_active: bool = True


class QuizUpdate(UpdateSchema):
    theme_id: Optional[UUID] = None
    title: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    time_limit: Optional[IntUpdate] = None
    passing_score: Optional[IntUpdate] = None
    required_stars: Optional[IntUpdate] = None
    display_order: Optional[IntUpdate] = None
    is_free: Optional[bool] = None
    is_active: Optional[bool] = None


# Questions and options
class QuestionCreate(CreateSchema):
    id: Optional[UUID] = None
    quiz_id: UUID
    content: str = ""
    type: QuestionType


class QuestionUpdate(UpdateSchema):
    quiz_id: Optional[UUID] = None
    content: Optional[str] = None
    type: Optional[QuestionType] = None


class OptionCreate(CreateSchema):
    id: Optional[UUID] = None
    question_id: UUID
    content: str = ""
    is_correct: bool = False
    explanation: Optional[str] = None


class OptionUpdate(UpdateSchema):
    content: Optional[str] = None
    is_correct: Optional[bool] = None
    explanation: Optional[str] = None


# Attempts
class QuizAttemptCreate(CreateSchema):
    id: Optional[UUID] = None
    user_id: UUID
    quiz_id: UUID
    score: int
    stars_earned: int = 0
    completed_at: Optional[datetime] = None


class QuizAttemptUpdate(UpdateSchema):
    score: Optional[IntUpdate] = None
    stars_earned: Optional[IntUpdate] = None
    completed_at: Optional[datetime] = None


class QuizExtraAttemptCreate(CreateSchema):
    id: Optional[UUID] = None
    user_id: UUID
    quiz_id: UUID
    stars_cost: int = Field(..., ge=0)
    purchased_at: Optional[datetime] = None


class QuizExtraAttemptUpdate(UpdateSchema):
    stars_cost: Optional[IntUpdate] = None
    purchased_at: Optional[datetime] = None
