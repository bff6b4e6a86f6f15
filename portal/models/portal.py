"""
Pydantic models for portal values

In-memory copies of the records held by the catalog store. The progress model
and the portal controller operate on these; the store hands out plain dicts
which are validated into these models on every reload.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    """Access roles a user can sign in as."""

    ADMIN = "admin"
    STUDENT = "student"


class Profile(BaseModel):
    """Account record carrying the authorization role"""
    id: str = Field(..., description="Stable identity issued by the session gateway")
    email: str
    role: Role = Field(default=Role.STUDENT)
    created_at: Optional[datetime] = None


class Course(BaseModel):
    """A named collection of ordered lessons"""
    id: str
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    created_at: Optional[datetime] = None


class Training(BaseModel):
    """A single video lesson belonging to one course"""
    id: str
    title: str = Field(..., min_length=1)
    video_url: str = Field(..., min_length=1)
    order_number: int = Field(..., description="Display and completion-check order within the course")
    course_id: str
    created_at: Optional[datetime] = None


class CompletedLesson(BaseModel):
    """Fact record asserting a user finished a lesson"""
    id: str
    user_id: str
    training_id: str
    completed_at: Optional[datetime] = None


class Identity(BaseModel):
    """Authenticated identity returned by the session gateway"""
    user_id: str
    email: str


class CourseProgress(BaseModel):
    course_id: str
    total: int
    completed: int
    is_completed: bool
