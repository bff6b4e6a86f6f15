"""SQLAlchemy ORM models for the portal's persisted entities.

Separate from the pydantic values in portal.py which the progress model and
the controller work with. This layer manages persistence concerns only.
"""
from __future__ import annotations
import itertools
import time
import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column, declarative_base
from sqlalchemy import (
    BigInteger,
    String,
    DateTime,
    Integer,
    Text,
    ForeignKey,
    UniqueConstraint,
)

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


# Insertion sequence: clock-seeded, strictly increasing within a process.
# Orders rows that share a timestamp.
_sequence = itertools.count(time.time_ns())


def _next_seq() -> int:
    return next(_sequence)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class ProfileRecord(Base):
    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    email: Mapped[str] = mapped_column(String(255), index=True)
    role: Mapped[str] = mapped_column(String(16), default="student")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    seq: Mapped[int] = mapped_column(BigInteger, default=_next_seq)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "created_at": _iso(self.created_at),
        }


class AccountRecord(Base):
    """Credentials owned by the session gateway, keyed by profile id.

    Never exposed through the catalog store.
    """

    __tablename__ = "accounts"

    id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255))


class CourseRecord(Base):
    __tablename__ = "courses"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=_new_id
    )
    title: Mapped[str] = mapped_column(String(200))
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    seq: Mapped[int] = mapped_column(BigInteger, default=_next_seq)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "created_at": _iso(self.created_at),
        }


class TrainingRecord(Base):
    """A single video lesson; ``order_number`` is not required unique."""

    __tablename__ = "trainings"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=_new_id
    )
    title: Mapped[str] = mapped_column(String(200))
    video_url: Mapped[str] = mapped_column(String(1024))
    order_number: Mapped[int] = mapped_column(Integer)
    course_id: Mapped[str] = mapped_column(
        ForeignKey("courses.id", ondelete="CASCADE"), index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    seq: Mapped[int] = mapped_column(BigInteger, default=_next_seq)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "video_url": self.video_url,
            "order_number": self.order_number,
            "course_id": self.course_id,
            "created_at": _iso(self.created_at),
        }


class CompletedLessonRecord(Base):
    __tablename__ = "completed_lessons"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "training_id", name="uq_completed_lessons_user_training"
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=_new_id
    )
    user_id: Mapped[str] = mapped_column(
        ForeignKey("profiles.id", ondelete="CASCADE"), index=True
    )
    training_id: Mapped[str] = mapped_column(
        ForeignKey("trainings.id", ondelete="CASCADE"), index=True
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    seq: Mapped[int] = mapped_column(BigInteger, default=_next_seq)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "training_id": self.training_id,
            "completed_at": _iso(self.completed_at),
        }
