"""Lesson and course completion over in-memory collections.

All functions are pure: they only read the sequences they are given, so they
can be called on every request without caching.
"""
from __future__ import annotations
from typing import Iterable, List, Sequence

from portal.models.portal import CompletedLesson, CourseProgress, Training


def is_lesson_completed(
    training_id: str,
    user_id: str,
    completed_lessons: Iterable[CompletedLesson],
) -> bool:
    """True if at least one completion record matches the lesson and user."""
    return any(
        lesson.training_id == training_id and lesson.user_id == user_id
        for lesson in completed_lessons
    )


def lessons_for_course(
    course_id: str, trainings: Iterable[Training]
) -> List[Training]:
    """The course's lessons by ``order_number``; ties keep their input order."""
    return sorted(
        (t for t in trainings if t.course_id == course_id),
        key=lambda t: t.order_number,
    )


def is_course_completed(
    course_id: str,
    trainings: Iterable[Training],
    completed_lessons: Sequence[CompletedLesson],
    user_id: str,
) -> bool:
    """True if every lesson of the course is completed by the user.

    A course without lessons is complete.
    """
    return all(
        is_lesson_completed(t.id, user_id, completed_lessons)
        for t in trainings
        if t.course_id == course_id
    )


def course_progress(
    course_id: str,
    trainings: Iterable[Training],
    completed_lessons: Sequence[CompletedLesson],
    user_id: str,
) -> CourseProgress:
    lessons = lessons_for_course(course_id, trainings)
    done = sum(
        1 for t in lessons if is_lesson_completed(t.id, user_id, completed_lessons)
    )
    return CourseProgress(
        course_id=course_id,
        total=len(lessons),
        completed=done,
        is_completed=done == len(lessons),
    )
