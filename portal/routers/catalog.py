"""Catalog router: course browsing, lesson completion and course finish."""
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from portal.dependencies import get_portal
from portal.services.portal import (
    CourseNotFoundError,
    LessonNotFoundError,
    PortalController,
)

router = APIRouter(prefix="/catalog", tags=["Catalog"])


class CourseSummaryOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    created_at: Optional[str] = None
    lessonCount: int
    completedCount: int
    completed: bool


class LessonOut(BaseModel):
    id: str
    title: str
    video_url: str
    order_number: int
    course_id: str
    created_at: Optional[str] = None
    completed: bool


class CourseDetailOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    created_at: Optional[str] = None
    lessons: List[LessonOut]
    completed: bool


class CelebrationOut(BaseModel):
    celebrate: bool
    courseId: Optional[str] = None
    title: Optional[str] = None


@router.get("", response_model=List[CourseSummaryOut])
async def list_catalog(portal: PortalController = Depends(get_portal)):
    return portal.catalog()


@router.get("/courses/{course_id}", response_model=CourseDetailOut)
async def get_course(
    course_id: str, portal: PortalController = Depends(get_portal)
):
    try:
        return portal.course_detail(course_id)
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="Course not found")


@router.post("/courses/{course_id}/select", response_model=CourseDetailOut)
async def select_course(
    course_id: str, portal: PortalController = Depends(get_portal)
):
    try:
        return portal.select_course(course_id)
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="Course not found")


@router.post("/leave", status_code=204)
async def leave_course(portal: PortalController = Depends(get_portal)):
    portal.leave_course()
    return None


@router.post("/lessons/{training_id}/complete", response_model=LessonOut)
async def complete_lesson(
    training_id: str, portal: PortalController = Depends(get_portal)
):
    try:
        return await portal.mark_lesson_complete(training_id)
    except LessonNotFoundError:
        raise HTTPException(status_code=404, detail="Lesson not found")


@router.post("/finish", response_model=CelebrationOut)
async def finish_course(portal: PortalController = Depends(get_portal)):
    celebration = portal.finish_course()
    if celebration is None:
        return {"celebrate": False}
    return {"celebrate": True, **celebration}


@router.post("/celebration/dismiss", status_code=204)
async def dismiss_celebration(portal: PortalController = Depends(get_portal)):
    portal.dismiss_celebration()
    return None
