"""Admin router providing CRUD endpoints for courses and lessons.

Every mutation re-fetches the affected collections before responding, so the
lists returned afterwards always reflect what the store holds.
"""
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from portal.dependencies import get_portal
from portal.services.portal import (
    CourseNotFoundError,
    LessonNotFoundError,
    PortalController,
)

router = APIRouter(prefix="/admin", tags=["Admin"])


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)


class CourseOut(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    created_at: Optional[str] = None


class TrainingCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    video_url: str = Field(..., min_length=1, max_length=1024)
    order_number: int
    course_id: str = Field(..., min_length=1)


class TrainingUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    video_url: Optional[str] = Field(None, max_length=1024)
    order_number: Optional[int] = None
    course_id: Optional[str] = None


class TrainingOut(BaseModel):
    id: str
    title: str
    video_url: str
    order_number: int
    course_id: str
    created_at: Optional[str] = None


# Courses ------------------------------------------------------------------


@router.get("/courses", response_model=List[CourseOut])
async def list_courses(portal: PortalController = Depends(get_portal)):
    return await portal.admin_courses()


@router.post(
    "/courses",
    response_model=CourseOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_course(
    payload: CourseCreate, portal: PortalController = Depends(get_portal)
):
    return await portal.create_course(payload.title, payload.description)


@router.patch("/courses/{course_id}", response_model=CourseOut)
async def update_course(
    course_id: str,
    payload: CourseUpdate,
    portal: PortalController = Depends(get_portal),
):
    try:
        return await portal.update_course(
            course_id, payload.model_dump(exclude_unset=True)
        )
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="Course not found")


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(
    course_id: str, portal: PortalController = Depends(get_portal)
):
    try:
        await portal.delete_course(course_id)
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="Course not found")
    return None


@router.get("/courses/{course_id}/trainings", response_model=List[TrainingOut])
async def list_course_trainings(
    course_id: str, portal: PortalController = Depends(get_portal)
):
    try:
        return portal.admin_lessons(course_id)
    except CourseNotFoundError:
        raise HTTPException(status_code=404, detail="Course not found")


# Trainings ----------------------------------------------------------------


@router.post(
    "/trainings",
    response_model=TrainingOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_training(
    payload: TrainingCreate, portal: PortalController = Depends(get_portal)
):
    return await portal.create_training(payload.model_dump())


@router.patch("/trainings/{training_id}", response_model=TrainingOut)
async def update_training(
    training_id: str,
    payload: TrainingUpdate,
    portal: PortalController = Depends(get_portal),
):
    try:
        return await portal.update_training(
            training_id, payload.model_dump(exclude_unset=True)
        )
    except LessonNotFoundError:
        raise HTTPException(status_code=404, detail="Lesson not found")


@router.delete(
    "/trainings/{training_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_training(
    training_id: str, portal: PortalController = Depends(get_portal)
):
    try:
        await portal.delete_training(training_id)
    except LessonNotFoundError:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return None
