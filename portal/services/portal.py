"""Portal controller: what one signed-in client sees and does.

Holds read-through copies of the courses, lessons and the current user's
completion records. Every mutation is followed by a full reload of the
affected collections; nothing is patched locally.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from portal.errors import AccessDeniedError, AuthError, StoreError, ValidationError
from portal.gateways.session_gateway import SessionGateway
from portal.models.portal import CompletedLesson, Course, Role, Training
from portal.repositories.catalog_store import CatalogStore
from portal.services import progress
from portal.services.role_gate import GateResult, RoleGate
from portal.services.session_context import SessionContext

logger = logging.getLogger(__name__)


class CourseNotFoundError(Exception):
    """Raised when a course id is not in the loaded catalog."""


class LessonNotFoundError(Exception):
    """Raised when a lesson id is not in the loaded catalog."""


class PortalController:
    def __init__(self, gateway: SessionGateway, store: CatalogStore):
        self.store = store
        self.context = SessionContext()
        self.gate = RoleGate(
            gateway, store, self.context, on_reset=self._clear_collections
        )
        self.courses: List[Course] = []
        self.trainings: List[Training] = []
        self.completed_lessons: List[CompletedLesson] = []

    # Session ----------------------------------------------------------------
    async def start(self) -> GateResult:
        result = await self.gate.resume()
        await self._load_if_authenticated()
        return result

    async def select_role(self, role: Role) -> GateResult:
        result = await self.gate.select_role(role)
        await self._load_if_authenticated()
        return result

    async def sign_in(self, email: str, password: str) -> GateResult:
        result = await self.gate.sign_in(email, password)
        await self._load_if_authenticated()
        return result

    async def sign_out(self) -> GateResult:
        return await self.gate.sign_out()

    def close(self) -> None:
        self.gate.close()

    def state(self) -> dict:
        return {**self.context.to_dict(), **self.gate.result().to_dict()}

    async def _load_if_authenticated(self) -> None:
        if not self.context.is_authenticated:
            return
        try:
            await self.reload_all()
        except StoreError as exc:
            # signed in regardless; the catalog can be reloaded later
            logger.error("Initial catalog load failed: %s", exc.message)
            self.gate.message = exc.message

    def _clear_collections(self) -> None:
        self.courses = []
        self.trainings = []
        self.completed_lessons = []

    def _require_session(self) -> str:
        if not self.context.is_authenticated or not self.context.current_user:
            raise AuthError("Please sign in to continue.")
        return self.context.current_user

    def _require_admin(self) -> None:
        self._require_session()
        if not self.context.is_admin:
            raise AccessDeniedError()

    # Reloads ----------------------------------------------------------------
    async def reload_courses(self) -> None:
        rows = await self.store.select("courses")
        self.courses = [Course(**row) for row in rows]

    async def reload_trainings(self) -> None:
        rows = await self.store.select("trainings")
        self.trainings = [Training(**row) for row in rows]

    async def reload_completed_lessons(self) -> None:
        user_id = self._require_session()
        rows = await self.store.select("completed_lessons", {"user_id": user_id})
        self.completed_lessons = [CompletedLesson(**row) for row in rows]

    async def reload_all(self) -> None:
        await self.reload_courses()
        await self.reload_trainings()
        await self.reload_completed_lessons()

    # Lookups ----------------------------------------------------------------
    def _course(self, course_id: str) -> Course:
        for course in self.courses:
            if course.id == course_id:
                return course
        raise CourseNotFoundError(course_id)

    def _training(self, training_id: str) -> Training:
        for training in self.trainings:
            if training.id == training_id:
                return training
        raise LessonNotFoundError(training_id)

    def _lesson_view(self, training: Training, user_id: str) -> dict:
        return {
            **training.model_dump(mode="json"),
            "completed": progress.is_lesson_completed(
                training.id, user_id, self.completed_lessons
            ),
        }

    # Student ----------------------------------------------------------------
    def catalog(self) -> List[dict]:
        user_id = self._require_session()
        entries = []
        for course in self.courses:
            summary = progress.course_progress(
                course.id, self.trainings, self.completed_lessons, user_id
            )
            entries.append(
                {
                    **course.model_dump(mode="json"),
                    "lessonCount": summary.total,
                    "completedCount": summary.completed,
                    "completed": summary.is_completed,
                }
            )
        return entries

    def course_detail(self, course_id: str) -> dict:
        user_id = self._require_session()
        course = self._course(course_id)
        lessons = progress.lessons_for_course(course.id, self.trainings)
        return {
            **course.model_dump(mode="json"),
            "lessons": [self._lesson_view(t, user_id) for t in lessons],
            "completed": progress.is_course_completed(
                course.id, self.trainings, self.completed_lessons, user_id
            ),
        }

    def select_course(self, course_id: str) -> dict:
        self._require_session()
        self._course(course_id)
        self.context.selected_course = course_id
        self.context.show_completion = False
        return self.course_detail(course_id)

    def leave_course(self) -> None:
        self._require_session()
        self.context.selected_course = None
        self.context.show_completion = False

    async def mark_lesson_complete(self, training_id: str) -> dict:
        """Record that the current user finished a lesson.

        Already completed lessons are not inserted twice.
        """
        user_id = self._require_session()
        training = self._training(training_id)
        if not progress.is_lesson_completed(
            training.id, user_id, self.completed_lessons
        ):
            try:
                await self.store.insert(
                    "completed_lessons",
                    {"training_id": training.id, "user_id": user_id},
                )
            except StoreError as exc:
                logger.error(
                    "Completing lesson %s for %s failed: %s",
                    training.id,
                    user_id,
                    exc.message,
                )
                raise StoreError("The lesson could not be marked as completed.") from exc
        await self.reload_completed_lessons()
        return self._lesson_view(training, user_id)

    def finish_course(self) -> Optional[dict]:
        """Celebrate the selected course when all its lessons are done."""
        user_id = self._require_session()
        course_id = self.context.selected_course
        if course_id is None:
            return None
        if not progress.is_course_completed(
            course_id, self.trainings, self.completed_lessons, user_id
        ):
            return None
        self.context.show_completion = True
        course = self._course(course_id)
        return {"courseId": course.id, "title": course.title}

    def dismiss_celebration(self) -> None:
        self._require_session()
        self.context.show_completion = False
        self.context.selected_course = None

    # Admin ------------------------------------------------------------------
    async def admin_courses(self) -> List[dict]:
        """Courses for the admin console, newest first."""
        self._require_admin()
        rows = await self.store.select("courses", order_by="-created_at")
        return [Course(**row).model_dump(mode="json") for row in rows]

    def admin_lessons(self, course_id: str) -> List[dict]:
        self._require_admin()
        self._course(course_id)
        return [
            t.model_dump(mode="json")
            for t in progress.lessons_for_course(course_id, self.trainings)
        ]

    @staticmethod
    def _required_text(value: Optional[str], label: str) -> str:
        if value is None or not value.strip():
            raise ValidationError(f"{label} is required.")
        return value.strip()

    async def _mutate(self, action: str, call, *reloads) -> Any:
        try:
            result = await call
        except StoreError as exc:
            logger.error("Admin %s failed: %s", action, exc.message)
            raise
        for reload in reloads:
            await reload()
        return result

    async def create_course(
        self, title: str, description: Optional[str] = None
    ) -> dict:
        self._require_admin()
        record = {
            "title": self._required_text(title, "Course title"),
            "description": description,
        }
        return await self._mutate(
            "course create",
            self.store.insert("courses", record),
            self.reload_courses,
        )

    async def update_course(self, course_id: str, fields: Dict[str, Any]) -> dict:
        self._require_admin()
        self._course(course_id)
        changes = {}
        if "title" in fields:
            changes["title"] = self._required_text(fields["title"], "Course title")
        if "description" in fields:
            changes["description"] = fields["description"]
        return await self._mutate(
            "course update",
            self.store.update("courses", course_id, changes),
            self.reload_courses,
        )

    async def delete_course(self, course_id: str) -> None:
        """Delete a course; its lessons and their completions go with it."""
        self._require_admin()
        self._course(course_id)
        await self._mutate(
            "course delete",
            self.store.delete("courses", course_id),
            self.reload_courses,
            self.reload_trainings,
            self.reload_completed_lessons,
        )
        if self.context.selected_course == course_id:
            self.context.selected_course = None
            self.context.show_completion = False

    def _training_fields(self, fields: Dict[str, Any], partial: bool) -> dict:
        changes: Dict[str, Any] = {}
        if not partial or "title" in fields:
            changes["title"] = self._required_text(fields.get("title"), "Lesson title")
        if not partial or "video_url" in fields:
            changes["video_url"] = self._required_text(
                fields.get("video_url"), "Video URL"
            )
        if not partial or "order_number" in fields:
            order = fields.get("order_number")
            if order is None:
                raise ValidationError("Lesson order is required.")
            changes["order_number"] = int(order)
        if not partial or "course_id" in fields:
            course_id = fields.get("course_id")
            if not course_id or not any(c.id == course_id for c in self.courses):
                raise ValidationError("Please select a course first.")
            changes["course_id"] = course_id
        return changes

    async def create_training(self, fields: Dict[str, Any]) -> dict:
        self._require_admin()
        record = self._training_fields(fields, partial=False)
        return await self._mutate(
            "lesson create",
            self.store.insert("trainings", record),
            self.reload_trainings,
        )

    async def update_training(
        self, training_id: str, fields: Dict[str, Any]
    ) -> dict:
        self._require_admin()
        self._training(training_id)
        changes = self._training_fields(fields, partial=True)
        return await self._mutate(
            "lesson update",
            self.store.update("trainings", training_id, changes),
            self.reload_trainings,
        )

    async def delete_training(self, training_id: str) -> None:
        self._require_admin()
        self._training(training_id)
        await self._mutate(
            "lesson delete",
            self.store.delete("trainings", training_id),
            self.reload_trainings,
            self.reload_completed_lessons,
        )
