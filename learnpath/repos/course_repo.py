from __future__ import annotations

from dataclasses import replace
from typing import Any, Protocol
from uuid import UUID

from learnpath.models.course import Course, Milestone


class CourseRepo(Protocol):
    async def add(self, course: Course) -> None: ...
    async def get(self, course_id: UUID) -> Course | None: ...
    async def get_for_user(self, course_id: UUID, user_id: UUID) -> Course | None: ...
    async def list_for_user(self, user_id: UUID) -> list[Course]: ...
    async def mark_completed(self, course_id: UUID, user_id: UUID) -> bool: ...
    async def add_milestones(self, milestones: list[Milestone]) -> None: ...
    async def get_milestone(self, milestone_id: UUID) -> Milestone | None: ...
    async def list_milestones(self, course_id: UUID) -> list[Milestone]: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._courses: dict[UUID, Course] = {}
        self._milestones: dict[UUID, Milestone] = {}

    async def add(self, course: Course) -> None:
        if course.id in self._courses:
            raise ValueError("course already exists")
        self._courses[course.id] = course

    async def get(self, course_id: UUID) -> Course | None:
        return self._courses.get(course_id)

    async def get_for_user(self, course_id: UUID, user_id: UUID) -> Course | None:
        course = self._courses.get(course_id)
        if course is None or course.user_id != user_id:
            return None
        return course

    async def list_for_user(self, user_id: UUID) -> list[Course]:
        courses = [c for c in self._courses.values() if c.user_id == user_id]
        return sorted(courses, key=lambda c: c.created_at, reverse=True)

    async def mark_completed(self, course_id: UUID, user_id: UUID) -> bool:
        """Flip active → completed.  Returns False if nothing changed."""
        course = await self.get_for_user(course_id, user_id)
        if course is None or course.status != "active":
            return False
        self._courses[course_id] = replace(course, status="completed")
        return True

    async def add_milestones(self, milestones: list[Milestone]) -> None:
        for m in milestones:
            if m.course_id not in self._courses:
                raise KeyError("course not found")
            taken = {
                x.order_index
                for x in self._milestones.values()
                if x.course_id == m.course_id
            }
            if m.order_index in taken:
                raise ValueError("duplicate order_index")
            self._milestones[m.id] = m

    async def get_milestone(self, milestone_id: UUID) -> Milestone | None:
        return self._milestones.get(milestone_id)

    async def list_milestones(self, course_id: UUID) -> list[Milestone]:
        found = [m for m in self._milestones.values() if m.course_id == course_id]
        return sorted(found, key=lambda m: m.order_index)

    def snapshot(self) -> dict[str, Any]:
        return {"courses": dict(self._courses), "milestones": dict(self._milestones)}

    def restore(self, state: dict[str, Any]) -> None:
        self._courses = state["courses"]
        self._milestones = state["milestones"]
