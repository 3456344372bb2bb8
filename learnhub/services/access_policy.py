"""Role resolution and course-level access checks.

Every route asks this module whether a user may view or edit a course; no
handler looks at ``role_id`` on its own.
"""
from sqlalchemy import select
from sqlalchemy.orm import Session

from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.models import (
    ROLE_ADMIN,
    ROLE_STUDENT,
    ROLE_TEACHER,
    Course,
    CourseEnrollment,
    CourseTeacher,
    Quiz,
    Role,
    User,
)


def role_name(db: Session, role_id: int | None) -> str | None:
    if not role_id:
        return None
    return db.execute(select(Role.name).where(Role.id == role_id)).scalar_one_or_none()


def role_id_for(db: Session, name: str) -> int | None:
    return db.execute(select(Role.id).where(Role.name == name)).scalar_one_or_none()


class CourseAccessPolicy:
    def __init__(self, db: Session):
        self.db = db

    def role(self, user: User) -> str | None:
        return role_name(self.db, user.role_id)

    def is_admin(self, user: User) -> bool:
        return self.role(user) == ROLE_ADMIN

    def is_staff(self, user: User) -> bool:
        return self.role(user) in (ROLE_ADMIN, ROLE_TEACHER)

    def is_enrolled(self, user: User, course_id: int) -> bool:
        row = self.db.execute(
            select(CourseEnrollment.user_id).where(
                CourseEnrollment.user_id == user.id,
                CourseEnrollment.course_id == course_id,
            )
        ).first()
        return row is not None

    def can_view(self, user: User, course_id: int) -> bool:
        role = self.role(user)
        if role == ROLE_ADMIN:
            return True
        if role == ROLE_TEACHER:
            return self._teacher_link(user, course_id, owner_only=False)
        if role == ROLE_STUDENT:
            row = self.db.execute(
                select(CourseEnrollment.user_id)
                .join(Course, Course.id == CourseEnrollment.course_id)
                .where(
                    CourseEnrollment.course_id == course_id,
                    CourseEnrollment.user_id == user.id,
                    Course.is_locked.is_(False),
                )
            ).first()
            return row is not None
        return False

    def can_edit(self, user: User, course_id: int) -> bool:
        role = self.role(user)
        if role == ROLE_ADMIN:
            return True
        if role == ROLE_TEACHER:
            return self._teacher_link(user, course_id, owner_only=True)
        return False

    def _teacher_link(self, user: User, course_id: int, *, owner_only: bool) -> bool:
        course = self.db.get(Course, course_id)
        if course is None:
            return False
        if course.created_by == user.id:
            return True
        stmt = select(CourseTeacher.user_id).where(
            CourseTeacher.course_id == course_id,
            CourseTeacher.user_id == user.id,
        )
        if owner_only:
            stmt = stmt.where(CourseTeacher.is_owner.is_(True))
        return self.db.execute(stmt).first() is not None

    def can_manage_quiz(self, user: User, quiz: Quiz) -> bool:
        return self.can_edit(user, quiz.course_id)

    def require_course(self, course_id: int) -> Course:
        course = self.db.get(Course, course_id)
        if course is None:
            raise ApiError(status_code=404, code=ErrorCode.COURSE_NOT_FOUND, message="Course not found")
        return course

    def require_view(self, user: User, course_id: int) -> Course:
        course = self.require_course(course_id)
        if not self.can_view(user, course_id):
            raise ApiError(status_code=403, code=ErrorCode.COURSE_ACCESS_DENIED, message="No access to this course")
        return course

    def require_edit(self, user: User, course_id: int) -> Course:
        course = self.require_course(course_id)
        if not self.can_edit(user, course_id):
            raise ApiError(status_code=403, code=ErrorCode.FORBIDDEN, message="Forbidden")
        return course

    def require_staff(self, user: User) -> str:
        role = self.role(user)
        if role not in (ROLE_ADMIN, ROLE_TEACHER):
            raise ApiError(
                status_code=403, code=ErrorCode.FORBIDDEN, message="Access denied: teacher or admin access required"
            )
        return role

    def require_admin(self, user: User) -> None:
        if not self.is_admin(user):
            raise ApiError(status_code=403, code=ErrorCode.FORBIDDEN, message="Access denied: insufficient permissions")
