from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy import delete, func, or_, select
from sqlalchemy.orm import Session

from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.core.security import now_utc
from learnhub.models import (
    ROLE_ADMIN,
    ROLE_STUDENT,
    ROLE_TEACHER,
    Course,
    CourseEnrollment,
    CourseTeacher,
    Role,
    User,
)
from learnhub.schemas.courses import (
    AdminStats,
    CourseCreateRequest,
    CourseOut,
    CourseUpdateRequest,
    DashboardCourse,
)
from learnhub.schemas.members import AddMemberRequest, AvailableUser, CourseMember
from learnhub.services import progress_service
from learnhub.services.access_policy import CourseAccessPolicy
from learnhub.services.activity_notifier import ActivityEvent, activity_notifier

logger = logging.getLogger("learnhub.courses")


def course_out(db: Session, course: Course) -> CourseOut:
    creator_name = None
    if course.created_by:
        creator_name = db.execute(select(User.name).where(User.id == course.created_by)).scalar_one_or_none()
    return CourseOut(
        id=course.id,
        title=course.title,
        description=course.description,
        icon=course.icon,
        created_by=course.created_by,
        creator_name=creator_name,
        is_locked=course.is_locked,
        created_at=course.created_at,
    )


def visible_courses(db: Session, user: User) -> list[Course]:
    """Courses the user can view, newest first."""
    role = CourseAccessPolicy(db).role(user)
    stmt = select(Course)
    if role == ROLE_ADMIN:
        pass
    elif role == ROLE_TEACHER:
        assigned = select(CourseTeacher.course_id).where(CourseTeacher.user_id == user.id)
        stmt = stmt.where(or_(Course.created_by == user.id, Course.id.in_(assigned)))
    elif role == ROLE_STUDENT:
        enrolled = select(CourseEnrollment.course_id).where(CourseEnrollment.user_id == user.id)
        stmt = stmt.where(Course.id.in_(enrolled), Course.is_locked.is_(False))
    else:
        return []
    return list(db.execute(stmt.order_by(Course.created_at.desc(), Course.id.desc())).scalars().all())


def create_course(db: Session, user: User, payload: CourseCreateRequest) -> Course:
    CourseAccessPolicy(db).require_staff(user)
    course = Course(
        title=payload.title.strip(),
        description=payload.description,
        icon=payload.icon,
        created_by=user.id,
        is_locked=False,
    )
    db.add(course)
    db.flush()
    db.add(CourseTeacher(user_id=user.id, course_id=course.id, is_owner=True))
    db.commit()
    db.refresh(course)
    logger.info("Course %s created by user %s", course.id, user.id)
    return course


def update_course(db: Session, user: User, course_id: int, payload: CourseUpdateRequest) -> Course:
    course = CourseAccessPolicy(db).require_edit(user, course_id)
    if payload.title is not None:
        course.title = payload.title.strip()
    if "description" in payload.model_fields_set:
        course.description = payload.description
    if "icon" in payload.model_fields_set:
        course.icon = payload.icon
    db.commit()
    db.refresh(course)
    return course


def delete_course(db: Session, user: User, course_id: int) -> None:
    course = CourseAccessPolicy(db).require_edit(user, course_id)
    db.delete(course)
    db.commit()
    logger.info("Course %s deleted by user %s", course_id, user.id)


def toggle_lock(db: Session, user: User, course_id: int) -> Course:
    course = CourseAccessPolicy(db).require_edit(user, course_id)
    course.is_locked = not course.is_locked
    db.commit()
    db.refresh(course)
    return course


def _member_progress(db: Session, user_id: int, course_id: int) -> tuple[int, int]:
    summary = progress_service.summarize(db, user_id, course_id)
    return summary.total_items, summary.completed_items


def list_members(
    db: Session,
    user: User,
    course_id: int,
    roles: list[str] | None = None,
    search: str | None = None,
) -> list[CourseMember]:
    CourseAccessPolicy(db).require_view(user, course_id)

    teacher_rows = db.execute(
        select(User, Role.name, CourseTeacher.assigned_at, CourseTeacher.is_owner)
        .join(CourseTeacher, CourseTeacher.user_id == User.id)
        .outerjoin(Role, Role.id == User.role_id)
        .where(CourseTeacher.course_id == course_id)
    ).all()
    student_rows = db.execute(
        select(User, Role.name, CourseEnrollment.enrolled_at)
        .join(CourseEnrollment, CourseEnrollment.user_id == User.id)
        .outerjoin(Role, Role.id == User.role_id)
        .where(CourseEnrollment.course_id == course_id)
    ).all()

    members: list[CourseMember] = []
    seen: set[int] = set()
    wanted = set(roles or ("teacher", "student"))
    if "teacher" in wanted:
        for member, global_role, joined_at, is_owner in teacher_rows:
            seen.add(member.id)
            members.append(_member(db, member, global_role, "teacher", joined_at, is_owner, course_id))
    if "student" in wanted:
        for member, global_role, joined_at in student_rows:
            if member.id in seen:
                continue
            members.append(_member(db, member, global_role, "student", joined_at, False, course_id))

    if search:
        needle = search.lower()
        members = [m for m in members if needle in (m.name or "").lower() or needle in m.email.lower()]
    members.sort(key=lambda m: ((m.name or "").lower(), m.id))
    return members


def _member(db, member: User, global_role, role_in_course, joined_at, is_owner, course_id) -> CourseMember:
    total, completed = _member_progress(db, member.id, course_id)
    return CourseMember(
        id=member.id,
        name=member.name,
        email=member.email,
        global_role=global_role,
        role_in_course=role_in_course,
        is_owner=bool(is_owner),
        joined_at=joined_at,
        last_login_at=member.last_login_at,
        total_tasks=total,
        completed_tasks=completed,
    )


def add_member(db: Session, user: User, course_id: int, payload: AddMemberRequest) -> None:
    policy = CourseAccessPolicy(db)
    policy.require_admin(user)
    member = db.get(User, payload.user_id)
    if not member:
        raise ApiError(status_code=404, code=ErrorCode.USER_NOT_FOUND, message="User not found")
    course = policy.require_course(course_id)

    if db.get(CourseTeacher, (member.id, course.id)) or db.get(CourseEnrollment, (member.id, course.id)):
        raise ApiError(
            status_code=409, code=ErrorCode.ALREADY_MEMBER, message="User is already a member of this course"
        )

    if payload.role_in_course == "teacher":
        db.add(CourseTeacher(user_id=member.id, course_id=course.id, is_owner=payload.is_owner))
    else:
        db.add(CourseEnrollment(user_id=member.id, course_id=course.id))
    db.commit()

    activity_notifier.notify(
        ActivityEvent(
            type="user_enrolled",
            user_name=member.name,
            item_title=None,
            course_title=course.title,
            course_id=course.id,
            extra={"roleInCourse": payload.role_in_course, "adminId": user.id},
        )
    )


def remove_member(db: Session, user: User, course_id: int, member_id: int) -> None:
    policy = CourseAccessPolicy(db)
    policy.require_admin(user)
    course = policy.require_course(course_id)
    member = db.get(User, member_id)

    teacher_count = db.execute(
        delete(CourseTeacher).where(CourseTeacher.user_id == member_id, CourseTeacher.course_id == course_id)
    ).rowcount
    student_count = db.execute(
        delete(CourseEnrollment).where(CourseEnrollment.user_id == member_id, CourseEnrollment.course_id == course_id)
    ).rowcount
    if not member or not (teacher_count or student_count):
        db.rollback()
        raise ApiError(status_code=404, code=ErrorCode.MEMBER_NOT_FOUND, message="User not found in course")
    db.commit()

    activity_notifier.notify(
        ActivityEvent(
            type="user_unenrolled",
            user_name=member.name,
            item_title=None,
            course_title=course.title,
            course_id=course.id,
            extra={"roleInCourse": "teacher" if teacher_count else "student", "adminId": user.id},
        )
    )


def available_users(
    db: Session,
    user: User,
    exclude_course_id: int,
    roles: list[str] | None = None,
    search: str | None = None,
) -> list[AvailableUser]:
    CourseAccessPolicy(db).require_admin(user)
    teachers = select(CourseTeacher.user_id).where(CourseTeacher.course_id == exclude_course_id)
    students = select(CourseEnrollment.user_id).where(CourseEnrollment.course_id == exclude_course_id)
    stmt = (
        select(User, Role.name)
        .outerjoin(Role, Role.id == User.role_id)
        .where(User.id.not_in(teachers), User.id.not_in(students))
    )
    if roles:
        stmt = stmt.where(func.lower(Role.name).in_([r.lower() for r in roles]))
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern)))
    rows = db.execute(stmt.order_by(User.name.asc(), User.id.asc()).limit(50)).all()
    return [AvailableUser(id=u.id, name=u.name, email=u.email, global_role=role) for u, role in rows]


def dashboard_progress(db: Session, user: User) -> list[DashboardCourse]:
    return [
        DashboardCourse(
            id=course.id,
            title=course.title,
            icon=course.icon,
            is_locked=course.is_locked,
            progress=progress_service.summarize(db, user.id, course.id),
        )
        for course in visible_courses(db, user)
    ]


def admin_stats(db: Session, user: User) -> AdminStats:
    CourseAccessPolicy(db).require_admin(user)

    def count_role(name: str) -> int:
        return db.execute(
            select(func.count(User.id)).join(Role, Role.id == User.role_id).where(Role.name == name)
        ).scalar_one()

    week_ago = now_utc() - timedelta(days=7)
    return AdminStats(
        total_teachers=count_role(ROLE_TEACHER),
        total_students=count_role(ROLE_STUDENT),
        total_users=db.execute(select(func.count(User.id))).scalar_one(),
        total_courses=db.execute(select(func.count(Course.id))).scalar_one(),
        logins_last_week=db.execute(
            select(func.count(User.id)).where(User.last_login_at >= week_ago)
        ).scalar_one(),
        active_sessions=activity_notifier.connection_count,
    )
