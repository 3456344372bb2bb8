"""Per-user task and hub progress.

Task state is a two-state toggle. Hub state moves locked -> unlocked ->
completed, and completing a hub unlocks its direct successors only. Hubs
further downstream wait for their own predecessor to complete.
"""
from __future__ import annotations

import logging

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.core.security import now_utc
from learnhub.db.upsert import insert_ignore, upsert
from learnhub.models import (
    HUB_COMPLETED,
    HUB_UNLOCKED,
    TASK_COMPLETED,
    TASK_NOT_STARTED,
    Course,
    Hub,
    HubEdge,
    HubUserState,
    Task,
    TaskProgress,
    User,
)
from learnhub.schemas.certificates import ProgressResult
from learnhub.schemas.courses import CourseProgressResponse, HubProgressItem, ProgressSummary, TaskProgressItem
from learnhub.services import certificate_service
from learnhub.services.access_policy import CourseAccessPolicy
from learnhub.services.activity_notifier import ActivityEvent, activity_notifier
from learnhub.services.graph_service import course_id_for_task, get_hub_or_404, get_task_or_404

logger = logging.getLogger("learnhub.progress")


def set_task_progress(db: Session, user: User, task_id: int, done: bool) -> ProgressResult:
    task = get_task_or_404(db, task_id)
    course = CourseAccessPolicy(db).require_view(user, course_id_for_task(db, task))

    now = now_utc()
    upsert(
        db,
        TaskProgress,
        {
            "user_id": user.id,
            "task_id": task.id,
            "status": TASK_COMPLETED if done else TASK_NOT_STARTED,
            "completed_at": now if done else None,
            "updated_at": now,
        },
        conflict_cols=["user_id", "task_id"],
        update_cols=["status", "completed_at", "updated_at"],
    )
    certificate, created = certificate_service.issue_if_earned(db, user.id, course.id) if done else (None, False)
    db.commit()

    if done:
        activity_notifier.notify(
            ActivityEvent(
                type="task",
                user_name=user.name,
                item_title=task.title,
                course_title=course.title,
                course_id=course.id,
            )
        )
    return _progress_result(db, certificate, created)


def hub_task_counts(db: Session, user_id: int, hub_id: int, *, required_only: bool = False) -> tuple[int, int]:
    """Return ``(total, completed)`` task counts for one user under one hub."""
    stmt = (
        select(
            func.count(Task.id),
            func.coalesce(func.sum(case((TaskProgress.status == TASK_COMPLETED, 1), else_=0)), 0),
        )
        .select_from(Task)
        .outerjoin(TaskProgress, (TaskProgress.task_id == Task.id) & (TaskProgress.user_id == user_id))
        .where(Task.hub_id == hub_id)
    )
    if required_only:
        stmt = stmt.where(Task.is_required.is_(True))
    total, completed = db.execute(stmt).one()
    return int(total), int(completed)


def mark_hub_completed(db: Session, user_id: int, hub_id: int) -> int:
    """Upsert the hub to completed and unlock its direct successors.

    Returns the number of successor rows created. Runs in the caller's
    transaction.
    """
    now = now_utc()
    upsert(
        db,
        HubUserState,
        {"hub_id": hub_id, "user_id": user_id, "state": HUB_COMPLETED, "completed_at": now, "updated_at": now},
        conflict_cols=["hub_id", "user_id"],
        update_cols=["state", "completed_at", "updated_at"],
    )
    return unlock_successors(db, user_id, hub_id)


def unlock_successors(db: Session, user_id: int, hub_id: int) -> int:
    """Insert ``unlocked`` rows for direct successors that have no row yet.

    Existing rows are never touched, so a completed successor stays
    completed. Only one edge is followed.
    """
    successors = db.execute(select(HubEdge.to_hub_id).where(HubEdge.from_hub_id == hub_id)).scalars().all()
    now = now_utc()
    rows = [
        {"hub_id": to_hub_id, "user_id": user_id, "state": HUB_UNLOCKED, "completed_at": None, "updated_at": now}
        for to_hub_id in sorted(set(successors))
    ]
    return insert_ignore(db, HubUserState, rows, conflict_cols=["hub_id", "user_id"])


def set_hub_progress(db: Session, user: User, hub_id: int, done: bool) -> ProgressResult:
    hub = get_hub_or_404(db, hub_id, for_update=True)
    course = CourseAccessPolicy(db).require_view(user, hub.course_id)

    certificate, created = None, False
    if done:
        total, completed = hub_task_counts(db, user.id, hub.id)
        if completed < total:
            raise ApiError(
                status_code=400,
                code=ErrorCode.PRECONDITION_FAILED,
                message="All tasks in this hub must be completed first",
                details={"total_tasks": total, "completed_tasks": completed},
            )
        unlocked = mark_hub_completed(db, user.id, hub.id)
        if unlocked:
            logger.debug("Hub %s completion unlocked %d hubs for user %s", hub.id, unlocked, user.id)
        certificate, created = certificate_service.issue_if_earned(db, user.id, course.id)
    else:
        # Only a completed hub can be undone; unreached hubs stay locked.
        db.execute(
            update(HubUserState)
            .where(
                HubUserState.hub_id == hub.id,
                HubUserState.user_id == user.id,
                HubUserState.state == HUB_COMPLETED,
            )
            .values(state=HUB_UNLOCKED, completed_at=None, updated_at=now_utc())
            .execution_options(synchronize_session=False)
        )
    db.commit()

    if done:
        activity_notifier.notify(
            ActivityEvent(
                type="hub",
                user_name=user.name,
                item_title=hub.title,
                course_title=course.title,
                course_id=course.id,
            )
        )
    return _progress_result(db, certificate, created)


def _progress_result(db: Session, certificate, created: bool) -> ProgressResult:
    if certificate is not None and created:
        return ProgressResult(success=True, new_certificate=certificate_service.certificate_out(db, certificate))
    return ProgressResult(success=True)


def get_hub_state(db: Session, user_id: int, hub_id: int) -> HubUserState | None:
    return db.execute(
        select(HubUserState)
        .where(HubUserState.user_id == user_id, HubUserState.hub_id == hub_id)
        .execution_options(populate_existing=True)
    ).scalars().first()


def summarize(db: Session, user_id: int, course_id: int) -> ProgressSummary:
    total_tasks, completed_tasks = db.execute(
        select(
            func.count(Task.id),
            func.coalesce(func.sum(case((TaskProgress.status == TASK_COMPLETED, 1), else_=0)), 0),
        )
        .select_from(Task)
        .join(Hub, Hub.id == Task.hub_id)
        .outerjoin(TaskProgress, (TaskProgress.task_id == Task.id) & (TaskProgress.user_id == user_id))
        .where(Hub.course_id == course_id)
    ).one()
    total_hubs, completed_hubs = db.execute(
        select(
            func.count(Hub.id),
            func.coalesce(func.sum(case((HubUserState.state == HUB_COMPLETED, 1), else_=0)), 0),
        )
        .select_from(Hub)
        .outerjoin(HubUserState, (HubUserState.hub_id == Hub.id) & (HubUserState.user_id == user_id))
        .where(Hub.course_id == course_id)
    ).one()

    total_items = int(total_tasks) + int(total_hubs)
    completed_items = int(completed_tasks) + int(completed_hubs)
    percentage = round(completed_items * 100 / total_items) if total_items else 0
    return ProgressSummary(
        total_tasks=int(total_tasks),
        total_hubs=int(total_hubs),
        completed_tasks=int(completed_tasks),
        completed_hubs=int(completed_hubs),
        total_items=total_items,
        completed_items=completed_items,
        percentage=percentage,
    )


def course_progress(db: Session, user: User, course_id: int) -> CourseProgressResponse:
    course: Course = CourseAccessPolicy(db).require_view(user, course_id)

    task_rows = db.execute(
        select(TaskProgress)
        .join(Task, Task.id == TaskProgress.task_id)
        .join(Hub, Hub.id == Task.hub_id)
        .where(Hub.course_id == course.id, TaskProgress.user_id == user.id)
        .order_by(TaskProgress.task_id.asc())
    ).scalars().all()
    hub_rows = db.execute(
        select(HubUserState)
        .join(Hub, Hub.id == HubUserState.hub_id)
        .where(Hub.course_id == course.id, HubUserState.user_id == user.id)
        .order_by(HubUserState.hub_id.asc())
    ).scalars().all()

    return CourseProgressResponse(
        task_progress=[
            TaskProgressItem(task_id=r.task_id, status=r.status, completed_at=r.completed_at) for r in task_rows
        ],
        hub_progress=[HubProgressItem(hub_id=r.hub_id, state=r.state, completed_at=r.completed_at) for r in hub_rows],
        summary=summarize(db, user.id, course.id),
    )
