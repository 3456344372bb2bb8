from __future__ import annotations

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.db.upsert import upsert
from learnhub.models import Course, Hub, HubEdge, Quiz, Task, User
from learnhub.schemas.content import NodeContent
from learnhub.schemas.graph import (
    CourseGraph,
    EdgeCreateRequest,
    EdgeOut,
    HubCreateRequest,
    HubOut,
    HubUpdateRequest,
    TaskCreateRequest,
    TaskOut,
    TaskUpdateRequest,
)
from learnhub.services.access_policy import CourseAccessPolicy
from learnhub.services.activity_notifier import ActivityEvent, activity_notifier

logger = logging.getLogger("learnhub.graph")


def hub_out(hub: Hub) -> HubOut:
    return HubOut(
        id=hub.id,
        course_id=hub.course_id,
        title=hub.title,
        x=hub.x,
        y=hub.y,
        color=hub.color,
        radius=hub.radius,
        is_start=hub.is_start,
        is_required=hub.is_required,
        quiz_id=hub.quiz_id,
    )


def task_out(task: Task) -> TaskOut:
    return TaskOut(
        id=task.id,
        hub_id=task.hub_id,
        title=task.title,
        task_kind=task.task_kind,
        x=task.x,
        y=task.y,
        is_required=task.is_required,
    )


def edge_out(edge: HubEdge) -> EdgeOut:
    return EdgeOut(
        id=edge.id,
        course_id=edge.course_id,
        from_hub_id=edge.from_hub_id,
        to_hub_id=edge.to_hub_id,
        rule=edge.rule,
        rule_value=edge.rule_value or {},
    )


def get_hub_or_404(db: Session, hub_id: int, *, for_update: bool = False) -> Hub:
    stmt = select(Hub).where(Hub.id == hub_id)
    if for_update:
        stmt = stmt.with_for_update()
    hub = db.execute(stmt).scalars().first()
    if not hub:
        raise ApiError(status_code=404, code=ErrorCode.HUB_NOT_FOUND, message="Hub not found")
    return hub


def get_task_or_404(db: Session, task_id: int) -> Task:
    task = db.get(Task, task_id)
    if not task:
        raise ApiError(status_code=404, code=ErrorCode.TASK_NOT_FOUND, message="Task not found")
    return task


def course_id_for_task(db: Session, task: Task) -> int:
    course_id = db.execute(select(Hub.course_id).where(Hub.id == task.hub_id)).scalar_one_or_none()
    if course_id is None:
        raise ApiError(status_code=404, code=ErrorCode.HUB_NOT_FOUND, message="Hub not found for task")
    return course_id


def list_course_edges(db: Session, course_id: int) -> list[HubEdge]:
    return list(
        db.execute(select(HubEdge).where(HubEdge.course_id == course_id).order_by(HubEdge.id.asc())).scalars().all()
    )


def get_course_graph(db: Session, course_id: int) -> CourseGraph:
    hubs = db.execute(select(Hub).where(Hub.course_id == course_id).order_by(Hub.id.asc())).scalars().all()
    tasks = db.execute(
        select(Task).join(Hub, Hub.id == Task.hub_id).where(Hub.course_id == course_id).order_by(Task.id.asc())
    ).scalars().all()
    return CourseGraph(
        hubs=[hub_out(h) for h in hubs],
        tasks=[task_out(t) for t in tasks],
        edges=[edge_out(e) for e in list_course_edges(db, course_id)],
    )


def _clear_other_start_hubs(db: Session, hub: Hub) -> None:
    db.execute(
        update(Hub)
        .where(Hub.course_id == hub.course_id, Hub.id != hub.id, Hub.is_start.is_(True))
        .values(is_start=False)
        .execution_options(synchronize_session="fetch")
    )


def _promote_start_hub(db: Session, course_id: int) -> Hub | None:
    """Mark the lowest-id hub start when the course has hubs but no start hub."""
    has_start = db.execute(
        select(Hub.id).where(Hub.course_id == course_id, Hub.is_start.is_(True)).limit(1)
    ).first()
    if has_start:
        return None
    candidate = db.execute(
        select(Hub).where(Hub.course_id == course_id).order_by(Hub.id.asc()).limit(1)
    ).scalars().first()
    if candidate:
        candidate.is_start = True
    return candidate


def create_hub(db: Session, user: User, payload: HubCreateRequest) -> Hub:
    policy = CourseAccessPolicy(db)
    course = policy.require_edit(user, payload.course_id)

    # Lock the course row so two concurrent first hubs cannot both become start.
    db.execute(select(Course.id).where(Course.id == course.id).with_for_update())
    existing = db.execute(select(Hub.id).where(Hub.course_id == course.id).limit(1)).first()

    hub = Hub(
        course_id=course.id,
        title=payload.title.strip(),
        x=payload.x if payload.x is not None else 0,
        y=payload.y if payload.y is not None else 0,
        color=payload.color or "#3498db",
        radius=payload.radius if payload.radius is not None else 100,
        is_start=existing is None,
        is_required=payload.is_required if payload.is_required is not None else True,
        payload={},
    )
    db.add(hub)
    db.commit()
    db.refresh(hub)

    activity_notifier.notify(
        ActivityEvent(
            type="hub_created",
            user_name=user.name,
            item_title=hub.title,
            course_title=course.title,
            course_id=course.id,
        )
    )
    return hub


def set_hub_start(db: Session, hub: Hub, is_start: bool) -> None:
    """Set or clear the start flag; setting it clears every other hub of the course.

    Runs inside the caller's transaction.
    """
    if is_start:
        _clear_other_start_hubs(db, hub)
    hub.is_start = is_start


def update_hub(db: Session, user: User, hub_id: int, payload: HubUpdateRequest) -> Hub:
    hub = get_hub_or_404(db, hub_id, for_update=True)
    CourseAccessPolicy(db).require_edit(user, hub.course_id)

    fields = payload.model_fields_set
    for name in ("title", "x", "y", "color", "radius", "is_required"):
        value = getattr(payload, name)
        if name in fields and value is not None:
            setattr(hub, name, value.strip() if isinstance(value, str) and name == "title" else value)

    if "is_start" in fields and payload.is_start is not None:
        set_hub_start(db, hub, payload.is_start)

    if "quiz_id" in fields:
        _attach_quiz(db, hub, payload.quiz_id)

    db.commit()
    db.refresh(hub)
    return hub


def _attach_quiz(db: Session, hub: Hub, quiz_id: int | None) -> None:
    if hub.quiz_id and hub.quiz_id != quiz_id:
        previous = db.get(Quiz, hub.quiz_id)
        if previous and previous.hub_id == hub.id:
            previous.hub_id = None
    if quiz_id is None:
        hub.quiz_id = None
        return
    quiz = db.get(Quiz, quiz_id)
    if not quiz or quiz.course_id != hub.course_id:
        raise ApiError(status_code=404, code=ErrorCode.QUIZ_NOT_FOUND, message="Quiz not found in this course")
    attach_quiz_to_hub(db, quiz, hub)


def attach_quiz_to_hub(db: Session, quiz: Quiz, hub: Hub | None) -> None:
    """Point ``quiz`` and ``hub`` at each other, detaching previous partners.

    A quiz is attached to at most one hub and a hub holds at most one quiz.
    """
    if quiz.hub_id and (hub is None or quiz.hub_id != hub.id):
        old_hub = db.get(Hub, quiz.hub_id)
        if old_hub and old_hub.quiz_id == quiz.id:
            old_hub.quiz_id = None
    if hub is None:
        quiz.hub_id = None
        return
    if hub.quiz_id and hub.quiz_id != quiz.id:
        other = db.get(Quiz, hub.quiz_id)
        if other and other.hub_id == hub.id:
            other.hub_id = None
    quiz.hub_id = hub.id
    hub.quiz_id = quiz.id


def delete_hub(db: Session, user: User, hub_id: int) -> None:
    hub = get_hub_or_404(db, hub_id, for_update=True)
    CourseAccessPolicy(db).require_edit(user, hub.course_id)

    course_id = hub.course_id
    was_start = hub.is_start
    db.delete(hub)
    db.flush()
    if was_start:
        promoted = _promote_start_hub(db, course_id)
        if promoted:
            logger.info("Promoted hub %s to start hub of course %s", promoted.id, course_id)
    db.commit()


def create_task(db: Session, user: User, payload: TaskCreateRequest) -> Task:
    hub = get_hub_or_404(db, payload.hub_id)
    policy = CourseAccessPolicy(db)
    course = policy.require_edit(user, hub.course_id)

    task = Task(
        hub_id=hub.id,
        title=payload.title.strip(),
        task_kind=payload.task_kind,
        x=payload.x if payload.x is not None else 0,
        y=payload.y if payload.y is not None else 0,
        is_required=payload.is_required if payload.is_required is not None else True,
        payload={},
    )
    db.add(task)
    db.commit()
    db.refresh(task)

    activity_notifier.notify(
        ActivityEvent(
            type="task_created",
            user_name=user.name,
            item_title=task.title,
            course_title=course.title,
            course_id=course.id,
        )
    )
    return task


def update_task(db: Session, user: User, task_id: int, payload: TaskUpdateRequest) -> Task:
    task = get_task_or_404(db, task_id)
    CourseAccessPolicy(db).require_edit(user, course_id_for_task(db, task))

    for name in ("title", "task_kind", "x", "y", "is_required"):
        value = getattr(payload, name)
        if name in payload.model_fields_set and value is not None:
            setattr(task, name, value.strip() if name == "title" else value)

    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, user: User, task_id: int) -> None:
    task = get_task_or_404(db, task_id)
    CourseAccessPolicy(db).require_edit(user, course_id_for_task(db, task))
    db.delete(task)
    db.commit()


def create_edge(db: Session, user: User, payload: EdgeCreateRequest) -> HubEdge:
    if payload.from_hub_id == payload.to_hub_id:
        raise ApiError(status_code=400, code=ErrorCode.SELF_LOOP_EDGE, message="Cannot connect a hub to itself")

    CourseAccessPolicy(db).require_edit(user, payload.course_id)

    found = db.execute(
        select(Hub.id).where(Hub.id.in_([payload.from_hub_id, payload.to_hub_id]), Hub.course_id == payload.course_id)
    ).scalars().all()
    if len(set(found)) != 2:
        raise ApiError(
            status_code=400, code=ErrorCode.HUB_NOT_IN_COURSE, message="Both hubs must belong to the course"
        )

    upsert(
        db,
        HubEdge,
        {
            "course_id": payload.course_id,
            "from_hub_id": payload.from_hub_id,
            "to_hub_id": payload.to_hub_id,
            "rule": payload.rule,
            "rule_value": payload.rule_value,
        },
        conflict_cols=["from_hub_id", "to_hub_id"],
        update_cols=["rule", "rule_value"],
    )
    db.commit()

    edge = db.execute(
        select(HubEdge).where(HubEdge.from_hub_id == payload.from_hub_id, HubEdge.to_hub_id == payload.to_hub_id)
    ).scalars().one()
    db.refresh(edge)
    return edge


def delete_edge(db: Session, user: User, edge_id: int) -> None:
    edge = db.get(HubEdge, edge_id)
    if not edge:
        raise ApiError(status_code=404, code=ErrorCode.EDGE_NOT_FOUND, message="Edge not found")
    CourseAccessPolicy(db).require_edit(user, edge.course_id)
    db.delete(edge)
    db.commit()


def get_hub_content(db: Session, user: User, hub_id: int) -> NodeContent:
    hub = get_hub_or_404(db, hub_id)
    CourseAccessPolicy(db).require_view(user, hub.course_id)
    return NodeContent.model_validate(hub.payload or {})


def set_hub_content(db: Session, user: User, hub_id: int, content: NodeContent) -> NodeContent:
    hub = get_hub_or_404(db, hub_id)
    CourseAccessPolicy(db).require_edit(user, hub.course_id)
    hub.payload = content.to_payload()
    db.commit()
    return NodeContent.model_validate(hub.payload)


def get_task_content(db: Session, user: User, task_id: int) -> NodeContent:
    task = get_task_or_404(db, task_id)
    CourseAccessPolicy(db).require_view(user, course_id_for_task(db, task))
    return NodeContent.model_validate(task.payload or {})


def set_task_content(db: Session, user: User, task_id: int, content: NodeContent) -> NodeContent:
    task = get_task_or_404(db, task_id)
    CourseAccessPolicy(db).require_edit(user, course_id_for_task(db, task))
    task.payload = content.to_payload()
    db.commit()
    return NodeContent.model_validate(task.payload)
