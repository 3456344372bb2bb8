from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.core.config import get_settings
from learnhub.db.session import get_db
from learnhub.schemas.common import SuccessResponse
from learnhub.schemas.courses import (
    ActivityListResponse,
    AdminStatsResponse,
    CourseCreateRequest,
    CourseListResponse,
    CourseLockResponse,
    CourseLockState,
    CourseProgressResponse,
    CourseResponse,
    CourseUpdateRequest,
    DashboardProgressResponse,
)
from learnhub.schemas.graph import CourseGraphResponse
from learnhub.services import course_service, graph_service, progress_service
from learnhub.services.access_policy import CourseAccessPolicy
from learnhub.services.activity_notifier import activity_notifier

router = APIRouter(prefix="/api/courses", tags=["courses"])
settings = get_settings()


# Dashboard routes are declared before "/{course_id}" so they are matched first.
@router.get("/dashboard/progress", response_model=DashboardProgressResponse)
def dashboard_progress(current_user: CurrentUser, db: Session = Depends(get_db)) -> DashboardProgressResponse:
    return DashboardProgressResponse(courses=course_service.dashboard_progress(db, current_user))


@router.get("/dashboard/activity", response_model=ActivityListResponse)
def dashboard_activity(
    current_user: CurrentUser,
    limit: int = Query(default=20, ge=1),
    db: Session = Depends(get_db),
) -> ActivityListResponse:
    CourseAccessPolicy(db).require_staff(current_user)
    return ActivityListResponse(activities=activity_notifier.recent(min(limit, settings.activity_feed_limit)))


@router.get("/dashboard/admin-stats", response_model=AdminStatsResponse)
def dashboard_admin_stats(current_user: CurrentUser, db: Session = Depends(get_db)) -> AdminStatsResponse:
    return AdminStatsResponse(stats=course_service.admin_stats(db, current_user))


@router.get("", response_model=CourseListResponse)
def list_courses(current_user: CurrentUser, db: Session = Depends(get_db)) -> CourseListResponse:
    courses = course_service.visible_courses(db, current_user)
    return CourseListResponse(courses=[course_service.course_out(db, c) for c in courses])


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> CourseResponse:
    course = course_service.create_course(db, current_user, payload)
    return CourseResponse(course=course_service.course_out(db, course))


@router.get("/{course_id}", response_model=CourseResponse)
def get_course(course_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> CourseResponse:
    course = CourseAccessPolicy(db).require_view(current_user, course_id)
    return CourseResponse(course=course_service.course_out(db, course))


@router.patch("/{course_id}", response_model=CourseResponse)
def update_course(
    course_id: int,
    payload: CourseUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> CourseResponse:
    course = course_service.update_course(db, current_user, course_id, payload)
    return CourseResponse(course=course_service.course_out(db, course))


@router.delete("/{course_id}", response_model=SuccessResponse)
def delete_course(course_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> SuccessResponse:
    course_service.delete_course(db, current_user, course_id)
    return SuccessResponse()


@router.patch("/{course_id}/lock", response_model=CourseLockResponse)
def toggle_lock(course_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> CourseLockResponse:
    course = course_service.toggle_lock(db, current_user, course_id)
    return CourseLockResponse(course=CourseLockState(id=course.id, is_locked=course.is_locked))


@router.get("/{course_id}/graph", response_model=CourseGraphResponse)
def get_graph(course_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> CourseGraphResponse:
    CourseAccessPolicy(db).require_view(current_user, course_id)
    return CourseGraphResponse(graph=graph_service.get_course_graph(db, course_id))


@router.get("/{course_id}/progress", response_model=CourseProgressResponse)
def get_progress(course_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> CourseProgressResponse:
    return progress_service.course_progress(db, current_user, course_id)
