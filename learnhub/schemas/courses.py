from datetime import datetime

from pydantic import BaseModel, Field

from learnhub.schemas.common import CamelModel


class CourseOut(BaseModel):
    id: int
    title: str
    description: str | None = None
    icon: str | None = None
    created_by: int | None = None
    creator_name: str | None = None
    is_locked: bool = False
    created_at: datetime | None = None


class CourseCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=50)


class CourseUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    icon: str | None = Field(default=None, max_length=50)


class CourseResponse(BaseModel):
    course: CourseOut


class CourseListResponse(BaseModel):
    courses: list[CourseOut]


class CourseLockState(BaseModel):
    id: int
    is_locked: bool


class CourseLockResponse(BaseModel):
    course: CourseLockState


class TaskProgressItem(BaseModel):
    task_id: int
    status: str
    completed_at: datetime | None = None


class HubProgressItem(BaseModel):
    hub_id: int
    state: str
    completed_at: datetime | None = None


class ProgressSummary(CamelModel):
    total_tasks: int
    total_hubs: int
    completed_tasks: int
    completed_hubs: int
    total_items: int
    completed_items: int
    percentage: int


class CourseProgressResponse(CamelModel):
    task_progress: list[TaskProgressItem]
    hub_progress: list[HubProgressItem]
    summary: ProgressSummary


class DashboardCourse(BaseModel):
    id: int
    title: str
    icon: str | None = None
    is_locked: bool = False
    progress: ProgressSummary


class DashboardProgressResponse(BaseModel):
    courses: list[DashboardCourse]


class ActivityListResponse(BaseModel):
    activities: list[dict]


class AdminStats(CamelModel):
    total_teachers: int
    total_students: int
    total_users: int
    total_courses: int
    logins_last_week: int
    active_sessions: int


class AdminStatsResponse(BaseModel):
    stats: AdminStats
