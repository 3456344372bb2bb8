from typing import Any, Literal

from pydantic import BaseModel, Field

from learnhub.models import EDGE_RULE_ALL_TASKS_COMPLETE
from learnhub.schemas.common import CamelModel

TaskKind = Literal["content", "quiz", "assignment", "reflection"]


class HubOut(BaseModel):
    id: int
    course_id: int
    title: str
    x: float
    y: float
    color: str
    radius: float
    is_start: bool
    is_required: bool
    quiz_id: int | None = None


class TaskOut(BaseModel):
    id: int
    hub_id: int
    title: str
    task_kind: str
    x: float
    y: float
    is_required: bool


class EdgeOut(BaseModel):
    id: int
    course_id: int
    from_hub_id: int
    to_hub_id: int
    rule: str
    rule_value: dict[str, Any] = Field(default_factory=dict)


class CourseGraph(BaseModel):
    hubs: list[HubOut]
    tasks: list[TaskOut]
    edges: list[EdgeOut]


class CourseGraphResponse(BaseModel):
    graph: CourseGraph


class HubCreateRequest(CamelModel):
    course_id: int
    title: str = Field(min_length=1, max_length=255)
    x: float | None = None
    y: float | None = None
    color: str | None = Field(default=None, max_length=32)
    radius: float | None = None
    is_required: bool | None = None


class HubUpdateRequest(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    x: float | None = None
    y: float | None = None
    color: str | None = Field(default=None, max_length=32)
    radius: float | None = None
    is_start: bool | None = None
    is_required: bool | None = None
    quiz_id: int | None = None


class HubResponse(BaseModel):
    hub: HubOut


class TaskCreateRequest(CamelModel):
    hub_id: int
    title: str = Field(min_length=1, max_length=255)
    task_kind: TaskKind = "content"
    x: float | None = None
    y: float | None = None
    is_required: bool | None = None


class TaskUpdateRequest(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    task_kind: TaskKind | None = None
    x: float | None = None
    y: float | None = None
    is_required: bool | None = None


class TaskResponse(BaseModel):
    task: TaskOut


class EdgeCreateRequest(CamelModel):
    course_id: int
    from_hub_id: int
    to_hub_id: int
    rule: str = EDGE_RULE_ALL_TASKS_COMPLETE
    rule_value: dict[str, Any] = Field(default_factory=dict)


class EdgeResponse(BaseModel):
    edge: EdgeOut


class EdgeListResponse(BaseModel):
    edges: list[EdgeOut]


class ProgressUpdateRequest(BaseModel):
    done: bool
