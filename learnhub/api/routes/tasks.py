from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.certificates import ProgressResult
from learnhub.schemas.common import SuccessResponse
from learnhub.schemas.content import ContentResponse, NodeContent
from learnhub.schemas.graph import ProgressUpdateRequest, TaskCreateRequest, TaskResponse, TaskUpdateRequest
from learnhub.services import graph_service, progress_service

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskCreateRequest, current_user: CurrentUser, db: Session = Depends(get_db)) -> TaskResponse:
    task = graph_service.create_task(db, current_user, payload)
    return TaskResponse(task=graph_service.task_out(task))


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    payload: TaskUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> TaskResponse:
    task = graph_service.update_task(db, current_user, task_id, payload)
    return TaskResponse(task=graph_service.task_out(task))


@router.delete("/{task_id}", response_model=SuccessResponse)
def delete_task(task_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> SuccessResponse:
    graph_service.delete_task(db, current_user, task_id)
    return SuccessResponse()


@router.get("/{task_id}/content", response_model=ContentResponse, response_model_exclude_none=True)
def get_content(task_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> ContentResponse:
    content = graph_service.get_task_content(db, current_user, task_id)
    return ContentResponse(id=task_id, payload=content)


@router.patch("/{task_id}/content", response_model=ContentResponse, response_model_exclude_none=True)
def set_content(
    task_id: int,
    payload: NodeContent,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> ContentResponse:
    content = graph_service.set_task_content(db, current_user, task_id, payload)
    return ContentResponse(id=task_id, payload=content)


@router.put("/{task_id}/progress", response_model=ProgressResult, response_model_exclude_none=True)
def set_progress(
    task_id: int,
    payload: ProgressUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> ProgressResult:
    return progress_service.set_task_progress(db, current_user, task_id, payload.done)
