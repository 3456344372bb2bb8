from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.certificates import ProgressResult
from learnhub.schemas.common import SuccessResponse
from learnhub.schemas.content import ContentResponse, NodeContent
from learnhub.schemas.graph import HubCreateRequest, HubResponse, HubUpdateRequest, ProgressUpdateRequest
from learnhub.services import graph_service, progress_service

router = APIRouter(prefix="/api/hubs", tags=["hubs"])


@router.post("", response_model=HubResponse, status_code=status.HTTP_201_CREATED)
def create_hub(payload: HubCreateRequest, current_user: CurrentUser, db: Session = Depends(get_db)) -> HubResponse:
    hub = graph_service.create_hub(db, current_user, payload)
    return HubResponse(hub=graph_service.hub_out(hub))


@router.patch("/{hub_id}", response_model=HubResponse)
def update_hub(
    hub_id: int,
    payload: HubUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> HubResponse:
    hub = graph_service.update_hub(db, current_user, hub_id, payload)
    return HubResponse(hub=graph_service.hub_out(hub))


@router.delete("/{hub_id}", response_model=SuccessResponse)
def delete_hub(hub_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> SuccessResponse:
    graph_service.delete_hub(db, current_user, hub_id)
    return SuccessResponse()


@router.get("/{hub_id}/content", response_model=ContentResponse, response_model_exclude_none=True)
def get_content(hub_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> ContentResponse:
    content = graph_service.get_hub_content(db, current_user, hub_id)
    return ContentResponse(id=hub_id, payload=content)


@router.patch("/{hub_id}/content", response_model=ContentResponse, response_model_exclude_none=True)
def set_content(
    hub_id: int,
    payload: NodeContent,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> ContentResponse:
    content = graph_service.set_hub_content(db, current_user, hub_id, payload)
    return ContentResponse(id=hub_id, payload=content)


@router.put("/{hub_id}/progress", response_model=ProgressResult, response_model_exclude_none=True)
def set_progress(
    hub_id: int,
    payload: ProgressUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> ProgressResult:
    return progress_service.set_hub_progress(db, current_user, hub_id, payload.done)
