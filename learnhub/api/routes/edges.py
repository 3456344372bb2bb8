from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.common import SuccessResponse
from learnhub.schemas.graph import EdgeCreateRequest, EdgeListResponse, EdgeResponse
from learnhub.services import graph_service
from learnhub.services.access_policy import CourseAccessPolicy

router = APIRouter(prefix="/api/edges", tags=["edges"])


@router.post("", response_model=EdgeResponse, status_code=status.HTTP_201_CREATED)
def create_edge(payload: EdgeCreateRequest, current_user: CurrentUser, db: Session = Depends(get_db)) -> EdgeResponse:
    edge = graph_service.create_edge(db, current_user, payload)
    return EdgeResponse(edge=graph_service.edge_out(edge))


@router.delete("/{edge_id}", response_model=SuccessResponse)
def delete_edge(edge_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> SuccessResponse:
    graph_service.delete_edge(db, current_user, edge_id)
    return SuccessResponse()


@router.get("", response_model=EdgeListResponse)
def list_edges(
    current_user: CurrentUser,
    course_id: int = Query(alias="courseId"),
    db: Session = Depends(get_db),
) -> EdgeListResponse:
    CourseAccessPolicy(db).require_view(current_user, course_id)
    return EdgeListResponse(edges=[graph_service.edge_out(e) for e in graph_service.list_course_edges(db, course_id)])
