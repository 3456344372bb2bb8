from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.common import SuccessResponse
from learnhub.schemas.quizzes import (
    QuizCreateRequest,
    QuizDetailResponse,
    QuizOut,
    QuizResponse,
    QuizUpdateRequest,
)
from learnhub.services import quiz_authoring

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])


@router.get("", response_model=list[QuizOut])
def list_quizzes(
    current_user: CurrentUser,
    course_id: int | None = Query(default=None, alias="courseId"),
    hub_id: int | None = Query(default=None, alias="hubId"),
    unassigned: bool = False,
    db: Session = Depends(get_db),
) -> list[QuizOut]:
    return quiz_authoring.list_quizzes(db, current_user, course_id=course_id, hub_id=hub_id, unassigned=unassigned)


@router.post("", response_model=QuizResponse, status_code=status.HTTP_201_CREATED)
def create_quiz(payload: QuizCreateRequest, current_user: CurrentUser, db: Session = Depends(get_db)) -> QuizResponse:
    quiz = quiz_authoring.create_quiz(db, current_user, payload)
    return QuizResponse(quiz=quiz_authoring.quiz_out(db, quiz))


@router.get("/{quiz_id}", response_model=QuizDetailResponse)
def get_quiz(quiz_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> QuizDetailResponse:
    return QuizDetailResponse(quiz=quiz_authoring.get_quiz_detail(db, current_user, quiz_id))


@router.put("/{quiz_id}", response_model=QuizResponse)
def update_quiz(
    quiz_id: int,
    payload: QuizUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> QuizResponse:
    quiz = quiz_authoring.update_quiz(db, current_user, quiz_id, payload)
    return QuizResponse(quiz=quiz_authoring.quiz_out(db, quiz))


@router.delete("/{quiz_id}", response_model=SuccessResponse)
def delete_quiz(quiz_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> SuccessResponse:
    quiz_authoring.delete_quiz(db, current_user, quiz_id)
    return SuccessResponse()
