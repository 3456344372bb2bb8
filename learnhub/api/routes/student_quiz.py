from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.quizzes import QuizStartResponse, QuizSubmitRequest, QuizSubmitResponse
from learnhub.services import quiz_service

router = APIRouter(prefix="/api/student-quiz", tags=["student-quiz"])


@router.post("/hubs/{hub_id}/quiz/start", response_model=QuizStartResponse)
def start_quiz(hub_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> QuizStartResponse:
    return quiz_service.start_attempt(db, current_user, hub_id)


@router.post("/quizzes/{quiz_id}/submit", response_model=QuizSubmitResponse, response_model_exclude_none=True)
def submit_quiz(
    quiz_id: int,
    payload: QuizSubmitRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> QuizSubmitResponse:
    return quiz_service.submit_attempt(db, current_user, quiz_id, payload)
