from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from learnhub.api.deps import CurrentUser
from learnhub.db.session import get_db
from learnhub.schemas.common import SuccessResponse
from learnhub.schemas.quizzes import (
    AnswerCreateRequest,
    AnswerResponse,
    AnswerUpdateRequest,
    QuestionCreateRequest,
    QuestionResponse,
    QuestionUpdateRequest,
)
from learnhub.services import quiz_authoring

router = APIRouter(prefix="/api/questions", tags=["quizzes"])


# Answer routes come first so "/answers/{id}" is not read as a question id.
@router.put("/answers/{answer_id}", response_model=AnswerResponse)
def update_answer(
    answer_id: int,
    payload: AnswerUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> AnswerResponse:
    answer = quiz_authoring.update_answer(db, current_user, answer_id, payload)
    return AnswerResponse(answer=quiz_authoring.answer_out(answer))


@router.delete("/answers/{answer_id}", response_model=SuccessResponse)
def delete_answer(answer_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> SuccessResponse:
    quiz_authoring.delete_answer(db, current_user, answer_id)
    return SuccessResponse()


@router.post("/{quiz_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
def create_question(
    quiz_id: int,
    payload: QuestionCreateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> QuestionResponse:
    question = quiz_authoring.create_question(db, current_user, quiz_id, payload)
    return QuestionResponse(question=quiz_authoring.question_out(db, question))


@router.put("/{question_id}", response_model=QuestionResponse)
def update_question(
    question_id: int,
    payload: QuestionUpdateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> QuestionResponse:
    question = quiz_authoring.update_question(db, current_user, question_id, payload)
    return QuestionResponse(question=quiz_authoring.question_out(db, question))


@router.delete("/{question_id}", response_model=SuccessResponse)
def delete_question(question_id: int, current_user: CurrentUser, db: Session = Depends(get_db)) -> SuccessResponse:
    quiz_authoring.delete_question(db, current_user, question_id)
    return SuccessResponse()


@router.post("/{question_id}/answers", response_model=AnswerResponse, status_code=status.HTTP_201_CREATED)
def create_answer(
    question_id: int,
    payload: AnswerCreateRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
) -> AnswerResponse:
    answer = quiz_authoring.create_answer(db, current_user, question_id, payload)
    return AnswerResponse(answer=quiz_authoring.answer_out(answer))
