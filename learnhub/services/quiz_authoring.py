from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.models import ROLE_ADMIN, ROLE_TEACHER, Course, CourseTeacher, Hub, Quiz, QuizAnswer, QuizQuestion, User
from learnhub.schemas.quizzes import (
    AnswerCreateRequest,
    AnswerOut,
    AnswerUpdateRequest,
    QuestionCreateRequest,
    QuestionOut,
    QuestionUpdateRequest,
    QuizCreateRequest,
    QuizOut,
    QuizUpdateRequest,
    QuizWithQuestions,
)
from learnhub.services.access_policy import CourseAccessPolicy
from learnhub.services.graph_service import attach_quiz_to_hub

ALLOWED_QUESTIONS_PER_ATTEMPT = (3, 5)


def _check_questions_per_attempt(value: int) -> None:
    if value not in ALLOWED_QUESTIONS_PER_ATTEMPT:
        raise ApiError(
            status_code=400,
            code=ErrorCode.INVALID_QUESTIONS_PER_ATTEMPT,
            message="questionsPerAttempt must be 3 or 5",
        )


def _title_conflict() -> ApiError:
    return ApiError(
        status_code=409,
        code=ErrorCode.QUIZ_TITLE_CONFLICT,
        message="A quiz with this title already exists in this course",
    )


def _require_quiz_reader(policy: CourseAccessPolicy, user: User) -> str:
    role = policy.role(user)
    if role not in (ROLE_ADMIN, ROLE_TEACHER):
        raise ApiError(status_code=403, code=ErrorCode.FORBIDDEN, message="Students cannot access quiz builder")
    return role


def get_quiz_or_404(db: Session, quiz_id: int) -> Quiz:
    quiz = db.get(Quiz, quiz_id)
    if not quiz:
        raise ApiError(status_code=404, code=ErrorCode.QUIZ_NOT_FOUND, message="Quiz not found")
    return quiz


def _require_manage(db: Session, user: User, quiz: Quiz) -> None:
    if not CourseAccessPolicy(db).can_manage_quiz(user, quiz):
        raise ApiError(status_code=403, code=ErrorCode.QUIZ_ACCESS_DENIED, message="No access to this quiz")


def _hub_in_course(db: Session, hub_id: int, course_id: int) -> Hub:
    hub = db.get(Hub, hub_id)
    if not hub or hub.course_id != course_id:
        raise ApiError(status_code=400, code=ErrorCode.HUB_NOT_IN_COURSE, message="Hub does not belong to this course")
    return hub


def quiz_out(db: Session, quiz: Quiz) -> QuizOut:
    course_title = db.execute(select(Course.title).where(Course.id == quiz.course_id)).scalar_one_or_none()
    hub_title = (
        db.execute(select(Hub.title).where(Hub.id == quiz.hub_id)).scalar_one_or_none() if quiz.hub_id else None
    )
    question_count = db.execute(
        select(func.count(QuizQuestion.id)).where(QuizQuestion.quiz_id == quiz.id)
    ).scalar_one()
    return QuizOut(
        id=quiz.id,
        course_id=quiz.course_id,
        hub_id=quiz.hub_id,
        title=quiz.title,
        description=quiz.description,
        questions_per_attempt=quiz.questions_per_attempt,
        created_at=quiz.created_at,
        updated_at=quiz.updated_at,
        course_title=course_title,
        hub_title=hub_title,
        question_count=int(question_count),
    )


def answer_out(answer: QuizAnswer) -> AnswerOut:
    return AnswerOut(
        id=answer.id,
        question_id=answer.question_id,
        answer_text=answer.answer_text,
        is_correct=answer.is_correct,
        order_index=answer.order_index,
    )


def question_out(db: Session, question: QuizQuestion) -> QuestionOut:
    answers = db.execute(
        select(QuizAnswer)
        .where(QuizAnswer.question_id == question.id)
        .order_by(QuizAnswer.order_index.asc(), QuizAnswer.id.asc())
    ).scalars().all()
    return QuestionOut(
        id=question.id,
        quiz_id=question.quiz_id,
        question_text=question.question_text,
        order_index=question.order_index,
        answers=[answer_out(a) for a in answers],
    )


def list_quizzes(
    db: Session,
    user: User,
    course_id: int | None = None,
    hub_id: int | None = None,
    unassigned: bool = False,
) -> list[QuizOut]:
    policy = CourseAccessPolicy(db)
    role = _require_quiz_reader(policy, user)

    stmt = select(Quiz)
    if role == ROLE_TEACHER:
        assigned = select(CourseTeacher.course_id).where(CourseTeacher.user_id == user.id)
        created = select(Course.id).where(Course.created_by == user.id)
        stmt = stmt.where(or_(Quiz.course_id.in_(assigned), Quiz.course_id.in_(created)))
    if course_id is not None:
        stmt = stmt.where(Quiz.course_id == course_id)
    if hub_id is not None:
        stmt = stmt.where(Quiz.hub_id == hub_id)
    if unassigned:
        stmt = stmt.where(Quiz.hub_id.is_(None))
    quizzes = db.execute(stmt.order_by(Quiz.created_at.desc(), Quiz.id.desc())).scalars().all()
    return [quiz_out(db, q) for q in quizzes]


def create_quiz(db: Session, user: User, payload: QuizCreateRequest) -> Quiz:
    policy = CourseAccessPolicy(db)
    _require_quiz_reader(policy, user)
    _check_questions_per_attempt(payload.questions_per_attempt)
    if not policy.can_edit(user, payload.course_id):
        policy.require_course(payload.course_id)
        raise ApiError(status_code=403, code=ErrorCode.COURSE_ACCESS_DENIED, message="No access to this course")

    title = payload.title.strip()
    duplicate = db.execute(
        select(Quiz.id).where(Quiz.course_id == payload.course_id, Quiz.title == title)
    ).first()
    if duplicate:
        raise _title_conflict()

    quiz = Quiz(
        course_id=payload.course_id,
        title=title,
        description=payload.description,
        questions_per_attempt=payload.questions_per_attempt,
    )
    db.add(quiz)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise _title_conflict() from exc

    if payload.hub_id is not None:
        attach_quiz_to_hub(db, quiz, _hub_in_course(db, payload.hub_id, quiz.course_id))
    db.commit()
    db.refresh(quiz)
    return quiz


def get_quiz_detail(db: Session, user: User, quiz_id: int) -> QuizWithQuestions:
    policy = CourseAccessPolicy(db)
    _require_quiz_reader(policy, user)
    quiz = get_quiz_or_404(db, quiz_id)
    if not policy.can_view(user, quiz.course_id):
        raise ApiError(status_code=403, code=ErrorCode.QUIZ_ACCESS_DENIED, message="No access to this quiz")

    questions = db.execute(
        select(QuizQuestion)
        .where(QuizQuestion.quiz_id == quiz.id)
        .order_by(QuizQuestion.order_index.asc(), QuizQuestion.id.asc())
    ).scalars().all()
    return QuizWithQuestions(
        **quiz_out(db, quiz).model_dump(),
        questions=[question_out(db, q) for q in questions],
    )


def update_quiz(db: Session, user: User, quiz_id: int, payload: QuizUpdateRequest) -> Quiz:
    quiz = get_quiz_or_404(db, quiz_id)
    _require_manage(db, user, quiz)

    if payload.questions_per_attempt is not None:
        _check_questions_per_attempt(payload.questions_per_attempt)
        quiz.questions_per_attempt = payload.questions_per_attempt
    if payload.title is not None:
        title = payload.title.strip()
        clash = db.execute(
            select(Quiz.id).where(Quiz.course_id == quiz.course_id, Quiz.title == title, Quiz.id != quiz.id)
        ).first()
        if clash:
            raise _title_conflict()
        quiz.title = title
    if "description" in payload.model_fields_set:
        quiz.description = payload.description
    if "hub_id" in payload.model_fields_set:
        hub = _hub_in_course(db, payload.hub_id, quiz.course_id) if payload.hub_id is not None else None
        attach_quiz_to_hub(db, quiz, hub)

    db.commit()
    db.refresh(quiz)
    return quiz


def delete_quiz(db: Session, user: User, quiz_id: int) -> None:
    quiz = get_quiz_or_404(db, quiz_id)
    _require_manage(db, user, quiz)
    if quiz.hub_id:
        attach_quiz_to_hub(db, quiz, None)
    db.delete(quiz)
    db.commit()


def _get_question_or_404(db: Session, question_id: int) -> QuizQuestion:
    question = db.get(QuizQuestion, question_id)
    if not question:
        raise ApiError(status_code=404, code=ErrorCode.QUESTION_NOT_FOUND, message="Question not found")
    return question


def _get_answer_or_404(db: Session, answer_id: int) -> tuple[QuizAnswer, QuizQuestion]:
    answer = db.get(QuizAnswer, answer_id)
    if not answer:
        raise ApiError(status_code=404, code=ErrorCode.ANSWER_NOT_FOUND, message="Answer not found")
    return answer, _get_question_or_404(db, answer.question_id)


def create_question(db: Session, user: User, quiz_id: int, payload: QuestionCreateRequest) -> QuizQuestion:
    quiz = get_quiz_or_404(db, quiz_id)
    _require_manage(db, user, quiz)
    question = QuizQuestion(quiz_id=quiz.id, question_text=payload.question_text, order_index=payload.order_index)
    db.add(question)
    db.commit()
    db.refresh(question)
    return question


def update_question(db: Session, user: User, question_id: int, payload: QuestionUpdateRequest) -> QuizQuestion:
    question = _get_question_or_404(db, question_id)
    _require_manage(db, user, get_quiz_or_404(db, question.quiz_id))
    if payload.question_text is not None:
        question.question_text = payload.question_text
    if payload.order_index is not None:
        question.order_index = payload.order_index
    db.commit()
    db.refresh(question)
    return question


def delete_question(db: Session, user: User, question_id: int) -> None:
    question = _get_question_or_404(db, question_id)
    _require_manage(db, user, get_quiz_or_404(db, question.quiz_id))
    db.delete(question)
    db.commit()


def create_answer(db: Session, user: User, question_id: int, payload: AnswerCreateRequest) -> QuizAnswer:
    question = _get_question_or_404(db, question_id)
    _require_manage(db, user, get_quiz_or_404(db, question.quiz_id))
    answer = QuizAnswer(
        question_id=question.id,
        answer_text=payload.answer_text,
        is_correct=payload.is_correct,
        order_index=payload.order_index,
    )
    db.add(answer)
    db.commit()
    db.refresh(answer)
    return answer


def update_answer(db: Session, user: User, answer_id: int, payload: AnswerUpdateRequest) -> QuizAnswer:
    answer, question = _get_answer_or_404(db, answer_id)
    _require_manage(db, user, get_quiz_or_404(db, question.quiz_id))
    if payload.answer_text is not None:
        answer.answer_text = payload.answer_text
    if payload.is_correct is not None:
        answer.is_correct = payload.is_correct
    if payload.order_index is not None:
        answer.order_index = payload.order_index
    db.commit()
    db.refresh(answer)
    return answer


def delete_answer(db: Session, user: User, answer_id: int) -> None:
    answer, question = _get_answer_or_404(db, answer_id)
    _require_manage(db, user, get_quiz_or_404(db, question.quiz_id))
    db.delete(answer)
    db.commit()
