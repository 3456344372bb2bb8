"""Quiz attempts: sampling questions at start and grading at submit.

An attempt freezes the ids of the questions it showed. Grading reads only
that frozen set, so edits to the question bank after the start do not
change the outcome.
"""
from __future__ import annotations

import logging
import random
from collections import defaultdict

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from learnhub.core.error_codes import ErrorCode
from learnhub.core.errors import ApiError
from learnhub.core.security import now_utc
from learnhub.models import Course, Quiz, QuizAnswer, QuizAttempt, QuizQuestion, User
from learnhub.schemas.quizzes import (
    AttemptAnswerOption,
    AttemptQuestion,
    QuizStartResponse,
    QuizSubmitRequest,
    QuizSubmitResponse,
)
from learnhub.services import certificate_service
from learnhub.services.access_policy import CourseAccessPolicy
from learnhub.services.activity_notifier import ActivityEvent, activity_notifier
from learnhub.services.graph_service import get_hub_or_404
from learnhub.services.progress_service import hub_task_counts, mark_hub_completed

logger = logging.getLogger("learnhub.quiz")

_system_random = random.SystemRandom()


def _question_bank(db: Session, quiz_id: int) -> dict[int, tuple[str, list[QuizAnswer]]]:
    """Questions of a quiz that have at least one answer, keyed by id."""
    rows = db.execute(
        select(QuizQuestion, QuizAnswer)
        .join(QuizAnswer, QuizAnswer.question_id == QuizQuestion.id)
        .where(QuizQuestion.quiz_id == quiz_id)
        .order_by(QuizQuestion.id.asc(), QuizAnswer.order_index.asc(), QuizAnswer.id.asc())
    ).all()
    bank: dict[int, tuple[str, list[QuizAnswer]]] = {}
    for question, answer in rows:
        bank.setdefault(question.id, (question.question_text, []))[1].append(answer)
    return bank


def start_attempt(db: Session, user: User, hub_id: int, rng: random.Random | None = None) -> QuizStartResponse:
    rng = rng or _system_random

    hub = get_hub_or_404(db, hub_id)
    if not hub.quiz_id:
        raise ApiError(status_code=400, code=ErrorCode.HUB_HAS_NO_QUIZ, message="This hub does not have a quiz")
    quiz = db.get(Quiz, hub.quiz_id)
    if not quiz:
        raise ApiError(status_code=404, code=ErrorCode.QUIZ_NOT_FOUND, message="Quiz not found")

    if not CourseAccessPolicy(db).is_enrolled(user, hub.course_id):
        raise ApiError(status_code=403, code=ErrorCode.NOT_ENROLLED, message="Not enrolled in this course")

    required, completed = hub_task_counts(db, user.id, hub.id, required_only=True)
    if completed < required:
        raise ApiError(
            status_code=400,
            code=ErrorCode.QUIZ_TASKS_INCOMPLETE,
            message="All required tasks must be completed before starting the quiz",
            details={"requiredTasks": required, "completedTasks": completed},
        )

    bank = _question_bank(db, quiz.id)
    if len(bank) < quiz.questions_per_attempt:
        raise ApiError(
            status_code=400,
            code=ErrorCode.QUIZ_NOT_ENOUGH_QUESTIONS,
            message=(
                f"Quiz needs at least {quiz.questions_per_attempt} questions. Currently has {len(bank)}"
            ),
            details={"required": quiz.questions_per_attempt, "available": len(bank)},
        )

    selected = rng.sample(sorted(bank), quiz.questions_per_attempt)
    questions = []
    for question_id in selected:
        text, answers = bank[question_id]
        shuffled = list(answers)
        rng.shuffle(shuffled)
        questions.append(
            AttemptQuestion(
                id=question_id,
                question_text=text,
                answers=[AttemptAnswerOption(id=a.id, answer_text=a.answer_text) for a in shuffled],
            )
        )

    attempt = QuizAttempt(quiz_id=quiz.id, user_id=user.id, hub_id=hub.id, questions_shown=selected)
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    logger.debug("User %s started attempt %s on quiz %s", user.id, attempt.id, quiz.id)

    return QuizStartResponse(attempt_id=attempt.id, quiz_id=quiz.id, hub_id=hub.id, questions=questions)


def grade(
    questions_shown: list[int],
    correct_ids: dict[int, set[int]],
    submitted: dict[int, list[int]],
) -> tuple[bool, int]:
    """Return ``(passed, score)`` for a frozen question set.

    A question is correct iff the submitted ids equal the correct ids as a
    set. Missing answers count as wrong; answers to questions outside the
    frozen set are ignored.
    """
    score = 0
    for question_id in questions_shown:
        expected = sorted(correct_ids.get(question_id, set()))
        given = sorted(set(submitted.get(question_id, [])))
        if given == expected:
            score += 1
    return score == len(questions_shown), score


def submit_attempt(db: Session, user: User, quiz_id: int, payload: QuizSubmitRequest) -> QuizSubmitResponse:
    attempt = db.execute(
        select(QuizAttempt).where(
            QuizAttempt.id == payload.attempt_id,
            QuizAttempt.user_id == user.id,
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.hub_id == payload.hub_id,
            QuizAttempt.submitted_at.is_(None),
        )
    ).scalars().first()
    if not attempt:
        raise ApiError(
            status_code=404, code=ErrorCode.ATTEMPT_NOT_FOUND, message="Quiz attempt not found or already submitted"
        )

    questions_shown = [int(qid) for qid in attempt.questions_shown or []]
    correct_ids: dict[int, set[int]] = defaultdict(set)
    if questions_shown:
        rows = db.execute(
            select(QuizAnswer.question_id, QuizAnswer.id).where(
                QuizAnswer.question_id.in_(questions_shown), QuizAnswer.is_correct.is_(True)
            )
        ).all()
        for question_id, answer_id in rows:
            correct_ids[question_id].add(answer_id)

    submitted: dict[int, list[int]] = {}
    for answer in payload.answers:
        submitted[answer.question_id] = list(answer.selected_answer_ids)

    passed, score = grade(questions_shown, correct_ids, submitted)

    result = db.execute(
        update(QuizAttempt)
        .where(QuizAttempt.id == attempt.id, QuizAttempt.submitted_at.is_(None))
        .values(
            submitted_at=now_utc(),
            answers_submitted=[a.model_dump(by_alias=True) for a in payload.answers],
            passed=passed,
            score=score,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        db.rollback()
        raise ApiError(
            status_code=404, code=ErrorCode.ATTEMPT_NOT_FOUND, message="Quiz attempt not found or already submitted"
        )

    certificate, created = None, False
    hub = None
    if passed:
        hub = get_hub_or_404(db, attempt.hub_id, for_update=True)
        mark_hub_completed(db, user.id, hub.id)
        certificate, created = certificate_service.issue_if_earned(db, user.id, hub.course_id)
    db.commit()

    if passed and hub is not None:
        course = db.get(Course, hub.course_id)
        activity_notifier.notify(
            ActivityEvent(
                type="hub",
                user_name=user.name,
                item_title=hub.title,
                course_title=course.title if course else None,
                course_id=hub.course_id,
            )
        )

    return QuizSubmitResponse(
        passed=passed,
        score=score,
        total=len(questions_shown),
        new_certificate=certificate_service.certificate_out(db, certificate) if created and certificate else None,
    )
