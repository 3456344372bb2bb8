import random

import pytest
from sqlalchemy import select

from learnhub import models
from learnhub.core.errors import ApiError
from learnhub.schemas.quizzes import QuizSubmitRequest, SubmittedAnswer
from learnhub.services import progress_service, quiz_service

BANK = [
    ("2 + 2", [("4", True), ("5", False)]),
    ("Capital of France", [("Paris", True), ("Lyon", False)]),
    ("Even numbers", [("2", True), ("3", False), ("4", True)]),
]


def _correct_answers(db, question_ids):
    rows = db.execute(
        select(models.QuizAnswer.question_id, models.QuizAnswer.id).where(
            models.QuizAnswer.question_id.in_(question_ids), models.QuizAnswer.is_correct.is_(True)
        )
    ).all()
    answers: dict[int, list[int]] = {qid: [] for qid in question_ids}
    for question_id, answer_id in rows:
        answers[question_id].append(answer_id)
    return answers


def _submit(db, user, started, answers):
    payload = QuizSubmitRequest(
        hub_id=started.hub_id,
        attempt_id=started.attempt_id,
        answers=[SubmittedAnswer(question_id=qid, selected_answer_ids=ids) for qid, ids in answers.items()],
    )
    return quiz_service.submit_attempt(db, user, started.quiz_id, payload)


@pytest.fixture()
def quiz_hub(course, make_hub, make_quiz):
    hub = make_hub(course, "Quizzed", is_start=True)
    make_quiz(hub, BANK)
    return hub


def test_bank_of_exactly_three_serves_all_three(db, student, course, enroll, quiz_hub):
    enroll(student, course)

    started = quiz_service.start_attempt(db, student, quiz_hub.id, rng=random.Random(7))

    shown = [q.id for q in started.questions]
    all_ids = db.execute(select(models.QuizQuestion.id)).scalars().all()
    assert sorted(shown) == sorted(all_ids)
    attempt = db.get(models.QuizAttempt, started.attempt_id)
    assert attempt.questions_shown == shown


def test_start_does_not_leak_correct_flags(db, student, course, enroll, quiz_hub):
    enroll(student, course)
    started = quiz_service.start_attempt(db, student, quiz_hub.id, rng=random.Random(1))
    dumped = started.model_dump(by_alias=True)
    assert "isCorrect" not in str(dumped)
    assert "is_correct" not in str(dumped)


def test_bank_smaller_than_attempt_size_is_rejected(db, student, course, enroll, make_hub, make_quiz):
    enroll(student, course)
    hub = make_hub(course, "Short")
    make_quiz(hub, BANK[:2] + [("No answers yet", [])])

    with pytest.raises(ApiError) as exc:
        quiz_service.start_attempt(db, student, hub.id)
    assert exc.value.status_code == 400
    assert exc.value.details == {"required": 3, "available": 2}


def test_start_requires_enrollment(db, student, quiz_hub):
    with pytest.raises(ApiError) as exc:
        quiz_service.start_attempt(db, student, quiz_hub.id)
    assert exc.value.status_code == 403
    assert exc.value.code == "NOT_ENROLLED"


def test_start_requires_required_tasks(db, student, course, enroll, quiz_hub, make_task):
    enroll(student, course)
    done = make_task(quiz_hub, "done")
    make_task(quiz_hub, "open")
    make_task(quiz_hub, "optional", is_required=False)
    progress_service.set_task_progress(db, student, done.id, True)

    with pytest.raises(ApiError) as exc:
        quiz_service.start_attempt(db, student, quiz_hub.id)
    assert exc.value.status_code == 400
    assert exc.value.details == {"requiredTasks": 2, "completedTasks": 1}


def test_hub_without_quiz_is_rejected(db, student, course, enroll, make_hub):
    enroll(student, course)
    hub = make_hub(course, "Plain")
    with pytest.raises(ApiError) as exc:
        quiz_service.start_attempt(db, student, hub.id)
    assert exc.value.status_code == 400
    assert exc.value.code == "HUB_HAS_NO_QUIZ"


def test_passing_completes_hub_and_unlocks_successor(db, student, course, enroll, quiz_hub, make_hub, make_edge):
    enroll(student, course)
    nxt = make_hub(course, "Next")
    make_edge(quiz_hub, nxt)
    started = quiz_service.start_attempt(db, student, quiz_hub.id, rng=random.Random(3))

    result = _submit(db, student, started, _correct_answers(db, [q.id for q in started.questions]))

    assert result.passed is True
    assert result.score == result.total == 3
    states = dict(
        db.execute(
            select(models.HubUserState.hub_id, models.HubUserState.state).where(
                models.HubUserState.user_id == student.id
            )
        ).all()
    )
    assert states == {quiz_hub.id: models.HUB_COMPLETED, nxt.id: models.HUB_UNLOCKED}


def test_partial_multi_select_is_wrong(db, student, course, enroll, quiz_hub):
    enroll(student, course)
    started = quiz_service.start_attempt(db, student, quiz_hub.id, rng=random.Random(5))
    answers = _correct_answers(db, [q.id for q in started.questions])
    multi = next(qid for qid, ids in answers.items() if len(ids) == 2)
    answers[multi] = answers[multi][:1]

    result = _submit(db, student, started, answers)

    assert result.passed is False
    assert result.score == 2
    db.expire_all()
    assert progress_service.get_hub_state(db, student.id, quiz_hub.id) is None


def test_questions_added_after_start_do_not_affect_grading(db, student, course, enroll, quiz_hub):
    enroll(student, course)
    started = quiz_service.start_attempt(db, student, quiz_hub.id, rng=random.Random(11))
    shown = [q.id for q in started.questions]

    extra = models.QuizQuestion(quiz_id=started.quiz_id, question_text="Late addition", order_index=9)
    db.add(extra)
    db.flush()
    db.add(models.QuizAnswer(question_id=extra.id, answer_text="yes", is_correct=True, order_index=0))
    db.commit()

    result = _submit(db, student, started, _correct_answers(db, shown))

    assert result.passed is True
    assert result.total == 3


def test_second_submit_of_same_attempt_is_not_found(db, student, course, enroll, quiz_hub):
    enroll(student, course)
    started = quiz_service.start_attempt(db, student, quiz_hub.id, rng=random.Random(2))
    answers = _correct_answers(db, [q.id for q in started.questions])
    _submit(db, student, started, answers)

    with pytest.raises(ApiError) as exc:
        _submit(db, student, started, answers)
    assert exc.value.status_code == 404


def test_attempt_of_another_user_is_not_found(db, student, make_user, course, enroll, quiz_hub):
    intruder = make_user("student")
    enroll(student, course)
    enroll(intruder, course)
    started = quiz_service.start_attempt(db, student, quiz_hub.id, rng=random.Random(4))

    with pytest.raises(ApiError) as exc:
        _submit(db, intruder, started, {})
    assert exc.value.status_code == 404


def test_grade_requires_exact_sets():
    correct = {1: {10}, 2: {20, 21}}
    assert quiz_service.grade([1, 2], correct, {1: [10], 2: [21, 20]}) == (True, 2)
    assert quiz_service.grade([1, 2], correct, {1: [10], 2: [20]}) == (False, 1)
    assert quiz_service.grade([1, 2], correct, {1: [10, 11], 2: [20, 21]}) == (False, 1)
    assert quiz_service.grade([1, 2], correct, {1: [10]}) == (False, 1)
    assert quiz_service.grade([1], correct, {1: [10], 2: []}) == (True, 1)


def test_larger_bank_samples_distinct_subsets_and_shuffles_answers(db, student, course, enroll, make_hub, make_quiz):
    enroll(student, course)
    hub = make_hub(course, "Big bank")
    quiz = make_quiz(
        hub,
        [(f"Q{n}", [(f"Q{n}-a{i}", i == 0) for i in range(4)]) for n in range(5)],
        per_attempt=3,
        title="Big",
    )
    bank = set(db.execute(select(models.QuizQuestion.id).where(models.QuizQuestion.quiz_id == quiz.id)).scalars())
    stored_order = {
        qid: db.execute(
            select(models.QuizAnswer.id)
            .where(models.QuizAnswer.question_id == qid)
            .order_by(models.QuizAnswer.order_index.asc())
        ).scalars().all()
        for qid in bank
    }

    reached: set[int] = set()
    reordered = False
    for seed in range(20):
        started = quiz_service.start_attempt(db, student, hub.id, rng=random.Random(seed))
        served = [q.id for q in started.questions]

        assert len(served) == 3
        assert len(set(served)) == 3
        assert set(served) <= bank
        assert db.get(models.QuizAttempt, started.attempt_id).questions_shown == served

        for question in started.questions:
            answer_ids = [a.id for a in question.answers]
            assert sorted(answer_ids) == sorted(stored_order[question.id])
            if answer_ids != stored_order[question.id]:
                reordered = True
        reached.update(served)

    assert reached == bank
    assert reordered
