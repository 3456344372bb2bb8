import pytest
from sqlalchemy import select

from learnhub import models
from learnhub.core.errors import ApiError
from learnhub.services import progress_service


def _hub_state(db, user, hub):
    return db.execute(
        select(models.HubUserState.state, models.HubUserState.completed_at).where(
            models.HubUserState.user_id == user.id, models.HubUserState.hub_id == hub.id
        )
    ).first()


def _task_status(db, user, task):
    return db.execute(
        select(models.TaskProgress.status, models.TaskProgress.completed_at).where(
            models.TaskProgress.user_id == user.id, models.TaskProgress.task_id == task.id
        )
    ).first()


@pytest.fixture()
def chain(course, make_hub, make_edge):
    """Three hubs a -> b -> c."""
    a = make_hub(course, "A", is_start=True)
    b = make_hub(course, "B")
    c = make_hub(course, "C")
    make_edge(a, b)
    make_edge(b, c)
    return a, b, c


def test_task_toggle_sets_and_clears_completed_at(db, student, course, enroll, make_hub, make_task):
    enroll(student, course)
    task = make_task(make_hub(course, "A"), "read")

    progress_service.set_task_progress(db, student, task.id, True)
    status, completed_at = _task_status(db, student, task)
    assert status == models.TASK_COMPLETED
    assert completed_at is not None

    progress_service.set_task_progress(db, student, task.id, False)
    status, completed_at = _task_status(db, student, task)
    assert status == models.TASK_NOT_STARTED
    assert completed_at is None


def test_task_progress_requires_course_access(db, student, course, make_hub, make_task):
    task = make_task(make_hub(course, "A"), "read")
    with pytest.raises(ApiError) as exc:
        progress_service.set_task_progress(db, student, task.id, True)
    assert exc.value.status_code == 403


def test_hub_done_with_open_tasks_is_rejected_without_side_effects(
    db, student, course, enroll, make_hub, make_task
):
    enroll(student, course)
    hub = make_hub(course, "A")
    t1 = make_task(hub, "one")
    make_task(hub, "two")
    progress_service.set_task_progress(db, student, t1.id, True)

    with pytest.raises(ApiError) as exc:
        progress_service.set_hub_progress(db, student, hub.id, True)

    assert exc.value.status_code == 400
    assert exc.value.code == "PRECONDITION_FAILED"
    assert exc.value.details == {"total_tasks": 2, "completed_tasks": 1}
    db.rollback()
    assert _hub_state(db, student, hub) is None


def test_hub_done_unlocks_only_direct_successors(db, student, course, enroll, chain):
    enroll(student, course)
    a, b, c = chain

    progress_service.set_hub_progress(db, student, a.id, True)

    state, completed_at = _hub_state(db, student, a)
    assert state == models.HUB_COMPLETED
    assert completed_at is not None
    assert _hub_state(db, student, b) == (models.HUB_UNLOCKED, None)
    assert _hub_state(db, student, c) is None


def test_unlock_never_downgrades_completed_successor(db, student, course, enroll, chain):
    enroll(student, course)
    a, b, _ = chain
    progress_service.set_hub_progress(db, student, b.id, True)

    progress_service.set_hub_progress(db, student, a.id, True)

    assert _hub_state(db, student, b)[0] == models.HUB_COMPLETED


def test_hub_undo_returns_to_unlocked(db, student, course, enroll, chain):
    enroll(student, course)
    a = chain[0]
    progress_service.set_hub_progress(db, student, a.id, True)

    progress_service.set_hub_progress(db, student, a.id, False)

    assert _hub_state(db, student, a) == (models.HUB_UNLOCKED, None)


def test_hub_undo_never_unlocks_unreached_hub(db, student, course, enroll, chain, make_hub):
    enroll(student, course)
    a, b, c = chain
    locked = make_hub(course, "Locked")
    db.add(models.HubUserState(hub_id=locked.id, user_id=student.id, state=models.HUB_LOCKED))
    db.commit()

    progress_service.set_hub_progress(db, student, c.id, False)
    progress_service.set_hub_progress(db, student, locked.id, False)

    assert _hub_state(db, student, c) is None
    assert _hub_state(db, student, locked) == (models.HUB_LOCKED, None)

    progress_service.set_hub_progress(db, student, a.id, True)
    progress_service.set_hub_progress(db, student, b.id, False)

    assert _hub_state(db, student, b) == (models.HUB_UNLOCKED, None)
    assert _hub_state(db, student, c) is None


def test_completed_at_matches_state_for_every_row(db, student, course, enroll, chain):
    enroll(student, course)
    a, b, c = chain
    progress_service.set_hub_progress(db, student, a.id, True)
    progress_service.set_hub_progress(db, student, b.id, True)
    progress_service.set_hub_progress(db, student, a.id, False)

    rows = db.execute(select(models.HubUserState.state, models.HubUserState.completed_at)).all()
    assert rows
    for state, completed_at in rows:
        assert (state == models.HUB_COMPLETED) == (completed_at is not None)


def test_summary_counts_tasks_and_hubs(db, student, course, enroll, make_hub, make_task):
    enroll(student, course)
    a = make_hub(course, "A")
    make_hub(course, "B")
    t1 = make_task(a, "one")
    make_task(a, "two")
    progress_service.set_task_progress(db, student, t1.id, True)

    summary = progress_service.summarize(db, student.id, course.id)

    assert summary.total_tasks == 2
    assert summary.total_hubs == 2
    assert summary.completed_items == 1
    assert summary.total_items == 4
    assert summary.percentage == 25


def test_summary_of_empty_course_is_zero(db, student, course):
    summary = progress_service.summarize(db, student.id, course.id)
    assert summary.total_items == 0
    assert summary.percentage == 0


def test_course_progress_lists_only_this_users_rows(db, student, make_user, course, enroll, make_hub, make_task):
    other = make_user("student")
    enroll(student, course)
    enroll(other, course)
    task = make_task(make_hub(course, "A"), "read")
    progress_service.set_task_progress(db, other, task.id, True)

    response = progress_service.course_progress(db, student, course.id)

    assert response.task_progress == []
    assert response.hub_progress == []
