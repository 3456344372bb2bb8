from datetime import timedelta

from sqlalchemy import func, select

from learnhub import models
from learnhub.core.security import now_utc
from learnhub.services import certificate_service, progress_service


def test_certificate_issued_when_last_required_hub_completes(db, student, course, enroll, make_hub):
    enroll(student, course)
    h1 = make_hub(course, "H1", is_start=True)
    h2 = make_hub(course, "H2")
    make_hub(course, "Optional", is_required=False)

    first = progress_service.set_hub_progress(db, student, h1.id, True)
    assert first.new_certificate is None
    assert certificate_service.get_certificate(db, student.id, course.id) is None

    second = progress_service.set_hub_progress(db, student, h2.id, True)
    assert second.new_certificate is not None
    assert second.new_certificate.course_id == course.id
    assert second.new_certificate.course_title == "Graph Theory"


def test_issue_is_idempotent(db, student, course, enroll, make_hub):
    enroll(student, course)
    hub = make_hub(course, "Only")
    progress_service.set_hub_progress(db, student, hub.id, True)
    first_issued = certificate_service.get_certificate(db, student.id, course.id)

    again, created = certificate_service.issue_if_earned(db, student.id, course.id)
    repeat = progress_service.set_hub_progress(db, student, hub.id, True)

    assert created is False
    assert repeat.new_certificate is None
    assert (again.id, again.issued_at) == (first_issued.id, first_issued.issued_at)
    count = db.execute(select(func.count(models.Certificate.id))).scalar_one()
    assert count == 1


def test_not_completed_returns_nothing(db, student, course, make_hub):
    make_hub(course, "Pending")
    assert certificate_service.issue_if_earned(db, student.id, course.id) == (None, False)


def test_course_without_required_hubs_is_complete(db, student, course, make_hub):
    make_hub(course, "Extra", is_required=False)
    assert certificate_service.is_course_completed(db, student.id, course.id)

    certificate, created = certificate_service.issue_if_earned(db, student.id, course.id)
    db.commit()
    assert created is True
    assert certificate.course_id == course.id


def test_undoing_a_hub_keeps_the_certificate(db, student, course, enroll, make_hub):
    enroll(student, course)
    hub = make_hub(course, "Only")
    progress_service.set_hub_progress(db, student, hub.id, True)

    progress_service.set_hub_progress(db, student, hub.id, False)

    assert certificate_service.get_certificate(db, student.id, course.id) is not None


def test_list_for_user_newest_first(db, student, teacher, make_course):
    older = make_course(owner=teacher, title="Older")
    newer = make_course(owner=teacher, title="Newer")
    now = now_utc()
    db.add_all(
        [
            models.Certificate(user_id=student.id, course_id=older.id, issued_at=now - timedelta(days=3)),
            models.Certificate(user_id=student.id, course_id=newer.id, issued_at=now),
        ]
    )
    db.commit()

    listed = certificate_service.list_for_user(db, student.id)

    assert [c.course_title for c in listed] == ["Newer", "Older"]
