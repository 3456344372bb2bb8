from __future__ import annotations

from sqlalchemy import case, func, select
from sqlalchemy.orm import Session

from learnhub.core.security import now_utc
from learnhub.db.upsert import insert_ignore
from learnhub.models import HUB_COMPLETED, Certificate, Course, Hub, HubUserState
from learnhub.schemas.certificates import CertificateOut


def is_course_completed(db: Session, user_id: int, course_id: int) -> bool:
    """True when every required hub of the course is completed by the user.

    Hubs without a state row count as incomplete; a course with no required
    hubs is complete.
    """
    total, completed = db.execute(
        select(
            func.count(Hub.id),
            func.coalesce(func.sum(case((HubUserState.state == HUB_COMPLETED, 1), else_=0)), 0),
        )
        .select_from(Hub)
        .outerjoin(HubUserState, (HubUserState.hub_id == Hub.id) & (HubUserState.user_id == user_id))
        .where(Hub.course_id == course_id, Hub.is_required.is_(True))
    ).one()
    return int(total) == int(completed)


def get_certificate(db: Session, user_id: int, course_id: int) -> Certificate | None:
    return db.execute(
        select(Certificate).where(Certificate.user_id == user_id, Certificate.course_id == course_id)
    ).scalars().first()


def issue_if_earned(db: Session, user_id: int, course_id: int) -> tuple[Certificate | None, bool]:
    """Return ``(certificate, created)``.

    ``(None, False)`` when the course is not completed. An existing
    certificate is returned untouched. The caller owns the commit.
    """
    if not is_course_completed(db, user_id, course_id):
        return None, False

    existing = get_certificate(db, user_id, course_id)
    if existing:
        return existing, False

    inserted = insert_ignore(
        db,
        Certificate,
        [{"user_id": user_id, "course_id": course_id, "issued_at": now_utc()}],
        conflict_cols=["user_id", "course_id"],
    )
    certificate = get_certificate(db, user_id, course_id)
    return certificate, bool(inserted)


def list_for_user(db: Session, user_id: int) -> list[CertificateOut]:
    rows = db.execute(
        select(Certificate, Course.title, Course.icon)
        .join(Course, Course.id == Certificate.course_id)
        .where(Certificate.user_id == user_id)
        .order_by(Certificate.issued_at.desc(), Certificate.id.desc())
    ).all()
    return [
        CertificateOut(
            id=cert.id,
            course_id=cert.course_id,
            course_title=title,
            course_icon=icon,
            issued_at=cert.issued_at,
        )
        for cert, title, icon in rows
    ]


def certificate_out(db: Session, certificate: Certificate) -> CertificateOut:
    course = db.get(Course, certificate.course_id)
    return CertificateOut(
        id=certificate.id,
        course_id=certificate.course_id,
        course_title=course.title if course else None,
        course_icon=course.icon if course else None,
        issued_at=certificate.issued_at,
    )
