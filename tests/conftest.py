import os

# Point settings at SQLite before any learnhub module builds the engine.
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SEED_DATA"] = "false"

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from httpx import Client
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from learnhub import models
from learnhub.core.security import hash_password
from learnhub.db.base import Base
from learnhub.db.seed import seed_roles
from learnhub.db.session import get_db
from learnhub.main import app
from learnhub.services.access_policy import role_id_for
from learnhub.services.auth_service import issue_token

RUN_INTEGRATION = os.getenv("RUN_INTEGRATION") == "1"
BASE_URL = os.getenv("BASE_URL", "http://localhost:5000")

TEST_PASSWORD = "secret123"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


@pytest.fixture(scope="session")
def base_url() -> str:
    return BASE_URL


@pytest.fixture(scope="session")
def client(base_url: str):
    with Client(base_url=base_url, timeout=20.0) as c:
        yield c


@pytest.fixture(scope="session")
def integration_enabled() -> bool:
    return RUN_INTEGRATION


@pytest.fixture()
def engine():
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)

    @event.listens_for(eng, "connect")
    def _enable_foreign_keys(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    seed_roles(session)
    yield session
    session.close()


@pytest.fixture()
def api_client(db, session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture()
def make_user(db):
    def _make(role: str = "student", name: str | None = None, email: str | None = None) -> models.User:
        user = models.User(
            email=email or f"{role}_{uuid4().hex[:8]}@example.com",
            name=name or f"{role.title()} {uuid4().hex[:4]}",
            password_hash=TEST_PASSWORD_HASH,
            role_id=role_id_for(db, role),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def admin(make_user) -> models.User:
    return make_user("admin", name="Ada Admin")


@pytest.fixture()
def teacher(make_user) -> models.User:
    return make_user("teacher", name="Tove Teacher")


@pytest.fixture()
def student(make_user) -> models.User:
    return make_user("student", name="Sam Student")


@pytest.fixture()
def make_course(db):
    def _make(owner: models.User | None = None, title: str = "Course", locked: bool = False) -> models.Course:
        course = models.Course(title=title, created_by=owner.id if owner else None, is_locked=locked)
        db.add(course)
        db.flush()
        if owner is not None:
            db.add(models.CourseTeacher(user_id=owner.id, course_id=course.id, is_owner=True))
        db.commit()
        db.refresh(course)
        return course

    return _make


@pytest.fixture()
def course(make_course, teacher) -> models.Course:
    return make_course(owner=teacher, title="Graph Theory")


@pytest.fixture()
def enroll(db):
    def _enroll(user: models.User, course: models.Course) -> None:
        db.add(models.CourseEnrollment(user_id=user.id, course_id=course.id))
        db.commit()

    return _enroll


@pytest.fixture()
def make_hub(db):
    def _make(course: models.Course, title: str = "Hub", **fields) -> models.Hub:
        hub = models.Hub(course_id=course.id, title=title, payload={}, **fields)
        db.add(hub)
        db.commit()
        db.refresh(hub)
        return hub

    return _make


@pytest.fixture()
def make_task(db):
    def _make(hub: models.Hub, title: str = "Task", **fields) -> models.Task:
        task = models.Task(hub_id=hub.id, title=title, payload={}, **fields)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    return _make


@pytest.fixture()
def make_edge(db):
    def _make(from_hub: models.Hub, to_hub: models.Hub) -> models.HubEdge:
        edge = models.HubEdge(
            course_id=from_hub.course_id, from_hub_id=from_hub.id, to_hub_id=to_hub.id, rule_value={}
        )
        db.add(edge)
        db.commit()
        db.refresh(edge)
        return edge

    return _make


@pytest.fixture()
def make_quiz(db):
    """Quiz attached to ``hub`` with ``questions`` as ``[(text, [(answer, correct), ...]), ...]``."""

    def _make(hub: models.Hub, questions, per_attempt: int = 3, title: str = "Check") -> models.Quiz:
        quiz = models.Quiz(course_id=hub.course_id, hub_id=hub.id, title=title, questions_per_attempt=per_attempt)
        db.add(quiz)
        db.flush()
        hub.quiz_id = quiz.id
        for q_index, (text, answers) in enumerate(questions):
            question = models.QuizQuestion(quiz_id=quiz.id, question_text=text, order_index=q_index)
            db.add(question)
            db.flush()
            for a_index, (answer_text, correct) in enumerate(answers):
                db.add(
                    models.QuizAnswer(
                        question_id=question.id, answer_text=answer_text, is_correct=correct, order_index=a_index
                    )
                )
        db.commit()
        db.refresh(quiz)
        return quiz

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user: models.User) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user)}"}

    return _headers
