import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from learnhub.models import ROLE_NAMES, Course, Hub, HubEdge, Quiz, QuizAnswer, QuizQuestion, Role, Task

logger = logging.getLogger("learnhub.seed")

DEMO_COURSE_TITLE = "Introduction to Data Literacy"


def seed_roles(db: Session) -> None:
    existing = set(db.execute(select(Role.name)).scalars().all())
    missing = [name for name in ROLE_NAMES if name not in existing]
    if not missing:
        return
    db.add_all([Role(name=name) for name in missing])
    db.commit()
    logger.info("Seeded roles: %s", ", ".join(missing))


def seed_demo_course(db: Session) -> None:
    existing_course = db.execute(select(Course).where(Course.title == DEMO_COURSE_TITLE)).scalars().first()
    if existing_course:
        return

    course = Course(
        title=DEMO_COURSE_TITLE,
        description="Reading tables, charts and summary statistics with a critical eye.",
        icon="chart",
        is_locked=False,
    )
    db.add(course)
    db.flush()

    basics = Hub(course_id=course.id, title="Basics", x=0, y=0, is_start=True, payload={})
    charts = Hub(course_id=course.id, title="Charts", x=300, y=0, payload={})
    stats = Hub(course_id=course.id, title="Summary statistics", x=600, y=0, payload={})
    db.add_all([basics, charts, stats])
    db.flush()

    db.add_all(
        [
            Task(hub_id=basics.id, title="What is a dataset?", task_kind="content", x=0, y=150, payload={}),
            Task(hub_id=basics.id, title="Rows and columns", task_kind="content", x=100, y=150, payload={}),
            Task(hub_id=charts.id, title="Bar charts", task_kind="content", x=300, y=150, payload={}),
            Task(hub_id=stats.id, title="Mean and median", task_kind="assignment", x=600, y=150, payload={}),
            HubEdge(course_id=course.id, from_hub_id=basics.id, to_hub_id=charts.id, rule_value={}),
            HubEdge(course_id=course.id, from_hub_id=charts.id, to_hub_id=stats.id, rule_value={}),
        ]
    )

    quiz = Quiz(course_id=course.id, hub_id=basics.id, title="Basics check", questions_per_attempt=3)
    db.add(quiz)
    db.flush()
    basics.quiz_id = quiz.id

    bank = [
        ("A row in a table usually describes", ["one observation", "one variable"], {0}),
        ("A column in a table usually describes", ["one variable", "one observation"], {0}),
        ("Which are numeric variables?", ["age", "income", "country"], {0, 1}),
    ]
    for index, (text, answers, correct) in enumerate(bank):
        question = QuizQuestion(quiz_id=quiz.id, question_text=text, order_index=index)
        db.add(question)
        db.flush()
        db.add_all(
            [
                QuizAnswer(question_id=question.id, answer_text=answer, is_correct=i in correct, order_index=i)
                for i, answer in enumerate(answers)
            ]
        )

    db.commit()
    logger.info("Seeded demo course %s", course.id)


def seed_if_needed(db: Session, *, demo_content: bool = False) -> None:
    seed_roles(db)
    if demo_content:
        seed_demo_course(db)
