"""quizzes, attempts and certificates

Revision ID: 20261012_0002
Revises: 20261012_0001
Create Date: 2026-10-12 10:30:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261012_0002"
down_revision = "20261012_0001"
branch_labels = None
depends_on = None

json_type = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "quiz",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("hub_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("questions_per_attempt", sa.Integer(), server_default=sa.text("3"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["course_id"], ["course.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["hub_id"], ["hub.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("course_id", "title", name="uq_quiz_course_title"),
        sa.CheckConstraint("questions_per_attempt IN (3, 5)", name="ck_quiz_questions_per_attempt"),
    )
    op.create_index("ix_quiz_course_id", "quiz", ["course_id"], unique=False)

    op.add_column("hub", sa.Column("quiz_id", sa.Integer(), nullable=True))
    op.create_foreign_key("fk_hub_quiz_id", "hub", "quiz", ["quiz_id"], ["id"], ondelete="SET NULL")

    op.create_table(
        "quiz_question",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("quiz_id", sa.Integer(), nullable=False),
        sa.Column("question_text", sa.Text(), nullable=False),
        sa.Column("order_index", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["quiz_id"], ["quiz.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quiz_question_quiz_id", "quiz_question", ["quiz_id"], unique=False)

    op.create_table(
        "quiz_answer",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("question_id", sa.Integer(), nullable=False),
        sa.Column("answer_text", sa.Text(), nullable=False),
        sa.Column("is_correct", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("order_index", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["question_id"], ["quiz_question.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quiz_answer_question_id", "quiz_answer", ["question_id"], unique=False)

    op.create_table(
        "quiz_attempt",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("quiz_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("hub_id", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("questions_shown", json_type, nullable=False),
        sa.Column("answers_submitted", json_type, nullable=True),
        sa.Column("passed", sa.Boolean(), nullable=True),
        sa.Column("score", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["quiz_id"], ["quiz.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["hub_id"], ["hub.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_quiz_attempt_quiz_id", "quiz_attempt", ["quiz_id"], unique=False)
    op.create_index("ix_quiz_attempt_user_id", "quiz_attempt", ["user_id"], unique=False)

    op.create_table(
        "certificate",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("course_id", sa.Integer(), nullable=False),
        sa.Column("issued_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["course_id"], ["course.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "course_id", name="uq_certificate_user_course"),
    )
    op.create_index("ix_certificate_user_id", "certificate", ["user_id"], unique=False)
    op.create_index("ix_certificate_course_id", "certificate", ["course_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_certificate_course_id", table_name="certificate")
    op.drop_index("ix_certificate_user_id", table_name="certificate")
    op.drop_table("certificate")
    op.drop_index("ix_quiz_attempt_user_id", table_name="quiz_attempt")
    op.drop_index("ix_quiz_attempt_quiz_id", table_name="quiz_attempt")
    op.drop_table("quiz_attempt")
    op.drop_index("ix_quiz_answer_question_id", table_name="quiz_answer")
    op.drop_table("quiz_answer")
    op.drop_index("ix_quiz_question_quiz_id", table_name="quiz_question")
    op.drop_table("quiz_question")
    op.drop_constraint("fk_hub_quiz_id", "hub", type_="foreignkey")
    op.drop_column("hub", "quiz_id")
    op.drop_index("ix_quiz_course_id", table_name="quiz")
    op.drop_table("quiz")
