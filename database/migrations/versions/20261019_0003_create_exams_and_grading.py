"""create exams, marks and grading scales

Revision ID: 20261019_0003
Revises: 20261019_0002
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

revision = "20261019_0003"
down_revision = "20261019_0002"
branch_labels = None
depends_on = None


exam_status_enum = sa.Enum(
    "Scheduled",
    "Ongoing",
    "Completed",
    "Grading",
    "Published",
    "Cancelled",
    name="exam_status",
)


def upgrade() -> None:
    op.create_table(
        "exams",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column(
            "academic_year_id",
            sa.String(length=36),
            sa.ForeignKey("academic_years.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("term_id", sa.String(length=36), sa.ForeignKey("terms.id", ondelete="SET NULL"), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", exam_status_enum, nullable=False, server_default="Scheduled"),
        sa.Column("weight", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("name", "academic_year_id", "term_id", name="uq_exams_name_scope"),
    )
    op.create_index("ix_exams_academic_year_id", "exams", ["academic_year_id"])

    op.create_table(
        "assessments",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("exam_id", sa.String(length=36), sa.ForeignKey("exams.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", sa.String(length=36), sa.ForeignKey("subjects.id"), nullable=False),
        sa.Column("class_id", sa.String(length=36), sa.ForeignKey("classes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("assessment_type", sa.String(length=100), nullable=False),
        sa.Column("assessment_name", sa.String(length=200), nullable=False),
        sa.Column("max_marks", sa.Float(), nullable=False),
        sa.Column("assessment_date", sa.Date(), nullable=False),
        sa.Column("is_graded", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint(
            "exam_id",
            "class_id",
            "subject_id",
            "assessment_name",
            name="uq_assessments_exam_class_subject_name",
        ),
    )
    op.create_index("ix_assessments_exam_id", "assessments", ["exam_id"])

    op.create_table(
        "marks",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column(
            "assessment_id",
            sa.String(length=36),
            sa.ForeignKey("assessments.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("student_id", sa.String(length=36), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("academic_year_id", sa.String(length=36), sa.ForeignKey("academic_years.id"), nullable=False),
        sa.Column("term_id", sa.String(length=36), sa.ForeignKey("terms.id"), nullable=True),
        sa.Column("marks_obtained", sa.Float(), nullable=True),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("recorded_by_id", sa.String(length=36), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("assessment_id", "student_id", name="uq_marks_assessment_student"),
    )
    op.create_index("ix_marks_student_scope", "marks", ["student_id", "academic_year_id", "term_id"])

    op.create_table(
        "grading_scales",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False, unique=True),
        sa.Column(
            "academic_year_id",
            sa.String(length=36),
            sa.ForeignKey("academic_years.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("level", sa.String(length=50), nullable=True),
        sa.Column("scale_type", sa.String(length=50), nullable=False, server_default="Standard Percentage"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("grades", sa.JSON(), nullable=False),
        sa.Column("division_configs", sa.JSON(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_grading_scales_is_default", "grading_scales", ["is_default"])


def downgrade() -> None:
    op.drop_index("ix_grading_scales_is_default", table_name="grading_scales")
    op.drop_table("grading_scales")
    op.drop_index("ix_marks_student_scope", table_name="marks")
    op.drop_table("marks")
    op.drop_index("ix_assessments_exam_id", table_name="assessments")
    op.drop_table("assessments")
    op.drop_index("ix_exams_academic_year_id", table_name="exams")
    op.drop_table("exams")
    exam_status_enum.drop(op.get_bind(), checkfirst=True)
