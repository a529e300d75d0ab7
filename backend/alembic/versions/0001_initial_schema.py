"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "lab_tests",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_lab_tests_name", "lab_tests", ["name"])
    op.create_index("ix_lab_tests_created_at", "lab_tests", ["created_at"])

    op.create_table(
        "lab_test_fields",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("lab_test_id", sa.String(), sa.ForeignKey("lab_tests.id"), nullable=False),
        sa.Column("field_name", sa.String(200), nullable=False),
        sa.Column("field_type", sa.String(20), nullable=False),
        sa.Column("field_options", sa.JSON(), nullable=True),
        sa.Column("is_required", sa.Boolean(), nullable=False),
        sa.Column("field_order", sa.Integer(), nullable=False),
        sa.Column("unit", sa.String(50), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("lab_test_id", "field_name", name="uq_lab_test_field_name"),
    )
    op.create_index("ix_lab_test_fields_lab_test_id", "lab_test_fields", ["lab_test_id"])
    op.create_index("ix_lab_test_fields_created_at", "lab_test_fields", ["created_at"])

    op.create_table(
        "patients",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("unique_id", sa.String(50), nullable=False),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("sex", sa.String(20), nullable=True),
        sa.Column("rank", sa.String(20), nullable=False),
        sa.Column("ward", sa.String(100), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_patients_unique_id", "patients", ["unique_id"])
    op.create_index("ix_patients_created_at", "patients", ["created_at"])

    op.create_table(
        "tests",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("patient_id", sa.String(), sa.ForeignKey("patients.id"), nullable=False),
        sa.Column("lab_test_id", sa.String(), sa.ForeignKey("lab_tests.id"), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tests_patient_id", "tests", ["patient_id"])
    op.create_index("ix_tests_lab_test_id", "tests", ["lab_test_id"])
    op.create_index("ix_tests_status", "tests", ["status"])
    op.create_index("ix_tests_created_at", "tests", ["created_at"])

    op.create_table(
        "test_results",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("test_id", sa.String(), sa.ForeignKey("tests.id"), nullable=False),
        sa.Column(
            "field_id",
            sa.String(),
            sa.ForeignKey("lab_test_fields.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("field_name", sa.String(200), nullable=False),
        sa.Column("field_value", sa.Text(), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_test_results_test_id", "test_results", ["test_id"])
    op.create_index("ix_test_results_field_id", "test_results", ["field_id"])
    op.create_index("ix_test_results_created_at", "test_results", ["created_at"])


def downgrade() -> None:
    op.drop_table("test_results")
    op.drop_table("tests")
    op.drop_table("patients")
    op.drop_table("lab_test_fields")
    op.drop_table("lab_tests")
