"""Initial clubpay schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


shift_status_enum = sa.Enum("ACTIVE", "CLOSED", "VERIFIED", "PAID", name="shift_status")
maintenance_task_status_enum = sa.Enum("PENDING", "IN_PROGRESS", "COMPLETED", name="maintenance_task_status")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def _club_fk() -> sa.Column:
    return sa.Column("club_id", sa.Integer(), sa.ForeignKey("clubs.id", ondelete="CASCADE"), nullable=False)


def _employee_fk() -> sa.Column:
    return sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "clubs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("timezone", sa.String(length=64), nullable=False, server_default="Europe/Moscow"),
        *_timestamps(),
    )
    op.create_index("ix_clubs_id", "clubs", ["id"])

    op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=64), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_employees_id", "employees", ["id"])
    op.create_index("ix_employees_phone", "employees", ["phone"])

    op.create_table(
        "club_employees",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        _employee_fk(),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("standard_monthly_shifts", sa.Integer(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("club_id", "employee_id", name="uq_club_employees_club_employee"),
    )
    op.create_index("ix_club_employees_id", "club_employees", ["id"])
    op.create_index("ix_club_employees_club_id", "club_employees", ["club_id"])
    op.create_index("ix_club_employees_employee_id", "club_employees", ["employee_id"])

    op.create_table(
        "salary_schemes",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_salary_schemes_id", "salary_schemes", ["id"])
    op.create_index("ix_salary_schemes_club_id", "salary_schemes", ["club_id"])

    op.create_table(
        "salary_scheme_versions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "scheme_id",
            sa.Integer(),
            sa.ForeignKey("salary_schemes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("formula", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("scheme_id", "version", name="uq_salary_scheme_versions_scheme_version"),
    )
    op.create_index("ix_salary_scheme_versions_id", "salary_scheme_versions", ["id"])
    op.create_index("ix_salary_scheme_versions_scheme_id", "salary_scheme_versions", ["scheme_id"])

    op.create_table(
        "employee_salary_assignments",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        _employee_fk(),
        sa.Column(
            "scheme_id",
            sa.Integer(),
            sa.ForeignKey("salary_schemes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("club_id", "employee_id", name="uq_employee_salary_assignments_club_employee"),
    )
    op.create_index("ix_employee_salary_assignments_id", "employee_salary_assignments", ["id"])
    op.create_index("ix_employee_salary_assignments_club_id", "employee_salary_assignments", ["club_id"])
    op.create_index("ix_employee_salary_assignments_employee_id", "employee_salary_assignments", ["employee_id"])
    op.create_index("ix_employee_salary_assignments_scheme_id", "employee_salary_assignments", ["scheme_id"])

    op.create_table(
        "club_report_templates",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        sa.Column("schema", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_club_report_templates_id", "club_report_templates", ["id"])
    op.create_index("ix_club_report_templates_club_id", "club_report_templates", ["club_id"])
    op.create_index("ix_club_report_templates_is_active", "club_report_templates", ["is_active"])

    op.create_table(
        "system_metrics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("label", sa.String(length=255), nullable=False),
        sa.Column("category", sa.String(length=16), nullable=False, server_default="OTHER"),
        sa.Column("type", sa.String(length=16), nullable=False, server_default="NUMBER"),
        sa.Column("is_required", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("key", name="uq_system_metrics_key"),
    )
    op.create_index("ix_system_metrics_id", "system_metrics", ["id"])

    op.create_table(
        "shifts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        _employee_fk(),
        sa.Column("check_in", sa.DateTime(timezone=True), nullable=False),
        sa.Column("check_out", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", shift_status_enum, nullable=False, server_default="ACTIVE"),
        sa.Column("total_hours", sa.Numeric(6, 2), nullable=True),
        sa.Column("cash_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("card_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("expenses", sa.Numeric(12, 2), nullable=True),
        sa.Column("report_comment", sa.Text(), nullable=True),
        sa.Column("report_data", sa.JSON(), nullable=True),
        sa.Column(
            "template_id",
            sa.Integer(),
            sa.ForeignKey("club_report_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("calculated_salary", sa.Numeric(12, 2), nullable=True),
        sa.Column("salary_breakdown", sa.JSON(), nullable=True),
        sa.Column("salary_snapshot", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_shifts_id", "shifts", ["id"])
    op.create_index("ix_shifts_club_id", "shifts", ["club_id"])
    op.create_index("ix_shifts_employee_id", "shifts", ["employee_id"])
    op.create_index("ix_shifts_check_in", "shifts", ["check_in"])
    op.create_index("ix_shifts_status", "shifts", ["status"])

    op.create_table(
        "shift_evaluations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("shift_id", sa.Integer(), sa.ForeignKey("shifts.id", ondelete="CASCADE"), nullable=True),
        _club_fk(),
        _employee_fk(),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("total_score", sa.Numeric(5, 2), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_shift_evaluations_id", "shift_evaluations", ["id"])
    op.create_index("ix_shift_evaluations_shift_id", "shift_evaluations", ["shift_id"])
    op.create_index("ix_shift_evaluations_club_id", "shift_evaluations", ["club_id"])
    op.create_index("ix_shift_evaluations_employee_id", "shift_evaluations", ["employee_id"])

    op.create_table(
        "employee_shift_schedules",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        _employee_fk(),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("planned_shifts", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("club_id", "employee_id", "year", "month", name="uq_employee_shift_schedules_period"),
    )
    op.create_index("ix_employee_shift_schedules_id", "employee_shift_schedules", ["id"])
    op.create_index("ix_employee_shift_schedules_club_id", "employee_shift_schedules", ["club_id"])
    op.create_index("ix_employee_shift_schedules_employee_id", "employee_shift_schedules", ["employee_id"])

    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        _employee_fk(),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=True),
        sa.Column("payment_type", sa.String(length=32), nullable=False, server_default="salary"),
        *_timestamps(),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_club_id", "payments", ["club_id"])
    op.create_index("ix_payments_employee_id", "payments", ["employee_id"])
    op.create_index("ix_payments_month", "payments", ["month"])
    op.create_index("ix_payments_year", "payments", ["year"])

    op.create_table(
        "maintenance_tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        sa.Column(
            "assigned_employee_id",
            sa.Integer(),
            sa.ForeignKey("employees.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("status", maintenance_task_status_enum, nullable=False, server_default="PENDING"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bonus_earned", sa.Numeric(10, 2), nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_maintenance_tasks_id", "maintenance_tasks", ["id"])
    op.create_index("ix_maintenance_tasks_club_id", "maintenance_tasks", ["club_id"])
    op.create_index("ix_maintenance_tasks_assigned_employee_id", "maintenance_tasks", ["assigned_employee_id"])
    op.create_index("ix_maintenance_tasks_completed_at", "maintenance_tasks", ["completed_at"])

    op.create_table(
        "maintenance_monthly_bonuses",
        sa.Column("id", sa.Integer(), primary_key=True),
        _club_fk(),
        _employee_fk(),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("bonus_amount", sa.Numeric(10, 2), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("club_id", "employee_id", "year", "month", name="uq_maintenance_monthly_bonuses_period"),
    )
    op.create_index("ix_maintenance_monthly_bonuses_id", "maintenance_monthly_bonuses", ["id"])
    op.create_index("ix_maintenance_monthly_bonuses_club_id", "maintenance_monthly_bonuses", ["club_id"])
    op.create_index("ix_maintenance_monthly_bonuses_employee_id", "maintenance_monthly_bonuses", ["employee_id"])


def downgrade() -> None:
    for table in (
        "maintenance_monthly_bonuses",
        "maintenance_tasks",
        "payments",
        "employee_shift_schedules",
        "shift_evaluations",
        "shifts",
        "system_metrics",
        "club_report_templates",
        "employee_salary_assignments",
        "salary_scheme_versions",
        "salary_schemes",
        "club_employees",
        "employees",
        "clubs",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    shift_status_enum.drop(bind, checkfirst=True)
    maintenance_task_status_enum.drop(bind, checkfirst=True)
