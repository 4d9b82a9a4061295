"""initial payroll and PPh21 schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

import sqlalchemy as sa

from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(15, 2)


def _tenant_fk() -> sa.Column:
    return sa.Column("tenant_id", sa.Integer(), sa.ForeignKey("tenant.id", ondelete="CASCADE"), nullable=False, index=True)


def _result_columns() -> list[sa.Column]:
    return [
        sa.Column("calculation_mode", sa.String(length=20), nullable=False),
        sa.Column("ptkp_code", sa.String(length=5), nullable=False),
        sa.Column("has_npwp", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("bruto", MONEY, nullable=False),
        sa.Column("biaya_jabatan", MONEY, nullable=False),
        sa.Column("iuran_pensiun", MONEY, nullable=False),
        sa.Column("zakat", MONEY, nullable=False),
        sa.Column("neto", MONEY, nullable=False),
        sa.Column("ptkp_yearly", MONEY, nullable=False),
        sa.Column("pkp", MONEY, nullable=False),
        sa.Column("pph21_period", MONEY, nullable=False),
        sa.Column("pph21_annual", MONEY, nullable=False, server_default="0"),
        sa.Column("notes", sa.JSON(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        "tenant",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_tenant_code", "tenant", ["code"], unique=True)
    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_superadmin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_user_email", "user", ["email"], unique=True)
    op.create_table(
        "tenant_user",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "role",
            sa.Enum("tenant_admin", "hr", "finance", "viewer", name="tenantrole"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.UniqueConstraint("tenant_id", "user_id", name="uq_tenant_user_tenant_user"),
    )

    op.create_table(
        "person",
        sa.Column("id", sa.String(length=36), primary_key=True),
        _tenant_fk(),
        sa.Column("full_name", sa.String(length=255), nullable=False),
        sa.Column("nik", sa.String(length=32), nullable=True, index=True),
        sa.Column("npwp", sa.String(length=32), nullable=True),
        sa.Column("birth_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_table(
        "org_unit",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=True),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("org_unit.id"), nullable=True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_org_unit_tenant_code"),
    )
    op.create_table(
        "employment",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("person_id", sa.String(length=36), sa.ForeignKey("person.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("org_unit_id", sa.Integer(), sa.ForeignKey("org_unit.id"), nullable=True, index=True),
        sa.Column("employment_type", sa.String(length=30), nullable=False, server_default="permanent"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("primary_payroll", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "payroll_subject",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("employment_id", sa.Integer(), sa.ForeignKey("employment.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("ptkp_code", sa.String(length=5), nullable=False),
        sa.Column("has_npwp", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "period",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="draft"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("tenant_id", "year", "month", name="uq_period_tenant_year_month"),
    )
    op.create_table(
        "component",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("group", sa.String(length=50), nullable=False, server_default="earning"),
        sa.Column("taxable", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_mandatory", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.UniqueConstraint("tenant_id", "code", name="uq_component_tenant_code"),
    )
    op.create_table(
        "deduction_component",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("code", sa.String(length=50), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False, server_default="custom"),
        sa.Column("calculation_type", sa.String(length=20), nullable=False, server_default="manual"),
        sa.Column("is_tax_deductible", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("role", sa.String(length=30), nullable=False, server_default="none"),
        sa.Column("priority", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.UniqueConstraint("tenant_id", "code", name="uq_deduction_component_tenant_code"),
    )
    op.create_table(
        "earning",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("period.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("employment_id", sa.Integer(), sa.ForeignKey("employment.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("component_id", sa.Integer(), sa.ForeignKey("component.id"), nullable=False, index=True),
        sa.Column("amount", MONEY, nullable=False, server_default="0"),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.UniqueConstraint(
            "tenant_id", "period_id", "employment_id", "component_id",
            name="uq_earning_period_employment_component",
        ),
    )
    op.create_table(
        "deduction_manual",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("period.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("employment_id", sa.Integer(), sa.ForeignKey("employment.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "deduction_component_id",
            sa.Integer(),
            sa.ForeignKey("deduction_component.id"),
            nullable=False,
            index=True,
        ),
        sa.Column("amount", MONEY, nullable=False, server_default="0"),
        sa.UniqueConstraint(
            "tenant_id", "period_id", "employment_id", "deduction_component_id",
            name="uq_deduction_period_employment_component",
        ),
    )

    op.create_table(
        "payroll_calculation",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("employment_id", sa.Integer(), sa.ForeignKey("employment.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("period.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("year", sa.Integer(), nullable=False, index=True),
        sa.Column("month", sa.Integer(), nullable=False),
        *_result_columns(),
        sa.Column("other_deductions", MONEY, nullable=False, server_default="0"),
        sa.Column("neto_annualized", MONEY, nullable=False),
        sa.Column("pph21_ytd", MONEY, nullable=False),
        sa.Column("pph21_settlement_december", MONEY, nullable=False, server_default="0"),
        sa.Column("over_withheld", MONEY, nullable=False, server_default="0"),
        sa.Column("calculated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("tenant_id", "employment_id", "period_id", name="uq_payroll_calculation_employment_period"),
    )
    op.create_table(
        "calculation_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant_fk(),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column(
            "employment_id",
            sa.Integer(),
            sa.ForeignKey("employment.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("person_name", sa.String(length=255), nullable=True),
        sa.Column("year", sa.Integer(), nullable=False, index=True),
        sa.Column("month", sa.Integer(), nullable=False),
        *_result_columns(),
        sa.Column("earnings_breakdown", sa.JSON(), nullable=True),
        sa.Column("deductions_breakdown", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("calculation_history")
    op.drop_table("payroll_calculation")
    op.drop_table("deduction_manual")
    op.drop_table("earning")
    op.drop_table("deduction_component")
    op.drop_table("component")
    op.drop_table("period")
    op.drop_table("payroll_subject")
    op.drop_table("employment")
    op.drop_table("org_unit")
    op.drop_table("person")
    op.drop_table("tenant_user")
    op.drop_index("ix_user_email", table_name="user")
    op.drop_table("user")
    op.drop_index("ix_tenant_code", table_name="tenant")
    op.drop_table("tenant")
    sa.Enum(name="tenantrole").drop(op.get_bind(), checkfirst=True)
