"""People and employment master data.

Every row belongs to exactly one tenant; services always filter on
``tenant_id`` explicitly.
"""
from __future__ import annotations

import datetime as dt
import uuid

from sqlalchemy import Date, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from pph21_service.db.base_class import Base
from pph21_service.models.models import utcnow


def new_person_id() -> str:
    return str(uuid.uuid4())


class Person(Base):
    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_person_id)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    nik: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)  # national ID number
    npwp: Mapped[str | None] = mapped_column(String(32), nullable=True)  # tax ID number
    birth_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    employments: Mapped[list[Employment]] = relationship("Employment", back_populates="person")


class OrgUnit(Base):
    __tablename__ = "org_unit"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_org_unit_tenant_code"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str | None] = mapped_column(String(50), nullable=True)  # e.g. division, department
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("org_unit.id"), nullable=True)

    parent: Mapped[OrgUnit | None] = relationship("OrgUnit", remote_side="OrgUnit.id", back_populates="children")
    children: Mapped[list[OrgUnit]] = relationship("OrgUnit", back_populates="parent")


class Employment(Base):
    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    person_id: Mapped[str] = mapped_column(ForeignKey("person.id", ondelete="CASCADE"), index=True)
    org_unit_id: Mapped[int | None] = mapped_column(ForeignKey("org_unit.id"), nullable=True, index=True)
    employment_type: Mapped[str] = mapped_column(String(30), default="permanent")
    start_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    end_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    primary_payroll: Mapped[bool] = mapped_column(default=True)

    person: Mapped[Person] = relationship("Person", back_populates="employments")
    org_unit: Mapped[OrgUnit | None] = relationship("OrgUnit")
    payroll_subjects: Mapped[list[PayrollSubject]] = relationship(
        "PayrollSubject",
        back_populates="employment",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return self.end_date is None or self.end_date >= dt.date.today()

    @property
    def active_payroll_subject(self) -> PayrollSubject | None:
        for subject in self.payroll_subjects:
            if subject.active:
                return subject
        return None


class PayrollSubject(Base):
    """Tax profile of an employment: PTKP status and NPWP ownership."""
    __tablename__ = "payroll_subject"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    employment_id: Mapped[int] = mapped_column(ForeignKey("employment.id", ondelete="CASCADE"), index=True)
    ptkp_code: Mapped[str] = mapped_column(String(5), nullable=False)
    has_npwp: Mapped[bool] = mapped_column(default=True)
    active: Mapped[bool] = mapped_column(default=True)

    employment: Mapped[Employment] = relationship("Employment", back_populates="payroll_subjects")
