"""Tenant-scoped master data: people, org units, employments, payroll
subjects and the earning / deduction component catalogs.

Every method takes the tenant id explicitly and filters on it.
"""
from __future__ import annotations

import logging
from typing import Annotated, Any, TypeVar

from fastapi import Depends
from sqlalchemy import or_
from sqlalchemy.orm import Session

from pph21_service.core.exceptions import DuplicateResourceError, InvalidHierarchyError, ResourceNotFoundError
from pph21_service.db.base_class import Base
from pph21_service.db.session import get_db
from pph21_service.models import schemas
from pph21_service.models.hr_models import Employment, OrgUnit, PayrollSubject, Person
from pph21_service.models.payroll_models import (
    Component,
    DeductionCalculationType,
    DeductionComponent,
    DeductionType,
)
from pph21_service.services.pph21 import DeductionRole

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

# Codes of the statutory deductions; these map straight to their tax role.
STATUTORY_ROLE_CODES: dict[str, DeductionRole] = {
    "biaya_jabatan": DeductionRole.BIAYA_JABATAN,
    "iuran_pensiun": DeductionRole.IURAN_PENSIUN,
    "zakat": DeductionRole.ZAKAT,
}

DEFAULT_DEDUCTION_COMPONENTS: tuple[dict[str, Any], ...] = (
    {
        "code": "biaya_jabatan",
        "name": "Biaya Jabatan",
        "type": DeductionType.MANDATORY,
        "calculation_type": DeductionCalculationType.AUTO,
        "is_tax_deductible": True,
        "priority": 0,
        "notes": "Dihitung otomatis: 5% dari bruto, maksimal 500.000/bulan atau 6.000.000/tahun.",
    },
    {
        "code": "iuran_pensiun",
        "name": "Iuran Pensiun",
        "type": DeductionType.MANDATORY,
        "calculation_type": DeductionCalculationType.MANUAL,
        "is_tax_deductible": True,
        "priority": 1,
        "notes": "Iuran pensiun pegawai. Maksimal 5% dari bruto atau 200.000/bulan.",
    },
    {
        "code": "zakat",
        "name": "Zakat",
        "type": DeductionType.MANDATORY,
        "calculation_type": DeductionCalculationType.MANUAL,
        "is_tax_deductible": True,
        "priority": 2,
        "notes": "Zakat yang dibayarkan melalui lembaga amil zakat resmi.",
    },
)


def assign_deduction_role(
    code: str,
    is_tax_deductible: bool,
    explicit: DeductionRole | None = None,
) -> DeductionRole:
    """Tax role of a deduction component, fixed when the catalog entry is saved.

    An explicit role wins. Otherwise the exact statutory codes map to their
    role and everything else is OTHER_TAX_DEDUCTIBLE or NONE by its flag.
    Names are never consulted.
    """
    if explicit is not None:
        return explicit
    statutory = STATUTORY_ROLE_CODES.get(code.strip().lower())
    if statutory is not None:
        return statutory
    return DeductionRole.OTHER_TAX_DEDUCTIBLE if is_tax_deductible else DeductionRole.NONE


class MasterDataService:
    def __init__(self, db: Session):
        self.db = db

    # ----------------------------------------------------------------- helpers

    def _get_scoped(self, model: type[ModelT], tenant_id: int, obj_id: Any, label: str) -> ModelT:
        obj = (
            self.db.query(model)
            .filter(model.id == obj_id, model.tenant_id == tenant_id)  # type: ignore[attr-defined]
            .one_or_none()
        )
        if obj is None:
            raise ResourceNotFoundError(label, obj_id)
        return obj

    def _ensure_unique_code(self, model: type[Base], tenant_id: int, code: str, label: str) -> None:
        exists = (
            self.db.query(model)
            .filter(model.tenant_id == tenant_id, model.code == code)  # type: ignore[attr-defined]
            .first()
        )
        if exists:
            raise DuplicateResourceError(label, "code", code)

    def _apply(self, obj: Base, changes: dict[str, Any]) -> None:
        for key, value in changes.items():
            setattr(obj, key, value)

    def _save(self, obj: ModelT) -> ModelT:
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    # ------------------------------------------------------------------ persons

    def list_persons(
        self,
        tenant_id: int,
        search: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[Person], int]:
        query = self.db.query(Person).filter(Person.tenant_id == tenant_id)
        if search:
            term = f"%{search}%"
            query = query.filter(or_(Person.full_name.ilike(term), Person.nik.ilike(term)))
        total = query.count()
        offset = (page - 1) * page_size
        return query.order_by(Person.full_name).offset(offset).limit(page_size).all(), total

    def create_person(self, tenant_id: int, payload: schemas.PersonCreate) -> Person:
        person = self._save(Person(tenant_id=tenant_id, **payload.model_dump()))
        logger.info("Created person %s in tenant %s", person.id, tenant_id)
        return person

    def get_person(self, tenant_id: int, person_id: str) -> Person:
        return self._get_scoped(Person, tenant_id, person_id, "Person")

    def update_person(self, tenant_id: int, person_id: str, payload: schemas.PersonUpdate) -> Person:
        person = self.get_person(tenant_id, person_id)
        self._apply(person, payload.model_dump(exclude_unset=True))
        return self._save(person)

    # ---------------------------------------------------------------- org units

    def list_org_units(self, tenant_id: int) -> list[OrgUnit]:
        return self.db.query(OrgUnit).filter(OrgUnit.tenant_id == tenant_id).order_by(OrgUnit.code).all()

    def org_unit_tree(self, tenant_id: int) -> list[dict[str, Any]]:
        """Nested org units, roots first, children ordered by code."""
        units = self.list_org_units(tenant_id)
        nodes = {
            unit.id: {
                "id": unit.id,
                "code": unit.code,
                "name": unit.name,
                "type": unit.type,
                "parent_id": unit.parent_id,
                "children": [],
            }
            for unit in units
        }
        roots: list[dict[str, Any]] = []
        for unit in units:
            node = nodes[unit.id]
            parent = nodes.get(unit.parent_id) if unit.parent_id else None
            if parent is None:
                roots.append(node)
            else:
                parent["children"].append(node)
        return roots

    def create_org_unit(self, tenant_id: int, payload: schemas.OrgUnitCreate) -> OrgUnit:
        self._ensure_unique_code(OrgUnit, tenant_id, payload.code, "Org unit")
        if payload.parent_id is not None:
            self.get_org_unit(tenant_id, payload.parent_id)
        return self._save(OrgUnit(tenant_id=tenant_id, **payload.model_dump()))

    def get_org_unit(self, tenant_id: int, org_unit_id: int) -> OrgUnit:
        return self._get_scoped(OrgUnit, tenant_id, org_unit_id, "Org unit")

    def update_org_unit(self, tenant_id: int, org_unit_id: int, payload: schemas.OrgUnitUpdate) -> OrgUnit:
        unit = self.get_org_unit(tenant_id, org_unit_id)
        changes = payload.model_dump(exclude_unset=True)
        parent_id = changes.get("parent_id")
        if parent_id is not None:
            self._check_parent(tenant_id, unit, parent_id)
        self._apply(unit, changes)
        return self._save(unit)

    def _check_parent(self, tenant_id: int, unit: OrgUnit, parent_id: int) -> None:
        parent: OrgUnit | None = self.get_org_unit(tenant_id, parent_id)
        while parent is not None:
            if parent.id == unit.id:
                raise InvalidHierarchyError(unit.id, parent_id)
            parent = parent.parent

    # -------------------------------------------------------------- employments

    def list_employments(
        self,
        tenant_id: int,
        person_id: str | None = None,
        org_unit_id: int | None = None,
    ) -> list[Employment]:
        query = self.db.query(Employment).filter(Employment.tenant_id == tenant_id)
        if person_id:
            query = query.filter(Employment.person_id == person_id)
        if org_unit_id:
            query = query.filter(Employment.org_unit_id == org_unit_id)
        return query.order_by(Employment.id).all()

    def create_employment(self, tenant_id: int, payload: schemas.EmploymentCreate) -> Employment:
        self.get_person(tenant_id, payload.person_id)
        if payload.org_unit_id is not None:
            self.get_org_unit(tenant_id, payload.org_unit_id)
        return self._save(Employment(tenant_id=tenant_id, **payload.model_dump()))

    def get_employment(self, tenant_id: int, employment_id: int) -> Employment:
        return self._get_scoped(Employment, tenant_id, employment_id, "Employment")

    def update_employment(
        self,
        tenant_id: int,
        employment_id: int,
        payload: schemas.EmploymentUpdate,
    ) -> Employment:
        employment = self.get_employment(tenant_id, employment_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("org_unit_id") is not None:
            self.get_org_unit(tenant_id, changes["org_unit_id"])
        self._apply(employment, changes)
        return self._save(employment)

    # --------------------------------------------------------- payroll subjects

    def list_payroll_subjects(self, tenant_id: int, employment_id: int | None = None) -> list[PayrollSubject]:
        query = self.db.query(PayrollSubject).filter(PayrollSubject.tenant_id == tenant_id)
        if employment_id:
            query = query.filter(PayrollSubject.employment_id == employment_id)
        return query.order_by(PayrollSubject.id).all()

    def create_payroll_subject(self, tenant_id: int, payload: schemas.PayrollSubjectCreate) -> PayrollSubject:
        self.get_employment(tenant_id, payload.employment_id)
        if payload.active:
            self._deactivate_subjects(tenant_id, payload.employment_id)
        return self._save(PayrollSubject(tenant_id=tenant_id, **payload.model_dump()))

    def get_payroll_subject(self, tenant_id: int, subject_id: int) -> PayrollSubject:
        return self._get_scoped(PayrollSubject, tenant_id, subject_id, "Payroll subject")

    def update_payroll_subject(
        self,
        tenant_id: int,
        subject_id: int,
        payload: schemas.PayrollSubjectUpdate,
    ) -> PayrollSubject:
        subject = self.get_payroll_subject(tenant_id, subject_id)
        changes = payload.model_dump(exclude_unset=True)
        if changes.get("active") and not subject.active:
            self._deactivate_subjects(tenant_id, subject.employment_id)
        self._apply(subject, changes)
        return self._save(subject)

    def _deactivate_subjects(self, tenant_id: int, employment_id: int) -> None:
        # one active tax profile per employment
        (
            self.db.query(PayrollSubject)
            .filter(
                PayrollSubject.tenant_id == tenant_id,
                PayrollSubject.employment_id == employment_id,
                PayrollSubject.active.is_(True),
            )
            .update({PayrollSubject.active: False}, synchronize_session="fetch")
        )

    # --------------------------------------------------------------- components

    def list_components(self, tenant_id: int, active_only: bool = False) -> list[Component]:
        query = self.db.query(Component).filter(Component.tenant_id == tenant_id)
        if active_only:
            query = query.filter(Component.is_active.is_(True))
        return query.order_by(Component.priority, Component.code).all()

    def create_component(self, tenant_id: int, payload: schemas.ComponentCreate) -> Component:
        self._ensure_unique_code(Component, tenant_id, payload.code, "Component")
        return self._save(Component(tenant_id=tenant_id, **payload.model_dump()))

    def get_component(self, tenant_id: int, component_id: int) -> Component:
        return self._get_scoped(Component, tenant_id, component_id, "Component")

    def update_component(self, tenant_id: int, component_id: int, payload: schemas.ComponentUpdate) -> Component:
        component = self.get_component(tenant_id, component_id)
        self._apply(component, payload.model_dump(exclude_unset=True))
        return self._save(component)

    # ----------------------------------------------------- deduction components

    def list_deduction_components(self, tenant_id: int, active_only: bool = False) -> list[DeductionComponent]:
        query = self.db.query(DeductionComponent).filter(DeductionComponent.tenant_id == tenant_id)
        if active_only:
            query = query.filter(DeductionComponent.is_active.is_(True))
        return query.order_by(DeductionComponent.priority, DeductionComponent.code).all()

    def create_deduction_component(
        self,
        tenant_id: int,
        payload: schemas.DeductionComponentCreate,
    ) -> DeductionComponent:
        self._ensure_unique_code(DeductionComponent, tenant_id, payload.code, "Deduction component")
        data = payload.model_dump(exclude={"role"})
        data["role"] = assign_deduction_role(payload.code, payload.is_tax_deductible, payload.role)
        component = self._save(DeductionComponent(tenant_id=tenant_id, **data))
        logger.info(
            "Created deduction component %s (%s) role=%s in tenant %s",
            component.id, component.code, component.role.value, tenant_id,
        )
        return component

    def get_deduction_component(self, tenant_id: int, component_id: int) -> DeductionComponent:
        return self._get_scoped(DeductionComponent, tenant_id, component_id, "Deduction component")

    def update_deduction_component(
        self,
        tenant_id: int,
        component_id: int,
        payload: schemas.DeductionComponentUpdate,
    ) -> DeductionComponent:
        component = self.get_deduction_component(tenant_id, component_id)
        changes = payload.model_dump(exclude_unset=True)
        explicit_role = changes.pop("role", None)
        self._apply(component, changes)
        if explicit_role is not None:
            component.role = explicit_role
        elif "is_tax_deductible" in changes and component.role in (
            DeductionRole.OTHER_TAX_DEDUCTIBLE,
            DeductionRole.NONE,
        ):
            # a name change alone never alters the tax role
            component.role = assign_deduction_role(component.code, component.is_tax_deductible)
        return self._save(component)

    def seed_default_deduction_components(self, tenant_id: int) -> list[DeductionComponent]:
        """Create the statutory deduction components the tenant is missing."""
        existing = {c.code for c in self.list_deduction_components(tenant_id)}
        created: list[DeductionComponent] = []
        for default in DEFAULT_DEDUCTION_COMPONENTS:
            if default["code"] in existing:
                continue
            component = DeductionComponent(
                tenant_id=tenant_id,
                role=assign_deduction_role(default["code"], default["is_tax_deductible"]),
                **default,
            )
            self.db.add(component)
            created.append(component)
        self.db.commit()
        for component in created:
            self.db.refresh(component)
        logger.info("Seeded %d deduction components for tenant %s", len(created), tenant_id)
        return created


def get_master_data_service(db: Annotated[Session, Depends(get_db)]) -> MasterDataService:
    return MasterDataService(db)
