"""Master data schemas: people, org units, employments and catalogs."""
from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pph21_service.models.payroll_models import DeductionCalculationType, DeductionType
from pph21_service.services.pph21 import PTKP_CODES, DeductionRole


class PersonCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    nik: str | None = Field(None, max_length=32, description="National identity number")
    npwp: str | None = Field(None, max_length=32, description="Tax identification number")
    birth_date: dt.date | None = None


class PersonUpdate(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=255)
    nik: str | None = Field(None, max_length=32)
    npwp: str | None = Field(None, max_length=32)
    birth_date: dt.date | None = None


class PersonOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    full_name: str
    nik: str | None = None
    npwp: str | None = None
    birth_date: dt.date | None = None


class OrgUnitCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    type: str | None = Field(None, max_length=50)
    parent_id: int | None = None


class OrgUnitUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    type: str | None = Field(None, max_length=50)
    parent_id: int | None = None


class OrgUnitOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    type: str | None = None
    parent_id: int | None = None


class OrgUnitTreeOut(OrgUnitOut):
    children: list[OrgUnitTreeOut] = []


class EmploymentCreate(BaseModel):
    person_id: str
    org_unit_id: int | None = None
    employment_type: str = Field("permanent", max_length=30)
    start_date: dt.date
    end_date: dt.date | None = None
    primary_payroll: bool = True


class EmploymentUpdate(BaseModel):
    org_unit_id: int | None = None
    employment_type: str | None = Field(None, max_length=30)
    end_date: dt.date | None = None
    primary_payroll: bool | None = None


class EmploymentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    person_id: str
    org_unit_id: int | None = None
    employment_type: str
    start_date: dt.date
    end_date: dt.date | None = None
    primary_payroll: bool


def _check_ptkp_code(v: str) -> str:
    code = v.strip().upper()
    if code not in PTKP_CODES:
        raise ValueError(f"ptkp_code must be one of {', '.join(PTKP_CODES)}")
    return code


class PayrollSubjectCreate(BaseModel):
    employment_id: int
    ptkp_code: str = Field(..., description="PTKP status code, e.g. TK0 or K1")
    has_npwp: bool = True
    active: bool = True

    @field_validator("ptkp_code")
    @classmethod
    def validate_ptkp(cls, v: str) -> str:
        return _check_ptkp_code(v)


class PayrollSubjectUpdate(BaseModel):
    ptkp_code: str | None = None
    has_npwp: bool | None = None
    active: bool | None = None

    @field_validator("ptkp_code")
    @classmethod
    def validate_ptkp(cls, v: str | None) -> str | None:
        return None if v is None else _check_ptkp_code(v)


class PayrollSubjectOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employment_id: int
    ptkp_code: str
    has_npwp: bool
    active: bool


class ComponentCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    group: str = Field("earning", max_length=50)
    taxable: bool = True
    is_mandatory: bool = False
    priority: int = 0
    is_active: bool = True


class ComponentUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    group: str | None = Field(None, max_length=50)
    taxable: bool | None = None
    is_mandatory: bool | None = None
    priority: int | None = None
    is_active: bool | None = None


class ComponentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    group: str
    taxable: bool
    is_mandatory: bool
    priority: int
    is_active: bool


class DeductionComponentCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)
    type: DeductionType = DeductionType.CUSTOM
    calculation_type: DeductionCalculationType = DeductionCalculationType.MANUAL
    is_tax_deductible: bool = False
    role: DeductionRole | None = Field(
        None,
        description="Tax role; derived from the code and tax-deductible flag when omitted",
    )
    priority: int = 0
    is_active: bool = True
    notes: str | None = None


class DeductionComponentUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    type: DeductionType | None = None
    calculation_type: DeductionCalculationType | None = None
    is_tax_deductible: bool | None = None
    role: DeductionRole | None = None
    priority: int | None = None
    is_active: bool | None = None
    notes: str | None = None


class DeductionComponentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    type: DeductionType
    calculation_type: DeductionCalculationType
    is_tax_deductible: bool
    role: DeductionRole
    priority: int
    is_active: bool
    notes: str | None = None
