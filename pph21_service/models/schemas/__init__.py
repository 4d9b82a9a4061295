"""Pydantic schemas for API requests and responses.

Sub-modules:
- auth: Login, users and tenant administration
- master_data: People, org units, employments, payroll subjects, catalogs
- payroll: Periods, earnings/deductions input, payroll results
- calculator: Standalone calculator, batch and calculation history
"""
from .auth import (
    LoginRequest,
    MembershipOut,
    UserOut,
    TokenOut,
    MeOut,
    TenantCreate,
    TenantOut,
    TenantUpdate,
    TenantUserCreate,
    TenantUserOut,
    MessageOut,
)

from .master_data import (
    PersonCreate,
    PersonUpdate,
    PersonOut,
    OrgUnitCreate,
    OrgUnitUpdate,
    OrgUnitOut,
    OrgUnitTreeOut,
    EmploymentCreate,
    EmploymentUpdate,
    EmploymentOut,
    PayrollSubjectCreate,
    PayrollSubjectUpdate,
    PayrollSubjectOut,
    ComponentCreate,
    ComponentUpdate,
    ComponentOut,
    DeductionComponentCreate,
    DeductionComponentUpdate,
    DeductionComponentOut,
)

from .payroll import (
    PeriodCreate,
    PeriodStatusUpdate,
    PeriodOut,
    EarningIn,
    EarningsUpsert,
    EarningOut,
    DeductionIn,
    DeductionsUpsert,
    DeductionOut,
    UpsertResultOut,
    CalculationOut,
    CalculationFailureOut,
    PayrollPreviewOut,
    PayrollCommitOut,
    PayrollSummaryRow,
    PayrollSummaryOut,
    SlipLineOut,
    PayslipOut,
)

from .calculator import (
    CalculatorMode,
    LineEarningIn,
    LineDeductionIn,
    CalculationInput,
    CalculatorRequest,
    BatchItemIn,
    BatchRequest,
    BatchResultOut,
    BatchOut,
    EmployeeSearchOut,
    EmployeeSearchPage,
    HistoryEntryIn,
    HistorySaveRequest,
    HistoryOut,
    HistoryPage,
    HistorySummaryRow,
    EmployeeHistoryRow,
    HistoryPeriodOut,
    EmployeeHistorySummary,
    EmployeeHistoryDetailOut,
)
