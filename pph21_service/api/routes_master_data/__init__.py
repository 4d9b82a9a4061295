"""
Master data API routes.

Sub-modules:
- persons: People of the tenant
- org_units: Organisation tree
- employments: Employments and their payroll subjects (tax profiles)
- components: Earning and deduction component catalogs
"""
from __future__ import annotations

from fastapi import APIRouter

from .components import router as components_router
from .employments import router as employments_router
from .org_units import router as org_units_router
from .persons import router as persons_router

router = APIRouter(tags=["master-data"])

router.include_router(persons_router)
router.include_router(org_units_router)
router.include_router(employments_router)
router.include_router(components_router)

__all__ = ["router"]
