from __future__ import annotations

import time
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pph21_service.db.session import get_db

router = APIRouter(tags=["health"])

# Tables payroll cannot run without; a missing one means migrations were not applied
REQUIRED_TABLES = ("tenant", "period", "payroll_calculation")


@router.get("/healthz")
def healthz(db: Annotated[Session, Depends(get_db)]) -> dict[str, str]:
    """Database round trip."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        raise HTTPException(status_code=503, detail="Database connectivity check failed") from exc
    return {"status": "ok"}


@router.get("/live")
def live() -> dict[str, str]:
    """Process is up; touches nothing else."""
    return {"status": "alive"}


@router.get("/ready")
def ready(db: Annotated[Session, Depends(get_db)]) -> dict[str, object]:
    started = time.perf_counter()
    try:
        existing = set(inspect(db.get_bind()).get_table_names())
    except SQLAlchemyError:
        existing = None
    missing = [] if existing is None else [name for name in REQUIRED_TABLES if name not in existing]
    report = {
        "db": existing is not None,
        "schema": existing is not None and not missing,
        "missing_tables": missing,
        "latency_ms": int((time.perf_counter() - started) * 1000),
    }
    if not report["schema"]:
        raise HTTPException(status_code=503, detail=report)
    return {"status": "ready", **report}
