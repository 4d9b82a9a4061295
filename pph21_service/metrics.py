"""Metrics facade.

Service code should ONLY call the semantic helpers here so the backend can
change freely. Counters live in the default Prometheus registry and are
exposed by ``/metrics``.

Metrics:
- pph21_calculations_total          Calculations served, by mode and source
- pph21_calculation_failures_total  Calculations rejected, by error code
- payroll_commits_total             Periods posted
- payroll_commit_employments        Employments committed per posted period
- logins_total                      Login attempts, by outcome
- rate_limit_exceeded_total         Requests rejected by the rate limiter
"""
from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram

logger = logging.getLogger("metrics")

_CALCULATIONS = Counter(
    "pph21_calculations_total", "PPh21 calculations served", ["mode", "source"]
)
_CALCULATION_FAILURES = Counter(
    "pph21_calculation_failures_total", "PPh21 calculations rejected", ["code"]
)
_PAYROLL_COMMITS = Counter("payroll_commits_total", "Payroll periods posted")
_COMMIT_SIZE = Histogram(
    "payroll_commit_employments",
    "Employments committed per posted period",
    buckets=(1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500),
)
_LOGINS = Counter("logins_total", "Login attempts", ["outcome"])
_RATE_LIMIT_EXCEEDED = Counter("rate_limit_exceeded_total", "Requests rejected by the rate limiter")


def calculation_served(mode: str, source: str) -> None:
    _CALCULATIONS.labels(mode=mode, source=source).inc()


def calculation_failed(code: str) -> None:
    _CALCULATION_FAILURES.labels(code=code).inc()
    logger.debug("metric pph21_calculation_failures_total{code=%s} += 1", code)


def payroll_committed(employment_count: int) -> None:
    _PAYROLL_COMMITS.inc()
    _COMMIT_SIZE.observe(employment_count)


def login_attempt(success: bool) -> None:
    _LOGINS.labels(outcome="success" if success else "failure").inc()


def rate_limit_exceeded() -> None:
    _RATE_LIMIT_EXCEEDED.inc()
