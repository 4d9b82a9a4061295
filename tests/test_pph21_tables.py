"""Tests for the statutory PPh21 tables."""
from decimal import Decimal

import pytest

from pph21_service.services.pph21.tables import (
    PTKP_CODES,
    floor_to_thousand,
    progressive_tax,
    ptkp_yearly,
    resolve_ptkp_code,
    round_money,
)


@pytest.mark.parametrize(
    "code,expected",
    [
        ("TK0", "54000000"),
        ("TK1", "58500000"),
        ("TK2", "63000000"),
        ("TK3", "67500000"),
        ("K0", "58500000"),
        ("K1", "63000000"),
        ("K2", "67500000"),
        ("K3", "72000000"),
    ],
)
def test_ptkp_yearly_values(code, expected):
    assert ptkp_yearly(code) == Decimal(expected)


def test_ptkp_codes_are_the_eight_statuses():
    assert set(PTKP_CODES) == {"TK0", "TK1", "TK2", "TK3", "K0", "K1", "K2", "K3"}


@pytest.mark.parametrize("code", ["K/1", "XX", "", None, "tk9"])
def test_unknown_ptkp_code_falls_back_to_tk0(code):
    assert resolve_ptkp_code(code) == "TK0"
    assert ptkp_yearly(code) == Decimal("54000000")


def test_ptkp_code_lookup_is_normalised():
    assert resolve_ptkp_code(" k1 ") == "K1"


@pytest.mark.parametrize(
    "pkp,expected",
    [
        ("0", "0"),
        ("-5000000", "0"),
        ("60000000", "3000000"),
        ("57600000", "2880000"),
        # 3,000,000 on the first bracket + 15% of 40,000,000
        ("100000000", "9000000"),
        # 3M + 28.5M + 62.5M + 30% of 500M
        ("1000000000", "244000000"),
        # 3M + 28.5M + 62.5M + 1,350M + 35% of 1,000M
        ("6000000000", "1794000000"),
    ],
)
def test_progressive_tax_brackets(pkp, expected):
    assert progressive_tax(Decimal(pkp)) == Decimal(expected)


def test_progressive_tax_is_continuous_at_bracket_edges():
    for edge in ("60000000", "250000000", "500000000", "5000000000"):
        at_edge = progressive_tax(Decimal(edge))
        just_above = progressive_tax(Decimal(edge) + Decimal("1"))
        assert Decimal("0") < just_above - at_edge <= Decimal("0.35")


def test_progressive_tax_is_non_decreasing():
    previous = Decimal("0")
    for step in range(0, 700_000_000, 7_000_000):
        tax = progressive_tax(Decimal(step))
        assert tax >= previous
        previous = tax


@pytest.mark.parametrize(
    "value,expected",
    [("57600999.99", "57600000"), ("999", "0"), ("1000", "1000"), ("0", "0")],
)
def test_floor_to_thousand(value, expected):
    floored = floor_to_thousand(Decimal(value))
    assert floored == Decimal(expected)
    assert floored <= Decimal(value)


def test_round_money_half_up():
    assert round_money(Decimal("1.005")) == Decimal("1.01")
    assert round_money(Decimal("240000")) == Decimal("240000.00")
