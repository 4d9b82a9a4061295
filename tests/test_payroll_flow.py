"""Payroll inputs, preview, commit and the year-to-date December reconciliation."""
from decimal import Decimal

import pytest

D = Decimal


@pytest.fixture
def payroll(client, tenant, hr, finance, catalog, make_employee):
    """Helpers to push one month of payroll through to posted."""

    class Payroll:
        def open(self, month: int, year: int = 2025) -> int:
            resp = client.post("/periods", json={"year": year, "month": month}, headers=hr)
            assert resp.status_code == 201, resp.text
            return resp.json()["id"]

        def earn(self, period_id: int, employment_id: int, amount: str, code: str = "gaji_pokok"):
            resp = client.post(
                "/earnings",
                json={
                    "period_id": period_id,
                    "earnings": [
                        {
                            "employment_id": employment_id,
                            "component_id": catalog.components[code],
                            "amount": amount,
                        }
                    ],
                },
                headers=hr,
            )
            assert resp.status_code == 200, resp.text
            return resp.json()

        def deduct(self, period_id: int, employment_id: int, amount: str, code: str):
            resp = client.post(
                "/deductions",
                json={
                    "period_id": period_id,
                    "deductions": [
                        {
                            "employment_id": employment_id,
                            "deduction_component_id": catalog.deductions[code],
                            "amount": amount,
                        }
                    ],
                },
                headers=hr,
            )
            assert resp.status_code == 200, resp.text

        def approve(self, period_id: int):
            for status, headers in (("reviewed", hr), ("approved", finance)):
                resp = client.patch(f"/periods/{period_id}/status", json={"status": status}, headers=headers)
                assert resp.status_code == 200, resp.text

        def commit(self, period_id: int):
            resp = client.post(f"/payroll/{period_id}/commit", headers=finance)
            assert resp.status_code == 200, resp.text
            return resp.json()

        def run_month(self, month: int, employment_id: int, amount: str):
            period_id = self.open(month)
            self.earn(period_id, employment_id, amount)
            self.approve(period_id)
            return self.commit(period_id)

    return Payroll()


def test_upsert_creates_then_overwrites(client, hr, catalog, payroll, make_employee):
    employment_id = make_employee()
    period_id = payroll.open(1)

    first = payroll.earn(period_id, employment_id, "9000000")
    assert (first["created"], first["updated"]) == (1, 0)
    second = payroll.earn(period_id, employment_id, "10000000")
    assert (second["created"], second["updated"]) == (0, 1)

    rows = client.get("/earnings", params={"period_id": period_id}, headers=hr).json()
    assert len(rows) == 1
    assert D(rows[0]["amount"]) == D("10000000")


def test_same_line_twice_in_one_payload(client, hr, catalog, payroll, make_employee):
    employment_id = make_employee()
    period_id = payroll.open(1)
    line = {"employment_id": employment_id, "component_id": catalog.components["gaji_pokok"]}
    resp = client.post(
        "/earnings",
        json={"period_id": period_id, "earnings": [{**line, "amount": "1"}, {**line, "amount": "2"}]},
        headers=hr,
    )
    assert resp.status_code == 200, resp.text
    assert (resp.json()["created"], resp.json()["updated"]) == (1, 1)


def test_inputs_must_reference_tenant_records(client, hr, other_tenant, payroll, make_employee):
    employment_id = make_employee()
    period_id = payroll.open(1)
    foreign = client.post(
        "/components", json={"code": "gaji", "name": "Gaji"}, headers=other_tenant.headers["hr"]
    ).json()

    resp = client.post(
        "/earnings",
        json={
            "period_id": period_id,
            "earnings": [{"employment_id": employment_id, "component_id": foreign["id"], "amount": "1"}],
        },
        headers=hr,
    )
    assert resp.status_code == 404

    resp = client.post(
        "/earnings",
        json={"period_id": period_id, "earnings": [{"employment_id": 999, "component_id": 1, "amount": "1"}]},
        headers=hr,
    )
    assert resp.status_code == 404


def test_negative_amount_rejected(client, hr, catalog, payroll, make_employee):
    employment_id = make_employee()
    period_id = payroll.open(1)
    resp = client.post(
        "/earnings",
        json={
            "period_id": period_id,
            "earnings": [
                {"employment_id": employment_id, "component_id": catalog.components["gaji_pokok"], "amount": "-1"}
            ],
        },
        headers=hr,
    )
    assert resp.status_code == 422


def test_preview_does_not_store(client, hr, payroll, make_employee):
    employment_id = make_employee()
    period_id = payroll.open(6)
    payroll.earn(period_id, employment_id, "10000000")
    payroll.earn(period_id, employment_id, "500000", code="uang_makan")

    preview = client.post(f"/payroll/{period_id}/preview", headers=hr)
    assert preview.status_code == 200, preview.text
    result = preview.json()["results"][0]
    assert result["person_name"] == "Budi Santoso"
    assert result["mode"] == "monthly"
    assert D(result["bruto"]) == D("10000000")
    assert D(result["pph21_period"]) == D("240000")

    summary = client.get(f"/payroll/{period_id}/summary", headers=hr).json()
    assert summary["employee_count"] == 0


def test_commit_requires_approved_period(client, finance, payroll, make_employee):
    employment_id = make_employee()
    period_id = payroll.open(1)
    payroll.earn(period_id, employment_id, "10000000")

    resp = client.post(f"/payroll/{period_id}/commit", headers=finance)
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "PER204"


def test_commit_is_for_approvers_only(client, hr, payroll, make_employee):
    period_id = payroll.open(1)
    payroll.approve(period_id)
    assert client.post(f"/payroll/{period_id}/commit", headers=hr).status_code == 403


def test_commit_posts_and_locks_period(client, hr, finance, payroll, make_employee):
    employment_id = make_employee()
    period_id = payroll.open(6)
    payroll.earn(period_id, employment_id, "10000000")
    payroll.deduct(period_id, employment_id, "100000", "zakat")

    slip = client.get(f"/payroll/{period_id}/slip/{employment_id}", headers=hr).json()
    assert slip["calculation"] is None

    payroll.approve(period_id)
    committed = payroll.commit(period_id)
    assert committed["period"]["status"] == "posted"
    assert committed["failed"] == []
    row = committed["committed"][0]
    assert D(row["zakat"]) == D("100000")
    assert D(row["neto"]) == D("9200000")

    summary = client.get(f"/payroll/{period_id}/summary", headers=hr).json()
    assert summary["employee_count"] == 1
    assert D(summary["total_pph21"]) == D(row["pph21_period"])

    slip = client.get(f"/payroll/{period_id}/slip/{employment_id}", headers=hr).json()
    assert slip["person_name"] == "Budi Santoso"
    assert [line["code"] for line in slip["earnings"]] == ["gaji_pokok"]
    assert slip["deductions"][0]["role"] == "zakat"
    assert D(slip["calculation"]["pph21_period"]) == D(row["pph21_period"])

    again = client.post(f"/payroll/{period_id}/commit", headers=finance)
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "PER203"

    resp = client.post(
        "/earnings",
        json={"period_id": period_id, "earnings": [{"employment_id": employment_id, "component_id": 1, "amount": "1"}]},
        headers=hr,
    )
    assert resp.status_code == 409

    resp = client.patch(f"/periods/{period_id}/status", json={"status": "reviewed"}, headers=hr)
    assert resp.status_code == 409


def test_missing_tax_profile_does_not_block_others(client, payroll, make_employee):
    with_profile = make_employee("Budi")
    without_profile = make_employee("Siti", ptkp_code=None)
    period_id = payroll.open(2)
    payroll.earn(period_id, with_profile, "10000000")
    payroll.earn(period_id, without_profile, "8000000")
    payroll.approve(period_id)

    committed = payroll.commit(period_id)
    assert [r["employment_id"] for r in committed["committed"]] == [with_profile]
    assert committed["failed"] == [
        {
            "employment_id": without_profile,
            "error": f"Employment {without_profile} has no active payroll subject",
            "code": "CAL301",
        }
    ]
    assert committed["period"]["status"] == "posted"


def test_ytd_accumulates_prior_months(client, payroll, make_employee):
    employment_id = make_employee()
    payroll.run_month(1, employment_id, "10000000")
    payroll.run_month(2, employment_id, "10000000")
    march = payroll.run_month(3, employment_id, "10000000")["committed"][0]

    assert D(march["pph21_ytd"]) == D("480000")
    assert D(march["pph21_period"]) == D("240000")


def test_ytd_ignores_other_years_and_employments(client, payroll, make_employee):
    employment_id = make_employee("Budi")
    colleague = make_employee("Siti")
    payroll.run_month(1, colleague, "20000000")
    february = payroll.run_month(2, employment_id, "10000000")["committed"][0]
    assert D(february["pph21_ytd"]) == D("0")


def test_december_settles_full_year(client, payroll, make_employee):
    employment_id = make_employee()
    for month in range(1, 12):
        payroll.run_month(month, employment_id, "10000000")

    december = payroll.run_month(12, employment_id, "10000000")["committed"][0]
    assert december["mode"] == "december"
    assert D(december["neto_annualized"]) == D("111600000")
    assert D(december["pph21_ytd"]) == D("2640000")
    assert D(december["pph21_annual"]) == D("2880000")
    assert D(december["pph21_period"]) == D("240000")
    assert D(december["over_withheld"]) == D("0")


def test_december_over_withholding_is_reported_not_refunded(client, payroll, make_employee):
    employment_id = make_employee()
    for month in range(1, 12):
        payroll.run_month(month, employment_id, "10000000")

    # no December salary: 102.3M neto for the year, tax 2,415,000 against 2,640,000 withheld
    december = payroll.run_month(12, employment_id, "0")["committed"][0]
    assert D(december["pkp"]) == D("48300000")
    assert D(december["pph21_annual"]) == D("2415000")
    assert D(december["pph21_period"]) == D("0")
    assert D(december["over_withheld"]) == D("225000")
