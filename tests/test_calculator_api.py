"""Standalone calculator, batch runs and saved history."""
from decimal import Decimal

D = Decimal


def test_annual_amounts_form(client, finance):
    resp = client.post(
        "/calculator/pph21",
        json={"ptkp_code": "TK0", "has_npwp": False, "mode": "annual", "bruto": "120000000"},
        headers=finance,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["mode"] == "annual"
    assert D(body["biaya_jabatan"]) == D("6000000")
    assert D(body["iuran_pensiun"]) == D("2400000")
    assert D(body["pkp"]) == D("57600000")
    assert D(body["pph21_annual"]) == D("3456000")
    assert D(body["pph21_period"]) == D("288000")


def test_monthly_amounts_form(client, hr):
    resp = client.post(
        "/calculator/pph21",
        json={"ptkp_code": "tk0", "mode": "monthly", "month": 6, "bruto": "10000000", "zakat": ""},
        headers=hr,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["mode"] == "monthly"
    assert body["month"] == 6
    assert D(body["neto_annualized"]) == D("111600000")
    assert D(body["pph21_period"]) == D("240000")


def test_overrides_are_clamped(client, hr):
    resp = client.post(
        "/calculator/pph21",
        json={
            "ptkp_code": "K1",
            "mode": "monthly",
            "month": 1,
            "bruto": "30000000",
            "biaya_jabatan": "2000000",
            "iuran_pensiun": "150000",
            "zakat": "-50000",
        },
        headers=hr,
    )
    body = resp.json()
    assert D(body["biaya_jabatan"]) == D("500000")
    assert D(body["iuran_pensiun"]) == D("150000")
    assert D(body["zakat"]) == D("0")


def test_zero_overrides_are_not_replaced_by_computed_amounts(client, finance):
    resp = client.post(
        "/calculator/pph21",
        json={
            "ptkp_code": "TK0",
            "mode": "annual",
            "bruto": "120000000",
            "biaya_jabatan": "0",
            "iuran_pensiun": "0",
        },
        headers=finance,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert D(body["biaya_jabatan"]) == D("0")
    assert D(body["iuran_pensiun"]) == D("0")
    assert D(body["pkp"]) == D("66000000")
    assert D(body["pph21_annual"]) == D("3900000")


def test_monthly_mode_rejects_december(client, hr):
    resp = client.post(
        "/calculator/pph21",
        json={"ptkp_code": "TK0", "mode": "monthly", "month": 12, "bruto": "10000000"},
        headers=hr,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION"


def test_monthly_batch_rejects_december_once(client, hr, make_employee):
    budi = make_employee("Budi")
    resp = client.post(
        "/calculator/batch",
        json={"mode": "monthly", "month": 12, "calculations": [{"employment_id": budi, "bruto": "10000000"}]},
        headers=hr,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "VALIDATION"


def test_annual_mode_accepts_month_twelve_label(client, hr):
    resp = client.post(
        "/calculator/pph21",
        json={"ptkp_code": "TK0", "mode": "annual", "month": 12, "bruto": "120000000"},
        headers=hr,
    )
    assert resp.status_code == 200, resp.text


def test_mode_is_required(client, hr):
    resp = client.post("/calculator/pph21", json={"ptkp_code": "TK0", "bruto": "10000000"}, headers=hr)
    assert resp.status_code == 422


def test_bruto_or_lines_required(client, hr):
    resp = client.post("/calculator/pph21", json={"ptkp_code": "TK0", "mode": "annual"}, headers=hr)
    assert resp.status_code == 422


def test_unknown_ptkp_code_rejected_at_the_boundary(client, hr):
    resp = client.post(
        "/calculator/pph21", json={"ptkp_code": "K9", "mode": "annual", "bruto": "1"}, headers=hr
    )
    assert resp.status_code == 422


def test_lines_form_uses_catalog_flags(client, hr, catalog):
    resp = client.post(
        "/calculator/pph21",
        json={
            "ptkp_code": "TK0",
            "mode": "monthly",
            "month": 3,
            "earnings": [
                {"component_id": catalog.components["gaji_pokok"], "amount": "9000000"},
                {"component_id": catalog.components["tunjangan"], "amount": "1000000"},
                {"component_id": catalog.components["uang_makan"], "amount": "600000"},
            ],
            "deductions": [{"deduction_component_id": catalog.deductions["zakat"], "amount": "250000"}],
        },
        headers=hr,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert D(body["bruto"]) == D("10000000")
    assert D(body["zakat"]) == D("250000")
    assert D(body["neto"]) == D("9050000")


def test_lines_form_rejects_foreign_components(client, hr, other_tenant):
    foreign = client.post(
        "/components", json={"code": "gaji", "name": "Gaji"}, headers=other_tenant.headers["hr"]
    ).json()
    resp = client.post(
        "/calculator/pph21",
        json={"ptkp_code": "TK0", "mode": "annual", "earnings": [{"component_id": foreign["id"], "amount": "1"}]},
        headers=hr,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["code"] == "CAL300"


def test_viewer_cannot_calculate(client, viewer):
    resp = client.post(
        "/calculator/pph21", json={"ptkp_code": "TK0", "mode": "annual", "bruto": "1"}, headers=viewer
    )
    assert resp.status_code == 403


def test_batch_reports_failures_alongside_successes(client, hr, make_employee):
    budi = make_employee("Budi", ptkp_code="K1")
    siti = make_employee("Siti", ptkp_code=None)
    resp = client.post(
        "/calculator/batch",
        json={
            "mode": "monthly",
            "month": 4,
            "calculations": [
                {"employment_id": budi, "bruto": "10000000"},
                {"employment_id": siti, "bruto": "10000000"},
                {"employment_id": 999, "bruto": "10000000"},
                {"employment_id": budi, "earnings": [{"component_id": 999, "amount": "1"}]},
            ],
        },
        headers=hr,
    )
    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert (body["total"], body["success"], body["failed"]) == (4, 2, 2)
    assert body["month"] == 4

    first, second, missing, bad_lines = body["results"]
    assert first["person_name"] == "Budi"
    assert first["result"]["ptkp_code"] == "K1"
    # no tax profile falls back to TK0 with NPWP
    assert second["result"]["ptkp_code"] == "TK0"
    assert missing["code"] == "RES400"
    assert missing["result"] is None
    assert bad_lines["code"] == "CAL300"


def test_batch_defaults_to_november(client, hr, make_employee):
    budi = make_employee("Budi")
    body = client.post(
        "/calculator/batch",
        json={"mode": "monthly", "calculations": [{"employment_id": budi, "bruto": "10000000"}]},
        headers=hr,
    ).json()
    assert body["month"] == 11
    assert body["results"][0]["result"]["mode"] == "monthly"


def _history_entry(client, headers, employment_id, month, bruto="10000000"):
    calc = client.post(
        "/calculator/pph21",
        json={"ptkp_code": "TK0", "mode": "monthly", "month": month, "bruto": bruto},
        headers=headers,
    ).json()
    entry = {
        key: calc[key]
        for key in (
            "ptkp_code", "has_npwp", "bruto", "biaya_jabatan", "iuran_pensiun", "zakat",
            "neto", "ptkp_yearly", "pkp", "pph21_period", "pph21_annual", "notes",
        )
    }
    return {**entry, "employment_id": employment_id, "year": 2025, "month": month, "calculation_mode": calc["mode"]}


def test_history_save_and_list(client, hr, finance, make_employee):
    budi = make_employee("Budi")
    resp = client.post(
        "/calculator/history",
        json={"calculations": [_history_entry(client, hr, budi, 1), _history_entry(client, hr, budi, 2)]},
        headers=hr,
    )
    assert resp.status_code == 201, resp.text
    saved = resp.json()
    assert [row["person_name"] for row in saved] == ["Budi", "Budi"]

    page = client.get("/calculator/history", params={"year": 2025}, headers=hr).json()
    assert page["total"] == 2
    assert [row["month"] for row in page["items"]] == [2, 1]

    # history is per user
    assert client.get("/calculator/history", headers=finance).json()["total"] == 0

    summary = client.get("/calculator/history/summary", headers=hr).json()
    assert summary[0]["year"] == 2025
    assert summary[0]["count"] == 2
    assert D(summary[0]["total_pph21"]) == D("480000")


def test_history_rejects_december_results(client, hr, make_employee):
    budi = make_employee("Budi")
    entry = {**_history_entry(client, hr, budi, 1), "calculation_mode": "december"}
    resp = client.post("/calculator/history", json={"calculations": [entry]}, headers=hr)
    assert resp.status_code == 422


def test_history_rejects_unknown_employment(client, hr):
    entry = _history_entry(client, hr, None, 1)
    entry["employment_id"] = 12345
    resp = client.post("/calculator/history", json={"calculations": [entry]}, headers=hr)
    assert resp.status_code == 404


def test_employee_history_uses_latest_entry_per_month(client, hr, make_employee):
    budi = make_employee("Budi")
    entries = [
        _history_entry(client, hr, budi, 1),
        _history_entry(client, hr, budi, 2, bruto="8000000"),
        _history_entry(client, hr, budi, 2),
        _history_entry(client, hr, budi, 3),
    ]
    for entry in entries:
        client.post("/calculator/history", json={"calculations": [entry]}, headers=hr)

    rows = client.get("/calculator/history/employees", params={"year": 2025}, headers=hr).json()
    assert len(rows) == 1
    row = rows[0]
    assert row["calculation_count"] == 4
    assert row["status_text"] == "Dihitung sampai Maret"
    assert D(row["total_bruto_ytd"]) == D("30000000")
    assert D(row["total_pph21_ytd"]) == D("720000")

    detail = client.get(f"/calculator/history/{budi}", params={"year": 2025}, headers=hr).json()
    assert detail["person_name"] == "Budi"
    assert [p["month"] for p in detail["periods"]] == [1, 2, 3]
    assert [D(p["pph21_ytd"]) for p in detail["periods"]] == [D("240000"), D("480000"), D("720000")]
    assert D(detail["periods"][0]["neto_annualized"]) == D("111600000")
    assert detail["summary"]["calculated_months"] == [1, 2, 3]


def test_employee_search(client, hr, make_employee):
    make_employee("Budi Santoso", nik="3171000000000001")
    make_employee("Siti Aminah", ptkp_code="K2", nik="3171000000000002")

    page = client.get("/calculator/employees", params={"search": "siti"}, headers=hr).json()
    assert page["total"] == 1
    item = page["items"][0]
    assert item["person_name"] == "Siti Aminah"
    assert item["ptkp_code"] == "K2"

    everyone = client.get("/calculator/employees", params={"per_page": 1}, headers=hr).json()
    assert everyone["total"] == 2
    assert everyone["total_pages"] == 2
