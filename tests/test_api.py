import uuid

import pytest

API = "/api/v1"


@pytest.fixture
def patient(client):
    resp = client.post(
        f"{API}/patients",
        json={"name": "Mwila Phiri", "age": 41, "gender": "male", "residence": "Kitwe", "phone": "+260 977 123 456"},
        headers={"X-User-Id": "reception-1"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def item(client):
    resp = client.post(
        f"{API}/inventory-items",
        json={
            "name": "Paracetamol 500mg",
            "category": "medication",
            "unit": "tablet",
            "unit_cost": "0.50",
            "current_stock": 100,
            "reorder_level": 20,
            "reorder_quantity": 200,
        },
        headers={"X-User-Id": "storekeeper"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


@pytest.fixture
def treatment(client, patient, item):
    resp = client.post(
        f"{API}/patients/{patient['id']}/treatments",
        json={
            "diagnosis": "Malaria",
            "medications": [{"inventory_item_id": item["id"], "quantity": 10, "dosage": "2 tablets 3x daily"}],
            "services": [{"name": "Consultation", "cost": "50.00"}],
        },
        headers={"X-User-Id": "dr-banda"},
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestHealth:
    def test_root_and_versioned_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}
        assert client.get(f"{API}/health").json() == {"status": "ok"}


class TestPatients:
    def test_create_records_caller_and_normalizes_phone(self, patient):
        assert patient["created_by"] == "reception-1"
        assert patient["phone"] == "+260977123456"
        assert patient["total_outstanding"] == "0.00"
        assert patient["has_outstanding_balance"] is False

    def test_missing_user_header_defaults_to_system(self, client):
        resp = client.post(
            f"{API}/patients",
            json={"name": "Anon", "age": 20, "gender": "female", "residence": "Ndola"},
        )
        assert resp.status_code == 201
        assert resp.json()["created_by"] == "system"

    def test_invalid_payload_is_rejected(self, client):
        resp = client.post(
            f"{API}/patients",
            json={"name": "  ", "age": 20, "gender": "female", "residence": "Ndola"},
        )
        assert resp.status_code == 422

    def test_list_search_update_delete(self, client, patient):
        client.post(f"{API}/patients", json={"name": "Other", "age": 5, "gender": "other", "residence": "Ndola"})

        assert len(client.get(f"{API}/patients").json()) == 2
        found = client.get(f"{API}/patients", params={"search": "kitwe"}).json()
        assert [p["id"] for p in found] == [patient["id"]]

        resp = client.patch(f"{API}/patients/{patient['id']}", json={"age": 42})
        assert resp.status_code == 200
        assert resp.json()["age"] == 42
        assert resp.json()["name"] == "Mwila Phiri"

        assert client.delete(f"{API}/patients/{patient['id']}").status_code == 204
        resp = client.get(f"{API}/patients/{patient['id']}")
        assert resp.status_code == 404
        assert resp.json()["code"] == "not_found"

    def test_clearing_required_field_is_rejected(self, client, patient):
        resp = client.patch(f"{API}/patients/{patient['id']}", json={"residence": None})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_unknown_patient(self, client):
        resp = client.get(f"{API}/patients/{uuid.uuid4()}/balance")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Patient not found.", "code": "not_found"}


class TestInventory:
    def test_item_is_created_with_opening_entry(self, client, item):
        assert item["current_stock"] == 100
        assert item["unit_cost"] == "0.50"
        assert item["is_low_stock"] is False

        history = client.get(f"{API}/inventory-items/{item['id']}/transactions").json()
        assert len(history) == 1
        assert history[0]["type"] == "adjustment"
        assert history[0]["created_by"] == "storekeeper"

    def test_record_transactions(self, client, item):
        url = f"{API}/inventory-items/{item['id']}/transactions"

        resp = client.post(url, json={"type": "deduction", "quantity": 85, "reason": "Ward issue"})
        assert resp.status_code == 201
        assert resp.json()["balance"] == 15
        assert resp.json()["created_by"] == "system"

        current = client.get(f"{API}/inventory-items/{item['id']}").json()
        assert current["current_stock"] == 15
        assert current["is_low_stock"] is True
        assert [i["id"] for i in client.get(f"{API}/inventory-items/low-stock").json()] == [item["id"]]

        history = client.get(url).json()
        assert [t["balance"] for t in history] == [15, 100]

    def test_insufficient_stock_returns_conflict(self, client, item):
        resp = client.post(
            f"{API}/inventory-items/{item['id']}/transactions",
            json={"type": "deduction", "quantity": 101},
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "insufficient_stock"
        assert client.get(f"{API}/inventory-items/{item['id']}").json()["current_stock"] == 100

    def test_non_positive_quantity_returns_bad_request(self, client, item):
        resp = client.post(
            f"{API}/inventory-items/{item['id']}/transactions",
            json={"type": "addition", "quantity": 0},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_quantities_beyond_stock_columns_are_rejected(self, client, item):
        resp = client.post(
            f"{API}/inventory-items/{item['id']}/transactions",
            json={"type": "addition", "quantity": 10**20},
        )
        assert resp.status_code == 422
        assert client.get(f"{API}/inventory-items/{item['id']}").json()["current_stock"] == 100

        resp = client.post(
            f"{API}/inventory-items",
            json={"name": "Gauze", "category": "supply", "unit": "pack", "unit_cost": "1.00", "current_stock": 10**20},
        )
        assert resp.status_code == 422
        assert len(client.get(f"{API}/inventory-items").json()) == 1

    def test_stock_cannot_be_patched(self, client, item):
        resp = client.patch(f"{API}/inventory-items/{item['id']}", json={"current_stock": 5})
        assert resp.status_code == 422

        resp = client.patch(f"{API}/inventory-items/{item['id']}", json={"unit_cost": "0.65"})
        assert resp.status_code == 200
        assert resp.json()["unit_cost"] == "0.65"
        assert resp.json()["current_stock"] == 100

    def test_search_and_delete(self, client, item):
        assert len(client.get(f"{API}/inventory-items", params={"search": "parac"}).json()) == 1
        assert client.get(f"{API}/inventory-items", params={"category": "supply"}).json() == []

        assert client.delete(f"{API}/inventory-items/{item['id']}").status_code == 204
        assert client.get(f"{API}/inventory-items/{item['id']}").status_code == 404


class TestTreatmentsAndPayments:
    def test_treatment_is_priced_and_stock_deducted(self, client, treatment, item, patient):
        assert treatment["total_cost"] == "55.00"
        assert treatment["amount_paid"] == "0.00"
        assert treatment["outstanding_balance"] == "55.00"
        assert treatment["payment_status"] == "pending"
        assert treatment["patient_name"] == "Mwila Phiri"
        assert treatment["created_by"] == "dr-banda"
        assert treatment["medications"][0]["unit_cost"] == "0.50"

        assert client.get(f"{API}/inventory-items/{item['id']}").json()["current_stock"] == 90
        latest = client.get(f"{API}/inventory-items/{item['id']}/transactions").json()[0]
        assert latest["reference_type"] == "treatment"
        assert latest["reference_id"] == treatment["id"]

        listed = client.get(f"{API}/patients/{patient['id']}/treatments").json()
        assert [t["id"] for t in listed] == [treatment["id"]]
        assert client.get(f"{API}/treatments/{treatment['id']}").json()["diagnosis"] == "Malaria"

    def test_empty_treatment_is_rejected(self, client, patient):
        resp = client.post(f"{API}/patients/{patient['id']}/treatments", json={"diagnosis": "Nothing"})
        assert resp.status_code == 400

    def test_treatment_beyond_stock_is_rejected(self, client, patient, item):
        resp = client.post(
            f"{API}/patients/{patient['id']}/treatments",
            json={
                "diagnosis": "Pain",
                "medications": [{"inventory_item_id": item["id"], "quantity": 500, "dosage": "1 daily"}],
            },
        )
        assert resp.status_code == 409
        assert client.get(f"{API}/treatments").json() == []

    def test_payment_flow(self, client, treatment, patient):
        url = f"{API}/treatments/{treatment['id']}/payments"

        resp = client.post(url, json={"amount": "20.00", "method": "cash"}, headers={"X-User-Id": "cashier"})
        assert resp.status_code == 201
        body = resp.json()
        assert body["treatment"]["payment_status"] == "partial"
        assert body["treatment"]["outstanding_balance"] == "35.00"
        assert body["payment"]["created_by"] == "cashier"

        balance = client.get(f"{API}/patients/{patient['id']}/balance").json()
        assert balance["total_owed"] == "35.00"
        assert balance["has_outstanding_balance"] is True

        resp = client.post(url, json={"amount": "40.00", "method": "mobile"})
        body = resp.json()
        assert body["treatment"]["payment_status"] == "paid"
        assert body["treatment"]["amount_paid"] == "55.00"
        assert body["payment"]["amount"] == "35.00"

        resp = client.post(url, json={"amount": "1.00"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "already_paid"

        payments = client.get(f"{API}/payments", params={"patient_id": patient["id"]}).json()
        assert len(payments) == 2
        assert client.get(f"{API}/patients/{patient['id']}").json()["total_outstanding"] == "0.00"

    def test_non_positive_payment(self, client, treatment):
        resp = client.post(f"{API}/treatments/{treatment['id']}/payments", json={"amount": "0"})
        assert resp.status_code == 400
        assert resp.json()["code"] == "validation_error"

    def test_sub_cent_payment_is_rejected(self, client, treatment):
        resp = client.post(f"{API}/treatments/{treatment['id']}/payments", json={"amount": "0.005"})
        assert resp.status_code == 422
        assert client.get(f"{API}/treatments/{treatment['id']}").json()["amount_paid"] == "0.00"

    def test_payments_for_unknown_treatment(self, client):
        assert client.get(f"{API}/payments", params={"treatment_id": str(uuid.uuid4())}).status_code == 404
        resp = client.post(f"{API}/treatments/{uuid.uuid4()}/payments", json={"amount": "5.00"})
        assert resp.status_code == 404

    def test_statement_pdf(self, client, treatment, patient):
        client.post(f"{API}/treatments/{treatment['id']}/payments", json={"amount": "10.00"})

        resp = client.get(f"{API}/patients/{patient['id']}/statement.pdf")

        assert resp.status_code == 200
        assert resp.headers["content-type"] == "application/pdf"
        assert "attachment" in resp.headers["content-disposition"]
        assert resp.content.startswith(b"%PDF")


class TestDashboardAndReports:
    def test_dashboard_summary(self, client, treatment):
        summary = client.get(f"{API}/dashboard/summary").json()
        assert summary["total_patients"] == 1
        assert summary["total_treatments"] == 1
        assert summary["total_revenue"] == "55.00"
        assert summary["recent_treatments"][0]["id"] == treatment["id"]

    def test_revenue_chart(self, client, treatment):
        client.post(f"{API}/treatments/{treatment['id']}/payments", json={"amount": "30.00"})

        chart = client.get(f"{API}/dashboard/revenue-chart", params={"range": "month"}).json()
        assert len(chart["points"]) == 30
        assert chart["points"][-1]["revenue"] == "30.00"
        assert chart["points"][-1]["services"] == "50.00"

        assert client.get(f"{API}/dashboard/revenue-chart", params={"range": "decade"}).status_code == 422

    def test_reports_default_to_last_thirty_days(self, client, treatment):
        report = client.get(f"{API}/reports/financial").json()
        assert len(report["daily"]) == 30
        assert report["totals"]["treatment_count"] == 1

        assert client.get(f"{API}/reports/inventory").json()["total_items"] == 1
        assert client.get(f"{API}/reports/patients").json()["new_patients"] == 1

    def test_inverted_range_is_rejected(self, client):
        resp = client.get(
            f"{API}/reports/financial",
            params={"start_date": "2024-03-10", "end_date": "2024-03-01"},
        )
        assert resp.status_code == 400

    def test_csv_export(self, client, treatment):
        resp = client.get(
            f"{API}/reports/financial/export/csv",
            params={"start_date": "2024-03-01", "end_date": "2024-03-02"},
        )
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/csv")
        lines = resp.text.strip().splitlines()
        assert lines[0] == "Date,Revenue,Medication,Services"
        assert lines[1] == "2024-03-01,0.00,0.00,0.00"
        assert len(lines) == 3

    def test_csv_export_unknown_report(self, client):
        assert client.get(f"{API}/reports/staff/export/csv").status_code == 400
