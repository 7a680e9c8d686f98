"""
test_case_records.py — Deadlines, financials and security interests of a case.
"""

from datetime import datetime, timedelta, timezone


def _iso(days):
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


class TestDeadlines:
    def test_create_defaults_and_normalizes(self, admin_client, make_case):
        case = make_case()
        r = admin_client.post(f"/cases/{case['id']}/deadlines", json={
            "title": "File answer", "due_date": _iso(3),
        })
        assert r.status_code == 201
        d = r.get_json()["data"]["deadline"]
        assert d["priority"] == "Medium"
        assert d["status"] == "Pending"
        assert d["assignee_name"] == "Unassigned"
        assert d["is_overdue"] is False

        r = admin_client.post(f"/cases/{case['id']}/deadlines", json={
            "title": "Hearing", "due_date": _iso(1), "priority": "high", "status": "pending",
        })
        d = r.get_json()["data"]["deadline"]
        assert d["priority"] == "High"
        assert d["priority_variant"] == "danger"
        assert d["status"] == "Pending"

    def test_listed_soonest_first_with_overdue_flag(self, admin_client, make_case):
        case = make_case()
        for title, days in [("Later", 10), ("Past", -2), ("Soon", 1)]:
            admin_client.post(f"/cases/{case['id']}/deadlines", json={"title": title, "due_date": _iso(days)})
        rows = admin_client.get(f"/cases/{case['id']}/deadlines").get_json()["data"]["deadlines"]
        assert [d["title"] for d in rows] == ["Past", "Soon", "Later"]
        assert [d["is_overdue"] for d in rows] == [True, False, False]

    def test_validation(self, admin_client, make_case, firm_b):
        case = make_case()
        r = admin_client.post(f"/cases/{case['id']}/deadlines", json={"title": "X", "due_date": "soon"})
        assert r.status_code == 400
        assert "due_date" in r.get_json()["details"]

        r = admin_client.post(f"/cases/{case['id']}/deadlines", json={
            "title": "X", "due_date": _iso(1), "assigned_to": firm_b["admin_id"],
        })
        assert r.status_code == 400
        assert "assigned_to" in r.get_json()["details"]

    def test_update_complete_delete(self, admin_client, make_case, firm_a):
        case = make_case()
        d = admin_client.post(f"/cases/{case['id']}/deadlines", json={
            "title": "Draft", "due_date": _iso(2),
        }).get_json()["data"]["deadline"]
        base = f"/cases/{case['id']}/deadlines/{d['id']}"

        r = admin_client.put(base, json={"assigned_to": firm_a["admin_id"], "priority": "low"})
        updated = r.get_json()["data"]["deadline"]
        assert updated["assignee_name"] == "Alice Anders"
        assert updated["priority"] == "Low"
        assert updated["title"] == "Draft"

        r = admin_client.post(f"{base}/complete")
        assert r.get_json()["data"]["deadline"]["status"] == "Completed"

        assert admin_client.delete(base).status_code == 200
        assert admin_client.get(f"/cases/{case['id']}/deadlines").get_json()["data"]["deadlines"] == []

    def test_deadline_of_other_case_not_found(self, admin_client, make_case):
        first = make_case()
        second = make_case(case_number="CV-2024-002")
        d = admin_client.post(f"/cases/{first['id']}/deadlines", json={
            "title": "Draft", "due_date": _iso(2),
        }).get_json()["data"]["deadline"]
        r = admin_client.put(f"/cases/{second['id']}/deadlines/{d['id']}", json={"title": "Moved"})
        assert r.status_code == 404


class TestFinancials:
    def test_balance_is_signed_sum(self, admin_client, make_case):
        case = make_case()
        base = f"/cases/{case['id']}/financials"
        for kind, amount, day in [("Retainer", 5000, "2025-01-01"), ("Expense", -1250.50, "2025-01-05")]:
            r = admin_client.post(base, json={
                "transaction_type": kind, "amount": amount, "transaction_date": day,
            })
            assert r.status_code == 201

        data = admin_client.get(base).get_json()["data"]
        assert data["balance"] == 3749.5
        assert [f["transaction_type"] for f in data["financials"]] == ["Expense", "Retainer"]
        assert data["financials"][0]["recorder_name"] == "Alice Anders"

    def test_validation(self, admin_client, make_case):
        case = make_case()
        r = admin_client.post(f"/cases/{case['id']}/financials", json={
            "transaction_type": "Fee", "amount": "lots", "transaction_date": "2025-13-01",
        })
        assert r.status_code == 400
        details = r.get_json()["details"]
        assert "amount" in details and "transaction_date" in details

    def test_update_and_delete(self, admin_client, make_case):
        case = make_case()
        base = f"/cases/{case['id']}/financials"
        fin = admin_client.post(base, json={
            "transaction_type": "Fee", "amount": 100, "transaction_date": "2025-02-01",
        }).get_json()["data"]["financial"]

        r = admin_client.put(f"{base}/{fin['id']}", json={"amount": 150})
        assert r.get_json()["data"]["financial"]["amount"] == 150.0
        assert admin_client.get(base).get_json()["data"]["balance"] == 150.0

        assert admin_client.delete(f"{base}/{fin['id']}").status_code == 200
        assert admin_client.get(base).get_json()["data"]["balance"] == 0.0


class TestSecurityInterests:
    def test_ordered_by_lien_position(self, admin_client, make_case, firm_a):
        case = make_case(case_type="Foreclosure")
        base = f"/cases/{case['id']}/security-interests"
        r = admin_client.post(base, json={
            "type": "Judgment Lien", "description": "Judgment", "lien_position": 3,
            "lender_id": firm_a["opposing_id"], "borrower_id": firm_a["client_id"],
        })
        assert r.status_code == 201
        created = r.get_json()["data"]["security_interest"]
        assert created["amount"] == 0.0
        assert created["lender_name"] == "Oscar Opponent"

        admin_client.post(base, json={
            "type": "HELOC", "description": "Second", "lien_position": 2, "amount": "25000.00",
            "lender_id": firm_a["opposing_id"], "borrower_id": firm_a["client_id"],
        })
        rows = admin_client.get(base).get_json()["data"]["security_interests"]
        assert [si["type"] for si in rows] == ["Mortgage", "HELOC", "Judgment Lien"]

    def test_parties_must_belong_to_firm(self, admin_client, make_case, firm_a, firm_b):
        case = make_case(case_type="Foreclosure")
        r = admin_client.post(f"/cases/{case['id']}/security-interests", json={
            "type": "Mortgage", "description": "x",
            "lender_id": firm_b["client_id"], "borrower_id": firm_a["client_id"],
        })
        assert r.status_code == 400
        assert "lender_id" in r.get_json()["details"]

    def test_negative_amount_rejected(self, admin_client, make_case, firm_a):
        case = make_case(case_type="Foreclosure")
        r = admin_client.post(f"/cases/{case['id']}/security-interests", json={
            "type": "Mortgage", "description": "x", "amount": -5,
            "lender_id": firm_a["opposing_id"], "borrower_id": firm_a["client_id"],
        })
        assert r.status_code == 400
        assert "amount" in r.get_json()["details"]

    def test_update_and_delete(self, admin_client, make_case):
        case = make_case(case_type="Foreclosure")
        base = f"/cases/{case['id']}/security-interests"
        [placeholder] = admin_client.get(base).get_json()["data"]["security_interests"]

        r = admin_client.put(f"{base}/{placeholder['id']}", json={
            "amount": 180000, "property_address": "12 Elm St",
        })
        si = r.get_json()["data"]["security_interest"]
        assert si["amount"] == 180000.0
        assert si["property_address"] == "12 Elm St"
        assert si["type"] == "Mortgage"

        assert admin_client.delete(f"{base}/{placeholder['id']}").status_code == 200
        assert admin_client.get(base).get_json()["data"]["security_interests"] == []

    def test_other_firm_case_not_found(self, make_case, other_client):
        case = make_case(case_type="Foreclosure")
        assert other_client.get(f"/cases/{case['id']}/security-interests").status_code == 404
        assert other_client.get(f"/cases/{case['id']}/financials").status_code == 404
