"""
test_cases.py — Case lifecycle: creation, foreclosure placeholder, status,
detail, list pagination and cascade delete.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from database import db
from models import Case, Firm, User, UserRole, Party, SecurityInterest, Document, Deadline, Financial
from utils.cases import create_case, PLACEHOLDER_INTEREST_DESCRIPTION
from utils.tenancy import tenant_scope


class TestCreate:
    @pytest.mark.parametrize("case_type", ["foreclosure", "Foreclosure", "FORECLOSURE", "ForeClosure"])
    def test_foreclosure_gets_one_placeholder_interest(self, app, make_case, firm_a, case_type):
        case = make_case(case_type=case_type, opposing_party_id=firm_a["opposing_id"])
        with app.app_context():
            interests = SecurityInterest.query.filter_by(case_id=case["id"]).all()
            assert len(interests) == 1
            si = interests[0]
            assert si.amount == 0
            assert si.type == "Mortgage"
            assert si.description == PLACEHOLDER_INTEREST_DESCRIPTION
            assert si.lender_id == firm_a["client_id"]
            assert si.borrower_id == firm_a["opposing_id"]
            assert si.firm_id == firm_a["firm_id"]

    def test_foreclosure_without_opposing_party_borrower_is_client(self, app, make_case, firm_a):
        case = make_case(case_type="foreclosure")
        with app.app_context():
            si = SecurityInterest.query.filter_by(case_id=case["id"]).one()
            assert si.borrower_id == firm_a["client_id"]

    @pytest.mark.parametrize("case_type", ["Civil Litigation", "foreclosure appeal", "Bankruptcy"])
    def test_other_types_get_no_interest(self, app, make_case, case_type):
        case = make_case(case_type=case_type)
        with app.app_context():
            assert SecurityInterest.query.filter_by(case_id=case["id"]).count() == 0

    def test_acme_law_scenario(self, app):
        with app.app_context():
            firm = Firm(name="Acme Law", email="acme@example.com", subscription_tier="basic")
            db.session.add(firm)
            db.session.flush()
            admin = User(
                firm_id=firm.id, email="admin@acme.example.com", first_name="Ada",
                last_name="Admin", password_hash="x", role=UserRole.admin,
            )
            jane = Party(firm_id=firm.id, first_name="Jane", last_name="Roe", is_client=True)
            db.session.add_all([admin, jane])
            db.session.commit()

            with tenant_scope(db.session, firm.id):
                case = create_case(firm.id, {
                    "title": "Roe Foreclosure",
                    "case_number": "FC-001",
                    "case_type": "foreclosure",
                    "status": "active",
                    "client_id": jane.id,
                }, performed_by=admin.id)

                interests = SecurityInterest.query.filter_by(case_id=case.id).all()
                assert len(interests) == 1
                assert interests[0].amount == 0
                assert interests[0].lender_id == jane.id

    def test_missing_required_fields(self, admin_client):
        r = admin_client.post("/cases", json={"title": "Only a title"})
        assert r.status_code == 400
        details = r.get_json()["details"]
        for field in ("case_number", "case_type", "status", "client_id"):
            assert field in details

    def test_client_must_be_marked_client(self, admin_client, firm_a):
        r = admin_client.post("/cases", json={
            "title": "T", "case_number": "N", "case_type": "Civil", "status": "active",
            "client_id": firm_a["opposing_id"],
        })
        assert r.status_code == 400
        assert "client_id" in r.get_json()["details"]

    def test_validation_failure_writes_nothing(self, app, admin_client, firm_a):
        admin_client.post("/cases", json={
            "title": "T", "case_number": "N", "case_type": "foreclosure", "status": "active",
            "client_id": firm_a["opposing_id"],
        })
        with app.app_context():
            assert Case.query.count() == 0
            assert SecurityInterest.query.count() == 0


class TestStatus:
    def test_known_status_normalized(self, make_case):
        case = make_case(status="Active")
        assert case["status"] == "active"
        assert case["status_variant"] == "success"

    def test_unknown_status_kept(self, make_case):
        case = make_case(status="On Hold")
        assert case["status"] == "On Hold"
        assert case["status_variant"] == "info"

    def test_close_stamps_and_reopen_clears_closure_date(self, admin_client, make_case):
        case = make_case()
        r = admin_client.post(f"/cases/{case['id']}/status", json={"status": "closed"})
        assert r.status_code == 200
        assert r.get_json()["data"]["closure_date"] == date.today().isoformat()

        r = admin_client.post(f"/cases/{case['id']}/status", json={"status": "pending"})
        assert r.get_json()["data"]["status"] == "pending"
        assert r.get_json()["data"]["closure_date"] is None

    def test_close_with_explicit_date(self, admin_client, make_case):
        case = make_case()
        r = admin_client.post(f"/cases/{case['id']}/status",
                              json={"status": "Closed", "closure_date": "2024-03-01"})
        data = r.get_json()["data"]
        assert data["status"] == "closed"
        assert data["closure_date"] == "2024-03-01"

    def test_update_is_partial(self, admin_client, make_case):
        case = make_case(description="original")
        r = admin_client.put(f"/cases/{case['id']}", json={"title": "Renamed"})
        assert r.status_code == 200
        updated = r.get_json()["data"]["case"]
        assert updated["title"] == "Renamed"
        assert updated["description"] == "original"
        assert updated["case_number"] == case["case_number"]


class TestDetail:
    def test_detail_resolves_names(self, admin_client, make_case, firm_a):
        case = make_case(case_type="Foreclosure", opposing_party_id=firm_a["opposing_id"],
                         assigned_to=firm_a["admin_id"])
        r = admin_client.get(f"/cases/{case['id']}")
        assert r.status_code == 200
        data = r.get_json()["data"]
        assert data["case"]["client_name"] == "Acme Holdings"
        assert data["case"]["assignee_name"] == "Alice Anders"
        assert data["opposing_party"]["display_name"] == "Oscar Opponent"
        [si] = data["security_interests"]
        assert si["lender_name"] == "Acme Holdings"
        assert si["borrower_name"] == "Oscar Opponent"

    def test_non_foreclosure_detail_has_no_interests(self, app, admin_client, make_case, firm_a):
        case = make_case(case_type="Civil")
        with app.app_context():
            db.session.add(SecurityInterest(
                firm_id=firm_a["firm_id"], case_id=case["id"], type="Lien", description="stray",
                lender_id=firm_a["client_id"], borrower_id=firm_a["opposing_id"], amount=10,
            ))
            db.session.commit()
        data = admin_client.get(f"/cases/{case['id']}").get_json()["data"]
        assert data["security_interests"] == []

    def test_detail_orders_children(self, admin_client, make_case):
        case = make_case()
        base = f"/cases/{case['id']}"
        admin_client.post(f"{base}/deadlines", json={"title": "Later", "due_date": "2030-05-01T10:00:00Z"})
        admin_client.post(f"{base}/deadlines", json={"title": "Sooner", "due_date": "2030-01-01T10:00:00Z"})
        admin_client.post(f"{base}/financials", json={
            "transaction_type": "Fee", "amount": "250.00", "transaction_date": "2024-01-01"})
        admin_client.post(f"{base}/financials", json={
            "transaction_type": "Payment", "amount": "-100.00", "transaction_date": "2024-02-01"})

        data = admin_client.get(base).get_json()["data"]
        assert [d["title"] for d in data["deadlines"]] == ["Sooner", "Later"]
        assert [f["transaction_type"] for f in data["financials"]] == ["Payment", "Fee"]
        assert data["balance"] == pytest.approx(150.0)

    def test_missing_case_json_404(self, admin_client):
        r = admin_client.get("/cases/does-not-exist")
        assert r.status_code == 404
        assert r.get_json()["success"] is False


class TestListPagination:
    def _seed(self, app, firm, n, **extra):
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        with app.app_context():
            for i in range(n):
                db.session.add(Case(
                    firm_id=firm["firm_id"], case_number=f"C-{i:03d}", title=f"Matter {i:03d}",
                    case_type=extra.get("case_type", "Civil"), status=extra.get("status", "active"),
                    client_id=firm["client_id"], created_at=base + timedelta(minutes=i),
                ))
            db.session.commit()

    def test_first_page_is_ten_newest(self, app, admin_client, firm_a):
        self._seed(app, firm_a, 23)
        data = admin_client.get("/cases?page=1").get_json()["data"]
        assert len(data["cases"]) == 10
        assert [c["case_number"] for c in data["cases"]] == [f"C-{i:03d}" for i in range(22, 12, -1)]
        assert data["total"] == 23
        assert data["pages"] == 3
        assert (data["from"], data["to"]) == (1, 10)

    def test_last_page_and_beyond(self, app, admin_client, firm_a):
        self._seed(app, firm_a, 23)
        last = admin_client.get("/cases?page=3").get_json()["data"]
        assert len(last["cases"]) == 3
        assert (last["from"], last["to"]) == (21, 23)
        beyond = admin_client.get("/cases?page=4").get_json()["data"]
        assert beyond["cases"] == []
        assert beyond["total"] == 23

    def test_total_is_true_count_not_pages_times_size(self, app, admin_client, firm_a):
        self._seed(app, firm_a, 11)
        data = admin_client.get("/cases").get_json()["data"]
        assert data["total"] == 11
        assert data["pages"] == 2

    def test_page_below_one_is_first_page(self, app, admin_client, firm_a):
        self._seed(app, firm_a, 12)
        data = admin_client.get("/cases?page=0").get_json()["data"]
        assert data["page"] == 1
        assert len(data["cases"]) == 10

    def test_search_and_filters(self, app, admin_client, firm_a):
        self._seed(app, firm_a, 3)
        self._seed(app, firm_a, 1, case_type="Foreclosure", status="closed")
        assert admin_client.get("/cases?search=matter 001").get_json()["data"]["total"] == 1
        assert admin_client.get("/cases?search=c-00").get_json()["data"]["total"] == 4
        assert admin_client.get("/cases?status=closed").get_json()["data"]["total"] == 1
        assert admin_client.get("/cases?case_type=foreclosure").get_json()["data"]["total"] == 1
        assert admin_client.get("/cases?status=all").get_json()["data"]["total"] == 4

    def test_huge_page_number_is_empty_page(self, app, admin_client, firm_a):
        self._seed(app, firm_a, 3)
        r = admin_client.get(f"/cases?page={10 ** 20}")
        assert r.status_code == 200
        data = r.get_json()["data"]
        assert data["cases"] == []
        assert data["total"] == 3

    def test_open_status_filter_ignores_case(self, app, admin_client, firm_a):
        self._seed(app, firm_a, 2)
        self._seed(app, firm_a, 1, status="On Hold")
        assert admin_client.get("/cases?status=on hold").get_json()["data"]["total"] == 1
        assert admin_client.get("/cases?status=ACTIVE").get_json()["data"]["total"] == 2

    def test_search_wildcards_are_literal(self, app, admin_client, firm_a):
        self._seed(app, firm_a, 3)
        assert admin_client.get("/cases?search=%25").get_json()["data"]["total"] == 0
        assert admin_client.get("/cases?search=C_0").get_json()["data"]["total"] == 0
        assert admin_client.get("/cases?search=C-0").get_json()["data"]["total"] == 3

    def test_rows_carry_client_names_in_order(self, app, admin_client, firm_a):
        with app.app_context():
            other = Party(firm_id=firm_a["firm_id"], first_name="Zed", last_name="Client", is_client=True)
            db.session.add(other)
            db.session.flush()
            base = datetime(2024, 1, 1, tzinfo=timezone.utc)
            for i, client_id in enumerate([firm_a["client_id"], other.id, firm_a["client_id"]]):
                db.session.add(Case(
                    firm_id=firm_a["firm_id"], case_number=f"N-{i}", title=f"T{i}",
                    case_type="Civil", status="active", client_id=client_id,
                    created_at=base + timedelta(days=i),
                ))
            db.session.commit()
        rows = admin_client.get("/cases").get_json()["data"]["cases"]
        assert [r["client_name"] for r in rows] == ["Acme Holdings", "Zed Client", "Acme Holdings"]


class TestCascadeDelete:
    def test_delete_removes_case_and_all_children(self, app, admin_client, make_case, firm_a):
        case = make_case(case_type="foreclosure", case_number="FC-9")
        keep = make_case(case_type="foreclosure", case_number="FC-10")
        for target in (case, keep):
            base = f"/cases/{target['id']}"
            assert admin_client.post(f"{base}/deadlines", json={
                "title": "Answer due", "due_date": "2030-01-01T00:00:00Z"}).status_code == 201
            assert admin_client.post(f"{base}/financials", json={
                "transaction_type": "Fee", "amount": 100, "transaction_date": "2024-01-01"}).status_code == 201
            assert admin_client.post("/documents", json={
                "case_id": target["id"], "name": "Complaint", "document_type": "Pleading",
                "file_name": "complaint.pdf", "file_size": 1024}).status_code == 201

        r = admin_client.delete(f"/cases/{case['id']}")
        assert r.status_code == 200
        removed = r.get_json()["data"]["removed"]
        assert removed == {"security_interests": 1, "documents": 1, "deadlines": 1, "financials": 1}

        with app.app_context():
            assert db.session.get(Case, case["id"]) is None
            for model in (SecurityInterest, Document, Deadline, Financial):
                assert model.query.filter_by(case_id=case["id"]).count() == 0
                assert model.query.filter_by(case_id=keep["id"]).count() == 1

        assert admin_client.get(f"/cases/{case['id']}").status_code == 404

    def test_delete_unknown_case(self, admin_client):
        assert admin_client.delete("/cases/nope").status_code == 404
