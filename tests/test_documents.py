"""
test_documents.py — Case documents, templates and generation from templates.
"""

import re


def _doc(client, case_id, **overrides):
    body = {
        "case_id": case_id, "name": "Complaint", "document_type": "Pleading",
        "file_name": "complaint.pdf", "file_size": 2048,
    }
    body.update(overrides)
    return client.post("/documents", json=body)


def _template(client, **overrides):
    body = {"name": "Demand Letter", "document_type": "Correspondence",
            "file_name": "demand letter.docx", "file_size": 4096}
    body.update(overrides)
    return client.post("/documents/templates", json=body)


class TestCaseDocuments:
    def test_create_records_path_and_uploader(self, admin_client, make_case, firm_a):
        case = make_case()
        r = _doc(admin_client, case["id"])
        assert r.status_code == 201
        doc = r.get_json()["data"]["document"]
        assert re.fullmatch(rf"documents/{case['id']}/\d+_complaint\.pdf", doc["file_path"])
        assert doc["version"] == 1
        assert doc["uploaded_by"] == firm_a["admin_id"]
        assert doc["uploader_name"] == "Alice Anders"
        assert doc["case_title"] == case["title"]
        assert doc["file_size_label"] == "2.0 KB"

    def test_required_fields(self, admin_client):
        r = admin_client.post("/documents", json={"name": "No case"})
        assert r.status_code == 400
        details = r.get_json()["details"]
        assert {"case_id", "document_type", "file_name"} <= set(details)

    def test_unknown_case(self, admin_client):
        r = _doc(admin_client, "missing-case")
        assert r.status_code == 400
        assert "case_id" in r.get_json()["details"]

    def test_list_excludes_templates_and_filters(self, admin_client, make_case):
        case = make_case()
        other = make_case(case_number="CV-2024-002", title="Second matter")
        _doc(admin_client, case["id"])
        _doc(admin_client, other["id"], name="Motion to Dismiss", document_type="Motion")
        _template(admin_client)

        data = admin_client.get("/documents").get_json()["data"]
        assert data["total"] == 2
        assert all(not d["is_template"] for d in data["documents"])

        data = admin_client.get("/documents?document_type=Motion").get_json()["data"]
        assert [d["name"] for d in data["documents"]] == ["Motion to Dismiss"]

        data = admin_client.get(f"/documents?case_id={case['id']}").get_json()["data"]
        assert [d["name"] for d in data["documents"]] == ["Complaint"]

        data = admin_client.get("/documents?search=dismiss&document_type=all").get_json()["data"]
        assert data["total"] == 1

    def test_new_file_bumps_version(self, admin_client, make_case):
        case = make_case()
        doc = _doc(admin_client, case["id"]).get_json()["data"]["document"]

        r = admin_client.put(f"/documents/{doc['id']}", json={"description": "Filed copy"})
        same = r.get_json()["data"]["document"]
        assert same["version"] == 1
        assert same["file_path"] == doc["file_path"]

        r = admin_client.put(f"/documents/{doc['id']}", json={"file_name": "complaint v2.pdf", "file_size": 10})
        bumped = r.get_json()["data"]["document"]
        assert bumped["version"] == 2
        assert bumped["file_path"].endswith("_complaint_v2.pdf")
        assert bumped["file_size"] == 10
        assert bumped["description"] == "Filed copy"

    def test_update_rejects_empty_name(self, admin_client, make_case):
        case = make_case()
        doc = _doc(admin_client, case["id"]).get_json()["data"]["document"]
        r = admin_client.put(f"/documents/{doc['id']}", json={"name": ""})
        assert r.status_code == 400

    def test_delete(self, admin_client, make_case):
        case = make_case()
        doc = _doc(admin_client, case["id"]).get_json()["data"]["document"]
        assert admin_client.delete(f"/documents/{doc['id']}").status_code == 200
        assert admin_client.get(f"/documents/{doc['id']}").status_code == 404

    def test_other_firm_cannot_read(self, admin_client, other_client, make_case):
        case = make_case()
        doc = _doc(admin_client, case["id"]).get_json()["data"]["document"]
        assert other_client.get(f"/documents/{doc['id']}").status_code == 404
        assert other_client.delete(f"/documents/{doc['id']}").status_code == 404


class TestTemplates:
    def test_create_template(self, admin_client):
        r = _template(admin_client)
        assert r.status_code == 201
        t = r.get_json()["data"]["template"]
        assert t["is_template"] is True
        assert t["case_id"] is None
        assert re.fullmatch(r"templates/\d+_demand_letter\.docx", t["file_path"])

    def test_listed_by_name(self, admin_client):
        for name in ("Subpoena", "affidavit", "Notice of Default"):
            _template(admin_client, name=name)
        data = admin_client.get("/documents/templates").get_json()["data"]
        assert [t["name"] for t in data["templates"]] == ["Notice of Default", "Subpoena", "affidavit"]
        assert data["templates"][0]["uploader_name"] == "Alice Anders"

    def test_templates_not_visible_to_other_firm(self, admin_client, other_client):
        _template(admin_client)
        assert other_client.get("/documents/templates").get_json()["data"]["total"] == 0

    def test_generate_copies_type_and_size(self, admin_client, make_case):
        case = make_case()
        t = _template(admin_client).get_json()["data"]["template"]
        r = admin_client.post(f"/documents/templates/{t['id']}/generate", json={
            "case_id": case["id"], "name": "Demand to Opponent",
        })
        assert r.status_code == 201
        doc = r.get_json()["data"]["document"]
        assert doc["document_type"] == "Correspondence"
        assert doc["file_size"] == 4096
        assert doc["version"] == 1
        assert doc["is_template"] is False
        assert re.fullmatch(rf"documents/{case['id']}/\d+_Demand_to_Opponent\.docx", doc["file_path"])

        names = [d["name"] for d in admin_client.get(f"/documents?case_id={case['id']}").get_json()["data"]["documents"]]
        assert names == ["Demand to Opponent"]

    def test_generate_needs_case_of_firm(self, admin_client, other_client):
        t = _template(admin_client).get_json()["data"]["template"]
        r = admin_client.post(f"/documents/templates/{t['id']}/generate", json={
            "case_id": "missing", "name": "X",
        })
        assert r.status_code == 400
        r = other_client.post(f"/documents/templates/{t['id']}/generate", json={
            "case_id": "missing", "name": "X",
        })
        assert r.status_code == 404

    def test_case_document_is_not_a_template(self, admin_client, make_case):
        case = make_case()
        doc = _doc(admin_client, case["id"]).get_json()["data"]["document"]
        r = admin_client.post(f"/documents/templates/{doc['id']}/generate", json={
            "case_id": case["id"], "name": "X",
        })
        assert r.status_code == 404
