import pytest
from fastapi.testclient import TestClient

from mohs.api.deps import get_db
from mohs.main import app

HEADERS = {"X-Tenant-ID": "clinic-a", "X-User-ID": "doc-1"}
CASE = {
    "patient_id": "pat-1",
    "surgeon_id": "doc-1",
    "tumor_location": "nose, left ala",
    "tumor_type": "BCC",
    "case_date": "2024-03-14",
}


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestCaseRoutes:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}

    def test_case_workflow(self, client):
        created = client.post("/mohs/cases", json=CASE, headers=HEADERS)
        assert created.status_code == 201
        case_id = created.json()["id"]
        assert created.json()["created_by"] == "doc-1"

        stage = client.post(f"/mohs/cases/{case_id}/stages", json={"stage_number": 1}, headers=HEADERS)
        assert stage.status_code == 201

        margins = client.put(
            f"/mohs/stages/{stage.json()['id']}/margins",
            json={"margins": [{"block_label": "A", "margin_status": "negative"}]},
            headers=HEADERS,
        )
        assert margins.status_code == 200
        assert margins.json()["case_status"] == "closure"

        closed = client.post(f"/mohs/cases/{case_id}/closure", json={"closure_type": "primary"}, headers=HEADERS)
        assert closed.json()["status"] == "post_op"

        snapshot = client.get(f"/mohs/cases/{case_id}", headers=HEADERS).json()
        assert len(snapshot["stages"]) == 1
        assert snapshot["stages"][0]["blocks"][0]["block_label"] == "A"

        report = client.get(f"/mohs/cases/{case_id}/report", headers=HEADERS).json()
        assert report["cpt_codes"] == ["17311"]

        text = client.get(f"/mohs/cases/{case_id}/report", params={"format": "text"}, headers=HEADERS)
        assert text.headers["content-type"].startswith("text/plain")
        assert text.text.startswith("MOHS MICROGRAPHIC SURGERY OPERATIVE REPORT")

    def test_list_and_delete(self, client):
        case_id = client.post("/mohs/cases", json=CASE, headers=HEADERS).json()["id"]
        listing = client.get("/mohs/cases", params={"status": "scheduled"}, headers=HEADERS).json()
        assert listing["total"] == 1

        assert client.delete(f"/mohs/cases/{case_id}", headers=HEADERS).status_code == 204
        assert client.get(f"/mohs/cases/{case_id}", headers=HEADERS).status_code == 404

    def test_missing_tenant_header(self, client):
        assert client.get("/mohs/cases").status_code == 400

    def test_unknown_case_is_404(self, client):
        response = client.put("/mohs/cases/999/status", json={"status": "pre_op"}, headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["details"] == {"resource": "Mohs case", "id": 999}

    def test_illegal_transition_is_400(self, client):
        case_id = client.post("/mohs/cases", json=CASE, headers=HEADERS).json()["id"]
        client.put(f"/mohs/cases/{case_id}/status", json={"status": "completed"}, headers=HEADERS)
        response = client.put(f"/mohs/cases/{case_id}/status", json={"status": "scheduled"}, headers=HEADERS)
        assert response.status_code == 400

    def test_bad_list_filter_is_400(self, client):
        assert client.get("/mohs/cases", params={"limit": 500}, headers=HEADERS).status_code == 400

    def test_map_upload(self, client):
        case_id = client.post("/mohs/cases", json=CASE, headers=HEADERS).json()["id"]
        response = client.post(f"/mohs/cases/{case_id}/maps", json={"map_svg": "<svg/>"}, headers=HEADERS)
        assert response.status_code == 201
        assert response.json()["version"] == 1


class TestBillingRoutes:
    def test_calculate(self, client):
        response = client.post(
            "/mohs/cpt/calculate",
            json={"tumor_location": "left cheek", "stage_count": 3, "total_block_count": 17},
        )
        body = response.json()
        assert body["is_complex_location"] is True
        assert body["codes"] == ["17311", "17312", "17312", "17313"]

    def test_reference(self, client):
        codes = client.get("/mohs/cpt/reference", params={"category": "mohs_excision"}).json()
        assert [row["code"] for row in codes] == ["17311", "17312", "17313", "17314", "17315"]

    def test_stats(self, client):
        response = client.get("/mohs/stats", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["total_cases"] == 0

    def test_stats_needs_both_dates(self, client):
        response = client.get("/mohs/stats", params={"start_date": "2024-01-01"}, headers=HEADERS)
        assert response.status_code == 400
