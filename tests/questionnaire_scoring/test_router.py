"""
Tests for the scoring REST endpoints.

The router is mounted on a bare FastAPI app with the service
dependency overridden by an in-memory service.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from questionnaire_scoring.router import get_scoring_service, router


@pytest.fixture
def client(service):
    app = FastAPI()
    app.include_router(router)
    app.dependency_overrides[get_scoring_service] = lambda: service
    return TestClient(app)


@pytest.fixture
def created(client, gad7_data):
    response = client.post("/scoring/configs", json=gad7_data, params={"created_by": "clinician-1"})
    assert response.status_code == 201
    return response.json()


# =============================================================
# TEST: Configuration Endpoints
# =============================================================

class TestConfigurationEndpoints:

    def test_create_and_get(self, client, created):
        assert created["created_by"] == "clinician-1"
        assert len(created["rules"]) == 4

        response = client.get(f"/scoring/configs/{created['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "GAD-7 Standard Scoring"

    def test_list(self, client, created):
        response = client.get("/scoring/configs", params={"questionnaire_id": 1})
        assert [c["id"] for c in response.json()] == [created["id"]]

    def test_create_rejects_bad_payload(self, client):
        response = client.post("/scoring/configs", json={"name": "Missing fields"})
        assert response.status_code == 422

    def test_get_missing(self, client):
        assert client.get("/scoring/configs/config_missing").status_code == 404

    def test_patch(self, client, created):
        response = client.patch(f"/scoring/configs/{created['id']}", json={"name": "Renamed"})
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"
        assert response.json()["rules"] == created["rules"]

    def test_delete(self, client, created):
        response = client.delete(f"/scoring/configs/{created['id']}")
        assert response.json() == {"id": created["id"], "deleted": True}
        assert client.delete(f"/scoring/configs/{created['id']}").status_code == 404

    def test_validate(self, client, gad7_data):
        gad7_data["rules"] = gad7_data["rules"][:3]
        config = client.post("/scoring/configs", json=gad7_data).json()

        response = client.get(f"/scoring/configs/{config['id']}/validate")
        assert response.json() == {
            "config_id": config["id"],
            "is_valid": False,
            "errors": ["Scoring rules must cover all score ranges. Missing coverage from 15 to 21"],
        }

    def test_set_default(self, client, created):
        response = client.post(f"/scoring/configs/{created['id']}/set-default")
        assert response.status_code == 200
        assert response.json()["is_default"] is True

    def test_set_default_conflict(self, client, gad7_data):
        gad7_data["rules"] = []
        config = client.post("/scoring/configs", json=gad7_data).json()

        response = client.post(f"/scoring/configs/{config['id']}/set-default")
        assert response.status_code == 409
        assert "At least one scoring rule is required" in response.json()["detail"]["errors"]


# =============================================================
# TEST: Rule Endpoints
# =============================================================

class TestRuleEndpoints:

    def test_rule_lifecycle(self, client, created):
        base = f"/scoring/configs/{created['id']}/rules"
        rule = client.post(base, json={
            "min_score": 22, "max_score": 30, "risk_level": "critical", "label": "Extreme",
        })
        assert rule.status_code == 201
        rule_id = rule.json()["id"]

        updated = client.patch(f"{base}/{rule_id}", json={"label": "Very Extreme"})
        assert updated.json()["label"] == "Very Extreme"

        assert client.delete(f"{base}/{rule_id}").json() == {"id": rule_id, "deleted": True}
        assert client.delete(f"{base}/{rule_id}").status_code == 404
        assert client.patch(f"{base}/{rule_id}", json={"label": "x"}).status_code == 404


# =============================================================
# TEST: Calculation Endpoints
# =============================================================

class TestCalculationEndpoints:

    def _payload(self, values, store_result=True):
        return {
            "response": {"id": 7, "questionnaire_id": 1},
            "answers": [{"question_id": i + 1, "numeric_value": v} for i, v in enumerate(values)],
            "questions": [
                {"id": i + 1, "type": "likert", "options": ["0", "1", "2", "3"]} for i in range(len(values))
            ],
            "store_result": store_result,
        }

    def test_calculate_and_analytics(self, client, created):
        response = client.post(f"/scoring/configs/{created['id']}/calculate", json=self._payload([3] * 7))

        assert response.status_code == 200
        body = response.json()
        assert body["normalized_score"] == 21
        assert body["risk_level"] == "critical"
        assert body["visualization_data"]["percentage"] == 100

        analytics = client.get("/scoring/analytics", params={"questionnaire_id": 1}).json()
        assert analytics["total_scores"] == 1
        assert analytics["high_risk_count"] == 1

    def test_calculate_with_inactive_configuration(self, client, created):
        client.patch(f"/scoring/configs/{created['id']}", json={"is_active": False})
        response = client.post(f"/scoring/configs/{created['id']}/calculate", json=self._payload([1]))
        assert response.status_code == 422

    def test_calculate_with_missing_configuration(self, client):
        response = client.post("/scoring/configs/config_missing/calculate", json=self._payload([1]))
        assert response.status_code == 404
