"""
API tests using FastAPI's TestClient.
"""

import pytest
from fastapi.testclient import TestClient

from churnguard import ChurnEngine, ScoringConfig
from churnguard.api import create_app


class TestCustomers:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["customers"] == 12

    def test_list_customers_camel_case(self, client):
        response = client.get("/api/customers")
        customers = response.json()

        assert response.status_code == 200
        assert len(customers) == 12
        assert "healthScore" in customers[0]
        assert "featureUsage" in customers[0]
        assert "apiCalls" in customers[0]["featureUsage"]

    def test_get_customer(self, client):
        response = client.get("/api/customers/8")

        assert response.status_code == 200
        assert response.json()["lastLogin"] is None
        assert response.json()["featureUsage"] is None

    def test_unknown_customer_404(self, client):
        response = client.get("/api/customers/999")

        assert response.status_code == 404
        assert response.json()["message"] == "Customer 999 not found"

    def test_causes(self, client):
        causes = client.get("/api/v1/causes/explain").json()["causes"]

        assert len(causes) == 5
        assert causes[0]["name"] == "Low Product Adoption"


class TestInterventions:
    def test_list(self, client):
        interventions = client.get("/api/interventions").json()

        assert len(interventions) == 3
        assert interventions[0]["assignedCsm"] == "Sarah Chen"

    def test_create(self, client):
        response = client.post("/api/interventions", json={
            "customerId": 3,
            "type": "Account Review",
            "priority": "high",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["id"] == 4
        assert body["status"] == "active"
        assert body["assignedCsm"] == "AI Assistant"

    def test_create_unknown_customer(self, client):
        response = client.post("/api/interventions", json={"customerId": 999, "type": "Account Review"})

        assert response.status_code == 404

    def test_create_invalid_priority(self, client):
        response = client.post("/api/interventions", json={
            "customerId": 3, "type": "Account Review", "priority": "urgent",
        })

        assert response.status_code == 422

    def test_complete(self, client):
        response = client.patch("/api/interventions/1", json={"status": "completed"})

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert response.json()["completedAt"] is not None

    def test_complete_twice_is_noop(self, client):
        first = client.patch("/api/interventions/1", json={"status": "completed"}).json()
        second = client.patch("/api/interventions/1", json={"status": "completed"}).json()

        assert second["completedAt"] == first["completedAt"]

    @pytest.mark.parametrize("body", [
        {"status": "active"},
        {"status": "completed", "type": "Other"},
        {},
    ])
    def test_only_completion_allowed(self, client, body):
        response = client.patch("/api/interventions/1", json=body)

        assert response.status_code == 422

    def test_complete_unknown(self, client):
        response = client.patch("/api/interventions/999", json={"status": "completed"})

        assert response.status_code == 404


class TestTrigger:
    def test_playbook_trigger(self, client):
        response = client.post("/api/v1/playbooks/trigger", json={
            "kind": "playbook", "playbookId": 4, "customerId": 9,
        })

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "triggered"
        assert body["playbookType"] == "Feature Adoption"
        assert body["aiRecommendation"]["recommendedType"]

        created = client.get("/api/interventions").json()[-1]
        assert created["id"] == body["interventionId"]
        assert created["dueDate"] is not None

    def test_unknown_playbook(self, client):
        response = client.post("/api/v1/playbooks/trigger", json={
            "kind": "playbook", "playbookId": 77, "customerId": 9,
        })

        assert response.json()["playbookType"] == "General Intervention"

    def test_intervention_trigger(self, client):
        response = client.post("/api/v1/playbooks/trigger", json={
            "kind": "intervention",
            "customerId": 2,
            "type": "Executive Check-in",
            "assignedCsm": "Sarah Chen",
            "nextAction": "Book QBR",
        })

        assert response.status_code == 200
        created = client.get("/api/interventions").json()[-1]
        assert created["assignedCsm"] == "Sarah Chen"
        assert created["nextAction"] == "Book QBR"

    @pytest.mark.parametrize("body", [
        {"playbookId": 1, "customerId": 2},
        {"kind": "email", "customerId": 2},
        {"kind": "playbook", "customerId": 2},
        {"kind": "intervention", "customerId": 2},
    ])
    def test_malformed_trigger_rejected(self, client, body):
        response = client.post("/api/v1/playbooks/trigger", json=body)

        assert response.status_code == 422

    def test_trigger_unknown_customer(self, client):
        response = client.post("/api/v1/playbooks/trigger", json={
            "kind": "playbook", "playbookId": 1, "customerId": 999,
        })

        assert response.status_code == 404


class TestPredictions:
    def test_churn_predict_percent_strings(self, client):
        response = client.post("/api/v1/churn/predict", json={"customerId": 8})
        body = response.json()

        assert response.status_code == 200
        assert body["churnProbability"] == "85.80"
        assert body["confidence"] == "80.00"
        assert body["riskLevel"] == "high"
        assert body["topCauses"][0]["factor"] == "Last Login"

    def test_churn_predict_unknown(self, client):
        response = client.post("/api/v1/churn/predict", json={"customerId": 999})

        assert response.status_code == 404

    def test_ml_predict(self, client):
        body = client.post("/api/ml/predict", json={"customerId": 3}).json()

        assert body["riskLevel"] == "medium"
        assert 0 <= body["churnProbability"] <= 100
        assert body["source"] == "model"
        assert body["topFactors"]

    def test_batch_predict(self, client):
        body = client.post("/api/ml/batch-predict", json={"customerIds": [1, 999]}).json()
        predictions = body["predictions"]

        assert predictions[0]["customerId"] == 1
        assert predictions[0]["error"] is None
        assert predictions[1]["error"] == "Customer 999 not found"

    def test_recommend(self, client):
        body = client.post("/api/ml/recommend-intervention", json={"customerId": 5}).json()

        assert body["type"] == "Executive Check-in"
        assert body["estimatedRevenueSaved"] == 1071

    def test_update_outcome(self, client):
        response = client.post("/api/ml/update-outcome", json={
            "customerId": 5, "intervention": "Executive Check-in", "success": True,
        })

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_update_outcome_missing_field(self, client):
        response = client.post("/api/ml/update-outcome", json={"customerId": 5})

        assert response.status_code == 422

    def test_retrain(self, client):
        body = client.post("/api/ml/retrain").json()

        assert body["version"] == "1.0.0"
        assert body["customers"] == 12

    def test_retrain_invalid_config(self, repository, tmp_path):
        path = tmp_path / "scoring.yaml"
        ScoringConfig().to_yaml(path)
        client = TestClient(create_app(ChurnEngine(repository, scoring_config_path=path)))
        path.write_text(
            "risk_levels:\n"
            "  - [critical, 90.0]\n"
            "  - [high, 80.0]\n"
            "  - [medium, 50.0]\n"
            "  - [low, 0.0]\n"
        )

        response = client.post("/api/ml/retrain")

        assert response.status_code == 400
        assert "risk_levels" in response.json()["message"]
        assert client.get("/api/ml/analytics").status_code == 200


class TestAnalytics:
    def test_feature_importance(self, client):
        features = client.get("/api/ml/feature-importance").json()["features"]

        assert len(features) == 5
        assert sum(f["importance"] for f in features) == pytest.approx(100, abs=0.05)
        assert {"rawImportance", "confidenceLevel", "actionability"} <= set(features[0])

    def test_feature_analysis(self, client):
        body = client.get("/api/ml/feature-analysis").json()

        assert body["summary"]["totalFeatures"] == 5
        assert "actionPlan" in body["analysis"][0]

    def test_analytics(self, client):
        body = client.get("/api/ml/analytics").json()

        assert body["totalCustomers"] == 12
        assert body["riskDistribution"] == {"high": 5, "medium": 2, "low": 5}
        assert body["interventionStats"]["totalExecutions"] == 3

    def test_dashboard_metrics(self, client):
        body = client.get("/api/dashboard/metrics").json()

        assert body["customersAtRisk"] == 6
        assert body["successRate"] == 33
        assert isinstance(body["churnRisk"], str)

    def test_segmentation(self, client):
        body = client.get("/api/dashboard/segmentation").json()
        total = sum(body[key]["count"] for key in ("highRisk", "mediumRisk", "lowRisk"))

        assert total == 12

    def test_alerts(self, client):
        alerts = client.get("/api/alerts").json()

        assert len(alerts) == 11
        assert alerts[0]["severity"] == "critical"
        assert alerts[0]["isRead"] is False

    def test_mark_alert_read(self, client):
        alert_id = client.get("/api/alerts").json()[0]["id"]

        response = client.patch(f"/api/alerts/{alert_id}/read")

        assert response.status_code == 200
        assert response.json()["isRead"] is True
        alerts = {a["id"]: a for a in client.get("/api/alerts").json()}
        assert alerts[alert_id]["isRead"] is True
        assert sum(a["isRead"] for a in alerts.values()) == 1

    def test_mark_unknown_alert_read(self, client):
        response = client.patch("/api/alerts/999/read")

        assert response.status_code == 404
        assert response.json()["message"] == "Alert 999 not found"

    def test_chart_data(self, client):
        body = client.get("/api/dashboard/chart-data").json()
        series = body["datasets"][0]["data"]
        average = float(client.get("/api/dashboard/metrics").json()["churnRisk"])

        assert len(body["labels"]) == len(series) == 6
        assert series[-1] == pytest.approx(average)
        assert all(abs(v - average) <= 2.0 + 1e-9 for v in series)
        assert client.get("/api/dashboard/chart-data").json() == body

    def test_integrations(self, client):
        integrations = client.get("/api/integrations").json()

        assert [i["status"] for i in integrations] == ["connected", "syncing", "error"]
        assert integrations[0]["name"] == "Salesforce CRM"
        assert integrations[0]["lastSyncAt"] is not None


class TestAdmin:
    def test_current_data(self, client):
        body = client.get("/api/admin/current-data").json()

        assert len(body["customers"]) == 12

    def test_upload_replaces_data(self, client):
        document = client.get("/api/admin/current-data").json()
        document["customers"] = document["customers"][:2]
        document["interventions"] = [i for i in document["interventions"] if i["customer_id"] <= 2]

        response = client.post("/api/admin/upload-data", json=document)

        assert response.status_code == 200
        assert len(client.get("/api/customers").json()) == 2

    def test_upload_invalid_data(self, client):
        response = client.post("/api/admin/upload-data", json={"customers": [{"id": 1}]})

        assert response.status_code == 400
        assert len(client.get("/api/customers").json()) == 12

    def test_upload_duplicate_intervention_ids(self, client):
        document = client.get("/api/admin/current-data").json()
        document["interventions"].append(dict(document["interventions"][0]))

        response = client.post("/api/admin/upload-data", json=document)

        assert response.status_code == 400
        assert "duplicate intervention IDs" in response.json()["message"]
        assert len(client.get("/api/interventions").json()) == 3

    def test_snapshot_reuploads(self, client):
        document = client.get("/api/admin/current-data").json()

        response = client.post("/api/admin/upload-data", json=document)

        assert response.status_code == 200
        assert len(client.get("/api/interventions").json()) == 3
        assert len(client.get("/api/integrations").json()) == 3

    def test_reload(self, client):
        client.patch("/api/interventions/1", json={"status": "completed"})
        client.post("/api/admin/reload-data")

        assert client.get("/api/interventions").json()[0]["status"] == "active"
