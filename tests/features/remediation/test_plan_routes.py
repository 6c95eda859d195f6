def process(client, url, campaign_id="c1", payload=None):
    payload = payload or {
        "tests": [
            {"name": "Missing alt", "issues": [{"severity": "critical", "message": "No alt", "selector": "img"}]},
            {"name": "Heading order", "issues": [{"severity": "minor", "message": "Skipped level", "selector": "h4"}]},
        ]
    }
    response = client.post("/api/v1/scans/process", json={"url": url, "campaign_id": campaign_id, "payload": payload})
    return response.json()["data"].get("id") or response.json()["data"].get("scan_id")


class TestRemediationPlanRoutes:

    def test_plan_from_campaign(self, client):
        process(client, "https://example.com/")
        process(client, "https://example.com/about")
        process(client, "https://example.com/broken", payload={"tests": "oops"})

        response = client.post("/api/v1/remediation/plans", json={
            "campaign_id": "c1",
            "duration_years": 2,
            "start_year": 2025,
            "start_quarter": 1,
        })
        assert response.status_code == 201

        data = response.json()["data"]
        assert data["plan_id"]
        assert data["scan_count"] == 2
        plan = data["plan"]
        assert plan["start_year"] == 2025
        assert len(plan["items"]) == 2
        assert plan["items"][0]["title"] == "Missing alt"
        assert plan["items"][0]["affected_scope_count"] == 2
        assert plan["items"][0]["occurrence_count"] == 2
        assert [annual["year"] for annual in plan["annual_plans"]] == [2025, 2026, 2027]
        assert plan["unscheduled"] == []
        assert data["total_effort_hours"] >= 2

    def test_plan_from_scan_ids_reports_excluded(self, client):
        good = process(client, "https://example.com/")
        broken = process(client, "https://example.com/broken", payload={"tests": "oops"})

        response = client.post("/api/v1/remediation/plans", json={
            "scan_ids": [good, broken],
            "duration_years": 1,
            "persist": False,
        })
        data = response.json()["data"]
        assert data["plan_id"] is None
        assert data["excluded_scan_ids"] == [broken]
        assert data["scan_count"] == 1

    def test_plan_from_inline_scans(self, client):
        response = client.post("/api/v1/remediation/plans", json={
            "scans": [
                {"url": "https://example.com/", "payload": {"tests": [
                    {"name": "Missing alt", "issues": [{"severity": "critical"}, {"severity": "critical"}]},
                ]}},
            ],
            "duration_years": 1,
            "start_year": 2026,
            "start_quarter": 3,
            "with_summary": True,
            "persist": False,
        })
        assert response.status_code == 201
        plan = response.json()["data"]["plan"]
        assert (plan["items"][0]["year"], plan["items"][0]["quarter"]) == (2026, 3)
        assert plan["executive_summary"]

    def test_empty_campaign_gives_empty_plan(self, client):
        response = client.post("/api/v1/remediation/plans", json={"campaign_id": "nothing-here"})
        assert response.status_code == 201
        assert response.json()["data"]["plan"]["items"] == []

    def test_needs_a_source(self, client):
        response = client.post("/api/v1/remediation/plans", json={})
        assert response.status_code == 400
        assert response.json()["error_code"] == "missing_scan_source"

    def test_duration_is_validated(self, client):
        response = client.post("/api/v1/remediation/plans", json={"campaign_id": "c1", "duration_years": 9})
        assert response.status_code == 422
        assert response.json()["error_code"] == "validation_failed"
