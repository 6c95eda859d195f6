PAYLOAD = {
    "tests": [
        {
            "name": "Missing alt",
            "issues": [
                {"severity": "critical", "message": "No alt", "selector": f"img.i{i}", "wcagCriteria": ["1.1.1 (A)"]}
                for i in range(3)
            ],
        },
        {
            "name": "Axe-core: color-contrast",
            "issues": [{"severity": "serious", "message": "Low contrast", "selector": "p.note"}],
        },
    ]
}


class TestProcessScan:

    def test_process_and_fetch(self, client):
        response = client.post("/api/v1/scans/process", json={
            "url": "https://example.com/",
            "campaign_id": "c1",
            "payload": PAYLOAD,
            "html": '<img src="a.png">',
        })
        assert response.status_code == 200

        body = response.json()
        assert body["status"] == "success"
        data = body["data"]
        assert data["status"] == "completed"
        assert data["total_issues"] == 4
        assert data["severity_counts"] == {"critical": 3, "major": 1, "minor": 0}
        assert len(data["groups"]) == 2
        assert data["groups"][0]["error_type"] == "Missing alt"
        assert data["groups"][0]["occurrence_count"] == 3
        assert data["groups"][0]["criterion"] == "1.1"
        assert data["groups"][0]["priority_tier"] in {"P1", "P2", "P3", "P4"}
        assert data["groups"][0]["enrichment_status"] == "fallback"
        assert data["groups"][0]["criterion_title"]
        assert data["groups"][0]["topic_name"] == "Images"
        assert data["groups"][0]["auto_testable"] is True
        assert data["groups"][0]["uncategorized"] is False
        assert data["groups"][0]["priority_label"] in {"Very urgent", "Urgent", "Important", "Improvement"}
        top_scores = [g["priority_score"] for g in data["top_priorities"]]
        assert top_scores == sorted(top_scores, reverse=True)
        assert top_scores[0] == max(g["priority_score"] for g in data["groups"])
        assert sum(data["priority_statistics"].values()) == 2
        assert data["conformity_rate"] is not None

        fetched = client.get(f"/api/v1/scans/{data['id']}")
        assert fetched.status_code == 200
        fetched_groups = fetched.json()["data"]["groups"]
        assert [(g["error_type"], g["occurrence_count"]) for g in fetched_groups] == [
            (g["error_type"], g["occurrence_count"]) for g in data["groups"]
        ]
        assert fetched_groups[0]["priority_score"] == data["groups"][0]["priority_score"]

    def test_without_persist(self, client):
        response = client.post("/api/v1/scans/process", json={
            "url": "https://example.com/",
            "payload": PAYLOAD,
            "persist": False,
        })
        scan_id = response.json()["data"]["id"]
        assert client.get(f"/api/v1/scans/{scan_id}").status_code == 404

    def test_pipeline_failure_is_422_with_stage(self, client):
        response = client.post("/api/v1/scans/process", json={
            "url": "https://example.com/",
            "payload": {"tests": "not a list"},
        })
        assert response.status_code == 422

        body = response.json()
        assert body["status"] == "error"
        assert body["error_code"] == "pipeline_failed"
        assert body["data"]["stage"] == "normalize"

        saved = client.get(f"/api/v1/scans/{body['data']['scan_id']}").json()["data"]
        assert saved["status"] == "failed"
        assert saved["error_message"].startswith("normalize failed")

    def test_request_validation(self, client):
        response = client.post("/api/v1/scans/process", json={"url": "https://example.com/"})
        assert response.status_code == 422
        assert response.json()["message"] == "Validation failed"
        assert response.json()["error_code"] == "validation_failed"
        assert response.json()["data"]["errors"]

    def test_unknown_scan(self, client):
        response = client.get("/api/v1/scans/does-not-exist")
        assert response.status_code == 404
        assert response.json()["message"] == "Scan not found"
        assert response.json()["error_code"] == "not_found"


class TestCompareScans:

    def process(self, client, payload):
        response = client.post("/api/v1/scans/process", json={"url": "https://example.com/", "payload": payload})
        return response.json()["data"]["id"]

    def test_compare_with_baseline(self, client):
        baseline_id = self.process(client, PAYLOAD)
        current_id = self.process(client, {"tests": PAYLOAD["tests"][1:]})

        response = client.get(f"/api/v1/scans/{current_id}/compare/{baseline_id}")
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["baseline_id"] == baseline_id
        assert data["current_id"] == current_id
        assert data["total_difference"] == -3
        assert data["severity_differences"]["critical"] == -3
        assert data["resolved_error_types"] == ["Missing alt"]
        assert data["new_error_types"] == []
        assert data["conformity_difference"] >= 0

    def test_unknown_baseline(self, client):
        current_id = self.process(client, PAYLOAD)

        response = client.get(f"/api/v1/scans/{current_id}/compare/does-not-exist")
        assert response.status_code == 404
        assert response.json()["error_code"] == "not_found"
