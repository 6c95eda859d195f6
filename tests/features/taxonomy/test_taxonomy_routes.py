class TestTaxonomyRoutes:

    def test_list_topics(self, client):
        response = client.get("/api/v1/taxonomy/topics")
        assert response.status_code == 200

        data = response.json()["data"]
        assert data["version"] == "4.1"
        assert data["counts"]["criteria"] == 106
        assert len(data["topics"]) == 13
        assert data["topics"][0]["name"] == "Images"

    def test_get_criterion(self, client):
        response = client.get("/api/v1/taxonomy/criteria/1.1")
        assert response.status_code == 200
        assert response.json()["data"]["number"] == "1.1"

    def test_unknown_criterion(self, client):
        response = client.get("/api/v1/taxonomy/criteria/99.1")
        assert response.status_code == 404
        assert response.json()["message"] == "Criterion not found"
