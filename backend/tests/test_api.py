"""API tests for the FastAPI application."""

import base64

import pytest
from fastapi.testclient import TestClient

from app import main
from app.exceptions import UpstreamFailure
from app.models.analysis import FaceValidation, SkinAnalysis
from app.services.lifestyle_advisor import LifestyleAdvisor
from app.services.skin_analyzer import SkinAnalyzer

from conftest import SERUM_INGREDIENTS

IMAGE = "data:image/jpeg;base64," + base64.b64encode(b"selfie").decode()


class RejectingAnalyzer(SkinAnalyzer):
    def __init__(self):
        super().__init__(api_key="")

    def validate_face(self, image):
        return FaceValidation(is_valid=False, message="No face found")


class DetectingAnalyzer(SkinAnalyzer):
    def __init__(self, detected):
        super().__init__(api_key="")
        self.detected = detected

    def analyze_skin_image(self, image):
        return SkinAnalysis(detected_conditions=self.detected, skin_type="oily")


@pytest.fixture
def client(monkeypatch, store, cache_service, catalog_service, engine, raw_product):
    """TestClient wired to the fake store and AI services without a key."""
    store.products = [
        raw_product(1, name="Niacinamide Serum", price="2400", ingredients=SERUM_INGREDIENTS,
                    images=[{"src": "https://cdn.example.com/1.jpg"}]),
        raw_product(2, name="Rich Cream", price="900", ingredients="Coconut Oil, Dimethicone"),
    ]
    monkeypatch.setattr(main, "cache_service", cache_service)
    monkeypatch.setattr(main, "catalog_service", catalog_service)
    monkeypatch.setattr(main, "recommendation_engine", engine)
    monkeypatch.setattr(main, "skin_analyzer", SkinAnalyzer(api_key=""))
    monkeypatch.setattr(main, "lifestyle_advisor", LifestyleAdvisor(api_key=""))
    return TestClient(main.app)


def analyze_body(**overrides):
    body = {"image": IMAGE, "conditions": ["acne", "oily"], "budget": "mid"}
    body.update(overrides)
    return body


class TestAnalyzeEndpoint:
    """Tests for POST /api/analyze."""

    def test_recommends_products(self, client):
        """Should return ranked products in the response shape."""
        response = client.post("/api/analyze", json=analyze_body())

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["total_found"] == 2
        assert [p["id"] for p in data["products"]] == [1]
        product = data["products"][0]
        assert product["match_score"] == 46
        assert product["image"] == "https://cdn.example.com/1.jpg"
        assert product["ingredients"][0] == "Niacinamide"
        assert data["suggestions"] == []
        assert data["skin_analysis"]["detected_conditions"] == []

    def test_detected_conditions_join_selection(self, client, monkeypatch):
        """Should score with the union of selected and detected conditions."""
        monkeypatch.setattr(main, "skin_analyzer", DetectingAnalyzer(["oily", "freckles"]))
        response = client.post("/api/analyze", json=analyze_body(conditions=["acne"]))

        assert response.status_code == 200
        data = response.json()
        assert data["conditions"] == ["acne", "oily"]
        assert data["products"][0]["match_score"] == 46

    def test_budget_is_case_insensitive(self, client):
        response = client.post("/api/analyze", json=analyze_body(budget="MID"))
        assert response.status_code == 200

    @pytest.mark.parametrize("overrides,message", [
        ({"conditions": []}, "Please select at least one skin condition"),
        ({"conditions": ["freckles"]}, "Invalid condition(s): freckles"),
        ({"budget": "cheap"}, "Invalid budget"),
        ({"description": "hi"}, "at least 3 characters"),
        ({"image": None}, "Image is required"),
    ])
    def test_invalid_input(self, client, store, overrides, message):
        """Should reject with 400 before touching the store."""
        response = client.post("/api/analyze", json=analyze_body(**overrides))

        assert response.status_code == 400
        assert message in response.json()["error"]
        assert store.product_fetches == 0

    def test_non_face_image(self, client, monkeypatch, store):
        """Should reject an image that is not a face."""
        monkeypatch.setattr(main, "skin_analyzer", RejectingAnalyzer())
        response = client.post("/api/analyze", json=analyze_body())

        assert response.status_code == 400
        assert response.json()["error"] == main.INVALID_FACE_MESSAGE
        assert store.product_fetches == 0

    def test_store_failure(self, client, store):
        """Should answer 502 when the catalog cannot be fetched."""
        store.error = UpstreamFailure("down")
        response = client.post("/api/analyze", json=analyze_body())

        assert response.status_code == 502
        assert response.json()["error"] == "Failed to fetch products from the store"

    def test_unexpected_failure(self, client, store):
        """Should answer 500 for errors that are not store failures."""
        store.error = RuntimeError("bug")
        unsafe_client = TestClient(main.app, raise_server_exceptions=False)
        response = unsafe_client.post("/api/analyze", json=analyze_body())

        assert response.status_code == 500
        assert response.json()["error"] == "Failed to analyze and fetch products"

    def test_repeat_request_uses_caches(self, client, store, cache_service):
        """Should serve a repeat request from the catalog and score caches."""
        client.post("/api/analyze", json=analyze_body())
        client.post("/api/analyze", json=analyze_body(conditions=["oily", "acne"]))

        assert store.product_fetches == 1
        assert cache_service.scores.hits == 2


class TestOperationalEndpoints:
    """Tests for health and cache stats."""

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["configuration"]["ai_enabled"] is False

    def test_cache_stats(self, client):
        """Should list cache keys after a request."""
        client.post("/api/analyze", json=analyze_body())
        data = client.get("/api/cache/stats").json()

        assert data["caches"]["catalog"]["keys"] == ["products_budget_mid"]
        assert '[1,["acne","oily"]]' in data["caches"]["scores"]["keys"]
        assert data["catalog_fetches"] == 1
