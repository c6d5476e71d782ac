"""
End-to-end tests for the calorie tracker endpoints.

Tests the full flow through FastAPI: session header, request bodies,
camelCase responses and the mapping of tracker errors to HTTP status codes.
Food data connectors are replaced with mocks through dependency overrides.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from api.main import app
from api.routers.calories import get_openfoodfacts_connector, get_usda_connector
from calories.connectors.base import ConnectorError, ProductNotFoundError

HEADERS = {"X-Session-ID": "test-session"}


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def add_food(client, **fields):
    body = {"name": "Oats", "calories": 150, "protein": 5, "meal": "Breakfast"}
    body.update(fields)
    response = client.post("/calories/foods", json=body, headers=HEADERS)
    assert response.status_code == 201
    return response.json()


class TestSessionHeader:
    """Every tracker endpoint needs X-Session-ID."""

    def test_missing_header(self, client):
        """Test that requests without the header get 400."""
        response = client.get("/calories/state")
        assert response.status_code == 400
        assert "X-Session-ID" in response.json()["detail"]

    def test_blank_header(self, client):
        """Test that a blank header gets 400."""
        response = client.get("/calories/state", headers={"X-Session-ID": "  "})
        assert response.status_code == 400

    def test_unsafe_header(self, client):
        """Session ids with path characters are refused, not rewritten."""
        for session_id in ("a/b", "../etc", "a b"):
            response = client.get("/calories/state", headers={"X-Session-ID": session_id})
            assert response.status_code == 400
            assert "may only contain" in response.json()["detail"]


class TestHealth:
    def test_health(self, client):
        """Test the health check payload."""
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert "uptime_seconds" in data
        assert data["db_enabled"] is False
        assert set(data["integrations"]) == {"usda_api_key", "database_url"}

    def test_root(self, client):
        """Test that the root points at the docs."""
        assert client.get("/").json()["docs"] == "/docs"


class TestDaysAndFoods:
    """Days, foods and their summaries."""

    def test_fresh_state(self, client):
        """A new session starts with one day and default goals."""
        data = client.get("/calories/state", headers=HEADERS).json()
        assert data["currentDayIndex"] == 0
        assert len(data["days"]) == 1
        assert "dateISO" in data["days"][0]
        assert data["goals"]["calories"] == 2000
        assert data["current"]["summary"]["caloriesRemaining"] == 2000

    def test_log_food_updates_summary(self, client):
        """Logging a food by amount updates servings and the day summary."""
        food = add_food(client, servingSize=40, servingUnit="g", amountValue=80, amountUnit="g")
        assert food["servings"] == 2
        assert food["calories"] == 300
        assert food["perServing"]["calories"] == 150

        summary = client.get("/calories/state", headers=HEADERS).json()["current"]["summary"]
        assert summary["totals"]["calories"] == 300
        assert summary["caloriesRemaining"] == 1700

    def test_food_validation_error(self, client):
        """Test that a blank food name gets 400."""
        response = client.post("/calories/foods", json={"name": " ", "calories": 10}, headers=HEADERS)
        assert response.status_code == 400

    def test_missing_food(self, client):
        """Test that removing an unknown food gets 404."""
        response = client.delete("/calories/foods/missing", headers=HEADERS)
        assert response.status_code == 404

    def test_remove_and_undo(self, client):
        """A removed food can be put back with the removal record."""
        food = add_food(client)
        removal = client.delete(f"/calories/foods/{food['id']}", headers=HEADERS).json()
        assert client.get("/calories/foods", headers=HEADERS).json() == []

        restored = client.post("/calories/foods/undo", json=removal, headers=HEADERS)
        assert restored.status_code == 200
        assert restored.json()["id"] == food["id"]

    def test_filter_by_meal(self, client):
        """Test filtering the food log by meal."""
        add_food(client, name="Oats", meal="Breakfast")
        add_food(client, name="Soup", meal="Dinner")
        foods = client.get("/calories/foods", params={"meal": "Dinner"}, headers=HEADERS).json()
        assert [f["food"] for f in foods] == ["Soup"]

    def test_new_day_and_delete(self, client):
        """Test adding a day and deleting it again."""
        response = client.post("/calories/days", headers=HEADERS)
        assert response.status_code == 201
        assert response.json()["index"] == 1

        state = client.delete("/calories/days/current", headers=HEADERS).json()
        assert len(state["days"]) == 1

    def test_cannot_delete_only_day(self, client):
        """The last remaining day cannot be deleted."""
        response = client.delete("/calories/days/current", headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["detail"] == "You must keep at least one day."

    def test_unknown_day(self, client):
        """Test that an out of range day gets 404."""
        assert client.get("/calories/days/5", headers=HEADERS).status_code == 404

    def test_water(self, client):
        """Test adding water to the current day."""
        view = client.post("/calories/days/current/water", json={"delta": 8}, headers=HEADERS).json()
        assert view["day"]["waterOz"] == 8
        assert view["summary"]["waterDisplay"] == 8

    def test_sessions_are_isolated(self, client):
        """Foods logged in one session are not visible in another."""
        add_food(client)
        other = client.get("/calories/foods", headers={"X-Session-ID": "someone-else"}).json()
        assert other == []


class TestGoalsAndTdee:
    def test_update_goal_accepts_camel_case_field(self, client):
        """Goal fields can be named in camelCase."""
        goals = client.put("/calories/goals", json={"field": "waterOz", "value": 80}, headers=HEADERS).json()
        assert goals["waterOz"] == 80

    def test_preset(self, client):
        """Test applying a macro preset."""
        goals = client.post("/calories/goals/preset", json={"preset": "Keto"}, headers=HEADERS).json()
        assert goals["carbs"] < goals["fat"]

    def test_prefs(self, client):
        """Test updating one preference."""
        prefs = client.patch("/calories/prefs", json={"waterUnit": "ml"}, headers=HEADERS).json()
        assert prefs["waterUnit"] == "ml"

    def test_tdee_sets_goal(self, client):
        """Test that the estimate can replace the calorie goal."""
        body = {
            "formula": "mifflin", "sex": "male", "age": 30, "height": 180,
            "weight": 80, "activity": 1.2, "set_goal": True,
        }
        result = client.post("/calories/tdee", json=body, headers=HEADERS).json()
        assert result["tdee"] == 2136
        assert result["applied"] is True
        assert result["goals"]["calories"] == 2136

    def test_tdee_missing_input(self, client):
        """A missing weight is a 422 with the form message."""
        body = {"formula": "mifflin", "sex": "male", "age": 30, "height": 180}
        response = client.post("/calories/tdee", json=body, headers=HEADERS)
        assert response.status_code == 422
        assert "Enter a valid weight." in response.text


class TestFoodData:
    """Search and barcode lookups with mocked connectors."""

    def test_search(self, client):
        """Test a first page search and the recorded history."""
        connector = Mock()
        connector.search_foods.return_value = [
            {"description": "Apple, raw", "servingSize": 182, "servingSizeUnit": "g", "foodNutrients": []}
        ]
        app.dependency_overrides[get_usda_connector] = lambda: connector

        data = client.get("/calories/search", params={"q": " apple "}, headers=HEADERS).json()
        assert data["query"] == "apple"
        assert data["pageSize"] == 5
        assert len(data["servingOptions"]) == 1
        assert data["history"] == ["apple"]
        connector.search_foods.assert_called_once_with(" apple ", page_size=5, page_number=1)

    def test_later_pages_skip_history(self, client):
        """Loading more results does not add to the history."""
        connector = Mock()
        connector.search_foods.return_value = []
        app.dependency_overrides[get_usda_connector] = lambda: connector

        data = client.get("/calories/search", params={"q": "apple", "page": 2}, headers=HEADERS).json()
        assert data["history"] == []

    def test_search_unavailable(self, client):
        """Connector failures become 502."""
        connector = Mock()
        connector.search_foods.side_effect = ConnectorError("usda returned HTTP 500")
        app.dependency_overrides[get_usda_connector] = lambda: connector

        response = client.get("/calories/search", params={"q": "apple"}, headers=HEADERS)
        assert response.status_code == 502
        assert response.json()["detail"] == "Food data service is unavailable. Please try again later."

    def test_barcode_food(self, client):
        """Test logging grams of a scanned product."""
        connector = Mock()
        connector.get_product.return_value = {"product_name": "Cola", "nutriments": {"energy-kcal_100g": 42}}
        app.dependency_overrides[get_openfoodfacts_connector] = lambda: connector

        response = client.post(
            "/calories/foods/barcode", json={"barcode": "5449000000996", "grams": 50}, headers=HEADERS
        )
        assert response.status_code == 201
        food = response.json()
        assert food["food"] == "Cola"
        assert food["calories"] == 21
        assert food["source"] == "barcode"

    def test_barcode_not_found(self, client):
        """Unknown products become 404."""
        connector = Mock()
        connector.get_product.side_effect = ProductNotFoundError("Product not found in OpenFoodFacts")
        app.dependency_overrides[get_openfoodfacts_connector] = lambda: connector

        response = client.get("/calories/barcode/123", headers=HEADERS)
        assert response.status_code == 404
        assert response.json()["detail"] == "Product not found in OpenFoodFacts"


class TestTransfer:
    def test_export_download(self, client):
        """The export is a dated JSON attachment."""
        add_food(client)
        response = client.get("/calories/export", headers=HEADERS)
        assert response.status_code == 200
        assert "attachment" in response.headers["content-disposition"]
        assert "calorie-counter-" in response.headers["content-disposition"]
        assert response.json()["version"] == 2

    def test_import(self, client):
        """Test importing an export into a new session."""
        exported = client.get("/calories/export", headers=HEADERS).json()
        response = client.post(
            "/calories/import", json={"payload": exported}, headers={"X-Session-ID": "restored"}
        )
        assert response.status_code == 200
        assert response.json()["days"] == 1

    def test_import_invalid(self, client):
        """Test that broken JSON gets 400."""
        response = client.post("/calories/import", json={"payload": "{oops"}, headers=HEADERS)
        assert response.status_code == 400


class TestMeasurements:
    def test_deltas_use_camel_case(self, client):
        """Changes between the two latest measurements come back under camelCase keys."""
        for date_iso, body_fat in (("2024-01-01", 20), ("2024-01-08", 18)):
            response = client.post(
                "/calories/measurements", json={"dateISO": date_iso, "bodyFat": body_fat}, headers=HEADERS
            )
            assert response.status_code == 201

        data = client.get("/calories/measurements", headers=HEADERS).json()
        assert [m["dateISO"] for m in data["measurements"]] == ["2024-01-08", "2024-01-01"]
        assert data["deltas"]["bodyFat"] == -2
        assert data["deltas"]["weight"] is None
        assert "body_fat" not in data["deltas"]
