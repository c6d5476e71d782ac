"""
End-to-end tests for the flashcard endpoints: decks, cards, export/import
and study sessions.
"""

import pytest
from fastapi.testclient import TestClient

from api.main import app

HEADERS = {"X-Session-ID": "test-session"}


@pytest.fixture
def client():
    return TestClient(app)


def add_card(client, deck="Default", **fields):
    body = {"front": "2 + 2", "back": "4"}
    body.update(fields)
    response = client.post(f"/study/decks/{deck}/cards", json=body, headers=HEADERS)
    assert response.status_code == 201
    return response.json()


class TestDeckEndpoints:
    def test_missing_header(self, client):
        """Test that deck routes need X-Session-ID."""
        assert client.get("/study/decks").status_code == 400

    def test_default_deck(self, client):
        """A new session lists one empty Default deck."""
        assert client.get("/study/decks", headers=HEADERS).json() == [{"name": "Default", "count": 0}]

    def test_create_and_rename(self, client):
        """Test creating a deck and renaming it."""
        response = client.post("/study/decks", json={"name": "Spanish"}, headers=HEADERS)
        assert response.status_code == 201
        assert response.json() == {"name": "Spanish", "count": 0, "cards": []}

        renamed = client.patch("/study/decks/Spanish", json={"newName": "Español"}, headers=HEADERS).json()
        assert renamed["name"] == "Español"

    def test_duplicate_deck_name(self, client):
        """Test that a duplicate name gets 400."""
        client.post("/study/decks", json={"name": "Spanish"}, headers=HEADERS)
        response = client.post("/study/decks", json={"name": "Spanish"}, headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["detail"] == "A deck with that name already exists"

    def test_slash_in_deck_name(self, client):
        """Deck names must fit in one path segment."""
        response = client.post("/study/decks", json={"name": "Math/Sci"}, headers=HEADERS)
        assert response.status_code == 400
        assert "cannot contain" in response.json()["detail"]

    def test_missing_deck(self, client):
        """Test that an unknown deck gets 404."""
        assert client.get("/study/decks/Nope", headers=HEADERS).status_code == 404

    def test_delete_last_deck(self, client):
        """Deleting the last deck selects a fresh Default."""
        response = client.delete("/study/decks/Default", headers=HEADERS)
        assert response.json() == {"selected": "Default"}

    def test_deck_names_with_spaces(self, client):
        """Deck names with spaces work in the path."""
        client.post("/study/decks", json={"name": "World History"}, headers=HEADERS)
        add_card(client, deck="World History", front="1066", back="Hastings")
        assert client.get("/study/decks/World History", headers=HEADERS).json()["count"] == 1


class TestCardEndpoints:
    def test_add_multiple_choice(self, client):
        """Test adding a multiple choice card."""
        card = add_card(client, front="Capital of Italy", back="Rome", multipleChoice=True, choices=["Paris", "Rome"])
        assert card["type"] == "multiple"
        assert card["correctIndex"] == 1

    def test_invalid_card(self, client):
        """Test that a card without a back gets 400."""
        response = client.post("/study/decks/Default/cards", json={"front": "q", "back": ""}, headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["detail"] == "Front and back are required!"

    def test_edit_and_delete(self, client):
        """Test editing a card, then deleting it twice."""
        card = add_card(client)
        edited = client.put(
            f"/study/decks/Default/cards/{card['id']}", json={"front": "3 + 3", "back": "6"}, headers=HEADERS
        ).json()
        assert edited["id"] == card["id"]
        assert edited["front"] == "3 + 3"

        response = client.delete(f"/study/decks/Default/cards/{card['id']}", headers=HEADERS)
        assert response.status_code == 204
        assert client.delete(f"/study/decks/Default/cards/{card['id']}", headers=HEADERS).status_code == 404

    def test_search(self, client):
        """The count is the whole deck, the cards are the matches."""
        add_card(client, front="Mitosis", back="cell division")
        add_card(client, front="Osmosis", back="water movement")
        deck = client.get("/study/decks/Default", params={"q": "WATER"}, headers=HEADERS).json()
        assert deck["count"] == 2
        assert [c["front"] for c in deck["cards"]] == ["Osmosis"]

    def test_export_and_import(self, client):
        """Test exporting a deck and importing it under a new name."""
        add_card(client)
        exported = client.get("/study/decks/Default/export", headers=HEADERS)
        assert exported.headers["content-type"].startswith("application/json")

        response = client.post(
            "/study/decks/import", json={"name": "Copy", "payload": exported.text}, headers=HEADERS
        )
        assert response.status_code == 201
        assert response.json()["count"] == 1

    def test_import_invalid(self, client):
        """Test that a payload that is not a card list gets 400."""
        response = client.post("/study/decks/import", json={"payload": {"front": "x"}}, headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid deck JSON format"


class TestSessionEndpoints:
    def test_no_session(self, client):
        """Test that reading a session that was never started gets 404."""
        assert client.get("/study/session", headers=HEADERS).status_code == 404

    def test_empty_deck(self, client):
        """Test that an empty deck cannot be studied."""
        response = client.post("/study/session", json={"deck": "Default"}, headers=HEADERS)
        assert response.status_code == 400
        assert response.json()["detail"] == "Add some cards first!"

    def test_view_session(self, client):
        """Test flipping through a view session to the end."""
        add_card(client)
        snapshot = client.post("/study/session", json={"deck": "Default"}, headers=HEADERS).json()
        assert snapshot["card"]["back"] == "4"
        assert snapshot["total"] == 1

        flipped = client.post("/study/session/flip", headers=HEADERS).json()
        assert flipped["flipped"] is True

        finished = client.post("/study/session/next", headers=HEADERS).json()
        assert finished["finished"] is True

    def test_test_session(self, client):
        """Test a timed test from first answer to final score."""
        add_card(client, front="a", back="1")
        add_card(client, front="b", back="2")
        snapshot = client.post(
            "/study/session",
            json={"deck": "Default", "mode": "test", "timerType": "per_question", "timeLimit": 30},
            headers=HEADERS,
        ).json()
        assert snapshot["card"]["back"] == "?"
        assert snapshot["timeLeft"] == 30

        answer = client.post("/study/session/answer", json={"answer": "2"}, headers=HEADERS).json()
        assert answer["correct"] is True
        assert answer["expected"] == "2"

        answer = client.post("/study/session/answer", json={"answer": "nope"}, headers=HEADERS).json()
        assert answer["correct"] is False
        assert answer["session"]["finished"] is True
        assert answer["session"]["percent"] == 50

        response = client.post("/study/session/answer", json={"answer": "1"}, headers=HEADERS)
        assert response.status_code == 400

    def test_restart_and_end(self, client):
        """Test restarting, changing the timer and ending a session."""
        add_card(client)
        client.post("/study/session", json={"deck": "Default", "mode": "test"}, headers=HEADERS)
        client.post("/study/session/answer", json={"answer": "4"}, headers=HEADERS)

        restarted = client.post("/study/session/restart", headers=HEADERS).json()
        assert restarted["score"] == 0
        assert restarted["finished"] is False

        timer = client.put(
            "/study/session/timer", json={"timerType": "total", "timeLimit": 2}, headers=HEADERS
        ).json()
        assert timer["timeLeft"] == 120

        assert client.delete("/study/session", headers=HEADERS).status_code == 204
        assert client.get("/study/session", headers=HEADERS).status_code == 404
