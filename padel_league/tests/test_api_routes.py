"""
Tests for the HTTP API - status codes, error mapping and the camelCase
wire format.
"""
import pytest

from padel_league.services import data_service


async def add_players(client, *names):
    for name in names:
        response = await client.post("/api/players", json={"name": name})
        assert response.status_code == 201


MATCH_PAYLOAD = {
    "date": "2025-03-24",
    "playerA1": "Alice",
    "playerA2": "Bob",
    "playerB1": "Carol",
    "playerB2": "Dave",
    "scoreA": 6,
    "scoreB": 2,
}


# ============================================================================
# Health
# ============================================================================

@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


# ============================================================================
# Players
# ============================================================================

@pytest.mark.asyncio
async def test_create_player(client):
    response = await client.post("/api/players", json={"name": "  Obi "})
    assert response.status_code == 201
    body = response.json()
    assert body["id"] == 1
    assert body["name"] == "Obi"
    assert body["active"] is True
    assert body["rating"] == 1500
    assert body["gamesPlayed"] == 0
    assert body["winPercentage"] == "0.00"
    assert body["powerRanking"] == 0


@pytest.mark.asyncio
async def test_create_player_duplicate_name(client):
    await add_players(client, "Obi")
    response = await client.post("/api/players", json={"name": "Obi"})
    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{}, {"name": "O"}, {"name": "x" * 31}, {"name": "   "}])
async def test_create_player_invalid(client, payload):
    response = await client.post("/api/players", json=payload)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_list_and_get_players(client):
    await add_players(client, "Obi", "Jack")
    await client.patch("/api/players/2", json={"active": False})

    response = await client.get("/api/players")
    assert response.status_code == 200
    assert [p["name"] for p in response.json()] == ["Obi", "Jack"]

    response = await client.get("/api/players", params={"active_only": "true"})
    assert [p["name"] for p in response.json()] == ["Obi"]

    response = await client.get("/api/players/2")
    assert response.status_code == 200
    assert response.json()["active"] is False


@pytest.mark.asyncio
async def test_get_player_not_found(client):
    response = await client.get("/api/players/99")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_update_player(client):
    await add_players(client, "Obi", "Jack")

    response = await client.patch("/api/players/1", json={"name": "Obiwan"})
    assert response.status_code == 200
    assert response.json()["name"] == "Obiwan"

    response = await client.patch("/api/players/1", json={"name": "Jack"})
    assert response.status_code == 400

    response = await client.patch("/api/players/1", json={"rating": 2000})
    assert response.status_code == 400

    response = await client.patch("/api/players/42", json={"active": False})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_player(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave", "Eve")
    await client.post("/api/matches", json=MATCH_PAYLOAD)

    response = await client.delete("/api/players/5")
    assert response.status_code == 200
    assert response.json()["status"] == "deleted"
    assert (await client.get("/api/players/5")).status_code == 404

    response = await client.delete("/api/players/1")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "deactivated"
    assert body["player"]["active"] is False
    assert body["player"]["rating"] == 1513

    response = await client.delete("/api/players/99")
    assert response.status_code == 404


# ============================================================================
# Matches
# ============================================================================

@pytest.mark.asyncio
async def test_create_match(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")

    response = await client.post("/api/matches", json=MATCH_PAYLOAD)
    assert response.status_code == 201
    body = response.json()
    assert body["id"] == 1
    assert body["scoreA"] == 6
    assert body["eloChangeA1"] == 13
    assert body["eloChangeA2"] == 13
    assert body["eloChangeB1"] == -13
    assert body["eloChangeB2"] == -13

    alice = (await client.get("/api/players/1")).json()
    assert alice["rating"] == 1513
    assert alice["gamesPlayed"] == 1
    assert alice["winPercentage"] == "100.00"
    assert alice["pointDiff"] == 4


@pytest.mark.asyncio
async def test_create_match_accepts_snake_case(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    payload = {
        "date": "2025-03-24",
        "player_a1": "Alice",
        "player_a2": "Bob",
        "player_b1": "Carol",
        "player_b2": "Dave",
        "score_a": 1,
        "score_b": 6,
    }
    response = await client.post("/api/matches", json=payload)
    assert response.status_code == 201
    assert response.json()["eloChangeA1"] == -14


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides",
    [
        {"scoreB": 6},
        {"playerB2": "Alice"},
        {"playerB2": "Ghost"},
        {"scoreA": -1},
        {"scoreA": 100},
        {"date": "24/03/2025"},
        {"playerA1": ""},
    ],
)
async def test_create_match_invalid(client, overrides):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    response = await client.post("/api/matches", json={**MATCH_PAYLOAD, **overrides})
    assert response.status_code == 400
    assert (await client.get("/api/matches")).json() == []


@pytest.mark.asyncio
async def test_get_and_list_matches(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    await client.post("/api/matches", json=MATCH_PAYLOAD)
    await client.post("/api/matches", json={**MATCH_PAYLOAD, "scoreA": 3, "scoreB": 6})

    response = await client.get("/api/matches")
    assert [m["id"] for m in response.json()] == [1, 2]

    response = await client.get("/api/matches/2")
    assert response.status_code == 200
    assert response.json()["scoreB"] == 6

    assert (await client.get("/api/matches/3")).status_code == 404


@pytest.mark.asyncio
async def test_update_match(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    await client.post("/api/matches", json=MATCH_PAYLOAD)

    response = await client.patch("/api/matches/1", json={"scoreB": 0})
    assert response.status_code == 200
    assert response.json()["eloChangeA1"] == 15

    response = await client.patch("/api/matches/1", json={"date": "2025-04-01"})
    assert response.status_code == 200
    assert response.json()["date"] == "2025-04-01"
    assert response.json()["eloChangeA1"] == 15

    response = await client.patch("/api/matches/1", json={"scoreB": 6})
    assert response.status_code == 400

    response = await client.patch("/api/matches/9", json={"scoreB": 1})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_delete_match(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    await client.post("/api/matches", json=MATCH_PAYLOAD)

    response = await client.delete("/api/matches/1")
    assert response.status_code == 204
    assert (await client.get("/api/players/1")).json()["rating"] == 1500

    response = await client.delete("/api/matches/1")
    assert response.status_code == 404


# ============================================================================
# Partnerships, calculate and export
# ============================================================================

@pytest.mark.asyncio
async def test_partnerships(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    await client.post("/api/matches", json={**MATCH_PAYLOAD, "playerA1": "Bob", "playerA2": "Alice"})

    response = await client.get("/api/partnerships")
    assert response.status_code == 200
    partnerships = {p["id"]: p for p in response.json()}
    assert set(partnerships) == {"Alice-Bob", "Carol-Dave"}

    winners = partnerships["Alice-Bob"]
    assert winners["player1"] == "Alice"
    assert winners["player2"] == "Bob"
    assert winners["gamesPlayed"] == 1
    assert winners["winPercentage"] == "100.00"
    assert winners["chemistryRating"] == 93.1
    assert winners["rating"] == 1513


@pytest.mark.asyncio
async def test_calculate(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    await client.post("/api/matches", json=MATCH_PAYLOAD)

    response = await client.post("/api/calculate")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["player_count"] == 4
    assert body["match_count"] == 1
    assert body["partnership_count"] == 2

    first = (await client.get("/api/players")).json()
    await client.post("/api/calculate")
    assert (await client.get("/api/players")).json() == first


@pytest.mark.asyncio
async def test_export(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    await client.post("/api/matches", json=MATCH_PAYLOAD)

    response = await client.get("/api/export")
    assert response.status_code == 200
    body = response.json()
    assert len(body["players"]) == 4
    assert body["matches"][0]["eloChangeA1"] == 13
    assert len(body["partnerships"]) == 2
    assert "exportedAt" in body


# ============================================================================
# Rating history and previews
# ============================================================================

@pytest.mark.asyncio
async def test_player_history(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    await client.post("/api/matches", json=MATCH_PAYLOAD)
    await client.post(
        "/api/matches",
        json={**MATCH_PAYLOAD, "playerA2": "Carol", "playerB1": "Bob", "scoreB": 4},
    )

    response = await client.get("/api/players/1/history")
    assert response.status_code == 200
    body = response.json()
    assert body["playerId"] == 1
    assert body["name"] == "Alice"
    assert body["rating"] == 1525
    assert body["history"] == [
        {"matchId": 1, "date": "2025-03-24", "eloChange": 13, "eloAfter": 1513},
        {"matchId": 2, "date": "2025-03-24", "eloChange": 12, "eloAfter": 1525},
    ]

    assert (await client.get("/api/players/99/history")).status_code == 404


@pytest.mark.asyncio
async def test_preview_match(client):
    await add_players(client, "Alice", "Bob", "Carol", "Dave")
    payload = {key: value for key, value in MATCH_PAYLOAD.items() if key != "date"}

    response = await client.post("/api/matches/preview", json=payload)
    assert response.status_code == 200
    assert response.json() == {
        "teamARating": 1500,
        "teamBRating": 1500,
        "expectedA": 0.5,
        "eloChangeA": 13,
        "eloChangeB": -13,
    }
    assert (await client.get("/api/matches")).json() == []

    response = await client.post("/api/matches/preview", json={**payload, "playerB2": "Ghost"})
    assert response.status_code == 400

    response = await client.post("/api/matches/preview", json={**payload, "scoreB": 6})
    assert response.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("name", ["Al-Bo", "Jean-Luc"])
async def test_player_name_cannot_contain_separator(client, name):
    response = await client.post("/api/players", json={"name": name})
    assert response.status_code == 400

    await add_players(client, "Obi")
    response = await client.patch("/api/players/1", json={"name": name})
    assert response.status_code == 400


# ============================================================================
# Unexpected failures
# ============================================================================

@pytest.mark.asyncio
async def test_unexpected_error_returns_generic_500(client, monkeypatch):
    async def failing_create_match(session, **match_data):
        raise RuntimeError("connection pool exhausted")

    monkeypatch.setattr(data_service, "create_match", failing_create_match)

    response = await client.post("/api/matches", json=MATCH_PAYLOAD)
    assert response.status_code == 500
    assert response.json() == {"detail": "Error creating match"}
    assert "pool" not in response.text


@pytest.mark.asyncio
async def test_plain_value_error_is_a_server_error(client, monkeypatch):
    """Only league errors are client errors; any other ValueError is a 500."""
    async def failing_get_player(session, player_id):
        raise ValueError("could not decode row")

    monkeypatch.setattr(data_service, "get_player", failing_get_player)

    response = await client.get("/api/players/1")
    assert response.status_code == 500
    assert response.json() == {"detail": "Error loading player"}
    assert "decode" not in response.text
