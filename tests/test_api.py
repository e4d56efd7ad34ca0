"""HTTP API via FastAPI TestClient."""

import pytest
from fastapi.testclient import TestClient

from bucketball.api import main as api_main
from bucketball.config import Settings

from conftest import FixedRng

V1 = "/api/v1"


def _client(db_path, **game):
    settings = Settings(storage={"db_path": str(db_path)}, game=game, sweeper={"enabled": False})
    api_main.configure(settings, rng=FixedRng())
    return TestClient(api_main.app)


@pytest.fixture
def client(db_path):
    with _client(db_path) as c:
        yield c
    api_main.configure()


def _user(client, user_id="alice", balance=1000.0):
    r = client.post(f"{V1}/users", json={"user_id": user_id, "name": user_id, "initial_balance": balance})
    assert r.status_code == 201
    return {"X-User-Id": user_id}


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_catalog(client):
    assert len(client.get(f"{V1}/games/balls").json()) == 4
    baskets = client.get(f"{V1}/games/baskets").json()
    assert [b["value"] for b in baskets] == [0.25, 0.5, 0.75, 1.0, 2.0, 4.0, 8.0, 10.0]


def test_users_create_duplicate_and_deposit(client):
    _user(client)
    r = client.post(f"{V1}/users", json={"user_id": "alice"})
    assert r.status_code == 409
    assert r.json()["code"] == "user_exists"
    r = client.post(f"{V1}/users/alice/deposit", json={"amount": 50})
    assert r.json()["balance"] == 1050.0
    r = client.get(f"{V1}/users/nobody")
    assert r.status_code == 404
    assert r.json()["code"] == "user_not_found"


def test_bet_then_play(client):
    headers = _user(client)
    r = client.post(f"{V1}/games/bet", json={"ball_bets": {"0": 100}}, headers=headers)
    assert r.status_code == 200
    round_id = r.json()["round_id"]

    state = client.get(f"{V1}/games/state", headers=headers).json()
    assert state["current_round"]["round_id"] == round_id
    assert state["user_balance"] == 900.0

    r = client.post(f"{V1}/games/{round_id}/play")
    assert r.status_code == 200
    report = r.json()
    assert report["winning_ball_id"] == 0
    assert len(report["results"]) == 1
    # FixedRng lands in the 0.25x basket
    assert report["results"][0]["win_amount"] == pytest.approx(25.0)

    r = client.post(f"{V1}/games/{round_id}/play")
    assert r.status_code == 409
    assert r.json()["code"] == "round_not_active"

    history = client.get(f"{V1}/games/history", headers=headers).json()
    assert len(history) == 1
    stats = client.get(f"{V1}/games/stats", headers=headers).json()
    assert stats["bet_count"] == 1
    admin = client.get(f"{V1}/admin/games/stats").json()
    assert admin["completed_games"] == 1


def test_bet_rejections(client):
    headers = _user(client, balance=50.0)
    r = client.post(f"{V1}/games/bet", json={"ball_bets": {"0": 100, "1": 5000}}, headers=headers)
    assert r.status_code == 400
    assert r.json()["code"] == "bet_out_of_bounds"
    r = client.post(f"{V1}/games/bet", json={"ball_bets": {"9": 10}}, headers=headers)
    assert r.json()["code"] == "invalid_ball_id"
    r = client.post(f"{V1}/games/bet", json={"ball_bets": {"0": 100}}, headers=headers)
    assert r.status_code == 400
    assert r.json()["code"] == "insufficient_balance"
    r = client.post(f"{V1}/games/bet", json={"ball_bets": {}}, headers=headers)
    assert r.status_code == 422


def test_missing_user_header(client):
    assert client.get(f"{V1}/games/state").status_code == 422


def test_play_unknown_round(client):
    r = client.post(f"{V1}/games/nope/play")
    assert r.status_code == 404
    assert r.json()["code"] == "round_not_found"


def test_simulate_on_completed_round_is_conflict(client):
    headers = _user(client)
    r = client.post(f"{V1}/games/bet", json={"ball_bets": {"0": 10}}, headers=headers)
    round_id = r.json()["round_id"]
    client.post(f"{V1}/games/{round_id}/play")
    r = client.post(f"{V1}/admin/games/{round_id}/simulate", params={"players": 2})
    assert r.status_code == 409


def test_admin_wallet_fund_and_simulate(client):
    assert client.get(f"{V1}/admin/games/house-wallet").json()["balance"] == 1000.0
    r = client.post(f"{V1}/admin/games/house-wallet/fund", json={"amount": 250})
    assert r.json()["balance"] == 1250.0
    assert client.post(f"{V1}/admin/games/house-wallet/fund", json={"amount": 0}).status_code == 422

    headers = _user(client)
    round_id = client.post(f"{V1}/games/bet", json={"ball_bets": {"2": 20}}, headers=headers).json()["round_id"]
    r = client.post(f"{V1}/admin/games/{round_id}/simulate", params={"players": 3})
    assert r.status_code == 200
    assert r.json()["players_added"] == 3
    assert client.post(f"{V1}/admin/games/sweep").json() == {"expired_round_ids": []}


def test_empty_house_is_service_unavailable(db_path):
    with _client(db_path, initial_house_balance=0.0) as client:
        headers = _user(client)
        r = client.post(f"{V1}/games/bet", json={"ball_bets": {"0": 10}}, headers=headers)
        assert r.status_code == 503
        assert r.json()["code"] == "house_wallet_depleted"
    api_main.configure()
