import time

from fastapi.testclient import TestClient

from suitsim.data.presets import DEFAULT_PAYOUTS
from suitsim.main import app

client = TestClient(app)


def _wait_until_finished(sim_id: str, timeout: float = 30.0) -> dict:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        status = client.get(f"/api/simulations/{sim_id}/status").json()
        if status["status"] in {"done", "failed", "cancelled"}:
            return status
        time.sleep(0.05)
    raise AssertionError("simulation did not finish in time")


def test_health():
    assert client.get("/health").json() == {"status": "ok"}


def test_defaults_expose_payout_table():
    body = client.get("/api/payouts/defaults").json()
    assert body["payouts"]["flush_rush"]["seven_card"] == 100
    assert body["payouts"]["super_flush_rush"]["three_card_straight"] == 9
    assert body["min_three_card_flush_rank"] == 9


def test_run_simulation_round_trip():
    payload = {
        "hands": 200,
        "payouts": DEFAULT_PAYOUTS.model_dump(),
        "min_three_card_flush_rank": 9,
        "seed": 42,
        "use_multiprocessing": False,
    }
    sim_id = client.post("/api/simulations", json=payload).json()["id"]
    status = _wait_until_finished(sim_id)
    assert status["status"] == "done"
    assert status["progress"] == 1.0

    summary = client.get(f"/api/simulations/{sim_id}").json()
    assert summary["hand_distribution"]["total_hands"] == 200
    assert summary["reproducible"] is True
    assert len(summary["results"]) == 3
    assert "above_minimum_percentage" in summary["hand_distribution"]


def test_invalid_request_is_rejected():
    payload = {"hands": 100, "payouts": DEFAULT_PAYOUTS.model_dump(), "min_three_card_flush_rank": 3}
    assert client.post("/api/simulations", json=payload).status_code == 422

    payload = {"hands": 0, "payouts": DEFAULT_PAYOUTS.model_dump()}
    assert client.post("/api/simulations", json=payload).status_code == 422


def test_stop_cancels_run():
    payload = {
        "hands": 500_000,
        "payouts": DEFAULT_PAYOUTS.model_dump(),
        "seed": 1,
        "use_multiprocessing": False,
    }
    sim_id = client.post("/api/simulations", json=payload).json()["id"]
    assert client.post(f"/api/simulations/{sim_id}/stop").json() == {"stopped": True}
    status = _wait_until_finished(sim_id)
    assert status["status"] == "cancelled"
    assert client.get(f"/api/simulations/{sim_id}").status_code == 409


def test_unknown_simulation_is_404():
    assert client.get("/api/simulations/nope").status_code == 404
    assert client.get("/api/simulations/nope/status").status_code == 404
    assert client.post("/api/simulations/nope/stop").status_code == 404
