"""
tests/integration/helpers.py — Plain helper functions for the integration tests.

  - add(client, ...)      → HTTP response of POST /add
  - spend(client, ...)    → HTTP response of POST /spend
  - balances(client)      → {payer: points} from GET /balance
  - seed_scenario_a(...)  → posts the five Scenario A deposits

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

SCENARIO_A = [
    ("DANNON",      300,   "2020-10-31T10:00:00Z"),
    ("UNILEVER",    200,   "2020-10-31T11:00:00Z"),
    ("DANNON",      -200,  "2020-10-31T15:00:00Z"),
    ("MILLERCOORS", 10000, "2020-11-01T14:00:00Z"),
    ("DANNON",      1000,  "2020-11-02T14:00:00Z"),
]


def add(client, payer: str, points: int, timestamp: str):
    """Posts one deposit and returns the HTTP response."""
    return client.post(
        "/add",
        json={"payer": payer, "points": points, "timestamp": timestamp},
    )


def spend(client, points):
    """Posts a spend and returns the HTTP response."""
    return client.post("/spend", json={"points": points})


def balances(client) -> dict[str, int]:
    """Returns {payer: points} from GET /balance."""
    resp = client.get("/balance")
    assert resp.status_code == 200, f"balance failed: {resp.get_json()}"
    return {row["payer"]: row["points"] for row in resp.get_json()}


def seed_scenario_a(client) -> None:
    for payer, points, timestamp in SCENARIO_A:
        resp = add(client, payer, points, timestamp)
        assert resp.status_code == 200, f"add failed: {resp.get_json()}"
