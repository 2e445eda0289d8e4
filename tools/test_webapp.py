from __future__ import annotations

import json
import os
import tempfile
from contextlib import contextmanager

from fastapi.testclient import TestClient

from burgersim.storage import state_path
from burgersim.webapp import create_app


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


@contextmanager
def _client():
    old = os.environ.get("BURGERSIM_DATA_DIR")
    with tempfile.TemporaryDirectory() as td:
        os.environ["BURGERSIM_DATA_DIR"] = td
        try:
            yield TestClient(create_app())
        finally:
            if old is None:
                os.environ.pop("BURGERSIM_DATA_DIR", None)
            else:
                os.environ["BURGERSIM_DATA_DIR"] = old


def test_levels_endpoints() -> None:
    with _client() as c:
        levels = c.get("/api/levels").json()["levels"]
        _assert([lv["id"] for lv in levels] == [0, 1, 2, 3, 99], f"levels {levels}")
        lv2 = c.get("/api/levels/2").json()
        _assert(lv2["id"] == 2 and len(lv2["customers"]) == 3, "level 2 details")
        _assert(c.get("/api/levels/42").status_code == 404, "unknown level is 404")


def test_load_then_process_day() -> None:
    with _client() as c:
        r = c.post("/api/game/load", json={"userId": "u1", "levelId": 0})
        _assert(r.status_code == 200 and r.json()["gameState"]["day"] == 1, f"load {r.text}")

        action = {"production": 20, "customerOrders": [{"customerId": 1, "quantity": 20}]}
        r = c.post("/api/game/process-day", json={"userId": "u1", "levelId": 0, "action": action})
        body = r.json()
        _assert(r.status_code == 200 and body["success"] is True, f"process-day {r.text}")
        _assert(body["gameState"]["day"] == 2 and body["gameOver"] is False, "day advanced")
        _assert(body["gameState"]["customer_deliveries"] == {"1": 20}, f"deliveries {body['gameState']['customer_deliveries']}")

        again = c.post("/api/game/load", json={"userId": "u1", "levelId": 0}).json()
        _assert(again["gameState"]["day"] == 2, "processed day was persisted")


def test_rejected_day_is_not_persisted() -> None:
    with _client() as c:
        c.post("/api/game/process-day", json={"userId": "u1", "levelId": 0, "action": {}})
        r = c.post("/api/game/process-day", json={"userId": "u1", "levelId": 0, "action": {"production": -1}})
        body = r.json()
        _assert(r.status_code == 400 and body["success"] is False, f"expected 400, got {r.status_code}")
        _assert(body["code"] == "INVALID_PRODUCTION" and "Traceback" not in body["error"], f"body {body}")
        st = c.post("/api/game/load", json={"userId": "u1", "levelId": 0}).json()["gameState"]
        _assert(st["day"] == 2 and len(st["history"]) == 1, "stored state unchanged")


def test_bad_parameters() -> None:
    with _client() as c:
        _assert(c.post("/api/game/process-day", json={"levelId": 0}).status_code == 400, "missing userId")
        _assert(c.post("/api/game/process-day", json={"userId": "u1"}).status_code == 400, "missing levelId")
        _assert(c.post("/api/game/load", json={"userId": "u1", "levelId": 7}).status_code == 400, "unknown level")
        r = c.post("/api/game/process-day", json={"userId": "u1", "levelId": 0, "action": [1, 2]})
        _assert(r.status_code == 400, "action must be an object")


def test_reset_level_starts_over() -> None:
    with _client() as c:
        c.post("/api/game/process-day", json={"userId": "u1", "levelId": 0, "action": {}})
        r = c.request("DELETE", "/api/game/reset-level", json={"userId": "u1", "levelId": 0})
        _assert(r.status_code == 200 and r.json()["removed"] is True, f"reset {r.text}")
        st = c.post("/api/game/load", json={"userId": "u1", "levelId": 0}).json()["gameState"]
        _assert(st["day"] == 1 and st["history"] == [], "fresh state after reset")

        r = c.delete("/api/game/reset-level?userId=u1&levelId=0")
        _assert(r.status_code == 200 and r.json()["removed"] is True, "query parameters work too")


def test_corrupt_save_starts_fresh() -> None:
    with _client() as c:
        p = state_path("u9", 1)
        p.write_text("{not json", encoding="utf-8")
        st = c.post("/api/game/load", json={"userId": "u9", "levelId": 1}).json()["gameState"]
        _assert(st["day"] == 1 and st["level_id"] == 1, "corrupt save replaced by a new game")


def test_finished_game_result() -> None:
    with _client() as c:
        _assert(c.get("/api/game/result", params={"userId": "u2", "levelId": 99}).status_code == 404, "not finished")
        body = {}
        for _ in range(20):
            body = c.post("/api/game/process-day", json={"userId": "u2", "levelId": 99, "action": {}}).json()
        _assert(body.get("gameOver") is True, f"game should end after 20 days: {body}")

        r = c.post("/api/game/process-day", json={"userId": "u2", "levelId": 99, "action": {}})
        _assert(r.status_code == 400 and r.json()["code"] == "GAME_ALREADY_OVER", f"terminal {r.text}")

        res = c.get("/api/game/result", params={"userId": "u2", "levelId": 99}).json()
        _assert(res["success"] is True and res["result"]["days_played"] == 20, f"result {res}")


def test_fractional_quantities_are_rejected() -> None:
    with _client() as c:
        action = {"supplierOrders": [{"supplierId": 1, "pattyPurchase": "50.5"}], "customerOrders": []}
        r = c.post("/api/game/process-day", json={"userId": "u3", "levelId": 0, "action": action})
        _assert(r.status_code == 400 and r.json()["code"] == "INVALID_ORDER", f"expected INVALID_ORDER, got {r.text}")

        action = {"customerOrders": [{"customerId": 1, "quantity": None}]}
        r = c.post("/api/game/process-day", json={"userId": "u3", "levelId": 0, "action": action})
        _assert(r.status_code == 400 and r.json()["code"] == "INVALID_ORDER", f"missing quantity: {r.text}")

        st = c.post("/api/game/load", json={"userId": "u3", "levelId": 0}).json()["gameState"]
        _assert(st["day"] == 1 and st["history"] == [], "nothing persisted")


def test_save_with_corrupt_entries_still_loads() -> None:
    with _client() as c:
        p = state_path("u8", 1)
        payload = {"version": 1, "state": {"level_id": 1, "day": 4, "cash": 900, "pending_customer_orders": [3], "history": ["x"]}}
        p.write_text(json.dumps(payload), encoding="utf-8")
        r = c.post("/api/game/load", json={"userId": "u8", "levelId": 1})
        _assert(r.status_code == 200, f"load failed: {r.status_code} {r.text}")
        st = r.json()["gameState"]
        _assert(st["day"] == 4 and st["pending_customer_orders"] == [], f"state {st}")


def main() -> None:
    tests = [
        test_levels_endpoints,
        test_load_then_process_day,
        test_rejected_day_is_not_persisted,
        test_bad_parameters,
        test_reset_level_starts_over,
        test_corrupt_save_starts_fresh,
        test_finished_game_result,
        test_fractional_quantities_are_rejected,
        test_save_with_corrupt_entries_still_loads,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
