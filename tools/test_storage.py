from __future__ import annotations

import csv
import os
import tempfile
from contextlib import contextmanager
from pathlib import Path

from burgersim import storage
from burgersim.engine import INVALID_ORDER, INVALID_PRODUCTION, initialize_game_state, process_day
from burgersim.levels import LEVEL_0
from burgersim.models import CustomerOrderAction, GameAction


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


@contextmanager
def _tmp_data_dir():
    old = os.environ.get("BURGERSIM_DATA_DIR")
    with tempfile.TemporaryDirectory() as td:
        os.environ["BURGERSIM_DATA_DIR"] = td
        try:
            yield Path(td)
        finally:
            if old is None:
                os.environ.pop("BURGERSIM_DATA_DIR", None)
            else:
                os.environ["BURGERSIM_DATA_DIR"] = old


def _played_state():
    s = initialize_game_state(LEVEL_0)
    action = GameAction(production=20, customer_orders=[CustomerOrderAction(customer_id=1, quantity=20)])
    s = process_day(s, action, LEVEL_0).state
    for _ in range(3):
        s = process_day(s, GameAction(), LEVEL_0).state
    return s


def test_saved_state_loads_back_equal() -> None:
    with _tmp_data_dir() as td:
        s = _played_state()
        p = storage.save_state(s, "alice")
        _assert(p.parent.parent == td, f"state written outside data dir: {p}")
        loaded = storage.load_state("alice", LEVEL_0.id)
        _assert(loaded == s, "loaded state differs from saved state")
        _assert(loaded.customer_deliveries == {1: 20}, f"int keys restored: {loaded.customer_deliveries}")


def test_missing_and_deleted_state() -> None:
    with _tmp_data_dir():
        _assert(storage.load_state("bob", 1) is None, "no save yet")
        storage.save_state(initialize_game_state(LEVEL_0), "bob")
        _assert(storage.delete_state("bob", 0) is True, "existing save removed")
        _assert(storage.delete_state("bob", 0) is False, "nothing left to remove")
        _assert(storage.load_state("bob", 0) is None, "save is gone")


def test_sessions_are_isolated_per_user_and_level() -> None:
    with _tmp_data_dir():
        _assert(storage.state_path("a", 0) != storage.state_path("a", 1), "levels differ")
        _assert(storage.state_path("a", 0) != storage.state_path("b", 0), "users differ")
        _assert(storage.state_path("../../etc", 0).parent == storage.states_dir(), "user ids cannot escape")
        _assert(storage.session_lock("a", 0) is storage.session_lock("a", 0), "one lock per session")
        _assert(storage.session_lock("a", 0) is not storage.session_lock("a", 1), "separate locks")


def test_partial_payload_loads_with_defaults() -> None:
    s = storage.state_from_dict({"level_id": 2, "cash": "12.5", "inventory": {"patty": 3}})
    _assert(s.level_id == 2 and s.day == 1 and s.cash == 12.5, f"state {s}")
    _assert(s.inventory.patty == 3 and s.inventory.bun == 0, f"inventory {s.inventory}")
    _assert(s.history == [] and s.pending_supplier_orders == [], "empty collections")


def test_history_csv_has_one_header() -> None:
    with _tmp_data_dir():
        s = _played_state()
        for h in s.history:
            storage.append_history_csv("carol", LEVEL_0.id, h)
        p = storage.history_path("carol", LEVEL_0.id)
        rows = list(csv.DictReader(p.open("r", encoding="utf-8", newline="")))
        _assert(len(rows) == len(s.history), f"expected {len(s.history)} rows, got {len(rows)}")
        _assert(rows[0]["day"] == "1" and float(rows[0]["revenue"]) == 980.0, f"first row {rows[0]}")


def test_action_from_browser_payload() -> None:
    a = storage.action_from_dict(
        {
            "supplierOrders": [{"supplierId": 1, "pattyPurchase": 50, "bunPurchase": "100"}],
            "production": 5.0,
            "customerOrders": [{"customerId": 2, "quantity": 20}],
        }
    )
    _assert(a.supplier_orders[0].supplier_id == 1, "supplier id")
    _assert(a.supplier_orders[0].patty == 50 and a.supplier_orders[0].bun == 100, f"quantities {a.supplier_orders}")
    _assert(a.production == 5 and isinstance(a.production, int), f"production {a.production!r}")
    _assert(a.customer_orders[0].customer_id == 2 and a.customer_orders[0].quantity == 20, "customer order")

    bad = storage.action_from_dict({"production": 2.5})
    out = process_day(initialize_game_state(LEVEL_0), bad, LEVEL_0)
    _assert(out.code == INVALID_PRODUCTION, f"fractional production rejected, got {out.code}")


def test_fractional_quantities_reach_the_engine_unchanged() -> None:
    a = storage.action_from_dict(
        {
            "supplierOrders": [{"supplierId": 1, "pattyPurchase": "50.5", "bunPurchase": 99.9}],
            "customerOrders": [{"customerId": 1, "quantity": 20.7}],
        }
    )
    so, co = a.supplier_orders[0], a.customer_orders[0]
    _assert(so.patty == "50.5" and so.bun == 99.9, f"supplier quantities truncated: {so}")
    _assert(co.quantity == 20.7, f"shipment truncated: {co}")
    out = process_day(initialize_game_state(LEVEL_0), a, LEVEL_0)
    _assert(out.code == INVALID_ORDER, f"expected INVALID_ORDER, got {out.code}")

    only_shipment = storage.action_from_dict({"production": 20, "customerOrders": [{"customerId": 1, "quantity": 20.7}]})
    out = process_day(initialize_game_state(LEVEL_0), only_shipment, LEVEL_0)
    _assert(out.code == INVALID_ORDER, f"fractional shipment rejected, got {out.code}")

    missing = storage.action_from_dict({"customerOrders": [{"customerId": 1}]})
    _assert(missing.customer_orders[0].quantity is None, "missing quantity is not invented")
    out = process_day(initialize_game_state(LEVEL_0), missing, LEVEL_0)
    _assert(out.code == INVALID_ORDER, f"missing quantity rejected, got {out.code}")


def test_corrupt_list_entries_are_skipped() -> None:
    s = storage.state_from_dict(
        {
            "level_id": 0,
            "day": 3,
            "pending_supplier_orders": [
                1,
                "x",
                None,
                {"supplier_id": 1, "material_type": "patty", "quantity": 5, "days_remaining": 2},
            ],
            "pending_customer_orders": "oops",
            "supplier_deliveries": {"1": [1, 2], "2": {"bun": 50}},
            "history": [None, 7],
            "lateness_penalties": [[1, 2]],
        }
    )
    _assert(s.day == 3 and len(s.pending_supplier_orders) == 1, f"pending {s.pending_supplier_orders}")
    _assert(s.pending_supplier_orders[0].quantity == 5, "valid entry kept")
    _assert(s.pending_customer_orders == [] and s.history == [] and s.lateness_penalties == [], "bad lists dropped")
    _assert(s.supplier_deliveries == {2: {"bun": 50}}, f"deliveries {s.supplier_deliveries}")


def main() -> None:
    tests = [
        test_saved_state_loads_back_equal,
        test_missing_and_deleted_state,
        test_sessions_are_isolated_per_user_and_level,
        test_partial_payload_loads_with_defaults,
        test_history_csv_has_one_header,
        test_action_from_browser_payload,
        test_fractional_quantities_reach_the_engine_unchanged,
        test_corrupt_list_entries_are_skipped,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
