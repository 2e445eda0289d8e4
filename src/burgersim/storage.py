from __future__ import annotations

import csv
import json
import logging
import os
import re
import tempfile
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional

from burgersim.models import (
    INVENTORY_KINDS,
    RAW_MATERIALS,
    CustomerOrder,
    CustomerOrderAction,
    DailyCosts,
    DailyDemand,
    DailyHistoryEntry,
    GameAction,
    GameResult,
    GameState,
    Inventory,
    LatenessPenalty,
    LevelConfig,
    PendingOrder,
    SupplierOrder,
)

logger = logging.getLogger(__name__)

STATE_VERSION = "1.0.0"

_locks_guard = threading.Lock()
_session_locks: Dict[str, threading.Lock] = {}


def project_root() -> Path:
    # .../src/burgersim/storage.py -> parents[2] == project root
    return Path(__file__).resolve().parents[2]


def data_dir() -> Path:
    override = os.environ.get("BURGERSIM_DATA_DIR", "").strip()
    p = Path(override) if override else project_root() / "data"
    p.mkdir(parents=True, exist_ok=True)
    return p


def _safe_id(value: object) -> str:
    s = re.sub(r"[^A-Za-z0-9_.-]+", "_", str(value)).strip("._")
    return s or "anonymous"


def _session_key(user_id: object, level_id: object) -> str:
    return f"{_safe_id(user_id)}_level{int(level_id)}"  # type: ignore[arg-type]


def states_dir() -> Path:
    p = data_dir() / "states"
    p.mkdir(parents=True, exist_ok=True)
    return p


def results_dir() -> Path:
    p = data_dir() / "results"
    p.mkdir(parents=True, exist_ok=True)
    return p


def state_path(user_id: object, level_id: int) -> Path:
    return states_dir() / f"{_session_key(user_id, level_id)}.json"


def history_path(user_id: object, level_id: int) -> Path:
    return states_dir() / f"{_session_key(user_id, level_id)}_history.csv"


def result_path(user_id: object, level_id: int) -> Path:
    return results_dir() / f"{_session_key(user_id, level_id)}.json"


def session_lock(user_id: object, level_id: int) -> threading.Lock:
    """One lock per (user, level): the load -> process -> save cycle must not interleave."""

    key = _session_key(user_id, level_id)
    with _locks_guard:
        lock = _session_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _session_locks[key] = lock
        return lock


# ---------------------------------------------------------------------------
# dict <-> dataclass


def state_to_dict(state: GameState) -> Dict[str, Any]:
    return asdict(state)


def _int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def _float(v: Any, default: float = 0.0) -> float:
    try:
        return float(v)
    except (TypeError, ValueError):
        return default


def _mapping(v: Any) -> Dict[Any, Any]:
    return v if isinstance(v, dict) else {}


def _dicts(v: Any) -> List[Dict[str, Any]]:
    # Corrupt entries are dropped rather than failing the whole load.
    if not isinstance(v, list):
        return []
    return [x for x in v if isinstance(x, dict)]


def _int_keys(d: Any) -> Dict[int, Any]:
    if not isinstance(d, dict):
        return {}
    return {_int(k): v for k, v in d.items()}


def _load_inventory(d: Any) -> Inventory:
    d = d if isinstance(d, dict) else {}
    # Older payloads used camelCase for finished goods
    if "finished_goods" not in d and "finishedGoods" in d:
        d = dict(d, finished_goods=d.get("finishedGoods"))
    return Inventory(**{k: max(0, _int(d.get(k, 0))) for k in INVENTORY_KINDS})


def _load_penalty(d: Dict[str, Any]) -> LatenessPenalty:
    return LatenessPenalty(
        customer_id=_int(d.get("customer_id")),
        customer_name=str(d.get("customer_name", "")),
        day=_int(d.get("day")),
        milestone_day=_int(d.get("milestone_day", d.get("day"))),
        missed_amount=_int(d.get("missed_amount")),
        penalty_amount=_float(d.get("penalty_amount")),
    )


def _load_history_entry(d: Dict[str, Any]) -> DailyHistoryEntry:
    c = d.get("costs") if isinstance(d.get("costs"), dict) else {}
    costs = DailyCosts(**{k: _float(c.get(k)) for k in asdict(DailyCosts()).keys()})
    return DailyHistoryEntry(
        day=_int(d.get("day")),
        cash=_float(d.get("cash")),
        revenue=_float(d.get("revenue")),
        costs=costs,
        profit=_float(d.get("profit")),
        cumulative_profit=_float(d.get("cumulative_profit")),
        score=_int(d.get("score")),
        production=_int(d.get("production")),
        sales=_int(d.get("sales")),
        deliveries=_int(d.get("deliveries")),
        inventory={str(k): _int(v) for k, v in _mapping(d.get("inventory")).items()},
        purchased={str(k): _int(v) for k, v in _mapping(d.get("purchased")).items()},
        holding_breakdown={str(k): _float(v) for k, v in _mapping(d.get("holding_breakdown")).items()},
        overstock_breakdown={str(k): _float(v) for k, v in _mapping(d.get("overstock_breakdown")).items()},
        customer_deliveries={k: _int(v) for k, v in _int_keys(d.get("customer_deliveries")).items()},
        lateness_penalties=[_load_penalty(p) for p in _dicts(d.get("lateness_penalties"))],
    )


def state_from_dict(d: Dict[str, Any]) -> GameState:
    state = GameState(
        level_id=_int(d.get("level_id")),
        day=max(1, _int(d.get("day"), 1)),
        cash=_float(d.get("cash")),
    )
    state.inventory = _load_inventory(d.get("inventory"))

    for po in _dicts(d.get("pending_supplier_orders")):
        state.pending_supplier_orders.append(
            PendingOrder(
                supplier_id=_int(po.get("supplier_id")),
                material_type=str(po.get("material_type", "")),
                quantity=_int(po.get("quantity")),
                days_remaining=_int(po.get("days_remaining")),
                total_cost=_float(po.get("total_cost")),
                supplier_name=str(po.get("supplier_name", "")),
                actual_lead_time=_int(po.get("actual_lead_time")),
            )
        )
    for co in _dicts(d.get("pending_customer_orders")):
        state.pending_customer_orders.append(
            CustomerOrder(
                customer_id=_int(co.get("customer_id")),
                quantity=_int(co.get("quantity")),
                days_remaining=_int(co.get("days_remaining")),
                total_revenue=_float(co.get("total_revenue")),
                transport_cost=_float(co.get("transport_cost")),
                actual_lead_time=_int(co.get("actual_lead_time")),
            )
        )

    state.customer_deliveries = {k: _int(v) for k, v in _int_keys(d.get("customer_deliveries")).items()}
    state.customer_shipments = {k: _int(v) for k, v in _int_keys(d.get("customer_shipments")).items()}
    state.supplier_deliveries = {
        k: {str(m): _int(q) for m, q in v.items()} for k, v in _int_keys(d.get("supplier_deliveries")).items()
        if isinstance(v, dict)
    }

    state.history = [_load_history_entry(h) for h in _dicts(d.get("history"))]
    state.cumulative_profit = _float(d.get("cumulative_profit"))
    state.score = _int(d.get("score"))
    state.game_over = bool(d.get("game_over", False))
    state.lateness_penalties = [
        _load_penalty(p) for p in _dicts(d.get("lateness_penalties"))
    ]
    dd = d.get("daily_demand") if isinstance(d.get("daily_demand"), dict) else {}
    state.daily_demand = DailyDemand(quantity=_int(dd.get("quantity")), price_per_unit=_float(dd.get("price_per_unit")))
    state.rng_seed = _int(d.get("rng_seed"), 20260101)
    return state


def _whole(v: Any) -> Any:
    # Keep non-integral values as-is so the engine can reject them.
    if isinstance(v, bool):
        return v
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, str):
        try:
            return int(v.strip())
        except ValueError:
            return v
    return v


def _first(d: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if d.get(k) is not None:
            return d[k]
    return default


def action_from_dict(d: Optional[Dict[str, Any]]) -> GameAction:
    """Build a GameAction from a request payload.

    Accepts snake_case keys as well as the camelCase keys the browser client
    sends (supplierOrders / pattyPurchase / customerOrders ...).
    """

    d = d or {}
    supplier_orders: List[SupplierOrder] = []
    for so in d.get("supplier_orders", d.get("supplierOrders")) or []:
        if not isinstance(so, dict):
            continue
        qty = {m: _whole(_first(so, m, f"{m}Purchase", default=0)) for m in RAW_MATERIALS}
        supplier_orders.append(SupplierOrder(supplier_id=_whole(_first(so, "supplier_id", "supplierId")), **qty))

    customer_orders: List[CustomerOrderAction] = []
    for co in d.get("customer_orders", d.get("customerOrders")) or []:
        if not isinstance(co, dict):
            continue
        customer_orders.append(
            CustomerOrderAction(
                customer_id=_whole(_first(co, "customer_id", "customerId")),
                quantity=_whole(co.get("quantity")),
            )
        )

    return GameAction(
        supplier_orders=supplier_orders,
        production=_whole(d.get("production", 0) or 0),
        customer_orders=customer_orders,
    )


def level_to_dict(level: LevelConfig) -> Dict[str, Any]:
    return asdict(level)


# ---------------------------------------------------------------------------
# Files


def _write_json_atomic(p: Path, payload: Dict[str, Any]) -> None:
    fd, tmp = tempfile.mkstemp(dir=str(p.parent), prefix=p.name, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
        os.replace(tmp, p)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def save_state(state: GameState, user_id: object, level_id: Optional[int] = None) -> Path:
    lid = int(state.level_id if level_id is None else level_id)
    p = state_path(user_id, lid)
    payload = {
        "version": STATE_VERSION,
        "user_id": str(user_id),
        "level_id": lid,
        "state": state_to_dict(state),
    }
    _write_json_atomic(p, payload)
    logger.info("saved state for user=%s level=%s day=%s", user_id, lid, state.day)
    return p


def load_state(user_id: object, level_id: int) -> Optional[GameState]:
    """Return the stored state, or None when the user never played the level.

    A corrupt file raises ValueError; callers decide whether to start over.
    """

    p = state_path(user_id, level_id)
    if not p.exists():
        return None
    payload = json.loads(p.read_text(encoding="utf-8"))
    d = payload.get("state") if isinstance(payload, dict) else None
    if not isinstance(d, dict):
        raise ValueError(f"state file {p.name} has no state object")
    return state_from_dict(d)


def delete_state(user_id: object, level_id: int) -> bool:
    """Forget a (user, level) session: saved state and its history export."""

    removed = False
    for p in (state_path(user_id, level_id), history_path(user_id, level_id)):
        if p.exists():
            p.unlink()
            removed = True
    logger.info("reset level for user=%s level=%s (had data: %s)", user_id, level_id, removed)
    return removed


HISTORY_COLUMNS = [
    "day",
    "cash",
    "revenue",
    "cost_purchases",
    "cost_production",
    "cost_holding",
    "cost_overstock",
    "cost_transportation",
    "cost_penalties",
    "cost_total",
    "profit",
    "cumulative_profit",
    "score",
    "production",
    "sales",
    "deliveries",
    "inventory_json",
    "customer_deliveries_json",
    "lateness_penalties_json",
]


def append_history_csv(user_id: object, level_id: int, entry: DailyHistoryEntry) -> Path:
    p = history_path(user_id, level_id)
    write_header = (not p.exists()) or (p.stat().st_size <= 0)
    with p.open("a", newline="", encoding="utf-8") as f:
        w = csv.writer(f)
        if write_header:
            w.writerow(HISTORY_COLUMNS)
        w.writerow(
            [
                entry.day,
                entry.cash,
                entry.revenue,
                entry.costs.purchases,
                entry.costs.production,
                entry.costs.holding,
                entry.costs.overstock,
                entry.costs.transportation,
                entry.costs.penalties,
                entry.costs.total,
                entry.profit,
                entry.cumulative_profit,
                entry.score,
                entry.production,
                entry.sales,
                entry.deliveries,
                json.dumps(entry.inventory, ensure_ascii=False),
                json.dumps(entry.customer_deliveries, ensure_ascii=False),
                json.dumps([asdict(p) for p in entry.lateness_penalties], ensure_ascii=False),
            ]
        )
    return p


def save_result(result: GameResult) -> Path:
    p = result_path(result.user_id, result.level_id)
    _write_json_atomic(p, {"version": STATE_VERSION, "result": asdict(result)})
    logger.info("saved final result for user=%s level=%s score=%s", result.user_id, result.level_id, result.score)
    return p


def load_result(user_id: object, level_id: int) -> Optional[Dict[str, Any]]:
    p = result_path(user_id, level_id)
    if not p.exists():
        return None
    payload = json.loads(p.read_text(encoding="utf-8"))
    return payload.get("result") if isinstance(payload, dict) else None
