import argparse
import random
from pathlib import Path

import sys

# Make `src/` importable when running as a script.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from burgersim.costs import max_producible
from burgersim.engine import initialize_game_state, process_day
from burgersim.levels import get_level_config
from burgersim.models import RAW_MATERIALS, CustomerOrderAction, GameAction, GameState, LevelConfig, SupplierOrder
from burgersim.storage import save_state


def _restock_orders(state: GameState, level: LevelConfig, rng: random.Random) -> list:
    orders = []
    for m in RAW_MATERIALS:
        if state.inventory.get(m) >= 40 * level.recipe.per_meal(m):
            continue
        sellers = [s for s in level.suppliers if int((s.capacity_per_game or {}).get(m, 0) or 0) > 0]
        if not sellers:
            continue
        s = rng.choice(sellers)
        bought = int((state.supplier_deliveries.get(s.id) or {}).get(m, 0) or 0)
        left = int(s.capacity_per_game[m]) - bought
        qty = min(left, rng.choice([50, 100]))
        if qty > 0:
            o = SupplierOrder(supplier_id=s.id)
            setattr(o, m, qty)
            orders.append(o)
    return orders


def _shipments(state: GameState, level: LevelConfig, available: int) -> list:
    out = []
    for c in level.customers:
        shipped = int(state.customer_shipments.get(c.id, 0) or 0)
        outstanding = int(c.total_requirement) - shipped
        for size in sorted(c.allowed_shipment_sizes, reverse=True):
            if size <= outstanding and size <= available:
                out.append(CustomerOrderAction(customer_id=c.id, quantity=size))
                available -= size
                break
    return out


def _plan_day(state: GameState, level: LevelConfig, rng: random.Random) -> GameAction:
    produce = min(max_producible(state.inventory, level.recipe), rng.choice([0, 20, 40]))
    available = state.inventory.finished_goods + produce
    return GameAction(
        supplier_orders=_restock_orders(state, level, rng),
        production=produce,
        customer_orders=_shipments(state, level, available),
    )


def build_state(level_id: int, days: int, seed: int) -> GameState:
    """Play `days` days of a level with a scripted random policy.

    Days the engine rejects are retried with an empty action; the result is a
    realistic mid-game state for manual testing of the web UI.
    """

    level = get_level_config(level_id)
    rng = random.Random(int(seed))
    state = initialize_game_state(level, rng_seed=seed)
    for _ in range(max(0, int(days))):
        if state.game_over:
            break
        out = process_day(state, _plan_day(state, level, rng), level)
        if not out.ok:
            out = process_day(state, GameAction(), level)
            if not out.ok:
                break
        state = out.state
    return state


def main() -> int:
    ap = argparse.ArgumentParser(description="Generate a mid-game state by playing scripted days")
    ap.add_argument("--level", type=int, default=1)
    ap.add_argument("--days", type=int, default=10)
    ap.add_argument("--seed", type=int, default=20260129)
    ap.add_argument("--user", type=str, default="test-user")
    args = ap.parse_args()

    state = build_state(level_id=int(args.level), days=int(args.days), seed=int(args.seed))
    out = save_state(state, args.user)
    print(f"wrote: {out}")
    print(f"day: {state.day}  cash: {state.cash:.2f}  score: {state.score}  game over: {state.game_over}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
