from __future__ import annotations

from typing import Dict, List, Tuple

from burgersim.models import DailyHistoryEntry, GameState, LevelConfig
from burgersim.schedule import required_cumulative


def format_money(x: float) -> str:
    return f"{x:,.2f}"


def customer_progress(state: GameState, level: LevelConfig) -> List[Tuple[str, int, int, int]]:
    """Return (name, delivered, required_so_far, total_requirement) per customer."""

    out = []
    day = max(1, int(state.day) - 1)
    for c in level.customers or ():
        delivered = int(state.customer_deliveries.get(int(c.id), 0) or 0)
        required, _ = required_cumulative(c.delivery_schedule or (), day)
        out.append((c.name, delivered, required, int(c.total_requirement)))
    return out


def cost_totals(history: List[DailyHistoryEntry]) -> Dict[str, float]:
    keys = ("purchases", "production", "holding", "overstock", "transportation", "penalties", "total")
    totals = {k: 0.0 for k in keys}
    for h in history:
        for k in keys:
            totals[k] += float(getattr(h.costs, k, 0.0) or 0.0)
    return totals


def print_last_day(state: GameState) -> None:
    if not state.history:
        print("No days played yet.")
        return
    h = state.history[-1]
    c = h.costs
    print(f"\n=== Day {h.day} (settled) ===")
    print(f"Cash: {format_money(h.cash)}  Revenue: {format_money(h.revenue)}  Profit: {format_money(h.profit)}")
    print(f"Produced {h.production}  Dispatched {h.sales}  Delivered {h.deliveries}")
    print(
        "  ".join(
            [
                f"purchases {format_money(c.purchases)}",
                f"production {format_money(c.production)}",
                f"holding {format_money(c.holding)}",
                f"overstock {format_money(c.overstock)}",
                f"transport {format_money(c.transportation)}",
                f"penalties {format_money(c.penalties)}",
            ]
        )
    )
    for p in h.lateness_penalties:
        print(
            f"! {p.customer_name} is {p.missed_amount} units behind the day {p.milestone_day} milestone"
            f" (penalty {format_money(p.penalty_amount)})"
        )


def print_state(state: GameState, level: LevelConfig) -> None:
    print(f"\n=== {level.name} | day {state.day}/{level.days_to_complete} ===")
    print(f"Cash: {format_money(state.cash)}  Cumulative profit: {format_money(state.cumulative_profit)}  Score: {state.score}")
    inv = state.inventory
    print(f"Inventory: patty {inv.patty}  bun {inv.bun}  cheese {inv.cheese}  potato {inv.potato}  meals {inv.finished_goods}")
    if state.pending_supplier_orders:
        print("Inbound:")
        for po in state.pending_supplier_orders:
            print(f"- {po.quantity} {po.material_type} from {po.supplier_name}, {po.days_remaining} day(s) left")
    if state.pending_customer_orders:
        print("Outbound:")
        for co in state.pending_customer_orders:
            c = level.customer(co.customer_id)
            name = c.name if c is not None else str(co.customer_id)
            print(f"- {co.quantity} meals to {name}, {co.days_remaining} day(s) left")
    progress = customer_progress(state, level)
    if progress:
        print("Customers (delivered / due so far / total):")
        for name, delivered, required, total in progress:
            flag = " LATE" if delivered < required else ""
            print(f"- {name}: {delivered} / {required} / {total}{flag}")
    if state.game_over:
        print("Game over.")


def print_summary(state: GameState, level: LevelConfig) -> None:
    totals = cost_totals(state.history)
    print(f"\n=== {level.name}: summary after {len(state.history)} day(s) ===")
    print(f"Final cash: {format_money(state.cash)}  Cumulative profit: {format_money(state.cumulative_profit)}")
    print(f"Score: {state.score} / {level.max_score}")
    for k, v in totals.items():
        print(f"- {k}: {format_money(v)}")
    charged = [p for p in state.lateness_penalties if p.penalty_amount > 0]
    print(f"Missed milestones: {len(charged)}")
