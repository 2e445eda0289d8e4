from __future__ import annotations

import logging
from typing import Optional

from burgersim.engine import EngineConfig, calculate_game_result, initialize_game_state, process_day
from burgersim.levels import get_level_config, list_levels
from burgersim.models import RAW_MATERIALS, CustomerOrderAction, GameAction, GameState, LevelConfig, SupplierOrder
from burgersim.reporting import format_money, print_last_day, print_state, print_summary
from burgersim.storage import append_history_csv, delete_state, load_state, save_result, save_state

CLI_USER = "local"


def _input_int(prompt: str, default: Optional[int] = None) -> Optional[int]:
    s = input(prompt).strip()
    if not s:
        return default
    try:
        return int(s)
    except ValueError:
        print("Invalid input: enter a whole number.")
        return None


def _pick_level() -> Optional[LevelConfig]:
    print("Levels:")
    for lv in list_levels():
        print(f"- {lv.id}: {lv.name} ({lv.days_to_complete} days)")
    lid = _input_int("Choose level: ")
    if lid is None:
        return None
    try:
        return get_level_config(lid)
    except KeyError:
        print("No such level.")
        return None


def _autoload_or_new(level: LevelConfig) -> GameState:
    try:
        st = load_state(CLI_USER, level.id)
    except ValueError as e:
        print(f"Could not read the save: {e}. Starting over.")
        st = None
    if st is not None:
        return st
    return initialize_game_state(level)


def _autosave(state: GameState) -> None:
    try:
        save_state(state, CLI_USER)
    except OSError as e:
        print(f"Save failed: {e}")


def _cmd_supplier_order(action: GameAction, level: LevelConfig) -> None:
    if not level.suppliers:
        print("This level has no suppliers.")
        return
    for s in level.suppliers:
        prices = ", ".join(f"{m} {format_money(p)}" for m, p in s.material_prices.items() if p > 0)
        print(f"- {s.id}: {s.name} (lead time {s.lead_time}d) {prices}")
    sid = _input_int("Supplier id: ")
    supplier = level.supplier(sid) if sid is not None else None
    if supplier is None:
        print("No such supplier.")
        return
    order = SupplierOrder(supplier_id=supplier.id)
    for m in RAW_MATERIALS:
        q = _input_int(f"{m} (0): ", 0)
        if q is None:
            return
        setattr(order, m, q)
    action.supplier_orders.append(order)


def _cmd_production(action: GameAction) -> None:
    q = _input_int(f"Meals to produce today (current {action.production}): ", action.production)
    if q is not None:
        action.production = q


def _cmd_customer_order(action: GameAction, level: LevelConfig) -> None:
    if not level.customers:
        print("This level has no customers.")
        return
    for c in level.customers:
        sizes = "/".join(str(x) for x in c.allowed_shipment_sizes)
        print(f"- {c.id}: {c.name} (lead time {c.lead_time}d, sizes {sizes}, {format_money(c.price_per_unit)}/meal)")
    cid = _input_int("Customer id: ")
    customer = level.customer(cid) if cid is not None else None
    if customer is None:
        print("No such customer.")
        return
    q = _input_int("Shipment size: ")
    if q is None:
        return
    action.customer_orders.append(CustomerOrderAction(customer_id=customer.id, quantity=q))


def _print_action(action: GameAction) -> None:
    print("Planned today:")
    for o in action.supplier_orders:
        parts = ", ".join(f"{m} {o.quantity(m)}" for m in RAW_MATERIALS if o.quantity(m))
        print(f"- buy from supplier {o.supplier_id}: {parts or 'nothing'}")
    print(f"- produce {action.production}")
    for co in action.customer_orders:
        print(f"- ship {co.quantity} to customer {co.customer_id}")


def _cmd_advance(state: GameState, action: GameAction, level: LevelConfig, cfg: EngineConfig) -> GameState:
    outcome = process_day(state, action, level, cfg)
    if not outcome.ok:
        print(f"Day rejected ({outcome.code}): {outcome.error.message if outcome.error else ''}")
        return state
    state = outcome.state
    try:
        append_history_csv(CLI_USER, level.id, state.history[-1])
    except OSError as e:
        print(f"History export failed: {e}")
    _autosave(state)
    print_last_day(state)
    if state.game_over:
        save_result(calculate_game_result(state, level, CLI_USER))
        print_summary(state, level)
    return state


def main() -> int:
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    cfg = EngineConfig()

    print("Burger supply chain simulation (CLI)\n")
    level = None
    while level is None:
        try:
            level = _pick_level()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return 0
    state = _autoload_or_new(level)
    action = GameAction()

    while True:
        print_state(state, level)
        print("1) Order from a supplier")
        print("2) Set production")
        print("3) Ship to a customer")
        print("4) Show planned actions")
        print("5) Clear planned actions")
        print("6) Advance one day")
        print("7) Summary")
        print("8) Reset level")
        print("0) Quit")

        try:
            choice = input("Choose: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return 0

        if choice == "1":
            _cmd_supplier_order(action, level)
        elif choice == "2":
            _cmd_production(action)
        elif choice == "3":
            _cmd_customer_order(action, level)
        elif choice == "4":
            _print_action(action)
        elif choice == "5":
            action = GameAction()
        elif choice == "6":
            before = state
            state = _cmd_advance(state, action, level, cfg)
            if state is not before:
                action = GameAction()
        elif choice == "7":
            print_summary(state, level)
        elif choice == "8":
            delete_state(CLI_USER, level.id)
            state = initialize_game_state(level)
            action = GameAction()
        elif choice == "0":
            _autosave(state)
            print("Bye.")
            return 0
        else:
            print("Invalid choice: enter 0-8.")
