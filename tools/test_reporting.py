from __future__ import annotations

from burgersim.engine import initialize_game_state, process_day
from burgersim.levels import LEVEL_0
from burgersim.models import CustomerOrderAction, GameAction
from burgersim.reporting import cost_totals, customer_progress, format_money, print_last_day, print_state


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def test_format_money() -> None:
    _assert(format_money(1234.5) == "1,234.50", format_money(1234.5))


def test_progress_and_totals_after_a_few_days() -> None:
    s = initialize_game_state(LEVEL_0)
    s = process_day(s, GameAction(production=20, customer_orders=[CustomerOrderAction(customer_id=1, quantity=20)]), LEVEL_0).state
    for _ in range(2):
        s = process_day(s, GameAction(), LEVEL_0).state

    progress = customer_progress(s, LEVEL_0)
    _assert(progress[0] == ("Yummy Zone", 20, 20, 80), f"progress {progress[0]}")
    _assert(progress[1] == ("Toast-to-go", 0, 0, 120), f"progress {progress[1]}")

    totals = cost_totals(s.history)
    _assert(totals["production"] == 80.0 and totals["transportation"] == 134.0, f"totals {totals}")
    _assert(abs(totals["total"] - sum(h.costs.total for h in s.history)) < 1e-9, "total")

    # Smoke: printing never fails on a played state.
    print_last_day(s)
    print_state(s, LEVEL_0)


def main() -> None:
    tests = [
        test_format_money,
        test_progress_and_totals_after_a_few_days,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
