from __future__ import annotations

from burgersim.models import DeliveryScheduleItem
from burgersim.schedule import generate_delivery_schedule, is_milestone_missed, required_cumulative, round_half_up


def _assert(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def _pairs(schedule) -> list[tuple[int, int]]:
    return [(i.day, i.required_amount) for i in schedule]


def test_hundred_units_over_thirty_days() -> None:
    got = _pairs(generate_delivery_schedule(100, 30))
    _assert(got == [(6, 20), (12, 20), (18, 20), (24, 20), (30, 20)], f"unexpected schedule {got}")


def test_eighty_units_over_twenty_days() -> None:
    got = _pairs(generate_delivery_schedule(80, 20))
    _assert(got == [(4, 16), (8, 16), (12, 16), (16, 16), (20, 16)], f"unexpected schedule {got}")


def test_milestones_on_same_day_are_merged() -> None:
    got = _pairs(generate_delivery_schedule(3, 2))
    _assert(got == [(1, 2), (2, 1)], f"unexpected schedule {got}")


def test_non_positive_inputs_give_empty_schedule() -> None:
    _assert(generate_delivery_schedule(0, 20) == [], "zero requirement should mean no obligation")
    _assert(generate_delivery_schedule(50, 0) == [], "zero horizon should mean no obligation")
    _assert(generate_delivery_schedule(-5, 10) == [], "negative requirement should mean no obligation")


def test_sum_and_order_hold_for_many_inputs() -> None:
    for req in (1, 7, 33, 80, 99, 120, 257):
        for days in (1, 2, 5, 13, 20, 30):
            s = generate_delivery_schedule(req, days)
            total = sum(i.required_amount for i in s)
            _assert(abs(total - round_half_up(req)) <= 1, f"sum {total} != {req} for {days} days")
            ds = [i.day for i in s]
            _assert(ds == sorted(set(ds)), f"days not unique/ascending: {ds}")
            _assert(all(1 <= d <= days for d in ds), f"day out of range: {ds}")


def test_round_half_up() -> None:
    _assert(round_half_up(2.5) == 3, "2.5 rounds up")
    _assert(round_half_up(0.4) == 0, "0.4 rounds down")


def test_nothing_due_before_first_milestone() -> None:
    schedule = [DeliveryScheduleItem(day=5, required_amount=20), DeliveryScheduleItem(day=10, required_amount=30)]
    for day in range(0, 5):
        _assert(not is_milestone_missed(schedule, 0, day), f"nothing is due on day {day}")
    _assert(not is_milestone_missed([], 0, 50), "empty schedule is never missed")


def test_shortfall_stays_flagged_until_caught_up() -> None:
    schedule = [DeliveryScheduleItem(day=5, required_amount=20), DeliveryScheduleItem(day=10, required_amount=30)]
    _assert(is_milestone_missed(schedule, 19, 5), "19 < 20 on day 5")
    _assert(is_milestone_missed(schedule, 19, 7), "still behind on day 7")
    _assert(not is_milestone_missed(schedule, 20, 9), "caught up on day 9")
    _assert(is_milestone_missed(schedule, 49, 10), "49 < 50 on day 10")
    _assert(not is_milestone_missed(schedule, 50, 10), "on track on day 10")
    _assert(required_cumulative(schedule, 12) == (50, 10), "latest passed milestone is day 10")


def main() -> None:
    tests = [
        test_hundred_units_over_thirty_days,
        test_eighty_units_over_twenty_days,
        test_milestones_on_same_day_are_merged,
        test_non_positive_inputs_give_empty_schedule,
        test_sum_and_order_hold_for_many_inputs,
        test_round_half_up,
        test_nothing_due_before_first_milestone,
        test_shortfall_stays_flagged_until_caught_up,
    ]
    for t in tests:
        t()
        print(f"OK  {t.__name__}")
    print(f"ALL OK ({len(tests)} tests)")


if __name__ == "__main__":
    main()
