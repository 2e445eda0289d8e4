from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple

from burgersim.models import DeliveryScheduleItem

logger = logging.getLogger(__name__)

MILESTONE_FRACTIONS: Tuple[float, ...] = (0.2, 0.4, 0.6, 0.8, 1.0)


def round_half_up(x: float) -> int:
    return int(math.floor(float(x) + 0.5))


def generate_delivery_schedule(total_requirement: float, total_days: int) -> List[DeliveryScheduleItem]:
    """Split a delivery requirement into cumulative milestones.

    Milestones sit at 20/40/60/80/100% of the horizon. Each item holds the
    increment due on its day; increments landing on the same day are merged.
    Non-positive inputs mean "no obligation" and give an empty schedule.
    """

    if total_requirement is None or total_days is None or total_requirement <= 0 or total_days <= 0:
        logger.warning(
            "empty delivery schedule for total_requirement=%r total_days=%r", total_requirement, total_days
        )
        return []

    by_day: Dict[int, int] = {}
    previous_target = 0
    for fraction in MILESTONE_FRACTIONS:
        day = max(1, round_half_up(float(total_days) * fraction))
        target = round_half_up(float(total_requirement) * fraction)
        amount = target - previous_target
        if amount <= 0:
            continue
        by_day[day] = by_day.get(day, 0) + amount
        previous_target = target

    return [DeliveryScheduleItem(day=d, required_amount=a) for d, a in sorted(by_day.items())]


def required_cumulative(
    schedule: Optional[Sequence[DeliveryScheduleItem]], current_day: int
) -> Tuple[int, Optional[int]]:
    """Return (amount due by the latest passed milestone, that milestone's day)."""

    if not schedule or int(current_day) <= 0:
        return 0, None
    passed = [item for item in schedule if int(item.day) <= int(current_day)]
    if not passed:
        return 0, None
    last_day = max(int(item.day) for item in passed)
    required = sum(int(item.required_amount) for item in schedule if int(item.day) <= last_day)
    return required, last_day


def is_milestone_missed(
    schedule: Optional[Sequence[DeliveryScheduleItem]], delivered_cumulative: float, current_day: int
) -> bool:
    required, last_day = required_cumulative(schedule, current_day)
    if last_day is None:
        return False
    return float(delivered_cumulative) < float(required)
