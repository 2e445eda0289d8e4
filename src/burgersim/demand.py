from __future__ import annotations

import math
import random
import zlib
from typing import Sequence

from burgersim.models import DailyDemand, DemandModel


def stable_u32(s: str) -> int:
    """Return a stable unsigned 32-bit hash for seeding.

    Python's built-in hash() is randomized per process; avoid it for reproducibility.
    """

    return int(zlib.crc32(s.encode("utf-8")) & 0xFFFFFFFF)


def seeded_rng(*parts: object) -> random.Random:
    return random.Random(stable_u32(":".join(str(p) for p in parts)))


def _jitter(variation: int, rng: random.Random) -> int:
    v = max(0, int(variation))
    if v <= 0:
        return 0
    return rng.randint(-v, v)


def daily_demand(model: DemandModel, day: int, seed: object = 0) -> DailyDemand:
    """Market demand for `day`, a pure function of (model, day, seed)."""

    kind = str(model.kind or "constant").strip().lower()
    price = max(0.0, float(model.price_per_unit or 0.0))
    d = int(day)

    if kind == "table":
        table = tuple(model.table or ())
        if table and 1 <= d <= len(table):
            qty = int(table[d - 1])
        else:
            qty = int(model.base_quantity)
        return DailyDemand(quantity=max(0, qty), price_per_unit=price)

    if kind == "sinusoidal":
        period = max(1, int(model.period_days or 1))
        wave = float(model.amplitude) * math.sin(2.0 * math.pi * float(d) / float(period))
        boost = int(model.weekly_boost) if d % 7 == int(model.weekly_boost_day) % 7 else 0
        rng = seeded_rng("demand", seed, d)
        qty = int(model.base_quantity) + int(round(wave)) + boost + _jitter(model.variation, rng)
        return DailyDemand(quantity=max(0, qty), price_per_unit=price)

    # Unknown kinds fall back to constant demand
    return DailyDemand(quantity=max(0, int(model.base_quantity)), price_per_unit=price)


def demand_forecast(model: DemandModel, start_day: int, days: int, seed: object = 0) -> Sequence[DailyDemand]:
    return [daily_demand(model, start_day + i, seed) for i in range(max(0, int(days)))]
