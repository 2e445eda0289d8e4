from __future__ import annotations

import math
from typing import Dict, Iterable, Mapping, Optional

from burgersim.models import (
    INVENTORY_KINDS,
    RAW_MATERIALS,
    CustomerOrder,
    GameAction,
    Inventory,
    LevelConfig,
    Recipe,
    Supplier,
)

# Annual carrying-cost rate, charged daily.
ANNUAL_HOLDING_RATE = 0.25
DAYS_IN_YEAR = 365


def finite(x: object) -> float:
    try:
        v = float(x)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(v) or math.isinf(v):
        return 0.0
    return v


def get_holding_cost_breakdown(inventory: Inventory, level: LevelConfig) -> Dict[str, float]:
    """Daily holding cost per inventory kind.

    Kinds without a configured holding rate are left out of the mapping.
    """

    rates = level.holding_costs or {}
    out: Dict[str, float] = {}
    for kind in INVENTORY_KINDS:
        if kind not in rates:
            continue
        qty = max(0, inventory.get(kind))
        out[kind] = (float(qty) * finite(rates[kind]) * ANNUAL_HOLDING_RATE) / DAYS_IN_YEAR
    return out


def calculate_holding_cost(inventory: Inventory, level: LevelConfig) -> float:
    return sum(get_holding_cost_breakdown(inventory, level).values())


def get_overstock_cost_breakdown(inventory: Inventory, level: LevelConfig) -> Dict[str, float]:
    out: Dict[str, float] = {}
    for kind in INVENTORY_KINDS:
        rule = (level.overstock or {}).get(kind)
        if rule is None or rule.threshold is None:
            out[kind] = 0.0
            continue
        excess = max(0, inventory.get(kind) - int(rule.threshold))
        out[kind] = float(excess) * max(0.0, finite(rule.penalty_per_unit))
    return out


def calculate_overstock_cost(inventory: Inventory, level: LevelConfig) -> float:
    return sum(get_overstock_cost_breakdown(inventory, level).values())


def calculate_unit_cost(quantity: int, material: str, supplier: Supplier) -> float:
    """Unit price for an order of `quantity` units, shipment included.

    The shipment table prices a whole order of a given size; it is spread
    over the ordered units. Sizes missing from the table ship for free.
    """

    qty = int(quantity)
    if qty <= 0:
        return 0.0

    base = finite((supplier.material_prices or {}).get(material, 0.0))
    table = (supplier.shipment_prices or {}).get(material) or {}
    shipment = finite(table.get(qty, 0.0))
    shipment_per_unit = shipment / float(qty) if shipment > 0 else 0.0

    if supplier.shipment_prices_include_base_cost and shipment > 0:
        return shipment_per_unit
    return base + shipment_per_unit


def get_purchase_cost_breakdown(action: GameAction, level: LevelConfig) -> Dict[str, float]:
    out = {m: 0.0 for m in RAW_MATERIALS}
    for order in action.supplier_orders or []:
        supplier = level.supplier(order.supplier_id)
        if supplier is None:
            continue
        for m in RAW_MATERIALS:
            qty = order.quantity(m)
            if qty > 0:
                out[m] += float(qty) * calculate_unit_cost(qty, m, supplier)
    return out


def calculate_purchase_cost(action: GameAction, level: LevelConfig) -> float:
    return sum(get_purchase_cost_breakdown(action, level).values())


def calculate_production_cost(units: int, level: LevelConfig) -> float:
    return float(max(0, int(units))) * finite(level.production_cost_per_unit)


def shipment_transport_cost(quantity: int, transport_costs: Mapping[int, float]) -> float:
    return finite((transport_costs or {}).get(int(quantity), 0.0))


def calculate_transportation_cost(action: GameAction, level: LevelConfig) -> float:
    total = 0.0
    for co in action.customer_orders or []:
        customer = level.customer(co.customer_id)
        if customer is None or int(co.quantity) <= 0:
            continue
        total += shipment_transport_cost(co.quantity, customer.transport_costs)
    return total


def calculate_revenue(delivered: Iterable[CustomerOrder], level: Optional[LevelConfig] = None) -> float:
    """Revenue of shipments that reached their customer.

    Each shipment carries the revenue priced when it was dispatched; when a
    level is given the customer's current price is used instead.
    """

    total = 0.0
    for order in delivered:
        if level is not None:
            customer = level.customer(order.customer_id)
            if customer is not None:
                total += float(order.quantity) * finite(customer.price_per_unit)
                continue
        total += finite(order.total_revenue)
    return total


def max_producible(inventory: Inventory, recipe: Recipe) -> int:
    limits = []
    for m in RAW_MATERIALS:
        per = recipe.per_meal(m)
        if per <= 0:
            continue
        limits.append(max(0, inventory.get(m)) // per)
    if not limits:
        return 0
    return int(min(limits))
