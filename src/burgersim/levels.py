from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from burgersim.models import (
    Customer,
    DeliveryScheduleItem,
    DemandModel,
    Inventory,
    LevelConfig,
    MapPosition,
    OverstockRule,
    Supplier,
)
from burgersim.schedule import generate_delivery_schedule


def _starting_inventory() -> Inventory:
    return Inventory(patty=100, bun=150, cheese=250, potato=300, finished_goods=0)


_HOLDING_COSTS: Dict[str, float] = {
    "patty": 1.0,
    "bun": 0.3,
    "cheese": 0.5,
    "potato": 0.2,
    "finished_goods": 2.0,
}


def _overstock(patty: float, bun: float, cheese: float, potato: float, finished: float) -> Dict[str, OverstockRule]:
    return {
        "patty": OverstockRule(threshold=100, penalty_per_unit=patty),
        # Buns are never overstocked
        "bun": OverstockRule(threshold=None, penalty_per_unit=bun),
        "cheese": OverstockRule(threshold=250, penalty_per_unit=cheese),
        "potato": OverstockRule(threshold=300, penalty_per_unit=potato),
        "finished_goods": OverstockRule(threshold=50, penalty_per_unit=finished),
    }


def standard_suppliers(
    lead_times: Sequence[int],
    random_ranges: Optional[Dict[int, Tuple[int, ...]]] = None,
) -> Tuple[Supplier, ...]:
    """The three suppliers shared by every level, with level-specific lead times."""

    ranges = random_ranges or {}
    return (
        Supplier(
            id=1,
            name="Pink Patty",
            lead_time=int(lead_times[0]),
            capacity_per_game={"patty": 150, "bun": 200, "cheese": 500, "potato": 0},
            material_prices={"patty": 10.0, "bun": 3.0, "cheese": 1.5, "potato": 0.0},
            shipment_prices={
                "patty": {50: 116.0, 100: 134.0},
                "bun": {50: 89.0, 100: 98.0, 200: 134.0},
                "cheese": {50: 65.0, 100: 89.0, 200: 116.0},
                "potato": {50: 98.0, 100: 134.0, 200: 134.0},
            },
            random_lead_time=1 in ranges,
            lead_time_range=ranges.get(1, ()),
        ),
        Supplier(
            id=2,
            name="Brown Sauce",
            lead_time=int(lead_times[1]),
            capacity_per_game={"patty": 200, "bun": 200, "cheese": 0, "potato": 850},
            material_prices={"patty": 13.0, "bun": 2.7, "cheese": 0.0, "potato": 1.6},
            shipment_prices={
                "patty": {50: 121.0, 100: 139.0, 200: 186.0},
                "bun": {50: 92.0, 100: 102.0, 200: 139.0},
                "cheese": {50: 68.0, 100: 92.0, 200: 121.0},
                "potato": {50: 102.0, 100: 139.0, 200: 139.0},
            },
            random_lead_time=2 in ranges,
            lead_time_range=ranges.get(2, ()),
        ),
        Supplier(
            id=3,
            name="Firehouse Foods",
            lead_time=int(lead_times[2]),
            capacity_per_game={"patty": 0, "bun": 250, "cheese": 500, "potato": 700},
            material_prices={"patty": 0.0, "bun": 3.4, "cheese": 1.8, "potato": 1.2},
            shipment_prices={
                "patty": {50: 126.0, 100: 145.0, 150: 175.0},
                "bun": {50: 96.0, 100: 106.0, 150: 126.0},
                "cheese": {50: 71.0, 100: 96.0, 150: 106.0},
                "potato": {50: 106.0, 100: 145.0, 150: 145.0},
            },
            random_lead_time=3 in ranges,
            lead_time_range=ranges.get(3, ()),
        ),
    )


_CUSTOMER_BASE = (
    (1, "Yummy Zone", "A local restaurant chain with specific delivery requirements.", 49.0, {20: 134.0, 40: 179.0, 100: 204.0}),
    (2, "Toast-to-go", "A quick-service restaurant requiring regular deliveries.", 46.0, {20: 139.0, 40: 186.0, 100: 213.0}),
    (3, "StudyFuel", "A campus food service catering to university students.", 47.0, {20: 145.0, 40: 194.0, 100: 222.0}),
)


def standard_customers(
    lead_times: Sequence[int],
    requirements: Sequence[int],
    schedules: Optional[Sequence[Sequence[Tuple[int, int]]]] = None,
    days_to_complete: int = 20,
    random_ranges: Optional[Dict[int, Tuple[int, ...]]] = None,
    transport_costs: Optional[Sequence[Dict[int, float]]] = None,
) -> Tuple[Customer, ...]:
    """The three restaurants, with level-specific lead times and obligations.

    Without explicit `schedules` the milestones are generated from the
    requirement and the level horizon.
    """

    ranges = random_ranges or {}
    out: List[Customer] = []
    for i, (cid, name, desc, price, transport) in enumerate(_CUSTOMER_BASE):
        if schedules is not None:
            sched = tuple(DeliveryScheduleItem(day=d, required_amount=a) for d, a in schedules[i])
        else:
            sched = tuple(generate_delivery_schedule(requirements[i], days_to_complete))
        out.append(
            Customer(
                id=cid,
                name=name,
                description=desc,
                lead_time=int(lead_times[i]),
                total_requirement=int(requirements[i]),
                delivery_schedule=sched,
                price_per_unit=price,
                transport_costs=dict(transport_costs[i]) if transport_costs else dict(transport),
                allowed_shipment_sizes=(20, 40, 100),
                random_lead_time=cid in ranges,
                lead_time_range=ranges.get(cid, ()),
            )
        )
    return tuple(out)


def _positions(
    factory: Tuple[float, float],
    suppliers: Sequence[Tuple[float, float]],
    restaurants: Sequence[Tuple[float, float]],
) -> dict:
    names_s = ("Pink Patty", "Brown Sauce", "Firehouse Foods")
    names_c = ("Yummy Zone", "Toast-to-go", "StudyFuel")
    return {
        "factory_position": MapPosition(x=factory[0], y=factory[1], name="Main Factory"),
        "supplier_positions": tuple(
            MapPosition(x=x, y=y, name=names_s[i], ref_id=i + 1) for i, (x, y) in enumerate(suppliers)
        ),
        "customer_positions": tuple(
            MapPosition(x=x, y=y, name=names_c[i], ref_id=i + 1) for i, (x, y) in enumerate(restaurants)
        ),
    }


LEVEL_0 = LevelConfig(
    id=0,
    name="The First Spark",
    description="Learn the fundamentals of inventory management and supply chain",
    days_to_complete=20,
    initial_cash=2500.0,
    initial_inventory=_starting_inventory(),
    production_cost_per_unit=4.0,
    holding_costs=dict(_HOLDING_COSTS),
    overstock=_overstock(2.5, 2.5, 2.5, 2.5, 2.5),
    suppliers=standard_suppliers((0, 0, 0)),
    customers=standard_customers(
        lead_times=(0, 0, 0),
        requirements=(80, 120, 100),
        schedules=(((3, 20), (20, 60)), ((6, 40), (20, 80)), ((8, 60), (20, 40))),
    ),
    demand_model=DemandModel(
        kind="sinusoidal", base_quantity=10, price_per_unit=30.0, variation=2, weekly_boost=5, weekly_boost_day=1
    ),
    max_score=1000,
    **_positions((515, 432), ((61, 470), (349, 259), (283, 635)), ((657, 625), (760, 175), (761, 417))),
)

LEVEL_1 = LevelConfig(
    id=1,
    name="Timing is Everything",
    description="Manage your burger restaurant supply chain with fixed delivery times",
    days_to_complete=20,
    initial_cash=2500.0,
    initial_inventory=_starting_inventory(),
    production_cost_per_unit=4.0,
    holding_costs=dict(_HOLDING_COSTS),
    overstock=_overstock(2.0, 1.0, 1.0, 0.5, 3.0),
    suppliers=standard_suppliers((1, 2, 3)),
    customers=standard_customers(lead_times=(2, 3, 1), requirements=(80, 120, 100), days_to_complete=20),
    demand_model=DemandModel(kind="constant", base_quantity=10, price_per_unit=30.0),
    max_score=1200,
    **_positions((515, 432), ((30, 360), (460, 150), (970, 325)), ((590, 750), (795, 125), (55, 610))),
)

LEVEL_2 = LevelConfig(
    id=2,
    name="Advanced Supply Chain",
    description="Manage your restaurant with multiple suppliers, longer lead times, and more demand variation.",
    days_to_complete=20,
    initial_cash=2500.0,
    initial_inventory=_starting_inventory(),
    production_cost_per_unit=4.0,
    holding_costs=dict(_HOLDING_COSTS),
    overstock=_overstock(2.0, 1.0, 1.0, 0.5, 3.0),
    suppliers=standard_suppliers((0, 0, 0)),
    customers=standard_customers(
        lead_times=(2, 2, 2),
        requirements=(120, 160, 140),
        schedules=(
            ((3, 20), (11, 40), (20, 60)),
            ((6, 40), (20, 120)),
            ((8, 60), (12, 40), (20, 40)),
        ),
        transport_costs=(
            {20: 140.0, 40: 185.0, 100: 210.0},
            {20: 145.0, 40: 192.0, 100: 220.0},
            {20: 150.0, 40: 200.0, 100: 225.0},
        ),
    ),
    demand_model=DemandModel(
        kind="sinusoidal", base_quantity=12, price_per_unit=30.0, amplitude=4.0, period_days=10, variation=3
    ),
    max_score=1500,
    **_positions((400, 500), ((80, 300), (500, 100), (950, 350)), ((600, 800), (800, 150), (100, 650))),
)

LEVEL_3 = LevelConfig(
    id=3,
    name="Uncertainty Unleashed",
    description="Navigate complex supply chains with variable market conditions.",
    days_to_complete=30,
    initial_cash=2500.0,
    initial_inventory=_starting_inventory(),
    production_cost_per_unit=4.0,
    holding_costs=dict(_HOLDING_COSTS),
    overstock=_overstock(2.0, 1.0, 1.0, 0.5, 3.0),
    suppliers=standard_suppliers((1, 2, 3), random_ranges={2: (1, 2, 3)}),
    customers=standard_customers(
        lead_times=(2, 3, 1),
        requirements=(80, 120, 100),
        days_to_complete=30,
        random_ranges={1: (1, 2, 3)},
    ),
    demand_model=DemandModel(
        kind="sinusoidal", base_quantity=12, price_per_unit=30.0, amplitude=5.0, period_days=14, variation=4
    ),
    max_score=1400,
    **_positions((515, 432), ((30, 360), (460, 150), (970, 325)), ((590, 750), (795, 125), (55, 610))),
)

# Placeholder level: no suppliers and no customers yet.
LEVEL_SANDBOX = LevelConfig(
    id=99,
    name="Sandbox",
    description="Unfinished level used to try production without any trading partners.",
    days_to_complete=20,
    initial_cash=10000.0,
    initial_inventory=_starting_inventory(),
    production_cost_per_unit=4.0,
    holding_costs=dict(_HOLDING_COSTS),
)

_LEVELS: Dict[int, LevelConfig] = {lv.id: lv for lv in (LEVEL_0, LEVEL_1, LEVEL_2, LEVEL_3, LEVEL_SANDBOX)}


def get_level_config(level_id: int) -> LevelConfig:
    try:
        return _LEVELS[int(level_id)]
    except (KeyError, TypeError, ValueError):
        raise KeyError(f"unknown level: {level_id!r}") from None


def list_levels() -> List[LevelConfig]:
    return [_LEVELS[k] for k in sorted(_LEVELS)]


def level_summary(level: LevelConfig) -> dict:
    return {
        "id": level.id,
        "name": level.name,
        "description": level.description,
        "days_to_complete": level.days_to_complete,
        "initial_cash": level.initial_cash,
        "max_score": level.max_score,
        "suppliers": len(level.suppliers or ()),
        "customers": len(level.customers or ()),
    }
