from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

RAW_MATERIALS: Tuple[str, ...] = ("patty", "bun", "cheese", "potato")
INVENTORY_KINDS: Tuple[str, ...] = RAW_MATERIALS + ("finished_goods",)


@dataclass
class Inventory:
    patty: int = 0
    bun: int = 0
    cheese: int = 0
    potato: int = 0
    finished_goods: int = 0

    def get(self, kind: str) -> int:
        return int(getattr(self, kind, 0) or 0)

    def add(self, kind: str, qty: int) -> None:
        setattr(self, kind, self.get(kind) + int(qty))

    def as_dict(self) -> Dict[str, int]:
        return {k: self.get(k) for k in INVENTORY_KINDS}


@dataclass
class PendingOrder:
    supplier_id: int
    material_type: str
    quantity: int
    days_remaining: int
    total_cost: float = 0.0
    supplier_name: str = ""
    actual_lead_time: int = 0


@dataclass
class CustomerOrder:
    customer_id: int
    quantity: int
    days_remaining: int
    total_revenue: float = 0.0
    transport_cost: float = 0.0
    actual_lead_time: int = 0


@dataclass(frozen=True)
class DeliveryScheduleItem:
    day: int
    required_amount: int


@dataclass
class LatenessPenalty:
    customer_id: int
    customer_name: str
    day: int
    milestone_day: int
    missed_amount: int
    penalty_amount: float = 0.0


@dataclass
class DailyDemand:
    quantity: int = 0
    price_per_unit: float = 0.0


@dataclass
class DailyCosts:
    purchases: float = 0.0
    production: float = 0.0
    holding: float = 0.0
    overstock: float = 0.0
    transportation: float = 0.0
    penalties: float = 0.0
    total: float = 0.0


@dataclass
class DailyHistoryEntry:
    day: int
    cash: float = 0.0
    revenue: float = 0.0
    costs: DailyCosts = field(default_factory=DailyCosts)
    profit: float = 0.0
    cumulative_profit: float = 0.0
    score: int = 0

    production: int = 0
    sales: int = 0  # units dispatched to customers today
    deliveries: int = 0  # units that reached customers today

    inventory: Dict[str, int] = field(default_factory=dict)
    purchased: Dict[str, int] = field(default_factory=dict)
    holding_breakdown: Dict[str, float] = field(default_factory=dict)
    overstock_breakdown: Dict[str, float] = field(default_factory=dict)
    customer_deliveries: Dict[int, int] = field(default_factory=dict)
    lateness_penalties: List[LatenessPenalty] = field(default_factory=list)


@dataclass
class GameState:
    level_id: int = 0
    day: int = 1
    cash: float = 0.0

    inventory: Inventory = field(default_factory=Inventory)
    pending_supplier_orders: List[PendingOrder] = field(default_factory=list)
    pending_customer_orders: List[CustomerOrder] = field(default_factory=list)

    # customer_id -> cumulative units delivered / dispatched
    customer_deliveries: Dict[int, int] = field(default_factory=dict)
    customer_shipments: Dict[int, int] = field(default_factory=dict)
    # supplier_id -> material -> cumulative units purchased
    supplier_deliveries: Dict[int, Dict[str, int]] = field(default_factory=dict)

    history: List[DailyHistoryEntry] = field(default_factory=list)
    cumulative_profit: float = 0.0
    score: int = 0
    game_over: bool = False
    lateness_penalties: List[LatenessPenalty] = field(default_factory=list)

    daily_demand: DailyDemand = field(default_factory=DailyDemand)
    rng_seed: int = 20260101


@dataclass
class SupplierOrder:
    supplier_id: int
    patty: int = 0
    bun: int = 0
    cheese: int = 0
    potato: int = 0

    def quantity(self, material: str) -> int:
        return int(getattr(self, material, 0) or 0)


@dataclass
class CustomerOrderAction:
    customer_id: int
    quantity: int


@dataclass
class GameAction:
    supplier_orders: List[SupplierOrder] = field(default_factory=list)
    production: int = 0
    customer_orders: List[CustomerOrderAction] = field(default_factory=list)


@dataclass
class GameResult:
    level_id: int
    user_id: str
    final_day: int
    final_cash: float
    final_inventory: Dict[str, int]
    cumulative_profit: float
    score: int
    days_played: int
    lateness_penalties: int


# ---------------------------------------------------------------------------
# Level configuration (immutable, shared by every player of a level)


@dataclass(frozen=True)
class OverstockRule:
    # None: the kind is exempt from overstock charges
    threshold: Optional[int] = None
    penalty_per_unit: float = 0.0


@dataclass(frozen=True)
class Recipe:
    patty: int = 1
    bun: int = 2
    cheese: int = 3
    potato: int = 4

    def per_meal(self, material: str) -> int:
        return int(getattr(self, material, 0) or 0)


@dataclass(frozen=True)
class Supplier:
    id: int
    name: str
    lead_time: int = 0
    capacity_per_game: Dict[str, int] = field(default_factory=dict)
    material_prices: Dict[str, float] = field(default_factory=dict)
    # material -> order quantity -> shipment price for that whole order
    shipment_prices: Dict[str, Dict[int, float]] = field(default_factory=dict)
    shipment_prices_include_base_cost: bool = False
    random_lead_time: bool = False
    lead_time_range: Tuple[int, ...] = ()
    # Empty: any quantity can be ordered
    order_quantities: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Customer:
    id: int
    name: str
    description: str = ""
    lead_time: int = 0
    total_requirement: int = 0
    delivery_schedule: Tuple[DeliveryScheduleItem, ...] = ()
    price_per_unit: float = 0.0
    # shipment size -> transport cost for that shipment
    transport_costs: Dict[int, float] = field(default_factory=dict)
    allowed_shipment_sizes: Tuple[int, ...] = ()
    random_lead_time: bool = False
    lead_time_range: Tuple[int, ...] = ()


@dataclass(frozen=True)
class DemandModel:
    kind: str = "constant"  # constant|sinusoidal|table
    base_quantity: int = 0
    price_per_unit: float = 0.0
    amplitude: float = 0.0
    period_days: int = 7
    variation: int = 0
    weekly_boost: int = 0
    weekly_boost_day: int = 1
    table: Tuple[int, ...] = ()


@dataclass(frozen=True)
class MapPosition:
    x: float
    y: float
    name: str = ""
    ref_id: int = 0


@dataclass(frozen=True)
class LevelConfig:
    id: int
    name: str
    description: str = ""
    days_to_complete: int = 20
    initial_cash: float = 0.0
    initial_inventory: Inventory = field(default_factory=Inventory)

    production_cost_per_unit: float = 0.0
    production_capacity: Optional[int] = None
    recipe: Recipe = field(default_factory=Recipe)

    holding_costs: Dict[str, float] = field(default_factory=dict)
    overstock: Dict[str, OverstockRule] = field(default_factory=dict)

    suppliers: Tuple[Supplier, ...] = ()
    customers: Tuple[Customer, ...] = ()
    demand_model: DemandModel = field(default_factory=DemandModel)

    max_score: int = 1000
    score_divisor: float = 100.0
    score_penalty_per_violation: int = 0
    lateness_penalty_rate: float = 0.4

    # Presentation only
    factory_position: Optional[MapPosition] = None
    supplier_positions: Tuple[MapPosition, ...] = ()
    customer_positions: Tuple[MapPosition, ...] = ()

    def supplier(self, supplier_id: int) -> Optional[Supplier]:
        for s in self.suppliers or ():
            if int(s.id) == int(supplier_id):
                return s
        return None

    def customer(self, customer_id: int) -> Optional[Customer]:
        for c in self.customers or ():
            if int(c.id) == int(customer_id):
                return c
        return None
