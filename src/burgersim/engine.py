from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from burgersim.costs import (
    calculate_production_cost,
    calculate_purchase_cost,
    calculate_revenue,
    calculate_transportation_cost,
    calculate_unit_cost,
    finite,
    get_holding_cost_breakdown,
    get_overstock_cost_breakdown,
    shipment_transport_cost,
)
from burgersim.demand import daily_demand, seeded_rng
from burgersim.models import (
    RAW_MATERIALS,
    Customer,
    CustomerOrder,
    DailyCosts,
    DailyHistoryEntry,
    GameAction,
    GameResult,
    GameState,
    Inventory,
    LatenessPenalty,
    LevelConfig,
    PendingOrder,
    Supplier,
)
from burgersim.schedule import is_milestone_missed, required_cumulative

logger = logging.getLogger(__name__)


INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
INVALID_PRODUCTION = "INVALID_PRODUCTION"
INVALID_ORDER = "INVALID_ORDER"
GAME_ALREADY_OVER = "GAME_ALREADY_OVER"


class EngineError(Exception):
    code = "ENGINE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = str(message)
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "error": self.message}


class ValidationError(EngineError):
    code = INVALID_ORDER


class InsufficientFundsError(EngineError):
    code = INSUFFICIENT_FUNDS


class TerminalStateError(EngineError):
    code = GAME_ALREADY_OVER


@dataclass
class EngineConfig:
    # Settled cash within this distance below zero is treated as zero.
    cash_tolerance: float = 1e-6


@dataclass
class DayOutcome:
    ok: bool
    state: GameState
    error: Optional[EngineError] = None

    @property
    def code(self) -> Optional[str]:
        return self.error.code if self.error is not None else None


def initialize_game_state(level: LevelConfig, rng_seed: Optional[int] = None) -> GameState:
    state = GameState(
        level_id=int(level.id),
        day=1,
        cash=float(level.initial_cash),
        inventory=copy.deepcopy(level.initial_inventory),
    )
    if rng_seed is not None:
        state.rng_seed = int(rng_seed)
    state.daily_demand = daily_demand(level.demand_model, state.day, seed=level.id)
    return state


def resolve_lead_time(entity: Union[Supplier, Customer], rng_seed: int, day: int, tag: str) -> int:
    """Lead time for an order placed on `day`.

    Entities with a random lead time draw from their range with a generator
    keyed on (seed, day, entity), so a replayed day resolves identically.
    """

    if entity.random_lead_time and entity.lead_time_range:
        rng = seeded_rng("lead", rng_seed, day, tag, entity.id)
        return max(0, int(rng.choice(list(entity.lead_time_range))))
    return max(0, int(entity.lead_time))


# ---------------------------------------------------------------------------
# Validation


def _projected_materials(state: GameState, action: GameAction, level: LevelConfig) -> Inventory:
    """Inventory available to production once today's arrivals are in."""

    inv = copy.deepcopy(state.inventory)
    for po in state.pending_supplier_orders:
        if int(po.days_remaining) <= 1:
            inv.add(po.material_type, int(po.quantity))
    for order in action.supplier_orders or []:
        supplier = level.supplier(order.supplier_id)
        if supplier is None:
            continue
        if resolve_lead_time(supplier, state.rng_seed, state.day, "supplier") == 0:
            for m in RAW_MATERIALS:
                inv.add(m, max(0, order.quantity(m)))
    return inv


def _is_whole(v: object) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _validate_supplier_orders(state: GameState, action: GameAction, level: LevelConfig) -> None:
    ordered: Dict[Tuple[int, str], int] = {}
    for order in action.supplier_orders or []:
        supplier = level.supplier(order.supplier_id) if _is_whole(order.supplier_id) else None
        if supplier is None:
            raise ValidationError(f"Unknown supplier: {order.supplier_id!r}", INVALID_ORDER)
        for m in RAW_MATERIALS:
            raw = getattr(order, m, 0)
            if not _is_whole(raw):
                raise ValidationError(
                    f"Order quantity for {m} from {supplier.name} must be a whole number, got {raw!r}", INVALID_ORDER
                )
            qty = int(raw)
            if qty < 0:
                raise ValidationError(f"Order quantity for {m} from {supplier.name} cannot be negative", INVALID_ORDER)
            if qty == 0:
                continue
            caps = supplier.capacity_per_game or {}
            if caps and int(caps.get(m, 0) or 0) <= 0:
                raise ValidationError(f"{supplier.name} does not sell {m}", INVALID_ORDER)
            if supplier.order_quantities and qty not in supplier.order_quantities:
                allowed = ", ".join(str(q) for q in supplier.order_quantities)
                raise ValidationError(f"{supplier.name} only ships {m} in lots of {allowed}", INVALID_ORDER)
            key = (int(supplier.id), m)
            ordered[key] = ordered.get(key, 0) + qty
            if caps:
                bought = int((state.supplier_deliveries.get(int(supplier.id)) or {}).get(m, 0) or 0)
                if bought + ordered[key] > int(caps[m]):
                    left = max(0, int(caps[m]) - bought)
                    raise ValidationError(
                        f"{supplier.name} can only supply {left} more {m} this game", INVALID_ORDER
                    )


def _validate_production(state: GameState, action: GameAction, level: LevelConfig) -> None:
    units = action.production
    if not isinstance(units, int) or isinstance(units, bool) or units < 0:
        raise ValidationError("Production must be a non-negative whole number", INVALID_PRODUCTION)

    projected = _projected_materials(state, action, level)
    if units == 0:
        return

    cap = level.production_capacity
    if cap is not None and units > int(cap):
        raise ValidationError(f"Production of {units} exceeds daily capacity of {cap}", INVALID_PRODUCTION)

    for m in RAW_MATERIALS:
        need = units * level.recipe.per_meal(m)
        have = projected.get(m)
        if need > have:
            raise ValidationError(
                f"Not enough {m} to produce {units} meals (need {need}, have {have})", INVALID_PRODUCTION
            )


def _validate_customer_orders(state: GameState, action: GameAction, level: LevelConfig) -> None:
    available = state.inventory.finished_goods + int(action.production or 0)
    dispatching: Dict[int, int] = {}
    total = 0
    for co in action.customer_orders or []:
        customer = level.customer(co.customer_id) if _is_whole(co.customer_id) else None
        if customer is None:
            raise ValidationError(f"Unknown customer: {co.customer_id!r}", INVALID_ORDER)
        if not _is_whole(co.quantity):
            raise ValidationError(
                f"Shipment to {customer.name} must be a whole number, got {co.quantity!r}", INVALID_ORDER
            )
        qty = int(co.quantity)
        if qty <= 0:
            raise ValidationError(f"Shipment to {customer.name} must be positive", INVALID_ORDER)
        if customer.allowed_shipment_sizes and qty not in customer.allowed_shipment_sizes:
            allowed = ", ".join(str(q) for q in customer.allowed_shipment_sizes)
            raise ValidationError(f"{customer.name} accepts shipments of {allowed} units only", INVALID_ORDER)

        dispatching[customer.id] = dispatching.get(customer.id, 0) + qty
        outstanding = int(customer.total_requirement) - int(state.customer_shipments.get(customer.id, 0) or 0)
        if dispatching[customer.id] > outstanding:
            raise ValidationError(
                f"{customer.name} only needs {max(0, outstanding)} more units", INVALID_ORDER
            )
        total += qty

    if total > available:
        raise ValidationError(
            f"Cannot ship {total} meals with only {available} finished goods available", INVALID_ORDER
        )


def validate_action(state: GameState, action: GameAction, level: LevelConfig) -> None:
    if state.game_over:
        raise TerminalStateError("The game is over; no more days can be played", GAME_ALREADY_OVER)
    _validate_supplier_orders(state, action, level)
    _validate_production(state, action, level)
    _validate_customer_orders(state, action, level)


def committed_spend(action: GameAction, level: LevelConfig) -> Dict[str, float]:
    purchases = calculate_purchase_cost(action, level)
    production = calculate_production_cost(int(action.production or 0), level)
    transportation = calculate_transportation_cost(action, level)
    return {
        "purchases": purchases,
        "production": production,
        "transportation": transportation,
        "total": purchases + production + transportation,
    }


def validate_affordability(state: GameState, action: GameAction, level: LevelConfig) -> Dict[str, float]:
    spend = committed_spend(action, level)
    if spend["total"] > float(state.cash):
        raise InsufficientFundsError(
            f"Insufficient funds. Total cost: {spend['total']:.2f} kr, Available cash: {float(state.cash):.2f} kr"
        )
    return spend


# ---------------------------------------------------------------------------
# Day processing steps (all mutate the working copy only)


def _advance_in_transit(state: GameState) -> Tuple[List[PendingOrder], List[CustomerOrder]]:
    arrived: List[PendingOrder] = []
    still_supplier: List[PendingOrder] = []
    for po in state.pending_supplier_orders:
        po.days_remaining = int(po.days_remaining) - 1
        if po.days_remaining <= 0:
            po.days_remaining = 0
            arrived.append(po)
        else:
            still_supplier.append(po)
    state.pending_supplier_orders = still_supplier
    for po in arrived:
        state.inventory.add(po.material_type, int(po.quantity))

    delivered: List[CustomerOrder] = []
    still_customer: List[CustomerOrder] = []
    for co in state.pending_customer_orders:
        co.days_remaining = int(co.days_remaining) - 1
        if co.days_remaining <= 0:
            co.days_remaining = 0
            delivered.append(co)
        else:
            still_customer.append(co)
    state.pending_customer_orders = still_customer
    for co in delivered:
        _record_delivery(state, co)
    return arrived, delivered


def _record_delivery(state: GameState, order: CustomerOrder) -> None:
    cid = int(order.customer_id)
    state.customer_deliveries[cid] = int(state.customer_deliveries.get(cid, 0) or 0) + int(order.quantity)


def _place_supplier_orders(state: GameState, action: GameAction, level: LevelConfig, day: int) -> Tuple[float, Dict[str, int]]:
    spent = 0.0
    purchased = {m: 0 for m in RAW_MATERIALS}
    for order in action.supplier_orders or []:
        supplier = level.supplier(order.supplier_id)
        if supplier is None:
            continue
        lead_time = resolve_lead_time(supplier, state.rng_seed, day, "supplier")
        for m in RAW_MATERIALS:
            qty = order.quantity(m)
            if qty <= 0:
                continue
            cost = float(qty) * calculate_unit_cost(qty, m, supplier)
            spent += cost
            purchased[m] += qty

            per_supplier = state.supplier_deliveries.setdefault(int(supplier.id), {})
            per_supplier[m] = int(per_supplier.get(m, 0) or 0) + qty

            if lead_time == 0:
                state.inventory.add(m, qty)
            else:
                state.pending_supplier_orders.append(
                    PendingOrder(
                        supplier_id=int(supplier.id),
                        material_type=m,
                        quantity=qty,
                        days_remaining=lead_time,
                        total_cost=cost,
                        supplier_name=supplier.name,
                        actual_lead_time=lead_time,
                    )
                )
    return spent, purchased


def _produce(state: GameState, units: int, level: LevelConfig) -> int:
    units = max(0, int(units))
    if units <= 0:
        return 0
    for m in RAW_MATERIALS:
        state.inventory.add(m, -units * level.recipe.per_meal(m))
    state.inventory.add("finished_goods", units)
    return units


def _dispatch_customer_orders(
    state: GameState, action: GameAction, level: LevelConfig, day: int
) -> Tuple[float, int, List[CustomerOrder]]:
    transport = 0.0
    dispatched = 0
    delivered_now: List[CustomerOrder] = []
    for co in action.customer_orders or []:
        customer = level.customer(co.customer_id)
        if customer is None:
            continue
        qty = int(co.quantity)
        state.inventory.add("finished_goods", -qty)
        dispatched += qty
        cid = int(customer.id)
        state.customer_shipments[cid] = int(state.customer_shipments.get(cid, 0) or 0) + qty

        shipment_cost = shipment_transport_cost(qty, customer.transport_costs)
        transport += shipment_cost
        lead_time = resolve_lead_time(customer, state.rng_seed, day, "customer")
        order = CustomerOrder(
            customer_id=cid,
            quantity=qty,
            days_remaining=lead_time,
            total_revenue=float(qty) * finite(customer.price_per_unit),
            transport_cost=shipment_cost,
            actual_lead_time=lead_time,
        )
        if lead_time == 0:
            _record_delivery(state, order)
            delivered_now.append(order)
        else:
            state.pending_customer_orders.append(order)
    return transport, dispatched, delivered_now


def _check_milestones(state: GameState, level: LevelConfig, day: int) -> List[LatenessPenalty]:
    penalties: List[LatenessPenalty] = []
    for customer in level.customers or ():
        schedule = customer.delivery_schedule or ()
        delivered = int(state.customer_deliveries.get(int(customer.id), 0) or 0)
        if not is_milestone_missed(schedule, delivered, day):
            continue
        required, milestone_day = required_cumulative(schedule, day)
        missed = required - delivered
        # Charged once, on the day the milestone falls due; later days stay flagged.
        charge = 0.0
        if milestone_day == day:
            charge = float(level.lateness_penalty_rate) * float(missed) * finite(customer.price_per_unit)
        penalties.append(
            LatenessPenalty(
                customer_id=int(customer.id),
                customer_name=customer.name,
                day=day,
                milestone_day=int(milestone_day or day),
                missed_amount=int(missed),
                penalty_amount=finite(charge),
            )
        )
    return penalties


def calculate_score(state: GameState, level: LevelConfig) -> int:
    divisor = float(level.score_divisor or 0.0)
    if divisor <= 0:
        divisor = 100.0
    score = math.floor(finite(state.cumulative_profit) / divisor)
    score -= count_violations(state) * max(0, int(level.score_penalty_per_violation))
    return int(min(score, int(level.max_score)))


def count_violations(state: GameState) -> int:
    """Missed milestones; follow-up records of the same shortfall carry no charge and are not counted."""

    return sum(1 for p in state.lateness_penalties if p.penalty_amount > 0)


def _is_bankrupt(state: GameState) -> bool:
    return float(state.cash) <= 0 and state.inventory.finished_goods <= 0 and not state.pending_customer_orders


def _advance(state: GameState, action: GameAction, level: LevelConfig, cfg: EngineConfig) -> GameState:
    # 1-2: nothing below runs unless the whole day is acceptable up front
    validate_action(state, action, level)
    validate_affordability(state, action, level)

    s = copy.deepcopy(state)
    day = int(s.day)
    opening_cash = float(s.cash)

    # 3
    arrived, delivered = _advance_in_transit(s)
    logger.debug("day %s: %d supplier arrivals, %d customer deliveries", day, len(arrived), len(delivered))

    # 4
    purchase_cost, purchased = _place_supplier_orders(s, action, level, day)

    # 5
    produced = _produce(s, int(action.production or 0), level)
    production_cost = calculate_production_cost(produced, level)
    transport_cost, dispatched, delivered_now = _dispatch_customer_orders(s, action, level, day)
    delivered = delivered + delivered_now

    revenue = calculate_revenue(delivered)
    delivered_by_customer: Dict[int, int] = {}
    for o in delivered:
        delivered_by_customer[int(o.customer_id)] = delivered_by_customer.get(int(o.customer_id), 0) + int(o.quantity)

    # 6
    holding_breakdown = get_holding_cost_breakdown(s.inventory, level)
    holding_cost = sum(holding_breakdown.values())
    overstock_breakdown = get_overstock_cost_breakdown(s.inventory, level)
    overstock_cost = sum(overstock_breakdown.values())

    # 7
    penalties = _check_milestones(s, level, day)
    penalty_cost = sum(p.penalty_amount for p in penalties)
    if penalties:
        logger.debug("day %s: %d customers behind schedule", day, len(penalties))
        s.lateness_penalties.extend(penalties)

    # 8
    costs = DailyCosts(
        purchases=finite(purchase_cost),
        production=finite(production_cost),
        holding=finite(holding_cost),
        overstock=finite(overstock_cost),
        transportation=finite(transport_cost),
        penalties=finite(penalty_cost),
    )
    costs.total = (
        costs.purchases + costs.production + costs.holding + costs.overstock + costs.transportation + costs.penalties
    )
    revenue = finite(revenue)
    profit = revenue - costs.total
    new_cash = opening_cash + profit
    insolvent = False
    if new_cash < 0:
        if new_cash > -abs(cfg.cash_tolerance):
            new_cash = 0.0
        elif costs.purchases + costs.production + costs.transportation > 0:
            raise InsufficientFundsError(
                f"Day {day} would end with negative cash ({new_cash:.2f} kr); "
                f"costs {costs.total:.2f} kr exceed cash plus revenue"
            )
        else:
            # Nothing discretionary was spent: settle negative and end the game.
            insolvent = True
    s.cash = new_cash

    # 9
    s.cumulative_profit = finite(s.cumulative_profit) + profit
    s.score = calculate_score(s, level)

    # 10
    s.history.append(
        DailyHistoryEntry(
            day=day,
            cash=finite(s.cash),
            revenue=revenue,
            costs=costs,
            profit=finite(profit),
            cumulative_profit=finite(s.cumulative_profit),
            score=int(s.score),
            production=int(produced),
            sales=int(dispatched),
            deliveries=sum(delivered_by_customer.values()),
            inventory=s.inventory.as_dict(),
            purchased=purchased,
            holding_breakdown={k: finite(v) for k, v in holding_breakdown.items()},
            overstock_breakdown={k: finite(v) for k, v in overstock_breakdown.items()},
            customer_deliveries=delivered_by_customer,
            lateness_penalties=copy.deepcopy(penalties),
        )
    )
    s.day = day + 1
    if day >= int(level.days_to_complete):
        s.game_over = True
    elif insolvent:
        logger.info("day %s: unavoidable charges left cash at %.2f, bankrupt", day, s.cash)
        s.game_over = True
    elif _is_bankrupt(s):
        logger.info("day %s: bankrupt with no goods left to sell", day)
        s.game_over = True
    s.daily_demand = daily_demand(level.demand_model, s.day, seed=level.id)
    return s


def process_day(
    state: GameState,
    action: Optional[GameAction],
    level: LevelConfig,
    cfg: Optional[EngineConfig] = None,
) -> DayOutcome:
    """Advance `state` by one day.

    The input state is never modified. On success the outcome carries the next
    state; on any rejection it carries the untouched input state and a typed
    error.
    """

    cfg = cfg or EngineConfig()
    action = action or GameAction()
    try:
        new_state = _advance(state, action, level, cfg)
    except EngineError as e:
        logger.warning("day %s rejected for level %s: %s %s", state.day, level.id, e.code, e.message)
        return DayOutcome(ok=False, state=state, error=e)
    return DayOutcome(ok=True, state=new_state)


def is_game_over(state: GameState, level: LevelConfig) -> bool:
    return bool(state.game_over) or int(state.day) > int(level.days_to_complete)


def calculate_game_result(state: GameState, level: LevelConfig, user_id: str) -> GameResult:
    return GameResult(
        level_id=int(level.id),
        user_id=str(user_id),
        final_day=int(state.day),
        final_cash=finite(state.cash),
        final_inventory=state.inventory.as_dict(),
        cumulative_profit=finite(state.cumulative_profit),
        score=int(state.score),
        days_played=len(state.history),
        lateness_penalties=count_violations(state),
    )
