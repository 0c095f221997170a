"""
Cost allocation primitives for tours.

All functions here are pure and total: they accept partially filled or empty
records and never raise. Every amount a guest is charged, and every cost that
must be fully recovered, is rounded up to a whole Taka.
"""

import math
from typing import Optional

from src.config import settings
from src.tours.schemas import BusConfig, BusFareEstimate, BuyRates, Guest, SeatType, Tour
from src.tours.utils import to_number

__all__ = [
    "to_number",
    "guest_seats",
    "total_daily_expenses",
    "total_other_fixed_costs",
    "resolve_penalty_amount",
    "estimate_bus_fare",
    "compute_buy_rates",
]

COUPLE_SEATS = 2

def guest_seats(guest: Guest) -> float:
    """Seats occupied by a guest entry.

    A couple is always two seats. Otherwise the pax breakdown wins over the flat
    seat count, and an entry with no seat data still counts as one seat. An
    empty breakdown is ignored.
    """
    if guest.is_couple:
        return COUPLE_SEATS
    if _has_breakdown(guest):
        return guest.pax_breakdown.total
    return to_number(guest.seat_count) or 1

def seats_by_category(guest: Guest) -> dict:
    """Split a non-couple guest's seats into regular/disc1/disc2.

    Uses the pax breakdown when present, else puts every seat under the legacy
    ``seat_type`` tag.
    """
    if _has_breakdown(guest):
        return {
            SeatType.REGULAR: guest.pax_breakdown.regular,
            SeatType.DISC1: guest.pax_breakdown.disc1,
            SeatType.DISC2: guest.pax_breakdown.disc2,
        }
    split = {SeatType.REGULAR: 0, SeatType.DISC1: 0, SeatType.DISC2: 0}
    split[guest.seat_type or SeatType.REGULAR] = guest_seats(guest)
    return split

def _has_breakdown(guest: Guest) -> bool:
    return guest.pax_breakdown is not None and guest.pax_breakdown.total > 0

def total_daily_expenses(tour: Tour) -> float:
    return sum(day.total for day in tour.costs.daily_expenses)

def total_other_fixed_costs(tour: Tour) -> float:
    return sum(item.amount for item in tour.costs.other_fixed_costs)

def resolve_penalty_amount(tour: Tour) -> float:
    """Per-absent-seat charge; an unset penalty falls back to the configured default"""
    if tour.penalty_amount is None:
        return settings.DEFAULT_PENALTY_AMOUNT
    return tour.penalty_amount

def estimate_bus_fare(bus_config: Optional[BusConfig]) -> BusFareEstimate:
    """Project per-category bus fares from the configured seat inventory.

    The discount given to disc1/disc2 seats is recovered flatly from regular
    seats. This is a planning preview; settlements use ``compute_buy_rates``.
    """
    if bus_config is None:
        return BusFareEstimate()

    total_rent = to_number(bus_config.total_rent)
    regular_seats = to_number(bus_config.regular_seats)
    discount1_seats = to_number(bus_config.discount1_seats)
    discount1_amount = to_number(bus_config.discount1_amount)
    discount2_seats = to_number(bus_config.discount2_seats)
    discount2_amount = to_number(bus_config.discount2_amount)

    total_seats = regular_seats + discount1_seats + discount2_seats
    if total_seats <= 0:
        return BusFareEstimate()

    base_fare = total_rent / total_seats
    total_discount_loss = (discount1_seats * discount1_amount) + (discount2_seats * discount2_amount)
    extra_per_regular = total_discount_loss / regular_seats if regular_seats > 0 else 0

    return BusFareEstimate(
        base_fare=math.ceil(base_fare),
        regular_fare=math.ceil(base_fare + extra_per_regular),
        discount1_fare=math.ceil(base_fare - discount1_amount),
        discount2_fare=math.ceil(base_fare - discount2_amount),
        total_discount_loss=math.ceil(total_discount_loss),
    )

def compute_buy_rates(tour: Optional[Tour]) -> BuyRates:
    """Cost of one seat per category, and of one couple unit, given who showed up.

    Variable costs (host fee, other fixed costs, daily expenses) and the bus rent
    plus the configured discount gap are spread over every received seat. Hotel
    cost is split between regular seats and couple units, which draw from their
    own pool. Each component is rounded up independently.
    """
    if tour is None:
        return BuyRates()

    total_received = 0
    received_couple_seats = 0
    received_regular_seats = 0
    for agency in tour.partner_agencies:
        for guest in agency.guests:
            if not guest.is_received:
                continue
            seats = guest_seats(guest)
            total_received += seats
            if guest.is_couple:
                received_couple_seats += seats
            else:
                received_regular_seats += seats

    cached_total = to_number(tour.total_guests)
    if cached_total > 0:
        variable_divisor = cached_total
    elif total_received > 0:
        variable_divisor = total_received
    else:
        variable_divisor = 1
    couple_unit_divisor = received_couple_seats / 2 if received_couple_seats > 0 else 1
    regular_divisor = received_regular_seats if received_regular_seats > 0 else 1

    costs = tour.costs
    bus = tour.bus_config

    variable_pool = to_number(costs.host_fee) + total_other_fixed_costs(tour) + total_daily_expenses(tour)
    common_variable_per_head = math.ceil(variable_pool / variable_divisor)

    # The subsidy gap follows the configured discount policy, not occupancy.
    # Collected no-show penalties are not netted against the rent.
    discount_gap = (
        to_number(bus.discount1_seats) * to_number(bus.discount1_amount)
        + to_number(bus.discount2_seats) * to_number(bus.discount2_amount)
    )
    regular_bus_fare = math.ceil((to_number(bus.total_rent) + discount_gap) / variable_divisor)

    reg_hotel_per_head = math.ceil(to_number(costs.hotel_cost) / regular_divisor)
    couple_hotel_per_unit = math.ceil(to_number(costs.couple_hotel_cost) / couple_unit_divisor)

    shared = common_variable_per_head + reg_hotel_per_head
    return BuyRates(
        regular=regular_bus_fare + shared,
        d1=math.ceil(regular_bus_fare - to_number(bus.discount1_amount) + shared),
        d2=math.ceil(regular_bus_fare - to_number(bus.discount2_amount) + shared),
        couple_package_rate=2 * regular_bus_fare + 2 * common_variable_per_head + couple_hotel_per_unit,
        regular_bus_fare=regular_bus_fare,
        common_variable_per_head=common_variable_per_head,
        reg_hotel_per_head=reg_hotel_per_head,
        couple_hotel_per_unit=couple_hotel_per_unit,
        variable_divisor=variable_divisor,
        total_received=total_received,
    )
