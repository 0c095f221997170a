from typing import Optional

from src.tours.calculations import (
    compute_buy_rates, guest_seats, resolve_penalty_amount, seats_by_category
)
from src.tours.schemas import (
    AgencySettlement, BuyRates, FeeSchedule, Guest, PartnerAgency, PersonalData,
    PersonalSettlement, SeatType, Tour
)
from src.tours.utils import to_number

def guest_liability(guest: Guest, rates: BuyRates) -> float:
    """Cost owed for one received guest entry at the given buy rates"""
    if guest.is_couple:
        return rates.couple_package_rate
    split = seats_by_category(guest)
    return (
        split[SeatType.REGULAR] * rates.regular
        + split[SeatType.DISC1] * rates.d1
        + split[SeatType.DISC2] * rates.d2
    )

def fee_schedule(tour: Tour, personal_data: PersonalData) -> FeeSchedule:
    """Package prices for a host, honouring the host's custom pricing"""
    pricing = personal_data.custom_pricing
    base_fee = pricing.base_fee if pricing and pricing.base_fee is not None else tour.fees.regular
    d1_amount = pricing.d1_amount if pricing and pricing.d1_amount is not None else tour.bus_config.discount1_amount
    d2_amount = pricing.d2_amount if pricing and pricing.d2_amount is not None else tour.bus_config.discount2_amount

    regular_fee = to_number(base_fee)
    return FeeSchedule(
        regular=regular_fee,
        d1=regular_fee - to_number(d1_amount),
        d2=regular_fee - to_number(d2_amount),
    )

def compute_agency_settlement(tour: Optional[Tour], agency: Optional[PartnerAgency]) -> AgencySettlement:
    """Net balance between the house and one partner agency.

    Received guests bring their collection as income and their buy-rate cost as
    liability. Absent guests bring only the no-show penalty as income. A positive
    ``net_amount`` means the agency owes the house.
    """
    if tour is None or agency is None:
        return AgencySettlement()

    rates = compute_buy_rates(tour)
    penalty = resolve_penalty_amount(tour)

    total_collection = 0
    total_liability = 0
    for guest in agency.guests:
        if guest.is_received:
            total_collection += guest.collection
            total_liability += guest_liability(guest, rates)
        else:
            total_collection += guest_seats(guest) * penalty

    agency_expenses = sum(expense.amount for expense in agency.expenses)
    total_seats = sum(guest_seats(guest) for guest in agency.guests)

    return AgencySettlement(
        total_collection=total_collection,
        agency_expenses=agency_expenses,
        fixed_cost_share=total_liability,
        total_cost=total_liability + agency_expenses,
        net_amount=total_collection - (total_liability + agency_expenses),
        total_seats=total_seats,
        rates=rates,
    )

def compute_personal_settlement(tour: Optional[Tour], personal_data: Optional[PersonalData]) -> PersonalSettlement:
    """Income against cost for a host's own bookings.

    Income for a non-couple guest with a fee breakdown is priced from the fee
    schedule, independently of the seats it occupies. Records without a guest
    list fall back to the legacy flat counts, all treated as received.
    """
    if tour is None or personal_data is None:
        return PersonalSettlement()

    rates = compute_buy_rates(tour)
    fees = fee_schedule(tour, personal_data)
    penalty = resolve_penalty_amount(tour)

    total_income = personal_data.booking_fee
    total_cost = 0

    if personal_data.guests:
        for guest in personal_data.guests:
            if not guest.is_received:
                total_income += guest_seats(guest) * penalty
                continue

            if not guest.is_couple and guest.fee_breakdown is not None:
                breakdown = guest.fee_breakdown
                total_income += (
                    breakdown.regular * fees.regular
                    + breakdown.disc1 * fees.d1
                    + breakdown.disc2 * fees.d2
                )
            else:
                total_income += guest.collection
            total_cost += guest_liability(guest, rates)
    else:
        regular_count = personal_data.personal_standard_count
        d1_count = personal_data.personal_disc1_count
        d2_count = personal_data.personal_disc2_count

        total_income += (regular_count * fees.regular) + (d1_count * fees.d1) + (d2_count * fees.d2)
        total_cost += (regular_count * rates.regular) + (d1_count * rates.d1) + (d2_count * rates.d2)

    personal_expenses = sum(expense.amount for expense in personal_data.custom_expenses)

    return PersonalSettlement(
        total_personal_income=total_income,
        personal_expenses=personal_expenses,
        total_personal_cost=total_cost,
        net_result=total_income - (total_cost + personal_expenses),
        fees=fees,
        rates=rates,
    )
