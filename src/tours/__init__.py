"""
Tour Settlement Ledger Module

This module keeps the books for tours sold jointly by the house, its hosts and
partner agencies. It includes:

- Numeric normalisation of loosely typed stored records
- Seat accounting per guest entry (pax breakdown, legacy seat type, couples)
- Bus fare preview from the configured seat inventory
- Buy rate engine: cost per seat category and per couple unit from who showed up
- Agency and personal (host) settlement calculators
- Seat recompute that rebuilds a tour's seat aggregates after every guest change

Key Components:
- calculations.py: Seat accounting, bus fare estimator and buy rate engine
- settlement_service.py: Agency and personal settlement calculators
- seat_service.py: Seat aggregation and the recompute service
- guest_service.py: Guest-list mutations for agencies and hosts
- report_service.py: Tour, daily, host and occupancy summaries
- repository.py: Document-style access to tours and personal records
- validation.py: Checks applied before guest and settlement writes
- router.py: FastAPI endpoints
- schemas.py: Pydantic models for records, results and requests
"""

from .router import router
from .calculations import to_number, guest_seats, estimate_bus_fare, compute_buy_rates
from .settlement_service import compute_agency_settlement, compute_personal_settlement
from .seat_service import SeatRecomputeService, aggregate_seats
from .guest_service import GuestService
from .report_service import TourReportService
from .repository import TourRepository
from .schemas import (
    Tour, PartnerAgency, PersonalData, Guest, BusConfig, BuyRates,
    AgencySettlement, PersonalSettlement, SeatAggregate, SettlementStatus
)

__all__ = [
    "router",
    "to_number",
    "guest_seats",
    "estimate_bus_fare",
    "compute_buy_rates",
    "compute_agency_settlement",
    "compute_personal_settlement",
    "SeatRecomputeService",
    "aggregate_seats",
    "GuestService",
    "TourReportService",
    "TourRepository",
    "Tour",
    "PartnerAgency",
    "PersonalData",
    "Guest",
    "BusConfig",
    "BuyRates",
    "AgencySettlement",
    "PersonalSettlement",
    "SeatAggregate",
    "SettlementStatus"
]
