from typing import List

from sqlalchemy.orm import Session

from src.tours.calculations import estimate_bus_fare, total_daily_expenses, total_other_fixed_costs
from src.tours.exceptions import TourNotFoundError
from src.tours.repository import TourRepository
from src.tours.schemas import (
    DailyReport, HostSettlementSummary, OccupancySummary, PersonalData, Tour, TourReport
)
from src.tours.seat_service import aggregate_seats
from src.tours.settlement_service import compute_agency_settlement, compute_personal_settlement

class TourReportService:
    """Read-only financial and occupancy summaries"""

    def __init__(self, db: Session):
        self.db = db
        self.repository = TourRepository(db)

    def tour_report(self, tour_id: str) -> TourReport:
        tour = self._load_tour(tour_id)
        return self._build_tour_report(tour, self.repository.query_personal_by_tour(tour_id))

    def daily_report(self, date: str) -> DailyReport:
        """Income, expense and profit of every tour running on one date"""
        reports = [
            self._build_tour_report(tour, self.repository.query_personal_by_tour(tour.id))
            for tour in self.repository.list_tours_by_date(date)
        ]

        return DailyReport(
            date=date,
            tours=reports,
            grand_total_collection=sum(r.total_income for r in reports),
            grand_total_expense=sum(r.total_expense for r in reports),
            grand_total_profit=sum(r.profit for r in reports),
        )

    def host_summary(self, tour_id: str) -> HostSettlementSummary:
        """What the host collected against what the host spent on the road"""
        tour = self._load_tour(tour_id)
        personal_records = self.repository.query_personal_by_tour(tour_id)

        personal_collection = self._personal_collection(tour, personal_records)
        agency_collection = self._agency_collection(tour)
        total_collection = personal_collection + agency_collection
        host_spending = total_daily_expenses(tour) + total_other_fixed_costs(tour)

        return HostSettlementSummary(
            tour_id=tour.id,
            personal_collection=personal_collection,
            agency_collection=agency_collection,
            total_collection=total_collection,
            host_spending=host_spending,
            net_balance=total_collection - host_spending,
            status=tour.host_settlement_status,
        )

    def occupancy(self, tour_id: str) -> OccupancySummary:
        tour = self._load_tour(tour_id)
        aggregate = aggregate_seats(tour, self.repository.query_personal_by_tour(tour_id))
        total_seats = tour.bus_config.total_seats

        return OccupancySummary(
            tour_id=tour.id,
            total_seats=total_seats,
            booked_seats=aggregate.total_booked_guests,
            received_seats=aggregate.total_received_guests,
            available_seats=max(0, total_seats - aggregate.total_booked_guests),
            regular_seats=aggregate.regular_seats,
            discount1_seats=aggregate.total_d1_booked,
            discount2_seats=aggregate.total_d2_booked,
            fare_preview=estimate_bus_fare(tour.bus_config),
        )

    def _load_tour(self, tour_id: str) -> Tour:
        tour = self.repository.get_tour(tour_id)
        if tour is None:
            raise TourNotFoundError(tour_id)
        return tour

    def _build_tour_report(self, tour: Tour, personal_records: List[PersonalData]) -> TourReport:
        agency_collection = self._agency_collection(tour)
        personal_collection = self._personal_collection(tour, personal_records)
        total_income = agency_collection + personal_collection

        costs = tour.costs
        fixed_costs = (
            tour.bus_config.total_rent + costs.host_fee + costs.hotel_cost
            + costs.couple_hotel_cost + total_other_fixed_costs(tour)
        )
        total_expense = fixed_costs + total_daily_expenses(tour)

        return TourReport(
            tour_id=tour.id,
            tour_name=tour.name,
            date=tour.date,
            agency_collection=agency_collection,
            personal_collection=personal_collection,
            total_income=total_income,
            total_expense=total_expense,
            profit=total_income - total_expense,
        )

    @staticmethod
    def _agency_collection(tour: Tour) -> float:
        return sum(
            compute_agency_settlement(tour, agency).total_collection
            for agency in tour.partner_agencies
        )

    @staticmethod
    def _personal_collection(tour: Tour, personal_records: List[PersonalData]) -> float:
        return sum(
            compute_personal_settlement(tour, record).total_personal_income
            for record in personal_records
        )
