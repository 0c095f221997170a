import logging

from fastapi import APIRouter, Depends, HTTPException, status, Query, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.database import get_db
from src.tours.calculations import compute_buy_rates, estimate_bus_fare
from src.tours.exceptions import (
    AgencyNotFoundError, BreakdownMismatchError, GuestNotFoundError, LedgerError, TourNotFoundError
)
from src.tours.guest_service import GuestService
from src.tours.report_service import TourReportService
from src.tours.repository import TourRepository
from src.tours.schemas import (
    AgencyBookingRequest, AgencyCreate, AgencyExpense, AgencySettlement, BusFareEstimate,
    BuyRates, DailyReport, ExpenseCreate, Guest, GuestCreate, GuestUpdate,
    HostSettlementSummary, OccupancySummary, PartnerAgency, PersonalData, PersonalSettlement,
    SeatAggregate, SeatBreakdown, SettlementStatusUpdate, Tour, TourReport
)
from src.tours.seat_service import SeatRecomputeService
from src.tours.settlement_service import compute_agency_settlement, compute_personal_settlement

logger = logging.getLogger(__name__)

router = APIRouter()

def _http_error(e: Exception, action: str) -> HTTPException:
    """Translate a service failure into the response the client sees"""
    if isinstance(e, (TourNotFoundError, AgencyNotFoundError, GuestNotFoundError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    if isinstance(e, BreakdownMismatchError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "expected": e.expected, "actual": e.actual}
        )
    if isinstance(e, (ValueError, LedgerError)):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if isinstance(e, SQLAlchemyError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Failed to {action}. Please try again."
        )
    logger.exception("Unexpected error while trying to %s", action)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}: {str(e)}"
    )

def _get_tour_or_404(db: Session, tour_id: str) -> Tour:
    tour = TourRepository(db).get_tour(tour_id)
    if not tour:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tour not found"
        )
    return tour

# Reports across tours
@router.get("/reports/daily", response_model=DailyReport)
def get_daily_report(
    date: str = Query(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="Tour date (YYYY-MM-DD)"),
    db: Session = Depends(get_db)
):
    """Income, expense and profit of every tour on a date"""
    return TourReportService(db).daily_report(date)

# Tour and rates
@router.get("/{tour_id}", response_model=Tour)
def get_tour(tour_id: str, db: Session = Depends(get_db)):
    """Get tour details by ID"""
    return _get_tour_or_404(db, tour_id)

@router.get("/{tour_id}/bus-fare", response_model=BusFareEstimate)
def get_bus_fare_preview(tour_id: str, db: Session = Depends(get_db)):
    """Preview per-seat bus fares from the configured seat inventory"""
    tour = _get_tour_or_404(db, tour_id)
    return estimate_bus_fare(tour.bus_config)

@router.get("/{tour_id}/buy-rates", response_model=BuyRates)
def get_buy_rates(tour_id: str, db: Session = Depends(get_db)):
    """Cost per seat category and per couple unit"""
    tour = _get_tour_or_404(db, tour_id)
    return compute_buy_rates(tour)

@router.post("/{tour_id}/recalculate-seats", response_model=SeatAggregate)
def recalculate_seats(tour_id: str, db: Session = Depends(get_db)):
    """Rebuild seat aggregates from every guest source"""
    try:
        aggregate = SeatRecomputeService(db).recalculate_tour_seats(tour_id)
    except Exception as e:
        raise _http_error(e, "recalculate seats")

    if aggregate is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tour not found"
        )
    return aggregate

# Agencies
@router.post("/{tour_id}/agencies", response_model=PartnerAgency, status_code=status.HTTP_201_CREATED)
def add_agency(tour_id: str, request: AgencyCreate, db: Session = Depends(get_db)):
    """Add a partner agency to a tour"""
    try:
        return GuestService(db).add_agency(tour_id, request)
    except Exception as e:
        raise _http_error(e, "add agency")

@router.post("/{tour_id}/bookings", response_model=PartnerAgency, status_code=status.HTTP_201_CREATED)
def create_agency_booking(tour_id: str, request: AgencyBookingRequest, db: Session = Depends(get_db)):
    """Agency self-service booking by email"""
    try:
        agency, _ = GuestService(db).book_as_agency(tour_id, request)
        return agency
    except Exception as e:
        raise _http_error(e, "add booking")

@router.get("/{tour_id}/agencies/{agency_id}/settlement", response_model=AgencySettlement)
def get_agency_settlement(tour_id: str, agency_id: str, db: Session = Depends(get_db)):
    """Settlement between the house and one agency"""
    tour = _get_tour_or_404(db, tour_id)
    agency = next((a for a in tour.partner_agencies if a.id == agency_id), None)
    return compute_agency_settlement(tour, agency)

@router.put("/{tour_id}/agencies/{agency_id}/settlement-status", response_model=PartnerAgency)
def update_agency_settlement_status(
    tour_id: str,
    agency_id: str,
    request: SettlementStatusUpdate,
    db: Session = Depends(get_db)
):
    """Move an agency's settlement forward (unpaid -> paid -> settled)"""
    try:
        return GuestService(db).set_agency_settlement_status(tour_id, agency_id, request.status)
    except Exception as e:
        raise _http_error(e, "update settlement status")

@router.post("/{tour_id}/agencies/{agency_id}/guests", response_model=Guest, status_code=status.HTTP_201_CREATED)
def add_agency_guest(tour_id: str, agency_id: str, request: GuestCreate, db: Session = Depends(get_db)):
    """Add a guest to an agency's list"""
    try:
        return GuestService(db).add_agency_guest(tour_id, agency_id, request)
    except Exception as e:
        raise _http_error(e, "add guest")

@router.patch("/{tour_id}/agencies/{agency_id}/guests/{guest_id}", response_model=Guest)
def update_agency_guest(
    tour_id: str,
    agency_id: str,
    guest_id: str,
    request: GuestUpdate,
    db: Session = Depends(get_db)
):
    """Edit an agency guest"""
    try:
        return GuestService(db).update_agency_guest(tour_id, agency_id, guest_id, request)
    except Exception as e:
        raise _http_error(e, "update guest")

@router.delete("/{tour_id}/agencies/{agency_id}/guests/{guest_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_agency_guest(tour_id: str, agency_id: str, guest_id: str, db: Session = Depends(get_db)):
    """Remove an agency guest"""
    try:
        GuestService(db).remove_agency_guest(tour_id, agency_id, guest_id)
    except Exception as e:
        raise _http_error(e, "delete guest")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.put("/{tour_id}/agencies/{agency_id}/guests/{guest_id}/pax-breakdown", response_model=Guest)
def update_pax_breakdown(
    tour_id: str,
    agency_id: str,
    guest_id: str,
    breakdown: SeatBreakdown,
    db: Session = Depends(get_db)
):
    """Split a guest's seats into regular / disc1 / disc2"""
    try:
        return GuestService(db).set_pax_breakdown(tour_id, agency_id, guest_id, breakdown)
    except Exception as e:
        raise _http_error(e, "update seat breakdown")

@router.post("/{tour_id}/agencies/{agency_id}/expenses", response_model=AgencyExpense, status_code=status.HTTP_201_CREATED)
def add_agency_expense(tour_id: str, agency_id: str, request: ExpenseCreate, db: Session = Depends(get_db)):
    """Record an expense the agency paid on the house's behalf"""
    try:
        return GuestService(db).add_agency_expense(tour_id, agency_id, request)
    except Exception as e:
        raise _http_error(e, "add expense")

@router.post("/{tour_id}/guests/{guest_id}/toggle-received", response_model=Guest)
def toggle_guest_received(tour_id: str, guest_id: str, db: Session = Depends(get_db)):
    """Mark a guest as arrived, or back to no-show"""
    try:
        return GuestService(db).toggle_guest_received(tour_id, guest_id)
    except Exception as e:
        raise _http_error(e, "update guest status")

# Personal (host) bookings
@router.get("/{tour_id}/personal/{user_id}", response_model=PersonalData)
def get_personal_data(tour_id: str, user_id: str, db: Session = Depends(get_db)):
    """Host's own bookings for a tour"""
    _get_tour_or_404(db, tour_id)
    return GuestService(db).get_personal_data(tour_id, user_id)

@router.put("/{tour_id}/personal/{user_id}", response_model=PersonalData)
def save_personal_data(tour_id: str, user_id: str, request: PersonalData, db: Session = Depends(get_db)):
    """Overwrite the host's personal record"""
    try:
        return GuestService(db).save_personal_data(tour_id, user_id, request)
    except Exception as e:
        raise _http_error(e, "save personal data")

@router.post("/{tour_id}/personal/{user_id}/guests", response_model=Guest, status_code=status.HTTP_201_CREATED)
def add_personal_guest(tour_id: str, user_id: str, request: GuestCreate, db: Session = Depends(get_db)):
    try:
        return GuestService(db).add_personal_guest(tour_id, user_id, request)
    except Exception as e:
        raise _http_error(e, "add guest")

@router.delete("/{tour_id}/personal/{user_id}/guests/{guest_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_personal_guest(tour_id: str, user_id: str, guest_id: str, db: Session = Depends(get_db)):
    try:
        GuestService(db).remove_personal_guest(tour_id, user_id, guest_id)
    except Exception as e:
        raise _http_error(e, "delete guest")
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@router.get("/{tour_id}/personal/{user_id}/settlement", response_model=PersonalSettlement)
def get_personal_settlement(tour_id: str, user_id: str, db: Session = Depends(get_db)):
    """Income against cost for a host's own bookings"""
    tour = _get_tour_or_404(db, tour_id)
    personal_data = TourRepository(db).get_personal_record(tour_id, user_id)
    return compute_personal_settlement(tour, personal_data)

@router.put("/{tour_id}/host-settlement-status")
def update_host_settlement_status(tour_id: str, request: SettlementStatusUpdate, db: Session = Depends(get_db)):
    """Move the host's settlement forward"""
    try:
        new_status = GuestService(db).set_host_settlement_status(tour_id, request.status)
    except Exception as e:
        raise _http_error(e, "update settlement status")
    return {"tour_id": tour_id, "host_settlement_status": new_status}

# Reports
@router.get("/{tour_id}/report", response_model=TourReport)
def get_tour_report(tour_id: str, db: Session = Depends(get_db)):
    try:
        return TourReportService(db).tour_report(tour_id)
    except Exception as e:
        raise _http_error(e, "build report")

@router.get("/{tour_id}/host-summary", response_model=HostSettlementSummary)
def get_host_summary(tour_id: str, db: Session = Depends(get_db)):
    try:
        return TourReportService(db).host_summary(tour_id)
    except Exception as e:
        raise _http_error(e, "build host summary")

@router.get("/{tour_id}/occupancy", response_model=OccupancySummary)
def get_occupancy(tour_id: str, db: Session = Depends(get_db)):
    try:
        return TourReportService(db).occupancy(tour_id)
    except Exception as e:
        raise _http_error(e, "build occupancy")
