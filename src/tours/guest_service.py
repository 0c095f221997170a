import logging
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from src.tours.exceptions import AgencyNotFoundError, GuestNotFoundError, TourNotFoundError
from src.tours.repository import TourRepository
from src.tours.schemas import (
    AgencyBookingRequest, AgencyCreate, AgencyExpense, ExpenseCreate, Guest, GuestCreate,
    GuestUpdate, PartnerAgency, PersonalData, SeatBreakdown, SeatType, SettlementStatus, Tour
)
from src.tours.seat_service import SeatRecomputeService
from src.tours.validation import LedgerValidator

logger = logging.getLogger(__name__)

def single_category_breakdown(seat_type: SeatType, seats: float) -> SeatBreakdown:
    """Breakdown that puts every seat under one category"""
    breakdown = SeatBreakdown()
    setattr(breakdown, SeatType(seat_type).value, seats)
    return breakdown

class GuestService:
    """Guest-list mutations for agencies and hosts.

    Every mutation that touches a guest is followed by a full seat recompute of
    the tour, so aggregates never depend on what the previous state was.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = TourRepository(db)
        self.seat_service = SeatRecomputeService(db)
        self.validator = LedgerValidator()

    # Agencies
    def add_agency(self, tour_id: str, request: AgencyCreate) -> PartnerAgency:
        tour = self._load_tour(tour_id)
        email = request.email.strip().lower()
        if email and self._find_agency_by_email(tour, email):
            raise ValueError(f"An agency with email {email} is already on this tour")

        agency = PartnerAgency(name=request.name, email=email, phone=request.phone)
        tour.partner_agencies.append(agency)
        self._save_agencies(tour)
        logger.info("Added agency %s to tour %s", agency.id, tour_id)
        return agency

    def book_as_agency(self, tour_id: str, request: AgencyBookingRequest) -> Tuple[PartnerAgency, Guest]:
        """Agency self-service booking; registers the agency on its first booking"""
        tour = self._load_tour(tour_id)
        agency = self._find_agency_by_email(tour, request.email)
        if agency is None:
            agency = PartnerAgency(name=request.email.split("@")[0], email=request.email)
            tour.partner_agencies.append(agency)
            logger.info("Registered agency %s on tour %s from first booking", request.email, tour_id)

        guest = self._build_guest(request.guest)
        agency.guests.append(guest)
        self._save_agencies(tour, recompute=True)
        return agency, guest

    def add_agency_guest(self, tour_id: str, agency_id: str, request: GuestCreate) -> Guest:
        tour = self._load_tour(tour_id)
        agency = self._find_agency(tour, agency_id)

        guest = self._build_guest(request)
        agency.guests.append(guest)
        self._save_agencies(tour, recompute=True)
        return guest

    def update_agency_guest(self, tour_id: str, agency_id: str, guest_id: str, update: GuestUpdate) -> Guest:
        tour = self._load_tour(tour_id)
        agency = self._find_agency(tour, agency_id)
        index, guest = self._find_guest(agency.guests, guest_id)

        agency.guests[index] = self._apply_update(guest, update)
        self._save_agencies(tour, recompute=True)
        return agency.guests[index]

    def remove_agency_guest(self, tour_id: str, agency_id: str, guest_id: str) -> None:
        tour = self._load_tour(tour_id)
        agency = self._find_agency(tour, agency_id)
        index, _ = self._find_guest(agency.guests, guest_id)

        agency.guests.pop(index)
        self._save_agencies(tour, recompute=True)

    def set_pax_breakdown(self, tour_id: str, agency_id: str, guest_id: str, breakdown: SeatBreakdown) -> Guest:
        tour = self._load_tour(tour_id)
        agency = self._find_agency(tour, agency_id)
        _, guest = self._find_guest(agency.guests, guest_id)

        self.validator.validate_breakdown(guest, breakdown)
        guest.pax_breakdown = breakdown
        self._save_agencies(tour, recompute=True)
        return guest

    def add_agency_expense(self, tour_id: str, agency_id: str, request: ExpenseCreate) -> AgencyExpense:
        tour = self._load_tour(tour_id)
        agency = self._find_agency(tour, agency_id)

        expense = AgencyExpense(description=request.description, amount=request.amount)
        agency.expenses.append(expense)
        self._save_agencies(tour)
        return expense

    def set_agency_settlement_status(self, tour_id: str, agency_id: str, status: SettlementStatus) -> PartnerAgency:
        tour = self._load_tour(tour_id)
        agency = self._find_agency(tour, agency_id)

        if self.validator.validate_status_transition(agency.settlement_status, status):
            agency.settlement_status = status
            self._save_agencies(tour)
            logger.info("Agency %s on tour %s marked %s", agency_id, tour_id, status.value)
        return agency

    def set_host_settlement_status(self, tour_id: str, status: SettlementStatus) -> SettlementStatus:
        tour = self._load_tour(tour_id)

        if self.validator.validate_status_transition(tour.host_settlement_status, status):
            self.repository.update_tour_fields(tour_id, {"host_settlement_status": status.value})
            logger.info("Host settlement for tour %s marked %s", tour_id, status.value)
        return status

    # Received / no-show
    def toggle_guest_received(self, tour_id: str, guest_id: str) -> Guest:
        """Flip a guest's arrival flag, looking in agency lists first, then personal lists"""
        tour = self._load_tour(tour_id)

        for agency in tour.partner_agencies:
            for guest in agency.guests:
                if guest.id == guest_id:
                    guest.is_received = not guest.is_received
                    self._save_agencies(tour, recompute=True)
                    return guest

        for record in self.repository.query_personal_by_tour(tour_id):
            for guest in record.guests:
                if guest.id == guest_id:
                    guest.is_received = not guest.is_received
                    self.repository.set_personal_record(tour_id, record.user_id, record)
                    self.seat_service.recalculate_tour_seats(tour_id)
                    return guest

        raise GuestNotFoundError(guest_id)

    # Personal records
    def get_personal_data(self, tour_id: str, user_id: str) -> PersonalData:
        """Stored record, or an empty one when the host has not saved anything yet"""
        record = self.repository.get_personal_record(tour_id, user_id)
        if record is None:
            return PersonalData(tour_id=tour_id, user_id=user_id)
        return record

    def save_personal_data(self, tour_id: str, user_id: str, data: PersonalData) -> PersonalData:
        """Overwrite the host's record; every guest is checked before anything is written"""
        self._load_tour(tour_id)
        data.guests = [self._checked_guest(guest) for guest in data.guests]
        saved = self.repository.set_personal_record(tour_id, user_id, data)
        self.seat_service.recalculate_tour_seats(tour_id)
        return saved

    def add_personal_guest(self, tour_id: str, user_id: str, request: GuestCreate) -> Guest:
        self._load_tour(tour_id)
        record = self.get_personal_data(tour_id, user_id)

        guest = self._build_guest(request)
        record.guests.append(guest)
        self.repository.set_personal_record(tour_id, user_id, record)
        self.seat_service.recalculate_tour_seats(tour_id)
        return guest

    def remove_personal_guest(self, tour_id: str, user_id: str, guest_id: str) -> None:
        self._load_tour(tour_id)
        record = self.repository.get_personal_record(tour_id, user_id)
        if record is None:
            raise GuestNotFoundError(guest_id)

        index, _ = self._find_guest(record.guests, guest_id)
        record.guests.pop(index)
        self.repository.set_personal_record(tour_id, user_id, record)
        self.seat_service.recalculate_tour_seats(tour_id)

    # Helpers
    def _load_tour(self, tour_id: str) -> Tour:
        tour = self.repository.get_tour(tour_id)
        if tour is None:
            raise TourNotFoundError(tour_id)
        return tour

    def _save_agencies(self, tour: Tour, recompute: bool = False) -> None:
        if not self.repository.save_partner_agencies(tour.id, tour.partner_agencies):
            raise TourNotFoundError(tour.id)
        if recompute:
            self.seat_service.recalculate_tour_seats(tour.id)

    @staticmethod
    def _find_agency(tour: Tour, agency_id: str) -> PartnerAgency:
        for agency in tour.partner_agencies:
            if agency.id == agency_id:
                return agency
        raise AgencyNotFoundError(agency_id)

    @staticmethod
    def _find_agency_by_email(tour: Tour, email: str) -> Optional[PartnerAgency]:
        email = email.strip().lower()
        for agency in tour.partner_agencies:
            if agency.email == email:
                return agency
        return None

    @staticmethod
    def _find_guest(guests: List[Guest], guest_id: str) -> Tuple[int, Guest]:
        for index, guest in enumerate(guests):
            if guest.id == guest_id:
                return index, guest
        raise GuestNotFoundError(guest_id)

    def _build_guest(self, request: GuestCreate) -> Guest:
        seat_count = 2 if request.is_couple else request.seat_count
        collection = request.collection
        if collection is None:
            collection = seat_count * request.unit_price

        if request.fee_breakdown is not None:
            self.validator.validate_fee_breakdown(seat_count, request.fee_breakdown, request.is_couple)

        return Guest(
            name=request.name,
            phone=request.phone,
            address=request.address,
            seat_count=seat_count,
            seat_numbers=request.seat_numbers,
            unit_price=request.unit_price,
            collection=collection,
            seat_type=SeatType.REGULAR if request.is_couple else request.seat_type,
            is_received=request.is_received,
            is_couple=request.is_couple,
            pax_breakdown=None if request.is_couple else single_category_breakdown(request.seat_type, seat_count),
            fee_breakdown=request.fee_breakdown,
        )

    def _checked_guest(self, guest: Guest) -> Guest:
        """Normalise couples and reject breakdowns that do not cover the guest's seats"""
        if guest.is_couple:
            return guest.model_copy(update={
                "seat_count": 2,
                "seat_type": SeatType.REGULAR,
                "pax_breakdown": None,
                "fee_breakdown": None,
            })

        if guest.pax_breakdown is not None:
            self.validator.validate_breakdown(guest, guest.pax_breakdown)
        if guest.fee_breakdown is not None:
            self.validator.validate_fee_breakdown(guest.seat_count, guest.fee_breakdown, guest.is_couple)
        return guest

    def _apply_update(self, guest: Guest, update: GuestUpdate) -> Guest:
        changes = update.model_dump(exclude_unset=True)
        data = guest.model_dump()
        data.update({key: value for key, value in changes.items() if value is not None})
        updated = Guest(**data)

        if updated.is_couple:
            updated.seat_count = 2
            updated.seat_type = SeatType.REGULAR
            updated.pax_breakdown = None
            updated.fee_breakdown = None
        elif "seat_count" in changes or "seat_type" in changes or "is_couple" in changes:
            # A resized entry loses its category split
            updated.pax_breakdown = single_category_breakdown(updated.seat_type, updated.seat_count)

        if updated.fee_breakdown is not None:
            self.validator.validate_fee_breakdown(updated.seat_count, updated.fee_breakdown, updated.is_couple)

        if "collection" not in changes and ("seat_count" in changes or "unit_price" in changes):
            updated.collection = updated.seat_count * updated.unit_price
        return updated
