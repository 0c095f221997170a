"""
Tests for guest-list mutations and the recompute that follows them.
"""

import pytest

from src.tours.exceptions import (
    AgencyNotFoundError, BreakdownMismatchError, GuestNotFoundError, InvalidStatusTransitionError,
    TourNotFoundError
)
from src.tours.guest_service import GuestService, single_category_breakdown
from src.tours.schemas import (
    AgencyBookingRequest, AgencyCreate, ExpenseCreate, Guest, GuestCreate, GuestUpdate, PersonalData,
    SeatBreakdown, SeatType, SettlementStatus
)


@pytest.fixture
def service(db):
    return GuestService(db)


@pytest.fixture
def tour(make_tour):
    return make_tour()


@pytest.fixture
def agency_id(service, tour):
    return service.add_agency(tour.id, AgencyCreate(name="Green Trails", email="Ops@GreenTrails.example")).id


class TestAgencies:

    def test_add_agency_normalises_email(self, service, tour, repository):
        agency = service.add_agency(tour.id, AgencyCreate(name="Hill Tracks", email=" Desk@Hill.example "))

        stored = repository.get_tour(tour.id)
        assert agency.email == "desk@hill.example"
        assert [a.id for a in stored.partner_agencies] == [agency.id]

    def test_duplicate_email_rejected(self, service, tour, agency_id):
        with pytest.raises(ValueError):
            service.add_agency(tour.id, AgencyCreate(name="Other", email="ops@greentrails.example"))

    def test_unknown_tour(self, service):
        with pytest.raises(TourNotFoundError):
            service.add_agency("missing", AgencyCreate(name="Hill Tracks"))

    def test_first_booking_registers_agency(self, service, tour, repository):
        request = AgencyBookingRequest(email="desk@hill.example", guest=GuestCreate(name="Tania", seat_count=2, is_received=True))

        agency, guest = service.book_as_agency(tour.id, request)

        stored = repository.get_tour(tour.id)
        assert agency.name == "desk"
        assert agency.email == "desk@hill.example"
        assert stored.partner_agencies[0].guests[0].id == guest.id
        assert stored.total_guests == 2

    def test_later_bookings_reuse_agency_case_insensitively(self, service, tour, repository):
        service.book_as_agency(tour.id, AgencyBookingRequest(email="desk@hill.example", guest=GuestCreate(name="A")))
        service.book_as_agency(tour.id, AgencyBookingRequest(email="DESK@Hill.example", guest=GuestCreate(name="B")))

        agencies = repository.get_tour(tour.id).partner_agencies
        assert len(agencies) == 1
        assert [g.name for g in agencies[0].guests] == ["A", "B"]

    def test_add_expense(self, service, tour, agency_id, repository):
        expense = service.add_agency_expense(tour.id, agency_id, ExpenseCreate(description="Snacks", amount=250))

        stored = repository.get_tour(tour.id).partner_agencies[0]
        assert stored.expenses[0].id == expense.id
        assert stored.expenses[0].amount == 250

    def test_unknown_agency(self, service, tour):
        with pytest.raises(AgencyNotFoundError):
            service.add_agency_guest(tour.id, "nope", GuestCreate(name="Rahim"))


class TestAgencyGuests:

    def test_new_guest_gets_single_category_breakdown(self, service, tour, agency_id, repository):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(
            name="Rahim", seat_count=3, unit_price=500, seat_type=SeatType.DISC1, is_received=True
        ))

        assert guest.collection == 1500
        assert guest.pax_breakdown == SeatBreakdown(disc1=3)
        stored = repository.get_tour(tour.id)
        assert stored.bus_config.discount1_seats == 3
        assert stored.bus_config.regular_seats == 37
        assert stored.total_guests == 3

    def test_explicit_collection_is_kept(self, service, tour, agency_id):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Rahim", seat_count=2, unit_price=500, collection=800))
        assert guest.collection == 800

    def test_couple_is_normalised(self, service, tour, agency_id):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(
            name="Karim & Nila", seat_count=5, seat_type=SeatType.DISC2, is_couple=True
        ))

        assert guest.seat_count == 2
        assert guest.seat_type == SeatType.REGULAR
        assert guest.pax_breakdown is None

    def test_couple_collection_defaults_to_both_seats(self, service, tour, agency_id):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Karim & Nila", unit_price=3000, is_couple=True))
        assert guest.collection == 6000

    def test_fee_breakdown_must_cover_seats(self, service, tour, agency_id):
        request = GuestCreate(name="Rahim", seat_count=3, fee_breakdown=SeatBreakdown(regular=1))
        with pytest.raises(BreakdownMismatchError):
            service.add_agency_guest(tour.id, agency_id, request)

    def test_update_resizes_entry(self, service, tour, agency_id):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Rahim", seat_count=2, unit_price=500))

        updated = service.update_agency_guest(tour.id, agency_id, guest.id, GuestUpdate(seat_count=3, phone="0170"))

        assert updated.id == guest.id
        assert updated.phone == "0170"
        assert updated.collection == 1500
        assert updated.pax_breakdown == SeatBreakdown(regular=3)

    def test_update_to_couple(self, service, tour, agency_id):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Karim", seat_count=3))

        updated = service.update_agency_guest(tour.id, agency_id, guest.id, GuestUpdate(is_couple=True))

        assert updated.seat_count == 2
        assert updated.pax_breakdown is None

    def test_remove_guest_recomputes(self, service, tour, agency_id, repository):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Rahim", seat_count=4, is_received=True))
        assert repository.get_tour(tour.id).total_guests == 4

        service.remove_agency_guest(tour.id, agency_id, guest.id)

        stored = repository.get_tour(tour.id)
        assert stored.partner_agencies[0].guests == []
        assert stored.total_guests == 0

    def test_remove_unknown_guest(self, service, tour, agency_id):
        with pytest.raises(GuestNotFoundError):
            service.remove_agency_guest(tour.id, agency_id, "g_missing")


class TestPaxBreakdown:

    def test_split_updates_discount_inventory(self, service, tour, agency_id, repository):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Rahim", seat_count=4))

        service.set_pax_breakdown(tour.id, agency_id, guest.id, SeatBreakdown(regular=1, disc1=2, disc2=1))

        bus = repository.get_tour(tour.id).bus_config
        assert (bus.discount1_seats, bus.discount2_seats, bus.regular_seats) == (2, 1, 37)

    def test_mismatch_reports_expected_and_actual(self, service, tour, agency_id):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Rahim", seat_count=3))

        with pytest.raises(BreakdownMismatchError) as exc_info:
            service.set_pax_breakdown(tour.id, agency_id, guest.id, SeatBreakdown(regular=1, disc1=1))

        assert exc_info.value.expected == 3
        assert exc_info.value.actual == 2
        assert str(exc_info.value) == "Total seats must match guest count (3). You entered 2."

    def test_negative_values_rejected(self, service, tour, agency_id):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Rahim", seat_count=1))
        with pytest.raises(ValueError):
            service.set_pax_breakdown(tour.id, agency_id, guest.id, SeatBreakdown(regular=2, disc1=-1))

    def test_couples_cannot_be_split(self, service, tour, agency_id):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Karim & Nila", is_couple=True))
        with pytest.raises(ValueError):
            service.set_pax_breakdown(tour.id, agency_id, guest.id, SeatBreakdown(regular=2))


class TestToggleReceived:

    def test_agency_guest(self, service, tour, agency_id, repository):
        guest = service.add_agency_guest(tour.id, agency_id, GuestCreate(name="Rahim", seat_count=2))
        assert repository.get_tour(tour.id).total_guests == 0

        toggled = service.toggle_guest_received(tour.id, guest.id)

        assert toggled.is_received is True
        assert repository.get_tour(tour.id).total_guests == 2

        service.toggle_guest_received(tour.id, guest.id)
        assert repository.get_tour(tour.id).total_guests == 0

    def test_personal_guest(self, service, tour, repository):
        guest = service.add_personal_guest(tour.id, "host", GuestCreate(name="Farhana", seat_count=3))

        toggled = service.toggle_guest_received(tour.id, guest.id)

        assert toggled.is_received is True
        assert repository.get_personal_record(tour.id, "host").guests[0].is_received is True
        assert repository.get_tour(tour.id).total_guests == 3

    def test_unknown_guest(self, service, tour):
        with pytest.raises(GuestNotFoundError):
            service.toggle_guest_received(tour.id, "g_missing")


class TestSettlementStatus:

    def test_moves_forward(self, service, tour, agency_id, repository):
        service.set_agency_settlement_status(tour.id, agency_id, SettlementStatus.PAID)
        service.set_agency_settlement_status(tour.id, agency_id, SettlementStatus.SETTLED)

        stored = repository.get_tour(tour.id).partner_agencies[0]
        assert stored.settlement_status == SettlementStatus.SETTLED

    def test_same_status_is_a_no_op(self, service, tour, agency_id):
        agency = service.set_agency_settlement_status(tour.id, agency_id, SettlementStatus.UNPAID)
        assert agency.settlement_status == SettlementStatus.UNPAID

    def test_backward_move_rejected(self, service, tour, agency_id):
        service.set_agency_settlement_status(tour.id, agency_id, SettlementStatus.SETTLED)

        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            service.set_agency_settlement_status(tour.id, agency_id, SettlementStatus.PAID)

        assert exc_info.value.current == "settled"
        assert exc_info.value.requested == "paid"

    def test_host_status(self, service, tour, repository):
        service.set_host_settlement_status(tour.id, SettlementStatus.PAID)
        assert repository.get_tour(tour.id).host_settlement_status == SettlementStatus.PAID

        with pytest.raises(InvalidStatusTransitionError):
            service.set_host_settlement_status(tour.id, SettlementStatus.UNPAID)


class TestPersonalData:

    def test_missing_record_reads_as_empty(self, service, tour):
        data = service.get_personal_data(tour.id, "host")

        assert data.user_id == "host"
        assert data.guests == []
        assert data.booking_fee == 0

    def test_save_overwrites_and_recomputes(self, service, tour, repository):
        service.save_personal_data(tour.id, "host", PersonalData(personal_standard_count=3, personal_disc1_count=1))
        service.save_personal_data(tour.id, "host", PersonalData(personal_standard_count=1))

        stored = repository.get_tour(tour.id)
        assert repository.get_personal_record(tour.id, "host").personal_disc1_count == 0
        assert stored.total_guests == 1
        assert stored.bus_config.discount1_seats == 0

    def test_add_and_remove_guest(self, service, tour, repository):
        service.save_personal_data(tour.id, "host", PersonalData(booking_fee=300))
        guest = service.add_personal_guest(tour.id, "host", GuestCreate(name="Farhana", seat_count=2, is_received=True))

        record = repository.get_personal_record(tour.id, "host")
        assert record.booking_fee == 300
        assert [g.id for g in record.guests] == [guest.id]
        assert repository.get_tour(tour.id).total_guests == 2

        service.remove_personal_guest(tour.id, "host", guest.id)

        assert repository.get_personal_record(tour.id, "host").guests == []
        assert repository.get_tour(tour.id).total_guests == 0

    def test_save_rejects_breakdown_that_misses_seat_count(self, service, tour, repository):
        guest = Guest(seat_count=2, is_received=True, pax_breakdown=SeatBreakdown(disc1=9))

        with pytest.raises(BreakdownMismatchError) as exc_info:
            service.save_personal_data(tour.id, "host", PersonalData(guests=[guest]))

        assert (exc_info.value.expected, exc_info.value.actual) == (2, 9)
        assert repository.get_personal_record(tour.id, "host") is None
        assert repository.get_tour(tour.id).bus_config.discount1_seats == 0

    def test_save_rejects_fee_breakdown_that_misses_seat_count(self, service, tour):
        guest = Guest(seat_count=2, fee_breakdown=SeatBreakdown(regular=1))
        with pytest.raises(BreakdownMismatchError):
            service.save_personal_data(tour.id, "host", PersonalData(guests=[guest]))

    def test_save_normalises_couples(self, service, tour, repository):
        guest = Guest(seat_count=5, is_couple=True, is_received=True, pax_breakdown=SeatBreakdown(disc1=5))

        service.save_personal_data(tour.id, "host", PersonalData(guests=[guest]))

        stored = repository.get_personal_record(tour.id, "host").guests[0]
        assert stored.seat_count == 2
        assert stored.pax_breakdown is None
        assert repository.get_tour(tour.id).total_guests == 2
        assert repository.get_tour(tour.id).bus_config.discount1_seats == 0

    def test_remove_from_missing_record(self, service, tour):
        with pytest.raises(GuestNotFoundError):
            service.remove_personal_guest(tour.id, "nobody", "g_1")


def test_single_category_breakdown():
    assert single_category_breakdown(SeatType.DISC2, 3) == SeatBreakdown(disc2=3)
    assert single_category_breakdown("regular", 1) == SeatBreakdown(regular=1)
