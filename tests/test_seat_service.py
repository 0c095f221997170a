"""
Tests for seat aggregation and the recompute service.
"""

from src.tours.schemas import BusConfig, Guest, PartnerAgency, PersonalData, SeatBreakdown, SeatType, Tour
from src.tours.seat_service import SeatRecomputeService, aggregate_seats
from tests.factories import couple_guest, regular_guest


def mixed_agency():
    return PartnerAgency(id="a1", name="Mixed", guests=[
        Guest(seat_count=3, is_received=True, pax_breakdown=SeatBreakdown(regular=1, disc1=2)),
        Guest(seat_count=2, seat_type=SeatType.DISC2, is_received=False),
        couple_guest(),
    ])


class TestAggregateSeats:
    """Pure projection from guest sources to aggregate fields"""

    def test_counts_across_agencies_and_personal_records(self):
        tour = Tour(id="t1", bus_config=BusConfig(total_seats=20), partner_agencies=[mixed_agency()])
        personal = [
            PersonalData(tour_id="t1", user_id="host", guests=[regular_guest(seats=1)]),
            PersonalData(tour_id="t1", user_id="legacy", personal_standard_count=2, personal_disc1_count=1),
        ]

        aggregate = aggregate_seats(tour, personal)

        assert aggregate.total_d1_booked == 3
        assert aggregate.total_d2_booked == 2
        assert aggregate.total_booked_guests == 11
        assert aggregate.total_received_guests == 9
        assert aggregate.regular_seats == 15

    def test_discount_inventory_ignores_arrival_status(self):
        tour = Tour(id="t1", bus_config=BusConfig(total_seats=10), partner_agencies=[
            PartnerAgency(guests=[Guest(seat_count=4, seat_type=SeatType.DISC1, is_received=False)]),
        ])

        aggregate = aggregate_seats(tour, [])

        assert aggregate.total_d1_booked == 4
        assert aggregate.total_received_guests == 0
        assert aggregate.regular_seats == 6

    def test_regular_seats_never_negative(self):
        tour = Tour(id="t1", bus_config=BusConfig(total_seats=2), partner_agencies=[
            PartnerAgency(guests=[Guest(seat_count=3, seat_type=SeatType.DISC1)]),
        ])
        assert aggregate_seats(tour, []).regular_seats == 0

    def test_couple_counts_as_two_regular_seats(self):
        guest = couple_guest(received=True, pax_breakdown=SeatBreakdown(disc1=2))
        tour = Tour(id="t1", bus_config=BusConfig(total_seats=10), partner_agencies=[PartnerAgency(guests=[guest])])

        aggregate = aggregate_seats(tour, [])

        assert aggregate.total_d1_booked == 0
        assert aggregate.total_received_guests == 2
        assert aggregate.regular_seats == 10


class TestSeatRecomputeService:

    def test_persists_aggregate_fields(self, db, make_tour, repository):
        tour = make_tour(
            bus_config=BusConfig(total_seats=40, total_rent=4000, discount1_amount=100),
            partner_agencies=[PartnerAgency(id="a1", guests=[regular_guest(seats=5, collection=2500)])],
        )

        result = SeatRecomputeService(db).recalculate_tour_seats(tour.id)

        stored = repository.get_tour(tour.id)
        assert result.total_received_guests == 5
        assert stored.total_guests == 5
        assert stored.bus_config.regular_seats == 40
        assert stored.bus_config.discount1_seats == 0
        assert stored.bus_config.discount2_seats == 0

    def test_authored_bus_fields_are_preserved(self, db, make_tour, repository):
        tour = make_tour(bus_config=BusConfig(total_seats=30, total_rent=9000, discount1_amount=100))

        SeatRecomputeService(db).recalculate_tour_seats(tour.id)

        stored = repository.get_tour(tour.id)
        assert stored.bus_config.total_rent == 9000
        assert stored.bus_config.discount1_amount == 100
        assert stored.bus_config.regular_seats == 30

    def test_idempotent(self, db, make_tour, repository):
        tour = make_tour(bus_config=BusConfig(total_seats=20), partner_agencies=[mixed_agency()])
        repository.set_personal_record(tour.id, "legacy", PersonalData(personal_standard_count=2, personal_disc2_count=1))
        service = SeatRecomputeService(db)

        service.recalculate_tour_seats(tour.id)
        first = repository.get_tour(tour.id)
        service.recalculate_tour_seats(tour.id)
        second = repository.get_tour(tour.id)

        assert first.bus_config == second.bus_config
        assert first.total_guests == second.total_guests
        assert second.total_guests == 2 + 3 + 3

    def test_heals_stale_cache(self, db, make_tour, repository):
        tour = make_tour(total_guests=99, bus_config=BusConfig(total_seats=10, regular_seats=1, discount1_seats=9))

        SeatRecomputeService(db).recalculate_tour_seats(tour.id)

        stored = repository.get_tour(tour.id)
        assert stored.total_guests == 0
        assert stored.bus_config.regular_seats == 10
        assert stored.bus_config.discount1_seats == 0

    def test_missing_tour_aborts_without_error(self, db):
        assert SeatRecomputeService(db).recalculate_tour_seats("missing") is None
