import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from src.tours.calculations import guest_seats, seats_by_category
from src.tours.repository import TourRepository
from src.tours.schemas import Guest, PersonalData, SeatAggregate, SeatType, Tour
from src.tours.utils import to_number

logger = logging.getLogger(__name__)

def aggregate_seats(tour: Tour, personal_records: Iterable[PersonalData]) -> SeatAggregate:
    """Project every guest source of a tour onto its aggregate seat fields.

    Discount inventory counts every booked guest, received or not. The received
    total only counts guests marked received, except legacy personal records
    without a guest list, which are counted in full.
    """
    guest_lists: List[List[Guest]] = [agency.guests for agency in tour.partner_agencies]

    total_d1 = 0
    total_d2 = 0
    total_booked = 0
    total_received = 0

    for record in personal_records:
        if record.guests:
            guest_lists.append(record.guests)
            continue
        legacy_total = (
            record.personal_standard_count + record.personal_disc1_count + record.personal_disc2_count
        )
        total_d1 += record.personal_disc1_count
        total_d2 += record.personal_disc2_count
        total_booked += legacy_total
        total_received += legacy_total

    for guests in guest_lists:
        for guest in guests:
            seats = guest_seats(guest)
            if not guest.is_couple:
                split = seats_by_category(guest)
                total_d1 += split[SeatType.DISC1]
                total_d2 += split[SeatType.DISC2]
            total_booked += seats
            if guest.is_received:
                total_received += seats

    regular_seats = max(0, to_number(tour.bus_config.total_seats) - total_d1 - total_d2)

    return SeatAggregate(
        total_d1_booked=total_d1,
        total_d2_booked=total_d2,
        total_booked_guests=total_booked,
        total_received_guests=total_received,
        regular_seats=regular_seats,
    )

class SeatRecomputeService:
    """Keeps a tour's seat aggregates consistent with its guest lists.

    The recompute always rebuilds from a fresh read of every guest source, so
    running it again after a lost or interleaved write converges on the same
    result. It only writes aggregate fields, never guest lists.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repository = TourRepository(db)

    def recalculate_tour_seats(self, tour_id: str) -> Optional[SeatAggregate]:
        tour = self.repository.get_tour(tour_id)
        if tour is None:
            logger.warning("Seat recompute skipped: tour %s not found", tour_id)
            return None

        personal_records = self.repository.query_personal_by_tour(tour_id)
        aggregate = aggregate_seats(tour, personal_records)

        updated = self.repository.update_tour_fields(tour_id, {
            "bus_config": {
                "regular_seats": aggregate.regular_seats,
                "discount1_seats": aggregate.total_d1_booked,
                "discount2_seats": aggregate.total_d2_booked,
            },
            "total_guests": aggregate.total_received_guests,
        })
        if not updated:
            logger.warning("Seat recompute skipped: tour %s removed during recompute", tour_id)
            return None

        logger.info(
            "Recomputed seats for tour %s: regular=%s disc1=%s disc2=%s received=%s",
            tour_id, aggregate.regular_seats, aggregate.total_d1_booked,
            aggregate.total_d2_booked, aggregate.total_received_guests
        )
        return aggregate
