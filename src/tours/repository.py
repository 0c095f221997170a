import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src import models
from src.tours.schemas import PartnerAgency, PersonalData, Tour

logger = logging.getLogger(__name__)

# Document fields that may be written through update_tour_fields
TOUR_DOCUMENT_FIELDS = {"fees", "bus_config", "costs"}
TOUR_SCALAR_FIELDS = {
    "name", "date", "duration", "assigned_host_id", "penalty_amount",
    "partner_agencies", "total_guests", "host_settlement_status",
}

class TourRepository:
    """Document-style access to tours and personal records.

    Tours carry their partner agencies (and the agencies' guests) embedded.
    Writes are merge-style partial updates: only the named fields change and
    nested documents are merged key by key.
    """

    def __init__(self, db: Session):
        self.db = db

    # Tours
    def get_tour(self, tour_id: str) -> Optional[Tour]:
        """Load a tour, bypassing any copy cached in the session"""
        row = self.db.get(models.Tour, tour_id, populate_existing=True)
        if row is None:
            return None
        return self._tour_from_row(row)

    def list_tours_by_date(self, date: str) -> List[Tour]:
        rows = self.db.query(models.Tour).filter(models.Tour.date == date).order_by(models.Tour.name).all()
        return [self._tour_from_row(row) for row in rows]

    def create_tour(self, tour: Tour) -> Tour:
        data = tour.model_dump(mode="json")
        row = models.Tour(**data)
        self._commit(lambda: self.db.add(row))
        logger.info("Created tour %s (%s)", tour.id, tour.name)
        return self._tour_from_row(row)

    def update_tour_fields(self, tour_id: str, fields: Dict[str, Any]) -> bool:
        """Merge ``fields`` into the stored tour. Returns False if the tour is missing."""
        unknown = set(fields) - TOUR_DOCUMENT_FIELDS - TOUR_SCALAR_FIELDS
        if unknown:
            raise ValueError(f"Unknown tour fields: {', '.join(sorted(unknown))}")

        row = self.db.get(models.Tour, tour_id, populate_existing=True)
        if row is None:
            return False

        def apply():
            for key, value in fields.items():
                if key in TOUR_DOCUMENT_FIELDS:
                    # Assign a new dict so the JSON column is flagged dirty
                    value = {**(getattr(row, key) or {}), **value}
                setattr(row, key, value)

        self._commit(apply)
        return True

    def save_partner_agencies(self, tour_id: str, agencies: List[PartnerAgency]) -> bool:
        return self.update_tour_fields(
            tour_id,
            {"partner_agencies": [agency.model_dump(mode="json") for agency in agencies]}
        )

    # Personal records
    def query_personal_by_tour(self, tour_id: str) -> List[PersonalData]:
        rows = self.db.query(models.PersonalRecord).filter(
            models.PersonalRecord.tour_id == tour_id
        ).populate_existing().all()
        return [self._personal_from_row(row) for row in rows]

    def get_personal_record(self, tour_id: str, user_id: str) -> Optional[PersonalData]:
        row = self.db.get(models.PersonalRecord, f"{tour_id}_{user_id}", populate_existing=True)
        if row is None:
            return None
        return self._personal_from_row(row)

    def set_personal_record(self, tour_id: str, user_id: str, record: PersonalData) -> PersonalData:
        """Overwrite (or create) the personal record for a tour and host"""
        data = record.model_dump(mode="json")
        data.update(tour_id=tour_id, user_id=user_id)
        record_id = f"{tour_id}_{user_id}"

        def apply():
            row = self.db.get(models.PersonalRecord, record_id)
            if row is None:
                self.db.add(models.PersonalRecord(id=record_id, **data))
            else:
                for key, value in data.items():
                    setattr(row, key, value)

        self._commit(apply)
        return PersonalData(**data)

    # Helpers
    def _commit(self, apply):
        try:
            apply()
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception("Store write failed")
            raise

    @staticmethod
    def _tour_from_row(row: models.Tour) -> Tour:
        return Tour(
            id=row.id,
            name=row.name,
            date=row.date,
            duration=row.duration,
            created_by=row.created_by,
            assigned_host_id=row.assigned_host_id,
            fees=row.fees,
            bus_config=row.bus_config,
            costs=row.costs,
            penalty_amount=row.penalty_amount,
            partner_agencies=row.partner_agencies,
            total_guests=row.total_guests,
            host_settlement_status=row.host_settlement_status,
        )

    @staticmethod
    def _personal_from_row(row: models.PersonalRecord) -> PersonalData:
        return PersonalData(
            tour_id=row.tour_id,
            user_id=row.user_id,
            personal_standard_count=row.personal_standard_count,
            personal_disc1_count=row.personal_disc1_count,
            personal_disc2_count=row.personal_disc2_count,
            booking_fee=row.booking_fee,
            custom_expenses=row.custom_expenses,
            guests=row.guests,
            custom_pricing=row.custom_pricing,
        )
