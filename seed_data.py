#!/usr/bin/env python3

import sys
import os

# Add src to path
sys.path.append(os.path.join(os.path.dirname(__file__), 'src'))

from src.database import Base, SessionLocal, engine
from src.models import PersonalRecord, Tour as TourRow
from src.tours.guest_service import GuestService
from src.tours.repository import TourRepository
from src.tours.schemas import (
    AgencyBookingRequest, AgencyCreate, BusConfig, DailyExpense, FixedCost, GuestCreate,
    PersonalData, SeatBreakdown, SeatType, Tour, TourCosts, TourFees
)
from src.tours.settlement_service import compute_agency_settlement, compute_personal_settlement

DEMO_TOUR_ID = "tour_sajek_demo"

def create_seed_data():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()

    try:
        print("🚀 Creating seed data for Tour Booking Ledger...")

        # Clear existing demo data
        print("Clearing existing data...")
        db.query(PersonalRecord).filter(PersonalRecord.tour_id == DEMO_TOUR_ID).delete()
        db.query(TourRow).filter(TourRow.id == DEMO_TOUR_ID).delete()
        db.commit()

        # 1. Create the tour
        print("Creating tour...")
        repository = TourRepository(db)
        repository.create_tour(Tour(
            id=DEMO_TOUR_ID,
            name="Sajek Valley",
            date="2026-11-20",
            duration=2,
            fees=TourFees(regular=6500, disc1=6000, disc2=5500),
            bus_config=BusConfig(
                total_rent=40000, total_seats=40,
                discount1_amount=500, discount2_amount=1000
            ),
            costs=TourCosts(
                host_fee=3000,
                hotel_cost=36000,
                couple_hotel_cost=12000,
                other_fixed_costs=[FixedCost(name="Jeep", amount=9000)],
                daily_expenses=[
                    DailyExpense(day=1, breakfast=4000, lunch=6000, dinner=7000, transport=1500),
                    DailyExpense(day=2, breakfast=4000, lunch=6000, dinner=0, transport=1500, other=800),
                ],
            ),
        ))

        # 2. Partner agencies and their guests
        print("Creating agencies and bookings...")
        service = GuestService(db)
        agency = service.add_agency(DEMO_TOUR_ID, AgencyCreate(name="Green Trails", email="ops@greentrails.example", phone="01700000001"))
        guest = service.add_agency_guest(DEMO_TOUR_ID, agency.id, GuestCreate(name="Rahim", phone="01811111111", seat_count=4, unit_price=6500, is_received=True))
        service.set_pax_breakdown(DEMO_TOUR_ID, agency.id, guest.id, SeatBreakdown(regular=2, disc1=2, disc2=0))
        service.add_agency_guest(DEMO_TOUR_ID, agency.id, GuestCreate(name="Karim & Nila", seat_count=2, collection=15000, is_couple=True, is_received=True))
        service.add_agency_guest(DEMO_TOUR_ID, agency.id, GuestCreate(name="Sumon", seat_count=2, unit_price=6500))

        service.book_as_agency(DEMO_TOUR_ID, AgencyBookingRequest(
            email="desk@hilltracks.example",
            guest=GuestCreate(name="Tania", seat_count=3, unit_price=6000, seat_type=SeatType.DISC1, is_received=True)
        ))

        # 3. Host's personal bookings
        print("Creating personal bookings...")
        service.save_personal_data(DEMO_TOUR_ID, "host_demo", PersonalData(
            tour_id=DEMO_TOUR_ID,
            user_id="host_demo",
            booking_fee=1000,
            custom_expenses=[FixedCost(name="Guide tips", amount=1200)],
        ))
        service.add_personal_guest(DEMO_TOUR_ID, "host_demo", GuestCreate(
            name="Farhana", seat_count=2, unit_price=6500, is_received=True,
            fee_breakdown=SeatBreakdown(regular=1, disc1=1, disc2=0)
        ))

        # 4. Summary
        tour = repository.get_tour(DEMO_TOUR_ID)
        print(f"✅ Tour '{tour.name}': {tour.total_guests:g} received seats, "
              f"{tour.bus_config.regular_seats:g} regular / {tour.bus_config.discount1_seats:g} disc1 / "
              f"{tour.bus_config.discount2_seats:g} disc2")
        for partner in tour.partner_agencies:
            settlement = compute_agency_settlement(tour, partner)
            print(f"   - {partner.name}: net {settlement.net_amount:g}")
        personal = compute_personal_settlement(tour, repository.get_personal_record(DEMO_TOUR_ID, "host_demo"))
        print(f"   - host_demo: net {personal.net_result:g}")

    except Exception as e:
        print(f"❌ Error creating seed data: {e}")
        db.rollback()
        raise
    finally:
        db.close()

if __name__ == "__main__":
    create_seed_data()
