from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Numeric, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from src.database import Base

# ================================
# Tours
# ================================
class Tour(Base):
    __tablename__ = "tours"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    duration = Column(Integer, default=1)
    created_by = Column(String(128))
    assigned_host_id = Column(String(128))

    # Cost configuration (embedded documents)
    fees = Column(JSON, default=dict)
    bus_config = Column(JSON, default=dict)
    costs = Column(JSON, default=dict)
    penalty_amount = Column(Numeric(10, 2), nullable=True)  # NULL means use the configured default

    # Embedded partner agencies, each carrying its own guest list
    partner_agencies = Column(JSON, default=list)

    # Derived cache, rewritten by the seat recompute
    total_guests = Column(Integer, default=0)
    host_settlement_status = Column(String(20), default="unpaid")

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    personal_records = relationship("PersonalRecord", back_populates="tour", cascade="all, delete-orphan")

# ================================
# Personal (host) bookings
# ================================
class PersonalRecord(Base):
    __tablename__ = "personal_records"

    id = Column(String(200), primary_key=True, index=True)  # "{tour_id}_{user_id}"
    tour_id = Column(String(64), ForeignKey("tours.id"), nullable=False, index=True)
    user_id = Column(String(128), nullable=False, index=True)

    # Legacy flat counts, used only when the guest list is empty
    personal_standard_count = Column(Integer, default=0)
    personal_disc1_count = Column(Integer, default=0)
    personal_disc2_count = Column(Integer, default=0)

    booking_fee = Column(Numeric(12, 2), default=0)
    custom_expenses = Column(JSON, default=list)
    guests = Column(JSON, default=list)
    custom_pricing = Column(JSON, nullable=True)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    tour = relationship("Tour", back_populates="personal_records")
