from pydantic import BaseModel, Field, validator
from typing import List, Optional
from enum import Enum
import uuid

from src.tours.utils import to_number

def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"

def _optional_number(value):
    if value is None or value == "":
        return None
    return to_number(value)

class SeatType(str, Enum):
    """Seat / fee category"""
    REGULAR = "regular"
    DISC1 = "disc1"
    DISC2 = "disc2"

class SettlementStatus(str, Enum):
    """Settlement status enumeration"""
    UNPAID = "unpaid"
    PAID = "paid"
    SETTLED = "settled"

# Tour configuration
class BusConfig(BaseModel):
    """Bus rent and seat inventory"""
    total_rent: float = 0
    total_seats: float = 0
    regular_seats: float = 0  # derived by the seat recompute
    discount1_seats: float = 0
    discount1_amount: float = 0
    discount2_seats: float = 0
    discount2_amount: float = 0

    @validator(
        'total_rent', 'total_seats', 'regular_seats', 'discount1_seats',
        'discount1_amount', 'discount2_seats', 'discount2_amount', pre=True
    )
    def normalize_numbers(cls, v):
        return to_number(v)

class TourFees(BaseModel):
    """Guest package prices"""
    regular: float = 0
    disc1: float = 0
    disc2: float = 0

    @validator('regular', 'disc1', 'disc2', pre=True)
    def normalize_numbers(cls, v):
        return to_number(v)

class DailyExpense(BaseModel):
    day: int = 1
    breakfast: float = 0
    lunch: float = 0
    dinner: float = 0
    transport: float = 0
    other: float = 0

    @validator('breakfast', 'lunch', 'dinner', 'transport', 'other', pre=True)
    def normalize_numbers(cls, v):
        return to_number(v)

    @validator('day', pre=True)
    def normalize_day(cls, v):
        return int(to_number(v)) or 1

    @property
    def total(self) -> float:
        return self.breakfast + self.lunch + self.dinner + self.transport + self.other

class FixedCost(BaseModel):
    """Named ad-hoc cost line"""
    id: str = Field(default_factory=lambda: _new_id("cost"))
    name: str = ""
    amount: float = 0

    @validator('amount', pre=True)
    def normalize_amount(cls, v):
        return to_number(v)

class TourCosts(BaseModel):
    host_fee: float = 0
    hotel_cost: float = 0
    couple_hotel_cost: float = 0
    other_fixed_costs: List[FixedCost] = []
    daily_expenses: List[DailyExpense] = []

    @validator('host_fee', 'hotel_cost', 'couple_hotel_cost', pre=True)
    def normalize_numbers(cls, v):
        return to_number(v)

    @validator('other_fixed_costs', 'daily_expenses', pre=True)
    def default_lists(cls, v):
        return v or []

# Guests and parties
class SeatBreakdown(BaseModel):
    """Per-category split of a guest entry's seats"""
    regular: float = 0
    disc1: float = 0
    disc2: float = 0

    @validator('regular', 'disc1', 'disc2', pre=True)
    def normalize_numbers(cls, v):
        return to_number(v)

    @property
    def total(self) -> float:
        return self.regular + self.disc1 + self.disc2

class Guest(BaseModel):
    """A booking entry occupying one or more seats"""
    id: str = Field(default_factory=lambda: _new_id("g"))
    name: str = ""
    phone: str = ""
    address: str = ""
    seat_count: float = 0
    seat_numbers: Optional[str] = None
    unit_price: float = 0
    collection: float = 0
    seat_type: SeatType = SeatType.REGULAR  # legacy single-category tag
    is_received: bool = False
    is_couple: bool = False
    pax_breakdown: Optional[SeatBreakdown] = None  # drives cost
    fee_breakdown: Optional[SeatBreakdown] = None  # drives income

    @validator('seat_count', 'unit_price', 'collection', pre=True)
    def normalize_numbers(cls, v):
        return to_number(v)

    @validator('seat_type', pre=True)
    def default_seat_type(cls, v):
        if v in (SeatType.DISC1, SeatType.DISC2, "disc1", "disc2"):
            return v
        return SeatType.REGULAR

    @validator('is_received', 'is_couple', pre=True)
    def normalize_flags(cls, v):
        if isinstance(v, str):
            return v.strip().lower() in ("true", "1", "yes", "on")
        return bool(v)

    @validator('name', 'phone', 'address', pre=True)
    def default_text(cls, v):
        return v or ""

class AgencyExpense(BaseModel):
    id: str = Field(default_factory=lambda: _new_id("exp"))
    description: str = ""
    amount: float = 0

    @validator('amount', pre=True)
    def normalize_amount(cls, v):
        return to_number(v)

class PartnerAgency(BaseModel):
    """Agency embedded in a tour with its own guest list"""
    id: str = Field(default_factory=lambda: _new_id("agency"))
    name: str = ""
    email: str = ""  # identity key, matches the agency user's login email
    phone: str = ""
    guests: List[Guest] = []
    expenses: List[AgencyExpense] = []
    settlement_status: SettlementStatus = SettlementStatus.UNPAID

    @validator('guests', 'expenses', pre=True)
    def default_lists(cls, v):
        return v or []

    @validator('email', pre=True)
    def normalize_email(cls, v):
        return (v or "").strip().lower()

    @validator('settlement_status', pre=True)
    def default_status(cls, v):
        return v or SettlementStatus.UNPAID

class CustomPricing(BaseModel):
    """Per-host override of the fee schedule"""
    base_fee: Optional[float] = None
    d1_amount: Optional[float] = None
    d2_amount: Optional[float] = None

    @validator('base_fee', 'd1_amount', 'd2_amount', pre=True)
    def normalize_numbers(cls, v):
        return _optional_number(v)

class PersonalData(BaseModel):
    """A host's direct bookings for one tour"""
    tour_id: str = ""
    user_id: str = ""
    personal_standard_count: float = 0
    personal_disc1_count: float = 0
    personal_disc2_count: float = 0
    booking_fee: float = 0
    custom_expenses: List[FixedCost] = []
    guests: List[Guest] = []
    custom_pricing: Optional[CustomPricing] = None

    @validator(
        'personal_standard_count', 'personal_disc1_count', 'personal_disc2_count',
        'booking_fee', pre=True
    )
    def normalize_numbers(cls, v):
        return to_number(v)

    @validator('custom_expenses', 'guests', pre=True)
    def default_lists(cls, v):
        return v or []

    @property
    def record_id(self) -> str:
        return f"{self.tour_id}_{self.user_id}"

class Tour(BaseModel):
    """Tour with cost configuration and embedded agencies"""
    id: str
    name: str = ""
    date: str = ""
    duration: int = 1
    created_by: Optional[str] = None
    assigned_host_id: Optional[str] = None
    fees: TourFees = Field(default_factory=TourFees)
    bus_config: BusConfig = Field(default_factory=BusConfig)
    costs: TourCosts = Field(default_factory=TourCosts)
    penalty_amount: Optional[float] = None
    partner_agencies: List[PartnerAgency] = []
    total_guests: float = 0
    host_settlement_status: SettlementStatus = SettlementStatus.UNPAID

    @validator('fees', 'bus_config', 'costs', pre=True)
    def default_documents(cls, v):
        return v or {}

    @validator('partner_agencies', pre=True)
    def default_agencies(cls, v):
        return v or []

    @validator('penalty_amount', pre=True)
    def normalize_penalty(cls, v):
        return _optional_number(v)

    @validator('total_guests', pre=True)
    def normalize_total(cls, v):
        return to_number(v)

    @validator('duration', pre=True)
    def normalize_duration(cls, v):
        return int(to_number(v)) or 1

    @validator('host_settlement_status', pre=True)
    def default_status(cls, v):
        return v or SettlementStatus.UNPAID

# Calculation results
class BusFareEstimate(BaseModel):
    """Planning preview of per-seat bus fares"""
    base_fare: int = 0
    regular_fare: int = 0
    discount1_fare: int = 0
    discount2_fare: int = 0
    total_discount_loss: int = 0

class BuyRates(BaseModel):
    """Cost to provide one seat per category, or one couple unit"""
    regular: int = 0
    d1: int = 0
    d2: int = 0
    couple_package_rate: int = 0
    regular_bus_fare: int = 0
    common_variable_per_head: int = 0
    reg_hotel_per_head: int = 0
    couple_hotel_per_unit: int = 0
    variable_divisor: float = 1
    total_received: float = 0

class FeeSchedule(BaseModel):
    regular: float = 0
    d1: float = 0
    d2: float = 0

class AgencySettlement(BaseModel):
    total_collection: float = 0
    agency_expenses: float = 0
    fixed_cost_share: float = 0
    total_cost: float = 0
    net_amount: float = 0  # positive: agency pays the house
    total_seats: float = 0
    rates: BuyRates = Field(default_factory=BuyRates)

class PersonalSettlement(BaseModel):
    total_personal_income: float = 0
    personal_expenses: float = 0
    total_personal_cost: float = 0
    net_result: float = 0
    fees: FeeSchedule = Field(default_factory=FeeSchedule)
    rates: BuyRates = Field(default_factory=BuyRates)

class SeatAggregate(BaseModel):
    """Aggregate seat fields derived from every guest source of a tour"""
    total_d1_booked: float = 0
    total_d2_booked: float = 0
    total_booked_guests: float = 0
    total_received_guests: float = 0
    regular_seats: float = 0

# Requests
class AgencyCreate(BaseModel):
    name: str
    email: str = ""
    phone: str = ""

    @validator('name')
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Agency name is required')
        return v.strip()

class GuestCreate(BaseModel):
    """Request to add a guest entry"""
    name: str
    phone: str = ""
    address: str = ""
    seat_count: int = Field(1, ge=1)
    seat_numbers: Optional[str] = None
    unit_price: float = 0
    collection: Optional[float] = None  # defaults to seat_count * unit_price
    seat_type: SeatType = SeatType.REGULAR
    is_couple: bool = False
    is_received: bool = False
    fee_breakdown: Optional[SeatBreakdown] = None

    @validator('name')
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError('Guest name is required')
        return v.strip()

class GuestUpdate(BaseModel):
    """Partial update of a guest entry"""
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    seat_count: Optional[int] = Field(None, ge=1)
    seat_numbers: Optional[str] = None
    unit_price: Optional[float] = None
    collection: Optional[float] = None
    seat_type: Optional[SeatType] = None
    is_couple: Optional[bool] = None
    is_received: Optional[bool] = None
    fee_breakdown: Optional[SeatBreakdown] = None

class AgencyBookingRequest(BaseModel):
    """Agency self-service booking, identified by the agency's email"""
    email: str
    guest: GuestCreate

    @validator('email')
    def validate_email(cls, v):
        if not v or "@" not in v:
            raise ValueError('A valid agency email is required')
        return v.strip().lower()

class ExpenseCreate(BaseModel):
    description: str
    amount: float = 0

class SettlementStatusUpdate(BaseModel):
    status: SettlementStatus

# Reports
class TourReport(BaseModel):
    tour_id: str
    tour_name: str
    date: str
    agency_collection: float = 0
    personal_collection: float = 0
    total_income: float = 0
    total_expense: float = 0
    profit: float = 0

class DailyReport(BaseModel):
    date: str
    tours: List[TourReport] = []
    grand_total_collection: float = 0
    grand_total_expense: float = 0
    grand_total_profit: float = 0

class HostSettlementSummary(BaseModel):
    tour_id: str
    personal_collection: float = 0
    agency_collection: float = 0
    total_collection: float = 0
    host_spending: float = 0
    net_balance: float = 0
    status: SettlementStatus = SettlementStatus.UNPAID

class OccupancySummary(BaseModel):
    tour_id: str
    total_seats: float = 0
    booked_seats: float = 0
    received_seats: float = 0
    available_seats: float = 0
    regular_seats: float = 0
    discount1_seats: float = 0
    discount2_seats: float = 0
    fare_preview: BusFareEstimate = Field(default_factory=BusFareEstimate)
