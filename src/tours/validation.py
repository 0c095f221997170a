from src.tours.calculations import guest_seats
from src.tours.exceptions import BreakdownMismatchError, InvalidStatusTransitionError
from src.tours.schemas import Guest, SeatBreakdown, SettlementStatus

# Forward-only settlement lifecycle
STATUS_ORDER = [SettlementStatus.UNPAID, SettlementStatus.PAID, SettlementStatus.SETTLED]

class LedgerValidator:
    """Checks applied before any guest or settlement write"""

    @staticmethod
    def validate_breakdown(guest: Guest, breakdown: SeatBreakdown) -> None:
        """A pax breakdown must account for exactly the guest's seats"""
        if guest.is_couple:
            raise ValueError("Couple bookings cannot be given a seat breakdown")

        expected = guest.seat_count if guest.seat_count > 0 else guest_seats(guest)

        for value in (breakdown.regular, breakdown.disc1, breakdown.disc2):
            if value < 0:
                raise ValueError("Seat breakdown values cannot be negative")

        actual = breakdown.total
        if actual != expected:
            raise BreakdownMismatchError(expected=expected, actual=actual)

    @staticmethod
    def validate_fee_breakdown(seat_count: float, breakdown: SeatBreakdown, is_couple: bool) -> None:
        """Fee categories are priced per seat, so they must also cover every seat"""
        if is_couple:
            raise ValueError("Couple bookings are billed as a package and cannot carry a fee breakdown")
        if breakdown.total != seat_count:
            raise BreakdownMismatchError(expected=seat_count, actual=breakdown.total)

    @staticmethod
    def validate_status_transition(current: SettlementStatus, requested: SettlementStatus) -> bool:
        """Returns False when the status is already set, raises on a backward move"""
        current_index = STATUS_ORDER.index(SettlementStatus(current))
        requested_index = STATUS_ORDER.index(SettlementStatus(requested))
        if requested_index == current_index:
            return False
        if requested_index < current_index:
            raise InvalidStatusTransitionError(current=SettlementStatus(current).value, requested=SettlementStatus(requested).value)
        return True
