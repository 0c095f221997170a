class LedgerError(Exception):
    """Base exception for tour ledger errors"""
    pass

class TourNotFoundError(LedgerError):
    def __init__(self, tour_id: str):
        super().__init__(f"Tour {tour_id} not found")
        self.tour_id = tour_id

class AgencyNotFoundError(LedgerError):
    def __init__(self, agency_id: str):
        super().__init__(f"Agency {agency_id} not found")
        self.agency_id = agency_id

class GuestNotFoundError(LedgerError):
    def __init__(self, guest_id: str):
        super().__init__(f"Guest {guest_id} not found")
        self.guest_id = guest_id

class BreakdownMismatchError(LedgerError, ValueError):
    """Seat breakdown does not add up to the guest's seat count"""

    def __init__(self, expected: float, actual: float):
        super().__init__(
            f"Total seats must match guest count ({expected:g}). You entered {actual:g}."
        )
        self.expected = expected
        self.actual = actual

class InvalidStatusTransitionError(LedgerError, ValueError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"Settlement status cannot move from '{current}' to '{requested}'")
        self.current = current
        self.requested = requested
