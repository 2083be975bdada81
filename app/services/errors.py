# app/services/errors.py
"""
Domain error taxonomy for the parking engine.
Every guard failure surfaces as one of these; app/main.py maps them to HTTP codes.
"""


class ParkingError(Exception):
    """Base class. `code` is the machine-readable reason sent to API clients."""

    code = "parking_error"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def __str__(self):
        return self.message


class ValidationError(ParkingError):
    """Bad input: malformed dates, out-of-range discount, empty required field."""
    code = "validation_error"


class ConflictError(ParkingError):
    """Guard violation against the current state of a space."""
    code = "conflict"


class OverrideRequiredError(ConflictError):
    """Space is held for another plate; retry with override=True once staff confirms."""
    code = "override_required"


class NotFoundError(ParkingError):
    code = "not_found"


class ConfigurationError(ParkingError):
    """Lot configuration is incomplete, e.g. no rate for a vehicle type."""
    code = "configuration_error"


class NoAvailabilityError(ParkingError):
    code = "no_availability"


class ExpiredError(ParkingError):
    """Acting on a reservation whose reserved_until has passed."""
    code = "expired"
