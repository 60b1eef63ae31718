"""Exception hierarchy shared by the pricing, booking and collaborator layers.

Every error carries a ``user_message`` taken from a small fixed vocabulary so
that the API layer never has to show raw collaborator payloads to end users.
"""

from __future__ import annotations


class BookingError(Exception):
    """Base class for every error raised by the booking core."""

    user_message = "Something went wrong with your booking. Please try again."
    retryable = False

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail or self.user_message


# Validation: recoverable, the client should re-prompt.


class ValidationError(BookingError, ValueError):
    user_message = "Please check your selection and try again."


class InvalidVehicleClass(ValidationError):
    user_message = "Please choose one of the available vehicles."


class InvalidRouteEstimate(ValidationError):
    user_message = "We could not price this trip. Please check the pickup and drop-off locations."


class IncompleteVehicleSelection(ValidationError):
    user_message = "Please choose a vehicle to continue."


class IncompleteSchedule(ValidationError):
    user_message = "Please select both a date and time slot."


class InvalidTimeSlot(ValidationError):
    user_message = "Please choose one of the available time slots."


class InvalidChecklistItem(ValidationError):
    user_message = "Please enter an item name."


class InvalidTransition(ValidationError):
    user_message = "This step is not available right now."


class MissingLocations(ValidationError):
    user_message = "Please enter both pickup and drop-off locations."


class PaymentNotConfirmed(ValidationError):
    user_message = "Your payment has not been confirmed yet."


# Collaborators: recoverable, retryable with backoff.


class CollaboratorError(BookingError):
    user_message = "A service we depend on is unavailable. Please try again shortly."
    retryable = True

    def __init__(self, detail: str | None = None, *, reason: str = "unavailable") -> None:
        super().__init__(detail)
        self.reason = reason


class CollaboratorTimeout(CollaboratorError):
    user_message = "The request took too long. Please try again."

    def __init__(self, detail: str | None = None, *, reason: str = "timeout") -> None:
        super().__init__(detail, reason=reason)


class GeocodingError(CollaboratorError):
    user_message = "We could not find that location. Please check the address."


class RoutingError(CollaboratorError):
    user_message = "We could not find a route between these locations."


class StoreError(CollaboratorError):
    user_message = "We could not save your order. Please try again."


class RouteResolutionError(CollaboratorError):
    user_message = "We could not calculate your trip. Please check the locations and try again."


class OrderSubmissionError(CollaboratorError):
    user_message = "We could not save your order. Please try again."


# Session lifecycle.


class SubmissionInProgress(BookingError):
    user_message = "Your order is already being submitted."


class SessionNotFound(BookingError):
    user_message = "This booking session has expired. Please start again."


class SessionAbandoned(BookingError):
    user_message = "This booking session has been closed. Please start again."


class InvariantViolation(BookingError):
    """Computed state broke an invariant; fatal to the session."""

    user_message = "Something went wrong with your booking. Please start again."
