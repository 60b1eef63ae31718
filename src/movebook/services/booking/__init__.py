"""Booking flow services."""

from .sessions import SessionRegistry, get_session_registry
from .state_machine import BookingStateMachine, slot_start_time

__all__ = ["BookingStateMachine", "SessionRegistry", "get_session_registry", "slot_start_time"]
