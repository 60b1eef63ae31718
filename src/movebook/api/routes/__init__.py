"""Route group exports."""

from . import bookings, health, orders, vehicles

__all__ = ["bookings", "health", "orders", "vehicles"]
