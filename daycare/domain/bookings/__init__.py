"""Bookings domain - staff booking management and client self-booking"""

from .router import router

__all__ = ["router"]
