"""Availability domain - bookable slots and capacity checks"""

from .router import router

__all__ = ["router"]
