"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.serial_numbers import router as serial_numbers_router
from routes.shipment_serials import router as shipment_serials_router

__all__ = [
    "serial_numbers_router",
    "shipment_serials_router",
]
