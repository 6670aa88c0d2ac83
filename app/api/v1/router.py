"""Main API router that includes all endpoint routers."""

from fastapi import APIRouter

from app.api.v1 import (
    commissions,
    orders,
    payments,
    reservations,
    revenue,
    vendor_bookings,
    vendor_payments,
)

api_router = APIRouter()

# Bookings
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])
api_router.include_router(reservations.router, prefix="/reservations", tags=["Reservations"])
api_router.include_router(vendor_bookings.router, prefix="/vendor", tags=["Vendor Bookings"])

# Payments
api_router.include_router(payments.router, prefix="/payments", tags=["Payments"])

# Settlement
api_router.include_router(vendor_payments.router, prefix="/vendor-payments", tags=["Vendor Payments"])
api_router.include_router(commissions.router, prefix="/commissions", tags=["Commissions"])

# Reports
api_router.include_router(revenue.router, prefix="/revenue", tags=["Revenue"])
