"""Database models."""

from app.models.blane import Blane, Category
from app.models.booking import Customer, Order, Reservation
from app.models.commission import CommissionSettings, VendorCommission
from app.models.payment import Transaction
from app.models.user import User
from app.models.vendor_payment import VendorMonthlyInvoice, VendorPayment, VendorPaymentLog

__all__ = [
    # User
    "User",
    # Catalogue
    "Blane",
    "Category",
    # Booking
    "Customer",
    "Order",
    "Reservation",
    # Payment
    "Transaction",
    # Commission
    "CommissionSettings",
    "VendorCommission",
    # Ledger
    "VendorPayment",
    "VendorPaymentLog",
    "VendorMonthlyInvoice",
]
