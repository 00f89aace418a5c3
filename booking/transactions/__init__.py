"""
Transaction handlers for multi-step booking operations.

- BookingTransaction: reserve slot + insert appointment (with compensation),
  and status changes that release the slot on cancellation
"""

from booking.transactions.booking_transaction import BookingTransaction

__all__ = ["BookingTransaction"]
