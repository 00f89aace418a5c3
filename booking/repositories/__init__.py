"""
Data-access repositories.

Every repository takes an async session factory and returns OperationResult
from each operation.
"""

from booking.repositories.appointments import AppointmentRepository
from booking.repositories.companies import CompanyRepository
from booking.repositories.professionals import ProfessionalRepository
from booking.repositories.services import ServiceRepository
from booking.repositories.slots import SlotRepository, SlotView
from booking.repositories.users import UserRepository
from booking.repositories.webhooks import WebhookRepository

__all__ = [
    "AppointmentRepository",
    "CompanyRepository",
    "ProfessionalRepository",
    "ServiceRepository",
    "SlotRepository",
    "SlotView",
    "UserRepository",
    "WebhookRepository",
]
