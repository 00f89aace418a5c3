"""
Booking services.

- slot_generation: expand date range x weekdays x time ranges into slots
- webhook_tester: invoke the managed webhook test function
- auth_service: resolve session role for the admin console
"""

from booking.services.auth_service import AuthService, SessionInfo, resolve_user_type
from booking.services.slot_generation import TimeRange, expand_days, generate_slot_times
from booking.services.webhook_tester import WebhookTester, WebhookTestOutcome

__all__ = [
    "AuthService",
    "SessionInfo",
    "resolve_user_type",
    "TimeRange",
    "expand_days",
    "generate_slot_times",
    "WebhookTester",
    "WebhookTestOutcome",
]
