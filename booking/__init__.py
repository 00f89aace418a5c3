"""
Booking domain package.

- repositories: one data-access class per entity, built on an injected session factory
- transactions: slot-reserving appointment creation and status changes
- services: pure slot generation, webhook test invoker, session/role resolution
"""
