"""
Utility modules for the billing ledger engine.

This package contains shared helpers used across the services, including
practice-timezone datetime utilities, money helpers, the cancelling fan-out
and UX timing policies.
"""
