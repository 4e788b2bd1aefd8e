"""
Shared utilities for the payment signing key cache.

This package aggregates the cross-cutting building blocks used by
``payment_keys``:

- config: Provider configuration via pydantic-settings
- logging: Structured logging with refresh-attempt correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and reports
- test_helpers: Clocks, transports and documents for tests

Only test_helpers may import from payment_keys; the other modules stay
independent of it.
"""
