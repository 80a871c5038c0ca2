"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: Document store holding the booking platform's records

These wrappers translate between external formats and our domain models.
"""
