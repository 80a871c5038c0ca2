"""
Snowflake-backed document store and the in-memory stand-in used in mock mode.
"""
