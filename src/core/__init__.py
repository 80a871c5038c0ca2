"""
Core business logic for swim operations reporting.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. This separation means we can test the
reporting arithmetic in isolation and swap the record store if needed.
"""
