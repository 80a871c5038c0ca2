"""
Swim Operations Insights - utilization and revenue reporting for a swim school.

This package contains the complete application:
- core: Framework-agnostic reporting logic
- infrastructure: Document store integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
