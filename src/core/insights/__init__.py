"""
Operations insights: utilization, revenue and lesson-mix reporting.

Contains the domain models, the aggregation arithmetic and the service that
orchestrates record fetching.
"""

from .errors import (
    InsightsError,
    LocationNotFoundError,
    MalformedRecordError,
    NoActiveSeasonError,
    NotFoundError,
    PricingNotFoundError,
    SeasonNotFoundError,
)
from .models import (
    BusinessSnapshot,
    DurationBucket,
    LessonTypeInsights,
    LocationInsights,
    PerformanceTier,
    SeasonInsights,
    WeeklyUtilization,
)
from .service import BookingFilter, BusinessIntelligenceService, RecordReader

__all__ = [
    "InsightsError",
    "LocationNotFoundError",
    "MalformedRecordError",
    "NoActiveSeasonError",
    "NotFoundError",
    "PricingNotFoundError",
    "SeasonNotFoundError",
    "BusinessSnapshot",
    "DurationBucket",
    "LessonTypeInsights",
    "LocationInsights",
    "PerformanceTier",
    "SeasonInsights",
    "WeeklyUtilization",
    "BookingFilter",
    "BusinessIntelligenceService",
    "RecordReader",
]
