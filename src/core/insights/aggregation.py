"""
Aggregations that turn record lists into insight views.

These are plain functions over lists that have already been fetched. The
service decides what to fetch; this module decides what the numbers mean.
Keeping them apart lets the arithmetic be tested without any store at all.
"""

from datetime import datetime
from typing import Iterable, Optional, Sequence

from .models import (
    Booking,
    BookingCounts,
    DurationBucket,
    Lesson,
    LessonCounts,
    LessonTypeInsights,
    Location,
    LocationInsights,
    LocationRevenue,
    PerformanceTier,
    RevenueSummary,
    Season,
    SeasonInsights,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    WeeklyUtilization,
)


# Checked in order; the first threshold the rate reaches wins
PERFORMANCE_THRESHOLDS: tuple[tuple[float, PerformanceTier], ...] = (
    (0.8, PerformanceTier.EXCELLENT),
    (0.6, PerformanceTier.GOOD),
    (0.4, PerformanceTier.FAIR),
)

UNDERPERFORMING_THRESHOLD = 0.4
TOP_LOCATIONS_LIMIT = 5


def classify_performance(rate: float) -> PerformanceTier:
    for threshold, tier in PERFORMANCE_THRESHOLDS:
        if rate >= threshold:
            return tier
    return PerformanceTier.POOR


def _safe_ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator > 0 else 0.0


# ---------------------------------------------------------------------------
# Revenue and counts
# ---------------------------------------------------------------------------

def paid_revenue(bookings: Iterable[Booking]) -> float:
    """Sum of amounts paid on confirmed, paid bookings."""
    return sum(
        (booking.amount_paid for booking in bookings if booking.counts_as_revenue),
        0.0,
    )


def summarize_revenue(bookings: Sequence[Booking]) -> RevenueSummary:
    """
    Revenue plus average value per booking.

    The average divides by every booking, not just the paid ones, so it
    reads as "revenue per reservation taken".
    """
    total = paid_revenue(bookings)
    return RevenueSummary(
        total_revenue=total,
        total_bookings=len(bookings),
        average_booking_value=_safe_ratio(total, len(bookings)),
    )


def count_bookings(bookings: Sequence[Booking]) -> BookingCounts:
    return BookingCounts(
        total=len(bookings),
        confirmed=sum(1 for b in bookings if b.status == STATUS_CONFIRMED),
        cancelled=sum(1 for b in bookings if b.status == STATUS_CANCELLED),
        pending=sum(1 for b in bookings if b.status == STATUS_PENDING),
    )


def count_lessons(lessons: Sequence[Lesson], now: datetime) -> LessonCounts:
    """Upcoming means still confirmed and dated after `now`."""
    return LessonCounts(
        total=len(lessons),
        completed=sum(1 for lesson in lessons if lesson.status == STATUS_COMPLETED),
        upcoming=sum(
            1 for lesson in lessons
            if lesson.status == STATUS_CONFIRMED and lesson.lesson_date > now
        ),
        cancelled=sum(1 for lesson in lessons if lesson.status == STATUS_CANCELLED),
    )


# ---------------------------------------------------------------------------
# Per-location and per-season views
# ---------------------------------------------------------------------------

def build_location_insights(
    location: Location,
    season: Season,
    utilization: WeeklyUtilization,
    bookings: Sequence[Booking],
    lessons: Sequence[Lesson],
    now: datetime,
) -> LocationInsights:
    return LocationInsights(
        location=location,
        season=season,
        utilization=utilization,
        revenue=summarize_revenue(bookings),
        bookings=count_bookings(bookings),
        lessons=count_lessons(lessons, now),
        performance=classify_performance(utilization.utilization_rate),
    )


def location_revenue_breakdown(bookings: Iterable[Booking]) -> list[LocationRevenue]:
    """
    Revenue and booking count per location, highest revenue first.

    Booking counts include every status; revenue only confirmed, paid
    bookings. The location name comes from the first booking seen for it.
    """
    totals: dict[str, dict] = {}

    for booking in bookings:
        entry = totals.setdefault(booking.location_id, {
            "location_name": booking.location_name,
            "revenue": 0.0,
            "bookings": 0,
        })
        if booking.counts_as_revenue:
            entry["revenue"] += booking.amount_paid
        entry["bookings"] += 1

    breakdown = [
        LocationRevenue(
            location_id=location_id,
            location_name=entry["location_name"],
            revenue=entry["revenue"],
            bookings=entry["bookings"],
        )
        for location_id, entry in totals.items()
    ]
    return sorted(breakdown, key=lambda item: item.revenue, reverse=True)


def build_season_insights(
    season: Season,
    bookings: Sequence[Booking],
    lessons: Sequence[Lesson],
) -> SeasonInsights:
    revenue = summarize_revenue(bookings)
    return SeasonInsights(
        season=season,
        total_revenue=revenue.total_revenue,
        total_bookings=revenue.total_bookings,
        total_lessons=len(lessons),
        average_booking_value=revenue.average_booking_value,
        location_breakdown=location_revenue_breakdown(bookings),
    )


def build_lesson_type_insights(bookings: Iterable[Booking]) -> list[LessonTypeInsights]:
    """
    Group bookings by lesson length and lesson type, most booked first.

    Length comes from each booking's own time window, bucketed into
    30/45/60 minutes.
    """
    groups: dict[tuple[DurationBucket, Optional[str]], dict] = {}

    for booking in bookings:
        bucket = DurationBucket.from_minutes(booking.duration_minutes)
        group = groups.setdefault((bucket, booking.lesson_type), {
            "booking_count": 0,
            "revenue": 0.0,
            "popularity_by_location": {},
        })

        group["booking_count"] += 1
        if booking.counts_as_revenue:
            group["revenue"] += booking.amount_paid

        popularity = group["popularity_by_location"]
        popularity[booking.location_id] = popularity.get(booking.location_id, 0) + 1

    insights = [
        LessonTypeInsights(
            duration_bucket=bucket,
            lesson_type=lesson_type,
            booking_count=group["booking_count"],
            revenue=group["revenue"],
            average_price=_safe_ratio(group["revenue"], group["booking_count"]),
            popularity_by_location=group["popularity_by_location"],
        )
        for (bucket, lesson_type), group in groups.items()
    ]
    return sorted(insights, key=lambda item: item.booking_count, reverse=True)


# ---------------------------------------------------------------------------
# Cross-location rollups
# ---------------------------------------------------------------------------

def overall_utilization(insights: Iterable[LocationInsights]) -> float:
    """
    Hours-weighted utilization across locations.

    Summing hours first means a large location counts for more than a
    small one, which a plain average of rates would hide.
    """
    booked = 0.0
    available = 0.0
    for insight in insights:
        booked += insight.utilization.booked_hours_per_week
        available += insight.utilization.available_hours_per_week
    return _safe_ratio(booked, available)


def underperforming_locations(insights: Iterable[LocationInsights]) -> list[LocationInsights]:
    """Locations below the utilization floor, emptiest first."""
    below = [
        insight for insight in insights
        if insight.utilization.utilization_rate < UNDERPERFORMING_THRESHOLD
    ]
    return sorted(below, key=lambda insight: insight.utilization.utilization_rate)


def top_locations_by_revenue(
    insights: Iterable[LocationInsights],
    limit: int = TOP_LOCATIONS_LIMIT,
) -> list[LocationInsights]:
    earning = [insight for insight in insights if insight.revenue.total_revenue > 0]
    ranked = sorted(earning, key=lambda insight: insight.revenue.total_revenue, reverse=True)
    return ranked[:limit]
