"""
Unit tests for the business intelligence service.

Runs the full fetch-and-aggregate path against the seeded in-memory store
with a pinned clock (see conftest for the fixture numbers).
"""

import pytest

from src.core.insights.errors import (
    LocationNotFoundError,
    MalformedRecordError,
    NoActiveSeasonError,
    SeasonNotFoundError,
)
from src.core.insights.models import DurationBucket, PerformanceTier
from src.core.insights.service import BusinessIntelligenceService
from src.infrastructure.snowflake.client import InMemoryDocumentStore
from src.infrastructure.snowflake.repositories.records import RecordRepository


class TestWeeklyUtilization:
    """Tests for per-location utilization through the service."""

    @pytest.mark.asyncio
    async def test_downtown_fall(self, service):
        utilization = await service.calculate_weekly_utilization("loc-a", "fall-2025")

        assert utilization.available_hours_per_week == 3.0
        assert utilization.booked_hours_per_week == 1.0
        assert utilization.utilization_rate == pytest.approx(1 / 3)
        assert [slot.day_of_week for slot in utilization.available_slots] == ["monday"]

    @pytest.mark.asyncio
    async def test_location_without_programs(self, service):
        utilization = await service.calculate_weekly_utilization("loc-c", "fall-2025")
        assert utilization.utilization_rate == 0.0


class TestLocationInsights:
    """Tests for the per-location report."""

    @pytest.mark.asyncio
    async def test_downtown_fall(self, service):
        insights = await service.location_insights("loc-a", "fall-2025")

        assert insights.location.name == "Downtown Pool"
        assert insights.season.id == "fall-2025"
        assert insights.performance is PerformanceTier.POOR
        assert insights.revenue.total_revenue == 220
        assert insights.revenue.total_bookings == 3
        assert insights.revenue.average_booking_value == pytest.approx(220 / 3)
        assert (insights.bookings.confirmed, insights.bookings.pending) == (2, 1)
        assert insights.lessons.total == 3
        assert insights.lessons.completed == 1
        assert insights.lessons.upcoming == 1
        assert insights.lessons.cancelled == 1

    @pytest.mark.asyncio
    async def test_unknown_location(self, service):
        with pytest.raises(LocationNotFoundError):
            await service.location_insights("nope", "fall-2025")

    @pytest.mark.asyncio
    async def test_unknown_season(self, service):
        with pytest.raises(SeasonNotFoundError):
            await service.location_insights("loc-a", "winter-1999")

    @pytest.mark.asyncio
    async def test_inactive_season_can_be_reported(self, service):
        """Past seasons resolve by id even though they're no longer active."""
        insights = await service.location_insights("loc-a", "summer-2025")
        assert insights.revenue.total_revenue == 999


class TestAllLocationInsights:
    """Tests for the batch over every active location."""

    @pytest.mark.asyncio
    async def test_covers_active_locations_in_order(self, service):
        insights = await service.all_location_insights("fall-2025")
        assert [item.location.id for item in insights] == ["loc-a", "loc-b"]

    @pytest.mark.asyncio
    async def test_location_with_bad_records_is_skipped(self, store, service):
        """One broken location doesn't take the batch down with it."""
        store.load("locations", {"loc-d": {"name": "Broken Pool"}})
        store.load("programs", {"p-d": {"locationId": "loc-d", "seasonId": "fall-2025", "dayOfWeek": "monday"}})

        insights = await service.all_location_insights("fall-2025")

        assert [item.location.id for item in insights] == ["loc-a", "loc-b"]

    @pytest.mark.asyncio
    async def test_malformed_location_document_is_skipped(self, store, service):
        """A location document that fails validation is dropped, not fatal."""
        store.load("locations", {"loc-z": {"isActive": True, "region": "North"}})

        insights = await service.all_location_insights("fall-2025")

        assert [item.location.id for item in insights] == ["loc-a", "loc-b"]


class TestSeasonInsights:
    """Tests for season totals."""

    @pytest.mark.asyncio
    async def test_fall_totals(self, service):
        insights = await service.season_insights("fall-2025")

        assert insights.total_revenue == 420
        assert insights.total_bookings == 5
        assert insights.total_lessons == 4
        assert insights.average_booking_value == 84
        assert [(item.location_id, item.revenue, item.bookings) for item in insights.location_breakdown] == [
            ("loc-a", 220, 3),
            ("loc-b", 200, 2),
        ]
        assert insights.location_breakdown[0].location_name == "Downtown Pool"

    @pytest.mark.asyncio
    async def test_unknown_season(self, service):
        with pytest.raises(SeasonNotFoundError, match="Season winter not found"):
            await service.season_insights("winter")


class TestLessonTypeInsights:
    """Tests for the lesson mix."""

    @pytest.mark.asyncio
    async def test_fall_mix(self, service):
        insights = await service.lesson_type_insights("fall-2025")

        assert [(item.duration_bucket, item.lesson_type, item.booking_count) for item in insights] == [
            (DurationBucket.MIN_30, "private", 3),
            (DurationBucket.MIN_45, "group", 1),
            (DurationBucket.MIN_60, "group", 1),
        ]
        assert insights[0].revenue == 220
        assert insights[0].popularity_by_location == {"loc-a": 2, "loc-b": 1}

    @pytest.mark.asyncio
    async def test_season_without_bookings(self, service):
        assert await service.lesson_type_insights("winter") == []


class TestBusinessSnapshot:
    """Tests for the full operations report."""

    @pytest.mark.asyncio
    async def test_defaults_to_first_active_season(self, service, fixed_now):
        snapshot = await service.business_snapshot()

        assert snapshot.season.id == "fall-2025"
        assert snapshot.captured_at == fixed_now
        assert snapshot.total_revenue == 420
        assert snapshot.total_bookings == 5
        assert snapshot.overall_utilization == pytest.approx(0.4)
        assert [item.location.id for item in snapshot.locations] == ["loc-a", "loc-b"]
        assert [item.location.id for item in snapshot.underperforming_locations] == ["loc-a"]
        assert [item.location.id for item in snapshot.top_locations] == ["loc-a", "loc-b"]
        assert len(snapshot.lesson_type_breakdown) == 3

    @pytest.mark.asyncio
    async def test_explicit_season(self, service):
        snapshot = await service.business_snapshot("summer-2025")
        assert snapshot.season.name == "Summer 2025"
        assert snapshot.total_revenue == 999

    @pytest.mark.asyncio
    async def test_unknown_season(self, service):
        with pytest.raises(SeasonNotFoundError):
            await service.business_snapshot("winter")

    @pytest.mark.asyncio
    async def test_no_active_season(self, fixed_now):
        store = InMemoryDocumentStore({
            "seasons": {
                "old": {
                    "name": "Old",
                    "startDate": "2024-01-01T00:00:00Z",
                    "endDate": "2024-03-01T00:00:00Z",
                    "isActive": False,
                },
            },
        })
        service = BusinessIntelligenceService(RecordRepository(store), clock=lambda: fixed_now)

        with pytest.raises(NoActiveSeasonError, match="No active seasons found"):
            await service.business_snapshot()

    @pytest.mark.asyncio
    async def test_repeated_snapshots_agree(self, service):
        """Nothing is cached or mutated between calls."""
        first = await service.business_snapshot("fall-2025")
        second = await service.business_snapshot("fall-2025")
        assert first == second


class TestSnapshotWithBadRecords:
    """One location's broken records don't take the snapshot down."""

    @pytest.fixture
    def overnight_booking(self, store):
        store.load("bookings", {
            "bad": {
                "locationId": "loc-b",
                "seasonId": "fall-2025",
                "startTime": "22:00",
                "endTime": "01:00",
                "status": "confirmed",
                "paymentStatus": "paid",
                "amountPaid": 500,
            },
        })

    @pytest.mark.asyncio
    async def test_malformed_booking_skips_its_location(self, overnight_booking, service):
        snapshot = await service.business_snapshot("fall-2025")

        assert [item.location.id for item in snapshot.locations] == ["loc-a"]
        assert snapshot.overall_utilization == pytest.approx(1 / 3)
        assert [item.location.id for item in snapshot.top_locations] == ["loc-a"]

    @pytest.mark.asyncio
    async def test_totals_cover_every_booking_that_parses(self, overnight_booking, service):
        """The bad booking is left out; loc-b's good bookings still count."""
        snapshot = await service.business_snapshot("fall-2025")

        assert snapshot.total_bookings == 5
        assert snapshot.total_revenue == 420
        assert sum(item.booking_count for item in snapshot.lesson_type_breakdown) == 5

    @pytest.mark.asyncio
    async def test_malformed_location_document(self, store, service):
        store.load("locations", {"loc-z": {"isActive": True}})

        snapshot = await service.business_snapshot()

        assert [item.location.id for item in snapshot.locations] == ["loc-a", "loc-b"]
        assert snapshot.total_revenue == 420

    @pytest.mark.asyncio
    async def test_season_report_still_fails_loudly(self, overnight_booking, service):
        """Outside the snapshot, bad data surfaces instead of skewing totals."""
        with pytest.raises(MalformedRecordError, match="bookings record bad"):
            await service.season_insights("fall-2025")
