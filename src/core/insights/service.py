"""
Business intelligence service.

Orchestrates record fetching and hands the lists to the aggregation
functions. The service holds no state beyond its dependencies, so every
call reads fresh data and two calls against unchanged records agree.

Record reads are blocking (the store adapters use synchronous drivers), so
they run in worker threads. Fetches that don't depend on each other are
gathered concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol, Sequence

from . import aggregation
from .errors import (
    MalformedRecordError,
    NoActiveSeasonError,
    NotFoundError,
    SeasonNotFoundError,
)
from .models import (
    Booking,
    BusinessSnapshot,
    Lesson,
    LessonTypeInsights,
    Location,
    LocationInsights,
    Pricing,
    Program,
    Season,
    SeasonInsights,
    WeeklyUtilization,
)
from .utilization import calculate_weekly_utilization


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BookingFilter:
    """
    Which bookings to fetch. An empty list means "don't filter on this".

    There is no limit on the number of ids; the repository splits large
    sets into as many store queries as it needs.
    """
    location_ids: list[str] = field(default_factory=list)
    season_ids: list[str] = field(default_factory=list)


class RecordReader(Protocol):
    """
    Read-only access to the business records.

    The service only needs something that returns typed entities. Tests pass
    a repository over an in-memory store; production passes one over
    Snowflake.
    """

    def list_locations(
        self,
        include_inactive: bool = False,
        skip_malformed: bool = False,
    ) -> list[Location]: ...

    def get_location(self, location_id: str) -> Location: ...

    def list_seasons(self, active_only: bool = True) -> list[Season]: ...

    def list_programs(
        self,
        location_id: Optional[str] = None,
        season_id: Optional[str] = None,
    ) -> list[Program]: ...

    def list_bookings(
        self,
        booking_filter: Optional[BookingFilter] = None,
        skip_malformed: bool = False,
    ) -> list[Booking]: ...

    def list_lessons(
        self,
        location_id: Optional[str] = None,
        season_id: Optional[str] = None,
    ) -> list[Lesson]: ...

    def get_pricing(self) -> Pricing: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class BusinessIntelligenceService:
    """
    Computes utilization, revenue and lesson-mix reports.

    Args:
        repository: Where records come from.
        clock: Returns the current time; decides which lessons are upcoming
            and stamps snapshots. Must return timezone-aware datetimes.
    """

    def __init__(
        self,
        repository: RecordReader,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._clock = clock

    async def _read(self, method, *args, **kwargs):
        return await asyncio.to_thread(method, *args, **kwargs)

    async def resolve_season(self, season_id: str) -> Season:
        """Find a season by id among all seasons, active or not."""
        seasons = await self._read(self._repository.list_seasons, active_only=False)
        for season in seasons:
            if season.id == season_id:
                return season
        raise SeasonNotFoundError(season_id)

    async def _season_bookings(self, season_id: str, skip_malformed: bool = False) -> list[Booking]:
        return await self._read(
            self._repository.list_bookings,
            BookingFilter(season_ids=[season_id]),
            skip_malformed=skip_malformed,
        )

    async def calculate_weekly_utilization(
        self,
        location_id: str,
        season_id: str,
    ) -> WeeklyUtilization:
        """Available versus booked weekly hours for one location and season."""
        programs = await self._read(self._repository.list_programs, location_id, season_id)
        bookings = await self._read(
            self._repository.list_bookings,
            BookingFilter(location_ids=[location_id], season_ids=[season_id]),
        )
        return calculate_weekly_utilization(programs, bookings)

    async def location_insights(self, location_id: str, season_id: str) -> LocationInsights:
        """
        Utilization, revenue, booking and lesson counts for one location.

        Raises LocationNotFoundError or SeasonNotFoundError when either id
        doesn't resolve.
        """
        location = await self._read(self._repository.get_location, location_id)
        season = await self.resolve_season(season_id)

        programs, bookings, lessons = await asyncio.gather(
            self._read(self._repository.list_programs, location_id, season_id),
            self._read(
                self._repository.list_bookings,
                BookingFilter(location_ids=[location_id], season_ids=[season_id]),
            ),
            self._read(self._repository.list_lessons, location_id, season_id),
        )

        utilization = calculate_weekly_utilization(programs, bookings)
        return aggregation.build_location_insights(
            location=location,
            season=season,
            utilization=utilization,
            bookings=bookings,
            lessons=lessons,
            now=self._clock(),
        )

    async def _location_insights_or_none(
        self,
        location_id: str,
        season_id: str,
    ) -> Optional[LocationInsights]:
        try:
            return await self.location_insights(location_id, season_id)
        except (NotFoundError, MalformedRecordError) as e:
            logger.warning(
                "Skipping location in insights batch",
                extra={
                    "location_id": location_id,
                    "season_id": season_id,
                    "error": str(e),
                }
            )
            return None

    async def all_location_insights(self, season_id: str) -> list[LocationInsights]:
        """
        Insights for every active location, in location order.

        A location that can't be resolved or has bad records is logged and
        left out; the rest of the batch still comes back. Location documents
        that fail validation are dropped the same way.
        """
        locations = await self._read(self._repository.list_locations, skip_malformed=True)

        results = await asyncio.gather(*(
            self._location_insights_or_none(location.id, season_id)
            for location in locations
        ))
        return [insight for insight in results if insight is not None]

    async def season_insights(self, season_id: str) -> SeasonInsights:
        """Season totals plus revenue per location, highest first."""
        season = await self.resolve_season(season_id)

        bookings, lessons = await asyncio.gather(
            self._season_bookings(season_id),
            self._read(self._repository.list_lessons, None, season_id),
        )
        return aggregation.build_season_insights(season, bookings, lessons)

    async def lesson_type_insights(self, season_id: str) -> list[LessonTypeInsights]:
        """Bookings grouped by lesson length and lesson type."""
        bookings = await self._season_bookings(season_id)
        return aggregation.build_lesson_type_insights(bookings)

    async def business_snapshot(self, season_id: Optional[str] = None) -> BusinessSnapshot:
        """
        The full operations report for one season.

        Without a season id, the first active season is used. Raises
        NoActiveSeasonError if there is none, SeasonNotFoundError if an
        explicit id doesn't resolve.

        Malformed location and booking documents are logged and left out,
        so season totals and the lesson mix cover every booking that parses.
        """
        if season_id is None:
            active_seasons = await self._read(self._repository.list_seasons, active_only=True)
            if not active_seasons:
                raise NoActiveSeasonError()
            season_id = active_seasons[0].id

        season = await self.resolve_season(season_id)

        logger.info(
            "Building business snapshot",
            extra={"season_id": season_id, "season_name": season.name}
        )

        location_insights, bookings = await asyncio.gather(
            self.all_location_insights(season_id),
            self._season_bookings(season_id, skip_malformed=True),
        )
        lesson_types = aggregation.build_lesson_type_insights(bookings)

        snapshot = self._assemble_snapshot(season, location_insights, lesson_types, bookings)

        logger.info(
            "Business snapshot built",
            extra={
                "season_id": season_id,
                "locations": len(snapshot.locations),
                "total_bookings": snapshot.total_bookings,
                "overall_utilization": round(snapshot.overall_utilization, 4),
            }
        )
        return snapshot

    def _assemble_snapshot(
        self,
        season: Season,
        location_insights: list[LocationInsights],
        lesson_types: list[LessonTypeInsights],
        bookings: Sequence[Booking],
    ) -> BusinessSnapshot:
        return BusinessSnapshot(
            captured_at=self._clock(),
            season=season,
            locations=location_insights,
            total_revenue=aggregation.paid_revenue(bookings),
            total_bookings=len(bookings),
            overall_utilization=aggregation.overall_utilization(location_insights),
            underperforming_locations=aggregation.underperforming_locations(location_insights),
            top_locations=aggregation.top_locations_by_revenue(location_insights),
            lesson_type_breakdown=lesson_types,
        )
