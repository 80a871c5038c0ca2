"""
Operations insights API endpoints.

Serves the reporting views the operations dashboard renders:
- The full business snapshot for a season
- Per-season totals and revenue by location
- Per-location utilization, revenue and booking counts
- Lesson-mix breakdown by length and type

Every endpoint is read-only. Numbers are computed fresh on each request;
nothing is cached here.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ...core.insights.errors import (
    InsightsError,
    MalformedRecordError,
    NoActiveSeasonError,
    NotFoundError,
)
from ...core.insights.models import DurationBucket, PerformanceTier
from ..dependencies import InsightsServiceDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class DomainResponse(BaseModel):
    """Response models are read straight off the domain dataclasses."""
    model_config = ConfigDict(from_attributes=True)


class AddressResponse(DomainResponse):
    street: str
    city: str
    province: str
    postal_code: str
    latitude: str
    longitude: str
    map_url: str


class LocationResponse(DomainResponse):
    id: str
    name: str
    display_name: Optional[str] = None
    region: Optional[str] = None
    address: AddressResponse
    pool_type: Optional[str] = None
    total_capacity: Optional[int] = None
    current_enrollment: Optional[int] = None
    is_active: bool
    is_visible_to_user: bool
    lesson_types: list[str]
    has_pricing_override: bool


class SeasonResponse(DomainResponse):
    id: str
    name: str
    start_date: datetime
    end_date: datetime
    registration_open: Optional[datetime] = None
    hold_my_spot_open: Optional[datetime] = None
    hold_my_spot_close: Optional[datetime] = None
    is_active: bool
    location_ids: list[str]


class AvailableSlotResponse(DomainResponse):
    day_of_week: str
    start_time: str
    end_time: str
    hours: float


class WeeklyUtilizationResponse(DomainResponse):
    available_hours_per_week: float = Field(description="Recurring hours offered by active programs")
    booked_hours_per_week: float = Field(description="Recurring hours held by confirmed bookings")
    utilization_rate: float = Field(description="Booked / available; above 1.0 means overbooked")
    available_slots: list[AvailableSlotResponse]


class RevenueSummaryResponse(DomainResponse):
    total_revenue: float
    total_bookings: int
    average_booking_value: float


class BookingCountsResponse(DomainResponse):
    total: int
    confirmed: int
    cancelled: int
    pending: int


class LessonCountsResponse(DomainResponse):
    total: int
    completed: int
    upcoming: int
    cancelled: int


class LocationInsightsResponse(DomainResponse):
    location: LocationResponse
    season: SeasonResponse
    utilization: WeeklyUtilizationResponse
    revenue: RevenueSummaryResponse
    bookings: BookingCountsResponse
    lessons: LessonCountsResponse
    performance: PerformanceTier


class LocationRevenueResponse(DomainResponse):
    location_id: str
    location_name: Optional[str] = None
    revenue: float
    bookings: int


class SeasonInsightsResponse(DomainResponse):
    season: SeasonResponse
    total_revenue: float
    total_bookings: int
    total_lessons: int
    average_booking_value: float
    location_breakdown: list[LocationRevenueResponse]


class LessonTypeInsightsResponse(DomainResponse):
    duration_bucket: DurationBucket
    lesson_type: Optional[str] = None
    booking_count: int
    revenue: float
    average_price: float
    popularity_by_location: dict[str, int] = Field(description="Bookings per location id")


class BusinessSnapshotResponse(DomainResponse):
    captured_at: datetime
    season: SeasonResponse
    locations: list[LocationInsightsResponse]
    total_revenue: float
    total_bookings: int
    overall_utilization: float = Field(description="Hours-weighted across all locations")
    underperforming_locations: list[LocationInsightsResponse]
    top_locations: list[LocationInsightsResponse]
    lesson_type_breakdown: list[LessonTypeInsightsResponse]


def insights_http_error(error: InsightsError) -> HTTPException:
    """
    Map reporting errors to HTTP responses.

    Missing records are the caller's problem (404). Malformed records are
    bad upstream data (502): the request was fine, the store's content wasn't.
    """
    if isinstance(error, (NotFoundError, NoActiveSeasonError)):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))

    if isinstance(error, MalformedRecordError):
        logger.error(
            "Malformed record in document store",
            extra={
                "collection": error.collection,
                "document_id": error.document_id,
                "reason": error.reason,
            }
        )
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Stored {error.collection} record {error.document_id} is malformed",
        )

    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(error))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/snapshot",
    response_model=BusinessSnapshotResponse,
    status_code=status.HTTP_200_OK,
    summary="Business snapshot",
    description="Full operations report for a season. Defaults to the first active season.",
)
async def get_business_snapshot(
    service: InsightsServiceDep,
    season_id: Optional[str] = Query(None, description="Season to report on"),
) -> BusinessSnapshotResponse:
    try:
        snapshot = await service.business_snapshot(season_id)
    except InsightsError as e:
        raise insights_http_error(e)

    return BusinessSnapshotResponse.model_validate(snapshot)


@router.get(
    "/seasons/{season_id}",
    response_model=SeasonInsightsResponse,
    status_code=status.HTTP_200_OK,
    summary="Season insights",
    description="Season totals and revenue by location",
)
async def get_season_insights(
    season_id: str,
    service: InsightsServiceDep,
) -> SeasonInsightsResponse:
    try:
        insights = await service.season_insights(season_id)
    except InsightsError as e:
        raise insights_http_error(e)

    return SeasonInsightsResponse.model_validate(insights)


@router.get(
    "/seasons/{season_id}/lesson-types",
    response_model=list[LessonTypeInsightsResponse],
    status_code=status.HTTP_200_OK,
    summary="Lesson mix",
    description="Bookings and revenue by lesson length and lesson type, most booked first",
)
async def get_lesson_type_insights(
    season_id: str,
    service: InsightsServiceDep,
) -> list[LessonTypeInsightsResponse]:
    try:
        await service.resolve_season(season_id)
        insights = await service.lesson_type_insights(season_id)
    except InsightsError as e:
        raise insights_http_error(e)

    return [LessonTypeInsightsResponse.model_validate(item) for item in insights]


@router.get(
    "/seasons/{season_id}/locations",
    response_model=list[LocationInsightsResponse],
    status_code=status.HTTP_200_OK,
    summary="All location insights",
    description="Insights for every active location; locations with unusable data are skipped",
)
async def get_all_location_insights(
    season_id: str,
    service: InsightsServiceDep,
) -> list[LocationInsightsResponse]:
    try:
        await service.resolve_season(season_id)
        insights = await service.all_location_insights(season_id)
    except InsightsError as e:
        raise insights_http_error(e)

    return [LocationInsightsResponse.model_validate(item) for item in insights]


@router.get(
    "/seasons/{season_id}/locations/{location_id}",
    response_model=LocationInsightsResponse,
    status_code=status.HTTP_200_OK,
    summary="Location insights",
)
async def get_location_insights(
    season_id: str,
    location_id: str,
    service: InsightsServiceDep,
) -> LocationInsightsResponse:
    try:
        insights = await service.location_insights(location_id, season_id)
    except InsightsError as e:
        raise insights_http_error(e)

    return LocationInsightsResponse.model_validate(insights)


@router.get(
    "/seasons/{season_id}/locations/{location_id}/utilization",
    response_model=WeeklyUtilizationResponse,
    status_code=status.HTTP_200_OK,
    summary="Weekly utilization",
    description="Available versus booked recurring weekly hours",
)
async def get_weekly_utilization(
    season_id: str,
    location_id: str,
    service: InsightsServiceDep,
) -> WeeklyUtilizationResponse:
    try:
        utilization = await service.calculate_weekly_utilization(location_id, season_id)
    except InsightsError as e:
        raise insights_http_error(e)

    return WeeklyUtilizationResponse.model_validate(utilization)
