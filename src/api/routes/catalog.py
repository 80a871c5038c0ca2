"""
Catalog API endpoints.

Plain listings of the reference records the dashboard needs for its
filters and labels: locations, seasons and the price table. These read
through the repository directly; there is no aggregation involved.
"""

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from ...core.insights.errors import InsightsError
from ...core.insights.models import DurationBucket
from ..dependencies import RecordRepositoryDep
from .insights import DomainResponse, LocationResponse, SeasonResponse, insights_http_error

router = APIRouter()


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class PrivateRateResponse(DomainResponse):
    base_price: float
    add_on_per_swimmer: float
    max_swimmers: int


class GroupRateResponse(DomainResponse):
    price_per_swimmer: float
    max_swimmers: int


class PricingResponse(DomainResponse):
    private_lessons: dict[DurationBucket, PrivateRateResponse]
    small_group: dict[DurationBucket, GroupRateResponse]
    overrideable: bool


class LocationListResponse(BaseModel):
    locations: list[LocationResponse] = Field(description="Locations, ordered by id")
    total: int = Field(description="Number of locations returned")


class SeasonListResponse(BaseModel):
    seasons: list[SeasonResponse] = Field(description="Seasons, ordered by id")
    total: int = Field(description="Number of seasons returned")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/locations",
    response_model=LocationListResponse,
    status_code=status.HTTP_200_OK,
    summary="List locations",
)
def list_locations(
    repository: RecordRepositoryDep,
    include_inactive: bool = Query(False, description="Include locations marked inactive"),
) -> LocationListResponse:
    try:
        locations = repository.list_locations(include_inactive=include_inactive)
    except InsightsError as e:
        raise insights_http_error(e)

    return LocationListResponse(
        locations=[LocationResponse.model_validate(location) for location in locations],
        total=len(locations),
    )


@router.get(
    "/seasons",
    response_model=SeasonListResponse,
    status_code=status.HTTP_200_OK,
    summary="List seasons",
)
def list_seasons(
    repository: RecordRepositoryDep,
    active_only: bool = Query(True, description="Only seasons currently marked active"),
) -> SeasonListResponse:
    try:
        seasons = repository.list_seasons(active_only=active_only)
    except InsightsError as e:
        raise insights_http_error(e)

    return SeasonListResponse(
        seasons=[SeasonResponse.model_validate(season) for season in seasons],
        total=len(seasons),
    )


@router.get(
    "/pricing",
    response_model=PricingResponse,
    status_code=status.HTTP_200_OK,
    summary="Price table",
    description="List prices by lesson length for private and small group lessons",
)
def get_pricing(repository: RecordRepositoryDep) -> PricingResponse:
    try:
        pricing = repository.get_pricing()
    except InsightsError as e:
        raise insights_http_error(e)

    return PricingResponse.model_validate(pricing)
