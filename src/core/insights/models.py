"""
Domain models for swim operations reporting.

Two kinds of objects live here:
- Entities read from the document store (locations, seasons, programs,
  bookings, lessons, pricing). They are frozen snapshots; nothing in this
  service writes them back.
- Derived views (utilization, insights, snapshot). They are computed fresh
  for each request and have no identity of their own.

Like the rest of `core`, nothing here knows how records are stored or how
reports are transmitted.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .timeutils import hours_between, minutes_between


# Status values as written by the booking platform. They are open-ended
# strings in the store, so they stay strings here rather than an Enum.
STATUS_CONFIRMED = "confirmed"
STATUS_PENDING = "pending"
STATUS_CANCELLED = "cancelled"
STATUS_COMPLETED = "completed"
STATUS_NO_SHOW = "no-show"

PAYMENT_PAID = "paid"


class DurationBucket(Enum):
    """Lesson lengths the business prices and reports on."""
    MIN_30 = "30min"
    MIN_45 = "45min"
    MIN_60 = "60min"

    @classmethod
    def from_minutes(cls, minutes: int) -> "DurationBucket":
        """
        Bucket a lesson length. Anything over 45 minutes is a 60min lesson;
        there is no bucket above it.
        """
        if minutes <= 30:
            return cls.MIN_30
        if minutes <= 45:
            return cls.MIN_45
        return cls.MIN_60


class PerformanceTier(Enum):
    """How well a location fills its available weekly hours."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


# ---------------------------------------------------------------------------
# Stored entities
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Address:
    street: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    latitude: str = ""
    longitude: str = ""
    map_url: str = ""


@dataclass(frozen=True)
class Location:
    """A pool the business teaches at."""
    id: str
    name: str
    address: Address = field(default_factory=Address)
    display_name: Optional[str] = None
    region: Optional[str] = None
    facilities: Optional[str] = None
    pool_type: Optional[str] = None
    total_capacity: Optional[int] = None
    current_enrollment: Optional[int] = None
    is_active: bool = True
    is_visible_to_user: bool = True
    lesson_types: list[str] = field(default_factory=list)
    has_pricing_override: bool = False
    # {"monday": {"open": "15:00", "close": "21:00"}, "sunday": None, ...}
    operating_hours: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class Season:
    """A registration period, e.g. "Fall #2 2025"."""
    id: str
    name: str
    start_date: datetime
    end_date: datetime
    is_active: bool = False
    location_ids: list[str] = field(default_factory=list)
    registration_open: Optional[datetime] = None
    hold_my_spot_open: Optional[datetime] = None
    hold_my_spot_close: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.end_date < self.start_date:
            raise ValueError("Season end date must not precede its start date")


@dataclass(frozen=True)
class Program:
    """
    One recurring weekly availability window at a location.

    A Monday 15:00-18:00 program offers three hours every Monday of the
    season; it is not a single dated event.
    """
    id: str
    location_id: str
    season_id: str
    day_of_week: str
    start_time: str
    end_time: str
    is_active: bool = True
    num_lessons: int = 0
    program_id: str = ""
    location_name: Optional[str] = None
    season_name: Optional[str] = None
    format: Optional[str] = None
    days_of_week: list[str] = field(default_factory=list)
    coach_ids: list[str] = field(default_factory=list)
    is_full: bool = False
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def hours(self) -> float:
        return hours_between(self.start_time, self.end_time)


@dataclass(frozen=True)
class Booking:
    """
    A family's reservation of one weekly slot for a season.

    One booking is one recurring slot per week. Its duration counts once per
    week no matter how many weeks the season runs.
    """
    id: str
    location_id: str
    season_id: str
    start_time: str
    end_time: str
    status: str
    payment_status: Optional[str] = None
    amount_paid: float = 0.0
    total_amount: float = 0.0
    discount_applied: float = 0.0
    location_name: Optional[str] = None
    season_name: Optional[str] = None
    program_id: Optional[str] = None
    coach_id: Optional[str] = None
    parent_id: Optional[str] = None
    swimmer_ids: list[str] = field(default_factory=list)
    lesson_type: Optional[str] = None  # "private", "group", "semi-private"
    lesson_format: Optional[str] = None  # "swim_set"
    num_lessons: Optional[int] = None
    payment_method: Optional[str] = None
    currency: Optional[str] = None
    promo_code: Optional[str] = None
    transaction_ref: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_date: Optional[str] = None
    bypass_payment: bool = False
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == STATUS_CONFIRMED

    @property
    def counts_as_revenue(self) -> bool:
        """Only confirmed, paid bookings contribute to revenue."""
        return self.status == STATUS_CONFIRMED and self.payment_status == PAYMENT_PAID

    @property
    def duration_hours(self) -> float:
        return hours_between(self.start_time, self.end_time)

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start_time, self.end_time)


@dataclass(frozen=True)
class Lesson:
    """A single dated occurrence generated from a booking."""
    id: str
    location_id: str
    season_id: str
    lesson_date: datetime
    status: str
    booking_id: Optional[str] = None
    coach_id: Optional[str] = None
    parent_id: Optional[str] = None
    swimmer_ids: list[str] = field(default_factory=list)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    lesson_type: Optional[str] = None
    lesson_format: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class PrivateLessonRate:
    base_price: float
    add_on_per_swimmer: float
    max_swimmers: int


@dataclass(frozen=True)
class GroupLessonRate:
    price_per_swimmer: float
    max_swimmers: int


@dataclass(frozen=True)
class Pricing:
    """The business-wide price table, keyed by lesson length."""
    private_lessons: dict[DurationBucket, PrivateLessonRate] = field(default_factory=dict)
    small_group: dict[DurationBucket, GroupLessonRate] = field(default_factory=dict)
    overrideable: bool = True

    def list_price(self, lesson_type: str, bucket: DurationBucket, swimmers: int = 1) -> float:
        """
        Price of one lesson before discounts.

        Private lessons charge the base price plus an add-on for each swimmer
        after the first; small groups charge per swimmer.
        """
        if swimmers < 1:
            raise ValueError("A lesson needs at least one swimmer")

        if lesson_type == "private":
            rate = self.private_lessons.get(bucket)
            if rate is None:
                raise ValueError(f"No private rate for {bucket.value}")
            if swimmers > rate.max_swimmers:
                raise ValueError(f"Private {bucket.value} lessons take at most {rate.max_swimmers} swimmers")
            return rate.base_price + rate.add_on_per_swimmer * (swimmers - 1)

        group_rate = self.small_group.get(bucket)
        if group_rate is None:
            raise ValueError(f"No small group rate for {bucket.value}")
        if swimmers > group_rate.max_swimmers:
            raise ValueError(f"Small group {bucket.value} lessons take at most {group_rate.max_swimmers} swimmers")
        return group_rate.price_per_swimmer * swimmers


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AvailableSlot:
    """One program's contribution to a location's weekly hours."""
    day_of_week: str
    start_time: str
    end_time: str
    hours: float


@dataclass(frozen=True)
class WeeklyUtilization:
    """
    Booked versus available recurring hours for one location and season.

    `utilization_rate` is not clamped; above 1.0 means the
    location is overbooked.
    """
    available_hours_per_week: float
    booked_hours_per_week: float
    utilization_rate: float
    available_slots: list[AvailableSlot] = field(default_factory=list)


@dataclass(frozen=True)
class RevenueSummary:
    total_revenue: float
    total_bookings: int
    average_booking_value: float


@dataclass(frozen=True)
class BookingCounts:
    total: int
    confirmed: int
    cancelled: int
    pending: int


@dataclass(frozen=True)
class LessonCounts:
    total: int
    completed: int
    upcoming: int
    cancelled: int


@dataclass(frozen=True)
class LocationInsights:
    location: Location
    season: Season
    utilization: WeeklyUtilization
    revenue: RevenueSummary
    bookings: BookingCounts
    lessons: LessonCounts
    performance: PerformanceTier


@dataclass(frozen=True)
class LocationRevenue:
    location_id: str
    location_name: Optional[str]
    revenue: float
    bookings: int


@dataclass(frozen=True)
class SeasonInsights:
    season: Season
    total_revenue: float
    total_bookings: int
    total_lessons: int
    average_booking_value: float
    location_breakdown: list[LocationRevenue] = field(default_factory=list)


@dataclass(frozen=True)
class LessonTypeInsights:
    """Bookings for one (lesson length, lesson type) pair, e.g. 30min private."""
    duration_bucket: DurationBucket
    lesson_type: Optional[str]
    booking_count: int
    revenue: float
    average_price: float
    popularity_by_location: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class BusinessSnapshot:
    """Everything the operations dashboard shows, for one season."""
    captured_at: datetime
    season: Season
    locations: list[LocationInsights]
    total_revenue: float
    total_bookings: int
    overall_utilization: float
    underperforming_locations: list[LocationInsights]
    top_locations: list[LocationInsights]
    lesson_type_breakdown: list[LessonTypeInsights]
