"""
Document schemas for the operations collections.

The booking platform writes camelCase JSON documents with plenty of optional
fields. Each schema here states which fields a record cannot do without
(those fail validation when missing) and which ones fall back to a default.
A null is treated the same as an absent field.

Schemas are an infrastructure concern: they know the stored shape. Their
`to_domain` methods hand back the frozen dataclasses from `core`.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StringConstraints,
    model_validator,
)
from pydantic.alias_generators import to_camel

from src.core.insights.errors import MalformedRecordError
from src.core.insights.models import (
    Address,
    Booking,
    DurationBucket,
    GroupLessonRate,
    Lesson,
    Location,
    Pricing,
    PrivateLessonRate,
    Program,
    Season,
)
from src.core.insights.timeutils import minutes_between


def _coerce_timestamp(value: Any) -> Any:
    """
    Accept Firestore-style exported timestamps alongside ISO strings.

    Exports carry either {"_seconds", "_nanoseconds"} or {"seconds",
    "nanoseconds"}; everything else is left for pydantic to parse.
    """
    if isinstance(value, dict):
        seconds = value.get("_seconds", value.get("seconds"))
        if seconds is not None:
            nanos = value.get("_nanoseconds", value.get("nanoseconds", 0))
            return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    return value


def _assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


Timestamp = Annotated[datetime, BeforeValidator(_coerce_timestamp), AfterValidator(_assume_utc)]
TimeOfDay = Annotated[str, StringConstraints(strip_whitespace=True, pattern=r"^([01]?\d|2[0-3]):[0-5]\d$")]
RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class DocumentSchema(BaseModel):
    """Base for stored documents: camelCase aliases, unknown fields ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class _WeeklySlotSchema(DocumentSchema):
    """Shared check for records that describe a same-day time window."""

    @model_validator(mode="after")
    def _reject_overnight(self):
        if minutes_between(self.start_time, self.end_time) < 0:
            raise ValueError(
                f"endTime {self.end_time} is before startTime {self.start_time}; "
                "slots that cross midnight are not supported"
            )
        return self


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------

class AddressSchema(DocumentSchema):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    street: str = ""
    city: str = ""
    province: str = ""
    postal_code: str = ""
    latitude: str = ""
    longitude: str = ""
    map_url: str = ""


class LocationSchema(DocumentSchema):
    name: RequiredText
    display_name: Optional[str] = None
    region: Optional[str] = None
    address: AddressSchema = Field(default_factory=AddressSchema)
    facilities: Optional[str] = None
    pool_type: Optional[str] = None
    total_capacity: Optional[int] = None
    current_enrollment: Optional[int] = None
    is_active: bool = True
    is_visible_to_user: bool = True
    lesson_types: list[str] = Field(default_factory=list)
    has_pricing_override: bool = False
    operating_hours: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None

    def to_domain(self, document_id: str) -> Location:
        return Location(
            id=document_id,
            name=self.name,
            address=Address(**self.address.model_dump()),
            display_name=self.display_name,
            region=self.region,
            facilities=self.facilities,
            pool_type=self.pool_type,
            total_capacity=self.total_capacity,
            current_enrollment=self.current_enrollment,
            is_active=self.is_active,
            is_visible_to_user=self.is_visible_to_user,
            lesson_types=list(self.lesson_types),
            has_pricing_override=self.has_pricing_override,
            operating_hours=dict(self.operating_hours),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SeasonSchema(DocumentSchema):
    name: RequiredText
    start_date: Timestamp
    end_date: Timestamp
    registration_open: Optional[Timestamp] = None
    hold_my_spot_open: Optional[Timestamp] = None
    hold_my_spot_close: Optional[Timestamp] = None
    is_active: bool = False
    locations: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None

    def to_domain(self, document_id: str) -> Season:
        return Season(
            id=document_id,
            name=self.name,
            start_date=self.start_date,
            end_date=self.end_date,
            is_active=self.is_active,
            location_ids=list(self.locations),
            registration_open=self.registration_open,
            hold_my_spot_open=self.hold_my_spot_open,
            hold_my_spot_close=self.hold_my_spot_close,
            notes=self.notes,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ProgramSchema(_WeeklySlotSchema):
    location_id: RequiredText
    season_id: RequiredText
    day_of_week: RequiredText
    start_time: TimeOfDay
    end_time: TimeOfDay
    program_id: Optional[str] = None
    location_name: Optional[str] = None
    season_name: Optional[str] = None
    format: Optional[str] = None
    days_of_week: list[str] = Field(default_factory=list)
    coach_ids: list[str] = Field(default_factory=list)
    num_lessons: int = 0
    is_full: bool = False
    is_active: bool = True
    description: Optional[str] = None
    start_date: Optional[Timestamp] = None
    end_date: Optional[Timestamp] = None
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None

    def to_domain(self, document_id: str) -> Program:
        return Program(
            id=document_id,
            location_id=self.location_id,
            season_id=self.season_id,
            day_of_week=self.day_of_week.lower(),
            start_time=self.start_time,
            end_time=self.end_time,
            is_active=self.is_active,
            num_lessons=self.num_lessons,
            program_id=self.program_id or document_id,
            location_name=self.location_name,
            season_name=self.season_name,
            format=self.format,
            days_of_week=list(self.days_of_week),
            coach_ids=list(self.coach_ids),
            is_full=self.is_full,
            description=self.description,
            start_date=self.start_date,
            end_date=self.end_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class BookingSchema(_WeeklySlotSchema):
    location_id: RequiredText
    season_id: RequiredText
    start_time: TimeOfDay
    end_time: TimeOfDay
    status: RequiredText
    location_name: Optional[str] = None
    season_name: Optional[str] = None
    program_id: Optional[str] = None
    coach_id: Optional[str] = None
    parent_id: Optional[str] = None
    swimmer_ids: list[str] = Field(default_factory=list)
    lesson_type: Optional[str] = None
    lesson_format: Optional[str] = None
    start_date: Optional[Timestamp] = None
    end_date: Optional[Timestamp] = None
    num_lessons: Optional[int] = None
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    currency: Optional[str] = None
    total_amount: float = 0.0
    amount_paid: float = 0.0
    discount_applied: float = 0.0
    promo_code: Optional[str] = None
    transaction_ref: Optional[str] = None
    payment_reference: Optional[str] = None
    payment_date: Optional[str] = None
    bypass_payment: bool = False
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None

    def to_domain(self, document_id: str) -> Booking:
        return Booking(
            id=document_id,
            location_id=self.location_id,
            season_id=self.season_id,
            start_time=self.start_time,
            end_time=self.end_time,
            status=self.status,
            payment_status=self.payment_status,
            amount_paid=self.amount_paid,
            total_amount=self.total_amount,
            discount_applied=self.discount_applied,
            location_name=self.location_name,
            season_name=self.season_name,
            program_id=self.program_id,
            coach_id=self.coach_id,
            parent_id=self.parent_id,
            swimmer_ids=list(self.swimmer_ids),
            lesson_type=self.lesson_type,
            lesson_format=self.lesson_format,
            num_lessons=self.num_lessons,
            payment_method=self.payment_method,
            currency=self.currency,
            promo_code=self.promo_code,
            transaction_ref=self.transaction_ref,
            payment_reference=self.payment_reference,
            payment_date=self.payment_date,
            bypass_payment=self.bypass_payment,
            start_date=self.start_date,
            end_date=self.end_date,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class LessonSchema(DocumentSchema):
    location_id: RequiredText
    season_id: RequiredText
    lesson_date: Timestamp
    status: RequiredText
    booking_id: Optional[str] = None
    coach_id: Optional[str] = None
    parent_id: Optional[str] = None
    swimmer_ids: list[str] = Field(default_factory=list)
    start_time: Optional[TimeOfDay] = None
    end_time: Optional[TimeOfDay] = None
    lesson_type: Optional[str] = None
    lesson_format: Optional[str] = None
    created_at: Optional[Timestamp] = None
    updated_at: Optional[Timestamp] = None

    def to_domain(self, document_id: str) -> Lesson:
        return Lesson(
            id=document_id,
            location_id=self.location_id,
            season_id=self.season_id,
            lesson_date=self.lesson_date,
            status=self.status,
            booking_id=self.booking_id,
            coach_id=self.coach_id,
            parent_id=self.parent_id,
            swimmer_ids=list(self.swimmer_ids),
            start_time=self.start_time,
            end_time=self.end_time,
            lesson_type=self.lesson_type,
            lesson_format=self.lesson_format,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PrivateRateSchema(DocumentSchema):
    base_price: float
    add_on_per_swimmer: float = 0.0
    max_swimmers: int = 1


class GroupRateSchema(DocumentSchema):
    price_per_swimmer: float
    max_swimmers: int


class PricingSchema(DocumentSchema):
    private_lessons: dict[DurationBucket, PrivateRateSchema] = Field(default_factory=dict)
    small_group: dict[DurationBucket, GroupRateSchema] = Field(default_factory=dict)
    overrideable: bool = True

    def to_domain(self, document_id: str) -> Pricing:
        return Pricing(
            private_lessons={
                bucket: PrivateLessonRate(
                    base_price=rate.base_price,
                    add_on_per_swimmer=rate.add_on_per_swimmer,
                    max_swimmers=rate.max_swimmers,
                )
                for bucket, rate in self.private_lessons.items()
            },
            small_group={
                bucket: GroupLessonRate(
                    price_per_swimmer=rate.price_per_swimmer,
                    max_swimmers=rate.max_swimmers,
                )
                for bucket, rate in self.small_group.items()
            },
            overrideable=self.overrideable,
        )


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

SCHEMAS: dict[str, type[DocumentSchema]] = {
    "locations": LocationSchema,
    "seasons": SeasonSchema,
    "programs": ProgramSchema,
    "bookings": BookingSchema,
    "lessons": LessonSchema,
    "pricing": PricingSchema,
}

def parse_record(collection: str, document_id: str, data: dict[str, Any]):
    """
    Validate a stored document and convert it to its domain entity.

    Raises MalformedRecordError naming the collection and document when a
    required field is missing or a value has the wrong shape.
    """
    schema = SCHEMAS[collection]
    try:
        return schema.model_validate(data).to_domain(document_id)
    except ValueError as e:
        # pydantic's ValidationError is a ValueError, as are the dataclass invariants
        raise MalformedRecordError(collection, document_id, str(e)) from e
