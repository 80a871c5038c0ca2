"""
Shared fixtures: a small swim school with two active pools and one closed one.

Fall 2025 numbers worth knowing when reading the tests:
- Downtown (loc-a): 3 available hours, 1 booked hour, $220 paid
- Westside (loc-b): 2 available hours, 1 booked hour, $200 paid
- Season total: 5 bookings, $420 paid
"""

from datetime import datetime, timezone

import pytest

from src.core.insights.service import BusinessIntelligenceService
from src.infrastructure.snowflake.client import InMemoryDocumentStore
from src.infrastructure.snowflake.repositories.records import RecordRepository


FIXED_NOW = datetime(2025, 10, 1, 12, 0, tzinfo=timezone.utc)


def _booking(location_id, season_id, start, end, status, payment_status, amount, lesson_type, name):
    return {
        "locationId": location_id,
        "locationName": name,
        "seasonId": season_id,
        "startTime": start,
        "endTime": end,
        "status": status,
        "paymentStatus": payment_status,
        "amountPaid": amount,
        "totalAmount": amount,
        "lessonType": lesson_type,
    }


def seed_documents() -> dict[str, dict[str, dict]]:
    return {
        "locations": {
            "loc-a": {
                "name": "Downtown Pool",
                "region": "Central",
                "isActive": True,
                "lessonTypes": ["private", "group"],
                "address": {"street": "1 Main St", "city": "Calgary", "latitude": 51.04},
            },
            "loc-b": {"name": "Westside Pool", "isActive": True},
            "loc-c": {"name": "Closed Pool", "isActive": False},
        },
        "seasons": {
            "fall-2025": {
                "name": "Fall 2025",
                "startDate": "2025-09-01T00:00:00Z",
                "endDate": "2025-12-15T00:00:00Z",
                "isActive": True,
                "locations": ["loc-a", "loc-b"],
            },
            "summer-2025": {
                "name": "Summer 2025",
                "startDate": {"_seconds": 1751328000, "_nanoseconds": 0},
                "endDate": {"_seconds": 1756598400, "_nanoseconds": 0},
                "isActive": False,
            },
        },
        "programs": {
            "p-a-mon": {
                "locationId": "loc-a", "seasonId": "fall-2025",
                "dayOfWeek": "Monday", "startTime": "15:00", "endTime": "18:00",
                "isActive": True,
            },
            "p-a-tue": {
                "locationId": "loc-a", "seasonId": "fall-2025",
                "dayOfWeek": "tuesday", "startTime": "16:00", "endTime": "17:00",
                "isActive": False,
            },
            "p-b-wed": {
                "locationId": "loc-b", "seasonId": "fall-2025",
                "dayOfWeek": "wednesday", "startTime": "09:00", "endTime": "11:00",
            },
        },
        "bookings": {
            "b1": _booking("loc-a", "fall-2025", "15:00", "15:30", "confirmed", "paid", 120, "private", "Downtown Pool"),
            "b2": _booking("loc-a", "fall-2025", "15:30", "16:00", "confirmed", "paid", 100, "private", "Downtown Pool"),
            "b3": _booking("loc-a", "fall-2025", "16:00", "16:45", "pending", "unpaid", 0, "group", "Downtown Pool"),
            "b4": _booking("loc-b", "fall-2025", "09:00", "10:00", "confirmed", "paid", 200, "group", "Westside Pool"),
            "b5": _booking("loc-b", "fall-2025", "10:00", "10:30", "cancelled", "refunded", 80, "private", "Westside Pool"),
            "b6": _booking("loc-a", "summer-2025", "15:00", "15:30", "confirmed", "paid", 999, "private", "Downtown Pool"),
        },
        "lessons": {
            "l1": {"locationId": "loc-a", "seasonId": "fall-2025", "lessonDate": "2025-09-08T15:00:00Z", "status": "completed"},
            "l2": {"locationId": "loc-a", "seasonId": "fall-2025", "lessonDate": "2025-10-20T15:00:00Z", "status": "confirmed"},
            "l3": {"locationId": "loc-a", "seasonId": "fall-2025", "lessonDate": "2025-09-15T15:00:00Z", "status": "cancelled"},
            "l4": {"locationId": "loc-b", "seasonId": "fall-2025", "lessonDate": "2025-11-05T09:00:00Z", "status": "confirmed"},
        },
        "pricing": {
            "default": {
                "privateLessons": {
                    "30min": {"basePrice": 45, "addOnPerSwimmer": 20, "maxSwimmers": 3},
                    "45min": {"basePrice": 65, "addOnPerSwimmer": 25, "maxSwimmers": 3},
                    "60min": {"basePrice": 85, "addOnPerSwimmer": 30, "maxSwimmers": 3},
                },
                "smallGroup": {
                    "45min": {"pricePerSwimmer": 35, "maxSwimmers": 5},
                },
                "overrideable": True,
            },
        },
    }


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore(seed_documents())


@pytest.fixture
def repository(store) -> RecordRepository:
    return RecordRepository(store)


@pytest.fixture
def service(repository) -> BusinessIntelligenceService:
    return BusinessIntelligenceService(repository, clock=lambda: FIXED_NOW)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
