"""
Weekly utilization: how much of a location's recurring time is sold.

Programs say when a location is open for lessons each week; confirmed
bookings say how much of that time families have taken. Both are recurring
weekly slots, so the comparison is per week and the season's length never
enters into it.
"""

from typing import Iterable

from .models import AvailableSlot, Booking, Program, WeeklyUtilization


def available_slots(programs: Iterable[Program]) -> list[AvailableSlot]:
    """Weekly slots offered by the active programs, in program order."""
    return [
        AvailableSlot(
            day_of_week=program.day_of_week,
            start_time=program.start_time,
            end_time=program.end_time,
            hours=program.hours,
        )
        for program in programs
        if program.is_active
    ]


def booked_hours_per_week(bookings: Iterable[Booking]) -> float:
    """Each confirmed booking counts its duration exactly once."""
    return sum(
        (booking.duration_hours for booking in bookings if booking.is_confirmed),
        0.0,
    )


def utilization_rate(booked_hours: float, available_hours: float) -> float:
    """Booked over available; zero when nothing is available. Not clamped."""
    if available_hours <= 0:
        return 0.0
    return booked_hours / available_hours


def calculate_weekly_utilization(
    programs: Iterable[Program],
    bookings: Iterable[Booking],
) -> WeeklyUtilization:
    """
    Build the utilization view from one location's programs and bookings.

    Callers pass records already scoped to a single location and season.
    """
    slots = available_slots(programs)
    available = sum((slot.hours for slot in slots), 0.0)
    booked = booked_hours_per_week(bookings)

    return WeeklyUtilization(
        available_hours_per_week=available,
        booked_hours_per_week=booked,
        utilization_rate=utilization_rate(booked, available),
        available_slots=slots,
    )
