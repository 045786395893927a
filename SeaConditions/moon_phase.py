"""Moon phase calculation (pure math, no API)."""
import math
from datetime import date

from conditions_data import MoonPhase

SYNODIC_MONTH = 29.53  # days
NEW_MOON_REFERENCE = 2451549.5  # Julian day of the new moon of 2000-01-06

# Upper bound (in days of lunar age) of each phase, in cycle order.
# Ages at or past the last bound wrap back to NEW.
PHASE_BOUNDARIES = (
    (1.84566, MoonPhase.NEW),
    (5.53699, MoonPhase.WAXING_CRESCENT),
    (9.22831, MoonPhase.FIRST_QUARTER),
    (12.91963, MoonPhase.WAXING_GIBBOUS),
    (16.61096, MoonPhase.FULL),
    (20.30228, MoonPhase.WANING_GIBBOUS),
    (23.99361, MoonPhase.LAST_QUARTER),
    (27.68493, MoonPhase.WANING_CRESCENT),
)


def julian_day(day: date) -> float:
    """Julian Day at 00:00 of a civil (Gregorian) calendar date."""
    year = day.year
    month = day.month
    if month <= 2:
        year -= 1
        month += 12

    century = year // 100
    gregorian_correction = 2 - century + century // 4
    return (
        int(365.25 * (year + 4716))
        + int(30.6001 * (month + 1))
        + day.day
        + gregorian_correction
        - 1524.5
    )


def moon_age(day: date) -> float:
    """Days since the last new moon, in [0, SYNODIC_MONTH)."""
    days_since_reference = julian_day(day) - NEW_MOON_REFERENCE
    cycles = days_since_reference / SYNODIC_MONTH
    return (cycles - math.floor(cycles)) * SYNODIC_MONTH


def illumination(age: float) -> float:
    """Fraction of the disc that is lit (0.0 at new moon, 1.0 at full)."""
    phase_angle = (age / SYNODIC_MONTH) * 2 * math.pi
    return max(0.0, min(1.0, (1 - math.cos(phase_angle)) / 2))


def phase_for(day: date) -> MoonPhase:
    """
    Moon phase for a calendar date.

    Only year, month and day are used, so a datetime gives the same
    answer at any time of day.
    """
    age = moon_age(day)
    for upper_bound, phase in PHASE_BOUNDARIES:
        if age < upper_bound:
            return phase
    return MoonPhase.NEW
