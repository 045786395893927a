"""Conditions domain model - pure data structures independent of any API."""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class Coordinate:
    """A fixed geographic point."""
    latitude: float
    longitude: float


@dataclass(frozen=True)
class MarineSeries:
    """Hourly wave heights as returned by the marine source."""
    times: Tuple[str, ...]
    wave_heights: Tuple[Optional[float], ...]  # meters, may hold nulls


@dataclass(frozen=True)
class WeatherPayload:
    """The 'current' and 'daily' blocks returned by the weather source."""
    current: Mapping[str, Any]
    daily: Mapping[str, Any]


@dataclass(frozen=True)
class MarineReading:
    wave_height_m: Optional[float] = None


@dataclass(frozen=True)
class WeatherReading:
    temperature_c: Optional[float] = None
    wind_speed_kmh: Optional[float] = None
    sunrise: Optional[str] = None  # ISO-8601, local to the deployment timezone
    sunset: Optional[str] = None


class MoonPhase(Enum):
    """The eight named phases of the synodic cycle, in order."""
    NEW = ("New Moon", "\U0001F311")
    WAXING_CRESCENT = ("Waxing Crescent", "\U0001F312")
    FIRST_QUARTER = ("First Quarter", "\U0001F313")
    WAXING_GIBBOUS = ("Waxing Gibbous", "\U0001F314")
    FULL = ("Full Moon", "\U0001F315")
    WANING_GIBBOUS = ("Waning Gibbous", "\U0001F316")
    LAST_QUARTER = ("Last Quarter", "\U0001F317")
    WANING_CRESCENT = ("Waning Crescent", "\U0001F318")

    def __init__(self, label: str, glyph: str):
        self.label = label
        self.glyph = glyph


class FetchState(Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class Snapshot:
    """
    Result of one refresh cycle.

    Snapshots are never mutated; each activation publishes a new one.
    A None field on the readings means the value is unknown.
    """
    marine: MarineReading
    weather: WeatherReading
    moon_phase: MoonPhase
    state: FetchState
    error: Optional[str] = None  # only set when state is FAILED
    activation: int = 0
    created_at: datetime = field(default_factory=datetime.now)

    @classmethod
    def loading(cls, moon_phase: MoonPhase, activation: int = 0) -> "Snapshot":
        return cls(
            marine=MarineReading(),
            weather=WeatherReading(),
            moon_phase=moon_phase,
            state=FetchState.LOADING,
            activation=activation,
        )

    @property
    def is_ready(self) -> bool:
        return self.state is FetchState.READY

    @property
    def is_failed(self) -> bool:
        return self.state is FetchState.FAILED


def format_local_time(timestamp: Optional[str], tz_name: str) -> Optional[str]:
    """
    Format an ISO-8601 timestamp as HH:MM in the given timezone.

    Naive timestamps are assumed to already be local to tz_name (that is
    how Open-Meteo returns them when a timezone is requested). Returns None
    for missing or unparseable input.
    """
    if not timestamp:
        return None
    try:
        parsed = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except (AttributeError, TypeError, ValueError):
        logging.debug(f"Could not parse timestamp {timestamp!r}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(ZoneInfo(tz_name))
    return parsed.strftime("%H:%M")
