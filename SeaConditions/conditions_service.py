"""Conditions aggregator - joins the marine and weather sources into one snapshot."""
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, List, Mapping, Optional
from zoneinfo import ZoneInfo

from conditions_data import (
    Coordinate,
    FetchState,
    MarineReading,
    MoonPhase,
    Snapshot,
    WeatherReading,
)
from moon_phase import phase_for
from openmeteo_provider import safe_float
from source_provider import RemoteSourceBase, SourceError

FAILED_MESSAGE = "Could not load sea conditions. Check your connection and try again."


@dataclass(frozen=True)
class SourceResult:
    """Outcome of one source fetch: either a value or a hard error."""
    value: Any = None
    error: Optional[SourceError] = None

    @classmethod
    def ok(cls, value: Any) -> "SourceResult":
        return cls(value=value)

    @classmethod
    def failed(cls, error: SourceError) -> "SourceResult":
        return cls(error=error)

    @property
    def succeeded(self) -> bool:
        return self.error is None


def extract_marine(result: SourceResult, hour: int) -> MarineReading:
    """Pick the wave height for the given local hour of the day."""
    if not result.succeeded:
        return MarineReading()
    heights = result.value.wave_heights
    if not 0 <= hour < len(heights):
        logging.debug(f"No wave height for hour {hour} ({len(heights)} hourly values)")
        return MarineReading()
    return MarineReading(wave_height_m=heights[hour])


def _first_daily(daily: Mapping[str, Any], key: str) -> Optional[str]:
    values = daily.get(key)
    if not isinstance(values, list) or not values:
        return None
    value = values[0]
    return value if isinstance(value, str) else None


def extract_weather(result: SourceResult) -> WeatherReading:
    """Read the current values and today's (first) sunrise and sunset."""
    if not result.succeeded:
        return WeatherReading()
    payload = result.value
    return WeatherReading(
        temperature_c=safe_float(payload.current.get("temperature_2m")),
        wind_speed_kmh=safe_float(payload.current.get("wind_speed_10m")),
        sunrise=_first_daily(payload.daily, "sunrise"),
        sunset=_first_daily(payload.daily, "sunset"),
    )


def merge_results(
    marine: SourceResult,
    weather: SourceResult,
    hour: int,
    moon_phase: MoonPhase,
    activation: int = 0,
    created_at: Optional[datetime] = None
) -> Snapshot:
    """
    Combine both source results into one snapshot.

    The snapshot is FAILED only when both sources hit a hard error. If at
    least one source answered, it is READY and whatever could not be read
    is left as None (unknown).
    """
    created_at = created_at or datetime.now()

    if not marine.succeeded and not weather.succeeded:
        reason = f"marine: {marine.error}; weather: {weather.error}"
        logging.error(f"Both sources failed ({reason})")
        return Snapshot(
            marine=MarineReading(),
            weather=WeatherReading(),
            moon_phase=moon_phase,
            state=FetchState.FAILED,
            error=reason,
            activation=activation,
            created_at=created_at,
        )

    for name, result in (("marine", marine), ("weather", weather)):
        if not result.succeeded:
            logging.warning(f"Publishing partial conditions without {name} data: {result.error}")

    return Snapshot(
        marine=extract_marine(marine, hour),
        weather=extract_weather(weather),
        moon_phase=moon_phase,
        state=FetchState.READY,
        activation=activation,
        created_at=created_at,
    )


class ConditionsAggregator:
    """
    Fetches both sources concurrently and publishes one snapshot per refresh.

    Every refresh is an "activation" with an increasing number. Only the
    most recently started activation may publish, so a slow older refresh
    can never overwrite the result of a newer one.
    """

    def __init__(
        self,
        marine_source: RemoteSourceBase,
        weather_source: RemoteSourceBase,
        coordinate: Coordinate,
        timezone: str,
        clock: Optional[Callable[[], datetime]] = None,
        max_workers: int = 4
    ):
        """
        Initialize the aggregator.

        Args:
            marine_source: Source returning a MarineSeries
            weather_source: Source returning a WeatherPayload
            coordinate: Point to fetch conditions for
            timezone: IANA timezone whose local hour and date are "now"
            clock: Returns the current time (defaults to now in timezone)
            max_workers: Worker threads for the source fetches
        """
        self.marine_source = marine_source
        self.weather_source = weather_source
        self.coordinate = coordinate
        self.timezone = timezone
        self.clock = clock or (lambda: datetime.now(ZoneInfo(timezone)))

        self._lock = threading.RLock()
        self._activation = 0
        self._listeners: List[Callable[[Snapshot], None]] = []
        self._latest = Snapshot.loading(phase_for(self.clock().date()))
        self._fetch_pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="fetch")
        self._activation_pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="refresh")

    @property
    def latest(self) -> Snapshot:
        with self._lock:
            return self._latest

    def add_listener(self, callback: Callable[[Snapshot], None]) -> None:
        """Call callback with every snapshot published from now on."""
        with self._lock:
            self._listeners.append(callback)

    def refresh(self) -> Snapshot:
        """
        Run one activation and wait for it.

        Returns:
            Snapshot: This activation's snapshot. If a newer refresh was
            started meanwhile it is returned but not published.
        """
        activation = self._begin()
        return self._run(activation)

    def start_refresh(self) -> "Future[Snapshot]":
        """Run one activation in the background and return its future."""
        activation = self._begin()
        return self._activation_pool.submit(self._run, activation)

    def close(self) -> None:
        self._activation_pool.shutdown(wait=True)
        self._fetch_pool.shutdown(wait=True)

    def __enter__(self) -> "ConditionsAggregator":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _begin(self) -> int:
        with self._lock:
            self._activation += 1
            activation = self._activation
            self._publish(Snapshot.loading(phase_for(self.clock().date()), activation))
        logging.info(f"Refresh {activation} started")
        return activation

    def _fetch(self, source: RemoteSourceBase) -> SourceResult:
        try:
            return SourceResult.ok(source.fetch(self.coordinate))
        except SourceError as e:
            logging.warning(f"{source.name} fetch failed: {e}")
            return SourceResult.failed(e)

    def _run(self, activation: int) -> Snapshot:
        futures = [
            self._fetch_pool.submit(self._fetch, self.marine_source),
            self._fetch_pool.submit(self._fetch, self.weather_source),
        ]
        # Join on both; one failing does not cancel the other
        wait(futures)
        marine_result, weather_result = (f.result() for f in futures)

        now = self.clock()
        snapshot = merge_results(
            marine_result,
            weather_result,
            hour=now.hour,
            moon_phase=phase_for(now.date()),
            activation=activation,
            created_at=now,
        )
        self._publish(snapshot)
        return snapshot

    def _publish(self, snapshot: Snapshot) -> bool:
        with self._lock:
            if snapshot.activation != self._activation:
                logging.info(
                    f"Discarding stale snapshot from refresh {snapshot.activation} "
                    f"(latest is {self._activation})"
                )
                return False
            self._latest = snapshot
            listeners = list(self._listeners)
            for callback in listeners:
                callback(snapshot)
        logging.info(f"Published {snapshot.state.value} snapshot from refresh {snapshot.activation}")
        return True
