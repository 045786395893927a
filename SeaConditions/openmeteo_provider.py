"""Open-Meteo Marine and Forecast API source implementations."""
import logging
from typing import Any, Dict, Optional

import requests

from conditions_data import Coordinate, MarineSeries, WeatherPayload
from source_provider import (
    MalformedResponseError,
    NetworkError,
    RemoteSourceBase,
)

HEADERS_DEFAULT = {
    "User-Agent": "SeaConditions/1.0 (Open-Meteo client)"
}


def safe_float(value) -> Optional[float]:
    """Convert an API value to float, or None when absent or not numeric."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class OpenMeteoSource(RemoteSourceBase):
    """
    Shared request and error handling for the Open-Meteo APIs.

    Open-Meteo needs no API key. Both endpoints accept the same location,
    timezone and forecast window parameters; subclasses add the requested
    fields and validate their part of the response.
    """

    BASE_URL = ""

    def __init__(
        self,
        timezone: str,
        timeout: int = 10,
        base_url: Optional[str] = None,
        forecast_days: int = 1
    ):
        """
        Initialize an Open-Meteo source.

        Args:
            timezone: IANA timezone used for returned timestamps
            timeout: HTTP request timeout in seconds
            base_url: Override for the endpoint (e.g. a self-hosted mirror)
            forecast_days: Length of the forecast window in days
        """
        self.timezone = timezone
        self.timeout = timeout
        self.base_url = base_url or self.BASE_URL
        self.forecast_days = forecast_days

    def build_params(self, coordinate: Coordinate) -> Dict[str, Any]:
        return {
            "latitude": coordinate.latitude,
            "longitude": coordinate.longitude,
            "timezone": self.timezone,
            "forecast_days": self.forecast_days,
        }

    def parse(self, data: Dict[str, Any]) -> Any:
        raise NotImplementedError

    def fetch(self, coordinate: Coordinate) -> Any:
        params = self.build_params(coordinate)

        try:
            logging.info(f"Making {self.name} API request: {self.base_url}")
            logging.debug(f"Request parameters: {params}")
            response = requests.get(
                self.base_url, params=params, headers=HEADERS_DEFAULT, timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logging.error(f"Network error during {self.name} request: {e}")
            raise NetworkError(f"Network error: {str(e)}") from e

        logging.info(f"{self.name} API response status: {response.status_code}")
        if not response.ok:
            logging.error(f"{self.name} request failed with status {response.status_code}")
            self._handle_error_response(response)

        try:
            data = response.json()
            if not isinstance(data, dict):
                raise MalformedResponseError(
                    f"Expected a JSON object, got {type(data).__name__}"
                )
            if data.get("error"):
                raise MalformedResponseError(
                    f"Open-Meteo error: {data.get('reason', 'Unknown error')}"
                )
            logging.debug(f"{self.name} response keys: {list(data.keys())}")
            return self.parse(data)
        except (KeyError, ValueError, TypeError) as e:
            logging.error(f"Failed to parse {self.name} response: {e}", exc_info=True)
            raise MalformedResponseError(f"Failed to parse response: {str(e)}") from e

    def _handle_error_response(self, response: requests.Response) -> None:
        """Raise NetworkError from an Open-Meteo error response."""
        try:
            error_data = response.json()
        except ValueError:
            logging.error(f"Non-JSON error response: HTTP {response.status_code}, body: {response.text[:500]}")
            raise NetworkError(f"HTTP {response.status_code}: {response.text[:200]}")

        reason = "Unknown error"
        if isinstance(error_data, dict):
            reason = error_data.get("reason", reason)
        logging.error(f"Open-Meteo API error response: {error_data}")
        raise NetworkError(f"Open-Meteo API error {response.status_code}: {reason}")


class MarineSource(OpenMeteoSource):
    """Hourly wave height from the Open-Meteo Marine API."""

    name = "marine"
    BASE_URL = "https://marine-api.open-meteo.com/v1/marine"
    HOURLY_FIELD = "wave_height"

    def build_params(self, coordinate: Coordinate) -> Dict[str, Any]:
        params = super().build_params(coordinate)
        params["hourly"] = self.HOURLY_FIELD
        return params

    def parse(self, data: Dict[str, Any]) -> MarineSeries:
        hourly = data.get("hourly")
        if not isinstance(hourly, dict):
            raise MalformedResponseError("Response missing 'hourly' block")

        heights = hourly.get(self.HOURLY_FIELD)
        if heights is None:
            # Usable response, the field is just unknown for every hour
            logging.warning(f"Marine response has no '{self.HOURLY_FIELD}' values")
            heights = []
        if not isinstance(heights, list):
            raise MalformedResponseError(f"'hourly.{self.HOURLY_FIELD}' is not a list")

        times = hourly.get("time")
        if not isinstance(times, list):
            times = []

        series = MarineSeries(
            times=tuple(str(t) for t in times),
            wave_heights=tuple(safe_float(h) for h in heights),
        )
        logging.info(f"Parsed marine data: {len(series.wave_heights)} hourly wave heights")
        return series


class WeatherSource(OpenMeteoSource):
    """Current temperature/wind and today's sunrise/sunset from the Forecast API."""

    name = "weather"
    BASE_URL = "https://api.open-meteo.com/v1/forecast"
    CURRENT_FIELDS = ("temperature_2m", "wind_speed_10m")
    DAILY_FIELDS = ("sunrise", "sunset")

    def build_params(self, coordinate: Coordinate) -> Dict[str, Any]:
        params = super().build_params(coordinate)
        params["current"] = ",".join(self.CURRENT_FIELDS)
        params["daily"] = ",".join(self.DAILY_FIELDS)
        params["wind_speed_unit"] = "kmh"
        return params

    def parse(self, data: Dict[str, Any]) -> WeatherPayload:
        current = data.get("current")
        if not isinstance(current, dict):
            raise MalformedResponseError("Response missing 'current' block")
        daily = data.get("daily")
        if not isinstance(daily, dict):
            raise MalformedResponseError("Response missing 'daily' block")

        logging.info(
            f"Parsed weather data: temp={current.get('temperature_2m')} "
            f"wind={current.get('wind_speed_10m')}"
        )
        return WeatherPayload(current=dict(current), daily=dict(daily))
