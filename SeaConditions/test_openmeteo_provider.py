"""Tests for the Open-Meteo sources."""
import pytest
import requests
from unittest.mock import Mock, patch

from conditions_data import Coordinate, MarineSeries, WeatherPayload
from openmeteo_provider import MarineSource, WeatherSource, safe_float
from source_provider import MalformedResponseError, NetworkError

COORDINATE = Coordinate(latitude=-13.6197, longitude=-38.9347)


@pytest.fixture
def sample_marine_response():
    """Sample Open-Meteo Marine API response (trimmed to 4 hours)."""
    return {
        "latitude": -13.625,
        "longitude": -38.875,
        "utc_offset_seconds": -10800,
        "timezone": "America/Bahia",
        "hourly_units": {"time": "iso8601", "wave_height": "m"},
        "hourly": {
            "time": [
                "2024-01-11T00:00",
                "2024-01-11T01:00",
                "2024-01-11T02:00",
                "2024-01-11T03:00",
            ],
            "wave_height": [1.2, 1.24, None, 1.3],
        },
    }


@pytest.fixture
def sample_weather_response():
    """Sample Open-Meteo Forecast API response."""
    return {
        "latitude": -13.625,
        "longitude": -38.9375,
        "timezone": "America/Bahia",
        "current_units": {"temperature_2m": "°C", "wind_speed_10m": "km/h"},
        "current": {
            "time": "2024-01-11T10:00",
            "interval": 900,
            "temperature_2m": 28.4,
            "wind_speed_10m": 14.8,
        },
        "daily": {
            "time": ["2024-01-11"],
            "sunrise": ["2024-01-11T05:12"],
            "sunset": ["2024-01-11T17:58"],
        },
    }


def mock_response(data=None, ok=True, status_code=200, text=""):
    response = Mock()
    response.ok = ok
    response.status_code = status_code
    response.text = text
    if isinstance(data, Exception):
        response.json.side_effect = data
    else:
        response.json.return_value = data
    return response


@pytest.fixture
def marine():
    return MarineSource(timezone="America/Bahia", timeout=5)


@pytest.fixture
def weather():
    return WeatherSource(timezone="America/Bahia", timeout=5)


def test_marine_success(marine, sample_marine_response):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(sample_marine_response)

        series = marine.fetch(COORDINATE)

        assert isinstance(series, MarineSeries)
        assert series.wave_heights == (1.2, 1.24, None, 1.3)
        assert series.times[0] == "2024-01-11T00:00"


def test_marine_request_parameters(marine, sample_marine_response):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(sample_marine_response)

        marine.fetch(COORDINATE)

        args, kwargs = mock_get.call_args
        assert args[0] == "https://marine-api.open-meteo.com/v1/marine"
        assert kwargs["params"] == {
            "latitude": -13.6197,
            "longitude": -38.9347,
            "timezone": "America/Bahia",
            "forecast_days": 1,
            "hourly": "wave_height",
        }
        assert kwargs["timeout"] == 5
        assert mock_get.call_count == 1


def test_marine_missing_field_is_empty_series(marine):
    """A usable response without wave heights is not a hard error."""
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response({"hourly": {"time": ["2024-01-11T00:00"]}})

        series = marine.fetch(COORDINATE)

        assert series.wave_heights == ()


def test_marine_missing_hourly_block(marine):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response({"latitude": -13.6})

        with pytest.raises(MalformedResponseError) as exc_info:
            marine.fetch(COORDINATE)

        assert "missing 'hourly' block" in str(exc_info.value)


def test_marine_wave_height_not_a_list(marine):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response({"hourly": {"wave_height": 1.2}})

        with pytest.raises(MalformedResponseError):
            marine.fetch(COORDINATE)


def test_weather_success(weather, sample_weather_response):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(sample_weather_response)

        payload = weather.fetch(COORDINATE)

        assert isinstance(payload, WeatherPayload)
        assert payload.current["temperature_2m"] == 28.4
        assert payload.daily["sunrise"] == ["2024-01-11T05:12"]

        params = mock_get.call_args[1]["params"]
        assert params["current"] == "temperature_2m,wind_speed_10m"
        assert params["daily"] == "sunrise,sunset"
        assert params["forecast_days"] == 1


def test_weather_missing_current(weather, sample_weather_response):
    del sample_weather_response["current"]
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(sample_weather_response)

        with pytest.raises(MalformedResponseError) as exc_info:
            weather.fetch(COORDINATE)

        assert "missing 'current' block" in str(exc_info.value)


def test_weather_missing_daily(weather, sample_weather_response):
    sample_weather_response["daily"] = ["2024-01-11"]
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(sample_weather_response)

        with pytest.raises(MalformedResponseError) as exc_info:
            weather.fetch(COORDINATE)

        assert "missing 'daily' block" in str(exc_info.value)


@pytest.mark.parametrize("error", [
    requests.exceptions.ConnectionError("Connection refused"),
    requests.exceptions.Timeout("Read timed out"),
])
def test_network_errors(weather, error):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.side_effect = error

        with pytest.raises(NetworkError) as exc_info:
            weather.fetch(COORDINATE)

        assert "Network error" in str(exc_info.value)


def test_http_error_with_reason(marine):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(
            {"error": True, "reason": "Cannot initialize WeatherVariable from invalid String value"},
            ok=False,
            status_code=400,
        )

        with pytest.raises(NetworkError) as exc_info:
            marine.fetch(COORDINATE)

        assert "400" in str(exc_info.value)
        assert "invalid String value" in str(exc_info.value)


def test_http_error_without_json(marine):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(
            ValueError("No JSON"), ok=False, status_code=502, text="Bad Gateway"
        )

        with pytest.raises(NetworkError) as exc_info:
            marine.fetch(COORDINATE)

        assert "HTTP 502: Bad Gateway" in str(exc_info.value)


def test_body_is_not_json(weather):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(ValueError("Expecting value"))

        with pytest.raises(MalformedResponseError):
            weather.fetch(COORDINATE)


def test_body_is_not_an_object(weather):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response([1, 2, 3])

        with pytest.raises(MalformedResponseError) as exc_info:
            weather.fetch(COORDINATE)

        assert "got list" in str(exc_info.value)


def test_error_flag_in_ok_response(weather):
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response({"error": True, "reason": "Latitude must be in range"})

        with pytest.raises(MalformedResponseError) as exc_info:
            weather.fetch(COORDINATE)

        assert "Latitude must be in range" in str(exc_info.value)


def test_base_url_override(sample_marine_response):
    source = MarineSource(timezone="UTC", base_url="http://localhost:8080/v1/marine")
    with patch('openmeteo_provider.requests.get') as mock_get:
        mock_get.return_value = mock_response(sample_marine_response)

        source.fetch(COORDINATE)

        assert mock_get.call_args[0][0] == "http://localhost:8080/v1/marine"


def test_safe_float():
    assert safe_float(None) is None
    assert safe_float("1.5") == 1.5
    assert safe_float("n/a") is None
    assert safe_float(True) is None
