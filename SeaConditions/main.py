"""Terminal display of the current sea conditions."""
import argparse
import logging
import os
import signal
import sys
import time
from typing import List, Optional, Tuple

from dotenv import load_dotenv

from conditions_data import FetchState, Snapshot, format_local_time
from conditions_service import FAILED_MESSAGE, ConditionsAggregator
from location import BOIPEBA, LOCATION_NAME, TIDE_LINKS, TIMEZONE
from openmeteo_provider import MarineSource, WeatherSource

UNKNOWN = "--"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser("Sea conditions display")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--refresh", type=float, default=600.0, help="Seconds between refreshes")
    parser.add_argument("--once", action="store_true", help="Refresh once and exit")
    parser.add_argument("--timeout", type=int, default=None, help="HTTP timeout in seconds")
    parser.add_argument("--verbose", action="store_true")
    return parser.parse_args(argv)


def setup_logging(log_file: Optional[str], verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def load_config(timeout: Optional[int]) -> Tuple[Optional[str], Optional[str], int]:
    load_dotenv()
    marine_url = os.getenv("CONDITIONS_MARINE_URL") or None
    weather_url = os.getenv("CONDITIONS_WEATHER_URL") or None

    if timeout is None:
        raw_timeout = os.getenv("CONDITIONS_TIMEOUT", "10")
        try:
            timeout = int(raw_timeout)
        except ValueError as exc:
            raise SystemExit(f"Invalid CONDITIONS_TIMEOUT: {raw_timeout!r}") from exc
    if timeout <= 0:
        raise SystemExit("Timeout must be a positive number of seconds")

    logging.info(
        "Configuration loaded: location=%s lat=%s lon=%s timezone=%s timeout=%ss",
        LOCATION_NAME, BOIPEBA.latitude, BOIPEBA.longitude, TIMEZONE, timeout,
    )
    return marine_url, weather_url, timeout


def build_aggregator(marine_url: Optional[str], weather_url: Optional[str], timeout: int) -> ConditionsAggregator:
    marine = MarineSource(timezone=TIMEZONE, timeout=timeout, base_url=marine_url)
    weather = WeatherSource(timezone=TIMEZONE, timeout=timeout, base_url=weather_url)
    aggregator = ConditionsAggregator(marine, weather, BOIPEBA, TIMEZONE)
    logging.info("Aggregator ready (marine=%s weather=%s)", marine.base_url, weather.base_url)
    return aggregator


def _number(value: Optional[float], fmt: str) -> str:
    return fmt.format(value) if value is not None else UNKNOWN


def format_snapshot_lines(snapshot: Snapshot, tz_name: str = TIMEZONE) -> List[str]:
    """Render a snapshot as display lines. Unknown values show as '--'."""
    moon = f"Moon  {snapshot.moon_phase.glyph} {snapshot.moon_phase.label}"
    if snapshot.is_failed:
        return [FAILED_MESSAGE, moon]
    if not snapshot.is_ready:
        return ["Loading conditions...", moon]

    weather = snapshot.weather
    sunrise = format_local_time(weather.sunrise, tz_name) or UNKNOWN
    sunset = format_local_time(weather.sunset, tz_name) or UNKNOWN
    return [
        f"Temp  {_number(weather.temperature_c, '{:.1f}')}°C",
        f"Wind  {_number(weather.wind_speed_kmh, '{:.0f}')} km/h",
        f"Waves {_number(snapshot.marine.wave_height_m, '{:.1f}')} m",
        f"Sun   {sunrise} / {sunset}",
        moon,
    ]


def format_tide_links() -> List[str]:
    return [f"{link.title}: {link.url} (source: {link.source})" for link in TIDE_LINKS]


def draw_snapshot(snapshot: Snapshot) -> None:
    if snapshot.is_failed:
        logging.error("Refresh %s failed: %s", snapshot.activation, snapshot.error)
    lines = [LOCATION_NAME] + format_snapshot_lines(snapshot) + format_tide_links()
    print("\n".join(lines), flush=True)


def on_snapshot(snapshot: Snapshot) -> None:
    if snapshot.state is not FetchState.LOADING:
        draw_snapshot(snapshot)


def conditions_loop(aggregator: ConditionsAggregator, args: argparse.Namespace) -> None:
    frame = 0
    while True:
        frame += 1
        logging.info("Frame %s: refreshing conditions", frame)
        try:
            snapshot = aggregator.refresh()
            logging.info(
                "Conditions: state=%s temp=%s wind=%s waves=%s moon=%s",
                snapshot.state.value,
                snapshot.weather.temperature_c,
                snapshot.weather.wind_speed_kmh,
                snapshot.marine.wave_height_m,
                snapshot.moon_phase.label,
            )
        except Exception as exc:
            logging.exception("Unexpected error: %s", exc)
            print("FATAL ERROR", flush=True)

        if args.once:
            return
        time.sleep(max(args.refresh, 1.0))


def signal_handler(signum, frame):
    logging.info("Received signal %s, shutting down", signum)
    raise KeyboardInterrupt()


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_file, args.verbose)
    marine_url, weather_url, timeout = load_config(args.timeout)

    aggregator = build_aggregator(marine_url, weather_url, timeout)
    aggregator.add_listener(on_snapshot)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        conditions_loop(aggregator, args)
    except KeyboardInterrupt:
        logging.info("Stopping display")
    finally:
        aggregator.close()
        logging.info("Aggregator closed")


if __name__ == "__main__":
    main()
