"""The fixed deployment location and its external tide-table links."""
from dataclasses import dataclass

from conditions_data import Coordinate

LOCATION_NAME = "Ilha de Boipeba, Bahia"
BOIPEBA = Coordinate(latitude=-13.6197, longitude=-38.9347)
TIMEZONE = "America/Bahia"


@dataclass(frozen=True)
class TideLink:
    title: str
    url: str
    source: str


TIDE_LINKS = (
    TideLink(
        title="Tide table",
        url="https://tabuademares.com/br/bahia/ilha-de-boipeba",
        source="tabuademares.com",
    ),
    TideLink(
        title="Weather and tides widget",
        url="https://widgets.tuempo.net/en/weather/ilha-de-boipeba/",
        source="tuempo.net",
    ),
)
