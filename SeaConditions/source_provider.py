"""Remote source abstraction - one adapter per forecast API."""
from abc import ABC, abstractmethod
from typing import Any

from conditions_data import Coordinate


class SourceError(Exception):
    """A hard error that makes a whole source unusable for one refresh."""
    pass


class NetworkError(SourceError):
    """Transport failure, timeout or a non-2xx HTTP status."""
    pass


class MalformedResponseError(SourceError):
    """Response arrived but is not the expected JSON shape."""
    pass


class RemoteSourceBase(ABC):
    """Abstract base class for the remote forecast sources."""

    name = "source"

    @abstractmethod
    def fetch(self, coordinate: Coordinate) -> Any:
        """
        Fetch today's data for a coordinate.

        Args:
            coordinate: Point to fetch data for

        Returns:
            The source's validated payload

        Raises:
            NetworkError: If the request could not be completed
            MalformedResponseError: If the response has the wrong shape
        """
        pass
