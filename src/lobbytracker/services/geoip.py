"""GeoIP lookups backed by a MaxMind City database."""

import logging
from dataclasses import dataclass

import geoip2.database
from geoip2.errors import AddressNotFoundError

from lobbytracker.errors import EnrichmentFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoLocation:
    continent: str
    area: str
    city: str


class GeoIPLocator:
    """Resolves server addresses to continent, country and city.

    The underlying reader memory-maps the database, so lookups are
    cheap enough to run inline in the collector.
    """

    def __init__(self, reader: geoip2.database.Reader) -> None:
        self._reader = reader

    @classmethod
    def open(cls, path: str) -> "GeoIPLocator":
        """Open a GeoLite2/GeoIP2 City database file."""
        reader = geoip2.database.Reader(path)
        logger.info("Opened GeoIP database %s", path)
        return cls(reader)

    def lookup(self, ip: str) -> GeoLocation:
        """Return the location of ``ip``.

        Raises EnrichmentFailure when the address is malformed, absent
        from the database, or resolves without all three geo fields.
        """
        try:
            city = self._reader.city(ip)
        except AddressNotFoundError as exc:
            raise EnrichmentFailure(f"address {ip!r} not found in GeoIP database") from exc
        except ValueError as exc:
            raise EnrichmentFailure(f"address {ip!r} is not a valid IP address") from exc

        location = GeoLocation(
            continent=city.continent.code or "",
            area=city.country.iso_code or "",
            city=city.city.names.get("en") or "",
        )
        missing = [name for name, value in vars(location).items() if not value]
        if missing:
            raise EnrichmentFailure(
                f"address {ip!r} has no {', '.join(missing)} in GeoIP database"
            )
        return location

    def close(self) -> None:
        self._reader.close()
