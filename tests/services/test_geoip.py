"""Tests for lobbytracker.services.geoip."""

from types import SimpleNamespace

import pytest
from geoip2.errors import AddressNotFoundError

from lobbytracker.errors import EnrichmentFailure
from lobbytracker.services.geoip import GeoIPLocator, GeoLocation


def _city(continent="EU", country="DE", names=None):
    return SimpleNamespace(
        continent=SimpleNamespace(code=continent),
        country=SimpleNamespace(iso_code=country),
        city=SimpleNamespace(names={"en": "Frankfurt am Main"} if names is None else names),
    )


class StubReader:
    """Mimics geoip2.database.Reader.city() for a fixed table."""

    def __init__(self, table):
        self.table = table
        self.closed = False

    def city(self, ip):
        if ip not in self.table:
            if not ip[0].isdigit():
                raise ValueError(f"{ip!r} does not appear to be an IPv4 or IPv6 address")
            raise AddressNotFoundError(f"The address {ip} is not in the database.")
        return self.table[ip]

    def close(self):
        self.closed = True


class TestLookup:
    def test_maps_continent_country_and_english_city(self):
        locator = GeoIPLocator(StubReader({"198.51.100.1": _city()}))
        assert locator.lookup("198.51.100.1") == GeoLocation(
            continent="EU", area="DE", city="Frankfurt am Main"
        )

    def test_missing_city_name_raises(self):
        locator = GeoIPLocator(StubReader({"198.51.100.1": _city(names={"de": "Frankfurt"})}))
        with pytest.raises(EnrichmentFailure, match="no city"):
            locator.lookup("198.51.100.1")

    def test_missing_country_raises(self):
        locator = GeoIPLocator(StubReader({"198.51.100.1": _city(country=None)}))
        with pytest.raises(EnrichmentFailure, match="no area"):
            locator.lookup("198.51.100.1")

    def test_missing_continent_raises(self):
        locator = GeoIPLocator(StubReader({"198.51.100.1": _city(continent=None)}))
        with pytest.raises(EnrichmentFailure, match="no continent"):
            locator.lookup("198.51.100.1")

    def test_every_missing_field_is_reported(self):
        locator = GeoIPLocator(StubReader({"198.51.100.1": _city(country=None, names={})}))
        with pytest.raises(EnrichmentFailure, match="no area, city"):
            locator.lookup("198.51.100.1")

    def test_unknown_address_raises_enrichment_failure(self):
        locator = GeoIPLocator(StubReader({}))
        with pytest.raises(EnrichmentFailure, match="not found"):
            locator.lookup("10.0.0.1")

    def test_malformed_address_raises_enrichment_failure(self):
        locator = GeoIPLocator(StubReader({}))
        with pytest.raises(EnrichmentFailure, match="not a valid IP"):
            locator.lookup("not-an-ip")


def test_close_closes_reader():
    reader = StubReader({})
    GeoIPLocator(reader).close()
    assert reader.closed
