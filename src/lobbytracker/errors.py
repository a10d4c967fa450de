"""Error taxonomy for collection, enrichment and storage failures."""


class LobbyTrackerError(Exception):
    """Base class for every error raised by the tracker core."""


class UpstreamUnavailable(LobbyTrackerError):
    """The lobby listing provider could not be reached or answered badly."""


class EnrichmentFailure(LobbyTrackerError):
    """A server address could not be resolved to a geolocation."""


class PersistenceFailure(LobbyTrackerError):
    """A read, write or index operation on the snapshot store failed."""


class InvalidResult(LobbyTrackerError):
    """An enrichment pass produced no record where one was expected."""


class ServerNotFound(LobbyTrackerError):
    """The lobby has no server with the requested row id."""
