"""
Errors raised by the insights layer.

All of them are conditions a caller can recover from (show a 404, skip a
location, pick another season). None are retried here; transient store
failures surface as whatever the store adapter raises.
"""


class InsightsError(Exception):
    """Base class for reporting errors."""
    pass


class NotFoundError(InsightsError):
    """A single-record lookup found nothing."""

    kind = "record"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"{self.kind.capitalize()} {identifier} not found")


class LocationNotFoundError(NotFoundError):
    kind = "location"


class SeasonNotFoundError(NotFoundError):
    kind = "season"


class PricingNotFoundError(NotFoundError):
    kind = "pricing"


class NoActiveSeasonError(InsightsError):
    """A snapshot was requested without a season and none is active."""

    def __init__(self) -> None:
        super().__init__("No active seasons found")


class MalformedRecordError(InsightsError):
    """A stored document is missing required fields or has the wrong shape."""

    def __init__(self, collection: str, document_id: str, reason: str) -> None:
        self.collection = collection
        self.document_id = document_id
        self.reason = reason
        super().__init__(f"Malformed {collection} record {document_id}: {reason}")
