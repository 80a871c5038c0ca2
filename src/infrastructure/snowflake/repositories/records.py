"""
Repository for the operations records.

This module implements the repository pattern for read-only record access.
The repository:
1. Expresses each use case as equality / id-in-set predicates on a document store
2. Works around the store's limit on id-in-set predicates by sharding
3. Validates every document into a domain entity, failing loudly on bad data

The service layer never sees documents or predicates; it asks for locations,
bookings and so on in domain terms.
"""

import logging
from dataclasses import dataclass
from itertools import product
from typing import Any, Optional, Protocol, Sequence

from src.core.insights.errors import (
    LocationNotFoundError,
    MalformedRecordError,
    PricingNotFoundError,
)
from src.core.insights.models import Booking, Lesson, Location, Pricing, Program, Season
from src.core.insights.service import BookingFilter

from .schemas import parse_record


logger = logging.getLogger(__name__)

# Document stores reject id-in-set predicates with more values than this
MAX_IN_FILTER_VALUES = 10

PRICING_DOCUMENT_ID = "default"


@dataclass(frozen=True)
class Document:
    """A stored document: its id plus the raw JSON body."""
    id: str
    data: dict[str, Any]


@dataclass(frozen=True)
class FieldFilter:
    """
    One predicate on a document field.

    `op` is "==" (value is a scalar) or "in" (value is a list of at most
    MAX_IN_FILTER_VALUES scalars).
    """
    field: str
    op: str
    value: Any

    def __post_init__(self) -> None:
        if self.op not in ("==", "in"):
            raise ValueError(f"Unsupported filter operator: {self.op}")
        if self.op == "in" and len(self.value) > MAX_IN_FILTER_VALUES:
            raise ValueError(
                f"'in' filters take at most {MAX_IN_FILTER_VALUES} values, got {len(self.value)}"
            )


class DocumentStore(Protocol):
    """
    Protocol for document stores.

    Using a protocol means tests can use the in-memory store without
    importing snowflake-connector-python. Results come back ordered by
    document id. `limit`, when given, keeps only the first that many.
    """

    def query(
        self,
        collection: str,
        filters: Sequence[FieldFilter] = (),
        limit: Optional[int] = None,
    ) -> list[Document]: ...

    def get(self, collection: str, document_id: str) -> Optional[Document]: ...

    def ping(self) -> bool: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    private_key_base64: Optional[str] = None
    database: str = "SWIM_OPERATIONS"
    schema: str = "RECORDS"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


def _chunks(values: Sequence[str]) -> list[list[str]]:
    unique = list(dict.fromkeys(values))
    return [
        unique[i:i + MAX_IN_FILTER_VALUES]
        for i in range(0, len(unique), MAX_IN_FILTER_VALUES)
    ]


class RecordRepository:
    """
    Read-only repository over the operations collections.

    Each method corresponds to a read the reporting service needs. Lists
    come back empty rather than failing when nothing matches; single-record
    lookups raise a NotFoundError subclass.
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def list_locations(
        self,
        include_inactive: bool = False,
        skip_malformed: bool = False,
    ) -> list[Location]:
        """
        All locations, or only active ones (a missing flag counts as active).

        With `skip_malformed`, documents that fail validation are logged and
        left out instead of failing the whole list.
        """
        locations = self._parse_all("locations", self._store.query("locations"), skip_malformed)
        if include_inactive:
            return locations
        return [location for location in locations if location.is_active]

    def get_location(self, location_id: str) -> Location:
        document = self._store.get("locations", location_id)
        if document is None:
            raise LocationNotFoundError(location_id)
        return parse_record("locations", document.id, document.data)

    def list_seasons(self, active_only: bool = True) -> list[Season]:
        filters = [FieldFilter("isActive", "==", True)] if active_only else []
        return self._parse_all("seasons", self._store.query("seasons", filters))

    def list_programs(
        self,
        location_id: Optional[str] = None,
        season_id: Optional[str] = None,
    ) -> list[Program]:
        documents = self._store.query("programs", self._scope_filters(location_id, season_id))
        return self._parse_all("programs", documents)

    def list_bookings(
        self,
        booking_filter: Optional[BookingFilter] = None,
        skip_malformed: bool = False,
    ) -> list[Booking]:
        """
        Bookings matching every non-empty id list in the filter.

        Id lists longer than the store allows are split across several
        queries and the results merged, so no id is ever dropped.
        `skip_malformed` works as in `list_locations`.
        """
        booking_filter = booking_filter or BookingFilter()
        documents = self._query_in(
            "bookings",
            {
                "locationId": booking_filter.location_ids,
                "seasonId": booking_filter.season_ids,
            },
        )
        return self._parse_all("bookings", documents, skip_malformed)

    def list_lessons(
        self,
        location_id: Optional[str] = None,
        season_id: Optional[str] = None,
    ) -> list[Lesson]:
        documents = self._store.query("lessons", self._scope_filters(location_id, season_id))
        return self._parse_all("lessons", documents)

    def get_pricing(self) -> Pricing:
        document = self._store.get("pricing", PRICING_DOCUMENT_ID)
        if document is None:
            raise PricingNotFoundError(PRICING_DOCUMENT_ID)
        return parse_record("pricing", document.id, document.data)

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    def _scope_filters(
        self,
        location_id: Optional[str],
        season_id: Optional[str],
    ) -> list[FieldFilter]:
        filters = []
        if location_id:
            filters.append(FieldFilter("locationId", "==", location_id))
        if season_id:
            filters.append(FieldFilter("seasonId", "==", season_id))
        return filters

    def _query_in(self, collection: str, id_sets: dict[str, Sequence[str]]) -> list[Document]:
        """
        Run one query per combination of id chunks and merge the results.

        Fields with empty id lists are left unfiltered.
        """
        active = {field: _chunks(ids) for field, ids in id_sets.items() if ids}
        if not active:
            return self._store.query(collection)

        fields = list(active)
        merged: dict[str, Document] = {}
        query_count = 0

        for combination in product(*(active[field] for field in fields)):
            filters = [
                FieldFilter(field, "in", chunk)
                for field, chunk in zip(fields, combination)
            ]
            for document in self._store.query(collection, filters):
                merged.setdefault(document.id, document)
            query_count += 1

        if query_count > 1:
            logger.debug(
                "Sharded id-in-set query",
                extra={"collection": collection, "queries": query_count}
            )

        return [merged[document_id] for document_id in sorted(merged)]

    def _parse_all(
        self,
        collection: str,
        documents: Sequence[Document],
        skip_malformed: bool = False,
    ) -> list:
        if not skip_malformed:
            return [parse_record(collection, document.id, document.data) for document in documents]

        records = []
        for document in documents:
            try:
                records.append(parse_record(collection, document.id, document.data))
            except MalformedRecordError as e:
                logger.warning(
                    "Skipping malformed record",
                    extra={
                        "collection": e.collection,
                        "document_id": e.document_id,
                        "reason": e.reason,
                    }
                )
        return records
