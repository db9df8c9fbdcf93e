"""
List View Processor

Pure pipeline producing one page of a record list:

    filter (case-insensitive substring over the search fields)
      -> sort (string fields case-insensitive, date fields by epoch millis)
      -> paginate (fixed page size)

The view is recomputed from the full record set every time; nothing here
keeps state between calls. ``ListViewState`` carries the operator's
query/sort/page and encodes how they interact: a new query goes back to
page 1, a new sort keeps the page.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from editorial.constants import CollectionConfig, FieldKind, SortField
from editorial.exceptions import ValidationError


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortState:
    key: str
    direction: SortDirection = SortDirection.ASC

    def request(self, key: str) -> SortState:
        """Same key flips the direction, a new key starts ascending."""
        if key == self.key:
            flipped = SortDirection.DESC if self.direction == SortDirection.ASC else SortDirection.ASC
            return SortState(key, flipped)
        return SortState(key, SortDirection.ASC)


@dataclass(frozen=True)
class ListViewState:
    sort: SortState
    query: str = ""
    page: int = 1

    @classmethod
    def for_collection(cls, config: CollectionConfig) -> ListViewState:
        key, direction = config.default_sort
        return cls(sort=SortState(key, SortDirection(direction)))

    def set_query(self, query: str) -> ListViewState:
        return replace(self, query=query, page=1)

    def request_sort(self, key: str) -> ListViewState:
        return replace(self, sort=self.sort.request(key))

    def go_to(self, page: int) -> ListViewState:
        return replace(self, page=page)


@dataclass
class Page:
    items: list[Any]
    page: int
    page_size: int
    total: int
    total_pages: int

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


@dataclass
class ListView:
    page: Page
    state: ListViewState


_MISSING = object()


def resolve_field(record: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings/attributes; None when any step is missing."""
    value = record
    for part in path.split("."):
        if isinstance(value, dict):
            value = value.get(part, _MISSING)
        else:
            value = getattr(value, part, _MISSING)
        if value is _MISSING or value is None:
            return None
    return value


def to_epoch_millis(value: Any) -> int:
    """Epoch milliseconds for a timestamp-like value; 0 when missing or unparseable."""
    if value is None or value == "":
        return 0
    if isinstance(value, dict) and "seconds" in value:
        return int(value["seconds"]) * 1000
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return 0
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    return 0


def filter_records(records: Iterable[Any], query: str, fields: Sequence[str]) -> list[Any]:
    needle = (query or "").lower()
    if not needle:
        return list(records)
    return [
        record
        for record in records
        if any(needle in str(resolve_field(record, path) or "").lower() for path in fields)
    ]


def sort_key_for(sort_field: SortField):
    if sort_field.kind == FieldKind.DATE:
        return lambda record: to_epoch_millis(resolve_field(record, sort_field.path))
    return lambda record: str(resolve_field(record, sort_field.path) or "").lower()


def sort_records(
    records: Iterable[Any], sort: SortState, sort_fields: dict[str, SortField]
) -> list[Any]:
    if sort.key not in sort_fields:
        raise ValidationError(f"Cannot sort by '{sort.key}'", field="sort")
    # sorted() is stable; ties keep their incoming order in either direction
    return sorted(records, key=sort_key_for(sort_fields[sort.key]), reverse=sort.direction == SortDirection.DESC)


def paginate(records: Sequence[Any], page: int, page_size: int) -> Page:
    if page_size < 1:
        raise ValidationError("Page size must be at least 1", field="page_size")
    if page < 1:
        raise ValidationError("Page must be at least 1", field="page")
    total = len(records)
    start = (page - 1) * page_size
    return Page(
        items=list(records[start : start + page_size]),
        page=page,
        page_size=page_size,
        total=total,
        total_pages=math.ceil(total / page_size),
    )


def process_list_view(
    records: Iterable[Any], state: ListViewState, config: CollectionConfig, page_size: int
) -> ListView:
    filtered = filter_records(records, state.query, config.search_fields)
    ordered = sort_records(filtered, state.sort, config.sort_fields)
    return ListView(page=paginate(ordered, state.page, page_size), state=state)
