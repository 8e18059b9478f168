# derivation: filtering, sorting, totals, and unknown-order inference
# pure functions over the fetched rows; inputs are never mutated

import logging
from numbers import Number
from typing import Iterable, Optional, Sequence, TypeVar

from practice_dashboard.models.customer import Customer, CustomerListView
from practice_dashboard.models.dashboard import (
    DashboardPayload,
    MetricCounters,
    MetricTotals,
    PrescriberSummary,
    SortState,
)

logger = logging.getLogger(__name__)

Row = TypeVar("Row")

ASCENDING = "ascending"
DESCENDING = "descending"

CUSTOMER_SEARCH_FIELDS = ("name", "tam")
CUSTOMER_BOOLEAN_KEYS = frozenset({"is_top12_focus"})
COUNTER_FIELDS = ("measurements", "portal_views", "high_sx", "orders")


def filter_rows(rows: Sequence[Row], term: Optional[str], fields: Iterable[str] = CUSTOMER_SEARCH_FIELDS) -> list[Row]:
    """case-insensitive substring match on any of the given fields.
    an empty term returns every row."""
    needle = (term or "").lower()
    if not needle:
        return list(rows)

    fields = tuple(fields)
    matched = []
    for row in rows:
        for field in fields:
            value = getattr(row, field, None)
            if value and needle in str(value).lower():
                matched.append(row)
                break
    return matched


def _sort_value(value):
    """coerce a cell for comparison; missing values compare as empty strings"""
    if value is None:
        value = ""
    if isinstance(value, Number) and not isinstance(value, bool):
        return (0, value)
    return (1, str(value))


def sort_rows(
    rows: Sequence[Row],
    sort: SortState,
    boolean_keys: Iterable[str] = (),
    sentinel: Optional[str] = None,
) -> list[Row]:
    """stable sort by one column.

    boolean columns put True first when ascending and False first when
    descending. rows named ``sentinel`` always end up last.
    """
    descending = sort.direction == DESCENDING

    if sort.key in set(boolean_keys):
        ordered = sorted(rows, key=lambda r: not bool(getattr(r, sort.key, False)), reverse=descending)
    else:
        ordered = sorted(rows, key=lambda r: _sort_value(getattr(r, sort.key, None)), reverse=descending)

    if sentinel is None:
        return ordered

    # sorted() is stable, so this keeps the primary order inside both groups
    return sorted(ordered, key=lambda r: getattr(r, "name", None) == sentinel)


def toggle_sort(current: SortState, key: str) -> SortState:
    """clicking the active ascending column flips it, any other click sorts ascending"""
    if current.key == key and current.direction == ASCENDING:
        return SortState(key=key, direction=DESCENDING)
    return SortState(key=key, direction=ASCENDING)


def compute_totals(rows: Iterable[MetricCounters]) -> MetricTotals:
    """sum every counter across all rows"""
    sums = dict.fromkeys(COUNTER_FIELDS, 0)
    for row in rows:
        for field in COUNTER_FIELDS:
            sums[field] += getattr(row, field)
    return MetricTotals(**sums)


def compute_unknown_orders(patients_helped: int, rows: Iterable[MetricCounters]) -> int:
    """orders not attributable to a known prescriber. never clamped: a negative
    result means the workflow's totals disagree with its rows."""
    return patients_helped - sum(row.orders for row in rows)


def summarize_prescribers(
    payload: DashboardPayload,
    sort: SortState,
    sentinel: Optional[str] = None,
) -> PrescriberSummary:
    """sorted prescriber rows plus totals and the unknown bucket"""
    rows = payload.prescriber_data
    unknown = compute_unknown_orders(payload.patients_helped, rows)

    warning = None
    if unknown < 0:
        warning = (
            f"Data mismatch: prescriber orders exceed patients helped by {-unknown} "
            f"(unknown orders = {unknown})."
        )
        logger.warning(
            f"Negative unknown order count for {payload.practice_name!r}: "
            f"patientsHelped={payload.patients_helped}, unknown={unknown}"
        )

    return PrescriberSummary(
        rows=sort_rows(rows, sort, sentinel=sentinel),
        totals=compute_totals(rows),
        unknownOrders=unknown,
        showUnknownRow=unknown > 0,
        totalOrders=payload.patients_helped,
        dataWarning=warning,
        sort=sort,
    )


def build_customer_view(customers: Sequence[Customer], search: Optional[str], sort: SortState) -> CustomerListView:
    """filter then sort the customer list for display"""
    matched = filter_rows(customers, search, CUSTOMER_SEARCH_FIELDS)
    return CustomerListView(
        customers=sort_rows(matched, sort, boolean_keys=CUSTOMER_BOOLEAN_KEYS),
        totalCount=len(customers),
        search=search or "",
        sort=sort,
    )
