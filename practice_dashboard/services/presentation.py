# presentation: table and chart descriptions shared by every page variant
# a page is a list of configs, not a copy of the markup

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from fastapi.templating import Jinja2Templates

from practice_dashboard.models.dashboard import SortState
from practice_dashboard.services.derivation import ASCENDING, toggle_sort

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).parent.parent / "templates"))

RETRY_SUGGESTION = (
    "Please check your connection or try again later. "
    "If the problem persists, contact support."
)
UNKNOWN_FOOTNOTE = (
    "* Orders placed with SpecCheck typically appear per unique prescriber. "
    "Unknown prescriber values are counts for patient measurements not assigned "
    "a provider and/or orders not matched to a patient."
)


@dataclass(frozen=True)
class Column:
    key: str
    header: str
    align: str = "left"
    sortable: bool = True


@dataclass(frozen=True)
class TableConfig:
    title: str
    columns: tuple[Column, ...]
    default_sort: SortState

    @property
    def sortable_keys(self) -> frozenset[str]:
        return frozenset(c.key for c in self.columns if c.sortable)


@dataclass(frozen=True)
class Series:
    key: str
    label: str
    color: str


@dataclass(frozen=True)
class ChartConfig:
    title: str
    style: str  # "bar" or "area"
    x_key: str
    series: tuple[Series, ...]
    height: float = 3.0


@dataclass
class HeaderLink:
    """a rendered column header: where clicking it goes and what arrow it shows"""
    column: Column
    next_sort: Optional[SortState] = None
    indicator: str = ""
    active: bool = False
    query: dict = field(default_factory=dict)


METRIC_COLUMNS = (
    Column("measurements", "Measures", "center"),
    Column("portal_views", "Portal Views", "center"),
    Column("high_sx", "High Sx", "center"),
    Column("orders", "Orders", "center"),
)

PRESCRIBER_TABLE = TableConfig(
    title="Prescriber Performance Summary",
    columns=(Column("name", "Prescriber"),) + METRIC_COLUMNS,
    default_sort=SortState(key="high_sx", direction="descending"),
)

DAILY_TABLE = TableConfig(
    title="Daily Activity",
    columns=(Column("name", "Day", sortable=False),)
    + tuple(Column(c.key, c.header, c.align, sortable=False) for c in METRIC_COLUMNS),
    default_sort=SortState(key="name"),
)

CUSTOMER_TABLE = TableConfig(
    title="Neurolens Weekly Performance Summaries",
    columns=(
        Column("name", "Customer Name"),
        Column("tam", "TAM"),
        Column("is_top12_focus", "Top 12 Focus", "center"),
        Column("actions", "Send Report to TAM", sortable=False),
    ),
    default_sort=SortState(key="name"),
)

HIGH_SX_CHART = ChartConfig(
    title="Highly Symptomatic Patients by Provider",
    style="bar",
    x_key="short_name",
    series=(Series("high_sx", "Highly Symptomatic", "#60a5fa"),),
    height=2.5,
)

DAILY_TREND_CHART = ChartConfig(
    title="Daily Activity Trend",
    style="area",
    x_key="name",
    series=(
        Series("measurements", "Measurements", "#8884d8"),
        Series("portal_views", "Portal Views", "#82ca9d"),
        Series("high_sx", "Highly Symptomatic", "#ffc658"),
        Series("orders", "Orders", "#ff8042"),
    ),
)


def parse_sort(config: TableConfig, key: Optional[str], direction: Optional[str]) -> SortState:
    """sort state from query params, falling back to the table default.
    raises ValueError for a column the table cannot sort by."""
    if not key:
        return config.default_sort
    if key not in config.sortable_keys:
        raise ValueError(f"Unknown sort column: {key}")
    if direction not in (None, "", "ascending", "descending"):
        raise ValueError(f"Unknown sort direction: {direction}")
    return SortState(key=key, direction=direction or ASCENDING)


def header_links(config: TableConfig, current: SortState, extra: Optional[dict] = None) -> list[HeaderLink]:
    """one entry per column with the sort state a click would switch to"""
    links = []
    for column in config.columns:
        if not column.sortable:
            links.append(HeaderLink(column=column))
            continue
        next_sort = toggle_sort(current, column.key)
        active = current.key == column.key
        indicator = ""
        if active:
            indicator = " ▲" if current.direction == ASCENDING else " ▼"
        query = dict(extra or {})
        query.update({"sort": next_sort.key, "dir": next_sort.direction})
        links.append(HeaderLink(
            column=column, next_sort=next_sort, indicator=indicator, active=active, query=query,
        ))
    return links
