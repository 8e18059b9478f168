# dashboard models: per-practice payload, metric rows, and derived view models
# field aliases mirror the workflow json (prescriberData, dailyData, patientsHelped)

from typing import Literal, Optional
from pydantic import BaseModel, Field, model_validator


class MetricCounters(BaseModel):
    """the four counters shared by prescriber and daily rows"""
    measurements: int = Field(0, ge=0)
    portal_views: int = Field(0, ge=0, alias="portalViews")
    high_sx: int = Field(0, ge=0, alias="highSx")
    orders: int = Field(0, ge=0)

    model_config = {"populate_by_name": True, "frozen": True}


class PrescriberMetrics(MetricCounters):
    """one prescriber's activity over the report period"""
    name: str
    short_name: str = Field("", alias="shortName")

    @model_validator(mode="before")
    @classmethod
    def _default_short_name(cls, data):
        # charts label bars by short name, fall back to the full name
        if isinstance(data, dict) and not (data.get("shortName") or data.get("short_name")):
            data = {**data, "shortName": data.get("name", "")}
        return data


class DailyMetrics(MetricCounters):
    """one calendar day of activity, used for trend charts"""
    name: str


class DashboardPayload(BaseModel):
    """the workflow's dashboard response for a single practice"""
    practice_name: str = Field("", alias="practiceName")
    date_range: str = Field("", alias="dateRange")
    prescriber_data: list[PrescriberMetrics] = Field(default_factory=list, alias="prescriberData")
    daily_data: list[DailyMetrics] = Field(default_factory=list, alias="dailyData")
    patients_helped: int = Field(..., alias="patientsHelped")

    model_config = {"populate_by_name": True, "frozen": True}


class SortState(BaseModel):
    """active sort column and direction for a table"""
    key: str
    direction: Literal["ascending", "descending"] = "ascending"

    model_config = {"frozen": True}


class MetricTotals(BaseModel):
    measurements: int = 0
    portal_views: int = Field(0, alias="portalViews")
    high_sx: int = Field(0, alias="highSx")
    orders: int = 0

    model_config = {"populate_by_name": True}


class PrescriberSummary(BaseModel):
    """prescriber table after sorting, with totals and the unknown bucket"""
    rows: list[PrescriberMetrics] = Field(default_factory=list)
    totals: MetricTotals = Field(default_factory=MetricTotals)
    unknown_orders: int = Field(0, alias="unknownOrders")
    show_unknown_row: bool = Field(False, alias="showUnknownRow")
    total_orders: int = Field(0, alias="totalOrders")
    data_warning: Optional[str] = Field(None, alias="dataWarning")
    sort: SortState

    model_config = {"populate_by_name": True}


class DashboardView(BaseModel):
    """everything the dashboard page renders for one practice"""
    practice_id: str = Field(..., alias="practiceId")
    practice_name: str = Field("", alias="practiceName")
    date_range: str = Field("", alias="dateRange")
    patients_helped: int = Field(0, alias="patientsHelped")
    prescribers: PrescriberSummary
    daily_data: list[DailyMetrics] = Field(default_factory=list, alias="dailyData")
    daily_totals: MetricTotals = Field(default_factory=MetricTotals, alias="dailyTotals")

    model_config = {"populate_by_name": True}
