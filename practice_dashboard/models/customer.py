# customer models: practice records from the customer-list workflow
# isFocusAccount ("Yes"/"No") becomes the isTop12Focus boolean during normalisation

from typing import Optional
from pydantic import BaseModel, Field

from practice_dashboard.models.dashboard import SortState


class Customer(BaseModel):
    """a practice and its assigned account manager (tam)"""
    id: str
    name: Optional[str] = None
    tam: Optional[str] = None
    tam_phone: Optional[str] = Field(None, alias="tamPhone")
    tam_email: Optional[str] = Field(None, alias="tamEmail")
    is_top12_focus: bool = Field(False, alias="isTop12Focus")

    model_config = {"populate_by_name": True, "frozen": True}


class CustomerListView(BaseModel):
    """customer table after filtering and sorting"""
    customers: list[Customer] = Field(default_factory=list)
    total_count: int = Field(0, alias="totalCount")
    search: str = ""
    sort: SortState

    model_config = {"populate_by_name": True}
