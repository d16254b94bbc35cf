import datetime as dt
from typing import Dict, Optional
from pydantic import BaseModel, ConfigDict

DEFAULT_CURRENCY = "USD"


class CostSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    currency: str = DEFAULT_CURRENCY
    current_month: float = 0.0
    previous_month: float = 0.0
    trailing_3_months: float = 0.0
    year_to_date: float = 0.0
    retrieved_at: dt.datetime

    def amounts(self) -> Dict[str, float]:
        return {
            "current_month": self.current_month,
            "previous_month": self.previous_month,
            "trailing_3_months": self.trailing_3_months,
            "year_to_date": self.year_to_date,
        }


class StatusView(BaseModel):
    state: str
    level: str
    text: str
    tooltip: str
    summary: Optional[CostSummary] = None
    error: Optional[str] = None
    project_id: Optional[str] = None
