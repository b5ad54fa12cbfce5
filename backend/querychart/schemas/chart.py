from typing import Any, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

CHART_TYPES = ("bar", "line", "pie", "scatter", "radar")

class ChartConfiguration(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    chart_type: Literal["bar", "line", "pie", "scatter", "radar"] = Field(alias="chartType")
    x_label: str = Field(alias="xLabel", min_length=1)
    y_label: str = Field(alias="yLabel", min_length=1)
    labels: List[Any] = []
    values: List[Any] = []
    title: str = ""
    insights: Optional[str] = None

    @field_validator("chart_type", mode="before")
    @classmethod
    def _normalize_type(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("title", mode="before")
    @classmethod
    def _none_title(cls, v):
        return "" if v is None else v

    @field_validator("labels", "values", mode="before")
    @classmethod
    def _none_series(cls, v):
        return [] if v is None else v
