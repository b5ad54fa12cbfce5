from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

class QueryRequest(BaseModel):
    prompt: str
    intent: Optional[str] = None

class QueryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sql: str
    data: List[Dict[str, Any]]
    graph_types: List[str] = Field(alias="graphTypes")
    chart_config: Dict[str, Any] = Field(alias="chartConfig")
    chart_options: Dict[str, Any] = Field(alias="chartOptions")

class ErrorResponse(BaseModel):
    error: str
