from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


class ColumnInfo(NamedTuple):
    name: str
    data_type: str


class FieldInfo(NamedTuple):
    name: str
    type: str


# table name -> ordered columns, in catalog order
SchemaDescriptor = Dict[str, List[ColumnInfo]]


@dataclass
class QueryResult:
    rows: List[Dict[str, Any]] = field(default_factory=list)
    fields: List[FieldInfo] = field(default_factory=list)

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def sample_row(self) -> Dict[str, Any]:
        return self.rows[0] if self.rows else {}


class ChartType(str, enum.Enum):
    LINE = "LineChart"
    BAR = "BarChart"
    PIE = "PieChart"
    AREA = "AreaChart"


class ChartDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    chart_type: ChartType = Field(..., alias="chartType")
    data_key: str = Field(..., alias="dataKey", min_length=1)
    value_keys: List[str] = Field(..., alias="valueKeys", min_length=1)
    title: str


class QueryRequest(BaseModel):
    question: Optional[str] = None


class ExecuteRequest(BaseModel):
    sql: Optional[str] = None


class QueryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    data: List[Dict[str, Any]]
    chart_config: ChartDescriptor = Field(..., alias="chartConfig")
    row_count: int = Field(..., alias="rowCount")


class FieldDescriptor(BaseModel):
    name: str
    type: str


class ExecuteResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    data: List[Dict[str, Any]]
    row_count: int = Field(..., alias="rowCount")
    fields: List[FieldDescriptor]


class InsightResponse(BaseModel):
    data: List[Dict[str, Any]]


class ErrorResponse(BaseModel):
    error: str


__all__ = [
    "ColumnInfo",
    "FieldInfo",
    "SchemaDescriptor",
    "QueryResult",
    "ChartType",
    "ChartDescriptor",
    "QueryRequest",
    "ExecuteRequest",
    "QueryResponse",
    "FieldDescriptor",
    "ExecuteResponse",
    "InsightResponse",
    "ErrorResponse",
]
