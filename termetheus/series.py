"""Data structures for query results and plotted series."""
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Tuple

from pydantic import BaseModel, ConfigDict, Field

# (timestamp in seconds since epoch, value as sent by the backend)
Sample = Tuple[float, str]


class Series(BaseModel):
    """One labelled time-series of a range query."""
    model_config = ConfigDict(frozen=True)

    metric: Dict[str, str] = Field(default_factory=dict)
    values: List[Sample] = Field(default_factory=list)


class QueryResult(BaseModel):
    """The `data` object of a query_range response."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    result_type: str = Field(alias="resultType")
    result: List[Series] = Field(default_factory=list)


class QueryResponse(BaseModel):
    """Top-level query_range response envelope."""
    status: str
    data: QueryResult


class Point(NamedTuple):
    """A sample projected to plot coordinates."""
    x: float
    y: float


@dataclass(frozen=True)
class AxisBounds:
    """Scale and tick positions of one chart axis."""
    min: float
    max: float
    mid: float

    def as_limits(self) -> Tuple[float, float]:
        return self.min, self.max


@dataclass
class Dataset:
    """A series ready to be drawn."""
    legend: str
    color: str
    points: List[Point] = field(default_factory=list)

    @property
    def xs(self) -> List[float]:
        return [p.x for p in self.points]

    @property
    def ys(self) -> List[float]:
        return [p.y for p in self.points]
