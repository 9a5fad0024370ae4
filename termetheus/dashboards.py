"""
Static dashboard definitions loaded from YAML.

Public helpers for tools that read dashboard files: `load_dashboard` and
`parse_dashboard`. The chart viewer itself renders a single query and does
not read dashboards.
"""
import os
from typing import Annotated, List, Literal, Union

import yaml
from pydantic import BaseModel, Field, field_validator

WIDGET_KINDS = ("timeseries", "stat")


class TimeSeriesWidget(BaseModel):
    """A line chart of a range query."""
    kind: Literal["timeseries"] = "timeseries"
    name: str
    query: str
    source: str


class StatWidget(BaseModel):
    """A single value of an instant query."""
    kind: Literal["stat"] = "stat"
    name: str
    query: str
    source: str


Widget = Annotated[Union[TimeSeriesWidget, StatWidget], Field(discriminator="kind")]


def _tag_widget(raw):
    """Turn `{stat: {...}}` into `{kind: "stat", ...}`; tagged input passes through."""
    if not isinstance(raw, dict) or "kind" in raw:
        return raw

    if len(raw) == 1:
        kind, body = next(iter(raw.items()))
        if kind in WIDGET_KINDS and isinstance(body, dict):
            return {"kind": kind, **body}

    raise ValueError(
        f"Widget must be one of {list(WIDGET_KINDS)} wrapping name/query/source, got {raw!r}"
    )


class Row(BaseModel):
    """A horizontal row of widgets."""
    widgets: List[Widget] = Field(default_factory=list)

    @field_validator('widgets', mode='before')
    @classmethod
    def tag_widgets(cls, v):
        if not isinstance(v, list):
            return v
        return [_tag_widget(item) for item in v]


class Dashboard(BaseModel):
    """A named dashboard made of rows."""
    name: str
    rows: List[Row] = Field(default_factory=list)

    def widgets(self) -> List[Widget]:
        return [widget for row in self.rows for widget in row.widgets]


def parse_dashboard(text: str) -> Dashboard:
    """Parse and validate a dashboard definition from YAML text."""
    raw = yaml.safe_load(text)
    if not isinstance(raw, dict):
        raise ValueError("Dashboard definition must be a mapping")

    try:
        return Dashboard(**raw)
    except Exception as e:
        raise ValueError(f"Dashboard validation failed: {e}")


def load_dashboard(path: str) -> Dashboard:
    """Load a dashboard definition from a YAML file."""
    if not os.path.exists(path):
        raise FileNotFoundError(f"Dashboard file not found: {path}")

    with open(path, 'r') as f:
        return parse_dashboard(f.read())
