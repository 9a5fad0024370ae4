"""Turn query results into datasets, legends and axis bounds."""
import math
from typing import Dict, Iterable, List, Tuple

import numpy as np

from termetheus.errors import EmptyDataError, ParseError
from termetheus.series import AxisBounds, Dataset, Point, QueryResult, Series

LEGEND_MAX_LENGTH = 50

# Colour names understood by plotext; "+" is the light variant.
PALETTE: Tuple[str, ...] = (
    "red",
    "green",
    "blue",
    "yellow",
    "magenta",
    "cyan",
    "red+",
    "green+",
    "blue+",
    "yellow+",
    "magenta+",
    "cyan+",
)


def axis_bounds(lo: float, hi: float) -> AxisBounds:
    """Bounds for a single axis; a flat axis is widened by one on each side."""
    if lo == hi:
        return AxisBounds(min=lo - 1.0, max=hi + 1.0, mid=lo)
    return AxisBounds(min=lo, max=hi, mid=lo + (hi - lo) / 2.0)


def compute_bounds(points: Iterable[Tuple[float, float]]) -> Tuple[AxisBounds, AxisBounds]:
    """
    Compute x and y axis bounds over a flat collection of points.

    Args:
        points: (x, y) pairs from every dataset on the chart

    Returns:
        Tuple of (x bounds, y bounds)

    Raises:
        EmptyDataError: if there are no points
        ParseError: if any coordinate is NaN or infinite
    """
    coords = np.asarray(list(points), dtype=float)
    if coords.size == 0:
        raise EmptyDataError("Cannot compute axis bounds without any points")
    coords = coords.reshape(-1, 2)

    if not np.isfinite(coords).all():
        raise ParseError("Non-finite coordinate in chart data")

    x_lo, y_lo = coords.min(axis=0)
    x_hi, y_hi = coords.max(axis=0)

    return (
        axis_bounds(float(x_lo), float(x_hi)),
        axis_bounds(float(y_lo), float(y_hi)),
    )


def format_legend(labels: Dict[str, str]) -> str:
    """Render a label set as {k="v", ...}."""
    body = ", ".join(f'{key}="{value}"' for key, value in labels.items())
    return f"{{{body}}}"


def parse_sample_value(value: str) -> float:
    """Parse a sample value; NaN and +/-Inf are rejected since they cannot be plotted."""
    try:
        parsed = float(value)
    except (TypeError, ValueError) as e:
        raise ParseError(f"Sample value {value!r} is not a number") from e

    if not math.isfinite(parsed):
        raise ParseError(f"Sample value {value!r} is not plottable")
    return parsed


def series_points(series: Series) -> List[Point]:
    """Project every sample of a series to a plot point, keeping order."""
    return [Point(float(ts), parse_sample_value(value)) for ts, value in series.values]


def build_datasets(result: QueryResult) -> List[Dataset]:
    """One dataset per series, coloured by position in the result."""
    datasets = []
    for i, series in enumerate(result.result):
        datasets.append(
            Dataset(
                legend=format_legend(series.metric)[:LEGEND_MAX_LENGTH],
                color=PALETTE[i % len(PALETTE)],
                points=series_points(series),
            )
        )
    return datasets


def ensure_plottable(datasets: List[Dataset]):
    """Raise EmptyDataError unless at least one dataset has a point."""
    if not any(dataset.points for dataset in datasets):
        raise EmptyDataError(
            f"Query returned no samples to plot ({len(datasets)} series)"
        )


def flatten_points(datasets: List[Dataset]) -> List[Point]:
    return [point for dataset in datasets for point in dataset.points]
