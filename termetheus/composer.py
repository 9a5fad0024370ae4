"""Compose datasets and axis bounds into a drawable chart frame."""
from typing import List

import plotext as plt
from rich.panel import Panel
from rich.text import Text

from termetheus.series import AxisBounds, Dataset
from termetheus.time_utils import timestamp_to_clock

# Panel border plus horizontal padding
_FRAME_WIDTH_OVERHEAD = 4
_FRAME_HEIGHT_OVERHEAD = 2
MIN_CANVAS_WIDTH = 20
MIN_CANVAS_HEIGHT = 5


def x_tick_labels(bounds: AxisBounds) -> List[str]:
    return [timestamp_to_clock(v) for v in (bounds.min, bounds.mid, bounds.max)]


def y_tick_labels(bounds: AxisBounds) -> List[str]:
    return [f"{v:.2f}" for v in (bounds.min, bounds.mid, bounds.max)]


def build_canvas(
    datasets: List[Dataset],
    x_bounds: AxisBounds,
    y_bounds: AxisBounds,
    width: int,
    height: int,
) -> str:
    """Draw the datasets with plotext and return the ANSI canvas."""
    # plotext keeps a module level figure; start from a clean one every time
    plt.clf()
    plt.theme("clear")
    plt.plotsize(max(MIN_CANVAS_WIDTH, width), max(MIN_CANVAS_HEIGHT, height))

    for dataset in datasets:
        plt.plot(
            dataset.xs,
            dataset.ys,
            label=dataset.legend,
            color=dataset.color,
            marker="braille",
        )

    plt.xlim(*x_bounds.as_limits())
    plt.ylim(*y_bounds.as_limits())
    plt.xticks([x_bounds.min, x_bounds.mid, x_bounds.max], x_tick_labels(x_bounds))
    plt.yticks([y_bounds.min, y_bounds.mid, y_bounds.max], y_tick_labels(y_bounds))
    plt.xlabel("X Axis")
    plt.ylabel("Y Axis")

    return plt.build()


def compose_chart(
    datasets: List[Dataset],
    x_bounds: AxisBounds,
    y_bounds: AxisBounds,
    width: int,
    height: int,
    title: str,
) -> Panel:
    """
    Build one full chart frame.

    Args:
        datasets: Datasets in query result order
        x_bounds: Time axis bounds (seconds since epoch)
        y_bounds: Value axis bounds
        width: Outer frame width in terminal cells
        height: Outer frame height in terminal cells
        title: Text shown in the frame border

    Returns:
        A bordered, titled rich Panel holding the canvas
    """
    canvas = build_canvas(
        datasets,
        x_bounds,
        y_bounds,
        width - _FRAME_WIDTH_OVERHEAD,
        height - _FRAME_HEIGHT_OVERHEAD,
    )
    return Panel(
        Text.from_ansi(canvas),
        title=title,
        title_align="left",
        border_style="grey70",
    )
