"""Terminal session and the render loop that redraws the chart every tick."""
import logging
import os
import select
import sys
import termios
import time
import tty
from contextlib import contextmanager
from enum import Enum
from typing import Callable, List, Optional, Tuple

from rich.console import Console, RenderableType
from rich.live import Live
from rich.text import Text

from termetheus.chart import build_datasets, compute_bounds, ensure_plottable, flatten_points
from termetheus.composer import compose_chart
from termetheus.config import Config
from termetheus.errors import TerminalIOError
from termetheus.self_metrics import SelfMetrics
from termetheus.series import QueryResult

logger = logging.getLogger(__name__)

ENABLE_MOUSE_CAPTURE = "\x1b[?1000h\x1b[?1002h\x1b[?1006h"
DISABLE_MOUSE_CAPTURE = "\x1b[?1000l\x1b[?1002l\x1b[?1006l"


class LoopState(Enum):
    RUNNING = "running"
    STOPPED = "stopped"


class RenderLoop:
    """
    Redraws the held query result once per tick until the quit key arrives.

    Each step draws a fresh frame, then waits for a key for whatever is left
    of the current tick. The wait is a bounded blocking read supplied by
    `keys`, so the loop never spins and never overruns a tick without
    redrawing.
    """

    def __init__(
        self,
        result: QueryResult,
        draw: Callable[[RenderableType], None],
        keys,
        frame_size: Callable[[], Tuple[int, int]],
        title: str = "",
        tick_interval: float = 0.25,
        quit_key: str = "q",
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[SelfMetrics] = None,
    ):
        """
        Initialize the loop.

        Args:
            result: Query result, read-only for the loop's lifetime
            draw: Replaces the terminal contents with a frame
            keys: Object with `read_key(timeout) -> Optional[str]`
            frame_size: Returns the (width, height) available for a frame
            title: Chart title
            tick_interval: Seconds per tick
            quit_key: Character that stops the loop
            clock: Monotonic clock, injectable for tests
            metrics: Optional self-metrics
        """
        self.result = result
        self.draw = draw
        self.keys = keys
        self.frame_size = frame_size
        self.title = title
        self.tick_interval = tick_interval
        self.quit_key = quit_key
        self.clock = clock
        self.metrics = metrics

        self.state = LoopState.RUNNING
        self.frames = 0
        self.last_tick = clock()

    def render_frame(self) -> RenderableType:
        """Recompute datasets and bounds and compose a frame."""
        datasets = build_datasets(self.result)
        ensure_plottable(datasets)
        x_bounds, y_bounds = compute_bounds(flatten_points(datasets))
        width, height = self.frame_size()
        return compose_chart(datasets, x_bounds, y_bounds, width, height, self.title)

    def step(self) -> LoopState:
        """Run one iteration: draw, wait for input within the tick budget."""
        if self.state is LoopState.STOPPED:
            return self.state

        frame_start = self.clock()
        self.draw(self.render_frame())
        self.frames += 1
        if self.metrics:
            self.metrics.record_frame(self.clock() - frame_start)

        remaining = max(0.0, self.tick_interval - (self.clock() - self.last_tick))
        key = self.keys.read_key(remaining)
        if key == self.quit_key:
            logger.info(f"Quit key pressed after {self.frames} frames")
            self.state = LoopState.STOPPED
            return self.state

        if self.clock() - self.last_tick >= self.tick_interval:
            self.last_tick = self.clock()

        return self.state

    def run(self) -> LoopState:
        """Step until stopped."""
        logger.info(
            f"Render loop started: {len(self.result.result)} series, "
            f"tick {self.tick_interval:.3f}s, quit with '{self.quit_key}'"
        )
        while self.state is LoopState.RUNNING:
            self.step()
        return self.state


class TerminalSession:
    """
    Scoped terminal mode for the chart.

    Entering puts stdin in cbreak mode, switches to the alternate screen with
    a hidden cursor and optionally enables mouse capture. Leaving undoes all of
    it, on every exit path.
    """

    def __init__(self, console: Optional[Console] = None, mouse_capture: bool = True, stdin=None):
        self.console = console or Console()
        self.mouse_capture = mouse_capture
        self._stdin = stdin or sys.stdin
        self._fd: Optional[int] = None
        self._old_settings = None
        self._live: Optional[Live] = None

    def __enter__(self):
        try:
            self._fd = self._stdin.fileno()
            self._old_settings = termios.tcgetattr(self._fd)
            tty.setcbreak(self._fd)

            self._live = Live(
                Text(""),
                console=self.console,
                screen=True,
                auto_refresh=False,
            )
            self._live.start()

            if self.mouse_capture:
                self._write(ENABLE_MOUSE_CAPTURE)
        except (termios.error, OSError, ValueError) as e:
            self._restore()
            raise TerminalIOError(f"Failed to enter terminal mode: {e}") from e

        logger.debug("Terminal session started")
        return self

    def __exit__(self, exc_type, exc, tb):
        errors = self._restore()
        logger.debug("Terminal session restored")
        if errors and exc_type is None:
            raise TerminalIOError(f"Failed to restore terminal: {errors[0]}") from errors[0]
        return False

    def _write(self, sequence: str):
        self.console.file.write(sequence)
        self.console.file.flush()

    def _restore(self) -> List[Exception]:
        """Undo every terminal change made so far; collect failures instead of stopping."""
        errors: List[Exception] = []

        if self._live is not None:
            if self.mouse_capture:
                try:
                    self._write(DISABLE_MOUSE_CAPTURE)
                except OSError as e:
                    errors.append(e)
            try:
                self._live.stop()
            except OSError as e:
                errors.append(e)
            self._live = None

        if self._old_settings is not None:
            try:
                termios.tcsetattr(self._fd, termios.TCSADRAIN, self._old_settings)
            except (termios.error, OSError) as e:
                errors.append(e)
            self._old_settings = None

        try:
            self.console.show_cursor(True)
        except OSError as e:
            errors.append(e)

        for error in errors:
            logger.error(f"Terminal restore step failed: {error}")
        return errors

    def size(self) -> Tuple[int, int]:
        width, height = self.console.size
        return width, height

    def draw(self, renderable: RenderableType):
        """Replace the screen contents with `renderable`."""
        if self._live is None:
            raise TerminalIOError("Terminal session is not active")
        try:
            self._live.update(renderable, refresh=True)
        except OSError as e:
            raise TerminalIOError(f"Failed to draw frame: {e}") from e

    def read_key(self, timeout: float) -> Optional[str]:
        """Wait up to `timeout` seconds for one key press."""
        try:
            ready, _, _ = select.select([self._fd], [], [], timeout)
            if not ready:
                return None
            raw = os.read(self._fd, 1)
        except OSError as e:
            raise TerminalIOError(f"Failed to read keyboard input: {e}") from e

        return raw.decode(errors="ignore") or None


@contextmanager
def detached_console_logging():
    """Detach stdout/stderr log handlers while the alternate screen is up."""
    root = logging.getLogger()
    suppressed = []
    for handler in root.handlers[:]:
        if isinstance(handler, logging.StreamHandler) and getattr(handler, "stream", None) in (sys.stdout, sys.stderr):
            root.removeHandler(handler)
            suppressed.append(handler)
    try:
        yield suppressed
    finally:
        for handler in suppressed:
            root.addHandler(handler)


def run(result: QueryResult, config: Config, metrics: Optional[SelfMetrics] = None) -> LoopState:
    """
    Show the chart for `result` until the user quits.

    The result is validated before the terminal is touched, so bad data is
    reported on a normal screen.
    """
    datasets = build_datasets(result)
    ensure_plottable(datasets)
    compute_bounds(flatten_points(datasets))
    if metrics:
        metrics.set_series_plotted(len(datasets))

    with detached_console_logging(), TerminalSession(mouse_capture=config.ui.mouse_capture) as session:
        loop = RenderLoop(
            result,
            draw=session.draw,
            keys=session,
            frame_size=session.size,
            title=config.chart_title(),
            tick_interval=config.ui.tick_interval_s,
            quit_key=config.ui.quit_key,
            metrics=metrics,
        )
        return loop.run()
