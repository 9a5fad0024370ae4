"""Tests for the render loop state machine and terminal helpers."""
import logging
import sys

import pytest
from rich.panel import Panel

from termetheus.errors import EmptyDataError
from termetheus.self_metrics import SelfMetrics
from termetheus.series import QueryResult, Series
from termetheus.ui import LoopState, RenderLoop, detached_console_logging


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeKeys:
    """Replays key presses; each read waits out its whole timeout on the fake clock."""

    def __init__(self, clock, keys):
        self.clock = clock
        self.keys = list(keys)
        self.timeouts = []

    def read_key(self, timeout):
        self.timeouts.append(timeout)
        self.clock.advance(timeout)
        if not self.keys:
            raise AssertionError("render loop kept polling after the scripted keys ran out")
        return self.keys.pop(0)


def make_result(values=((1.0, "1.0"), (2.0, "2.0"))):
    return QueryResult(
        result_type="matrix",
        result=[Series(metric={"__name__": "test"}, values=list(values))],
    )


def make_loop(keys, draw_cost=0.0, result=None, metrics=None):
    clock = FakeClock()
    frames = []

    def draw(frame):
        clock.advance(draw_cost)
        frames.append(frame)

    fake_keys = FakeKeys(clock, keys)
    loop = RenderLoop(
        result or make_result(),
        draw=draw,
        keys=fake_keys,
        frame_size=lambda: (80, 24),
        title="test",
        tick_interval=0.25,
        clock=clock,
        metrics=metrics,
    )
    return loop, frames, fake_keys


def test_quit_key_stops_loop():
    """The loop runs until q arrives, drawing one frame per iteration."""
    loop, frames, keys = make_loop([None, None, "q"])

    assert loop.state is LoopState.RUNNING
    assert loop.run() is LoopState.STOPPED
    assert loop.state is LoopState.STOPPED
    assert len(frames) == 3
    assert loop.frames == 3
    assert all(isinstance(frame, Panel) for frame in frames)
    assert keys.keys == []


def test_other_keys_do_not_stop_loop():
    """Only the quit key ends the loop; other keys and timeouts are ignored."""
    loop, frames, _ = make_loop(["x", "Q", " ", "\x1b", None])

    for _ in range(5):
        assert loop.step() is LoopState.RUNNING
    assert len(frames) == 5


def test_quit_on_first_poll():
    loop, frames, _ = make_loop(["q"])
    assert loop.step() is LoopState.STOPPED
    assert len(frames) == 1


def test_step_after_stop_is_noop():
    """Stopped is terminal: further steps neither draw nor poll."""
    loop, frames, keys = make_loop(["q"])
    loop.step()
    assert loop.step() is LoopState.STOPPED
    assert len(frames) == 1
    assert len(keys.timeouts) == 1


def test_wait_is_bounded_by_remaining_tick():
    """Each wait lasts whatever is left of the tick after drawing."""
    loop, _, keys = make_loop([None, None, "q"], draw_cost=0.125)
    loop.run()
    assert keys.timeouts == pytest.approx([0.125, 0.125, 0.125])


def test_slow_frame_clamps_wait_to_zero():
    """A frame slower than a tick leaves no wait, and the tick boundary resets."""
    loop, _, keys = make_loop([None, "q"], draw_cost=0.4)
    loop.run()
    assert keys.timeouts == [0.0, 0.0]
    assert loop.last_tick == pytest.approx(0.4)


def test_tick_boundary_kept_within_budget():
    """An early key press does not move the tick boundary."""
    clock = FakeClock()

    class EarlyKey:
        def read_key(self, timeout):
            clock.advance(0.0625)
            return "x"

    loop = RenderLoop(make_result(), draw=lambda f: None, keys=EarlyKey(),
                      frame_size=lambda: (80, 24), clock=clock)
    for _ in range(3):
        loop.step()
        assert loop.last_tick == 0.0
    loop.step()
    assert loop.last_tick == pytest.approx(0.25)


def test_frames_recomputed_from_same_result():
    """Every tick redraws the same held data."""
    result = make_result()
    loop, frames, _ = make_loop([None, "q"], result=result)
    loop.run()
    assert len(frames) == 2
    assert result.result[0].values == [(1.0, "1.0"), (2.0, "2.0")]


def test_empty_result_is_fatal():
    loop, frames, _ = make_loop([None], result=make_result(values=()))
    with pytest.raises(EmptyDataError):
        loop.step()
    assert frames == []


def test_frames_recorded_in_self_metrics():
    metrics = SelfMetrics()
    loop, _, _ = make_loop([None, None, "q"], metrics=metrics)
    loop.run()
    assert metrics.registry.get_sample_value("termetheus_frames_total") == 3.0
    assert metrics.registry.get_sample_value("termetheus_frame_render_seconds_count") == 3.0


def test_detached_console_logging():
    """Console handlers are removed for the duration and restored afterwards."""
    root = logging.getLogger()
    handler = logging.StreamHandler(sys.stderr)
    root.addHandler(handler)
    try:
        with detached_console_logging() as suppressed:
            assert handler in suppressed
            assert handler not in root.handlers
        assert handler in root.handlers
    finally:
        root.removeHandler(handler)


def test_run_validates_before_touching_terminal(monkeypatch):
    """Unplottable data is rejected before the terminal session starts."""
    from termetheus import ui
    from termetheus.config import load_config

    class ExplodingSession:
        def __init__(self, *args, **kwargs):
            raise AssertionError("terminal session started for empty data")

    monkeypatch.setattr(ui, "TerminalSession", ExplodingSession)
    config = load_config("http://localhost:9090", "up")

    with pytest.raises(EmptyDataError):
        ui.run(make_result(values=()), config)


def test_run_rejects_infinite_samples_before_terminal(monkeypatch):
    """+Inf samples are reported before the terminal session starts."""
    from termetheus import ui
    from termetheus.config import load_config
    from termetheus.errors import ParseError

    class ExplodingSession:
        def __init__(self, *args, **kwargs):
            raise AssertionError("terminal session started for unplottable data")

    monkeypatch.setattr(ui, "TerminalSession", ExplodingSession)
    config = load_config("http://localhost:9090", "up")

    with pytest.raises(ParseError):
        ui.run(make_result(values=((1.0, "1"), (2.0, "+Inf"))), config)
