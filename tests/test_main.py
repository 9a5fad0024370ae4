"""Tests for the command line entry point."""
import pytest

from termetheus import main as main_module
from termetheus.errors import EmptyDataError, FetchError, TerminalIOError
from termetheus.series import QueryResult, Series
from termetheus.ui import LoopState


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("TERMETHEUS_LOG_FILE", raising=False)


def sample_result():
    return QueryResult(
        result_type="matrix",
        result=[Series(metric={"__name__": "up"}, values=[(1.0, "1"), (2.0, "1")])],
    )


def test_wrong_number_of_arguments():
    """BASE_URL and QUERY are both required."""
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["http://localhost:9090"])
    assert excinfo.value.code == 2

    with pytest.raises(SystemExit):
        main_module.main(["http://localhost:9090", "up", "one_too_many"])


def test_bad_config_exits_non_zero(capsys):
    assert main_module.main(["localhost:9090", "up"]) == 1
    assert "Error loading configuration" in capsys.readouterr().err


def test_bad_tick_interval(capsys):
    assert main_module.main(["http://localhost:9090", "up", "--tick-ms", "0"]) == 1


def test_fetch_failure_never_starts_loop(monkeypatch, capsys):
    """A failed fetch exits with status 1 before any terminal work."""
    def fail(self):
        raise FetchError("connection refused", reason="network")

    def must_not_run(*args, **kwargs):
        raise AssertionError("render loop started after a failed fetch")

    monkeypatch.setattr(main_module.PrometheusClient, "fetch_last_hour", fail)
    monkeypatch.setattr(main_module.ui, "run", must_not_run)

    assert main_module.main(["http://localhost:9090", "up"]) == 1
    assert "connection refused" in capsys.readouterr().err


def test_successful_run(monkeypatch):
    """The fetched result and CLI overrides reach the render loop."""
    seen = {}

    def fake_run(result, config, metrics=None):
        seen["result"] = result
        seen["config"] = config
        return LoopState.STOPPED

    monkeypatch.setattr(main_module.PrometheusClient, "fetch_last_hour", lambda self: sample_result())
    monkeypatch.setattr(main_module.ui, "run", fake_run)

    code = main_module.main(["http://localhost:9090", "up", "--tick-ms", "100", "--title", "Targets"])
    assert code == 0
    assert seen["result"] == sample_result()
    assert seen["config"].ui.tick_interval_ms == 100
    assert seen["config"].chart_title() == "Targets"


@pytest.mark.parametrize("error", [
    EmptyDataError("no samples"),
    TerminalIOError("not a tty"),
])
def test_render_failures_exit_non_zero(monkeypatch, capsys, error):
    def fake_run(result, config, metrics=None):
        raise error

    monkeypatch.setattr(main_module.PrometheusClient, "fetch_last_hour", lambda self: sample_result())
    monkeypatch.setattr(main_module.ui, "run", fake_run)

    assert main_module.main(["http://localhost:9090", "up"]) == 1
    assert str(error) in capsys.readouterr().err
