import json
import logging

from oscluster.observers.dispatcher import EventBus, Observer
from oscluster.observers.console import ConsoleObserver
from oscluster.observers.events import BootstrapSummary, PlanFailed, StepFailed, new_ctx
from oscluster.observers.jsonfile import JsonFileObserver
from oscluster.observers.logger import LoggerObserver


class Capture(Observer):
    def __init__(self): self.events = []
    def notify(self, event): self.events.append(event)


class Broken:
    def notify(self, event): raise RuntimeError("boom")


def test_broken_observer_does_not_stop_others():
    cap = Capture()
    bus = EventBus([Broken(), cap])
    bus.emit(PlanFailed(error="x", **new_ctx(cluster="demo")))
    assert len(cap.events) == 1


def test_json_file_observer_appends_lines(tmp_path):
    path = tmp_path / "logs" / "run.jsonl"
    ob = JsonFileObserver(path)
    ctx = new_ctx(cluster="demo", role="data", run_id="r-1")
    ob.notify(PlanFailed(error="a", **ctx))
    ob.notify(PlanFailed(error="b", **ctx))
    lines = [json.loads(l) for l in path.read_text().splitlines()]
    assert [l["error"] for l in lines] == ["a", "b"]
    assert lines[0]["type"] == "PlanFailed"
    assert lines[0]["run_id"] == "r-1"
    assert lines[0]["role"] == "data"
    assert lines[0]["ts"].endswith("Z")


def test_logger_observer_formats_event(caplog):
    logger = logging.getLogger("observer-test")
    with caplog.at_level(logging.INFO, logger="observer-test"):
        LoggerObserver(logger).notify(PlanFailed(error="bad counts", **new_ctx(cluster="demo")))
    assert "[EVENT] PlanFailed" in caplog.text
    assert "error=bad counts" in caplog.text


def test_logger_observer_raises_level_for_failures(caplog):
    logger = logging.getLogger("observer-test")
    ob = LoggerObserver(logger)
    ctx = new_ctx(cluster="demo", role="data")
    with caplog.at_level(logging.INFO, logger="observer-test"):
        ob.notify(StepFailed(step="jvm.heap", fatal=False, error="exit 1", **ctx))
        ob.notify(StepFailed(step="engine.start", fatal=True, error="exit 2", **ctx))
    assert [r.levelno for r in caplog.records] == [logging.WARNING, logging.ERROR]


def test_console_observer_summaries(capsys):
    ob = ConsoleObserver()
    ctx = new_ctx(cluster="demo", role="seed")
    ob.notify(StepFailed(step="engine.start", fatal=True, error="exit 2", **ctx))
    ob.notify(BootstrapSummary(ok=3, failed=1, warned=0, status="FAILED", **ctx))
    out = capsys.readouterr().out.splitlines()
    assert out[0].endswith("demo/seed FATAL step engine.start: exit 2")
    assert out[1].endswith("demo/seed FAILED ok=3 failed=1 warned=0")


def test_bus_subscribe_adds_observer():
    cap = Capture()
    bus = EventBus()
    bus.subscribe(cap)
    bus.emit(PlanFailed(error="x", **new_ctx(cluster="demo")))
    assert cap.events[0].error == "x"
