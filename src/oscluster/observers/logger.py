from __future__ import annotations
import logging
from .events import BaseEvent, BootstrapSummary, PlanFailed, StepFailed


def _level(event: BaseEvent) -> int:
    if isinstance(event, PlanFailed):
        return logging.ERROR
    if isinstance(event, StepFailed):
        return logging.ERROR if event.fatal else logging.WARNING
    if isinstance(event, BootstrapSummary) and event.status != "OK":
        return logging.ERROR
    return logging.INFO


class LoggerObserver:
    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in ("ts",))

        self.logger.log(_level(event), f"[EVENT] {etype}: {msg}")
