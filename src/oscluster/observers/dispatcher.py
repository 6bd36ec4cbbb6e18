# src/oscluster/observers/dispatcher.py
from __future__ import annotations
import logging
from typing import List, Protocol
from .events import BaseEvent

log = logging.getLogger("oscluster")


class Observer(Protocol):
    def notify(self, event: BaseEvent) -> None: ...


class EventBus:
    """Fans planner, composer and runner events out to observers."""

    def __init__(self, observers: List[Observer] = None):
        self._observers = list(observers or [])

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as exc:
                # observers must not break a plan or a bootstrap
                log.debug("observer %r failed on %s: %s", ob, event.__class__.__name__, exc)
