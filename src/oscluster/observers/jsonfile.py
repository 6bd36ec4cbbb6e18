from __future__ import annotations
import json
from pathlib import Path
from .events import BaseEvent
from ..utils.serialize import to_jsonable


class JsonFileObserver:
    """One JSON object per line; the run's events can be replayed with ``jq -s``."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def notify(self, event: BaseEvent) -> None:
        record = {"type": event.__class__.__name__, **to_jsonable(event.dict())}
        with self.path.open("a", encoding="utf-8") as f:
            json.dump(record, f, sort_keys=False)
            f.write("\n")
