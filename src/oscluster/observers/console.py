# src/oscluster/observers/console.py
from .events import BaseEvent, BootstrapSummary, PlanFailed, StepFailed

_CONTEXT_KEYS = ("ts", "run_id", "cluster", "role")


class ConsoleObserver:
    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        k = event.__class__.__name__
        where = d["cluster"] if not d["role"] else f"{d['cluster']}/{d['role']}"

        if isinstance(event, StepFailed):
            marker = "FATAL" if event.fatal else "warn"
            print(f"[{d['ts']}] {where} {marker} step {event.step}: {event.error}")
            return
        if isinstance(event, PlanFailed):
            print(f"[{d['ts']}] {where} plan rejected: {event.error}")
            return
        if isinstance(event, BootstrapSummary):
            print(f"[{d['ts']}] {where} {event.status} ok={event.ok} failed={event.failed} warned={event.warned}")
            return

        data = ", ".join(f"{x}={y}" for x, y in d.items() if x not in _CONTEXT_KEYS)
        print(f"[{d['ts']}] {where} {k} {data}")
