# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/runner.py

from __future__ import annotations

import logging
import subprocess
import time
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..observers.dispatcher import EventBus
from ..observers.events import (
    BootstrapSummary,
    StepFailed,
    StepStarted,
    StepSucceeded,
    new_ctx,
)
from ..utils.execution import ExecutionContext
from .errors import FatalBootstrapStepError, OptionalStepWarning
from .steps import BootstrapPlan, BootstrapStep, PackageInstall, RunCommand, WriteFile

log = logging.getLogger("oscluster")


@dataclass
class StepOutcome:
    name: str
    status: str                 # "OK" | "FAILED" | "WARNED" | "SKIPPED"
    returncode: Optional[int] = None
    error: Optional[str] = None


@dataclass
class RunReport:
    outcomes: List[StepOutcome] = field(default_factory=list)

    def add(self, outcome: StepOutcome) -> None:
        self.outcomes.append(outcome)

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def summary(self) -> str:
        return (
            f"OK={self.count('OK')} FAILED={self.count('FAILED')} "
            f"WARNED={self.count('WARNED')} SKIPPED={self.count('SKIPPED')}"
        )


class BootstrapRunner:
    """
    Executes a BootstrapPlan on the booting instance.

    A failing fatal step stops the run with FatalBootstrapStepError; a failing
    non-fatal step raises an OptionalStepWarning through ``warnings`` and the
    run continues.
    """

    def __init__(
        self,
        ctx: Optional[ExecutionContext] = None,
        bus: Optional[EventBus] = None,
        cluster: str = "-",
    ):
        self.ctx = ctx or ExecutionContext()
        self.bus = bus or EventBus()
        self.cluster = cluster

    # ------------------ step execution ------------------

    def _run_cmd(self, argv: List[str], cwd: Optional[str] = None) -> subprocess.CompletedProcess:
        log.debug("$ %s", " ".join(argv))
        result = subprocess.run(argv, capture_output=True, text=True, cwd=cwd, check=False)
        if result.stdout:
            log.debug("[stdout]\n%s", result.stdout.rstrip())
        if result.stderr:
            log.debug("[stderr]\n%s", result.stderr.rstrip())
        return result

    def _spawn(self, argv: List[str], cwd: Optional[str] = None) -> subprocess.CompletedProcess:
        # a missing binary or cwd is a step failure like any non-zero exit
        try:
            return self._run_cmd(argv, cwd=cwd)
        except OSError as exc:
            log.debug("could not start %s: %s", argv[0], exc)
            return subprocess.CompletedProcess(args=argv, returncode=127, stdout="", stderr=str(exc))

    def _execute(self, step: BootstrapStep) -> subprocess.CompletedProcess:
        payload = step.payload
        if isinstance(payload, PackageInstall):
            return self._spawn([payload.manager or self.ctx.package_manager, "install", "-y", payload.package])
        if isinstance(payload, RunCommand):
            return self._spawn([self.ctx.shell, "-ec", payload.command], cwd=payload.cwd)
        if isinstance(payload, WriteFile):
            path = Path(payload.path)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with path.open("a" if payload.append else "w", encoding="utf-8") as f:
                    f.write(payload.content)
            except OSError as exc:
                return subprocess.CompletedProcess(args=[str(path)], returncode=1, stdout="", stderr=str(exc))
            return subprocess.CompletedProcess(args=[str(path)], returncode=0, stdout="", stderr="")
        raise TypeError(f"Unsupported step payload: {type(payload).__name__}")

    # ------------------ public API ------------------

    def run(self, plan: BootstrapPlan, run_ctx: Optional[dict] = None) -> RunReport:
        ctx = dict(run_ctx or new_ctx(cluster=self.cluster))
        ctx["role"] = plan.role.value
        report = RunReport()

        try:
            for i, step in enumerate(plan, 1):
                log.info("[%s] step %d/%d: %s", plan.role.value, i, len(plan), step.name)
                self.bus.emit(StepStarted(step=step.name, kind=step.kind.value, **ctx))

                if self.ctx.dry_run:
                    log.info("[%s] dry-run: skipped %s", plan.role.value, step.name)
                    report.add(StepOutcome(name=step.name, status="SKIPPED"))
                    continue

                t0 = time.time()
                result = self._execute(step)
                if result.returncode == 0:
                    duration_ms = int((time.time() - t0) * 1000)
                    report.add(StepOutcome(name=step.name, status="OK", returncode=0))
                    self.bus.emit(StepSucceeded(step=step.name, duration_ms=duration_ms, **ctx))
                    continue

                error = (result.stderr or "").strip() or f"exit {result.returncode}"
                self.bus.emit(StepFailed(step=step.name, fatal=step.fatal, error=error, **ctx))
                if step.fatal:
                    report.add(StepOutcome(step.name, "FAILED", result.returncode, error))
                    raise FatalBootstrapStepError(step.name, result.returncode, result.stderr or "")

                report.add(StepOutcome(step.name, "WARNED", result.returncode, error))
                log.warning("[%s] optional step %s failed: %s", plan.role.value, step.name, error)
                warnings.warn(
                    OptionalStepWarning(f"optional step '{step.name}' failed: {error}"),
                    stacklevel=2,
                )
        finally:
            failed = report.count("FAILED")
            self.bus.emit(
                BootstrapSummary(
                    ok=report.count("OK"),
                    failed=failed,
                    warned=report.count("WARNED"),
                    status="FAILED" if failed else "OK",
                    **ctx,
                )
            )

        log.info("[%s] bootstrap complete: %s", plan.role.value, report.summary())
        return report
