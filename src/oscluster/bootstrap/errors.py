# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/errors.py
from typing import Optional


class BootstrapError(RuntimeError):
    """Base class for bootstrap composition and execution failures."""


class TemplateError(BootstrapError, ValueError):
    """Raised when a config template is missing, malformed or lacks an overlay."""


class FatalBootstrapStepError(BootstrapError):
    """A fatal step failed; the instance must not be signaled healthy."""

    def __init__(self, step: str, returncode: Optional[int] = None, stderr: str = ""):
        self.step = step
        self.returncode = returncode
        self.stderr = stderr
        detail = f" (exit {returncode})" if returncode is not None else ""
        msg = f"Bootstrap step '{step}' failed{detail}"
        if stderr:
            msg += f": {stderr.strip()}"
        super().__init__(msg)


class OptionalStepWarning(UserWarning):
    """An optional configuration step failed and the bootstrap carried on."""
