# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass


@dataclass(frozen=True)
class ExecutionContext:
    """
    controls how bootstrap steps are executed on an instance
    """

    dry_run: bool = False
    shell: str = "/bin/bash"
    package_manager: str = "yum"
