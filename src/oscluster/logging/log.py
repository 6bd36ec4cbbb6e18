# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

#src/oscluster/logging/log.py

from __future__ import annotations

import logging
import os
from pathlib import Path
from datetime import datetime, timezone
import uuid

LOG_DIR_ENV = "OSCLUSTER_LOG_DIR"


def default_log_dir() -> Path:
    """$OSCLUSTER_LOG_DIR, else ~/.oscluster/logs."""
    override = os.environ.get(LOG_DIR_ENV)
    if override:
        return Path(os.path.expanduser(override))
    return Path.home() / ".oscluster" / "logs"


def init_logging(
    *,
    base_dir: Path | None = None,
    name: str = "oscluster",
    verbose: bool = False,
) -> tuple[logging.Logger, str, Path]:
    """
    Initializes:
      - human readable log file (full trace of plans and bootstrap steps)
      - console output (INFO, or DEBUG when verbose)
      - returns run_id so observers can reuse it
    """
    run_id = str(uuid.uuid4())

    base_dir = Path(base_dir) if base_dir is not None else default_log_dir()
    base_dir.mkdir(parents=True, exist_ok=True)

    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    log_path = base_dir / f"{name}-{ts}-{run_id[:8]}.log"

    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)
    for h in list(logger.handlers):
        h.close()
        logger.removeHandler(h)
    logger.propagate = False

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    fh = logging.FileHandler(log_path, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(formatter)

    # stderr so rendered output on stdout stays clean
    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)
    ch.setFormatter(formatter)

    logger.addHandler(fh)
    logger.addHandler(ch)

    logger.info("=== oscluster run started ===")
    logger.info("run_id=%s", run_id)
    logger.info("log_file=%s", log_path)

    return logger, run_id, log_path
