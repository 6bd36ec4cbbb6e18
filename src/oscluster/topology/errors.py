# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/topology/errors.py
class InvalidSpecError(ValueError):
    """Raised when node counts cannot form a valid cluster topology."""
