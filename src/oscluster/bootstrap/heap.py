# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/heap.py

from __future__ import annotations

# Above ~32 GiB the JVM loses compressed object pointers.
HEAP_CAP_GIB = 32


def heap_size_gib(total_memory_gib: int) -> int:
    """
    Half of the instance memory, rounding a partial GiB up before halving,
    capped at HEAP_CAP_GIB.
    """
    if total_memory_gib < 0:
        raise ValueError(f"total memory must be non-negative, got {total_memory_gib}")
    return min((total_memory_gib + 1) // 2, HEAP_CAP_GIB)


def resize_heap_command(jvm_options: str = "config/jvm.options") -> str:
    """
    Shell equivalent of heap_size_gib() evaluated on the booting instance,
    rewriting the -Xms/-Xmx lines of *jvm_options* in place.
    """
    return (
        "totalMem=$(( $(free -g | awk '/^Mem:/{print $2}') + 1 )); "
        "heapSizeInGb=$(( totalMem / 2 )); "
        f"if [ \"$heapSizeInGb\" -gt {HEAP_CAP_GIB} ]; then heapSizeInGb={HEAP_CAP_GIB}; fi; "
        f"sed -i -e \"s/^-Xms[0-9a-z]*$/-Xms${{heapSizeInGb}}g/g\" {jvm_options}; "
        f"sed -i -e \"s/^-Xmx[0-9a-z]*$/-Xmx${{heapSizeInGb}}g/g\" {jvm_options}"
    )
