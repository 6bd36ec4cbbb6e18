# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/oscluster/bootstrap/metrics_agent.py

from __future__ import annotations

from typing import Any, Dict

AGENT_PACKAGE = "amazon-cloudwatch-agent"
AGENT_HOME = "/opt/aws/amazon-cloudwatch-agent"
AGENT_CONFIG_PATH = f"{AGENT_HOME}/etc/amazon-cloudwatch-agent.json"
AGENT_CTL = f"{AGENT_HOME}/bin/amazon-cloudwatch-agent-ctl"

_MEASUREMENTS = {
    "cpu": [
        "usage_active", "usage_guest", "usage_guest_nice", "usage_idle", "usage_iowait",
        "usage_irq", "usage_nice", "usage_softirq", "usage_steal", "usage_system",
        "usage_user", "time_active", "time_iowait", "time_system", "time_user",
    ],
    "disk": ["free", "total", "used", "used_percent", "inodes_free", "inodes_used", "inodes_total"],
    "diskio": ["reads", "writes", "read_bytes", "write_bytes", "read_time", "write_time", "io_time"],
    "mem": [
        "active", "available", "available_percent", "buffered", "cached", "free",
        "inactive", "total", "used", "used_percent",
    ],
    "net": [
        "bytes_sent", "bytes_recv", "drop_in", "drop_out", "err_in", "err_out",
        "packets_sent", "packets_recv",
    ],
}


def agent_config(*, log_file: str, log_group: str, interval_s: int = 60, flush_s: int = 5) -> Dict[str, Any]:
    """Agent document shipping OS metrics and *log_file* to *log_group*."""
    return {
        "agent": {
            "metrics_collection_interval": interval_s,
            "logfile": f"{AGENT_HOME}/logs/amazon-cloudwatch-agent.log",
            "omit_hostname": True,
            "debug": False,
        },
        "metrics": {
            "metrics_collected": {
                name: {"measurement": list(fields)} for name, fields in _MEASUREMENTS.items()
            },
        },
        "logs": {
            "logs_collected": {
                "files": {
                    "collect_list": [
                        {
                            "file_path": log_file,
                            "log_group_name": log_group,
                            "log_stream_name": "{instance_id}",
                            "auto_removal": True,
                        }
                    ],
                },
            },
            "force_flush_interval": flush_s,
        },
    }


def stop_command() -> str:
    return f"{AGENT_CTL} -a stop"


def start_command() -> str:
    return f"{AGENT_CTL} -a fetch-config -m ec2 -c file:{AGENT_CONFIG_PATH} -s"
