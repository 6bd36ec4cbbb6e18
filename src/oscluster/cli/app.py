# src/oscluster/cli/app.py
from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
import yaml

from oscluster.bootstrap.errors import FatalBootstrapStepError
from oscluster.bootstrap.heap import heap_size_gib
from oscluster.bootstrap.render import render_script, to_manifest
from oscluster.bootstrap.runner import BootstrapRunner
from oscluster.bootstrap.steps import BootstrapPlan
from oscluster.bootstrap.templates import load_templates
from oscluster.config.loader import load_spec
from oscluster.deploy.pipeline import build_deployment
from oscluster.topology.errors import InvalidSpecError
from oscluster.utils.execution import ExecutionContext

from oscluster.logging.log import init_logging
from oscluster.observers.console import ConsoleObserver
from oscluster.observers.dispatcher import EventBus
from oscluster.observers.logger import LoggerObserver
from oscluster.observers.jsonfile import JsonFileObserver
from oscluster.observers.events import new_ctx


# ------------------------------------------------------------------------------
# CLI setup
# ------------------------------------------------------------------------------

app = typer.Typer(help="OpenSearch cluster topology planner and bootstrap composer")


def _bus(logger, run_id: str, log_dir: Path, console: bool) -> EventBus:
    observers = [
        LoggerObserver(logger),
        JsonFileObserver(log_dir / f"{run_id}.jsonl"),
    ]
    if console:
        observers.append(ConsoleObserver())
    return EventBus(observers=observers)


def _deployment(config: Path, templates_dir: Optional[Path], debug: bool, events: bool):
    logger, run_id, log_path = init_logging(verbose=debug)
    spec = load_spec(config)
    bus = _bus(logger, run_id, log_path.parent, events)
    try:
        return build_deployment(
            spec,
            templates=load_templates(templates_dir),
            bus=bus,
            run_ctx=new_ctx(cluster=spec.cluster_name, run_id=run_id),
        )
    except InvalidSpecError as exc:
        typer.secho(f"Invalid cluster definition: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2)


# ------------------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------------------

@app.command("plan")
def plan_cmd(
    config: Path = typer.Argument(..., help="Cluster definition YAML"),
    templates_dir: Optional[Path] = typer.Option(None, "--templates", help="Directory with config templates"),
    debug: bool = typer.Option(False, "--debug"),
    events: bool = typer.Option(False, "--events", help="Echo lifecycle events to the console"),
):
    """Print the role groups and launch order for a cluster definition."""
    deployment = _deployment(config, templates_dir, debug, events)
    topology = deployment.topology

    typer.secho(f"Cluster {deployment.spec.cluster_name}", bold=True)
    for g in topology.role_groups:
        lb = " [load balancer target]" if g.is_load_balancer_target else ""
        typer.echo(
            f"  {g.role.value:<8} x{g.capacity:<3} {g.instance_type:<12} "
            f"{g.storage_gib} GiB  {len(deployment.plans[g.role])} steps{lb}"
        )
    for listener in topology.listeners:
        typer.echo(f"  listener {listener.name}: {listener.port} -> {listener.target_port}")
    waves = " | ".join(", ".join(g.role.value for g in wave) for wave in topology.launch_waves())
    typer.echo(f"  launch order: {waves}")


@app.command("render")
def render_cmd(
    config: Path = typer.Argument(..., help="Cluster definition YAML"),
    out: Path = typer.Option(Path("build"), "--out", help="Output directory"),
    templates_dir: Optional[Path] = typer.Option(None, "--templates"),
    fmt: str = typer.Option("yaml", "--format", help="Manifest format: yaml or json"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Write one user-data script per role group plus the hand-off manifest."""
    if fmt not in ("yaml", "json"):
        raise typer.BadParameter("--format must be yaml or json")

    deployment = _deployment(config, templates_dir, debug, events=False)
    out.mkdir(parents=True, exist_ok=True)

    for role, bootstrap in deployment.plans.items():
        path = out / f"user-data-{role.value}.sh"
        path.write_text(render_script(bootstrap, deployment.spec.cluster_name))
        path.chmod(0o755)
        typer.echo(f"  wrote {path}")

    manifest = to_manifest(deployment)
    manifest_path = out / f"manifest.{fmt}"
    if fmt == "json":
        manifest_path.write_text(json.dumps(manifest, indent=2) + "\n")
    else:
        manifest_path.write_text(yaml.safe_dump(manifest, sort_keys=False))
    typer.echo(f"  wrote {manifest_path}")


@app.command("run")
def run_cmd(
    manifest: Path = typer.Argument(..., help="Manifest written by 'render'"),
    role: str = typer.Option(..., "--role", help="Role group whose plan to execute"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    debug: bool = typer.Option(False, "--debug"),
):
    """Execute one group's bootstrap plan on this instance."""
    logger, run_id, log_path = init_logging(verbose=debug)
    data = yaml.safe_load(manifest.read_text()) or {}

    group = next((g for g in data.get("groups", []) if g.get("role") == role), None)
    if group is None:
        raise typer.BadParameter(f"No role group '{role}' in {manifest}")

    bootstrap = BootstrapPlan.from_dict(group)
    cluster = data.get("cluster", "-")
    runner = BootstrapRunner(
        ctx=ExecutionContext(dry_run=dry_run),
        bus=_bus(logger, run_id, log_path.parent, console=False),
        cluster=cluster,
    )
    try:
        report = runner.run(bootstrap, run_ctx=new_ctx(cluster=cluster, run_id=run_id))
    except FatalBootstrapStepError as exc:
        typer.secho(str(exc), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
    typer.echo(report.summary())


@app.command("heap")
def heap_cmd(total_memory_gib: int = typer.Argument(..., min=0, help="Instance memory in GiB")):
    """Show the heap size the bootstrap would pick for an instance."""
    typer.echo(f"{heap_size_gib(total_memory_gib)}g")


if __name__ == "__main__":
    app()
