"""CLI entry point for pipeline-graph."""

import logging
from datetime import date
from pathlib import Path

import click
from dotenv import load_dotenv

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

load_dotenv()

from pipeline_graph.api import PipelineGraphApi
from pipeline_graph.errors import NotFoundError
from pipeline_graph.ingestion.accessor import InMemoryGraphAccessor, JsonGraphAccessor
from pipeline_graph.ingestion.loader import load_snapshot
from pipeline_graph.models import PipelineStepList, ReconstructionEvent
from pipeline_graph.reporting.reporter import (
    generate_json_report,
    generate_markdown_report,
    generate_steps_json,
    write_report,
)


def _open_run(run: str, runs_dir: Path | None, events: list[ReconstructionEvent]) -> tuple[PipelineGraphApi, str]:
    """Resolve RUN as a snapshot file, or as a run id inside the runs directory."""
    path = Path(run)
    if path.is_file():
        snapshot = load_snapshot(path)
        accessor = InMemoryGraphAccessor([snapshot])
        return PipelineGraphApi(accessor, on_event=events.append), snapshot.run_id
    if runs_dir is None:
        raise click.BadParameter(
            f"'{run}' is not a file and no runs directory was given (--runs-dir or PIPELINE_GRAPH_RUNS_DIR).",
            param_hint="RUN",
        )
    return PipelineGraphApi(JsonGraphAccessor(runs_dir), on_event=events.append), run


def _unique(events: list[ReconstructionEvent]) -> list[ReconstructionEvent]:
    """Each query walks the graph again, so the same anomaly can repeat."""
    seen = set()
    result = []
    for event in events:
        key = (event.kind, event.node_id, event.message)
        if key not in seen:
            seen.add(key)
            result.append(event)
    return result


def _echo_events(events: list[ReconstructionEvent]) -> None:
    for event in _unique(events):
        click.echo(f"  WARNING: {event.kind.value} at node {event.node_id}: {event.message}", err=True)


def _echo_steps(steps: PipelineStepList, as_json: bool) -> None:
    if as_json:
        click.echo(generate_steps_json(steps))
        return
    if not steps.steps:
        click.echo("No steps.")
        return
    for step in steps.steps:
        click.echo(f"  {step.id:>5}  {step.state:<10} {step.name}")


@click.group()
@click.option("--runs-dir", envvar="PIPELINE_GRAPH_RUNS_DIR", type=click.Path(file_okay=False, path_type=Path), default=None, help="Directory of <run_id>.json snapshots (or set PIPELINE_GRAPH_RUNS_DIR).")
@click.option("--log-level", envvar="PIPELINE_GRAPH_LOG_LEVEL", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False), default="INFO", help="Log level (or set PIPELINE_GRAPH_LOG_LEVEL).")
@click.pass_context
def main(ctx: click.Context, runs_dir: Path | None, log_level: str):
    """Pipeline Graph — rebuild stage trees and step lists from recorded flow graphs.

    RUN arguments accept a snapshot JSON file or a run id inside --runs-dir.
    """
    logging.getLogger().setLevel(log_level.upper())
    ctx.obj = {"runs_dir": runs_dir}


@main.command()
@click.argument("run")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the tree as JSON.")
@click.pass_context
def tree(ctx: click.Context, run: str, as_json: bool):
    """Show the stage tree of a run."""
    events: list[ReconstructionEvent] = []
    api, run_id = _open_run(run, ctx.obj["runs_dir"], events)
    try:
        root = api.build_stage_tree(run_id)
        steps = api.get_all_steps(run_id).steps
    except NotFoundError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(generate_json_report(root))
    else:
        click.echo(generate_markdown_report(run_id, root, steps))
    _echo_events(events)


@main.command()
@click.argument("run")
@click.argument("stage")
@click.option("--by-name", is_flag=True, default=False, help="Treat STAGE as a stage name instead of a node id.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the steps as JSON.")
@click.pass_context
def steps(ctx: click.Context, run: str, stage: str, by_name: bool, as_json: bool):
    """List the steps owned by one stage.

    \b
    Examples:
        pipeline-graph steps run-42.json 7
        pipeline-graph steps run-42.json "Branch: Branch A" --by-name
    """
    events: list[ReconstructionEvent] = []
    api, run_id = _open_run(run, ctx.obj["runs_dir"], events)
    try:
        stage_id = api.find_nodes_by_name(run_id, stage)[0] if by_name else stage
        result = api.get_steps(run_id, stage_id)
    except NotFoundError as e:
        raise click.ClickException(str(e)) from e

    _echo_steps(result, as_json)
    _echo_events(events)


@main.command("all-steps")
@click.argument("run")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the steps as JSON.")
@click.pass_context
def all_steps(ctx: click.Context, run: str, as_json: bool):
    """List every step of a run, stage by stage."""
    events: list[ReconstructionEvent] = []
    api, run_id = _open_run(run, ctx.obj["runs_dir"], events)
    try:
        result = api.get_all_steps(run_id)
    except NotFoundError as e:
        raise click.ClickException(str(e)) from e

    _echo_steps(result, as_json)
    _echo_events(events)


@main.command("error-text")
@click.argument("run")
@click.argument("node_id")
@click.pass_context
def error_text(ctx: click.Context, run: str, node_id: str):
    """Print the user-facing error text of a node (empty if none)."""
    events: list[ReconstructionEvent] = []
    api, run_id = _open_run(run, ctx.obj["runs_dir"], events)
    try:
        text = api.get_exception_text(run_id, node_id)
    except NotFoundError as e:
        raise click.ClickException(str(e)) from e
    click.echo(text or "")


@main.command()
@click.argument("run")
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None, help="Output markdown report path.")
@click.option("--json-output", "-j", type=click.Path(path_type=Path), default=None, help="Output JSON tree path.")
@click.pass_context
def report(ctx: click.Context, run: str, output: Path | None, json_output: Path | None):
    """Write markdown and JSON reports for a run."""
    events: list[ReconstructionEvent] = []
    api, run_id = _open_run(run, ctx.obj["runs_dir"], events)
    click.echo(f"Rebuilding stage tree for run '{run_id}'...")
    try:
        root = api.build_stage_tree(run_id)
        steps = api.get_all_steps(run_id).steps
    except NotFoundError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Found {len(steps)} step(s), {len(_unique(events))} reconciliation warning(s).")

    # Default to ./logs/{date}/{run_id}/
    log_dir = Path("logs") / date.today().isoformat() / run_id
    if not output:
        output = log_dir / "report.md"
    if not json_output:
        json_output = log_dir / "tree.json"

    write_report(generate_markdown_report(run_id, root, steps), output)
    click.echo(f"Markdown report written to {output}")

    write_report(generate_json_report(root), json_output)
    click.echo(f"JSON tree written to {json_output}")


if __name__ == "__main__":
    main()
