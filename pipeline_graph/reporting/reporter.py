"""Render reconstructed runs as markdown and JSON reports."""

from __future__ import annotations

from pathlib import Path

from pipeline_graph.models import PipelineStage, PipelineStep, PipelineStepList, StageType


def format_duration(millis: int | None) -> str:
    """Human-friendly duration, e.g. ``1m 5s``. Empty when unknown."""
    if millis is None:
        return ""
    seconds = max(millis, 0) // 1000
    hours, seconds = divmod(seconds, 3600)
    minutes, seconds = divmod(seconds, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def _stage_line(stage: PipelineStage, depth: int) -> str:
    indent = "  " * depth
    kind = "parallel" if stage.type == StageType.PARALLEL else "stage"
    parts = [f"{indent}- **{stage.name}** ({kind}, {stage.state}, {stage.complete_percent}%)"]
    took = format_duration(stage.total_duration_millis)
    if took:
        parts.append(f"took {took}")
    paused = format_duration(stage.pause_duration_millis) if stage.pause_duration_millis else ""
    if paused:
        parts.append(f"paused {paused}")
    if stage.is_sequential and stage.next_sibling:
        parts.append(f"then #{stage.next_sibling}")
    return " — ".join(parts)


def _tree_lines(stage: PipelineStage, depth: int, steps_by_stage: dict[str | None, list[PipelineStep]]) -> list[str]:
    lines = []
    if not stage.is_synthetic:
        lines.append(_stage_line(stage, depth))
        for step in steps_by_stage.get(stage.id, []):
            lines.append(f"{'  ' * (depth + 1)}- `{step.name}` [{step.state}]")
        depth += 1
    for child in stage.children:
        lines.extend(_tree_lines(child, depth, steps_by_stage))
    return lines


def generate_markdown_report(run_id: str, tree: PipelineStage, steps: list[PipelineStep]) -> str:
    """Generate a markdown report of a run's stages and their steps."""
    steps_by_stage: dict[str | None, list[PipelineStep]] = {}
    for step in steps:
        steps_by_stage.setdefault(step.stage_id, []).append(step)

    lines: list[str] = []
    lines.append(f"# Pipeline Run: {run_id}")
    lines.append(f"\n**State:** {tree.state}")
    lines.append(f"**Steps:** {len(steps)}")

    lines.append("\n## Stages")
    lines.append("")
    stage_lines = _tree_lines(tree, 0, steps_by_stage)
    if stage_lines:
        lines.extend(stage_lines)
    else:
        lines.append("No stages recorded.")

    orphans = steps_by_stage.get(None, [])
    if orphans:
        lines.append("\n## Outside Any Stage")
        lines.append("")
        for step in orphans:
            lines.append(f"- `{step.name}` [{step.state}]")

    lines.append("")
    return "\n".join(lines)


def generate_json_report(tree: PipelineStage) -> str:
    """Generate the JSON rendering of a stage tree, using the camelCase field names."""
    return tree.model_dump_json(indent=2, by_alias=True)


def generate_steps_json(steps: PipelineStepList) -> str:
    return steps.model_dump_json(indent=2, by_alias=True)


def write_report(content: str, path: Path) -> None:
    """Write report content to a file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
