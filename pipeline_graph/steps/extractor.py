"""Extract the ordered steps of a stage, or of a whole run, from a walked graph."""

from __future__ import annotations

import logging

from pipeline_graph.errors import NotFoundError
from pipeline_graph.graph.classifier import is_interrupt
from pipeline_graph.graph.status import node_result, running_state
from pipeline_graph.models import (
    PipelineStep,
    RawNode,
    SemanticType,
    WalkedNode,
    WalkResult,
)

logger = logging.getLogger(__name__)

# Steps have no progress tracking yet; every step reports this value.
STEP_COMPLETE_PERCENT = 50
PIPELINE_ERROR_NAME = "Pipeline error"

_STEP_TYPES = (SemanticType.STEP, SemanticType.ERROR)
_OWNER_TYPES = (SemanticType.STAGE_START, SemanticType.PARALLEL_BRANCH_START)


def step_name(node: RawNode) -> str:
    """Display name, prefixed with the step's label when it has one."""
    if node.label:
        return f"{node.label} - {node.display_name}"
    return node.display_name


def get_exception_text(node: RawNode) -> str | None:
    """User-facing error text for a node.

    Interruption signals the engine uses to unwind parallel branches are
    never reported.
    """
    cause = node.error_cause
    if cause is None or is_interrupt(cause):
        return None
    return cause.message or cause.type


def _step_duration(entry: WalkedNode) -> int | None:
    node = entry.node
    if node.duration_millis is not None:
        return node.duration_millis
    if node.start_time_millis is not None and entry.next_start_time_millis is not None:
        return entry.next_start_time_millis - node.start_time_millis
    return None


def to_step(entry: WalkedNode) -> PipelineStep:
    node = entry.node
    if entry.semantic == SemanticType.ERROR and entry.enclosing_stage_id is None:
        name = PIPELINE_ERROR_NAME
    else:
        name = step_name(node)

    result = node_result(entry)
    state = result.value if result is not None else running_state(entry).value.lower()

    return PipelineStep(
        id=node.numeric_id,
        name=name,
        state=state,
        complete_percent=STEP_COMPLETE_PERCENT,
        type=node.type_tag,
        title=node.display_name,
        stage_id=entry.enclosing_stage_id,
        start_time_millis=node.start_time_millis,
        total_duration_millis=_step_duration(entry),
    )


def get_steps(walk_result: WalkResult, stage_id: str) -> list[PipelineStep]:
    """Steps owned directly by one stage, in execution order.

    Steps of nested stages belong to those stages and are left out.

    Raises:
        NotFoundError: If no stage or parallel branch has this id.
    """
    entries = walk_result.entries
    start = next(
        (i for i, e in enumerate(entries) if e.node.id == stage_id and e.semantic in _OWNER_TYPES),
        None,
    )
    if start is None:
        raise NotFoundError("stage", stage_id)

    steps = []
    for entry in entries[start + 1:]:
        if entry.closes == stage_id:
            break
        if entry.semantic in _STEP_TYPES and entry.enclosing_stage_id == stage_id:
            steps.append(to_step(entry))
    logger.debug("Stage %s of run %s has %d step(s)", stage_id, walk_result.run_id, len(steps))
    return steps


def get_all_steps(walk_result: WalkResult) -> list[PipelineStep]:
    """Every step of the run, stage by stage, depth first.

    Each stage contributes its own steps, then the steps of its child stages
    in creation order, so parallel branches follow the order they were
    declared. Steps outside any stage keep their walk position among the
    top-level stages.
    """
    items: dict[str | None, list[WalkedNode]] = {}
    for entry in walk_result.entries:
        if entry.semantic in _OWNER_TYPES or entry.semantic in _STEP_TYPES:
            items.setdefault(entry.enclosing_stage_id, []).append(entry)

    steps: list[PipelineStep] = []

    def visit(owner: str | None) -> None:
        group = items.get(owner, [])
        if owner is not None:
            # Stable: own steps first, child stages after, each in walk order.
            group = sorted(group, key=lambda entry: entry.semantic in _OWNER_TYPES)
        for entry in group:
            if entry.semantic in _OWNER_TYPES:
                visit(entry.node.id)
            else:
                steps.append(to_step(entry))

    visit(None)
    return steps
