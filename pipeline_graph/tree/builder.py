"""Assemble the nested stage tree from a walked flow graph."""

from __future__ import annotations

import logging

from pipeline_graph.events import EventCallback, emit
from pipeline_graph.graph.classifier import END_TYPES, START_TYPES
from pipeline_graph.graph.status import node_result, running_state
from pipeline_graph.models import (
    EventKind,
    PipelineStage,
    Result,
    RunningState,
    SemanticType,
    StageType,
    WalkedNode,
    WalkResult,
    worst_result,
)

logger = logging.getLogger(__name__)

# Placeholder shown for any stage still executing. Not a progress estimate.
RUNNING_COMPLETE_PERCENT = 50
FINISHED_COMPLETE_PERCENT = 100


class _Frame:
    """A block under construction. Converted to PipelineStage once the walk is done."""

    def __init__(self, entry: WalkedNode | None, kind: SemanticType | None):
        self.entry = entry
        self.kind = kind
        self.end: WalkedNode | None = None
        self.children: list[_Frame] = []
        self.contents: list[WalkedNode] = []

    @property
    def is_parallel_container(self) -> bool:
        return self.kind == SemanticType.PARALLEL_START

    def flattened_children(self) -> list[_Frame]:
        """Children with synthetic parallel containers replaced by their branches."""
        result = []
        for child in self.children:
            if child.is_parallel_container:
                result.extend(child.flattened_children())
            else:
                result.append(child)
        return result


class _Summary:
    """What a finalized subtree reports to its parent."""

    def __init__(self, stage: PipelineStage, result: Result | None, pause: int, paused: bool):
        self.stage = stage
        self.result = result
        self.pause = pause
        self.paused = paused


def _assemble(walk_result: WalkResult, on_event: EventCallback | None) -> _Frame:
    """First phase: build the raw frame tree, synthetic containers included."""
    root = _Frame(None, None)
    frames: dict[str, _Frame] = {}

    for entry in walk_result.entries:
        owner = frames.get(entry.context[-1], root) if entry.context else root

        if entry.semantic in START_TYPES:
            frame = _Frame(entry, entry.semantic)
            frames[entry.node.id] = frame
            owner.children.append(frame)
        elif entry.semantic in END_TYPES:
            if entry.closes is None or entry.closes not in frames:
                emit(
                    logger, on_event, EventKind.ORPHAN_END, entry.node.id,
                    f"{entry.semantic.value} without a matching open block, dropped",
                )
                continue
            frames[entry.closes].end = entry
        elif entry.semantic != SemanticType.SKIPPED:
            # Steps belong to the stage, never to a parallel container.
            frames.get(entry.enclosing_stage_id, root).contents.append(entry)

    return root


def _duration(frame: _Frame) -> int | None:
    start = frame.entry.node
    if start.duration_millis is not None:
        return start.duration_millis
    if frame.end is not None and start.start_time_millis is not None and frame.end.node.start_time_millis is not None:
        return frame.end.node.start_time_millis - start.start_time_millis
    return None


def _state(
    result: Result | None,
    closed: bool,
    complete: bool,
    paused: bool,
    queued: bool,
) -> tuple[str, int]:
    if closed or complete:
        return (result or Result.SUCCESS).value.lower(), FINISHED_COMPLETE_PERCENT
    if paused:
        return RunningState.PAUSED.value.lower(), RUNNING_COMPLETE_PERCENT
    if queued:
        return RunningState.QUEUED.value.lower(), RUNNING_COMPLETE_PERCENT
    return RunningState.RUNNING.value.lower(), RUNNING_COMPLETE_PERCENT


def _finalize(frame: _Frame, walk_result: WalkResult) -> _Summary:
    """Second phase: convert a frame and its subtree, flattening parallel containers."""
    children = [_finalize(child, walk_result) for child in frame.flattened_children()]

    if frame.kind == SemanticType.PARALLEL_BRANCH_START:
        _link_sequential(frame, children)

    node = frame.entry.node
    closed = frame.end is not None
    content_results = [node_result(e) for e in frame.contents] + [c.result for c in children]
    content_result = worst_result(*content_results)

    if node.result == Result.NOT_EXECUTED:
        result = Result.NOT_EXECUTED
    elif closed:
        result = frame.end.node.result or node.result or content_result or Result.SUCCESS
    elif walk_result.complete:
        result = worst_result(content_result, walk_result.result) or Result.SUCCESS
    else:
        result = None

    pause = (node.pause_duration_millis or 0) + sum(e.node.pause_duration_millis or 0 for e in frame.contents)
    pause += sum(c.pause for c in children)
    paused = any(running_state(e) == RunningState.PAUSED for e in frame.contents) or any(c.paused for c in children)
    queued = node.queued and not frame.contents and not children

    if result == Result.NOT_EXECUTED:
        state, percent = Result.NOT_EXECUTED.value.lower(), FINISHED_COMPLETE_PERCENT
    else:
        state, percent = _state(result, closed, walk_result.complete, paused, queued)

    stage = PipelineStage(
        id=node.id,
        name=node.label or node.display_name,
        state=state,
        complete_percent=percent,
        type=StageType.PARALLEL if frame.kind == SemanticType.PARALLEL_BRANCH_START else StageType.STAGE,
        title=node.display_name,
        pause_duration_millis=pause,
        start_time_millis=node.start_time_millis,
        total_duration_millis=_duration(frame),
        children=[c.stage for c in children],
    )
    return _Summary(stage, result, pause, paused)


def _link_sequential(branch: _Frame, children: list[_Summary]) -> None:
    """Stages directly inside a parallel branch form one sequential chain."""
    stages = [c for c in children if c.stage.type == StageType.STAGE]
    branch_name = branch.entry.node.label or branch.entry.node.display_name
    for index, summary in enumerate(stages):
        following = stages[index + 1].stage.id if index + 1 < len(stages) else None
        summary.stage = summary.stage.model_copy(update={
            "is_sequential": True,
            "seq_container_name": branch_name,
            "next_sibling": following,
        })


def build_tree(walk_result: WalkResult, on_event: EventCallback | None = None) -> PipelineStage:
    """Build the stage tree for a walked run.

    A run with a single top-level stage is rooted at that stage. Anything
    else (several stages, bare top-level parallel branches, no stages at all)
    hangs off an invisible synthetic root.
    """
    root = _assemble(walk_result, on_event)
    top = [_finalize(child, walk_result) for child in root.flattened_children()]

    if len(top) == 1 and top[0].stage.type == StageType.STAGE:
        return top[0].stage

    content_result = worst_result(*[node_result(e) for e in root.contents], *[c.result for c in top])
    if walk_result.complete:
        result = worst_result(content_result, walk_result.result) or Result.SUCCESS
        state, percent = result.value.lower(), FINISHED_COMPLETE_PERCENT
    else:
        state, percent = RunningState.RUNNING.value.lower(), RUNNING_COMPLETE_PERCENT

    starts = [c.stage.start_time_millis for c in top if c.stage.start_time_millis is not None]
    return PipelineStage(
        id=walk_result.root_id or walk_result.run_id,
        name=walk_result.run_id,
        state=state,
        complete_percent=percent,
        title=walk_result.run_id,
        is_synthetic=True,
        pause_duration_millis=sum(c.pause for c in top),
        start_time_millis=min(starts) if starts else None,
        children=[c.stage for c in top],
    )


def iter_stages(stage: PipelineStage, include_synthetic: bool = False):
    """Pre-order traversal of a stage tree."""
    if include_synthetic or not stage.is_synthetic:
        yield stage
    for child in stage.children:
        yield from iter_stages(child, include_synthetic)
