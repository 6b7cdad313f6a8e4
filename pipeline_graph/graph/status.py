"""Status of individual walked nodes."""

from __future__ import annotations

from pipeline_graph.graph.classifier import is_interrupt
from pipeline_graph.models import Result, RunningState, WalkedNode


def node_result(entry: WalkedNode) -> Result | None:
    """Terminal result of a node, or None while it is still executing.

    A node without an explicit result is finished once the engine has moved
    past it (or the run is over); its error cause then decides the outcome.
    """
    node = entry.node
    if node.result is not None:
        return node.result
    if not entry.finished:
        return None
    if node.error_cause is not None:
        return Result.ABORTED if is_interrupt(node.error_cause) else Result.FAILURE
    return Result.SUCCESS


def running_state(entry: WalkedNode) -> RunningState:
    if node_result(entry) is not None:
        return RunningState.FINISHED
    if entry.node.paused:
        return RunningState.PAUSED
    if entry.node.queued:
        return RunningState.QUEUED
    return RunningState.RUNNING
