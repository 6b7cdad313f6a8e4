"""Walk a run's flow graph in execution order, tracking open blocks."""

from __future__ import annotations

import logging
import sys

import networkx as nx

from pipeline_graph.events import EventCallback, emit
from pipeline_graph.graph.classifier import (
    END_FOR_START,
    END_TYPES,
    START_TYPES,
    Frame,
    classify,
    is_known_tag,
)
from pipeline_graph.models import (
    EventKind,
    GraphSnapshot,
    RawNode,
    ReconstructionEvent,
    SemanticType,
    WalkedNode,
    WalkResult,
)

logger = logging.getLogger(__name__)


def build_flow_graph(
    snapshot: GraphSnapshot,
    events: list[ReconstructionEvent] | None = None,
    on_event: EventCallback | None = None,
) -> nx.DiGraph:
    """Build a directed graph from a snapshot's nodes.

    Nodes are keyed by id and carry the RawNode under the ``node`` attribute.
    Edges run parent -> child. Links to unknown parents are dropped and any
    cycle is broken so the result is always a DAG.
    """
    events = events if events is not None else []
    graph = nx.DiGraph()

    for node in snapshot.nodes:
        if node.id in graph:
            events.append(emit(logger, on_event, EventKind.NODE_SKIPPED, node.id, "duplicate node id"))
            continue
        graph.add_node(node.id, node=node)

    for node in snapshot.nodes:
        if graph.nodes[node.id]["node"] is not node:
            continue
        for parent_id in node.parent_ids:
            if parent_id not in graph:
                events.append(emit(
                    logger, on_event, EventKind.MISSING_PARENT, node.id,
                    f"parent {parent_id} is not in the graph",
                ))
                continue
            graph.add_edge(parent_id, node.id)

    while True:
        try:
            cycle = nx.find_cycle(graph)
        except nx.NetworkXNoCycle:
            break
        # Ids grow monotonically, so an edge into an older node is the bad one.
        u, v = next(((a, b) for a, b, *_ in cycle if int(a) >= int(b)), cycle[-1][:2])
        graph.remove_edge(u, v)
        events.append(emit(logger, on_event, EventKind.CYCLE, v, f"dropped parent link {u} -> {v}"))

    return graph


def _sort_key(node: RawNode) -> tuple[int, int]:
    start = node.start_time_millis if node.start_time_millis is not None else sys.maxsize
    return (start, node.numeric_id)


def _match_end(stack: tuple[Frame, ...], node: RawNode, semantic: SemanticType) -> int | None:
    """Index of the frame an end node closes, or None for an orphan."""
    if node.start_id is not None:
        for index, (frame_id, frame_type) in enumerate(stack):
            if frame_id == node.start_id and END_FOR_START[frame_type] == semantic:
                return index
        return None
    if stack and END_FOR_START[stack[-1][1]] == semantic:
        return len(stack) - 1
    return None


def walk(snapshot: GraphSnapshot, on_event: EventCallback | None = None) -> WalkResult:
    """Produce the ordered, enriched node sequence for a snapshot.

    Every node inherits the open-block stack of its first parent, so
    interleaved parallel branches keep separate contexts. Placeholders are
    dropped; ends without a matching start are passed through with
    ``closes=None`` for the tree builder to reconcile.
    """
    events: list[ReconstructionEvent] = []
    graph = build_flow_graph(snapshot, events, on_event)

    order = nx.lexicographical_topological_sort(
        graph, key=lambda node_id: _sort_key(graph.nodes[node_id]["node"])
    )

    stacks: dict[str, tuple[Frame, ...]] = {}
    entries: list[WalkedNode] = []
    root_id = None

    for node_id in order:
        node: RawNode = graph.nodes[node_id]["node"]
        parents = [p for p in node.parent_ids if graph.has_edge(p, node_id)]
        stack = stacks[parents[0]] if parents else ()

        if node.placeholder:
            stacks[node_id] = stack
            events.append(emit(logger, on_event, EventKind.NODE_SKIPPED, node_id, "not-yet-executed placeholder"))
            continue

        if not is_known_tag(node.type_tag):
            events.append(emit(
                logger, on_event, EventKind.UNKNOWN_TYPE, node_id,
                f"unrecognized type tag {node.type_tag!r}, treating as step",
            ))

        semantic = classify(node, stack)
        if node.type_tag == "flow_start" and root_id is None:
            root_id = node_id

        closes = None
        after = stack
        if semantic in START_TYPES:
            after = stack + ((node_id, semantic),)
        elif semantic in END_TYPES:
            index = _match_end(stack, node, semantic)
            if index is not None:
                closes = stack[index][0]
                after = stack[:index]
        stacks[node_id] = after

        stage_frames = [frame_id for frame_id, kind in stack if kind != SemanticType.PARALLEL_START]
        successor_starts = [
            graph.nodes[child]["node"].start_time_millis
            for child in graph.successors(node_id)
            if graph.nodes[child]["node"].start_time_millis is not None
        ]

        entries.append(WalkedNode(
            node=node,
            semantic=semantic,
            depth=len(stage_frames),
            enclosing_stage_id=stage_frames[-1] if stage_frames else None,
            context=[frame_id for frame_id, _ in stack],
            closes=closes,
            finished=(
                node.result is not None
                or graph.out_degree(node_id) > 0
                or snapshot.complete
            ),
            next_start_time_millis=min(successor_starts) if successor_starts else None,
        ))

    return WalkResult(
        run_id=snapshot.run_id,
        complete=snapshot.complete,
        result=snapshot.result,
        root_id=root_id,
        entries=entries,
        events=events,
    )
