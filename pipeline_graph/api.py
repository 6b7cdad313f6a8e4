"""Consumer-facing entry points: stage tree and step lists for a run."""

from __future__ import annotations

import logging

from pipeline_graph.errors import NotFoundError
from pipeline_graph.events import EventCallback
from pipeline_graph.graph.walker import walk
from pipeline_graph.ingestion.accessor import ExecutionGraphAccessor
from pipeline_graph.models import PipelineStage, PipelineStepList, WalkResult
from pipeline_graph.steps import extractor
from pipeline_graph.tree.builder import build_tree

logger = logging.getLogger(__name__)


class PipelineGraphApi:
    """Rebuilds the stage tree and step lists of a run on every call.

    Nothing is cached between calls: each query takes its own snapshot,
    so concurrent callers only ever see a consistent, possibly longer, graph.
    """

    def __init__(
        self,
        accessor: ExecutionGraphAccessor,
        on_event: EventCallback | None = None,
    ) -> None:
        self._accessor = accessor
        self._on_event = on_event

    def _walk(self, run_id: str) -> WalkResult:
        snapshot = self._accessor.get_graph_snapshot(run_id)
        result = walk(snapshot, on_event=self._on_event)
        logger.debug(
            "Walked run %s: %d node(s), %d event(s), complete=%s",
            run_id, len(result.entries), len(result.events), result.complete,
        )
        return result

    def build_stage_tree(self, run_id: str) -> PipelineStage:
        return build_tree(self._walk(run_id), on_event=self._on_event)

    def get_steps(self, run_id: str, stage_id: str) -> PipelineStepList:
        return PipelineStepList(steps=extractor.get_steps(self._walk(run_id), stage_id))

    def get_all_steps(self, run_id: str) -> PipelineStepList:
        return PipelineStepList(steps=extractor.get_all_steps(self._walk(run_id)))

    def get_exception_text(self, run_id: str, node_id: str) -> str | None:
        """Error text shown for a step, with engine interrupt signals suppressed."""
        node = self._accessor.get_node(run_id, node_id)
        return extractor.get_exception_text(node)

    def find_nodes_by_name(self, run_id: str, name: str) -> list[str]:
        """Ids of nodes whose display name or label equals ``name``, in id order."""
        snapshot = self._accessor.get_graph_snapshot(run_id)
        ids = [n.id for n in snapshot.nodes if name in (n.display_name, n.label)]
        if not ids:
            raise NotFoundError("node name", name)
        return sorted(ids, key=int)
