"""Read-only access to the execution graphs recorded by the pipeline engine."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from pipeline_graph.errors import NotFoundError
from pipeline_graph.ingestion.loader import load_snapshot
from pipeline_graph.models import GraphSnapshot, RawNode

logger = logging.getLogger(__name__)


class ExecutionGraphAccessor(ABC):
    """Interface to the engine's recorded flow graphs."""

    @abstractmethod
    def get_graph_snapshot(self, run_id: str) -> GraphSnapshot:
        """Return a consistent point-in-time view of a run's graph.

        Raises NotFoundError for an unknown run.
        """

    def get_node(self, run_id: str, node_id: str) -> RawNode:
        """Look up a single node of a run."""
        for node in self.get_graph_snapshot(run_id).nodes:
            if node.id == node_id:
                return node
        raise NotFoundError("node", node_id)

    def is_run_complete(self, run_id: str) -> bool:
        return self.get_graph_snapshot(run_id).complete


class InMemoryGraphAccessor(ExecutionGraphAccessor):
    """Serves snapshots held in memory, keyed by run id."""

    def __init__(self, snapshots: list[GraphSnapshot] | None = None):
        self._snapshots: dict[str, GraphSnapshot] = {}
        for snapshot in snapshots or []:
            self.put(snapshot)

    def put(self, snapshot: GraphSnapshot) -> None:
        """Add or replace the snapshot for a run."""
        self._snapshots[snapshot.run_id] = snapshot

    def get_graph_snapshot(self, run_id: str) -> GraphSnapshot:
        try:
            return self._snapshots[run_id]
        except KeyError:
            raise NotFoundError("run", run_id) from None


class JsonGraphAccessor(ExecutionGraphAccessor):
    """Reads ``<run_id>.json`` snapshot files from a directory.

    Files are re-read on every call so a run that is still being written
    is observed as it grows.
    """

    def __init__(self, runs_dir: str | Path):
        self._runs_dir = Path(runs_dir)

    def _path(self, run_id: str) -> Path:
        return self._runs_dir / f"{run_id}.json"

    def get_graph_snapshot(self, run_id: str) -> GraphSnapshot:
        path = self._path(run_id)
        if not path.is_file():
            raise NotFoundError("run", run_id)
        logger.debug("Loading snapshot for run %s from %s", run_id, path)
        return load_snapshot(path)

    def list_runs(self) -> list[str]:
        return sorted(p.stem for p in self._runs_dir.glob("*.json"))
