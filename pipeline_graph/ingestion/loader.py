"""Load and validate execution graph snapshots from JSON files."""

import logging
from pathlib import Path

from pipeline_graph.models import GraphSnapshot

logger = logging.getLogger(__name__)


def load_snapshot(path: str | Path) -> GraphSnapshot:
    """Load a run's graph snapshot from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        pydantic.ValidationError: If the content is not a valid GraphSnapshot.
    """
    path = Path(path)
    snapshot = GraphSnapshot.model_validate_json(path.read_text())
    logger.debug("Loaded run %s (%d nodes) from %s", snapshot.run_id, len(snapshot.nodes), path)
    return snapshot
