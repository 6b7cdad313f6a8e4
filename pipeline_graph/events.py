"""Reporting of recoverable anomalies found while reconstructing a run."""

from __future__ import annotations

import logging
from typing import Callable

from pipeline_graph.models import EventKind, ReconstructionEvent

EventCallback = Callable[[ReconstructionEvent], None]

_WARNING_KINDS = {EventKind.ORPHAN_END, EventKind.CYCLE, EventKind.MISSING_PARENT}


def emit(
    logger: logging.Logger,
    on_event: EventCallback | None,
    kind: EventKind,
    node_id: str | None,
    message: str,
) -> ReconstructionEvent:
    """Log an anomaly and hand it to the caller's observer, if any."""
    event = ReconstructionEvent(kind=kind, node_id=node_id, message=message)
    level = logging.WARNING if kind in _WARNING_KINDS else logging.DEBUG
    logger.log(level, "%s at node %s: %s", kind.value, node_id, message)
    if on_event:
        on_event(event)
    return event
