"""Map raw flow nodes to the semantic types the reconstruction works with."""

from __future__ import annotations

from typing import Sequence

from pipeline_graph.models import ErrorCause, RawNode, SemanticType

# Engine signals used to unwind sibling parallel branches. Never user-facing.
INTERRUPT_SIGNAL_TYPES = frozenset({
    "FlowInterruptedException",
    "org.jenkinsci.plugins.workflow.steps.FlowInterruptedException",
    "InterruptedException",
})

_DIRECT = {
    "stage_start": SemanticType.STAGE_START,
    "stage_end": SemanticType.STAGE_END,
    "parallel_start": SemanticType.PARALLEL_START,
    "parallel_end": SemanticType.PARALLEL_END,
    "parallel_branch_start": SemanticType.PARALLEL_BRANCH_START,
    "parallel_branch_end": SemanticType.PARALLEL_BRANCH_END,
    "step": SemanticType.STEP,
    "atom": SemanticType.STEP,
    "error": SemanticType.ERROR,
}

_BOOKKEEPING = frozenset({"flow_start", "body_start", "body_end"})

# Which end closes which start.
END_FOR_START = {
    SemanticType.STAGE_START: SemanticType.STAGE_END,
    SemanticType.PARALLEL_BRANCH_START: SemanticType.PARALLEL_BRANCH_END,
    SemanticType.PARALLEL_START: SemanticType.PARALLEL_END,
}

START_TYPES = frozenset(END_FOR_START)
END_TYPES = frozenset(END_FOR_START.values())

KNOWN_TAGS = frozenset(_DIRECT) | _BOOKKEEPING | {"flow_end", "block_end"}

Frame = tuple[str, SemanticType]


def is_interrupt(cause: ErrorCause | None) -> bool:
    """True when the cause is engine plumbing rather than a real failure."""
    if cause is None:
        return False
    return cause.interrupt or cause.type in INTERRUPT_SIGNAL_TYPES


def is_known_tag(type_tag: str) -> bool:
    return type_tag in KNOWN_TAGS


def classify(node: RawNode, open_stack: Sequence[Frame] = ()) -> SemanticType:
    """Classify a node given the containers open at that point.

    The stack is only consulted for generic ``block_end`` nodes. Unknown
    type tags fall back to Step so one odd node never hides the rest of a run.
    """
    if node.placeholder or node.type_tag in _BOOKKEEPING:
        return SemanticType.SKIPPED

    if node.type_tag == "flow_end":
        if node.error_cause is not None and not is_interrupt(node.error_cause):
            return SemanticType.ERROR
        return SemanticType.SKIPPED

    if node.type_tag == "block_end":
        return _classify_block_end(node, open_stack)

    return _DIRECT.get(node.type_tag, SemanticType.STEP)


def _classify_block_end(node: RawNode, open_stack: Sequence[Frame]) -> SemanticType:
    if node.start_id is not None:
        for frame_id, frame_type in open_stack:
            if frame_id == node.start_id:
                return END_FOR_START[frame_type]
    if open_stack:
        return END_FOR_START[open_stack[-1][1]]
    return SemanticType.STAGE_END
