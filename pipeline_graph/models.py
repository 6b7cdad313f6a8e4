"""Data models for raw execution graphs and the reconstructed stage tree."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class Result(str, Enum):
    SUCCESS = "SUCCESS"
    UNSTABLE = "UNSTABLE"
    FAILURE = "FAILURE"
    NOT_EXECUTED = "NOT_EXECUTED"
    ABORTED = "ABORTED"


# Combining order: a later entry wins over an earlier one.
RESULT_SEVERITY = [
    Result.SUCCESS,
    Result.NOT_EXECUTED,
    Result.UNSTABLE,
    Result.FAILURE,
    Result.ABORTED,
]


def worst_result(*results: Result | None) -> Result | None:
    """Return the most severe of the given results, ignoring None."""
    known = [r for r in results if r is not None]
    if not known:
        return None
    return max(known, key=RESULT_SEVERITY.index)


class RunningState(str, Enum):
    QUEUED = "QUEUED"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"
    FINISHED = "FINISHED"


class SemanticType(str, Enum):
    STAGE_START = "StageStart"
    STAGE_END = "StageEnd"
    PARALLEL_START = "ParallelStart"
    PARALLEL_BRANCH_START = "ParallelBranchStart"
    PARALLEL_BRANCH_END = "ParallelBranchEnd"
    PARALLEL_END = "ParallelEnd"
    STEP = "Step"
    SKIPPED = "Skipped"
    ERROR = "Error"


class StageType(str, Enum):
    STAGE = "STAGE"
    PARALLEL = "PARALLEL"


class ErrorCause(BaseModel):
    """Failure attached to a flow node by the engine."""

    type: str
    message: str = ""
    interrupt: bool = False


class RawNode(BaseModel):
    """A single flow node as recorded by the pipeline engine."""

    id: str
    display_name: str
    type_tag: str
    parent_ids: list[str] = Field(default_factory=list)
    label: str | None = None
    start_id: str | None = None
    start_time_millis: int | None = None
    duration_millis: int | None = None
    pause_duration_millis: int | None = None
    paused: bool = False
    queued: bool = False
    placeholder: bool = False
    result: Result | None = None
    error_cause: ErrorCause | None = None

    @field_validator("id", "start_id")
    @classmethod
    def _decimal_id(cls, value: str | None) -> str | None:
        if value is not None and not value.isdigit():
            raise ValueError(f"node ids are decimal strings, got {value!r}")
        return value

    @property
    def numeric_id(self) -> int:
        return int(self.id)


class GraphSnapshot(BaseModel):
    """A point-in-time view of one run's execution graph."""

    run_id: str
    nodes: list[RawNode] = Field(default_factory=list)
    complete: bool = False
    result: Result | None = None


class WalkedNode(BaseModel):
    """A raw node enriched with its position in the block structure."""

    node: RawNode
    semantic: SemanticType
    depth: int = 0
    enclosing_stage_id: str | None = None
    context: list[str] = Field(default_factory=list)
    closes: str | None = None
    finished: bool = False
    next_start_time_millis: int | None = None


class EventKind(str, Enum):
    NODE_SKIPPED = "node_skipped"
    ORPHAN_END = "orphan_end"
    UNKNOWN_TYPE = "unknown_type"
    CYCLE = "cycle"
    MISSING_PARENT = "missing_parent"


class ReconstructionEvent(BaseModel):
    """Something the reconstruction recovered from instead of failing."""

    kind: EventKind
    node_id: str | None = None
    message: str = ""


class WalkResult(BaseModel):
    """Ordered walk of a snapshot, shared by the tree builder and step extractor."""

    run_id: str
    complete: bool = False
    result: Result | None = None
    root_id: str | None = None
    entries: list[WalkedNode] = Field(default_factory=list)
    events: list[ReconstructionEvent] = Field(default_factory=list)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PipelineStage(_CamelModel):
    """One stage or parallel branch of the reconstructed tree."""

    id: str
    name: str
    state: str
    complete_percent: int
    type: StageType = StageType.STAGE
    title: str = ""
    seq_container_name: str | None = None
    next_sibling: str | None = None
    is_sequential: bool = False
    is_synthetic: bool = False
    pause_duration_millis: int | None = None
    start_time_millis: int | None = None
    total_duration_millis: int | None = None
    children: list[PipelineStage] = Field(default_factory=list)


class PipelineStep(_CamelModel):
    """A single executed step, owned by exactly one stage."""

    id: int
    name: str
    state: str
    complete_percent: int
    type: str
    title: str = ""
    stage_id: str | None = None
    start_time_millis: int | None = None
    total_duration_millis: int | None = None


class PipelineStepList(_CamelModel):
    steps: list[PipelineStep] = Field(default_factory=list)
