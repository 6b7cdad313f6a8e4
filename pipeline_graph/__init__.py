"""pipeline-graph — rebuild stage trees and step lists from pipeline flow graphs."""

__version__ = "0.1.0"

from pipeline_graph.api import PipelineGraphApi
from pipeline_graph.errors import NotFoundError
from pipeline_graph.ingestion.accessor import ExecutionGraphAccessor, InMemoryGraphAccessor, JsonGraphAccessor
from pipeline_graph.models import GraphSnapshot, PipelineStage, PipelineStep, RawNode

__all__ = [
    "ExecutionGraphAccessor",
    "GraphSnapshot",
    "InMemoryGraphAccessor",
    "JsonGraphAccessor",
    "NotFoundError",
    "PipelineGraphApi",
    "PipelineStage",
    "PipelineStep",
    "RawNode",
]
