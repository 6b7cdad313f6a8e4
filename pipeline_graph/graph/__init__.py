"""Flow graph classification and traversal."""

from pipeline_graph.graph.classifier import classify
from pipeline_graph.graph.walker import build_flow_graph, walk

__all__ = ["build_flow_graph", "classify", "walk"]
