"""Tests for markdown and JSON rendering."""

from __future__ import annotations

import json

import pytest
from flow_graphs import calls_unknown_variable, complex_parallel

from pipeline_graph.graph.walker import walk
from pipeline_graph.reporting.reporter import (
    format_duration,
    generate_json_report,
    generate_markdown_report,
    write_report,
)
from pipeline_graph.steps.extractor import get_all_steps
from pipeline_graph.tree.builder import build_tree


class TestFormatDuration:
    @pytest.mark.parametrize("millis, expected", [
        (None, ""),
        (0, "0s"),
        (999, "0s"),
        (5_000, "5s"),
        (65_000, "1m 5s"),
        (3_723_000, "1h 2m"),
    ])
    def test_values(self, millis, expected):
        assert format_duration(millis) == expected


class TestMarkdownReport:
    def test_lists_stages_and_steps(self):
        walked = walk(complex_parallel().snapshot())
        md = generate_markdown_report("complexParallelSmokes", build_tree(walked), get_all_steps(walked))
        assert md.startswith("# Pipeline Run: complexParallelSmokes")
        assert "**Steps:** 10" in md
        assert "- **Branch A** (parallel, success, 100%)" in md
        assert "`On Branch A - 1 - Print Message` [SUCCESS]" in md
        assert md.index("**Nested 1**") < md.index("**Nested 2**")

    def test_steps_outside_stages(self):
        walked = walk(calls_unknown_variable().snapshot())
        md = generate_markdown_report("r", build_tree(walked), get_all_steps(walked))
        assert "## Outside Any Stage" in md
        assert "`Pipeline error` [FAILURE]" in md


class TestJsonReport:
    def test_camel_case(self, tmp_path):
        root = build_tree(walk(complex_parallel().snapshot()))
        path = tmp_path / "out" / "tree.json"
        write_report(generate_json_report(root), path)
        data = json.loads(path.read_text())
        assert data["isSynthetic"] is True
        assert data["children"][1]["children"][2]["children"][0]["nextSibling"] is not None
