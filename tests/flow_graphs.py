"""Helpers for building recorded flow graphs the way the engine would."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any

from pipeline_graph.models import ErrorCause, GraphSnapshot, RawNode, Result


class FlowGraph:
    """Append-only node store with monotonically increasing ids and timestamps."""

    def __init__(self, run_id: str, start_time: int = 1000, tick: int = 1000):
        self.run_id = run_id
        self.nodes: list[RawNode] = []
        self._next_id = 2
        self._clock = start_time
        self._tick = tick

    def add(self, type_tag: str, display_name: str, parents: list[str], **kwargs: Any) -> str:
        node_id = str(self._next_id)
        self._next_id += 1
        self.nodes.append(RawNode(
            id=node_id,
            display_name=display_name,
            type_tag=type_tag,
            parent_ids=parents,
            start_time_millis=self._clock,
            **kwargs,
        ))
        self._clock += self._tick
        return node_id

    def snapshot(self, complete: bool = True, result: Result | None = None, upto: int | None = None) -> GraphSnapshot:
        nodes = self.nodes if upto is None else self.nodes[:upto]
        return GraphSnapshot(run_id=self.run_id, nodes=list(nodes), complete=complete, result=result)


class Cursor:
    """One thread of execution: every node it adds hangs off the previous one."""

    def __init__(self, graph: FlowGraph, tip: str, start_id: str | None = None):
        self.graph = graph
        self.tip = tip
        self.start_id = start_id

    def add(self, type_tag: str, display_name: str, **kwargs: Any) -> str:
        self.tip = self.graph.add(type_tag, display_name, [self.tip], **kwargs)
        return self.tip

    def step(self, display_name: str = "Print Message", label: str | None = None, **kwargs: Any) -> str:
        return self.add("step", display_name, label=label, **kwargs)

    def end(self, start_id: str, type_tag: str = "block_end", **kwargs: Any) -> str:
        return self.add(type_tag, "End", start_id=start_id, **kwargs)

    @contextmanager
    def stage(self, name: str, end_result: Result | None = None, **kwargs: Any):
        start = self.add("stage_start", name, label=name, **kwargs)
        yield start
        self.end(start, result=end_result)

    def parallel(self, *names: str) -> Parallel:
        start = self.add("parallel_start", "Execute in parallel")
        branches = [
            Cursor(self.graph, branch_id, start_id=branch_id)
            for branch_id in (
                self.graph.add("parallel_branch_start", f"Branch: {name}", [start], label=name)
                for name in names
            )
        ]
        return Parallel(self, start, branches)


class Parallel:
    def __init__(self, owner: Cursor, start_id: str, branches: list[Cursor]):
        self.owner = owner
        self.start_id = start_id
        self.branches = branches

    def join(self) -> str:
        ends = [branch.end(branch.start_id) for branch in self.branches]
        self.owner.tip = self.owner.graph.add("block_end", "End parallel", ends, start_id=self.start_id)
        return self.owner.tip


class FlowGraphBuilder(Cursor):
    """Main thread of a run, starting at the flow start node."""

    def __init__(self, run_id: str = "run-1"):
        graph = FlowGraph(run_id)
        super().__init__(graph, graph.add("flow_start", "Start of Pipeline", []))

    @property
    def nodes(self) -> list[RawNode]:
        return self.graph.nodes

    def finish(self, result: Result | None = None, error: ErrorCause | None = None) -> str:
        return self.add("flow_end", "End of Pipeline", result=result, error_cause=error)

    def snapshot(self, **kwargs: Any) -> GraphSnapshot:
        return self.graph.snapshot(**kwargs)

    def find(self, display_name: str) -> str:
        return next(n.id for n in self.graph.nodes if n.display_name == display_name)


# ---------------------------------------------------------------------------
# Canonical runs
# ---------------------------------------------------------------------------

def complex_parallel() -> FlowGraphBuilder:
    """A plain stage, then three branches; C runs two sequential nested stages."""
    b = FlowGraphBuilder("complexParallelSmokes")
    with b.stage("Non-Parallel Stage"):
        b.step(label="This stage will be executed first.")
        b.step()
    with b.stage("Parallel Stage"):
        par = b.parallel("Branch A", "Branch B", "Branch C")
        a, bb, c = par.branches
        a.step(label="On Branch A - 1")
        bb.step(label="On Branch B - 1")
        with c.stage("Nested 1"):
            c.step(label="In stage Nested 1 - 1 within Branch C")
            c.step(label="In stage Nested 1 - 2 within Branch C")
        a.step(label="On Branch A - 2")
        bb.step(label="On Branch B - 2")
        with c.stage("Nested 2"):
            c.step(label="In stage Nested 2 - 1 within Branch C")
            c.step(label="In stage Nested 2 - 2 within Branch C")
        par.join()
    b.finish(result=Result.SUCCESS)
    return b


def nested_stages() -> FlowGraphBuilder:
    b = FlowGraphBuilder("nestedStages")
    with b.stage("Parent"):
        with b.stage("Child A"):
            b.step(label="In child A")
        with b.stage("Child B"):
            with b.stage("Grandchild B"):
                b.step(label="In grandchild B")
        with b.stage("Child C"):
            with b.stage("Grandchild C"):
                with b.stage("Great-grandchild C"):
                    b.step(label="In great-grandchild C")
    b.finish(result=Result.SUCCESS)
    return b


def unstable_smokes() -> FlowGraphBuilder:
    b = FlowGraphBuilder("unstableSmokes")
    with b.stage("unstable-one"):
        b.step(label="foo")
        b.step("Set stage result to unstable", label="oops-one", result=Result.UNSTABLE)
        b.step(label="bar")
    with b.stage("success"):
        b.step(label="baz")
    with b.stage("unstable-two", end_result=Result.UNSTABLE):
        b.step(
            "Error signal",
            label="will-be-caught",
            error_cause=ErrorCause(type="hudson.AbortException", message="will-be-caught"),
        )
        b.step("Set stage result to unstable", label="oops-two", result=Result.UNSTABLE)
    with b.stage("failure"):
        b.step("Set stage result to unstable", label="oops-masked", result=Result.UNSTABLE)
        b.step(
            "Error signal",
            label="oops-failure",
            error_cause=ErrorCause(type="hudson.AbortException", message="oops-failure"),
        )
    b.finish(result=Result.FAILURE)
    return b


def calls_unknown_variable() -> FlowGraphBuilder:
    b = FlowGraphBuilder("callsUnknownVariable")
    with b.stage("success"):
        b.step(label="hello")
    b.finish(
        result=Result.FAILURE,
        error=ErrorCause(
            type="groovy.lang.MissingPropertyException",
            message="No such property: undefinedVariable for class: WorkflowScript",
        ),
    )
    return b


def interrupted_branch() -> FlowGraphBuilder:
    """One branch fails; the engine interrupts its sibling."""
    b = FlowGraphBuilder("interruptedBranch")
    with b.stage("parallel"):
        par = b.parallel("failure", "sleeper")
        failing, sleeper = par.branches
        sleeper.step(
            "Sleep",
            label="60",
            result=Result.ABORTED,
            error_cause=ErrorCause(
                type="org.jenkinsci.plugins.workflow.steps.FlowInterruptedException",
                interrupt=True,
            ),
        )
        failing.step(
            "Error signal",
            label="oops",
            error_cause=ErrorCause(type="hudson.AbortException", message="oops"),
        )
        par.join()
    b.finish(result=Result.FAILURE)
    return b


def sequential_with_sleep() -> FlowGraphBuilder:
    b = FlowGraphBuilder("sequentialWithSleep")
    with b.stage("Checkout"):
        b.step(label="Checking out")
    with b.stage("Build"):
        b.step(label="Starting sleep...")
        b.step("Sleep", label="5")
        b.step(label="Slept")
    with b.stage("Deploy"):
        b.step(label="Deploying...")
    b.finish(result=Result.SUCCESS)
    return b
