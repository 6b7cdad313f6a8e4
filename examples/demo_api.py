"""Demo: rebuild the stage tree and steps of a run, while running and once finished.

Run with:  python examples/demo_api.py
"""

from pathlib import Path

from pipeline_graph import JsonGraphAccessor, PipelineGraphApi
from pipeline_graph.ingestion.accessor import InMemoryGraphAccessor
from pipeline_graph.ingestion.loader import load_snapshot
from pipeline_graph.tree.builder import iter_stages

RUN_FILE = Path(__file__).parent / "runs" / "parallel-build.json"


def print_tree(api: PipelineGraphApi, run_id: str) -> None:
    root = api.build_stage_tree(run_id)
    print(f"  root: {root.name} [{root.state}] synthetic={root.is_synthetic}")
    for stage in iter_stages(root):
        print(f"    {stage.id:>3} {stage.name:<12} {stage.type.value:<8} {stage.state:<8} {stage.complete_percent}%")


def print_steps(api: PipelineGraphApi, run_id: str) -> None:
    for step in api.get_all_steps(run_id).steps:
        print(f"    stage {step.stage_id}: {step.name} [{step.state}]")


# -- Scenario 1: Finished run ---------------------------------------------------

def demo_finished():
    print("\n=== Scenario 1: Finished run ===")
    api = PipelineGraphApi(JsonGraphAccessor(RUN_FILE.parent))
    print_tree(api, "parallel-build")
    print_steps(api, "parallel-build")


# -- Scenario 2: Same run observed mid-execution --------------------------------

def demo_running():
    print("\n=== Scenario 2: Run observed mid-execution ===")
    snapshot = load_snapshot(RUN_FILE)
    partial = snapshot.model_copy(update={"nodes": snapshot.nodes[:8], "complete": False, "result": None})
    api = PipelineGraphApi(InMemoryGraphAccessor([partial]), on_event=print)
    print_tree(api, "parallel-build")
    print_steps(api, "parallel-build")


if __name__ == "__main__":
    demo_finished()
    demo_running()
