"""LangGraph graph builder: assembles the study-plan pipeline."""

from langgraph.graph import END, START, StateGraph

from exam_planner.graph.routing import (
    route_after_build_prompt,
    route_after_call_llm,
    route_after_parse_plan,
    route_after_persist_plan,
)
from exam_planner.models.state import PipelineState
from exam_planner.nodes.build_prompt import build_prompt_node
from exam_planner.nodes.call_llm import call_llm_node
from exam_planner.nodes.parse_plan import parse_plan_node
from exam_planner.nodes.persist_plan import persist_plan_node
from exam_planner.nodes.recovery import fail_node, local_plan_node, regenerate_node


def build_graph():
    """Construct and compile the pipeline graph.

    Graph topology::

        START → build_prompt → call_llm → parse_plan → persist_plan → END
                     │             │           │              │
                     │             │           ├→ regenerate → call_llm
                     │             └───────────┴→ local_plan → persist_plan
                     └──────────────────────────→ fail → END

    Returns
    -------
    langgraph.graph.CompiledGraph
        The compiled, ready-to-stream graph.
    """
    graph = StateGraph(PipelineState)

    # --- Add nodes ---
    graph.add_node("build_prompt", build_prompt_node)
    graph.add_node("call_llm", call_llm_node)
    graph.add_node("parse_plan", parse_plan_node)
    graph.add_node("regenerate", regenerate_node)
    graph.add_node("persist_plan", persist_plan_node)
    graph.add_node("local_plan", local_plan_node)
    graph.add_node("fail", fail_node)

    # --- Entry point ---
    graph.add_edge(START, "build_prompt")

    graph.add_conditional_edges(
        "build_prompt",
        route_after_build_prompt,
        {"call_llm": "call_llm", "fail": "fail"},
    )
    graph.add_conditional_edges(
        "call_llm",
        route_after_call_llm,
        {"parse_plan": "parse_plan", "local_plan": "local_plan", "fail": "fail"},
    )
    graph.add_conditional_edges(
        "parse_plan",
        route_after_parse_plan,
        {
            "persist_plan": "persist_plan",
            "regenerate": "regenerate",
            "local_plan": "local_plan",
            "fail": "fail",
        },
    )
    graph.add_conditional_edges(
        "persist_plan",
        route_after_persist_plan,
        {"end": END, "fail": "fail"},
    )

    graph.add_edge("regenerate", "call_llm")
    graph.add_edge("local_plan", "persist_plan")
    graph.add_edge("fail", END)

    return graph.compile()
