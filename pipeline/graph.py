"""
LangGraph Workflow Definition
Wires together nodes and edges for the survey grading agent.
"""

import logging
from typing import Dict, Any, Iterator, Tuple

from langgraph.graph import StateGraph, END

from .state import SurveyState, create_initial_state, get_state_summary
from .nodes import (
    load_config_node,
    load_sections_node,
    grade_sections_node,
    sequence_items_node,
    price_rows_node,
    generate_report_node,
)
from .edges import (
    route_after_config,
    route_after_load,
    mark_batch_failed,
)

logger = logging.getLogger(__name__)

RECURSION_LIMIT = 25


def create_survey_graph() -> StateGraph:
    """
    Create the LangGraph workflow for survey grading.

    Graph structure:
    ```
    START (load_config)
        │
    [route_after_config] ── fail ──┐
        │ load                     │
        ▼                          │
    load_sections                  │
        │                          │
    [route_after_load] ─── fail ───┤
        │ grade                    ▼
        ▼                     mark_failed
    grade_sections                 │
        │                          │
        ▼                          │
    sequence_items                 │
        │                          │
        ▼                          │
    price_rows                     │
        │                          │
        ▼                          │
    generate_report                │
        │                          │
        ▼                          │
       END ◄───────────────────────┘
    ```

    Returns:
        Compiled StateGraph
    """
    workflow = StateGraph(SurveyState)

    # ========================
    # Add Nodes
    # ========================

    workflow.add_node("load_config", load_config_node)
    workflow.add_node("load_sections", load_sections_node)
    workflow.add_node("grade_sections", grade_sections_node)
    workflow.add_node("sequence_items", sequence_items_node)
    workflow.add_node("price_rows", price_rows_node)
    workflow.add_node("generate_report", generate_report_node)
    workflow.add_node("mark_failed", mark_batch_failed)

    # ========================
    # Add Edges
    # ========================

    workflow.set_entry_point("load_config")

    workflow.add_conditional_edges(
        "load_config",
        route_after_config,
        {
            "load": "load_sections",
            "fail": "mark_failed"
        }
    )

    workflow.add_conditional_edges(
        "load_sections",
        route_after_load,
        {
            "grade": "grade_sections",
            "fail": "mark_failed"
        }
    )

    # Sequencing waits for every section to be graded
    workflow.add_edge("grade_sections", "sequence_items")
    workflow.add_edge("sequence_items", "price_rows")
    workflow.add_edge("price_rows", "generate_report")

    workflow.add_edge("generate_report", END)
    workflow.add_edge("mark_failed", END)

    return workflow.compile()


def run_survey_workflow(
    input_path: str,
    output_path: str,
    pricing_config_path: str = None,
    rules_path: str = None,
    sector: str = "utilities",
    upload_id: str = None,
    parallel: bool = False
) -> Dict[str, Any]:
    """
    Run the complete survey grading workflow.

    Args:
        input_path: Survey CSV export
        output_path: Directory for output reports
        pricing_config_path: Pricing YAML (None = leave costs empty)
        rules_path: Rule table YAML (None = built-in table)
        sector: Sector used to select pricing
        upload_id: Upload identifier (defaults to the input file stem)
        parallel: Grade sections on a thread pool

    Returns:
        Final workflow state with results
    """
    graph = create_survey_graph()

    initial_state = create_initial_state(
        input_path=input_path,
        output_path=output_path,
        pricing_config_path=pricing_config_path,
        rules_path=rules_path,
        sector=sector,
        upload_id=upload_id,
        parallel=parallel
    )

    logger.info(f"Starting survey workflow: {input_path} -> {output_path}")

    config = {"recursion_limit": RECURSION_LIMIT}

    try:
        final_state = graph.invoke(initial_state, config)
        logger.info(f"Workflow completed: {get_state_summary(final_state)}")
        return final_state
    except Exception as e:
        logger.error(f"Workflow failed: {e}")
        raise


def stream_survey_workflow(
    input_path: str,
    output_path: str,
    pricing_config_path: str = None,
    rules_path: str = None,
    sector: str = "utilities",
    upload_id: str = None,
    parallel: bool = False
) -> Iterator[Tuple[str, Dict[str, Any]]]:
    """
    Stream the survey workflow, yielding progress updates after each node.

    Same arguments as run_survey_workflow.

    Yields:
        Tuple of (node_name, state_update_dict) after each node executes
    """
    graph = create_survey_graph()

    initial_state = create_initial_state(
        input_path=input_path,
        output_path=output_path,
        pricing_config_path=pricing_config_path,
        rules_path=rules_path,
        sector=sector,
        upload_id=upload_id,
        parallel=parallel
    )

    logger.info(f"Starting survey workflow (streaming): {input_path} -> {output_path}")

    config = {"recursion_limit": RECURSION_LIMIT}

    try:
        for update in graph.stream(initial_state, config, stream_mode="updates"):
            if update:
                node_name = list(update.keys())[0]
                yield (node_name, update[node_name])

        logger.info("Workflow streaming completed successfully")

    except Exception as e:
        logger.error(f"Workflow streaming failed: {e}")
        raise


def get_workflow_visualization() -> str:
    """
    Get ASCII visualization of the workflow graph.

    Returns:
        ASCII art representation of the graph
    """
    return """
    Survey Grading Workflow
    =======================

              ┌─────────────┐
              │ load_config │  (rule table + pricing)
              │   (START)   │
              └──────┬──────┘
                     │ ok              fail
              ┌──────▼──────┐ ─────────────────┐
              │load_sections│  (survey CSV)    │
              └──────┬──────┘ ── fail ────┐    │
                     │ ok                 ▼    ▼
              ┌──────▼──────┐         ┌──────────┐
              │   grade     │         │   mark   │
              │  sections   │         │  failed  │
              │ (classify + │         └────┬─────┘
              │   split)    │              │
              └──────┬──────┘              │
                     ▼                     │
              ┌─────────────┐              │
              │  sequence   │  (gap report)│
              │   items     │              │
              └──────┬──────┘              │
                     ▼                     │
              ┌─────────────┐              │
              │ price_rows  │              │
              └──────┬──────┘              │
                     ▼                     │
              ┌─────────────┐              │
              │  generate   │              │
              │   report    │              │
              └──────┬──────┘              │
                     ▼                     │
                  ┌─────┐                  │
                  │ END │◄─────────────────┘
                  └─────┘
    """
