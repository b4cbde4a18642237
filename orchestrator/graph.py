"""
LangGraph StateGraph definition for the medical bill pipeline.

Flow:
  verification_agent → ocr_agent → extraction_agent → validation_agent
          ↓                ↓                                  ↓
         END (not a bill)  END (OCR failed)       route_after_validation
                                                  /                    \\
                                          storage_agent          END (invalid)
                                                ↓
                                               END
"""

from __future__ import annotations

from langgraph.graph import END, StateGraph

from agents.extraction_agent import extraction_agent
from agents.ocr_agent import ocr_agent
from agents.storage_agent import storage_agent
from agents.validation_agent import validation_agent
from agents.verification_agent import verification_agent
from orchestrator.router import route_after_ocr, route_after_validation, route_after_verification
from orchestrator.state import BillState


def build_graph() -> StateGraph:
    """Build and return the (uncompiled) bill processing StateGraph."""
    workflow = StateGraph(BillState)

    # ---- nodes -------------------------------------------------------
    workflow.add_node("verification_agent", verification_agent)
    workflow.add_node("ocr_agent",          ocr_agent)
    workflow.add_node("extraction_agent",   extraction_agent)
    workflow.add_node("validation_agent",   validation_agent)
    workflow.add_node("storage_agent",      storage_agent)

    # ---- entry point -------------------------------------------------
    workflow.set_entry_point("verification_agent")

    # ---- linear edges ------------------------------------------------
    workflow.add_edge("extraction_agent", "validation_agent")
    workflow.add_edge("storage_agent",    END)

    # ---- conditional edges -------------------------------------------
    workflow.add_conditional_edges(
        "verification_agent",
        route_after_verification,
        {"ocr_agent": "ocr_agent", "__end__": END},
    )
    workflow.add_conditional_edges(
        "ocr_agent",
        route_after_ocr,
        {"extraction_agent": "extraction_agent", "__end__": END},
    )
    workflow.add_conditional_edges(
        "validation_agent",
        route_after_validation,
        {"storage_agent": "storage_agent", "__end__": END},
    )

    return workflow


# Compiled graph — import this in the API layer
graph = build_graph().compile()
