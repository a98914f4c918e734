"""LLM node: one full completion call (the client handles transport retries)."""

import logging

from exam_planner.errors import LLMError
from exam_planner.llm.client import get_llm_client
from exam_planner.models.state import PipelineState

logger = logging.getLogger("uvicorn.error")


def call_llm_node(state: PipelineState) -> dict:
    """Populates: raw_text, attempts (or error_kind/error_message)."""
    client = get_llm_client()
    attempts = state.get("attempts", 0)
    logger.info("Request %s: LLM call started", state["request_id"])
    try:
        completion = client.complete(state["prompt"], state["generation_config"])
    except LLMError as exc:
        logger.error("Request %s: LLM call failed after %d attempt(s)", state["request_id"], exc.attempts)
        return {
            "raw_text": None,
            "attempts": attempts + exc.attempts,
            "error_kind": exc.kind,
            "error_message": str(exc),
        }
    logger.info(
        "Request %s: LLM call finished (attempt %d, %d ms, %d chars)",
        state["request_id"],
        completion.attempt,
        completion.latency_ms,
        len(completion.text),
    )
    return {
        "raw_text": completion.text,
        "attempts": attempts + completion.attempt,
        "error_kind": None,
        "error_message": None,
    }
