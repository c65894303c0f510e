# src/llm/token_budget.py - v2
"""Pre-generation token and cost estimation.

Rough multipliers of the input size per stage; good enough for an upfront
quote, not for billing.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import BaseModel

from docuforge.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Output tokens per input token, by stage.
_STAGE_RATIOS: dict[str, float] = {
    "outline": 2.0,
    "sections": 10.0,
    "refinement": 3.0,
}


class CostBreakdown(BaseModel):
    outline: int
    sections: int
    refinement: int


class CostEstimate(BaseModel):
    input_tokens: int
    estimated_tokens: int
    estimated_cost: float
    breakdown: CostBreakdown


def estimate_generation_cost(
    payload: dict[str, Any],
    client: BaseLLMClient,
    model: str | None = None,
) -> CostEstimate:
    """Estimate tokens and USD cost of a full generation for ``payload``.

    Args:
        payload: Validated generation input.
        client: Provider whose tokenizer approximation and prices apply.
        model: Model to price; defaults to the client's default model.
    """
    input_tokens = client.count_tokens(json.dumps(payload, sort_keys=True, default=str))
    breakdown = CostBreakdown(
        outline=int(input_tokens * _STAGE_RATIOS["outline"]),
        sections=int(input_tokens * _STAGE_RATIOS["sections"]),
        refinement=int(input_tokens * _STAGE_RATIOS["refinement"]),
    )
    total = breakdown.outline + breakdown.sections + breakdown.refinement
    cost = client.estimate_cost(total, model)
    logger.debug(
        "Estimated %d tokens ($%.4f) for %s/%s",
        total, cost, client.provider_name, model or client.default_model,
    )
    return CostEstimate(
        input_tokens=input_tokens,
        estimated_tokens=total,
        estimated_cost=cost,
        breakdown=breakdown,
    )
