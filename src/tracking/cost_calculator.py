# src/tracking/cost_calculator.py - v2
"""Provider cost model and cost calculation.

Pricing is a static table keyed by (provider, model) in USD per 1K tokens.
Model ids are matched exactly first, then by longest known prefix, so dated
variants ("gpt-4-turbo-2024-04-09") resolve to their family. Unknown models
cost 0.0.
"""

from __future__ import annotations

from collections import defaultdict

from docuforge.tracking.models import LLMCallRecord, ModelPricing, StageUsage


def _p(provider: str, model: str, inp: float, out: float) -> ModelPricing:
    return ModelPricing(
        provider=provider, model=model,
        input_cost_per_1k=inp, output_cost_per_1k=out,
    )


DEFAULT_PRICING: dict[str, dict[str, ModelPricing]] = {
    "openai": {
        "gpt-4o": _p("openai", "gpt-4o", 0.0025, 0.01),
        "gpt-4o-mini": _p("openai", "gpt-4o-mini", 0.00015, 0.0006),
        "gpt-4-turbo": _p("openai", "gpt-4-turbo", 0.01, 0.03),
        "gpt-4": _p("openai", "gpt-4", 0.03, 0.06),
        "gpt-3.5-turbo": _p("openai", "gpt-3.5-turbo", 0.001, 0.002),
    },
    "anthropic": {
        "claude-3-opus": _p("anthropic", "claude-3-opus", 0.015, 0.075),
        "claude-3-sonnet": _p("anthropic", "claude-3-sonnet", 0.003, 0.015),
        "claude-3-5-sonnet": _p("anthropic", "claude-3-5-sonnet", 0.003, 0.015),
        "claude-3-haiku": _p("anthropic", "claude-3-haiku", 0.00025, 0.00125),
    },
    "gemini": {
        "gemini-1.5-pro": _p("gemini", "gemini-1.5-pro", 0.0035, 0.0105),
        "gemini-1.5-flash": _p("gemini", "gemini-1.5-flash", 0.00035, 0.00105),
        "gemini-pro": _p("gemini", "gemini-pro", 0.0005, 0.0015),
    },
    "perplexity": {
        "sonar-large": _p("perplexity", "sonar-large", 0.001, 0.001),
        "sonar-medium": _p("perplexity", "sonar-medium", 0.0006, 0.0006),
        "sonar-small": _p("perplexity", "sonar-small", 0.0002, 0.0002),
    },
    "llama": {
        "llama-3-70b": _p("llama", "llama-3-70b", 0.0009, 0.0009),
        "llama-3-8b": _p("llama", "llama-3-8b", 0.0002, 0.0002),
        "llama3": _p("llama", "llama3", 0.0, 0.0),
    },
}


def lookup_pricing(
    provider: str,
    model: str,
    pricing: dict[str, dict[str, ModelPricing]] | None = None,
) -> ModelPricing | None:
    """Find pricing for a model, exact id first then longest prefix."""
    table = (pricing or DEFAULT_PRICING).get(provider, {})
    if model in table:
        return table[model]
    candidates = [name for name in table if model.startswith(name)]
    if not candidates:
        return None
    return table[max(candidates, key=len)]


def estimate_cost(
    provider: str,
    model: str,
    total_tokens: int,
    input_share: float = 0.6,
    pricing: dict[str, dict[str, ModelPricing]] | None = None,
) -> float:
    """Estimate USD cost when only the token total is known.

    The input/output split is assumed, not measured.
    """
    p = lookup_pricing(provider, model, pricing)
    if p is None or total_tokens <= 0:
        return 0.0
    input_tokens = total_tokens * input_share
    output_tokens = total_tokens * (1.0 - input_share)
    return (input_tokens / 1000 * p.input_cost_per_1k
            + output_tokens / 1000 * p.output_cost_per_1k)


def compute_call_cost(
    record: LLMCallRecord,
    pricing: dict[str, dict[str, ModelPricing]] | None = None,
) -> float:
    """Compute cost for a single LLM call from its exact token split."""
    p = lookup_pricing(record.provider, record.model, pricing)
    if p is None:
        return 0.0
    return (record.input_tokens / 1000 * p.input_cost_per_1k
            + record.output_tokens / 1000 * p.output_cost_per_1k)


def compute_stage_usage(
    records: list[LLMCallRecord],
    pricing: dict[str, dict[str, ModelPricing]] | None = None,
) -> dict[str, StageUsage]:
    """Compute per-stage statistics from call records."""
    by_stage: dict[str, list[LLMCallRecord]] = defaultdict(list)
    for r in records:
        by_stage[r.stage].append(r)

    result: dict[str, StageUsage] = {}
    for stage, stage_records in by_stage.items():
        latencies = [r.latency_ms for r in stage_records]
        result[stage] = StageUsage(
            stage=stage,
            total_calls=len(stage_records),
            total_input_tokens=sum(r.input_tokens for r in stage_records),
            total_output_tokens=sum(r.output_tokens for r in stage_records),
            total_tokens=sum(r.total_tokens for r in stage_records),
            avg_latency_ms=sum(latencies) / len(latencies) if latencies else 0.0,
            retry_count=sum(r.retry_count for r in stage_records),
            failure_count=sum(1 for r in stage_records if r.status == "failed"),
            estimated_cost_usd=sum(compute_call_cost(r, pricing) for r in stage_records),
        )
    return result

