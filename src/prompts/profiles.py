# src/prompts/profiles.py - v1
"""Per-document-type prompt profiles.

A profile carries the structural ingredients of each prompt: the writer's
role per provider, what the outline must emphasise, how sections should be
written and what the polish pass should improve. Prompt text is assembled
by PromptBuilder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from docuforge.config.document_types import DocumentType

LENGTH_IN_WORDS: dict[str, str] = {
    "short": "800-1,200",
    "medium": "1,500-2,500",
    "long": "3,000-5,000",
}

PROMPT_STYLES: dict[str, str] = {
    "professional": "Maintain a professional, formal tone throughout.",
    "creative": "Use creative and engaging language while maintaining accuracy.",
    "technical": "Use precise technical terminology and detailed explanations.",
    "conversational": "Write in a friendly, conversational tone.",
    "academic": "Follow academic writing standards with proper citations.",
}


def _get(payload: dict[str, Any], path: str, default: str = "") -> Any:
    node: Any = payload
    for part in path.split("."):
        if not isinstance(node, dict):
            return default
        node = node.get(part)
    return default if node in (None, "") else node


@dataclass(frozen=True)
class PromptProfile:
    document_type: DocumentType
    noun: str
    roles: dict[str, str]
    describe: Callable[[dict[str, Any]], str]
    outline_focus: list[str]
    section_guidance: list[str]
    refinement_goals: list[str]
    provider_outline_hints: dict[str, str] = field(default_factory=dict)

    def role_for(self, provider: str) -> str:
        return self.roles.get(provider) or self.roles["default"]


def _describe_biography(p: dict[str, Any]) -> str:
    return "\n".join([
        f"Subject: {_get(p, 'subject.name', 'Unnamed subject')}",
        f"Occupation: {_get(p, 'subject.occupation', 'Not specified')}",
        f"Birth date: {_get(p, 'subject.birthDate', 'Not specified')}",
        f"Birth place: {_get(p, 'subject.birthPlace', 'Not specified')}",
        f"Purpose: {_get(p, 'purpose', 'professional')}",
        f"Tone: {_get(p, 'tone', 'formal')}",
        f"Focus areas: {', '.join(_get(p, 'focusAreas', []) or []) or 'Not specified'}",
        f"Additional context: {_get(p, 'additionalInfo', 'None provided')}",
    ])


def _describe_business_plan(p: dict[str, Any]) -> str:
    return "\n".join([
        f"Business: {_get(p, 'business.name', 'Unnamed business')}",
        f"Industry: {_get(p, 'business.industry', 'Not specified')}",
        f"Stage: {_get(p, 'business.stage', 'startup')}",
        f"Location: {_get(p, 'business.location', 'Not specified')}",
        f"Audience: {_get(p, 'targetAudience', 'investors')}",
        f"Funding sought: {_get(p, 'fundingAmount', 'Not specified')}",
        f"Planning horizon: {_get(p, 'timeframe', '3 years')}",
        f"Requested sections: {', '.join(_get(p, 'sections', []) or [])}",
    ])


def _describe_grant_proposal(p: dict[str, Any]) -> str:
    return "\n".join([
        f"Organization: {_get(p, 'organization.name', 'Unnamed organization')} "
        f"({_get(p, 'organization.type', 'nonprofit')})",
        f"Funder: {_get(p, 'grant.funderName', 'Not specified')}",
        f"Program: {_get(p, 'grant.programName', 'Not specified')}",
        f"Amount requested: {_get(p, 'grant.amount', 'Not specified')}",
        f"Project: {_get(p, 'project.title', 'Not specified')} ({_get(p, 'project.duration', 'duration TBD')})",
        f"Focus area: {_get(p, 'focusArea', 'Not specified')}",
        f"Requested sections: {', '.join(_get(p, 'sections', []) or [])}",
    ])


def _describe_case_summary(p: dict[str, Any]) -> str:
    return "\n".join([
        f"Case: {_get(p, 'caseInfo.caseName', 'Unnamed case')}",
        f"Case number: {_get(p, 'caseInfo.caseNumber', 'Not specified')}",
        f"Court: {_get(p, 'caseInfo.court', 'Not specified')}",
        f"Decided: {_get(p, 'caseInfo.dateDecided', 'Not specified')}",
        f"Parties: {_get(p, 'parties.plaintiff', '?')} v. {_get(p, 'parties.defendant', '?')}",
        f"Legal issues: {'; '.join(_get(p, 'legalIssues', []) or []) or 'Not specified'}",
        f"Facts: {_get(p, 'facts', 'Not provided')}",
        f"Citation style: {_get(p, 'citationStyle', 'bluebook')}",
    ])


def _describe_medical_report(p: dict[str, Any]) -> str:
    return "\n".join([
        f"Report type: {_get(p, 'reportType', 'consultation')}",
        f"Specialty: {_get(p, 'specialty', 'general_practice')}",
        f"Purpose: {_get(p, 'reportPurpose', 'initial_consultation')}",
        f"Setting: {_get(p, 'clinicalSetting', 'hospital_outpatient')}",
        f"Sections: {', '.join(_get(p, 'includeSections', []) or [])}",
        "Template mode: use bracketed placeholders for all patient identifiers"
        if _get(p, "templateOnly", True) else "Template mode: off",
    ])


PROFILES: dict[DocumentType, PromptProfile] = {
    DocumentType.BIOGRAPHY: PromptProfile(
        document_type=DocumentType.BIOGRAPHY,
        noun="biography",
        roles={
            "default": "You are an expert biographer who writes engaging, accurate life stories.",
            "anthropic": "You are a thoughtful biographer who captures character and growth, not just achievements.",
            "perplexity": "You are a research-focused biographer who writes well-sourced, authoritative biographies.",
        },
        describe=_describe_biography,
        outline_focus=[
            "Follow a chronological or clearly thematic flow",
            "Emphasise the requested focus areas",
            "Build a narrative arc with a clear thesis",
        ],
        section_guidance=[
            "Use concrete anecdotes and dates where known",
            "Connect events to the biography's central theme",
        ],
        refinement_goals=[
            "Smooth transitions between life periods",
            "Keep a consistent voice and tense",
        ],
        provider_outline_hints={
            "perplexity": "Suggest sources worth researching for each section.",
            "anthropic": "Show growth, challenges overcome and impact on others.",
        },
    ),
    DocumentType.BUSINESS_PLAN: PromptProfile(
        document_type=DocumentType.BUSINESS_PLAN,
        noun="business plan",
        roles={
            "default": "You are a seasoned business consultant who writes investor-ready business plans.",
            "perplexity": "You are a business analyst who grounds plans in current market data.",
        },
        describe=_describe_business_plan,
        outline_focus=[
            "Cover every requested section",
            "Tie the narrative to the target audience's decision",
            "Reserve room for quantitative projections",
        ],
        section_guidance=[
            "Prefer specific figures and assumptions over generic claims",
            "State risks alongside opportunities",
        ],
        refinement_goals=[
            "Make numbers consistent across sections",
            "Tighten the executive summary",
        ],
        provider_outline_hints={
            "perplexity": "Reference recent market data where it exists.",
        },
    ),
    DocumentType.GRANT_PROPOSAL: PromptProfile(
        document_type=DocumentType.GRANT_PROPOSAL,
        noun="grant proposal",
        roles={
            "default": "You are an experienced grant writer who aligns proposals with funder priorities.",
            "perplexity": "You are a grant writer who backs every claim of need with current evidence.",
        },
        describe=_describe_grant_proposal,
        outline_focus=[
            "Align objectives with the funder's program",
            "Make the need measurable",
            "Include a budget justification",
        ],
        section_guidance=[
            "Use measurable outcomes and timelines",
            "Cite evidence for the statement of need",
        ],
        refinement_goals=[
            "Keep terminology consistent with the funder's language",
            "Make sure the budget matches the described activities",
        ],
    ),
    DocumentType.CASE_SUMMARY: PromptProfile(
        document_type=DocumentType.CASE_SUMMARY,
        noun="case summary",
        roles={
            "default": "You are a legal analyst who writes precise, neutral case summaries.",
            "perplexity": "You are a legal researcher who cites controlling authority for every point.",
        },
        describe=_describe_case_summary,
        outline_focus=[
            "Separate facts, issues, holdings and reasoning",
            "Track the procedural history",
        ],
        section_guidance=[
            "Use the requested citation style",
            "Stay neutral; attribute arguments to the parties",
        ],
        refinement_goals=["Check citation formatting"],
        provider_outline_hints={
            "perplexity": "Identify precedents worth citing for each issue.",
        },
    ),
    DocumentType.MEDICAL_REPORT: PromptProfile(
        document_type=DocumentType.MEDICAL_REPORT,
        noun="medical report",
        roles={
            "default": "You are a clinical documentation specialist who writes structured medical report templates.",
        },
        describe=_describe_medical_report,
        outline_focus=[
            "Follow standard clinical documentation order",
            "Never invent patient-identifying details",
        ],
        section_guidance=[
            "Use standard medical terminology",
            "Use bracketed placeholders for patient data",
        ],
        refinement_goals=["Keep clinical terminology consistent"],
    ),
}


def get_profile(document_type: DocumentType | str) -> PromptProfile:
    return PROFILES[DocumentType(document_type)]
