# src/config/document_types.py - v1
"""Declarative document-type table.

Default cache TTLs, sensitivity ranking, refinement eligibility and the
canonical section ids used by outline post-processing and cache warming.
TTLs can be overridden per deployment through Settings.
"""

from __future__ import annotations

from enum import Enum


class DocumentType(str, Enum):
    """Document families the generator knows how to plan and write."""

    BIOGRAPHY = "biography"
    BUSINESS_PLAN = "business_plan"
    GRANT_PROPOSAL = "grant_proposal"
    CASE_SUMMARY = "case_summary"
    MEDICAL_REPORT = "medical_report"

    @classmethod
    def _missing_(cls, value: object) -> DocumentType | None:
        # Accept "BIOGRAPHY", "Business-Plan", etc.
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
            for member in cls:
                if member.value == normalized:
                    return member
        return None


_HOUR = 60 * 60
_DAY = 24 * _HOUR

# Sensitivity and volatility drive retention: the more sensitive or the
# faster the content ages, the shorter the TTL.
DEFAULT_TTL_SECONDS: dict[DocumentType, int] = {
    DocumentType.BIOGRAPHY: 7 * _DAY,
    DocumentType.GRANT_PROPOSAL: 7 * _DAY,
    DocumentType.BUSINESS_PLAN: 3 * _DAY,
    DocumentType.CASE_SUMMARY: 1 * _DAY,
    DocumentType.MEDICAL_REPORT: 1 * _HOUR,
}

# 0 = least sensitive. Used by tests and admin tooling to check that TTL
# ordering follows sensitivity.
SENSITIVITY_RANK: dict[DocumentType, int] = {
    DocumentType.BIOGRAPHY: 0,
    DocumentType.GRANT_PROPOSAL: 0,
    DocumentType.BUSINESS_PLAN: 1,
    DocumentType.CASE_SUMMARY: 2,
    DocumentType.MEDICAL_REPORT: 3,
}

# Narrative documents benefit from a final polish pass. Legal and clinical
# documents keep the section text as written.
DEFAULT_REFINEMENT_TYPES: tuple[DocumentType, ...] = (
    DocumentType.BIOGRAPHY,
    DocumentType.BUSINESS_PLAN,
    DocumentType.GRANT_PROPOSAL,
)

# Document types whose sections should carry citations when the provider
# can search.
CITATION_TYPES: frozenset[DocumentType] = frozenset(
    {DocumentType.CASE_SUMMARY, DocumentType.GRANT_PROPOSAL}
)

# Canonical section plan: (section_id, title, key points).
DEFAULT_SECTIONS: dict[DocumentType, list[tuple[str, str, list[str]]]] = {
    DocumentType.BIOGRAPHY: [
        ("early_life", "Early Life and Education", ["Childhood", "Education", "Influences"]),
        ("career", "Professional Career", ["Career start", "Major achievements", "Leadership roles"]),
        ("achievements", "Major Achievements", ["Awards", "Recognition", "Impact"]),
        ("legacy", "Legacy and Impact", ["Contributions", "Influence", "Future vision"]),
    ],
    DocumentType.BUSINESS_PLAN: [
        ("executive_summary", "Executive Summary", ["Vision", "Mission", "Value proposition"]),
        ("market_analysis", "Market Analysis", ["Market size", "Target audience", "Competition"]),
        ("business_model", "Business Model", ["Revenue streams", "Cost structure", "Key metrics"]),
        ("marketing_strategy", "Marketing Strategy", ["Channels", "Customer acquisition", "Retention"]),
        ("financial_projections", "Financial Projections", ["Revenue forecast", "Expenses", "Break-even analysis"]),
    ],
    DocumentType.GRANT_PROPOSAL: [
        ("executive_summary", "Executive Summary", ["Project overview", "Funding request", "Expected impact"]),
        ("statement_of_need", "Statement of Need", ["Problem description", "Target population", "Evidence"]),
        ("project_description", "Project Description", ["Objectives", "Methods", "Timeline"]),
        ("budget", "Budget Justification", ["Personnel costs", "Equipment", "Operations", "Indirect costs"]),
    ],
    DocumentType.CASE_SUMMARY: [
        ("case_overview", "Case Overview", ["Parties", "Claims", "Procedural history"]),
        ("legal_issues", "Legal Issues", ["Primary issues", "Applicable law", "Standards"]),
        ("analysis", "Analysis", ["Arguments", "Precedents", "Application"]),
        ("conclusion", "Conclusion", ["Summary", "Recommendations", "Next steps"]),
    ],
    DocumentType.MEDICAL_REPORT: [
        ("patient_information", "Patient Information", ["Demographics", "Medical history", "Current medications"]),
        ("clinical_findings", "Clinical Findings", ["Examination", "Test results", "Observations"]),
        ("diagnosis", "Diagnosis", ["Primary diagnosis", "Differential diagnosis", "Prognosis"]),
        ("treatment_plan", "Treatment Plan", ["Recommendations", "Follow-up", "Patient education"]),
    ],
}

BIOGRAPHY_CHRONOLOGY: tuple[str, ...] = (
    "early_life",
    "education",
    "career",
    "achievements",
    "legacy",
)
