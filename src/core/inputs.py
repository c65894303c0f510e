# src/core/inputs.py - v1
"""Per-document-type input schemas.

Tagged union keyed by DocumentType. Every raw payload is validated against
its variant before it reaches the key normalizer or a prompt builder. Field
names are snake_case in Python and camelCase on the wire; unknown fields are
kept so richer front ends can pass extra context through.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from docuforge.config.document_types import DocumentType
from docuforge.core.errors import RequestValidationError

_INPUT_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class _InputModel(BaseModel):
    model_config = _INPUT_CONFIG


class BaseDocumentInput(_InputModel):
    title: str = Field(default="Untitled Document", min_length=1, max_length=200)
    output_length: Literal["short", "medium", "long"] = "medium"
    language: Literal["en", "es", "fr", "de"] = "en"


# === BIOGRAPHY ===


class BiographySubject(_InputModel):
    name: str = ""
    occupation: str = ""
    birth_date: str = ""
    birth_place: str = ""


class BiographyInput(BaseDocumentInput):
    subject: BiographySubject = Field(default_factory=BiographySubject)
    purpose: Literal["professional", "academic", "personal", "wikipedia"] = "professional"
    tone: Literal["formal", "conversational", "inspirational"] = "formal"
    focus_areas: list[str] = Field(
        default_factory=lambda: ["early_life", "education", "career", "achievements"]
    )
    additional_info: str = ""


# === BUSINESS PLAN ===


class BusinessInfo(_InputModel):
    name: str = ""
    industry: str = ""
    stage: Literal["idea", "startup", "growth", "established"] = "startup"
    location: str = ""


class BusinessPlanInput(BaseDocumentInput):
    business: BusinessInfo = Field(default_factory=BusinessInfo)
    sections: list[str] = Field(
        default_factory=lambda: ["executive_summary", "company_description", "market_analysis"]
    )
    target_audience: Literal["investors", "lenders", "partners", "internal"] = "investors"
    funding_amount: str = ""
    timeframe: str = "3 years"


# === GRANT PROPOSAL ===


class GrantOrganization(_InputModel):
    name: str = ""
    type: Literal["nonprofit", "educational", "research", "government"] = "nonprofit"
    tax_id: str = ""


class GrantInfo(_InputModel):
    funder_name: str = ""
    program_name: str = ""
    amount: str = ""
    deadline: str = ""


class GrantProject(_InputModel):
    title: str = ""
    duration: str = ""
    start_date: str = ""


class GrantProposalInput(BaseDocumentInput):
    organization: GrantOrganization = Field(default_factory=GrantOrganization)
    grant: GrantInfo = Field(default_factory=GrantInfo)
    project: GrantProject = Field(default_factory=GrantProject)
    sections: list[str] = Field(
        default_factory=lambda: ["executive_summary", "statement_of_need", "project_description"]
    )
    focus_area: str = ""


# === CASE SUMMARY ===


class CaseInfo(_InputModel):
    case_name: str = ""
    case_number: str = ""
    court: str = ""
    date_decided: str = ""


class CaseParties(_InputModel):
    plaintiff: str = ""
    defendant: str = ""


class CaseSummaryInput(BaseDocumentInput):
    case_info: CaseInfo = Field(default_factory=CaseInfo)
    parties: CaseParties = Field(default_factory=CaseParties)
    legal_issues: list[str] = Field(default_factory=list)
    facts: str = ""
    include_analysis: bool = True
    citation_style: Literal["bluebook", "apa", "mla"] = "bluebook"


# === MEDICAL REPORT ===


class MedicalReportInput(BaseDocumentInput):
    report_type: str = "consultation"
    specialty: str = "general_practice"
    report_purpose: str = "initial_consultation"
    clinical_setting: str = "hospital_outpatient"
    include_sections: list[str] = Field(
        default_factory=lambda: [
            "chief_complaint",
            "history_present_illness",
            "physical_examination",
            "assessment",
            "plan",
        ]
    )
    include_disclaimer: bool = True
    template_only: bool = True


INPUT_MODELS: dict[DocumentType, type[BaseDocumentInput]] = {
    DocumentType.BIOGRAPHY: BiographyInput,
    DocumentType.BUSINESS_PLAN: BusinessPlanInput,
    DocumentType.GRANT_PROPOSAL: GrantProposalInput,
    DocumentType.CASE_SUMMARY: CaseSummaryInput,
    DocumentType.MEDICAL_REPORT: MedicalReportInput,
}


def validate_input(document_type: DocumentType | str, raw: dict[str, Any]) -> BaseDocumentInput:
    """Validate a raw payload against its document-type schema.

    Raises:
        RequestValidationError: Unknown document type or schema violation.
    """
    try:
        doc_type = DocumentType(document_type)
    except ValueError as e:
        raise RequestValidationError(f"Unknown document type: {document_type!r}") from e

    if not isinstance(raw, dict):
        raise RequestValidationError(f"Input for {doc_type.value} must be an object")

    model_cls = INPUT_MODELS[doc_type]
    try:
        return model_cls.model_validate(raw)
    except ValidationError as e:
        messages = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise RequestValidationError(
            f"Invalid {doc_type.value} input: {'; '.join(messages)}", errors=messages,
        ) from e


def canonical_payload(document_type: DocumentType | str, raw: dict[str, Any]) -> dict[str, Any]:
    """Validated, camelCase JSON-ready payload used for keys and prompts."""
    return validate_input(document_type, raw).model_dump(mode="json", by_alias=True)
