# tests/unit/core/test_inputs.py - v1
"""Tests for core/inputs.py - per-document-type input schemas."""

from __future__ import annotations

import pytest

from docuforge.config.document_types import DocumentType
from docuforge.core.errors import RequestValidationError
from docuforge.core.inputs import (
    BiographyInput,
    CaseSummaryInput,
    MedicalReportInput,
    canonical_payload,
    validate_input,
)


class TestValidateInput:
    def test_biography_defaults(self):
        result = validate_input(DocumentType.BIOGRAPHY, {})
        assert isinstance(result, BiographyInput)
        assert result.title == "Untitled Document"
        assert result.output_length == "medium"
        assert "early_life" in result.focus_areas

    def test_camel_case_aliases(self):
        result = validate_input("biography", {
            "subject": {"name": "Ada Lovelace", "birthPlace": "London"},
            "focusAreas": ["mathematics"],
            "outputLength": "long",
        })
        assert result.subject.birth_place == "London"
        assert result.focus_areas == ["mathematics"]
        assert result.output_length == "long"

    def test_snake_case_accepted(self):
        result = validate_input("case_summary", {"case_info": {"case_name": "Smith v. Jones"}})
        assert isinstance(result, CaseSummaryInput)
        assert result.case_info.case_name == "Smith v. Jones"

    def test_medical_defaults_to_template(self):
        result = validate_input("medical_report", {})
        assert isinstance(result, MedicalReportInput)
        assert result.template_only is True

    def test_invalid_enum_value(self):
        with pytest.raises(RequestValidationError) as exc_info:
            validate_input("biography", {"outputLength": "huge"})
        assert exc_info.value.errors
        assert "outputLength" in exc_info.value.errors[0]

    def test_empty_title_rejected(self):
        with pytest.raises(RequestValidationError, match="title"):
            validate_input("grant_proposal", {"title": ""})

    def test_unknown_document_type(self):
        with pytest.raises(RequestValidationError, match="Unknown document type"):
            validate_input("poem", {})

    def test_non_object_input(self):
        with pytest.raises(RequestValidationError, match="must be an object"):
            validate_input("biography", ["not", "a", "dict"])  # type: ignore[arg-type]


class TestCanonicalPayload:
    def test_camel_case_keys(self):
        payload = canonical_payload("biography", {"subject": {"name": "Ada"}})
        assert "outputLength" in payload
        assert "focusAreas" in payload
        assert payload["subject"]["name"] == "Ada"
        assert "birthDate" in payload["subject"]

    def test_extra_fields_kept(self):
        payload = canonical_payload("medical_report", {"patientId": "P-1", "templateOnly": False})
        assert payload["patientId"] == "P-1"
        assert payload["templateOnly"] is False

    def test_alias_and_field_name_equivalent(self):
        a = canonical_payload("business_plan", {"targetAudience": "lenders"})
        b = canonical_payload("business_plan", {"target_audience": "lenders"})
        assert a == b

    def test_json_ready(self):
        payload = canonical_payload("case_summary", {"includeAnalysis": False})
        assert payload["includeAnalysis"] is False
        assert payload["citationStyle"] == "bluebook"
