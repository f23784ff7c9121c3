import pytest
from pydantic import ValidationError

from tender_generator.models.document_models import DocumentMetadata, SourceDocument
from tender_generator.models.tender_models import (
    ComplianceChecklist, GenerationOptions, PlanSection, Requirement, TenderPlan,
)


@pytest.mark.parametrize("raw,expected", [("HIGH", "high"), (" low ", "low"), ("urgent", "medium"), (None, "medium")])
def test_requirement_priority_is_normalized(raw, expected):
    assert Requirement(id="r", description="d", priority=raw).priority == expected


def test_requirement_category_is_lowercased_with_default():
    assert Requirement(id="r", description="d", category=" Technical ").category == "technical"
    assert Requirement(id="r", description="d", category="").category == "general"


def test_checklist_only_moves_from_false_to_true():
    checklist = ComplianceChecklist()
    checklist.register(["A", "B", "A"])
    assert checklist.requirements == ["A", "B"]
    assert checklist.checklist == {"A": False, "B": False}

    checklist.mark_satisfied("A")
    checklist.mark_satisfied("unknown")
    checklist.register(["A", "C"])

    assert checklist.checklist == {"A": True, "B": False, "C": False}


def test_plan_is_immutable():
    plan = TenderPlan(sections=[PlanSection(title="Scope")])
    with pytest.raises(ValidationError):
        plan.sections = []
    with pytest.raises(ValidationError):
        plan.sections[0].title = "Changed"


def test_plan_section_accepts_camel_case_alias():
    section = PlanSection.model_validate({"title": "Scope", "relevantDocuments": ["doc-1"]})
    assert section.relevant_documents == ["doc-1"]
    assert section.search_query == "Scope."


def test_generation_options_require_positive_iterations():
    with pytest.raises(ValidationError):
        GenerationOptions(title="T", max_iterations=0)


def test_document_media_type_from_file_type():
    doc = SourceDocument(id="1", title="t", metadata=DocumentMetadata(file_type="PDF"))
    assert doc.media_type == "application/pdf"
    assert SourceDocument(id="2", title="t", metadata=DocumentMetadata(file_type="docx")).media_type == \
        "application/octet-stream"
