import pytest

from tender_generator.agents.drafter_agent import DrafterAgent, extract_company_info
from tender_generator.models.document_models import CompanyDocument, SearchResult
from tender_generator.models.tender_models import CompanyInfo, ComplianceResult, PlanSection
from tender_generator.utils.exceptions import GenerationServiceError


def result(doc_id, category, content="text", score=0.9, binary_data=None):
    return SearchResult(id=doc_id, content=content, score=score, binary_data=binary_data,
                        metadata={"title": doc_id, "category": category, "file_type": "pdf"})


@pytest.fixture
def section():
    return PlanSection(title="Support Model", description="How we support the service",
                       requirements=["Provide 24/7 support", "Respond within 1 hour"])


@pytest.mark.asyncio
async def test_creative_mode_without_any_context(fake_llm_factory):
    llm = fake_llm_factory(["## Executive Summary\nGeneric content"])
    bare = PlanSection(title="Executive Summary", description="Overview of the proposal")

    content = await DrafterAgent(llm).draft_section(bare, CompanyInfo())

    assert content == "## Executive Summary\nGeneric content"
    prompt = llm.calls[0]["prompt"]
    assert 'titled "Executive Summary"' in prompt
    assert "must not include made-up specific facts" in prompt
    assert "Requirements:" not in prompt


@pytest.mark.asyncio
async def test_standard_prompt_orders_company_excerpts_first_and_caps_them(fake_llm_factory, section):
    llm = fake_llm_factory(["drafted"])
    docs = [result(f"source-{i}", "source", content="S" * 2000) for i in range(8)]
    docs += [result("company-0", "company", content="profile text")]

    await DrafterAgent(llm).draft_section(section, CompanyInfo(name="Acme Cloud", acronym="AC"),
                                          relevant_docs=docs)

    prompt = llm.calls[0]["prompt"]
    assert prompt.index("Document 1: company-0") < prompt.index("Document 2: source-0")
    assert "Document 7: source-5" in prompt
    assert "source-6" not in prompt
    assert "S" * 1500 + "..." in prompt
    assert "S" * 1501 not in prompt
    assert "1. Provide 24/7 support" in prompt
    assert "Company: Acme Cloud (AC)" in prompt


@pytest.mark.asyncio
async def test_binary_documents_become_attachments(fake_llm_factory, section):
    llm = fake_llm_factory(["drafted"])
    docs = [result("brochure", "company", binary_data=b"%PDF-1.5"), result("rfp", "source")]

    await DrafterAgent(llm).draft_section(section, CompanyInfo(), relevant_docs=docs)

    attachments = llm.calls[0]["attachments"]
    assert len(attachments) == 1
    assert attachments[0].data == b"%PDF-1.5"
    assert attachments[0].media_type == "application/pdf"


@pytest.mark.asyncio
async def test_revision_includes_previous_draft_and_feedback(fake_llm_factory, section):
    llm = fake_llm_factory(["second draft"])
    feedback = ComplianceResult(passed=False, issues=["Requirement #2: no response time given"],
                                suggestions=["State the one hour response target"])

    content = await DrafterAgent(llm).draft_section(
        section, CompanyInfo(), relevant_docs=[], previous_content="first draft", previous_feedback=feedback,
    )

    assert content == "second draft"
    prompt = llm.calls[0]["prompt"]
    assert "Previous Draft:\nfirst draft" in prompt
    assert "- Requirement #2: no response time given" in prompt
    assert "- State the one hour response target" in prompt
    assert "Improve upon the previous draft" in prompt


@pytest.mark.asyncio
async def test_generation_failure_returns_placeholder(fake_llm_factory, section, no_sleep):
    llm = fake_llm_factory([GenerationServiceError("down")] * 3)

    content = await DrafterAgent(llm, sleep=no_sleep).draft_section(section, CompanyInfo())

    assert content.startswith("# Support Model\n\nUnable to generate content")
    assert len(llm.calls) == 3


@pytest.mark.asyncio
async def test_non_text_response_returns_placeholder(fake_llm_factory, section):
    llm = fake_llm_factory(handler=lambda prompt: None)

    content = await DrafterAgent(llm).draft_section(section, CompanyInfo())

    assert content.startswith("# Support Model\n\nUnable to generate content")
    assert len(llm.calls) == 1


def test_extract_company_info_prefers_profile_document():
    docs = [
        CompanyDocument(id="1", title="case_studies", content="Case study one"),
        CompanyDocument(id="2", title="About us", content="Company Name: Northwind Data Services\nMore text"),
    ]
    info = extract_company_info(docs)

    assert info.name == "Northwind Data Services"
    assert info.acronym == "NDS"
    assert info.profile.startswith("Company Name:")


def test_extract_company_info_short_name_uses_first_letters():
    info = extract_company_info([CompanyDocument(id="1", title="overview", content="Contoso\nWe build things")])
    assert info.name == "Contoso"
    assert info.acronym == "CON"


def test_extract_company_info_defaults_without_documents():
    info = extract_company_info([])
    assert (info.name, info.acronym, info.profile) == ("Your Company", "YC", "")
