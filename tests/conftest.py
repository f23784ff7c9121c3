import pytest
from typing import Callable, List, Optional, Union

from tender_generator.clients.interfaces import DocumentStore, TextGenerationClient
from tender_generator.models.document_models import (
    CompanyDocument, DocumentMetadata, SourceDocument,
)


class FakeLLMClient(TextGenerationClient):
    """
    Scripted TextGenerationClient. ``responses`` are handed out in order (an
    Exception instance is raised instead of returned); ``handler`` computes a
    reply from the prompt instead. Every call is recorded.
    """

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None,
                 handler: Optional[Callable[[str], str]] = None):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls = []

    async def generate(self, prompt, attachments=None):
        self.calls.append({"prompt": prompt, "attachments": attachments})
        if self.handler is not None:
            return self.handler(prompt)
        if not self.responses:
            raise AssertionError("FakeLLMClient ran out of scripted responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class InMemoryStore(DocumentStore):
    def __init__(self, source_docs=None, company_docs=None):
        self.source_docs = list(source_docs or [])
        self.company_docs = list(company_docs or [])

    async def get_source_documents(self):
        return list(self.source_docs)

    async def get_company_documents(self):
        return list(self.company_docs)


class SleepRecorder:
    """Stands in for asyncio.sleep so retry tests run instantly."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds):
        self.delays.append(seconds)


@pytest.fixture
def fake_llm_factory():
    return FakeLLMClient


@pytest.fixture
def store_factory():
    return InMemoryStore


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def sample_source_doc():
    return SourceDocument(
        id="source-rfp.md",
        title="rfp",
        content=(
            "Request for Proposal: Managed Hosting\n\n"
            "The supplier must provide 24/7 support with a documented SLA.\n"
            "The platform shall be hosted in an ISO 27001 certified data centre.\n"
            "Delivery of the first milestone is required within 30 days.\n"
        ),
        metadata=DocumentMetadata(file_type="md"),
    )


@pytest.fixture
def sample_company_doc():
    return CompanyDocument(
        id="company-profile.md",
        title="company_profile",
        content="Company Name: Acme Cloud Services\nWe have run managed hosting for 15 years.",
        metadata=DocumentMetadata(file_type="md"),
    )
