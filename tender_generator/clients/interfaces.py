"""Narrow interfaces to the external collaborators the pipeline consumes.

Document persistence, the embedding model, the vector index and the language
model endpoint all live outside this package; the pipeline only talks to them
through these classes.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from ..models.document_models import Attachment, ChunkRecord, CompanyDocument, SearchResult, SourceDocument


class DocumentStore(ABC):
    """Read access to uploaded documents."""

    @abstractmethod
    async def get_source_documents(self) -> List[SourceDocument]:
        """Return every tender/RFP document."""

    @abstractmethod
    async def get_company_documents(self) -> List[CompanyDocument]:
        """Return every company capability document."""


class EmbeddingClient(ABC):
    """Converts text into a fixed-dimension vector."""

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Return the embedding dimensionality the index expects."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Generate an embedding vector for a single text."""


class VectorSearchClient(ABC):
    """Similarity search over indexed chunks."""

    @abstractmethod
    async def search(self, query_vector: List[float], top_k: int,
                     category: Optional[str] = None) -> List[SearchResult]:
        """Return up to top_k results ordered by descending score."""


class VectorIndexClient(VectorSearchClient):
    """A vector search client that also accepts new chunks."""

    @abstractmethod
    async def upsert(self, records: List[ChunkRecord]) -> int:
        """Insert or replace records; return how many were written."""


class TextGenerationClient(ABC):
    """Prompt in, text out."""

    @abstractmethod
    async def generate(self, prompt: str, attachments: Optional[List[Attachment]] = None) -> str:
        """Generate text for the prompt, buffering any stream to completion."""
