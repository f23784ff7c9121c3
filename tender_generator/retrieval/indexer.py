import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from ..clients.interfaces import EmbeddingClient, VectorIndexClient
from ..models.document_models import ChunkRecord, Document
from ..utils.config_loader import GeneratorSettings
from ..utils.exceptions import EmptyInputError
from ..utils.retry import DEFAULT_ATTEMPTS, DEFAULT_DELAY, call_with_retry
from .chunker import DEFAULT_CHUNK_SIZE, DEFAULT_OVERLAP, chunk_text
from .embeddings import fit_dimension

logger = logging.getLogger(__name__)


class DocumentIndexer:
    """Chunks documents, embeds every chunk and writes them to a vector index."""

    def __init__(self, embedding_client: EmbeddingClient, index_client: VectorIndexClient,
                 chunk_size: int = DEFAULT_CHUNK_SIZE, overlap: int = DEFAULT_OVERLAP,
                 retry_attempts: int = DEFAULT_ATTEMPTS, retry_delay: float = DEFAULT_DELAY,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None):
        self.embedding_client = embedding_client
        self.index_client = index_client
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    @classmethod
    def from_settings(cls, embedding_client: EmbeddingClient, index_client: VectorIndexClient,
                      settings: GeneratorSettings, sleep=None) -> "DocumentIndexer":
        return cls(embedding_client, index_client,
                   chunk_size=settings.chunk_size, overlap=settings.chunk_overlap,
                   retry_attempts=settings.retry_attempts, retry_delay=settings.retry_delay, sleep=sleep)

    async def _with_retry(self, func):
        return await call_with_retry(func, attempts=self.retry_attempts, delay=self.retry_delay, sleep=self.sleep)

    async def _embed(self, text: str):
        vector = await self._with_retry(lambda: self.embedding_client.embed(text))
        return fit_dimension(vector, self.embedding_client.dimension)

    async def index_document(self, document: Document, category: str) -> int:
        """
        Indexes one document under ``category`` ('source' or 'company').

        Returns the number of chunk records written. Raises EmptyInputError for
        documents without text and VectorServiceError once retries run out.
        """
        chunks = chunk_text(document.content, self.chunk_size, self.overlap)
        embeddings = await asyncio.gather(*(self._embed(chunk) for chunk in chunks))

        records = [
            ChunkRecord(
                id=f"{document.id}#{index}",
                content=chunk,
                embedding=embedding,
                metadata={
                    "document_id": document.id,
                    "title": document.title,
                    "category": category,
                    "file_type": document.metadata.file_type,
                    "chunk_index": index,
                    "chunk_total": len(chunks),
                    "chunking_method": "semantic_paragraphs",
                },
            )
            for index, (chunk, embedding) in enumerate(zip(chunks, embeddings))
        ]
        written = await self._with_retry(lambda: self.index_client.upsert(records))
        logger.info(f"DocumentIndexer: indexed '{document.title}' as {len(records)} chunks ({category}).")
        return written

    async def index_documents(self, documents: Sequence[Document], category: str) -> Dict[str, int]:
        """Indexes each document in turn; documents without text are skipped with a warning."""
        counts: Dict[str, int] = {}
        for document in documents:
            try:
                counts[document.id] = await self.index_document(document, category)
            except EmptyInputError:
                logger.warning(f"DocumentIndexer: '{document.title}' has no text content; skipped.")
                counts[document.id] = 0
        return counts
