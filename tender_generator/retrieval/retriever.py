import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from ..clients.interfaces import EmbeddingClient, VectorSearchClient
from ..models.document_models import CompanyDocument, Document, SearchResult, SourceDocument
from ..models.tender_models import PlanSection
from ..utils.retry import DEFAULT_ATTEMPTS, DEFAULT_DELAY, call_with_retry
from .embeddings import fit_dimension

logger = logging.getLogger(__name__)

COMPANY_CATEGORY = "company"
SOURCE_CATEGORY = "source"


class Retriever:
    """
    Finds supporting context for one planned section.

    Company material is ranked ahead of source material and the combined list
    is capped at MAX_RESULTS. Without a vector client, or when the vector
    service keeps failing, whole documents from the store are used instead.
    """
    COMPANY_TOP_K = 3
    SOURCE_TOP_K = 5
    MAX_RESULTS = 7
    STORE_FALLBACK_PER_CATEGORY = 3

    def __init__(self, embedding_client: Optional[EmbeddingClient] = None,
                 vector_client: Optional[VectorSearchClient] = None,
                 retry_attempts: int = DEFAULT_ATTEMPTS, retry_delay: float = DEFAULT_DELAY,
                 sleep: Optional[Callable[[float], Awaitable[Any]]] = None):
        self.embedding_client = embedding_client
        self.vector_client = vector_client
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.sleep = sleep

    @property
    def has_vector_search(self) -> bool:
        return self.embedding_client is not None and self.vector_client is not None

    async def _with_retry(self, func):
        return await call_with_retry(func, attempts=self.retry_attempts, delay=self.retry_delay, sleep=self.sleep)

    async def _vector_search(self, query: str) -> List[SearchResult]:
        raw_vector = await self._with_retry(lambda: self.embedding_client.embed(query))
        query_vector = fit_dimension(raw_vector, self.embedding_client.dimension)

        company_results = await self._with_retry(
            lambda: self.vector_client.search(query_vector, self.COMPANY_TOP_K, category=COMPANY_CATEGORY)
        )
        source_results = await self._with_retry(
            lambda: self.vector_client.search(query_vector, self.SOURCE_TOP_K, category=SOURCE_CATEGORY)
        )
        logger.info(f"Retriever: {len(company_results)} company and {len(source_results)} source matches for '{query[:60]}'")
        return (list(company_results) + list(source_results))[:self.MAX_RESULTS]

    @staticmethod
    def _as_result(document: Document, category: str) -> SearchResult:
        return SearchResult(
            id=document.id,
            content=document.content or "Binary document",
            score=1.0,
            metadata={"title": document.title, "category": category, "file_type": document.metadata.file_type},
            binary_data=document.binary_data,
        )

    def _from_store(self, source_docs: Sequence[SourceDocument],
                    company_docs: Sequence[CompanyDocument]) -> List[SearchResult]:
        limit = self.STORE_FALLBACK_PER_CATEGORY
        results = [self._as_result(doc, COMPANY_CATEGORY) for doc in company_docs[:limit]]
        results += [self._as_result(doc, SOURCE_CATEGORY) for doc in source_docs[:limit]]
        return results[:self.MAX_RESULTS]

    async def retrieve(self, section: PlanSection, source_docs: Sequence[SourceDocument],
                       company_docs: Sequence[CompanyDocument]) -> List[SearchResult]:
        if section.relevant_documents:
            wanted = set(section.relevant_documents)
            pinned = [self._as_result(doc, COMPANY_CATEGORY) for doc in company_docs if doc.id in wanted]
            pinned += [self._as_result(doc, SOURCE_CATEGORY) for doc in source_docs if doc.id in wanted]
            if pinned:
                return pinned[:self.MAX_RESULTS]
            logger.warning(f"Retriever: none of the pinned documents for '{section.title}' exist; searching instead.")

        if self.has_vector_search:
            try:
                results = await self._vector_search(section.search_query)
                if results:
                    return results
                logger.warning(f"Retriever: vector search found nothing for '{section.title}'; using stored documents.")
            except Exception as e:
                logger.warning(f"Retriever: vector search failed for '{section.title}' ({e.__class__.__name__}: {e}); using stored documents.")

        return self._from_store(source_docs, company_docs)
