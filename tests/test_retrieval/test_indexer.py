import pytest
from unittest.mock import AsyncMock, MagicMock

from tender_generator.models.document_models import DocumentMetadata, SourceDocument
from tender_generator.retrieval.indexer import DocumentIndexer
from tender_generator.utils.config_loader import GeneratorSettings
from tender_generator.utils.exceptions import EmptyInputError, VectorServiceError


@pytest.fixture
def embedding_client():
    client = MagicMock()
    client.dimension = 3
    client.embed = AsyncMock(return_value=[0.5, 0.5, 0.5, 0.5])
    return client


@pytest.fixture
def index_client():
    client = MagicMock()
    client.upsert = AsyncMock(side_effect=lambda records: len(records))
    return client


@pytest.mark.asyncio
async def test_index_document_writes_tagged_chunk_records(embedding_client, index_client):
    document = SourceDocument(id="rfp-1", title="Hosting RFP", content="Paragraph text. " * 200,
                              metadata=DocumentMetadata(file_type="pdf"))
    indexer = DocumentIndexer(embedding_client, index_client, chunk_size=500, overlap=50)

    written = await indexer.index_document(document, "source")

    records = index_client.upsert.await_args.args[0]
    assert written == len(records) > 1
    assert embedding_client.embed.await_count == len(records)
    assert [r.id for r in records] == [f"rfp-1#{i}" for i in range(len(records))]
    first = records[0]
    assert first.embedding == [0.5, 0.5, 0.5]
    assert first.metadata["document_id"] == "rfp-1"
    assert first.metadata["category"] == "source"
    assert first.metadata["file_type"] == "pdf"
    assert first.metadata["chunk_index"] == 0
    assert first.metadata["chunk_total"] == len(records)


@pytest.mark.asyncio
async def test_index_document_rejects_empty_text(embedding_client, index_client):
    indexer = DocumentIndexer(embedding_client, index_client)
    with pytest.raises(EmptyInputError):
        await indexer.index_document(SourceDocument(id="blank", title="Blank", content="  "), "source")
    index_client.upsert.assert_not_awaited()


@pytest.mark.asyncio
async def test_index_documents_skips_empty_documents(embedding_client, index_client):
    documents = [
        SourceDocument(id="a", title="A", content="Some content for A."),
        SourceDocument(id="b", title="B", content=""),
    ]
    indexer = DocumentIndexer(embedding_client, index_client)

    counts = await indexer.index_documents(documents, "company")

    assert counts == {"a": 1, "b": 0}


@pytest.mark.asyncio
async def test_upsert_is_retried_then_raised(embedding_client, no_sleep):
    index_client = MagicMock()
    index_client.upsert = AsyncMock(side_effect=VectorServiceError("timeout"))
    indexer = DocumentIndexer(embedding_client, index_client, sleep=no_sleep)

    with pytest.raises(VectorServiceError):
        await indexer.index_document(SourceDocument(id="a", title="A", content="text"), "source")

    assert index_client.upsert.await_count == 3
    assert no_sleep.delays == [1.0, 2.0]


def test_from_settings_uses_configured_chunking(embedding_client, index_client):
    settings = GeneratorSettings(chunk_size=400, chunk_overlap=40, retry_attempts=2, retry_delay=0.5)

    indexer = DocumentIndexer.from_settings(embedding_client, index_client, settings)

    assert (indexer.chunk_size, indexer.overlap) == (400, 40)
    assert (indexer.retry_attempts, indexer.retry_delay) == (2, 0.5)
