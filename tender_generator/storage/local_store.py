import asyncio
import logging
import os
from typing import List, Optional, Type

from ..clients.interfaces import DocumentStore
from ..models.document_models import CompanyDocument, Document, SourceDocument
from ..parsers.document_parser import SUPPORTED_EXTENSIONS, DocumentParser
from ..utils.exceptions import DocumentParserError

logger = logging.getLogger(__name__)


class LocalDocumentStore(DocumentStore):
    """
    Serves documents from two directories on disk: one holding the tender
    (source) documents and an optional one holding company documents.

    Unreadable or unsupported files are skipped with a warning so a single bad
    upload does not block a run.
    """

    def __init__(self, source_dir: str, company_dir: Optional[str] = None):
        if not os.path.isdir(source_dir):
            raise FileNotFoundError(f"Source directory {source_dir} was not found.")
        if company_dir and not os.path.isdir(company_dir):
            raise FileNotFoundError(f"Company directory {company_dir} was not found.")
        self.source_dir = source_dir
        self.company_dir = company_dir

    @staticmethod
    def _load_directory(directory: Optional[str], document_class: Type[Document], prefix: str) -> List[Document]:
        if not directory:
            return []
        documents = []
        for file_name in sorted(os.listdir(directory)):
            path = os.path.join(directory, file_name)
            if not os.path.isfile(path) or os.path.splitext(file_name)[1].lower() not in SUPPORTED_EXTENSIONS:
                logger.debug(f"LocalDocumentStore: skipping '{file_name}'.")
                continue
            try:
                documents.append(DocumentParser(path).parse(document_class, document_id=f"{prefix}-{file_name}"))
            except DocumentParserError as e:
                logger.warning(f"LocalDocumentStore: could not read '{file_name}': {e}")
        logger.info(f"LocalDocumentStore: loaded {len(documents)} {prefix} documents from {directory}")
        return documents

    async def get_source_documents(self) -> List[SourceDocument]:
        return await asyncio.to_thread(self._load_directory, self.source_dir, SourceDocument, "source")

    async def get_company_documents(self) -> List[CompanyDocument]:
        return await asyncio.to_thread(self._load_directory, self.company_dir, CompanyDocument, "company")
