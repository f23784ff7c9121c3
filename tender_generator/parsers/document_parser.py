import io
import os
from datetime import datetime, timezone
from typing import Type, TypeVar

from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from ..models.document_models import Document, DocumentMetadata
from ..utils.exceptions import DocumentParserError

DocumentT = TypeVar("DocumentT", bound=Document)

SUPPORTED_EXTENSIONS = {
    ".pdf": "pdf",
    ".md": "md",
    ".markdown": "md",
    ".txt": "txt",
}


class DocumentParser:
    def __init__(self, file_path: str):
        if not os.path.exists(file_path):
            raise FileNotFoundError(f"The file {file_path} was not found.")
        self.file_path = file_path
        self.file_type = self._get_file_type()

    def _get_file_type(self) -> str:
        _, file_extension = os.path.splitext(self.file_path)
        file_type = SUPPORTED_EXTENSIONS.get(file_extension.lower())
        if file_type is None:
            raise ValueError("Unsupported file type. Only PDF, Markdown and text files are supported.")
        return file_type

    def _parse_pdf(self, data: bytes) -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
            text_content = [page.extract_text() or "" for page in reader.pages]
        except PdfReadError as e:
            raise DocumentParserError(f"Error reading PDF file '{self.file_path}': PyPDF2 PdfReadError - {e}") from e
        except Exception as e:
            raise DocumentParserError(f"An unexpected error occurred while parsing PDF file '{self.file_path}': {e}") from e
        # Image-only PDFs still travel as attachments, so empty text is allowed here.
        return "\n".join(text_content)

    def _parse_text(self) -> str:
        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentParserError(f"Error reading text file '{self.file_path}': {e}") from e
        if not content.strip():
            raise DocumentParserError(f"File '{self.file_path}' is empty or contains only whitespace.")
        return content

    def parse(self, document_class: Type[DocumentT] = Document, document_id: str = None) -> DocumentT:
        '''
        Reads the file into a document. PDFs keep their original bytes in
        binary_data so they can be handed to the model as attachments.
        '''
        binary_data = None
        if self.file_type == 'pdf':
            try:
                with open(self.file_path, 'rb') as f:
                    binary_data = f.read()
            except OSError as e:
                raise DocumentParserError(f"Error reading PDF file '{self.file_path}': {e}") from e
            content = self._parse_pdf(binary_data)
        else:
            content = self._parse_text()

        file_name = os.path.basename(self.file_path)
        return document_class(
            id=document_id or file_name,
            title=os.path.splitext(file_name)[0],
            content=content,
            binary_data=binary_data,
            metadata=DocumentMetadata(
                file_type=self.file_type,
                date_added=datetime.now(timezone.utc).isoformat(),
                file_name=file_name,
                size=os.path.getsize(self.file_path),
            ),
        )
