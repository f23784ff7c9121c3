from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class DocumentMetadata(BaseModel):
    model_config = ConfigDict(extra="allow")

    file_type: str = Field(default="txt", description="File extension of the uploaded document, e.g. 'pdf'")
    date_added: Optional[str] = Field(default=None, description="ISO timestamp of the upload")


class Document(BaseModel):
    id: str = Field(description="Store-assigned identifier")
    title: str = Field(description="Human-readable title, usually the file name")
    content: str = Field(default="", description="Extracted text content")
    binary_data: Optional[bytes] = Field(default=None, description="Original file bytes, kept for PDF pass-through")
    metadata: DocumentMetadata = Field(default_factory=DocumentMetadata)

    @property
    def media_type(self) -> str:
        return MEDIA_TYPES.get(self.metadata.file_type.lower(), "application/octet-stream")


class SourceDocument(Document):
    """A tender/RFP document stating what the buyer requires."""


class CompanyDocument(Document):
    """A capability profile describing the bidding company."""


class Attachment(BaseModel):
    data: bytes = Field(description="Raw binary content")
    media_type: str = Field(default="application/pdf")
    name: Optional[str] = Field(default=None)


class SearchResult(BaseModel):
    id: str
    content: str
    score: float = Field(default=0.0, description="Similarity score; higher is more relevant")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    binary_data: Optional[bytes] = Field(default=None)

    @property
    def title(self) -> str:
        return str(self.metadata.get("title") or self.id)


class ChunkRecord(BaseModel):
    id: str = Field(description="'<document id>#<chunk index>'")
    content: str
    embedding: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)


MEDIA_TYPES = {
    "pdf": "application/pdf",
    "md": "text/markdown",
    "markdown": "text/markdown",
    "txt": "text/plain",
}
