"""Request and response models for the HTTP API."""
from typing import List, Optional
from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    message: str = Field(default="", max_length=2000, description="Question to answer")


class AskResponse(BaseModel):
    success: bool
    message: str
    document_names: List[str] = Field(default_factory=list)


class DocumentOut(BaseModel):
    id: int
    file_name: str
    content_type: str = ""
    size_bytes: int = 0
    date_uploaded: str


class DocumentsPage(BaseModel):
    documents: List[DocumentOut]
    total_count: int
    page: int
    page_size: int
    total_pages: int


class UploadResponse(BaseModel):
    success: bool
    message: str
    document: Optional[DocumentOut] = None
    chunks_stored: int = 0
    chunks_failed: int = 0
