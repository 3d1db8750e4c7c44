from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DocumentField(str, Enum):
    TITLE = "title"
    CONTENT = "content"


class Wrapping(str, Enum):
    """Structural element found around an occurrence at scan time."""

    PLAIN = "plain"
    INLINE_MARKUP = "inline_markup"
    BLOCK_WRAPPER = "block_wrapper"


class RemovalMode(str, Enum):
    TEXT_ONLY = "text_only"
    INLINE_MARKUP = "inline_markup"
    BLOCK_WRAPPER = "block_wrapper"


class Occurrence(BaseModel):
    """
    One located instance of the phrase inside a single field.
    The offset is only meaningful against the exact text the scan ran on.
    """

    offset: int = Field(..., ge=0, description="Position of the first character of the match.")
    occurrence_index: int = Field(..., ge=0, description="0-based position of this match in scan order.")
    field: DocumentField = DocumentField.CONTENT
    wrapping: Wrapping = Wrapping.PLAIN
    snippet: str = Field("", description="Escaped context with the phrase highlighted. Display only.")


class MutationRequest(BaseModel):
    """
    Removal or replacement of one occurrence.
    A non-empty replacement always substitutes literal text and the mode is ignored.
    """

    offset: int = Field(..., ge=0)
    field: DocumentField = DocumentField.CONTENT
    mode: RemovalMode = RemovalMode.TEXT_ONLY
    replacement: str = ""


class FieldResult(BaseModel):
    text: str
    removed: int = 0
    replaced: int = 0

    @property
    def modified(self) -> int:
        return self.removed + self.replaced


class MutationResult(BaseModel):
    """Outcome of one mutation pass over both fields of a document."""

    title: str
    content: str
    removed: int = 0
    replaced: int = 0

    @property
    def modified(self) -> int:
        return self.removed + self.replaced


class ScanHit(BaseModel):
    """An occurrence together with the document it was found in."""

    document_id: int
    title: str
    doc_type: str
    status: str
    revision_id: Optional[int] = None
    occurrence: Occurrence


class ScanReport(BaseModel):
    phrase: str
    total: int = 0
    hits: list[ScanHit] = Field(default_factory=list)


class DocumentOutcome(BaseModel):
    """Per-document result of a removal batch."""

    document_id: int
    title: str = ""
    success: bool
    message: str
    removed: int = 0
    replaced: int = 0
    revision_id: Optional[int] = None


class Change(BaseModel):
    """One contiguous difference between the text before and after a mutation pass."""

    offset: int
    removed: str = ""
    inserted: str = ""


class DocumentPreview(BaseModel):
    """What a removal batch would do to one document, without saving it."""

    document_id: int
    title: str = ""
    removed: int = 0
    replaced: int = 0
    title_changes: list[Change] = Field(default_factory=list)
    content_changes: list[Change] = Field(default_factory=list)
