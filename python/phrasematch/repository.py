"""
Document storage behind the engine.

The engine only ever sees field text; this module owns reading documents,
finding candidates for a phrase, and writing updated text together with a
revision that keeps the previous version recoverable.
"""

import datetime
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import structlog
from pydantic import BaseModel, Field, ValidationError

from phrasematch.utils.text import fold

logger = structlog.get_logger(__name__)


class PhraseMatchError(Exception):
    """Base class for errors raised outside the matching engine."""


class DocumentNotFoundError(PhraseMatchError):
    pass


class PersistError(PhraseMatchError):
    """Writing a document back to storage failed."""


class Revision(BaseModel):
    id: int
    title: str
    content: str
    created_at: str


class Document(BaseModel):
    id: int = Field(..., gt=0)
    title: str = ""
    content: str = ""
    doc_type: str = "post"
    status: str = "publish"
    revisions: List[Revision] = Field(default_factory=list)

    def contains(self, phrase: str) -> bool:
        needle = fold(phrase)
        return needle in fold(self.title) or needle in fold(self.content)

    @property
    def latest_revision_id(self) -> Optional[int]:
        return self.revisions[-1].id if self.revisions else None


class DocumentRepository(Protocol):
    def get(self, doc_id: int) -> Document: ...

    def find_ids(self, phrase: str, doc_types: Sequence[str], statuses: Sequence[str]) -> List[int]: ...

    def update(self, doc_id: int, title: str, content: str) -> Revision: ...


def _timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


class InMemoryRepository:
    """Dictionary-backed repository. Subclasses hook `_persist` to write elsewhere."""

    def __init__(self, documents: Iterable[Document] = ()):
        self._documents: Dict[int, Document] = {}
        self._next_revision_id = 1
        for doc in documents:
            self.add(doc)

    def add(self, document: Document) -> None:
        self._documents[document.id] = document
        for revision in document.revisions:
            self._next_revision_id = max(self._next_revision_id, revision.id + 1)

    def all(self) -> List[Document]:
        return list(self._documents.values())

    def get(self, doc_id: int) -> Document:
        try:
            return self._documents[doc_id]
        except KeyError:
            raise DocumentNotFoundError(f"Document not found: {doc_id}") from None

    def find_ids(self, phrase: str, doc_types: Sequence[str], statuses: Sequence[str]) -> List[int]:
        if not phrase:
            return []
        return [
            doc.id
            for doc in self._documents.values()
            if doc.doc_type in doc_types and doc.status in statuses and doc.contains(phrase)
        ]

    def update(self, doc_id: int, title: str, content: str) -> Revision:
        document = self.get(doc_id)
        revision = Revision(
            id=self._next_revision_id,
            title=document.title,
            content=document.content,
            created_at=_timestamp(),
        )
        updated = document.model_copy(
            update={"title": title, "content": content, "revisions": document.revisions + [revision]}
        )

        self._documents[doc_id] = updated
        try:
            self._persist()
        except OSError as e:
            self._documents[doc_id] = document
            raise PersistError(f"Could not save document {doc_id}: {e}") from e

        self._next_revision_id += 1
        logger.info(f"Updated document {doc_id} (revision {revision.id})")
        return revision

    def restore(self, doc_id: int, revision_id: int) -> Revision:
        """Rolls a document back to the text stored in one of its revisions."""
        document = self.get(doc_id)
        for revision in document.revisions:
            if revision.id == revision_id:
                return self.update(doc_id, revision.title, revision.content)
        raise DocumentNotFoundError(f"Revision {revision_id} not found for document {doc_id}")

    def _persist(self) -> None:
        pass


class JsonCorpusRepository(InMemoryRepository):
    """
    A repository stored as a JSON list of documents in a single file.

    Other processes may rewrite the file between calls (the CLI, a restore,
    another server tool call). Reads and writes reload the documents whenever
    the file on disk is no longer the one last loaded or saved, so an update
    never writes back a stale copy of the other documents.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._signature: Optional[Tuple[int, int, int]] = None
        super().__init__(self._load())

    @property
    def signature(self) -> Optional[Tuple[int, int, int]]:
        """Identity of the file version currently held in memory."""
        return self._signature

    def _file_signature(self) -> Tuple[int, int, int]:
        stat = self.path.stat()
        return (stat.st_ino, stat.st_mtime_ns, stat.st_size)

    def _load(self) -> List[Document]:
        if not self.path.exists():
            raise FileNotFoundError(f"Corpus not found: {self.path}")
        signature = self._file_signature()
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("documents", [])
        if not isinstance(data, list):
            raise PhraseMatchError(f"Invalid corpus file {self.path}: expected a list of documents")
        try:
            documents = [Document.model_validate(item) for item in data]
        except ValidationError as e:
            raise PhraseMatchError(f"Invalid corpus file {self.path}: {e}") from e
        self._signature = signature
        return documents

    def refresh(self) -> bool:
        """Reloads the file if it changed on disk. Returns True when it did."""
        if self._file_signature() == self._signature:
            return False
        documents = self._load()
        self._documents = {}
        self._next_revision_id = 1
        for doc in documents:
            self.add(doc)
        logger.info(f"Reloaded corpus {self.path} ({len(documents)} documents)")
        return True

    def get(self, doc_id: int) -> Document:
        self.refresh()
        return super().get(doc_id)

    def find_ids(self, phrase: str, doc_types: Sequence[str], statuses: Sequence[str]) -> List[int]:
        self.refresh()
        return super().find_ids(phrase, doc_types, statuses)

    def _persist(self) -> None:
        payload = [doc.model_dump() for doc in self.all()]
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2, ensure_ascii=False)
            tmp_path.replace(self.path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise
        self._signature = self._file_signature()
