"""Document store implementations."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Mapping, MutableMapping, Protocol, Sequence

from pymongo import MongoClient
from pymongo.collection import Collection

from studyrag.models import Document


class DocumentStore(Protocol):
    """Protocol for per-user document persistence backends."""

    def fetch_documents(self, user_id: str) -> Sequence[Document]:
        """Return every document owned by ``user_id``."""

    def add_document(self, document: Document) -> str:
        """Persist a new document and return its identifier."""

    def ping(self) -> bool:
        """Return whether the backend is reachable."""


def serialize_document(document: Document) -> MutableMapping[str, object]:
    """Render a document in the camelCase shape stored by the original service."""

    record: MutableMapping[str, object] = {
        "id": document.id,
        "fileName": document.file_name,
        "userId": document.user_id,
        "textLength": document.text_length,
        "uploadDate": document.upload_date.isoformat(),
    }
    if document.full_text is not None:
        record["fullText"] = document.full_text
    if document.text_preview is not None:
        record["textPreview"] = document.text_preview
    if document.content_type is not None:
        record["contentType"] = document.content_type
    return record


def deserialize_document(record: Mapping[str, Any]) -> Document:
    full_text = record.get("fullText")
    preview = record.get("textPreview")
    return Document(
        id=str(record.get("id") or record.get("_id") or ""),
        file_name=str(record.get("fileName", "")),
        user_id=str(record.get("userId", "")),
        full_text=str(full_text) if full_text is not None else None,
        text_preview=str(preview) if preview is not None else None,
        text_length=int(record.get("textLength") or 0),
        upload_date=_parse_date(record.get("uploadDate")),
        content_type=record.get("contentType"),
    )


def _parse_date(value: object) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return datetime.fromtimestamp(0, tz=timezone.utc)
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(0, tz=timezone.utc)


class MongoDocumentStore:
    """MongoDB-backed document store keyed by exact user id."""

    def __init__(
        self,
        collection: Collection | None = None,
        *,
        uri: str = "mongodb://localhost:27017",
        database: str = "studyrag",
        collection_name: str = "documents",
        timeout_ms: int = 5000,
    ) -> None:
        self._client: MongoClient | None = None
        if collection is None:
            self._client = MongoClient(
                uri,
                serverSelectionTimeoutMS=timeout_ms,
                uuidRepresentation="standard",
            )
            collection = self._client[database][collection_name]
        self._collection = collection

    def fetch_documents(self, user_id: str) -> Sequence[Document]:
        cursor = self._collection.find({"userId": user_id}, projection={"_id": False})
        return [deserialize_document(record) for record in cursor]

    def add_document(self, document: Document) -> str:
        self._collection.insert_one(serialize_document(document))
        return document.id

    def ping(self) -> bool:
        if self._client is None:
            return True
        try:
            self._client.admin.command("ping")
            return True
        except Exception:
            return False

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


class InMemoryDocumentStore:
    """Process-local store used for tests and offline development."""

    def __init__(self, documents: Sequence[Document] = ()) -> None:
        self._lock = threading.Lock()
        self._documents: list[Document] = list(documents)

    def fetch_documents(self, user_id: str) -> Sequence[Document]:
        with self._lock:
            return [doc for doc in self._documents if doc.user_id == user_id]

    def add_document(self, document: Document) -> str:
        with self._lock:
            self._documents.append(document)
        return document.id

    def ping(self) -> bool:
        return True
