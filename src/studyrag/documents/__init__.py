"""Document persistence."""

from .store import DocumentStore, InMemoryDocumentStore, MongoDocumentStore, deserialize_document, serialize_document

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "MongoDocumentStore",
    "deserialize_document",
    "serialize_document",
]
