from docsieve.storage.base import BaseDocumentStore
from docsieve.storage.memory import InMemoryDocumentStore

__all__ = ["BaseDocumentStore", "InMemoryDocumentStore"]
