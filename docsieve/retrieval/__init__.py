from docsieve.retrieval.chunker import Chunker, text_hash
from docsieve.retrieval.retriever import RelevanceRetriever, build_context

__all__ = ["Chunker", "RelevanceRetriever", "build_context", "text_hash"]
