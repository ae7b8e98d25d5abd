"""
Storage Module - Access to the corpus structure metadata store.
"""

from ams2xacml.storage.corpus_store import (
    CorpusNode,
    InMemoryCorpusStore,
    MetadataStore,
    NodeType,
    SQLiteCorpusStore,
)

__all__ = [
    "CorpusNode",
    "InMemoryCorpusStore",
    "MetadataStore",
    "NodeType",
    "SQLiteCorpusStore",
]
