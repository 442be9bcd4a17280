"""
RAG 模块

文档分块、向量存储、集合管理与基于检索的问答
"""

from ext.rag.chunker import DocumentChunker
from ext.rag.collection_manager import RAGCollectionManager
from ext.rag.exceptions import (
    CollectionNotFoundError,
    DatabaseNotOpenError,
    DatabaseOpenError,
    DeleteFailedError,
    DocumentNotFoundError,
    IndexingFailedError,
    InsertFailedError,
    NoRelevantChunksError,
    NotInitializedError,
    QueryFailedError,
    RAGError,
    VectorDimensionMismatchError,
    VectorStoreError,
)
from ext.rag.query_engine import DEFAULT_RAG_SYSTEM_PROMPT, RAGChain, RAGQueryEngine, build_context
from ext.rag.types import (
    ChunkingConfig,
    ChunkingStats,
    Collection,
    CollectionStats,
    Document,
    DocumentChunk,
    DocumentStatusEnum,
    IndexingPhaseEnum,
    IndexingProgress,
    RAGQueryResult,
    RAGSourceChunk,
    RAGStreamEvent,
    RAGStreamEventTypeEnum,
    StoredVector,
    VectorSearchResult,
)
from ext.rag.vector_store import MEMORY_DB, VectorStore

__all__ = [
    # 分块
    "ChunkingConfig",
    "ChunkingStats",
    "DocumentChunk",
    "DocumentChunker",
    # 存储
    "MEMORY_DB",
    "VectorStore",
    "Collection",
    "Document",
    "DocumentStatusEnum",
    "StoredVector",
    "VectorSearchResult",
    # 集合管理
    "RAGCollectionManager",
    "CollectionStats",
    "IndexingPhaseEnum",
    "IndexingProgress",
    # 问答
    "DEFAULT_RAG_SYSTEM_PROMPT",
    "build_context",
    "RAGQueryEngine",
    "RAGChain",
    "RAGQueryResult",
    "RAGSourceChunk",
    "RAGStreamEvent",
    "RAGStreamEventTypeEnum",
    # 异常
    "RAGError",
    "VectorStoreError",
    "DatabaseOpenError",
    "DatabaseNotOpenError",
    "QueryFailedError",
    "InsertFailedError",
    "DeleteFailedError",
    "VectorDimensionMismatchError",
    "CollectionNotFoundError",
    "DocumentNotFoundError",
    "NotInitializedError",
    "IndexingFailedError",
    "NoRelevantChunksError",
]
