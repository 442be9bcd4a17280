"""
RAG 集合管理

负责集合 / 文档的生命周期以及文档索引：
    pending -> indexing -> 分块 -> embedding -> 写入向量 -> indexed

索引过程中任一环节失败都会删除已写入的向量、把文档标记为 failed，并抛出 IndexingFailedError；
被取消时同样清理并标记 failed，然后继续传播 CancelledError。
"""

import asyncio
from collections.abc import Callable
from typing import List
from uuid import uuid4

from loguru import logger

from ext.embedding.engine import EmbeddingEngine
from ext.rag.chunker import DocumentChunker
from ext.rag.exceptions import (
    CollectionNotFoundError,
    DocumentNotFoundError,
    IndexingFailedError,
    NotInitializedError,
)
from ext.rag.types import (
    Collection,
    CollectionStats,
    Document,
    DocumentStatusEnum,
    IndexingPhaseEnum,
    IndexingProgress,
    RAGSourceChunk,
    StoredVector,
)
from ext.rag.vector_store import VectorStore
from util.general import truncate_content

ProgressCallback = Callable[[IndexingProgress], None]

UNKNOWN_TITLE = "Unknown"


class RAGCollectionManager:
    """RAG 集合管理器

    使用示例:
        >>> manager = RAGCollectionManager(VectorStore(":memory:"), engine, DocumentChunker())
        >>> await manager.initialize()
        >>> collection = await manager.create_collection("Recipes")
        >>> await manager.index_document(collection.id, "Pasta", "Boil the pasta for ten minutes...")
        >>> await manager.search("how long to boil pasta", collection.id, top_k=3)
    """

    def __init__(self, store: VectorStore, engine: EmbeddingEngine, chunker: DocumentChunker | None = None):
        self.store = store
        self.engine = engine
        self.chunker = chunker or DocumentChunker()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        if self._initialized:
            return
        await self.store.open()
        self._initialized = True
        logger.info("RAGCollectionManager initialized")

    async def shutdown(self) -> None:
        await self.store.close()
        self._initialized = False
        logger.info("RAGCollectionManager shutdown")

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError()

    # ========== 集合 ==========

    async def create_collection(self, name: str, description: str | None = None) -> Collection:
        """创建集合，维度取 embedding 引擎的维度"""
        self._ensure_initialized()
        return await self.store.create_collection(
            id=str(uuid4()),
            name=name,
            description=description,
            dimension=self.engine.dimension,
        )

    async def get_collections(self) -> List[Collection]:
        self._ensure_initialized()
        return await self.store.get_collections()

    async def get_collection(self, collection_id: str) -> Collection | None:
        self._ensure_initialized()
        return await self.store.get_collection(collection_id)

    async def delete_collection(self, collection_id: str) -> None:
        self._ensure_initialized()
        await self.store.delete_collection(collection_id)

    # ========== 文档 ==========

    async def get_documents(self, collection_id: str) -> List[Document]:
        self._ensure_initialized()
        return await self.store.get_documents(collection_id)

    async def get_document(self, document_id: str) -> Document | None:
        self._ensure_initialized()
        return await self.store.get_document(document_id)

    async def delete_document(self, document_id: str) -> None:
        self._ensure_initialized()
        await self.store.delete_document(document_id)

    async def index_document(
        self,
        collection_id: str,
        title: str,
        content: str,
        metadata: dict[str, str] | None = None,
        progress: ProgressCallback | None = None,
    ) -> Document:
        """索引一篇文档

        Args:
            collection_id: 目标集合
            title: 标题
            content: 全文
            metadata: 附加数据，会写入每个片段
            progress: 进度回调

        Returns:
            状态为 indexed 的文档

        Raises:
            NotInitializedError: 未初始化
            IndexingFailedError: 内容为空或索引失败
            CollectionNotFoundError: 集合不存在
        """
        self._ensure_initialized()

        if not content.strip():
            raise IndexingFailedError(None, "Document content cannot be empty")
        if await self.store.get_collection(collection_id) is None:
            raise CollectionNotFoundError(collection_id)

        document_id = str(uuid4())
        await self.store.add_document(document_id, collection_id, title, metadata)
        await self.store.update_document_status(document_id, DocumentStatusEnum.indexing)

        def report(phase: IndexingPhaseEnum, processed: int = 0, total: int = 0) -> None:
            if progress is not None:
                progress(IndexingProgress(document_id=document_id, phase=phase, processed=processed, total=total))

        logger.info(f"Indexing document {document_id} ({title}) into collection {collection_id}")
        try:
            report(IndexingPhaseEnum.chunking)
            chunks = self.chunker.chunk(content, metadata)
            if not chunks:
                raise IndexingFailedError(document_id, "Document produced no chunks")
            total = len(chunks)

            vectors: List[StoredVector] = []
            for chunk in chunks:
                report(IndexingPhaseEnum.embedding, chunk.index + 1, total)
                embedding = await self.engine.embed(chunk.content)
                vectors.append(
                    StoredVector(
                        collection_id=collection_id,
                        document_id=document_id,
                        chunk_index=chunk.index,
                        content=chunk.content,
                        vector=embedding.vector,
                        metadata=chunk.metadata,
                    )
                )

            report(IndexingPhaseEnum.storing, total, total)
            await self.store.store_vectors(vectors)
            await self.store.update_document_status(document_id, DocumentStatusEnum.indexed, chunk_count=total)
        except asyncio.CancelledError:
            logger.warning(f"Indexing document {document_id} cancelled")
            # 清理不能被同一次取消打断
            await asyncio.shield(self._mark_failed(document_id, "cancelled"))
            report(IndexingPhaseEnum.failed)
            raise
        except Exception as e:
            logger.error(f"Indexing document {document_id} failed: {e}")
            await self._mark_failed(document_id, str(e))
            report(IndexingPhaseEnum.failed)
            if isinstance(e, IndexingFailedError):
                raise
            raise IndexingFailedError(document_id, str(e)) from e

        report(IndexingPhaseEnum.complete, total, total)
        logger.info(f"Indexed document {document_id} - chunks: {total}")

        document = await self.store.get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    async def _mark_failed(self, document_id: str, reason: str) -> None:
        """删除已写入的向量并把文档标记为 failed"""
        await self.store.delete_vectors(document_id)
        await self.store.update_document_status(document_id, DocumentStatusEnum.failed, error_message=reason)

    # ========== 检索 / 统计 ==========

    async def search(
        self,
        query: str,
        collection_id: str,
        top_k: int = 5,
        min_relevance: float = -1.0,
    ) -> List[RAGSourceChunk]:
        """语义检索

        Returns:
            相关度降序的来源片段；文档已删除时标题为 "Unknown"
        """
        self._ensure_initialized()

        query_embedding = await self.engine.embed(query)
        results = await self.store.search(
            query_embedding.vector,
            collection_id,
            top_k=top_k,
            min_similarity=min_relevance,
        )
        logger.debug(
            f"RAG search - query: {truncate_content(query, max_length=50)}, collection: {collection_id}, "
            f"hits: {len(results)}"
        )

        chunks: List[RAGSourceChunk] = []
        for result in results:
            title = await self.store.get_document_title(result.vector.document_id)
            chunks.append(
                RAGSourceChunk(
                    document_id=result.vector.document_id,
                    document_title=title or UNKNOWN_TITLE,
                    content=result.vector.content,
                    relevance_score=result.similarity,
                    chunk_index=result.vector.chunk_index,
                )
            )
        return chunks

    async def get_collection_stats(self, collection_id: str) -> CollectionStats:
        """集合统计

        Raises:
            CollectionNotFoundError: 集合不存在
        """
        self._ensure_initialized()

        collection = await self.store.get_collection(collection_id)
        if collection is None:
            raise CollectionNotFoundError(collection_id)

        documents = await self.store.get_documents(collection_id)
        statuses = [document.status for document in documents]
        return CollectionStats(
            collection_id=collection_id,
            document_count=collection.document_count,
            total_chunks=collection.total_chunks,
            indexed_documents=statuses.count(DocumentStatusEnum.indexed),
            pending_documents=statuses.count(DocumentStatusEnum.pending) + statuses.count(DocumentStatusEnum.indexing),
            failed_documents=statuses.count(DocumentStatusEnum.failed),
        )


__all__ = [
    "RAGCollectionManager",
]
