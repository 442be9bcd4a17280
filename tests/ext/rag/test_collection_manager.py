"""
测试 RAG 集合管理
"""

import asyncio

import pytest

from ext.embedding.engine import EmbeddingEngine
from ext.embedding.providers.hashing import HashingEmbeddingModel
from ext.embedding.types import EmbeddingConfig
from ext.rag.chunker import DocumentChunker
from ext.rag.collection_manager import RAGCollectionManager
from ext.rag.exceptions import CollectionNotFoundError, DocumentNotFoundError, IndexingFailedError, NotInitializedError
from ext.rag.types import ChunkingConfig, DocumentStatusEnum, IndexingPhaseEnum, IndexingProgress
from ext.rag.vector_store import VectorStore

PASTA = (
    "Pasta should boil for ten minutes. Salt the water generously before adding pasta. "
    "Drain the pasta and keep a cup of the cooking water. Toss it with the sauce right away. "
    "Serve immediately with grated cheese on top. Leftovers keep for three days in the fridge."
)

CARS = "The car engine needs fresh oil every year. Check tire pressure monthly before every trip."


class TestLifecycle:
    """测试初始化"""

    @pytest.mark.asyncio
    async def test_not_initialized(self, hashing_engine):
        manager = RAGCollectionManager(VectorStore(), hashing_engine)
        assert not manager.is_initialized
        with pytest.raises(NotInitializedError):
            await manager.create_collection("Recipes")
        with pytest.raises(NotInitializedError):
            await manager.search("pasta", "c1")

    @pytest.mark.asyncio
    async def test_initialize_twice(self, rag_manager):
        await rag_manager.initialize()
        assert rag_manager.is_initialized
        assert rag_manager.store.is_open


class TestIndexing:
    """测试文档索引"""

    @pytest.mark.asyncio
    async def test_collection_dimension(self, rag_manager):
        collection = await rag_manager.create_collection("Recipes", "Kitchen notes")
        assert collection.dimension == 256
        assert [c.name for c in await rag_manager.get_collections()] == ["Recipes"]

    @pytest.mark.asyncio
    async def test_index_document(self, rag_manager):
        """测试索引过程的进度回调与最终状态"""
        collection = await rag_manager.create_collection("Recipes")
        events: list[IndexingProgress] = []

        document = await rag_manager.index_document(
            collection.id, "Pasta", PASTA, metadata={"source": "cookbook"}, progress=events.append
        )

        assert document.status == DocumentStatusEnum.indexed
        assert document.chunk_count > 1
        assert document.indexed_at is not None
        assert document.metadata == {"source": "cookbook"}

        total = document.chunk_count
        phases = [event.phase for event in events]
        assert phases == (
            [IndexingPhaseEnum.chunking]
            + [IndexingPhaseEnum.embedding] * total
            + [IndexingPhaseEnum.storing, IndexingPhaseEnum.complete]
        )
        assert [event.processed for event in events if event.phase == IndexingPhaseEnum.embedding] == list(
            range(1, total + 1)
        )
        assert events[-1].percent_complete == 1.0
        assert await rag_manager.store.count_vectors(collection.id) == total
        print(f"✓ 索引片段数: {total}")

    @pytest.mark.asyncio
    async def test_blank_content(self, rag_manager):
        collection = await rag_manager.create_collection("Recipes")
        with pytest.raises(IndexingFailedError) as exc_info:
            await rag_manager.index_document(collection.id, "Empty", "   ")
        assert exc_info.value.document_id is None
        assert await rag_manager.get_documents(collection.id) == []

    @pytest.mark.asyncio
    async def test_missing_collection(self, rag_manager):
        with pytest.raises(CollectionNotFoundError):
            await rag_manager.index_document("missing", "Pasta", PASTA)

    @pytest.mark.asyncio
    async def test_failure_rolls_back(self):
        """测试索引失败时文档标记为 failed 且不残留向量"""
        engine = EmbeddingEngine(HashingEmbeddingModel(dimension=32), EmbeddingConfig(max_text_length=60))
        chunker = DocumentChunker(ChunkingConfig(target_chunk_size=120, chunk_overlap=0, min_chunk_size=0))
        manager = RAGCollectionManager(VectorStore(), engine, chunker)
        await manager.initialize()
        try:
            collection = await manager.create_collection("Recipes")
            phases: list[IndexingPhaseEnum] = []

            with pytest.raises(IndexingFailedError) as exc_info:
                await manager.index_document(collection.id, "Pasta", PASTA, progress=lambda p: phases.append(p.phase))

            document = await manager.get_document(exc_info.value.document_id)
            assert document.status == DocumentStatusEnum.failed
            assert document.error_message
            assert phases[-1] == IndexingPhaseEnum.failed
            assert await manager.store.count_vectors(collection.id) == 0

            stats = await manager.get_collection_stats(collection.id)
            assert stats.failed_documents == 1
            assert not stats.is_fully_indexed
        finally:
            await manager.shutdown()

    @pytest.mark.asyncio
    async def test_cancelled_indexing_marked_failed(self, rag_manager, monkeypatch):
        """测试索引被取消时清理向量、文档标记为 failed 并继续抛出 CancelledError"""
        collection = await rag_manager.create_collection("Recipes")
        started = asyncio.Event()

        async def slow_embed(text):
            started.set()
            await asyncio.sleep(10)

        monkeypatch.setattr(rag_manager.engine, "embed", slow_embed)
        phases: list[IndexingPhaseEnum] = []
        task = asyncio.create_task(
            rag_manager.index_document(collection.id, "Pasta", PASTA, progress=lambda p: phases.append(p.phase))
        )
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        [document] = await rag_manager.get_documents(collection.id)
        assert document.status == DocumentStatusEnum.failed
        assert document.error_message == "cancelled"
        assert phases[-1] == IndexingPhaseEnum.failed
        assert await rag_manager.store.count_vectors(collection.id) == 0


class TestSearchAndStats:
    """测试检索与统计"""

    @pytest.mark.asyncio
    async def test_search(self, rag_manager):
        """测试检索结果按相关度排序并带文档标题"""
        collection = await rag_manager.create_collection("Mixed")
        pasta = await rag_manager.index_document(collection.id, "Pasta", PASTA)
        await rag_manager.index_document(collection.id, "Cars", CARS)

        chunks = await rag_manager.search("how long to boil pasta", collection.id, top_k=3)

        assert 0 < len(chunks) <= 3
        assert chunks[0].document_id == pasta.id
        assert chunks[0].document_title == "Pasta"
        scores = [chunk.relevance_score for chunk in chunks]
        assert scores == sorted(scores, reverse=True)
        print(f"✓ 最相关: {chunks[0].content}")

    @pytest.mark.asyncio
    async def test_min_relevance(self, rag_manager):
        collection = await rag_manager.create_collection("Recipes")
        await rag_manager.index_document(collection.id, "Pasta", PASTA)
        assert await rag_manager.search("pasta", collection.id, min_relevance=1.01) == []

    @pytest.mark.asyncio
    async def test_stats(self, rag_manager):
        collection = await rag_manager.create_collection("Recipes")
        document = await rag_manager.index_document(collection.id, "Pasta", PASTA)
        await rag_manager.index_document(collection.id, "Cars", CARS)

        stats = await rag_manager.get_collection_stats(collection.id)

        assert stats.document_count == 2
        assert stats.indexed_documents == 2
        assert stats.total_chunks == document.chunk_count + 1
        assert stats.is_fully_indexed

        with pytest.raises(CollectionNotFoundError):
            await rag_manager.get_collection_stats("missing")

    @pytest.mark.asyncio
    async def test_delete(self, rag_manager):
        """测试删除文档与集合"""
        collection = await rag_manager.create_collection("Recipes")
        document = await rag_manager.index_document(collection.id, "Pasta", PASTA)

        await rag_manager.delete_document(document.id)
        assert await rag_manager.get_document(document.id) is None
        assert await rag_manager.search("pasta", collection.id) == []
        with pytest.raises(DocumentNotFoundError):
            await rag_manager.delete_document(document.id)

        await rag_manager.delete_collection(collection.id)
        assert await rag_manager.get_collection(collection.id) is None
