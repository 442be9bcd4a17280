"""
测试 SQLite 向量存储
"""

import pytest

from ext.rag.exceptions import (
    CollectionNotFoundError,
    DatabaseNotOpenError,
    DocumentNotFoundError,
    InsertFailedError,
    VectorDimensionMismatchError,
)
from ext.rag.types import DocumentStatusEnum, StoredVector
from ext.rag.vector_store import VectorStore


def vector(document_id: str, index: int, values: list[float], collection_id: str = "c1") -> StoredVector:
    return StoredVector(
        collection_id=collection_id,
        document_id=document_id,
        chunk_index=index,
        content=f"{document_id} chunk {index}",
        vector=values,
        metadata={"chunk": str(index)},
    )


@pytest.fixture
async def populated_store(vector_store):
    await vector_store.create_collection("c1", "Notes", description="Kitchen notes", dimension=3)
    await vector_store.add_document("d1", "c1", "Pasta")
    await vector_store.add_document("d2", "c1", "Cars")
    await vector_store.store_vectors(
        [
            vector("d1", 0, [1.0, 0.0, 0.0]),
            vector("d1", 1, [0.8, 0.6, 0.0]),
            vector("d2", 0, [0.0, 0.0, 1.0]),
        ]
    )
    return vector_store


class TestVectorStoreLifecycle:
    """测试打开与关闭"""

    @pytest.mark.asyncio
    async def test_not_open(self):
        store = VectorStore()
        assert not store.is_open
        with pytest.raises(DatabaseNotOpenError):
            await store.get_collections()

    @pytest.mark.asyncio
    async def test_file_database_persists(self, tmp_path):
        """测试文件数据库重新打开后数据仍在"""
        path = tmp_path / "nested" / "rag.db"
        async with VectorStore(path) as store:
            await store.create_collection("c1", "Persisted")

        async with VectorStore(path) as store:
            collection = await store.get_collection("c1")
        assert collection.name == "Persisted"
        print(f"✓ 数据库文件: {path}")


class TestCollections:
    """测试集合"""

    @pytest.mark.asyncio
    async def test_create_and_counts(self, populated_store):
        """测试集合统计字段"""
        collection = await populated_store.get_collection("c1")
        assert collection.name == "Notes"
        assert collection.description == "Kitchen notes"
        assert collection.dimension == 3
        assert collection.document_count == 2
        assert collection.total_chunks == 3
        assert [c.id for c in await populated_store.get_collections()] == ["c1"]

    @pytest.mark.asyncio
    async def test_duplicate_id(self, vector_store):
        await vector_store.create_collection("c1", "A")
        with pytest.raises(InsertFailedError):
            await vector_store.create_collection("c1", "B")

    @pytest.mark.asyncio
    async def test_delete_cascades(self, populated_store):
        """测试删除集合时一并删除文档与向量"""
        await populated_store.delete_collection("c1")
        assert await populated_store.get_collection("c1") is None
        assert await populated_store.get_document("d1") is None
        assert await populated_store.count_vectors("c1") == 0

        with pytest.raises(CollectionNotFoundError):
            await populated_store.delete_collection("c1")

    @pytest.mark.asyncio
    async def test_missing_collection(self, vector_store):
        assert await vector_store.get_collection("nope") is None
        with pytest.raises(CollectionNotFoundError):
            await vector_store.add_document("d1", "nope", "Title")


class TestDocuments:
    """测试文档"""

    @pytest.mark.asyncio
    async def test_status_transitions(self, populated_store):
        """测试状态更新与索引时间"""
        document = await populated_store.get_document("d1")
        assert document.status == DocumentStatusEnum.pending
        assert document.indexed_at is None

        await populated_store.update_document_status("d1", DocumentStatusEnum.indexed, chunk_count=2)
        document = await populated_store.get_document("d1")
        assert document.status == DocumentStatusEnum.indexed
        assert document.chunk_count == 2
        assert document.indexed_at is not None

        await populated_store.update_document_status("d2", DocumentStatusEnum.failed, error_message="boom")
        assert (await populated_store.get_document("d2")).error_message == "boom"

        with pytest.raises(DocumentNotFoundError):
            await populated_store.update_document_status("missing", DocumentStatusEnum.indexed)

    @pytest.mark.asyncio
    async def test_metadata_and_title(self, vector_store):
        await vector_store.create_collection("c1", "Notes")
        await vector_store.add_document("d1", "c1", "Pasta", metadata={"author": "Ana"})
        assert (await vector_store.get_document("d1")).metadata == {"author": "Ana"}
        assert await vector_store.get_document_title("d1") == "Pasta"
        assert await vector_store.get_document_title("missing") is None

    @pytest.mark.asyncio
    async def test_delete_document(self, populated_store):
        await populated_store.delete_document("d1")
        assert [d.id for d in await populated_store.get_documents("c1")] == ["d2"]
        assert await populated_store.count_vectors("c1") == 1
        with pytest.raises(DocumentNotFoundError):
            await populated_store.delete_document("d1")


class TestVectors:
    """测试向量写入与检索"""

    @pytest.mark.asyncio
    async def test_search_order(self, populated_store):
        """测试按相似度降序返回"""
        results = await populated_store.search([1.0, 0.0, 0.0], "c1", top_k=3)

        assert [r.vector.content for r in results] == ["d1 chunk 0", "d1 chunk 1", "d2 chunk 0"]
        assert results[0].similarity == pytest.approx(1.0)
        assert results[1].similarity == pytest.approx(0.8)
        assert results[2].similarity == pytest.approx(0.0)
        assert results[0].vector.metadata == {"chunk": "0"}
        print(f"✓ 检索结果: {[(r.vector.content, round(r.similarity, 2)) for r in results]}")

    @pytest.mark.asyncio
    async def test_top_k_and_min_similarity(self, populated_store):
        assert len(await populated_store.search([1.0, 0.0, 0.0], "c1", top_k=1)) == 1
        results = await populated_store.search([1.0, 0.0, 0.0], "c1", top_k=5, min_similarity=0.5)
        assert len(results) == 2
        assert await populated_store.search([1.0, 0.0, 0.0], "other") == []

    @pytest.mark.asyncio
    async def test_zero_query_vector(self, populated_store):
        results = await populated_store.search([0.0, 0.0, 0.0], "c1")
        assert all(r.similarity == 0.0 for r in results)

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self, populated_store):
        """测试维度不一致"""
        with pytest.raises(VectorDimensionMismatchError):
            await populated_store.store_vector(vector("d1", 2, [1.0, 0.0]))
        with pytest.raises(VectorDimensionMismatchError):
            await populated_store.search([1.0, 0.0], "c1")

    @pytest.mark.asyncio
    async def test_dimension_from_first_vector(self, vector_store):
        """测试未声明维度的集合由第一个向量确定维度"""
        await vector_store.create_collection("c2", "Undeclared")
        await vector_store.add_document("d1", "c2", "Doc")
        await vector_store.store_vector(vector("d1", 0, [1.0, 2.0], collection_id="c2"))

        assert (await vector_store.get_collection("c2")).dimension == 2
        with pytest.raises(VectorDimensionMismatchError):
            await vector_store.store_vector(vector("d1", 1, [1.0, 2.0, 3.0], collection_id="c2"))

    @pytest.mark.asyncio
    async def test_batch_rolled_back(self, populated_store):
        """测试批量写入失败时整体回滚"""
        with pytest.raises(InsertFailedError):
            await populated_store.store_vectors(
                [vector("d1", 5, [0.0, 1.0, 0.0]), vector("unknown-document", 0, [0.0, 1.0, 0.0])]
            )
        assert await populated_store.count_vectors("c1") == 3

    @pytest.mark.asyncio
    async def test_delete_vectors(self, populated_store):
        assert await populated_store.delete_vectors("d1") == 2
        assert await populated_store.delete_vectors("d1") == 0
        assert await populated_store.count_vectors("c1") == 1
