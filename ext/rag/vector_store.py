"""
向量存储

基于 SQLite（aiosqlite）的集合 / 文档 / 向量持久化。
向量以 float64 BLOB 保存，检索为 numpy 精确扫描（余弦相似度）。
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, List

import aiosqlite
import numpy as np
import orjson
from loguru import logger

from ext.rag.exceptions import (
    CollectionNotFoundError,
    DatabaseNotOpenError,
    DatabaseOpenError,
    DeleteFailedError,
    DocumentNotFoundError,
    InsertFailedError,
    QueryFailedError,
    VectorDimensionMismatchError,
)
from ext.rag.types import Collection, Document, DocumentStatusEnum, StoredVector, VectorSearchResult

MEMORY_DB = ":memory:"

_SCHEMA = """
CREATE TABLE IF NOT EXISTS collections (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    description TEXT,
    dimension INTEGER,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS documents (
    id TEXT PRIMARY KEY,
    collection_id TEXT NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    status TEXT NOT NULL,
    chunk_count INTEGER NOT NULL DEFAULT 0,
    metadata TEXT,
    error_message TEXT,
    created_at TEXT NOT NULL,
    indexed_at TEXT
);

CREATE TABLE IF NOT EXISTS vectors (
    id TEXT PRIMARY KEY,
    collection_id TEXT NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
    document_id TEXT NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_index INTEGER NOT NULL,
    content TEXT NOT NULL,
    vector BLOB NOT NULL,
    metadata TEXT,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_documents_collection ON documents(collection_id);
CREATE INDEX IF NOT EXISTS idx_vectors_collection ON vectors(collection_id);
CREATE INDEX IF NOT EXISTS idx_vectors_document ON vectors(document_id);
"""

_COLLECTION_SELECT = """
SELECT c.id, c.name, c.description, c.dimension, c.created_at,
       (SELECT COUNT(*) FROM documents d WHERE d.collection_id = c.id) AS document_count,
       (SELECT COUNT(*) FROM vectors v WHERE v.collection_id = c.id) AS total_chunks
FROM collections c
"""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _dump_metadata(metadata: dict[str, str] | None) -> str:
    return orjson.dumps(metadata or {}).decode()


def _load_metadata(raw: str | None) -> dict[str, str]:
    return orjson.loads(raw) if raw else {}


def _to_blob(vector: Iterable[float]) -> bytes:
    return np.asarray(list(vector), dtype=np.float64).tobytes()


def _from_blob(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float64)


class VectorStore:
    """SQLite 向量存储

    写操作由 asyncio.Lock 串行化；store_vectors 在单个事务中完成，任一失败整体回滚。

    使用示例:
        >>> async with VectorStore(":memory:") as store:
        ...     await store.create_collection("c1", "Notes")
        ...     await store.add_document("d1", "c1", "Pasta")
        ...     await store.store_vectors(vectors)
        ...     results = await store.search(query_vector, "c1", top_k=3)
    """

    def __init__(self, path: str | Path = MEMORY_DB):
        """
        Args:
            path: 数据库文件路径，":memory:" 为内存数据库
        """
        self.path = str(path)
        self._db: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    # ========== 生命周期 ==========

    @property
    def is_open(self) -> bool:
        return self._db is not None

    async def open(self) -> None:
        """打开数据库并建表（重复调用无副作用）

        Raises:
            DatabaseOpenError: 打开或建表失败
        """
        if self._db is not None:
            return

        if self.path != MEMORY_DB:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            db = await aiosqlite.connect(self.path)
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys = ON")
            await db.executescript(_SCHEMA)
            await db.commit()
        except aiosqlite.Error as e:
            logger.error(f"VectorStore failed to open {self.path}: {e}")
            raise DatabaseOpenError(self.path, e) from e

        self._db = db
        logger.info(f"VectorStore opened: {self.path}")

    async def close(self) -> None:
        if self._db is None:
            return
        await self._db.close()
        self._db = None
        logger.info(f"VectorStore closed: {self.path}")

    async def __aenter__(self) -> "VectorStore":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise DatabaseNotOpenError()
        return self._db

    async def _fetchall(self, sql: str, params: tuple[Any, ...] = ()) -> List[aiosqlite.Row]:
        try:
            async with self.db.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise QueryFailedError(f"Query failed: {e}") from e

    async def _fetchone(self, sql: str, params: tuple[Any, ...] = ()) -> aiosqlite.Row | None:
        rows = await self._fetchall(sql, params)
        return rows[0] if rows else None

    # ========== 集合 ==========

    async def create_collection(
        self,
        id: str,
        name: str,
        description: str | None = None,
        dimension: int | None = None,
    ) -> Collection:
        """创建集合

        Raises:
            InsertFailedError: id 已存在或写入失败
        """
        collection = Collection(id=id, name=name, description=description, dimension=dimension)
        async with self._lock:
            try:
                await self.db.execute(
                    "INSERT INTO collections (id, name, description, dimension, created_at) VALUES (?, ?, ?, ?, ?)",
                    (id, name, description, dimension, collection.created_at.isoformat()),
                )
                await self.db.commit()
            except aiosqlite.IntegrityError as e:
                await self.db.rollback()
                raise InsertFailedError(f"Collection already exists: {id}") from e
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise InsertFailedError(f"Failed to create collection {id}: {e}") from e

        logger.debug(f"VectorStore created collection: {id} ({name})")
        return collection

    async def get_collections(self) -> List[Collection]:
        rows = await self._fetchall(f"{_COLLECTION_SELECT} ORDER BY c.created_at")
        return [Collection.model_validate(dict(row)) for row in rows]

    async def get_collection(self, id: str) -> Collection | None:
        row = await self._fetchone(f"{_COLLECTION_SELECT} WHERE c.id = ?", (id,))
        return Collection.model_validate(dict(row)) if row else None

    async def delete_collection(self, id: str) -> None:
        """删除集合及其文档、向量

        Raises:
            CollectionNotFoundError: 集合不存在
        """
        async with self._lock:
            try:
                await self.db.execute("DELETE FROM vectors WHERE collection_id = ?", (id,))
                await self.db.execute("DELETE FROM documents WHERE collection_id = ?", (id,))
                cursor = await self.db.execute("DELETE FROM collections WHERE id = ?", (id,))
                deleted = cursor.rowcount
                await self.db.commit()
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise DeleteFailedError(f"Failed to delete collection {id}: {e}") from e

        if deleted == 0:
            raise CollectionNotFoundError(id)
        logger.debug(f"VectorStore deleted collection: {id}")

    # ========== 文档 ==========

    async def add_document(
        self,
        id: str,
        collection_id: str,
        title: str,
        metadata: dict[str, str] | None = None,
    ) -> Document:
        """登记文档（状态为 pending）

        Raises:
            CollectionNotFoundError: 集合不存在
            InsertFailedError: 写入失败
        """
        if await self.get_collection(collection_id) is None:
            raise CollectionNotFoundError(collection_id)

        document = Document(id=id, collection_id=collection_id, title=title, metadata=metadata or {})
        async with self._lock:
            try:
                await self.db.execute(
                    "INSERT INTO documents (id, collection_id, title, status, chunk_count, metadata, created_at) "
                    "VALUES (?, ?, ?, ?, 0, ?, ?)",
                    (
                        id,
                        collection_id,
                        title,
                        document.status.value,
                        _dump_metadata(document.metadata),
                        document.created_at.isoformat(),
                    ),
                )
                await self.db.commit()
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise InsertFailedError(f"Failed to add document {id}: {e}") from e

        return document

    async def update_document_status(
        self,
        id: str,
        status: DocumentStatusEnum,
        chunk_count: int | None = None,
        error_message: str | None = None,
    ) -> None:
        """更新文档状态；状态为 indexed 时记录索引完成时间

        Raises:
            DocumentNotFoundError: 文档不存在
        """
        assignments = ["status = ?", "error_message = ?"]
        params: list[Any] = [status.value, error_message]
        if chunk_count is not None:
            assignments.append("chunk_count = ?")
            params.append(chunk_count)
        if status == DocumentStatusEnum.indexed:
            assignments.append("indexed_at = ?")
            params.append(_now_iso())

        async with self._lock:
            try:
                cursor = await self.db.execute(
                    f"UPDATE documents SET {', '.join(assignments)} WHERE id = ?",
                    (*params, id),
                )
                updated = cursor.rowcount
                await self.db.commit()
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise QueryFailedError(f"Failed to update document {id}: {e}") from e

        if updated == 0:
            raise DocumentNotFoundError(id)

    async def get_document(self, id: str) -> Document | None:
        row = await self._fetchone("SELECT * FROM documents WHERE id = ?", (id,))
        return self._row_to_document(row) if row else None

    async def get_documents(self, collection_id: str) -> List[Document]:
        rows = await self._fetchall(
            "SELECT * FROM documents WHERE collection_id = ? ORDER BY created_at",
            (collection_id,),
        )
        return [self._row_to_document(row) for row in rows]

    async def get_document_title(self, id: str) -> str | None:
        row = await self._fetchone("SELECT title FROM documents WHERE id = ?", (id,))
        return row["title"] if row else None

    async def delete_document(self, id: str) -> None:
        """删除文档及其向量

        Raises:
            DocumentNotFoundError: 文档不存在
        """
        async with self._lock:
            try:
                await self.db.execute("DELETE FROM vectors WHERE document_id = ?", (id,))
                cursor = await self.db.execute("DELETE FROM documents WHERE id = ?", (id,))
                deleted = cursor.rowcount
                await self.db.commit()
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise DeleteFailedError(f"Failed to delete document {id}: {e}") from e

        if deleted == 0:
            raise DocumentNotFoundError(id)
        logger.debug(f"VectorStore deleted document: {id}")

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        data = dict(row)
        data["metadata"] = _load_metadata(data.get("metadata"))
        return Document.model_validate(data)

    # ========== 向量 ==========

    async def store_vector(self, vector: StoredVector) -> None:
        await self.store_vectors([vector])

    async def store_vectors(self, vectors: List[StoredVector]) -> None:
        """在单个事务中写入向量

        集合未声明维度时由第一个向量确定；任一失败整体回滚。

        Raises:
            CollectionNotFoundError: 集合不存在
            VectorDimensionMismatchError: 维度与集合不一致
            InsertFailedError: 写入失败
        """
        if not vectors:
            return

        async with self._lock:
            dimensions: dict[str, int] = {}
            undeclared: set[str] = set()
            for vector in vectors:
                if vector.collection_id not in dimensions:
                    row = await self._fetchone("SELECT dimension FROM collections WHERE id = ?", (vector.collection_id,))
                    if row is None:
                        raise CollectionNotFoundError(vector.collection_id)
                    if row["dimension"] is None:
                        undeclared.add(vector.collection_id)
                        dimensions[vector.collection_id] = len(vector.vector)
                    else:
                        dimensions[vector.collection_id] = row["dimension"]

                expected = dimensions[vector.collection_id]
                if len(vector.vector) != expected:
                    raise VectorDimensionMismatchError(expected, len(vector.vector))

            try:
                for collection_id in undeclared:
                    await self.db.execute(
                        "UPDATE collections SET dimension = ? WHERE id = ?",
                        (dimensions[collection_id], collection_id),
                    )
                await self.db.executemany(
                    "INSERT INTO vectors (id, collection_id, document_id, chunk_index, content, vector, metadata, created_at) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    [
                        (
                            vector.id,
                            vector.collection_id,
                            vector.document_id,
                            vector.chunk_index,
                            vector.content,
                            _to_blob(vector.vector),
                            _dump_metadata(vector.metadata),
                            vector.created_at.isoformat(),
                        )
                        for vector in vectors
                    ],
                )
                await self.db.commit()
            except aiosqlite.Error as e:
                await self.db.rollback()
                logger.error(f"VectorStore store_vectors rolled back ({len(vectors)} vectors): {e}")
                raise InsertFailedError(f"Failed to store vectors: {e}") from e

        logger.debug(f"VectorStore stored {len(vectors)} vectors")

    async def delete_vectors(self, document_id: str) -> int:
        """删除文档的全部向量，返回删除条数"""
        async with self._lock:
            try:
                cursor = await self.db.execute("DELETE FROM vectors WHERE document_id = ?", (document_id,))
                deleted = cursor.rowcount
                await self.db.commit()
            except aiosqlite.Error as e:
                await self.db.rollback()
                raise DeleteFailedError(f"Failed to delete vectors of document {document_id}: {e}") from e
        return deleted

    async def count_vectors(self, collection_id: str) -> int:
        row = await self._fetchone("SELECT COUNT(*) AS total FROM vectors WHERE collection_id = ?", (collection_id,))
        return row["total"] if row else 0

    async def search(
        self,
        query_vector: List[float],
        collection_id: str,
        top_k: int = 5,
        min_similarity: float = -1.0,
    ) -> List[VectorSearchResult]:
        """按余弦相似度检索集合中的向量

        Args:
            query_vector: 查询向量
            collection_id: 集合 ID
            top_k: 返回条数上限
            min_similarity: 相似度下限

        Returns:
            相似度降序的结果

        Raises:
            VectorDimensionMismatchError: 查询向量维度与集合不一致
        """
        rows = await self._fetchall("SELECT * FROM vectors WHERE collection_id = ?", (collection_id,))
        if not rows or top_k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        matrix = np.vstack([_from_blob(row["vector"]) for row in rows])
        if matrix.shape[1] != query.shape[0]:
            raise VectorDimensionMismatchError(matrix.shape[1], query.shape[0])

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        with np.errstate(divide="ignore", invalid="ignore"):
            similarities = np.where(norms > 0, matrix @ query / norms, 0.0)
        similarities = np.clip(similarities, -1.0, 1.0)

        order = np.argsort(-similarities, kind="stable")
        results: List[VectorSearchResult] = []
        for i in order:
            similarity = float(similarities[i])
            if similarity < min_similarity:
                break
            results.append(VectorSearchResult(vector=self._row_to_vector(rows[i]), similarity=similarity))
            if len(results) >= top_k:
                break

        logger.debug(
            f"VectorStore search - collection: {collection_id}, scanned: {len(rows)}, returned: {len(results)}"
        )
        return results

    @staticmethod
    def _row_to_vector(row: aiosqlite.Row) -> StoredVector:
        return StoredVector(
            id=row["id"],
            collection_id=row["collection_id"],
            document_id=row["document_id"],
            chunk_index=row["chunk_index"],
            content=row["content"],
            vector=_from_blob(row["vector"]).tolist(),
            metadata=_load_metadata(row["metadata"]),
            created_at=row["created_at"],
        )


__all__ = [
    "MEMORY_DB",
    "VectorStore",
]
