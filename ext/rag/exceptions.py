"""
RAG 模块自定义异常类

向量存储（VectorStoreError 族）与集合管理 / 问答（RAGError 族）的异常
"""


class RAGError(Exception):
    """RAG 模块基础异常类"""
    pass


# ========== 向量存储 ==========


class VectorStoreError(RAGError):
    """向量存储异常"""
    pass


class DatabaseOpenError(VectorStoreError):
    """数据库打开失败"""

    def __init__(self, path: str, error: Exception):
        self.path = path
        self.original_error = error
        super().__init__(f"Failed to open vector database at {path}: {error}")


class DatabaseNotOpenError(VectorStoreError):
    """数据库尚未打开"""

    def __init__(self):
        super().__init__("Vector database is not open. Call open() first.")


class QueryFailedError(VectorStoreError):
    """查询失败"""
    pass


class InsertFailedError(VectorStoreError):
    """写入失败"""
    pass


class DeleteFailedError(VectorStoreError):
    """删除失败"""
    pass


class VectorDimensionMismatchError(VectorStoreError):
    """向量维度与集合维度不一致"""

    def __init__(self, expected: int, got: int):
        self.expected = expected
        self.got = got
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {got}")


class CollectionNotFoundError(RAGError):
    """集合不存在"""

    def __init__(self, collection_id: str):
        self.collection_id = collection_id
        super().__init__(f"Collection not found: {collection_id}")


class DocumentNotFoundError(RAGError):
    """文档不存在"""

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


# ========== 集合管理 / 问答 ==========


class NotInitializedError(RAGError):
    """集合管理器尚未初始化"""

    def __init__(self):
        super().__init__("RAG collection manager not initialized. Call initialize() first.")


class IndexingFailedError(RAGError):
    """文档索引失败"""

    def __init__(self, document_id: str | None, message: str):
        self.document_id = document_id
        self.message = message
        super().__init__(f"Failed to index document {document_id or '<new>'}: {message}")


class NoRelevantChunksError(RAGError):
    """检索不到相关片段"""

    def __init__(self, collection_id: str):
        self.collection_id = collection_id
        super().__init__(f"No relevant chunks found in collection {collection_id}")


__all__ = [
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
