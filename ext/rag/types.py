"""
RAG 类型定义
"""

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field

from core.types import StrEnum


def _now() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStatusEnum(StrEnum):
    """文档索引状态"""

    pending = ("pending", "等待索引")
    indexing = ("indexing", "索引中")
    indexed = ("indexed", "已索引")
    failed = ("failed", "索引失败")


class IndexingPhaseEnum(StrEnum):
    """索引阶段"""

    chunking = ("chunking", "Chunking document")
    embedding = ("embedding", "Generating embeddings")
    storing = ("storing", "Storing vectors")
    complete = ("complete", "Indexing complete")
    failed = ("failed", "Indexing failed")


# ========== 存储实体 ==========


class Collection(BaseModel):
    """文档集合"""

    id: str = Field(description="集合 ID")
    name: str = Field(description="集合名称")
    description: str | None = Field(default=None, description="集合描述")
    dimension: int | None = Field(default=None, description="向量维度，首次写入向量时确定")
    document_count: int = Field(default=0, description="文档数")
    total_chunks: int = Field(default=0, description="向量（片段）总数")
    created_at: datetime = Field(default_factory=_now, description="创建时间")


class Document(BaseModel):
    """集合中的文档"""

    id: str = Field(description="文档 ID")
    collection_id: str = Field(description="所属集合 ID")
    title: str = Field(description="标题")
    status: DocumentStatusEnum = Field(default=DocumentStatusEnum.pending, description="索引状态")
    chunk_count: int = Field(default=0, description="片段数")
    metadata: dict[str, str] = Field(default_factory=dict, description="附加数据")
    error_message: str | None = Field(default=None, description="失败原因")
    created_at: datetime = Field(default_factory=_now, description="创建时间")
    indexed_at: datetime | None = Field(default=None, description="索引完成时间")


class StoredVector(BaseModel):
    """持久化的片段向量"""

    id: str = Field(default_factory=lambda: str(uuid4()), description="向量 ID")
    collection_id: str = Field(description="所属集合 ID")
    document_id: str = Field(description="所属文档 ID")
    chunk_index: int = Field(description="片段在文档中的序号")
    content: str = Field(description="片段文本")
    vector: list[float] = Field(description="向量")
    metadata: dict[str, str] = Field(default_factory=dict, description="附加数据")
    created_at: datetime = Field(default_factory=_now, description="创建时间")


class VectorSearchResult(BaseModel):
    """向量检索结果"""

    vector: StoredVector
    similarity: float = Field(description="余弦相似度")


# ========== 检索 / 问答 ==========


class RAGSourceChunk(BaseModel):
    """回答引用的来源片段"""

    document_id: str
    document_title: str
    content: str
    relevance_score: float
    chunk_index: int


class RAGQueryResult(BaseModel):
    """RAG 问答结果"""

    answer: str = Field(description="回答")
    sources: list[RAGSourceChunk] = Field(default_factory=list, description="引用的片段")
    processing_time_ms: int = Field(description="处理耗时（毫秒）")
    confidence: float | None = Field(default=None, description="置信度（来源相关度的平均值）")
    retrieved_count: int = Field(description="检索到的片段数")


class RAGStreamEventTypeEnum(StrEnum):
    """流式问答事件类型"""

    sources = ("sources", "检索到的来源片段")
    token = ("token", "生成的回答片段")


class RAGStreamEvent(BaseModel):
    """流式问答事件：先产出一次 sources，随后逐段产出 token"""

    type: RAGStreamEventTypeEnum
    sources: list[RAGSourceChunk] = Field(default_factory=list)
    token: str = ""


class CollectionStats(BaseModel):
    """集合统计"""

    collection_id: str
    document_count: int
    total_chunks: int
    indexed_documents: int
    pending_documents: int
    failed_documents: int

    @property
    def is_fully_indexed(self) -> bool:
        return self.indexed_documents == self.document_count and self.pending_documents == 0


class IndexingProgress(BaseModel):
    """索引进度"""

    document_id: str
    phase: IndexingPhaseEnum
    processed: int = 0
    total: int = 0

    @property
    def percent_complete(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.processed / self.total


# ========== 分块 ==========


class ChunkingConfig(BaseModel):
    """分块配置（长度单位均为字符）"""

    target_chunk_size: int = Field(default=512, ge=1, description="目标片段长度")
    chunk_overlap: int = Field(default=50, ge=0, description="相邻片段的重叠长度")
    respect_sentences: bool = Field(default=True, description="是否按句子边界切分")
    min_chunk_size: int = Field(default=100, ge=0, description="最小片段长度，过短的尾部片段会被合并")

    @classmethod
    def default(cls) -> "ChunkingConfig":
        return cls()

    @classmethod
    def short_document(cls) -> "ChunkingConfig":
        return cls(target_chunk_size=256, chunk_overlap=25, respect_sentences=True, min_chunk_size=50)

    @classmethod
    def long_document(cls) -> "ChunkingConfig":
        return cls(target_chunk_size=1024, chunk_overlap=100, respect_sentences=True, min_chunk_size=200)


class DocumentChunk(BaseModel):
    """文档片段

    start_offset / end_offset 是片段在原文中的字符区间，
    满足 text[start_offset:end_offset] == content
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    content: str
    index: int
    start_offset: int
    end_offset: int
    metadata: dict[str, str] = Field(default_factory=dict)


class ChunkingStats(BaseModel):
    count: int = 0
    min_size: int = 0
    max_size: int = 0
    avg_size: int = 0
    total_size: int = 0


__all__ = [
    "DocumentStatusEnum",
    "IndexingPhaseEnum",
    "Collection",
    "Document",
    "StoredVector",
    "VectorSearchResult",
    "RAGSourceChunk",
    "RAGQueryResult",
    "RAGStreamEventTypeEnum",
    "RAGStreamEvent",
    "CollectionStats",
    "IndexingProgress",
    "ChunkingConfig",
    "DocumentChunk",
    "ChunkingStats",
]
