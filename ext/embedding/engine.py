"""
Embedding 引擎

在 EmbeddingModel 之上提供长度/批量限制、语言标注以及向量工具函数
"""

from typing import Sequence

import numpy as np
from loguru import logger

from ext.embedding.base import EmbeddingModel
from ext.embedding.exceptions import BatchTooLargeError, TextTooLongError
from ext.embedding.types import EmbeddingConfig, TextEmbedding
from util.general import detect_script_language, truncate_content


class EmbeddingEngine:
    """Embedding 引擎

    使用示例:
        >>> engine = EmbeddingEngine(HashingEmbeddingModel(dimension=256))
        >>> query = await engine.embed("pasta recipe")
        >>> docs = await engine.embed_batch(["tomato pasta", "car engine"])
        >>> engine.find_similar(query, docs, top_k=1)
    """

    def __init__(self, model: EmbeddingModel, config: EmbeddingConfig | None = None):
        self.model = model
        self.config = config or EmbeddingConfig()

    @property
    def dimension(self) -> int:
        return self.model.dimension

    def detect_language(self, text: str) -> str:
        if not self.config.auto_detect:
            return self.config.language
        return detect_script_language(text) or self.config.language

    def _check_length(self, text: str) -> None:
        if len(text) > self.config.max_text_length:
            raise TextTooLongError(len(text), self.config.max_text_length)

    async def embed(self, text: str) -> TextEmbedding:
        """生成单条文本的 embedding

        Raises:
            TextTooLongError: 文本超过 max_text_length
        """
        self._check_length(text)
        result = await self.model.embed(text)
        logger.debug(f"EmbeddingEngine embed - text: {truncate_content(text, max_length=30)}, dim: {len(result.embedding)}")
        return TextEmbedding(text=text, vector=result.embedding, language=self.detect_language(text))

    async def embed_batch(self, texts: Sequence[str]) -> list[TextEmbedding]:
        """批量生成 embedding，顺序与输入一致

        Raises:
            BatchTooLargeError: 条数超过 max_batch_size
            TextTooLongError: 任一文本超过 max_text_length
        """
        if len(texts) > self.config.max_batch_size:
            raise BatchTooLargeError(len(texts), self.config.max_batch_size)
        for text in texts:
            self._check_length(text)

        results = await self.model.embed_batch(list(texts))
        return [
            TextEmbedding(text=result.text, vector=result.embedding, language=self.detect_language(result.text))
            for result in results
        ]

    # ========== 向量工具 ==========

    @staticmethod
    def cosine_similarity(a: TextEmbedding | Sequence[float], b: TextEmbedding | Sequence[float]) -> float:
        """余弦相似度

        维度不同或任一向量范数为 0 时返回 0.0，结果截断到 [-1, 1]
        """
        vec_a = np.asarray(a.vector if isinstance(a, TextEmbedding) else a, dtype=np.float64)
        vec_b = np.asarray(b.vector if isinstance(b, TextEmbedding) else b, dtype=np.float64)
        if vec_a.shape != vec_b.shape:
            return 0.0

        denominator = np.linalg.norm(vec_a) * np.linalg.norm(vec_b)
        if denominator == 0:
            return 0.0
        return float(np.clip(np.dot(vec_a, vec_b) / denominator, -1.0, 1.0))

    def find_similar(
        self,
        query: TextEmbedding,
        candidates: Sequence[TextEmbedding],
        top_k: int = 5,
    ) -> list[tuple[TextEmbedding, float]]:
        """按相似度降序返回最相近的 top_k 个候选"""
        scored = [(candidate, self.cosine_similarity(query, candidate)) for candidate in candidates]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:top_k]

    @staticmethod
    def normalize(vector: Sequence[float]) -> list[float]:
        """归一化为单位长度，零向量原样返回"""
        array = np.asarray(vector, dtype=np.float64)
        norm = np.linalg.norm(array)
        if norm == 0:
            return array.tolist()
        return (array / norm).tolist()

    @staticmethod
    def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
        """欧氏距离，维度不同时返回 inf"""
        if len(a) != len(b):
            return float("inf")
        return float(np.linalg.norm(np.asarray(a, dtype=np.float64) - np.asarray(b, dtype=np.float64)))

    @staticmethod
    def average_vectors(vectors: Sequence[Sequence[float]]) -> list[float] | None:
        """逐维平均

        维度与第一个向量不同的向量被跳过，空输入返回 None
        """
        if not vectors:
            return None
        dimension = len(vectors[0])
        kept = [vector for vector in vectors if len(vector) == dimension]
        return np.mean(np.asarray(kept, dtype=np.float64), axis=0).tolist()


__all__ = [
    "EmbeddingEngine",
]
