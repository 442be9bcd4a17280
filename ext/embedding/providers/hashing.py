"""
特征哈希 Embedding 模型

确定性、零依赖模型文件的本地 embedding：
每个小写的 \\w+ 词经 blake2b 哈希后落入一个桶，符号由摘要的第 5 个字节决定，
最后做 L2 归一化。共享词越多，余弦相似度越高。
"""

import re
from hashlib import blake2b
from typing import List

import numpy as np

from ext.embedding.base import EmbeddingModel

_TOKEN_PATTERN = re.compile(r"\w+")

_STOPWORDS = frozenset(
    {
        "a", "an", "and", "are", "as", "at", "be", "by", "for", "from", "in", "is", "it",
        "of", "on", "or", "that", "the", "this", "to", "was", "were", "with",
    }
)


class HashingEmbeddingModel(EmbeddingModel):
    """特征哈希 Embedding 模型

    使用示例:
        >>> model = HashingEmbeddingModel(dimension=256)
        >>> vectors = await model.get_embeddings(["pasta recipe", "tomato pasta"])
    """

    def __init__(
        self,
        model_name_or_path: str = "hashing",
        dimension: int = 512,
        max_batch_size: int = 256,
        **kwargs,
    ):
        """
        Args:
            model_name_or_path: 模型标识
            dimension: 向量维度（桶数）
            max_batch_size: 单批最大条数
            kwargs: 远程 provider 使用的参数（base_url、api_key 等），此处忽略
        """
        super().__init__(
            model_name_or_path=model_name_or_path,
            dimension=dimension,
            max_batch_size=max_batch_size,
            max_token_per_request=1_000_000,
        )

    def tokenize(self, text: str) -> List[str]:
        tokens = [token for token in _TOKEN_PATTERN.findall(text.lower()) if token not in _STOPWORDS]
        # 全部是停用词时退回原始词
        return tokens or _TOKEN_PATTERN.findall(text.lower())

    def embed_text(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float64)
        for token in self.tokenize(text):
            digest = blake2b(token.encode("utf-8"), digest_size=8).digest()
            idx = int.from_bytes(digest[:4], "little") % self.dimension
            vector[idx] += -1.0 if digest[4] % 2 else 1.0

        norm = np.linalg.norm(vector)
        if norm == 0:
            return vector
        return vector / norm

    async def _embed_batch_impl(self, texts: List[str]) -> List[List[float]]:
        return [self.embed_text(text).tolist() for text in texts]


__all__ = [
    "HashingEmbeddingModel",
]
