"""
Embedding 模型抽象基类

子类只需实现 _embed_batch_impl，分批、结果组装与异常转换由基类完成
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from loguru import logger

from ext.embedding.exceptions import EmbeddingAPIError, EmbeddingError, EmbeddingTimeoutError
from ext.embedding.types import EmbeddingResult
from util.general import truncate_content


class EmbeddingModel(ABC):
    """Embedding 模型抽象基类

    所有 embedding 模型实现必须继承此类并实现 _embed_batch_impl。
    """

    def __init__(
        self,
        model_name_or_path: str,
        dimension: int,
        max_batch_size: int = 32,
        max_token_per_request: int = 8191,
        max_token_per_text: Optional[int] = None,
    ):
        """
        初始化 Embedding 模型

        Args:
            model_name_or_path: 模型标识符或路径
            dimension: 向量维度
            max_batch_size: 单次调用 _embed_batch_impl 的最大条数
            max_token_per_request: 单次调用的最大估计 token 数
            max_token_per_text: 单条文本的最大估计 token 数，超过时打印警告
        """
        self.model_name_or_path = model_name_or_path
        self._dimension = dimension
        self.max_batch_size = max_batch_size
        self.max_token_per_request = max_token_per_request
        self.max_token_per_text = max_token_per_text if max_token_per_text is not None else max_token_per_request

        # 4 chars ≈ 1 token
        self._chars_per_token = 4

    @property
    def dimension(self) -> int:
        """向量维度"""
        return self._dimension

    @abstractmethod
    async def _embed_batch_impl(self, texts: List[str]) -> List[List[float]]:
        """
        实际执行批量 embedding（由子类实现）

        Args:
            texts: 文本列表

        Returns:
            向量列表，顺序与输入一致

        Raises:
            EmbeddingAPIError: 调用失败
            EmbeddingTimeoutError: 请求超时
        """
        pass

    def _estimate_tokens(self, text: str) -> int:
        return (len(text) + self._chars_per_token - 1) // self._chars_per_token

    def _split_by_token_limit(self, texts: List[str], max_tokens: int) -> List[List[str]]:
        """
        按估计 token 数把文本分成多个批次

        单条就超过限制的文本独立成批
        """
        batches: List[List[str]] = []
        current_batch: List[str] = []
        current_tokens = 0

        for text in texts:
            text_tokens = self._estimate_tokens(text)

            if text_tokens > max_tokens:
                logger.warning(
                    f"Text token estimate ({text_tokens}) exceeds per-request limit ({max_tokens}), "
                    f"sending alone: {truncate_content(text)}"
                )
                if current_batch:
                    batches.append(current_batch)
                    current_batch = []
                    current_tokens = 0
                batches.append([text])
                continue

            if current_tokens + text_tokens > max_tokens:
                batches.append(current_batch)
                current_batch = [text]
                current_tokens = text_tokens
            else:
                current_batch.append(text)
                current_tokens += text_tokens

        if current_batch:
            batches.append(current_batch)

        return batches

    def _split_by_batch_size(self, texts: List[str], batch_size: int) -> List[List[str]]:
        return [texts[i : i + batch_size] for i in range(0, len(texts), batch_size)]

    async def embed_batch(
        self,
        texts: List[str],
        batch_size: Optional[int] = None,
        max_tokens: Optional[int] = None,
    ) -> List[EmbeddingResult]:
        """
        批量生成 embedding（自动分批）

        先按 batch_size 分批，再在每批内按 token 上限细分；批次严格顺序执行。

        Args:
            texts: 文本列表
            batch_size: 每批大小，None 时使用 self.max_batch_size
            max_tokens: 单批次最大 token 数，None 时使用 self.max_token_per_request

        Returns:
            EmbeddingResult 列表，顺序与输入一致

        Raises:
            EmbeddingAPIError: 调用失败
            EmbeddingTimeoutError: 请求超时
        """
        if not texts:
            return []

        batch_size = batch_size or self.max_batch_size
        max_tokens = max_tokens or self.max_token_per_request

        final_batches: List[List[str]] = []
        for batch in self._split_by_batch_size(texts, batch_size):
            final_batches.extend(self._split_by_token_limit(batch, max_tokens))

        logger.debug(
            f"{self.__class__.__name__} embed_batch - texts: {len(texts)}, batches: {len(final_batches)}"
        )

        results: List[EmbeddingResult] = []
        index = 0
        for batch in final_batches:
            for text in batch:
                text_tokens = self._estimate_tokens(text)
                if text_tokens > self.max_token_per_text:
                    logger.warning(
                        f"Text token estimate ({text_tokens}) exceeds model limit ({self.max_token_per_text}), "
                        f"model: {self.model_name_or_path}, text: {truncate_content(text)}"
                    )

            try:
                embeddings = await self._embed_batch_impl(batch)
            except EmbeddingError:
                raise
            except Exception as e:
                error_msg = f"Batch embedding failed: {e}"
                logger.error(f"{self.__class__.__name__} {error_msg}")
                if "timeout" in str(e).lower():
                    raise EmbeddingTimeoutError(error_msg) from e
                raise EmbeddingAPIError(error_msg) from e

            if len(embeddings) != len(batch):
                raise EmbeddingAPIError(f"Expected {len(batch)} embeddings, got {len(embeddings)}")

            for text, embedding in zip(batch, embeddings):
                results.append(EmbeddingResult(embedding=embedding, index=index, text=text, model=self.model_name_or_path))
                index += 1

        return results

    async def embed(self, text: str) -> EmbeddingResult:
        """生成单个文本的 embedding"""
        results = await self.embed_batch([text])
        return results[0]

    async def get_embeddings(self, texts: List[str]) -> List[List[float]]:
        """便捷方法：直接获取向量列表"""
        results = await self.embed_batch(texts)
        return [result.embedding for result in results]

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"model_name={self.model_name_or_path}, "
            f"dimension={self.dimension}, "
            f"max_batch_size={self.max_batch_size})"
        )


__all__ = [
    "EmbeddingModel",
]
