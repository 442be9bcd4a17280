"""
Embedding 模型抽象层

提供统一的 embedding 接口与 EmbeddingEngine，支持切换不同的 embedding provider。
"""

from ext.embedding.base import EmbeddingModel
from ext.embedding.engine import EmbeddingEngine
from ext.embedding.exceptions import (
    BatchTooLargeError,
    EmbeddingAPIError,
    EmbeddingConfigError,
    EmbeddingError,
    EmbeddingModelNotFoundError,
    EmbeddingTimeoutError,
    TextTooLongError,
)
from ext.embedding.factory import EmbeddingModelFactory
from ext.embedding.types import (
    EmbeddingConfig,
    EmbeddingModelTypeEnum,
    EmbeddingResult,
    TextEmbedding,
)

__all__ = [
    # 基类
    "EmbeddingModel",
    "EmbeddingResult",
    # 引擎
    "EmbeddingEngine",
    "EmbeddingConfig",
    "TextEmbedding",
    # 工厂
    "EmbeddingModelFactory",
    "EmbeddingModelTypeEnum",
    # 异常
    "EmbeddingError",
    "EmbeddingConfigError",
    "EmbeddingModelNotFoundError",
    "EmbeddingAPIError",
    "EmbeddingTimeoutError",
    "TextTooLongError",
    "BatchTooLargeError",
]
