"""
Embedding Providers 注册

导入时注册已知的 embedding providers
"""

from ext.embedding.factory import EmbeddingModelFactory
from ext.embedding.providers.hashing import HashingEmbeddingModel
from ext.embedding.providers.openai_compatible import OpenAICompatibleEmbeddingModel
from ext.embedding.types import EmbeddingModelTypeEnum

EmbeddingModelFactory.register(EmbeddingModelTypeEnum.hashing, HashingEmbeddingModel)
EmbeddingModelFactory.register(EmbeddingModelTypeEnum.openai_compatible, OpenAICompatibleEmbeddingModel)

__all__ = [
    "HashingEmbeddingModel",
    "OpenAICompatibleEmbeddingModel",
]
