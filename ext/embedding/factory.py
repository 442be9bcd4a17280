"""
Embedding Model Factory

提供 embedding 模型的创建、缓存和注册功能
"""

import warnings
from typing import Any

from loguru import logger

from ext.embedding.base import EmbeddingModel
from ext.embedding.exceptions import EmbeddingModelNotFoundError
from ext.embedding.types import EmbeddingModelTypeEnum


class EmbeddingModelFactory:
    """Embedding 模型工厂类

    根据 EmbeddingModelConfig 动态创建 embedding 模型实例
    """

    # 模型类型到 provider 类的映射
    _providers: dict[EmbeddingModelTypeEnum, type[EmbeddingModel]] = {}

    # 实例缓存，key 为配置签名
    _instances: dict[str, EmbeddingModel] = {}

    @classmethod
    def register(cls, model_type: EmbeddingModelTypeEnum, provider_class: type[EmbeddingModel]) -> None:
        """
        注册新的 embedding provider

        Args:
            model_type: 模型类型标识
            provider_class: 实现 EmbeddingModel 的类

        Example:
            >>> EmbeddingModelFactory.register(EmbeddingModelTypeEnum.hashing, HashingEmbeddingModel)
        """
        if model_type in cls._providers:
            warnings.warn(f"Embedding model type {model_type.value} already registered, overriding", stacklevel=2)
        cls._providers[model_type] = provider_class
        logger.debug(f"Registered embedding provider: {model_type.value} -> {provider_class.__name__}")

    @staticmethod
    def cache_key(config) -> str:
        return f"{config.type}:{config.model_name}:{config.dimension}:{config.base_url}"

    @classmethod
    def create(cls, config, use_cache: bool = True) -> EmbeddingModel:
        """
        创建 embedding 模型实例

        Args:
            config: EmbeddingModelConfig 配置对象
            use_cache: 是否使用缓存

        Returns:
            EmbeddingModel 实例

        Raises:
            EmbeddingModelNotFoundError: 不支持的模型类型
            EmbeddingConfigError: 配置错误
        """
        provider_cls = cls._providers.get(config.type)
        if not provider_cls:
            available_types = ", ".join([t.value for t in cls._providers.keys()])
            raise EmbeddingModelNotFoundError(f"Unsupported embedding model type: {config.type}, available: {available_types}")

        key = cls.cache_key(config)
        if use_cache and key in cls._instances:
            return cls._instances[key]

        model = provider_cls(
            model_name_or_path=config.model_name,
            dimension=config.dimension,
            base_url=config.base_url,
            api_key=config.api_key,
            max_batch_size=config.provider_batch_size,
            timeout=config.timeout,
            max_retries=config.max_retries,
            extra_config=config.extra_config,
        )
        logger.debug(f"EmbeddingModelFactory created model: {model!r}")

        if use_cache:
            cls._instances[key] = model
        return model

    @classmethod
    def clear_cache(cls) -> None:
        """清除模型实例缓存"""
        cls._instances.clear()

    @classmethod
    def has_provider(cls, model_type: EmbeddingModelTypeEnum) -> bool:
        return model_type in cls._providers

    @classmethod
    def get_registered_model_types(cls) -> list[EmbeddingModelTypeEnum]:
        return list(cls._providers.keys())

    @classmethod
    def get_cache_info(cls) -> dict[str, Any]:
        """
        获取缓存信息

        Example:
            >>> EmbeddingModelFactory.get_cache_info()
            {'cached_count': 1, 'cached_keys': ['hashing:hashing-512:512:None'], 'registered_models': ['hashing']}
        """
        return {
            "cached_count": len(cls._instances),
            "cached_keys": list(cls._instances.keys()),
            "registered_models": [t.value for t in cls._providers.keys()],
        }


__all__ = [
    "EmbeddingModelFactory",
]
