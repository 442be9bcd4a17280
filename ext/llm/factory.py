"""
LLM 模型工厂类

根据配置动态创建语言模型实例，支持 provider 注册与实例缓存。
"""

import warnings
from typing import Type

from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.exceptions import LLMModelNotFoundError
from ext.llm.types import LLMModelTypeEnum


class LLMModelFactory:
    """LLM 模型工厂类

    使用示例:
        >>> model = LLMModelFactory.create(local_configs.extensions.llm)
        >>> result = await model.summarize("...")
    """

    # 模型类型到实现类的映射
    _models: dict[LLMModelTypeEnum, Type[BaseLanguageModel]] = {}

    # 模型实例缓存，key 为配置签名
    _instances: dict[str, BaseLanguageModel] = {}

    @classmethod
    def register(cls, model_type: LLMModelTypeEnum, model_class: Type[BaseLanguageModel]) -> None:
        """注册新的模型类型

        Args:
            model_type: 模型类型标识
            model_class: 实现 BaseLanguageModel 的类
        """
        if model_type in cls._models:
            warnings.warn(f"LLM model type {model_type.value} already registered, overriding", stacklevel=2)
        cls._models[model_type] = model_class

    @classmethod
    def create(cls, config, use_cache: bool = True) -> BaseLanguageModel:
        """根据配置创建模型实例

        Args:
            config: LLMConfig 配置对象
            use_cache: 是否使用缓存

        Returns:
            BaseLanguageModel 实例

        Raises:
            LLMModelNotFoundError: 不支持的模型类型
            LLMConfigError: 配置错误
        """
        model_cls = cls._models.get(config.type)
        if not model_cls:
            available_types = ", ".join([t.value for t in cls._models.keys()])
            raise LLMModelNotFoundError(f"Unsupported LLM model type: {config.type}, available: {available_types}")

        cache_key = f"{config.type}:{config.model_name}:{config.base_url}"
        if use_cache and cache_key in cls._instances:
            return cls._instances[cache_key]

        model = model_cls(
            model_name=config.model_name,
            base_url=config.base_url,
            api_key=config.api_key,
            max_context_tokens=config.max_context_tokens,
            timeout=config.timeout,
            max_retries=config.max_retries,
            system_prompt=config.system_prompt,
            extra_config=config.extra_config,
        )
        logger.debug(f"LLMModelFactory created model: {model!r}")

        if use_cache:
            cls._instances[cache_key] = model
        return model

    @classmethod
    def has_model(cls, model_type: LLMModelTypeEnum) -> bool:
        """检查模型类型是否已注册"""
        return model_type in cls._models

    @classmethod
    def get_registered_model_types(cls) -> list[LLMModelTypeEnum]:
        return list(cls._models.keys())

    @classmethod
    def clear_cache(cls) -> None:
        """清除模型实例缓存"""
        cls._instances.clear()


__all__ = [
    "LLMModelFactory",
]
