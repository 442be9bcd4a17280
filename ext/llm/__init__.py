"""
语言模型抽象层

定义模型调用约定（prompt -> 文本 / 文本流），以及基于 httpx 的 OpenAI 兼容 provider。
"""

from ext.llm.base import BaseLanguageModel
from ext.llm.factory import LLMModelFactory
from ext.llm.types import GenerationConfig, MemoryEntry, ModelResponse, TokenUsage
from ext.llm.exceptions import (
    LLMError,
    LLMConfigError,
    LLMModelNotFoundError,
    LLMModelNotReadyError,
    LLMAPIError,
    LLMTimeoutError,
    LLMStreamingError,
)

__all__ = [
    # 基类
    "BaseLanguageModel",
    # 工厂
    "LLMModelFactory",
    # 类型
    "GenerationConfig",
    "MemoryEntry",
    "ModelResponse",
    "TokenUsage",
    # 异常
    "LLMError",
    "LLMConfigError",
    "LLMModelNotFoundError",
    "LLMModelNotReadyError",
    "LLMAPIError",
    "LLMTimeoutError",
    "LLMStreamingError",
]
