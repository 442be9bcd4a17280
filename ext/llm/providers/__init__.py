"""
LLM Provider 注册

自动注册所有 LLM providers
"""

from ext.llm.factory import LLMModelFactory
from ext.llm.providers.openai_compatible import OpenAICompatibleModel
from ext.llm.types import LLMModelTypeEnum

LLMModelFactory.register(LLMModelTypeEnum.openai_compatible, OpenAICompatibleModel)

__all__ = [
    "OpenAICompatibleModel",
]
