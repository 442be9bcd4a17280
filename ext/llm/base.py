"""
语言模型抽象基类

模型推理本身不在本项目范围内，这里只定义调用约定：
输入 prompt 与可选的生成参数，返回文本，或以文本块流的形式返回。
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from typing import TYPE_CHECKING

from loguru import logger

from ext.llm.types import GenerationConfig, ModelResponse

if TYPE_CHECKING:
    from ext.llm.chain.builtin.types import (
        ChatResult,
        ClassifyResult,
        ExtractResult,
        ProofreadResult,
        RewriteOutputType,
        RewriteResult,
        SummarizeResult,
        TranslateResult,
    )
    from ext.llm.chain.memory import BaseMemory


class BaseLanguageModel(ABC):
    """语言模型抽象基类

    子类只需实现 generate，stream 默认退化为一次性返回完整文本。

    设计原则:
        1. 对上层只暴露 prompt -> 文本 的能力
        2. 失败统一抛出 LLMError 体系的异常
        3. 提供内置 Chain 的便捷调用方法（summarize、translate 等）
    """

    name: str = "BaseLanguageModel"
    max_context_tokens: int = 4096

    @property
    def is_ready(self) -> bool:
        """模型是否可以进行推理"""
        return True

    @abstractmethod
    async def generate(self, prompt: str, config: GenerationConfig | None = None) -> ModelResponse:
        """
        生成文本

        Args:
            prompt: 提示词
            config: 生成参数（可选）

        Returns:
            模型响应

        Raises:
            LLMError: 模型调用失败
        """
        raise NotImplementedError

    async def stream(self, prompt: str, config: GenerationConfig | None = None) -> AsyncIterator[str]:
        """
        流式生成文本

        默认实现调用 generate 并一次性输出，子类可以覆盖以提供真正的流式输出。
        返回的序列是有限的，且不可重复消费。

        Args:
            prompt: 提示词
            config: 生成参数（可选）

        Yields:
            文本块
        """
        response = await self.generate(prompt, config)
        yield response.text

    # ========== 内置 Chain 便捷方法 ==========

    async def summarize(self, text: str, bullet_count: int = 1, input_type: str = "text") -> "SummarizeResult":
        """摘要"""
        from ext.llm.chain.builtin import SummarizeChain

        logger.debug(f"{self.name} summarize - bullet_count: {bullet_count}")
        return await SummarizeChain(self, bullet_count=bullet_count, input_type=input_type).arun(text)

    async def classify(self, text: str, categories: list[str], max_results: int = 3) -> "ClassifyResult":
        """分类"""
        from ext.llm.chain.builtin import ClassifyChain

        return await ClassifyChain(self, categories=categories, max_results=max_results).arun(text)

    async def extract(self, text: str, entity_types: list[str] | None = None) -> "ExtractResult":
        """实体抽取"""
        from ext.llm.chain.builtin import ExtractChain

        if entity_types is None:
            return await ExtractChain(self).arun(text)
        return await ExtractChain(self, entity_types=entity_types).arun(text)

    async def chat(self, text: str, memory: "BaseMemory | None" = None, system_prompt: str | None = None) -> "ChatResult":
        """对话"""
        from ext.llm.chain.builtin import ChatChain

        if system_prompt is None:
            return await ChatChain(self, memory=memory).arun(text)
        return await ChatChain(self, memory=memory, system_prompt=system_prompt).arun(text)

    async def translate(self, text: str, to: str, from_: str = "en") -> "TranslateResult":
        """翻译"""
        from ext.llm.chain.builtin import TranslateChain

        return await TranslateChain(self, target_language=to, source_language=from_).arun(text)

    async def rewrite(self, text: str, style: "RewriteOutputType | str") -> "RewriteResult":
        """改写"""
        from ext.llm.chain.builtin import RewriteChain

        return await RewriteChain(self, style=style).arun(text)

    async def proofread(self, text: str) -> "ProofreadResult":
        """校对"""
        from ext.llm.chain.builtin import ProofreadChain

        return await ProofreadChain(self).arun(text)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name}, max_context_tokens={self.max_context_tokens})"


__all__ = [
    "BaseLanguageModel",
]
