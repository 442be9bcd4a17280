"""
LLM Runnable 封装

把 BaseLanguageModel 包装为 str -> str 的 Runnable，用于组合：

    chain = PromptTemplate("...{text}") | LLM(model) | StrOutputParser()
"""

from typing import AsyncIterator

from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import Runnable
from ext.llm.types import GenerationConfig


class LLM(Runnable[str, str]):
    """LLM Runnable 封装"""

    def __init__(self, model: BaseLanguageModel, config: GenerationConfig | None = None):
        """初始化 LLM

        Args:
            model: 语言模型实例
            config: 默认生成参数
        """
        self.model = model
        self.config = config

    async def ainvoke(self, input: str, config: GenerationConfig | None = None) -> str:
        """调用模型（非流式）

        Args:
            input: 提示词
            config: 生成参数（覆盖默认值）

        Returns:
            模型输出文本
        """
        logger.debug(f"LLM ainvoke - model: {self.model.name}, input length: {len(input)}")
        response = await self.model.generate(input, self._merge_config(config))
        logger.debug(f"LLM ainvoke result - output length: {len(response.text)}")
        return response.text

    async def astream(self, input: str, config: GenerationConfig | None = None) -> AsyncIterator[str]:
        """流式调用模型

        Yields:
            文本块
        """
        logger.debug(f"LLM astream - model: {self.model.name}, input length: {len(input)}")
        async for chunk in self.model.stream(input, self._merge_config(config)):
            yield chunk

    def _merge_config(self, config: GenerationConfig | None) -> GenerationConfig | None:
        if self.config is None:
            return config
        return self.config.merge(config)


__all__ = [
    "LLM",
]
