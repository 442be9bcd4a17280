"""
内置 Chain 公共基类
"""

import time
from abc import abstractmethod

from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import Chain, ChainInput, ChainOutput
from ext.llm.types import GenerationConfig, ModelResponse
from util.general import elapsed_ms, truncate_content


class BuiltinChain(Chain):
    """内置 Chain 基类

    子类实现 build_prompt 与 parse，基类负责调用模型与组装 ChainOutput。
    除 ChatChain 外默认使用 structured 生成参数。
    """

    def __init__(self, model: BaseLanguageModel, config: GenerationConfig | None = None):
        self.model = model
        self.config = config or GenerationConfig.structured()
        self.name = self.__class__.__name__

    @abstractmethod
    def build_prompt(self, input: ChainInput) -> str:
        raise NotImplementedError

    @abstractmethod
    def parse(self, input: ChainInput, response: ModelResponse) -> tuple[object, str]:
        """把模型输出解析为 (value, text)"""
        raise NotImplementedError

    async def ainvoke(self, input: ChainInput) -> ChainOutput:
        start = time.perf_counter()
        prompt = self.build_prompt(input)
        logger.debug(f"{self.name} ainvoke - input: {truncate_content(input.text)}")

        response = await self.model.generate(prompt, self.config)
        value, text = self.parse(input, response)

        return ChainOutput(
            value=value,
            text=text,
            metadata=dict(input.metadata),
            processing_time_ms=response.processing_time_ms if response.processing_time_ms is not None else elapsed_ms(start),
        )


__all__ = [
    "BuiltinChain",
]
