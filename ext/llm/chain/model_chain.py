"""
ModelChain

最基础的模型 Chain：渲染 prompt -> 调用模型 -> 解析输出，自定义 Chain 的基本构件
"""

import time
from typing import Any

from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import Chain, ChainInput, ChainOutput
from ext.llm.chain.output_parser import BaseOutputParser, StrOutputParser
from ext.llm.chain.prompt import PromptTemplate
from ext.llm.types import GenerationConfig
from util.general import elapsed_ms, truncate_content


class ModelChain(Chain):
    """模型 Chain

    prompt 为空时直接把输入文本作为 prompt；
    否则以 metadata 加上 text 作为模板变量渲染。

    使用示例:
        >>> chain = ModelChain(model, prompt=PromptTemplate("Summarize: {text}"))
        >>> summary = await chain.arun("...")
    """

    output_type = object

    def __init__(
        self,
        model: BaseLanguageModel,
        prompt: PromptTemplate | str | None = None,
        parser: BaseOutputParser | None = None,
        config: GenerationConfig | None = None,
        name: str = "ModelChain",
    ):
        """初始化 ModelChain

        Args:
            model: 语言模型
            prompt: 提示词模板，字符串会被转换为 PromptTemplate
            parser: 输出解析器，默认 StrOutputParser
            config: 生成参数
            name: Chain 名称
        """
        self.model = model
        self.prompt = PromptTemplate(prompt) if isinstance(prompt, str) else prompt
        self.parser = parser or StrOutputParser()
        self.config = config
        self.name = name

    def render(self, input: ChainInput) -> str:
        if self.prompt is None:
            return input.text
        values: dict[str, Any] = {**input.metadata, "text": input.text}
        return self.prompt.format(**values)

    async def ainvoke(self, input: ChainInput) -> ChainOutput:
        start = time.perf_counter()
        prompt = self.render(input)
        logger.debug(f"{self.name} ainvoke - prompt: {truncate_content(prompt)}")

        response = await self.model.generate(prompt, self.config)
        value = await self.parser.parse(response.text)
        text = value if isinstance(value, str) else response.text.strip()

        return ChainOutput(
            value=value,
            text=text,
            metadata=dict(input.metadata),
            processing_time_ms=response.processing_time_ms if response.processing_time_ms is not None else elapsed_ms(start),
        )


__all__ = [
    "ModelChain",
]
