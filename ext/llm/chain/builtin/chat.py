"""
对话 Chain
"""

import time
from collections.abc import AsyncIterator

from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import ChainInput, ChainOutput
from ext.llm.chain.builtin.base import BuiltinChain
from ext.llm.chain.builtin.prompts import CHAT_PROMPT, detect_language
from ext.llm.chain.builtin.types import ChatResult
from ext.llm.chain.memory import BaseMemory
from ext.llm.types import GenerationConfig, ModelResponse
from util.general import elapsed_ms, truncate_content

DEFAULT_CHAT_SYSTEM_PROMPT = "You are a friendly, helpful assistant."


class ChatChain(BuiltinChain):
    """带可选记忆的多轮对话

    回复语言由用户消息的书写系统决定；设置了 memory 时，
    历史写入 prompt，本轮问答在得到完整回复后写回 memory。

    使用示例:
        >>> chat = ChatChain(model, memory=BufferMemory())
        >>> result = await chat.arun("Hi!")
        >>> async for chunk in chat.astream_chat("Tell me more"):
        ...     print(chunk, end="")
    """

    output_type = ChatResult

    def __init__(
        self,
        model: BaseLanguageModel,
        memory: BaseMemory | None = None,
        system_prompt: str = DEFAULT_CHAT_SYSTEM_PROMPT,
        config: GenerationConfig | None = None,
    ):
        super().__init__(model, config or GenerationConfig.conversational())
        self.memory = memory
        self.system_prompt = system_prompt

    def build_prompt(self, input: ChainInput, history: str = "") -> str:
        language = detect_language(input.text)
        return CHAT_PROMPT.format(
            system_prompt=f"System instruction: {self.system_prompt}",
            language_instruction=f"IMPORTANT: You MUST reply in {language}. Do NOT reply in any other language.",
            history=history,
            text=input.text,
        )

    def parse(self, input: ChainInput, response: ModelResponse) -> tuple[ChatResult, str]:
        message = response.text.strip()
        return ChatResult(message=message, can_continue=True), message

    async def render(self, text: str) -> str:
        """读取记忆中的历史并生成 prompt"""
        history = ""
        if self.memory is not None:
            entries = await self.memory.load(text)
            if entries:
                history = "\n".join(f"{entry.role.capitalize()}: {entry.content}" for entry in entries) + "\n"
        return self.build_prompt(ChainInput(text=text), history)

    async def ainvoke(self, input: ChainInput) -> ChainOutput:
        start = time.perf_counter()
        prompt = await self.render(input.text)
        logger.debug(f"{self.name} ainvoke - input: {truncate_content(input.text)}")

        response = await self.model.generate(prompt, self.config)
        result, message = self.parse(input, response)

        if self.memory is not None:
            await self.memory.save_context(input.text, message)

        return ChainOutput(
            value=result,
            text=message,
            metadata=dict(input.metadata),
            processing_time_ms=response.processing_time_ms if response.processing_time_ms is not None else elapsed_ms(start),
        )

    async def astream_chat(self, text: str) -> AsyncIterator[str]:
        """流式对话

        逐块产出模型输出；流完整结束后才把本轮写入 memory，
        中途出错或被取消时不写入。
        """
        prompt = await self.render(text)
        chunks: list[str] = []
        async for chunk in self.model.stream(prompt, self.config):
            chunks.append(chunk)
            yield chunk

        if self.memory is not None:
            await self.memory.save_context(text, "".join(chunks).strip())


__all__ = [
    "ChatChain",
    "DEFAULT_CHAT_SYSTEM_PROMPT",
]
