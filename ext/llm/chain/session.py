"""
Session

维护对话状态（记忆 + Guardrail）的有状态会话
"""

from typing import List
from uuid import uuid4

from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import Chain, ChainInput, ChainOutput
from ext.llm.chain.guardrail import BaseGuardrail, apply_input_guardrails, apply_output_guardrails
from ext.llm.chain.memory import BaseMemory, BufferMemory
from ext.llm.types import GenerationConfig
from util.general import truncate_content


class Session:
    """有状态会话

    使用示例:
        >>> session = Session(model, memory=BufferMemory(), guardrails=[InputLengthGuardrail()])
        >>> reply = await session.send("Hello!")
    """

    def __init__(
        self,
        model: BaseLanguageModel,
        memory: BaseMemory | None = None,
        guardrails: List[BaseGuardrail] | None = None,
    ):
        self.id = str(uuid4())
        self.model = model
        self.memory = memory if memory is not None else BufferMemory()
        self.guardrails = list(guardrails or [])

    async def send(self, text: str) -> str:
        """发送一条消息并返回回复

        Args:
            text: 用户消息

        Returns:
            模型回复

        Raises:
            GuardrailBlockedError: 输入被拦截
            ChainExecutionError: 输出被拦截
        """
        input = await apply_input_guardrails(self.guardrails, ChainInput(text=text))

        entries = await self.memory.load(input.text)
        history = "".join(f"{entry.role}: {entry.content}\n" for entry in entries)
        prompt = f"{history}User: {input.text}\nAssistant:"

        logger.debug(f"Session {self.id} send - history entries: {len(entries)}, text: {truncate_content(input.text)}")
        response = await self.model.generate(prompt, GenerationConfig.conversational())

        output_text = response.text.strip()
        output = await apply_output_guardrails(
            self.guardrails,
            ChainOutput(value=output_text, text=output_text, processing_time_ms=response.processing_time_ms),
        )

        await self.memory.save_context(input.text, output.text)
        return output.text

    async def run(self, chain: Chain, text: str) -> ChainOutput:
        """在会话上下文中运行一个 Chain"""
        return await chain.ainvoke(ChainInput(text=text))

    async def reset(self) -> None:
        """清空会话记忆"""
        await self.memory.clear()
        logger.info(f"Session {self.id} reset")


__all__ = [
    "Session",
]
