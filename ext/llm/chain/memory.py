"""
Memory 实现

提供对话历史的存储和管理能力。
端侧模型的上下文窗口很小（约 4000 token），因此各实现都带有保留/压缩策略。
"""

import asyncio
from abc import ABC, abstractmethod

from loguru import logger

from ext.llm.base import BaseLanguageModel
from ext.llm.types import GenerationConfig, MemoryEntry


def estimate_tokens(text: str) -> int:
    """粗略估计 token 数（约 4 个字符 1 个 token）"""
    return len(text) // 4


class BaseMemory(ABC):
    """Memory 抽象基类

    save_context 由实例级的 asyncio.Lock 串行化（单写者），
    load 返回当前条目的快照副本，可以并发调用。
    """

    def __init__(self):
        self._lock = asyncio.Lock()

    @abstractmethod
    async def load(self, input: str | None = None) -> list[MemoryEntry]:
        """加载与输入相关的历史

        Args:
            input: 当前输入（可选，按策略决定是否使用）

        Returns:
            按时间顺序排列的历史条目
        """
        pass

    @abstractmethod
    async def save_context(self, input: str, output: str) -> None:
        """保存一轮对话

        Args:
            input: 用户输入
            output: Assistant 输出
        """
        pass

    @abstractmethod
    async def clear(self) -> None:
        """清空记忆"""
        pass

    @property
    @abstractmethod
    def estimated_token_count(self) -> int:
        """当前保存内容的估计 token 数"""
        pass


class BufferMemory(BaseMemory):
    """缓冲记忆

    保留最近 max_entries 轮对话（每轮 user + assistant 两条），
    同时受 max_tokens 限制，超出时从最旧的条目开始淘汰。

    使用示例:
        >>> memory = BufferMemory(max_entries=10, max_tokens=2000)
        >>> await memory.save_context("hi", "hello")
        >>> entries = await memory.load()
    """

    def __init__(self, max_entries: int = 10, max_tokens: int = 2000):
        """初始化缓冲记忆

        Args:
            max_entries: 最多保留的对话轮数
            max_tokens: 最多保留的估计 token 数（约为上下文窗口的一半）
        """
        super().__init__()
        self.max_entries = max_entries
        self.max_tokens = max_tokens
        self._entries: list[MemoryEntry] = []

    async def load(self, input: str | None = None) -> list[MemoryEntry]:
        """返回全部保留的条目（忽略 input）"""
        logger.debug(f"BufferMemory load - entries: {len(self._entries)}, tokens: {self.estimated_token_count}")
        return list(self._entries)

    async def save_context(self, input: str, output: str) -> None:
        async with self._lock:
            self._entries.append(MemoryEntry(role="user", content=input))
            self._entries.append(MemoryEntry(role="assistant", content=output))

            while len(self._entries) > self.max_entries * 2:
                self._entries.pop(0)
            while self.estimated_token_count > self.max_tokens and len(self._entries) > 2:
                self._entries.pop(0)

        logger.debug(f"BufferMemory save - entries: {len(self._entries)}, tokens: {self.estimated_token_count}")

    async def clear(self) -> None:
        async with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"BufferMemory cleared {count} entries")

    @property
    def estimated_token_count(self) -> int:
        return sum(estimate_tokens(entry.content) for entry in self._entries)


class SummaryMemory(BaseMemory):
    """摘要记忆

    最近 recent_window_size 轮对话原样保留；更早的对话由模型压缩为一句话，
    追加到累积摘要中。load 时摘要作为一条 system 条目放在最前面。

    模型调用失败时按 max_retries 重试，仍失败则保留未压缩的条目并抛出原始异常，
    不会丢失历史。
    """

    def __init__(self, model: BaseLanguageModel, recent_window_size: int = 4, max_retries: int = 1):
        """初始化摘要记忆

        Args:
            model: 用于生成摘要的模型
            recent_window_size: 原样保留的对话轮数
            max_retries: 摘要失败时的重试次数
        """
        super().__init__()
        self.model = model
        self.recent_window_size = recent_window_size
        self.max_retries = max_retries
        self._entries: list[MemoryEntry] = []
        self._summary = ""

    @property
    def summary(self) -> str:
        return self._summary

    async def load(self, input: str | None = None) -> list[MemoryEntry]:
        result: list[MemoryEntry] = []
        if self._summary:
            result.append(MemoryEntry(role="system", content=f"Previous conversation summary: {self._summary}"))
        result.extend(self._entries)
        return result

    async def save_context(self, input: str, output: str) -> None:
        async with self._lock:
            self._entries.append(MemoryEntry(role="user", content=input))
            self._entries.append(MemoryEntry(role="assistant", content=output))

            while len(self._entries) > self.recent_window_size * 2:
                # 成功后才移除最旧的一轮
                self._summary = await self._summarize(self._entries[:2])
                del self._entries[:2]

        logger.debug(f"SummaryMemory save - entries: {len(self._entries)}, has_summary: {bool(self._summary)}")

    async def _summarize(self, entries: list[MemoryEntry]) -> str:
        conversation_text = "\n".join(f"{entry.role}: {entry.content}" for entry in entries)
        current_summary = f"Existing summary: {self._summary}\n\n" if self._summary else ""
        prompt = f"{current_summary}Summarize this conversation exchange in one concise sentence:\n{conversation_text}"

        attempt = 0
        while True:
            try:
                response = await self.model.generate(prompt, GenerationConfig.structured())
                return response.text.strip()
            except Exception as e:
                if attempt >= self.max_retries:
                    logger.error(f"SummaryMemory summarization failed after {attempt + 1} attempts: {e}")
                    raise
                attempt += 1
                logger.warning(f"SummaryMemory summarization failed, retrying ({attempt}/{self.max_retries}): {e}")

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()
            self._summary = ""
        logger.info("SummaryMemory cleared")

    @property
    def estimated_token_count(self) -> int:
        return estimate_tokens(self._summary) + sum(estimate_tokens(entry.content) for entry in self._entries)


__all__ = [
    "BaseMemory",
    "BufferMemory",
    "SummaryMemory",
    "estimate_tokens",
]
