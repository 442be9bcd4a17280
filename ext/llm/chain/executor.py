"""
Chain 执行器

带重试策略与执行历史记录的 Chain 运行器
"""

import asyncio
import time
from datetime import datetime, timezone
from typing import List, Tuple, Type

from loguru import logger
from pydantic import BaseModel, Field

from ext.llm.chain.base import Chain, ChainInput, ChainOutput
from util.general import elapsed_ms, truncate_content


class ExecutionRecord(BaseModel):
    """一次执行尝试的记录"""

    chain_name: str = Field(description="Chain 名称")
    input: str = Field(description="输入文本")
    output: str | None = Field(default=None, description="输出文本，失败时为 None")
    attempt: int = Field(description="第几次尝试（从 1 开始）")
    success: bool = Field(description="是否成功")
    error: str | None = Field(default=None, description="失败原因")
    timestamp: datetime = Field(description="开始时间")
    duration_ms: int = Field(description="耗时（毫秒）")


class ChainExecutor:
    """Chain 执行器

    每次尝试追加一条 ExecutionRecord；全部尝试失败后原样抛出最后一次的异常，
    不引入额外的异常类型。asyncio.CancelledError 不会被重试。

    使用示例:
        >>> executor = ChainExecutor(max_retries=1)
        >>> output = await executor.execute(chain, ChainInput(text="..."))
        >>> executor.get_history()
    """

    def __init__(
        self,
        max_retries: int = 1,
        retry_delay: float = 0.1,
        retry_on: Tuple[Type[Exception], ...] = (Exception,),
    ):
        """初始化执行器

        Args:
            max_retries: 首次失败后的最大重试次数
            retry_delay: 重试间隔（秒）
            retry_on: 需要重试的异常类型
        """
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.retry_on = retry_on
        self._history: List[ExecutionRecord] = []

    async def execute(self, chain: Chain, input: ChainInput | str) -> ChainOutput:
        """执行 Chain

        Args:
            chain: 要执行的 Chain
            input: 输入（字符串会被包装为 ChainInput）

        Returns:
            Chain 输出
        """
        if isinstance(input, str):
            input = ChainInput(text=input)

        attempt = 0
        while True:
            attempt += 1
            timestamp = datetime.now(timezone.utc)
            start = time.perf_counter()
            try:
                output = await chain.ainvoke(input)
            except self.retry_on as e:
                self._history.append(
                    ExecutionRecord(
                        chain_name=chain.name,
                        input=input.text,
                        attempt=attempt,
                        success=False,
                        error=f"{e.__class__.__name__}: {e}",
                        timestamp=timestamp,
                        duration_ms=elapsed_ms(start),
                    )
                )
                if attempt > self.max_retries:
                    logger.error(f"ChainExecutor {chain.name} failed after {attempt} attempts: {e}")
                    raise
                logger.warning(f"ChainExecutor {chain.name} attempt {attempt} failed, retrying in {self.retry_delay}s: {e}")
                await asyncio.sleep(self.retry_delay)
                continue

            self._history.append(
                ExecutionRecord(
                    chain_name=chain.name,
                    input=input.text,
                    output=output.text,
                    attempt=attempt,
                    success=True,
                    timestamp=timestamp,
                    duration_ms=elapsed_ms(start),
                )
            )
            logger.debug(f"ChainExecutor {chain.name} succeeded on attempt {attempt}: {truncate_content(output.text)}")
            return output

    def get_history(self, chain_name: str | None = None) -> List[ExecutionRecord]:
        """获取执行历史（可按 Chain 名称过滤）"""
        if chain_name is None:
            return list(self._history)
        return [record for record in self._history if record.chain_name == chain_name]

    def clear_history(self) -> None:
        self._history.clear()


__all__ = [
    "ExecutionRecord",
    "ChainExecutor",
]
