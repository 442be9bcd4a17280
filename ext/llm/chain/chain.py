"""
Chain 组合实现

- RunnableSequence: 任意 Runnable 的顺序组合（prompt | llm | parser）
- SequentialChain: Chain 的顺序组合，上一步的 text 作为下一步的输入
- ParallelChain: 同一输入并发执行多个 Chain
- ConditionalChain: 按条件路由到某一个 Chain
"""

import asyncio
import inspect
import time
from typing import Any, AsyncIterator, Awaitable, Callable, List, Mapping, TypeVar

from loguru import logger

from ext.llm.chain.base import Chain, ChainInput, ChainOutput, Runnable
from ext.llm.chain.exceptions import ChainExecutionError, MissingBranchError
from util.general import elapsed_ms

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")

Condition = Callable[[ChainInput], str | Awaitable[str]]


class RunnableSequence(Runnable[InputT, OutputT]):
    """顺序执行 Runnable

    将多个 Runnable 串联起来，按顺序执行
    """

    def __init__(self, steps: List[Runnable]):
        """初始化顺序执行 Runnable

        Args:
            steps: Runnable 列表，按执行顺序排列
        """
        self.steps = steps

    async def ainvoke(self, input: InputT) -> OutputT:
        logger.debug(f"RunnableSequence ainvoke - steps: {len(self.steps)}")
        result: Any = input

        for idx, step in enumerate(self.steps):
            logger.debug(f"RunnableSequence step {idx + 1}/{len(self.steps)}: {step.__class__.__name__}")
            result = await step.ainvoke(result)

        return result

    async def astream(self, input: InputT) -> AsyncIterator[OutputT]:
        """流式执行

        前面的步骤一次性执行，最后一个步骤使用流式输出
        """
        result: Any = input

        for step in self.steps[:-1]:
            result = await step.ainvoke(result)

        last_step = self.steps[-1]
        chunk_count = 0
        async for chunk in last_step.astream(result):
            chunk_count += 1
            yield chunk

        logger.debug(f"RunnableSequence stream completed - total chunks: {chunk_count}")

    def __or__(self, other: Runnable) -> "RunnableSequence":
        return RunnableSequence(self.steps + [other])


class SequentialChain(Chain):
    """顺序组合 Chain

    第 i 步输出的 text 作为第 i+1 步输入的 text；metadata 逐步累积
    （后面的 Chain 复用同一个 key 时覆盖）。任一步失败立即抛出，不返回部分结果。
    """

    def __init__(self, chains: List[Chain], name: str = "SequentialChain"):
        self.chains = list(chains)
        self.name = name

    async def ainvoke(self, input: ChainInput) -> ChainOutput:
        if not self.chains:
            raise ChainExecutionError(f"{self.name} has no chains")

        start = time.perf_counter()
        current = input
        metadata = dict(input.metadata)
        last_output: ChainOutput | None = None

        for idx, chain in enumerate(self.chains):
            logger.debug(f"{self.name} step {idx + 1}/{len(self.chains)}: {chain.name}")
            last_output = await chain.ainvoke(current)
            metadata.update(last_output.metadata)
            current = ChainInput(text=last_output.text, metadata=dict(metadata))

        logger.debug(f"{self.name} completed - steps: {len(self.chains)}")
        return last_output.model_copy(update={"metadata": metadata, "processing_time_ms": elapsed_ms(start)})

    def __or__(self, other: Runnable) -> Runnable:
        if isinstance(other, Chain):
            return SequentialChain([*self.chains, other], name=self.name)
        return super().__or__(other)


class ParallelChain(Chain):
    """并行组合 Chain

    所有 Chain 针对同一个输入并发执行，全部完成后才返回（join）。
    每个分支的 text 记录在 metadata[chain.name] 下，重名分支使用 "<name>#<index>"；
    返回的 text/value 取第一个 Chain 的结果。

    任一分支失败时取消其余分支并抛出该异常，不做部分聚合。
    """

    def __init__(self, chains: List[Chain], name: str = "ParallelChain"):
        self.chains = list(chains)
        self.name = name

    def _branch_keys(self) -> list[str]:
        keys: list[str] = []
        for idx, chain in enumerate(self.chains):
            key = chain.name
            if key in keys:
                key = f"{chain.name}#{idx}"
            keys.append(key)
        return keys

    async def ainvoke(self, input: ChainInput) -> ChainOutput:
        if not self.chains:
            raise ChainExecutionError(f"{self.name} has no chains")

        start = time.perf_counter()
        logger.debug(f"{self.name} ainvoke - branches: {[chain.name for chain in self.chains]}")

        tasks = [asyncio.create_task(chain.ainvoke(input)) for chain in self.chains]
        try:
            results: list[ChainOutput] = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        metadata = dict(input.metadata)
        for result in results:
            metadata.update(result.metadata)
        for key, result in zip(self._branch_keys(), results):
            metadata[key] = result.text

        primary = results[0]
        logger.debug(f"{self.name} completed - branches: {len(results)}")
        return ChainOutput(
            value=primary.value,
            text=primary.text,
            metadata=metadata,
            processing_time_ms=elapsed_ms(start),
        )


class ConditionalChain(Chain):
    """条件路由 Chain

    condition(input) 返回分支 key（可以是同步或异步函数），执行对应的单个 Chain。
    没有匹配分支且未设置 default 时抛出 MissingBranchError。
    """

    def __init__(
        self,
        condition: Condition,
        branches: Mapping[str, Chain],
        default: Chain | None = None,
        name: str = "ConditionalChain",
    ):
        self.condition = condition
        self.branches = dict(branches)
        self.default = default
        self.name = name

    async def ainvoke(self, input: ChainInput) -> ChainOutput:
        key = self.condition(input)
        if inspect.isawaitable(key):
            key = await key

        chain = self.branches.get(key, self.default)
        if chain is None:
            logger.error(f"{self.name} has no branch for key '{key}'")
            raise MissingBranchError(key, list(self.branches.keys()))

        logger.debug(f"{self.name} routed key '{key}' to {chain.name}")
        return await chain.ainvoke(input)


__all__ = [
    "RunnableSequence",
    "SequentialChain",
    "ParallelChain",
    "ConditionalChain",
]
