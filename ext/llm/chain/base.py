"""
Chain 模块基础抽象

定义统一的 Runnable 接口，以及 Chain 使用的输入输出结构
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, ClassVar, Generic, List, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from ext.llm.chain.exceptions import TypeMismatchError

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")
T = TypeVar("T")


class Runnable(Generic[InputT, OutputT], ABC):
    """统一的可运行接口

    所有 Chain 组件都需要实现此接口，提供统一的调用方式
    """

    @abstractmethod
    async def ainvoke(self, input: InputT) -> OutputT:
        """异步调用

        Args:
            input: 输入数据

        Returns:
            输出数据
        """
        pass

    async def abatch(self, inputs: List[InputT]) -> List[OutputT]:
        """批量调用（逐个顺序执行）"""
        return [await self.ainvoke(inp) for inp in inputs]

    async def astream(self, input: InputT) -> AsyncIterator[OutputT]:
        """流式输出

        默认实现是一次性调用，子类可以覆盖以提供真正的流式输出
        """
        result = await self.ainvoke(input)
        yield result

    def __or__(self, other: "Runnable") -> "Runnable":
        """pipe 操作符支持

            chain = prompt | llm | parser
        """
        from ext.llm.chain.chain import RunnableSequence

        return RunnableSequence([self, other])


class RunnablePassthrough(Runnable[InputT, InputT]):
    """透传 Runnable，直接返回输入数据"""

    async def ainvoke(self, input: InputT) -> InputT:
        return input


class ChainInput(BaseModel):
    """Chain 的输入

    不可变，metadata 用于在组合器的各阶段之间传递附加数据
    """

    model_config = ConfigDict(frozen=True)

    text: str = Field(description="输入文本")
    metadata: dict[str, str] = Field(default_factory=dict, description="附加数据")

    def with_text(self, text: str, **metadata: str) -> "ChainInput":
        """返回替换了文本（并合并 metadata）的新输入"""
        return ChainInput(text=text, metadata={**self.metadata, **metadata})


class ChainOutput(BaseModel):
    """Chain 的输出

    value 是 Chain 自身的结果类型（在组合器边界上被擦除），
    text 是结果的规范文本形式，下一个 Chain 以它作为输入。
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    value: Any = Field(description="Chain 的类型化结果")
    text: str = Field(description="结果的文本形式")
    metadata: dict[str, str] = Field(default_factory=dict, description="附加数据")
    processing_time_ms: int | None = Field(default=None, description="处理耗时（毫秒）")

    def typed(self, cls: Type[T]) -> T | None:
        """按类型取回 value，类型不匹配时返回 None"""
        if isinstance(self.value, cls):
            return self.value
        return None


class Chain(Runnable[ChainInput, ChainOutput]):
    """Chain 抽象基类

    Chain 接收 ChainInput 返回 ChainOutput，不修改输入。
    arun 是类型化的便捷入口：把 value 还原为 output_type。

    子类需要实现:
        ainvoke(input) -> ChainOutput
    """

    name: str = "Chain"
    output_type: ClassVar[type] = object

    async def arun(self, text: str, metadata: dict[str, str] | None = None) -> Any:
        """运行 Chain 并返回类型化结果

        Args:
            text: 输入文本
            metadata: 附加数据（可选）

        Returns:
            output_type 类型的结果

        Raises:
            TypeMismatchError: value 不是 output_type 的实例
        """
        output = await self.ainvoke(ChainInput(text=text, metadata=metadata or {}))
        return self.unwrap(output, self.output_type)

    @staticmethod
    def unwrap(output: ChainOutput, result_type: Type[T]) -> T:
        """把 ChainOutput.value 还原为 result_type

        Raises:
            TypeMismatchError: 类型不匹配
        """
        if not isinstance(output.value, result_type):
            raise TypeMismatchError(result_type, output.value)
        return output.value

    def __or__(self, other: Runnable) -> Runnable:
        """chain_a | chain_b 组合为 SequentialChain，其它 Runnable 退化为 RunnableSequence"""
        from ext.llm.chain.chain import RunnableSequence, SequentialChain

        if isinstance(other, Chain):
            return SequentialChain([self, other])
        return RunnableSequence([self, other])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name})"


__all__ = [
    "Runnable",
    "RunnablePassthrough",
    "ChainInput",
    "ChainOutput",
    "Chain",
]
