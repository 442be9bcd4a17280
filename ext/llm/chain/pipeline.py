"""
Pipeline DSL

以声明式的步骤描述内置 Chain 的顺序组合：

    result = await (
        Pipeline(model)
        .summarize(bullet_count=2)
        .translate(to="ko")
        .arun(text)
    )
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Generic, Sequence, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ext.llm.base import BaseLanguageModel
from ext.llm.chain.base import Chain, ChainInput
from ext.llm.chain.builtin import (
    ClassifyChain,
    ClassifyResult,
    ExtractChain,
    ExtractResult,
    ProofreadChain,
    ProofreadResult,
    RewriteChain,
    RewriteOutputType,
    RewriteResult,
    SummarizeChain,
    SummarizeResult,
    TranslateChain,
    TranslateResult,
)
from ext.llm.chain.builtin.classify import DEFAULT_CATEGORIES
from ext.llm.chain.builtin.extract import DEFAULT_ENTITY_TYPES
from ext.llm.chain.chain import SequentialChain
from ext.llm.chain.exceptions import EmptyPipelineError

ResultT = TypeVar("ResultT")


class PipelineStep(BaseModel, ABC):
    """Pipeline 中的一步，描述要构建的 Chain 及其结果类型"""

    model_config = ConfigDict(frozen=True)

    output_type: ClassVar[type] = object

    @abstractmethod
    def build_chain(self, model: BaseLanguageModel) -> Chain:
        pass


class Summarize(PipelineStep):
    output_type: ClassVar[type] = SummarizeResult

    bullet_count: int = Field(default=1, ge=1, description="要点数量")
    input_type: str = Field(default="text", description="输入类型提示")

    def build_chain(self, model: BaseLanguageModel) -> Chain:
        return SummarizeChain(model, bullet_count=self.bullet_count, input_type=self.input_type)


class Classify(PipelineStep):
    output_type: ClassVar[type] = ClassifyResult

    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES), description="候选类别")
    max_results: int = Field(default=3, ge=1, description="最多返回的类别数")

    def build_chain(self, model: BaseLanguageModel) -> Chain:
        return ClassifyChain(model, categories=self.categories, max_results=self.max_results)


class Extract(PipelineStep):
    output_type: ClassVar[type] = ExtractResult

    entity_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ENTITY_TYPES), description="实体类型")

    def build_chain(self, model: BaseLanguageModel) -> Chain:
        return ExtractChain(model, entity_types=self.entity_types)


class Translate(PipelineStep):
    output_type: ClassVar[type] = TranslateResult

    to: str = Field(description="目标语言代码")
    from_: str = Field(default="en", description="源语言代码")

    def build_chain(self, model: BaseLanguageModel) -> Chain:
        return TranslateChain(model, target_language=self.to, source_language=self.from_)


class Rewrite(PipelineStep):
    output_type: ClassVar[type] = RewriteResult

    style: RewriteOutputType = Field(default=RewriteOutputType.rephrase, description="改写风格")

    def build_chain(self, model: BaseLanguageModel) -> Chain:
        return RewriteChain(model, style=self.style)


class Proofread(PipelineStep):
    output_type: ClassVar[type] = ProofreadResult

    def build_chain(self, model: BaseLanguageModel) -> Chain:
        return ProofreadChain(model)


class Pipeline(Generic[ResultT]):
    """不可变的步骤序列

    每个构建方法都返回新的 Pipeline，原对象不变，因此同一个前缀可以安全复用。
    类型参数是最后一步的结果类型，例如 Pipeline(model).summarize() 为 Pipeline[SummarizeResult]。
    """

    def __init__(self, model: BaseLanguageModel, steps: Sequence[PipelineStep] = ()):
        self.model = model
        self._steps = tuple(steps)

    @property
    def steps(self) -> tuple[PipelineStep, ...]:
        return self._steps

    def then(self, step: PipelineStep) -> "Pipeline[Any]":
        return Pipeline(self.model, (*self._steps, step))

    def summarize(self, bullet_count: int = 1, input_type: str = "text") -> "Pipeline[SummarizeResult]":
        return self.then(Summarize(bullet_count=bullet_count, input_type=input_type))

    def classify(self, categories: list[str] | None = None, max_results: int = 3) -> "Pipeline[ClassifyResult]":
        if categories is None:
            return self.then(Classify(max_results=max_results))
        return self.then(Classify(categories=categories, max_results=max_results))

    def extract(self, entity_types: list[str] | None = None) -> "Pipeline[ExtractResult]":
        if entity_types is None:
            return self.then(Extract())
        return self.then(Extract(entity_types=entity_types))

    def translate(self, to: str, from_: str = "en") -> "Pipeline[TranslateResult]":
        return self.then(Translate(to=to, from_=from_))

    def rewrite(self, style: RewriteOutputType | str) -> "Pipeline[RewriteResult]":
        return self.then(Rewrite(style=style))

    def proofread(self) -> "Pipeline[ProofreadResult]":
        return self.then(Proofread())

    def build_chain(self) -> SequentialChain:
        """构建对应的 SequentialChain

        Raises:
            EmptyPipelineError: 没有任何步骤
        """
        if not self._steps:
            raise EmptyPipelineError()
        return SequentialChain([step.build_chain(self.model) for step in self._steps], name="Pipeline")

    async def arun(
        self,
        text: str,
        result_type: Type[Any] | None = None,
        metadata: dict[str, str] | None = None,
    ) -> ResultT:
        """依次执行所有步骤并返回最后一步的类型化结果

        Args:
            text: 输入文本
            result_type: 期望的结果类型（可选）
            metadata: 附加数据（可选）

        Returns:
            最后一步的结果

        Raises:
            EmptyPipelineError: 没有任何步骤
            TypeMismatchError: 结果类型与最后一步或 result_type 不符
        """
        chain = self.build_chain()

        logger.debug(f"Pipeline run - steps: {[step.__class__.__name__ for step in self._steps]}")
        output = await chain.ainvoke(ChainInput(text=text, metadata=metadata or {}))
        value = Chain.unwrap(output, self._steps[-1].output_type)
        if result_type is not None:
            value = Chain.unwrap(output, result_type)
        return value

    def __len__(self) -> int:
        return len(self._steps)

    def __repr__(self) -> str:
        return f"Pipeline(steps={[step.__class__.__name__ for step in self._steps]})"


__all__ = [
    "PipelineStep",
    "Summarize",
    "Classify",
    "Extract",
    "Translate",
    "Rewrite",
    "Proofread",
    "Pipeline",
]
