"""
Guardrail 实现

在 Chain 执行前后对输入/输出做校验与变换
"""

from abc import ABC, abstractmethod
from typing import List

from loguru import logger
from pydantic import BaseModel, Field

from core.types import StrEnum
from ext.llm.chain.base import Chain, ChainInput, ChainOutput
from ext.llm.chain.exceptions import ChainExecutionError, GuardrailBlockedError


class GuardrailStatusEnum(StrEnum):
    passed = ("passed", "通过")
    blocked = ("blocked", "拦截")
    modified = ("modified", "修改")


class GuardrailResult(BaseModel):
    """单次 Guardrail 检查结果"""

    status: GuardrailStatusEnum = Field(description="检查结果状态")
    reason: str | None = Field(default=None, description="拦截或修改的原因")
    new_text: str | None = Field(default=None, description="修改后的文本")

    @classmethod
    def passed(cls) -> "GuardrailResult":
        return cls(status=GuardrailStatusEnum.passed)

    @classmethod
    def blocked(cls, reason: str) -> "GuardrailResult":
        return cls(status=GuardrailStatusEnum.blocked, reason=reason)

    @classmethod
    def modified(cls, new_text: str, reason: str) -> "GuardrailResult":
        return cls(status=GuardrailStatusEnum.modified, new_text=new_text, reason=reason)

    @property
    def is_passed(self) -> bool:
        return self.status == GuardrailStatusEnum.passed

    @property
    def is_blocked(self) -> bool:
        return self.status == GuardrailStatusEnum.blocked

    @property
    def is_modified(self) -> bool:
        return self.status == GuardrailStatusEnum.modified


class BaseGuardrail(ABC):
    """Guardrail 抽象基类"""

    name: str = "Guardrail"

    @abstractmethod
    async def check_input(self, input: ChainInput) -> GuardrailResult:
        """在输入到达模型之前检查"""
        pass

    async def check_output(self, output: ChainOutput) -> GuardrailResult:
        """在输出返回调用方之前检查，默认通过"""
        return GuardrailResult.passed()


class InputLengthGuardrail(BaseGuardrail):
    """输入长度限制

    truncate=True 时截断到 max_characters 个字符，否则直接拦截
    """

    name = "InputLengthGuardrail"

    def __init__(self, max_characters: int = 16000, truncate: bool = True):
        self.max_characters = max_characters
        self.truncate = truncate

    async def check_input(self, input: ChainInput) -> GuardrailResult:
        length = len(input.text)
        if length <= self.max_characters:
            return GuardrailResult.passed()
        if self.truncate:
            return GuardrailResult.modified(
                new_text=input.text[: self.max_characters],
                reason=f"Input truncated from {length} to {self.max_characters} characters",
            )
        return GuardrailResult.blocked(
            f"Input exceeds maximum length of {self.max_characters} characters (got {length})"
        )


class ContentFilterGuardrail(BaseGuardrail):
    """内容过滤

    对输入和输出做大小写不敏感的子串匹配，命中任一模式即拦截
    """

    name = "ContentFilterGuardrail"

    def __init__(self, blocked_patterns: List[str] | None = None):
        self.blocked_patterns = list(blocked_patterns or [])

    def _match(self, text: str) -> str | None:
        lowered = text.casefold()
        for pattern in self.blocked_patterns:
            if pattern and pattern.casefold() in lowered:
                return pattern
        return None

    async def check_input(self, input: ChainInput) -> GuardrailResult:
        pattern = self._match(input.text)
        if pattern is not None:
            return GuardrailResult.blocked(f"Content contains blocked pattern: '{pattern}'")
        return GuardrailResult.passed()

    async def check_output(self, output: ChainOutput) -> GuardrailResult:
        pattern = self._match(output.text)
        if pattern is not None:
            return GuardrailResult.blocked(f"Content contains blocked pattern: '{pattern}'")
        return GuardrailResult.passed()


async def apply_input_guardrails(guardrails: List[BaseGuardrail], input: ChainInput) -> ChainInput:
    """按顺序执行输入检查

    Returns:
        可能被修改过的输入

    Raises:
        GuardrailBlockedError: 任一 Guardrail 拦截
    """
    current = input
    for guardrail in guardrails:
        result = await guardrail.check_input(current)
        if result.is_blocked:
            logger.warning(f"Input blocked by {guardrail.name}: {result.reason}")
            raise GuardrailBlockedError(guardrail.name, result.reason or "")
        if result.is_modified:
            logger.debug(f"Input modified by {guardrail.name}: {result.reason}")
            current = current.with_text(result.new_text or "", **{f"guardrail.{guardrail.name}": result.reason or ""})
    return current


async def apply_output_guardrails(guardrails: List[BaseGuardrail], output: ChainOutput) -> ChainOutput:
    """按顺序执行输出检查

    Raises:
        ChainExecutionError: 任一 Guardrail 拦截输出
    """
    current = output
    for guardrail in guardrails:
        result = await guardrail.check_output(current)
        if result.is_blocked:
            logger.warning(f"Output blocked by {guardrail.name}: {result.reason}")
            raise ChainExecutionError(f"Output blocked by {guardrail.name}: {result.reason}")
        if result.is_modified:
            new_text = result.new_text or ""
            current = current.model_copy(
                update={
                    "value": new_text,
                    "text": new_text,
                    "metadata": {**current.metadata, f"guardrail.{guardrail.name}": result.reason or ""},
                }
            )
    return current


class GuardedChain(Chain):
    """带 Guardrail 的 Chain

    使用示例:
        >>> guarded = GuardedChain(chain, [InputLengthGuardrail(4000), ContentFilterGuardrail(["secret"])])
        >>> output = await guarded.ainvoke(ChainInput(text="..."))
    """

    def __init__(self, chain: Chain, guardrails: List[BaseGuardrail], name: str | None = None):
        self.chain = chain
        self.guardrails = list(guardrails)
        self.name = name or f"Guarded({chain.name})"
        self.output_type = chain.output_type

    async def ainvoke(self, input: ChainInput) -> ChainOutput:
        checked_input = await apply_input_guardrails(self.guardrails, input)
        output = await self.chain.ainvoke(checked_input)
        return await apply_output_guardrails(self.guardrails, output)


__all__ = [
    "GuardrailStatusEnum",
    "GuardrailResult",
    "BaseGuardrail",
    "InputLengthGuardrail",
    "ContentFilterGuardrail",
    "GuardedChain",
    "apply_input_guardrails",
    "apply_output_guardrails",
]
