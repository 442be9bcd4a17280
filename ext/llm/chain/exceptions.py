"""
Chain 模块异常定义

提供 Chain、组合器、Guardrail、Pipeline、Agent、Tool、Memory 相关的自定义异常。
模型调用失败（LLMError）不在这里定义，它们原样穿过 Chain 向上传递。
"""


class ChainError(Exception):
    """Chain 基础异常"""


class InvalidInputError(ChainError):
    """无效输入

    典型场景：
    - Prompt 缺少变量
    - 空的 Pipeline
    - ConditionalChain 没有匹配的分支
    - 输入被 Guardrail 拦截
    """


class MissingBranchError(InvalidInputError):
    """ConditionalChain 条件返回的 key 没有对应分支"""

    def __init__(self, key: str, available: list[str] | None = None):
        self.key = key
        self.available = available or []
        super().__init__(f"No branch registered for key '{key}' (available: {', '.join(self.available) or 'none'})")


class GuardrailBlockedError(InvalidInputError):
    """输入被 Guardrail 拦截"""

    def __init__(self, guardrail_name: str, reason: str):
        self.guardrail_name = guardrail_name
        self.reason = reason
        super().__init__(f"Blocked by {guardrail_name}: {reason}")


class EmptyPipelineError(InvalidInputError):
    """Pipeline 没有任何步骤"""

    def __init__(self):
        super().__init__("Pipeline has no steps")


class ChainExecutionError(ChainError):
    """Chain 执行失败

    典型场景：
    - 输出被 Guardrail 拦截
    - 组合器中没有子 Chain
    """


class TypeMismatchError(ChainError):
    """ChainOutput.value 与请求的结果类型不匹配"""

    def __init__(self, expected: type, actual: object):
        self.expected = expected
        self.actual_type = type(actual)
        super().__init__(
            f"Expected result of type {getattr(expected, '__name__', expected)}, "
            f"got {self.actual_type.__name__}"
        )


class OutputParserError(ChainError):
    """输出解析失败"""

    def __init__(self, message: str, text: str | None = None):
        self.text = text
        super().__init__(message)


class AgentError(ChainError):
    """Agent 异常"""


class MaxStepsExceededError(AgentError):
    """Agent 达到最大步数仍未得到最终答案"""

    def __init__(self, max_steps: int, steps: list | None = None):
        self.max_steps = max_steps
        self.steps = steps or []
        super().__init__(f"Agent reached maximum steps ({max_steps}) without a final answer")


class ToolError(ChainError):
    """Tool 异常"""


class ToolExecutionError(ToolError):
    """工具执行异常"""

    def __init__(self, tool_id: str, error: Exception):
        self.tool_id = tool_id
        self.original_error = error
        super().__init__(f"Tool '{tool_id}' execution failed: {error}")


__all__ = [
    "ChainError",
    "InvalidInputError",
    "MissingBranchError",
    "GuardrailBlockedError",
    "EmptyPipelineError",
    "ChainExecutionError",
    "TypeMismatchError",
    "OutputParserError",
    "AgentError",
    "MaxStepsExceededError",
    "ToolError",
    "ToolExecutionError",
]
