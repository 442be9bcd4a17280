"""
Tool 实现和装饰器

Agent 可调用的工具：输入一个字符串，返回一个字符串（observation）
"""

import inspect
import re
import types
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Awaitable, Sequence, Union, get_args, get_origin

from loguru import logger

from ext.llm.chain.exceptions import ToolExecutionError
from util.general import truncate_content

_TOKEN_PATTERN = re.compile(r"\w+")

ToolFunc = Callable[[str], Union[str, Awaitable[str]]]


class BaseTool(ABC):
    """工具抽象

    Attributes:
        id: 唯一标识，Agent 在 Action 中用它选择工具
        description: 工具功能描述（写入 Agent prompt）
        parameter_description: 输入参数说明
    """

    id: str
    description: str
    parameter_description: str = "input: The input string"

    @abstractmethod
    async def ainvoke(self, input: str) -> str:
        """执行工具

        Args:
            input: 工具输入

        Returns:
            执行结果文本

        Raises:
            ToolExecutionError: 执行失败
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id='{self.id}', description='{self.description}')"


class FunctionTool(BaseTool):
    """函数工具

    将同步或异步的 str -> str 函数封装为工具
    """

    def __init__(
        self,
        func: ToolFunc,
        id: str,
        description: str,
        parameter_description: str = "input: The input string",
    ):
        """初始化 FunctionTool

        Args:
            func: 工具函数（同步或异步）
            id: 工具标识
            description: 工具描述
            parameter_description: 参数说明
        """
        self.func = func
        self.id = id
        self.description = description
        self.parameter_description = parameter_description
        self.is_async = inspect.iscoroutinefunction(func)

    async def ainvoke(self, input: str) -> str:
        logger.debug(f"Tool '{self.id}' invoke - input: {truncate_content(input)}")

        try:
            result = self.func(input)
            if inspect.isawaitable(result):
                result = await result
        except ToolExecutionError:
            raise
        except Exception as e:
            logger.error(f"Tool '{self.id}' execution failed: {e}")
            raise ToolExecutionError(self.id, e) from e

        result = "" if result is None else str(result)
        logger.debug(f"Tool '{self.id}' result: {truncate_content(result)}")
        return result


class LocalSearchTool(BaseTool):
    """本地关键词检索工具

    查询与文档都转为小写并按 \\w+ 分词，
    与查询共享至少一个长度 >= min_token_length 的词的文档视为命中。
    语义检索请使用 RAG 模块。
    """

    id = "local_search"
    description = "Search through locally stored documents on-device"
    parameter_description = "query: The search query string"

    def __init__(self, documents: Sequence[str], min_token_length: int = 3, max_results: int | None = None):
        self.documents = list(documents)
        self.min_token_length = min_token_length
        self.max_results = max_results

    def _tokens(self, text: str) -> set[str]:
        return {token for token in _TOKEN_PATTERN.findall(text.lower()) if len(token) >= self.min_token_length}

    async def ainvoke(self, input: str) -> str:
        query_tokens = self._tokens(input)
        matches = [doc for doc in self.documents if query_tokens & self._tokens(doc)]
        if self.max_results is not None:
            matches = matches[: self.max_results]

        logger.debug(f"LocalSearchTool query: {truncate_content(input)}, matches: {len(matches)}")
        if not matches:
            return "No results found."
        return "\n".join(matches)


def tool(
    func: ToolFunc | None = None,
    *,
    id: str | None = None,
    description: str | None = None,
    parameter_description: str | None = None,
):
    """装饰器：将函数转换为 FunctionTool

    使用方式：
        @tool
        def weather(city: str) -> str:
            \"\"\"Get current weather\"\"\"
            return f"Sunny in {city}"

    或者：
        @tool(id="custom_id", description="Custom description")
        def my_function(query: str) -> str:
            return query

    Args:
        func: 被装饰的函数，只接收一个字符串参数
        id: 自定义工具标识（可选，默认使用函数名）
        description: 自定义工具描述（可选，默认使用函数文档字符串首行）
        parameter_description: 参数说明（可选，默认从函数签名提取）

    Returns:
        FunctionTool 实例或装饰器函数
    """

    def decorator(f: ToolFunc) -> FunctionTool:
        doc = (f.__doc__ or "").strip()
        return FunctionTool(
            func=f,
            id=id or f.__name__,
            description=description or (doc.splitlines()[0] if doc else f.__name__),
            parameter_description=parameter_description or describe_parameters(f),
        )

    if func is not None:
        return decorator(func)
    return decorator


def describe_parameters(func: Callable) -> str:
    """从函数签名生成参数说明，例如 "city: string"

    Args:
        func: 函数对象

    Returns:
        参数说明字符串
    """
    parts = []
    for param_name, param in inspect.signature(func).parameters.items():
        if param_name == "self":
            continue
        annotation = param.annotation if param.annotation is not inspect.Parameter.empty else str
        parts.append(f"{param_name}: {_get_type_string(annotation)}")
    return ", ".join(parts) or "input: string"


def _get_type_string(type_annotation: Any) -> str:
    """将类型注解转换为 JSON Schema 类型字符串"""
    origin = get_origin(type_annotation)
    if origin is Union or origin is types.UnionType:
        return _get_type_string(get_args(type_annotation)[0])

    type_map = {
        str: "string",
        int: "integer",
        float: "number",
        bool: "boolean",
        list: "array",
        dict: "object",
    }
    if type_annotation in type_map:
        return type_map[type_annotation]
    if origin is list:
        return "array"
    if origin is dict:
        return "object"
    return "string"


__all__ = [
    "BaseTool",
    "FunctionTool",
    "LocalSearchTool",
    "tool",
    "describe_parameters",
]
