"""
输出解析器实现

提供将模型输出转换为特定格式的解析器
"""

import json
import re
from abc import abstractmethod
from typing import Any, Generic, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from ext.llm.chain.base import Runnable
from ext.llm.chain.exceptions import OutputParserError

OutputT = TypeVar("OutputT")

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


class BaseOutputParser(Generic[OutputT], Runnable[str, OutputT]):
    """输出解析器基类

    用于将模型的字符串输出转换为特定格式
    """

    @abstractmethod
    async def parse(self, text: str) -> OutputT:
        """解析文本

        Args:
            text: 模型输出文本

        Returns:
            解析后的数据

        Raises:
            OutputParserError: 解析失败
        """
        pass

    def get_format_instructions(self) -> str:
        """放入 prompt 中、用于约束模型输出格式的说明"""
        return ""

    async def ainvoke(self, input: str) -> OutputT:
        return await self.parse(input)


class StrOutputParser(BaseOutputParser[str]):
    """字符串输出解析器，去除首尾空白"""

    async def parse(self, text: str) -> str:
        return text.strip()


class ListOutputParser(BaseOutputParser[list[str]]):
    """列表输出解析器

    按分隔符拆分，去除空白、空项与行首的列表标记（-、*、•、1.）
    """

    def __init__(self, delimiter: str = "\n"):
        self.delimiter = delimiter

    async def parse(self, text: str) -> list[str]:
        items = []
        for part in text.split(self.delimiter):
            item = _LIST_MARKER.sub("", part.strip()).strip()
            if item:
                items.append(item)

        logger.debug(f"ListOutputParser parsed {len(items)} items")
        return items

    def get_format_instructions(self) -> str:
        if self.delimiter == "\n":
            return "Return items one per line."
        return f"Return items separated by '{self.delimiter}'."


class JsonOutputParser(BaseOutputParser[Any]):
    """JSON 输出解析器

    将模型输出解析为 JSON；指定 pydantic_object 时校验并返回模型实例
    """

    def __init__(self, pydantic_object: type[BaseModel] | None = None):
        """初始化 JSON 解析器

        Args:
            pydantic_object: 可选的 Pydantic 模型，用于验证和转换输出
        """
        self.pydantic_object = pydantic_object

    async def parse(self, text: str) -> Any:
        """解析 JSON 文本

        Args:
            text: JSON 文本

        Returns:
            解析后的 dict/list，或 pydantic_object 实例

        Raises:
            OutputParserError: JSON 解析或校验失败
        """
        cleaned_text = self._clean_json_text(text)

        try:
            parsed = json.loads(cleaned_text)
        except json.JSONDecodeError as e:
            logger.error(f"JsonOutputParser JSON decode error: {e}")
            raise OutputParserError(f"Failed to parse JSON: {e}", text=text) from e

        if self.pydantic_object is not None:
            try:
                parsed = self.pydantic_object.model_validate(parsed)
            except ValidationError as e:
                logger.error(f"JsonOutputParser Pydantic validation error: {e}")
                raise OutputParserError(f"Failed to validate with Pydantic model: {e}", text=text) from e

        return parsed

    def _clean_json_text(self, text: str) -> str:
        """去掉 ```json 代码块标记，截取最外层的对象或数组"""
        text = text.replace("```json", "").replace("```", "").strip()

        candidates = []
        for open_char, close_char in (("{", "}"), ("[", "]")):
            start_idx = text.find(open_char)
            end_idx = text.rfind(close_char)
            if start_idx != -1 and end_idx > start_idx:
                candidates.append((start_idx, end_idx))

        if not candidates:
            return text

        start_idx, end_idx = min(candidates)
        return text[start_idx : end_idx + 1]

    def get_format_instructions(self) -> str:
        if self.pydantic_object is not None:
            schema = json.dumps(self.pydantic_object.model_json_schema(), ensure_ascii=False)
            return f"Respond ONLY with valid JSON matching this schema: {schema}. No explanations."
        return "Respond ONLY with valid JSON. No explanations."


__all__ = [
    "BaseOutputParser",
    "StrOutputParser",
    "ListOutputParser",
    "JsonOutputParser",
]
