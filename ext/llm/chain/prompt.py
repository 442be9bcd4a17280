"""
Prompt Template 实现

使用 {name} 占位符进行变量替换
"""

import re
from typing import Any

from loguru import logger

from ext.llm.chain.base import Runnable
from ext.llm.chain.exceptions import InvalidInputError

_VARIABLE_PATTERN = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)\}")


class PromptTemplate(Runnable[dict[str, Any], str]):
    """提示词模板

    使用 Python str.format 风格的模板语法，字面量花括号写作 {{ }}
    """

    def __init__(self, template: str, input_variables: list[str] | None = None):
        """初始化提示词模板

        Args:
            template: 模板字符串
            input_variables: 输入变量列表（可选，会自动提取）
        """
        self.template = template
        self.input_variables = input_variables if input_variables is not None else self._extract_variables(template)

    @classmethod
    def from_template(cls, template: str) -> "PromptTemplate":
        return cls(template)

    @staticmethod
    def _extract_variables(template: str) -> list[str]:
        """从模板中提取变量名（保持出现顺序，去重，忽略 {{ }} 转义）"""
        unescaped = template.replace("{{", "").replace("}}", "")
        variables: list[str] = []
        for name in _VARIABLE_PATTERN.findall(unescaped):
            if name not in variables:
                variables.append(name)
        return variables

    def format(self, **kwargs: Any) -> str:
        """格式化模板

        Args:
            **kwargs: 模板变量，多余的变量会被忽略

        Returns:
            格式化后的字符串

        Raises:
            InvalidInputError: 缺少模板变量
        """
        missing_vars = [name for name in self.input_variables if name not in kwargs]
        if missing_vars:
            raise InvalidInputError(f"Missing input variables: {', '.join(missing_vars)}")

        try:
            return self.template.format(**kwargs)
        except KeyError as e:
            raise InvalidInputError(f"Missing input variables: {e.args[0]}") from e

    async def ainvoke(self, input: dict[str, Any]) -> str:
        logger.debug(f"PromptTemplate ainvoke - variables: {list(input.keys())}")
        result = self.format(**input)
        logger.debug(f"PromptTemplate result length: {len(result)}")
        return result

    def __repr__(self) -> str:
        return f"PromptTemplate(input_variables={self.input_variables})"


__all__ = [
    "PromptTemplate",
]
