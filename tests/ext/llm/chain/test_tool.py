"""
测试 Tool 定义
"""

import pytest

from ext.llm.chain import FunctionTool, LocalSearchTool, ToolExecutionError, tool
from ext.llm.chain.tool import describe_parameters


class TestToolDefinition:
    """测试 Tool 定义"""

    def test_tool_decorator(self):
        """测试 @tool 装饰器"""

        @tool
        def get_weather(city: str) -> str:
            """Get current weather

            Longer explanation that is not part of the description.
            """
            return f"Sunny in {city}"

        assert isinstance(get_weather, FunctionTool)
        assert get_weather.id == "get_weather"
        assert get_weather.description == "Get current weather"
        assert get_weather.parameter_description == "city: string"
        print(f"✓ 工具定义: {get_weather!r}")

    def test_tool_with_custom_id(self):
        """测试自定义工具标识"""

        @tool(id="calc", description="Evaluate arithmetic")
        def calculate(expression: str) -> str:
            return expression

        assert calculate.id == "calc"
        assert calculate.description == "Evaluate arithmetic"

    def test_describe_parameters(self):
        """测试参数说明生成"""

        def func(query: str, limit: int, ratio: float | None, tags: list[str], raw) -> str:
            return ""

        assert describe_parameters(func) == (
            "query: string, limit: integer, ratio: number, tags: array, raw: string"
        )

    @pytest.mark.asyncio
    async def test_sync_and_async_functions(self):
        """测试同步与异步函数都可以作为工具"""

        async def shout(text: str) -> str:
            return text.upper()

        sync_tool = FunctionTool(len, id="length", description="Count characters")
        async_tool = FunctionTool(shout, id="shout", description="Uppercase")

        assert await sync_tool.ainvoke("abcd") == "4"
        assert await async_tool.ainvoke("hey") == "HEY"
        assert async_tool.is_async and not sync_tool.is_async

    @pytest.mark.asyncio
    async def test_tool_error_wrapped(self):
        """测试工具异常被包装为 ToolExecutionError"""

        def broken(text: str) -> str:
            raise KeyError(text)

        with pytest.raises(ToolExecutionError) as exc_info:
            await FunctionTool(broken, id="broken", description="Always fails").ainvoke("x")

        assert exc_info.value.tool_id == "broken"
        assert isinstance(exc_info.value.original_error, KeyError)
        print(f"✓ 工具异常: {exc_info.value}")


class TestLocalSearchTool:
    """测试本地关键词检索"""

    DOCUMENTS = [
        "Pasta should boil for ten minutes.",
        "Meeting with Bob on Friday at noon.",
        "Buy tomatoes and basil for the pasta sauce.",
    ]

    @pytest.mark.asyncio
    async def test_match(self):
        """测试按共享词命中"""
        result = await LocalSearchTool(self.DOCUMENTS).ainvoke("PASTA recipe")
        assert result == "\n".join([self.DOCUMENTS[0], self.DOCUMENTS[2]])
        print(f"✓ 检索结果:\n{result}")

    @pytest.mark.asyncio
    async def test_short_tokens_ignored(self):
        """测试过短的词不参与匹配"""
        assert await LocalSearchTool(self.DOCUMENTS).ainvoke("at on") == "No results found."

    @pytest.mark.asyncio
    async def test_max_results(self):
        result = await LocalSearchTool(self.DOCUMENTS, max_results=1).ainvoke("pasta")
        assert result == self.DOCUMENTS[0]

    @pytest.mark.asyncio
    async def test_no_documents(self):
        assert await LocalSearchTool([]).ainvoke("anything") == "No results found."
